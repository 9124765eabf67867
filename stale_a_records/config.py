"""Run configuration, from CLI flags or from an AWS Config rule invocation."""
import json
from typing import Annotated, Any, Dict, List, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .errors import ConfigError

DEFAULT_RULE_NAME = "route53-stale-a-records"
DEFAULT_WORKERS = 8

# rule parameter -> field; the same fields also read STALE_A_<FIELD> from the environment
RULE_PARAMETERS = {
    "ZoneWorkers": "zone_workers",
    "RegionWorkers": "region_workers",
    "IncludeInstanceIps": "include_instance_ips",
    "StrictRegions": "strict_regions",
    "Regions": "regions",
    "NameFilter": "name_filter",
}


class AuditConfig(BaseSettings):
    """Settings resolved from init values (CLI flags, rule parameters) > env > defaults."""

    model_config = SettingsConfigDict(
        env_prefix="STALE_A_",
        case_sensitive=False,
        extra="ignore",
    )

    account_id: str = Field(min_length=1)
    result_token: str = Field(min_length=1)
    rule_name: str = DEFAULT_RULE_NAME
    profile: Optional[str] = None
    regions: Annotated[Optional[List[str]], NoDecode] = None
    name_filter: Optional[str] = None
    zone_workers: int = Field(default=DEFAULT_WORKERS, ge=1)
    region_workers: int = Field(default=DEFAULT_WORKERS, ge=1)
    include_instance_ips: bool = True
    strict_regions: bool = True
    dry_run: bool = False

    @field_validator("regions", mode="before")
    @classmethod
    def _split_regions(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [r.strip() for r in value.split(",") if r.strip()] or None
        return value

    @classmethod
    def create(cls, **values: Any) -> "AuditConfig":
        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigError(f"invalid configuration: {e}") from e

    @classmethod
    def from_event(cls, event: Dict[str, Any]) -> "AuditConfig":
        try:
            params = json.loads(event.get("ruleParameters") or "{}")
        except ValueError as e:
            raise ConfigError(f"ruleParameters is not valid JSON: {e}") from e
        if not isinstance(params, dict):
            raise ConfigError("ruleParameters must be a JSON object")
        if not event.get("resultToken"):
            raise ConfigError("event has no resultToken")

        values = {name: params[param] for param, name in RULE_PARAMETERS.items()
                  if params.get(param) not in (None, "")}
        return cls.create(
            account_id=event.get("accountId"),
            result_token=event["resultToken"],
            rule_name=event.get("configRuleName") or DEFAULT_RULE_NAME,
            **values,
        )
