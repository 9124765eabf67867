"""
models.py

Value types shared by the collector, extractor, reconciler and publisher, plus
the resource identifier format reported to AWS Config:

  aws:<account>:hostedzone:<zoneId>:<recordName>:type:<recordType>
"""
import datetime as dt
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, NamedTuple, Optional, Tuple

RESOURCE_TYPE = "AWS::::Account"

Inventory = FrozenSet[str]


class ComplianceType:
    COMPLIANT = "COMPLIANT"
    NON_COMPLIANT = "NON_COMPLIANT"
    NOT_APPLICABLE = "NOT_APPLICABLE"


def normalize_zone_id(zone_id: str) -> str:
    # "/hostedzone/Z1PA6795UKMFR9" -> "Z1PA6795UKMFR9"
    return zone_id.rsplit("/", 1)[-1]


def normalize_record_name(name: str) -> str:
    return name[:-1] if name.endswith(".") else name


@dataclass(frozen=True)
class Zone:
    zone_id: str
    account_id: str
    name: Optional[str] = None


@dataclass(frozen=True)
class RecordRef:
    zone_id: str
    name: str
    type: str
    record: Dict[str, Any] = field(compare=False, hash=False, repr=False)

    @property
    def identity(self) -> Tuple[str, str]:
        return (self.name, self.type)


# address -> records pointing at it, in first-seen order
AddressIndex = Dict[str, List[RecordRef]]


@dataclass(frozen=True)
class Finding:
    name: str
    type: str
    addresses: Tuple[str, ...]

    @property
    def identity(self) -> Tuple[str, str]:
        return (self.name, self.type)


class ResourceKey(NamedTuple):
    account_id: str
    zone_id: str
    name: str
    type: str


def build_resource_id(account_id: str, zone_id: str, name: str, rtype: str) -> str:
    return f"aws:{account_id}:hostedzone:{zone_id}:{name}:type:{rtype}"


def parse_resource_id(resource_id: str) -> Optional[ResourceKey]:
    """Split a resource id produced by build_resource_id.

    Returns None for ids this auditor did not produce.
    """
    parts = resource_id.split(":")
    if len(parts) < 7 or parts[0] != "aws" or parts[2] != "hostedzone" or parts[-2] != "type":
        return None
    name = ":".join(parts[4:-2])
    if not parts[1] or not parts[3] or not name:
        return None
    return ResourceKey(parts[1], parts[3], name, parts[-1])


@dataclass(frozen=True)
class EvaluationResult:
    resource_id: str
    compliance_type: str
    ordering_timestamp: dt.datetime
    annotation: Optional[str] = None
    resource_type: str = RESOURCE_TYPE

    def to_api(self) -> Dict[str, Any]:
        out = {
            "ComplianceResourceType": self.resource_type,
            "ComplianceResourceId": self.resource_id,
            "ComplianceType": self.compliance_type,
            "OrderingTimestamp": self.ordering_timestamp,
        }
        if self.annotation:
            out["Annotation"] = self.annotation
        return out
