"""
publisher.py

Purpose:
  Turn a zone's findings into AWS Config evaluations and submit them.

Batch contents, per zone:
  - NON_COMPLIANT for every current finding, annotated with the stale addresses
  - COMPLIANT for every record this rule previously reported NON_COMPLIANT in
    the same account and zone that is no longer a finding

Permissions:
  - config:GetComplianceDetailsByConfigRule, config:PutEvaluations
"""
import datetime as dt
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from .errors import PublishError
from .models import (
    ComplianceType,
    EvaluationResult,
    Finding,
    Zone,
    build_resource_id,
    parse_resource_id,
)

logger = logging.getLogger(__name__)

MAX_EVALUATIONS_PER_CALL = 100
MAX_ANNOTATION_LENGTH = 256
TEST_MODE_TOKEN = "TESTMODE"


@dataclass
class PublishResult:
    zone_id: str
    non_compliant: int
    flipped: int
    submitted: bool
    failed: List[Dict[str, Any]]


def fetch_existing_non_compliant(cfg, rule_name: str) -> List[str]:
    out: List[str] = []
    token = None
    while True:
        kwargs: Dict[str, Any] = {
            "ConfigRuleName": rule_name,
            "ComplianceTypes": [ComplianceType.NON_COMPLIANT],
            "Limit": 100,
        }
        if token:
            kwargs["NextToken"] = token
        resp = cfg.get_compliance_details_by_config_rule(**kwargs)
        for result in resp.get("EvaluationResults", []):
            qualifier = result.get("EvaluationResultIdentifier", {}).get("EvaluationResultQualifier", {})
            if qualifier.get("ResourceId"):
                out.append(qualifier["ResourceId"])
        token = resp.get("NextToken")
        if not token:
            break
    return out


def lookup_existing_non_compliant(cfg, rule_name: str) -> Optional[List[str]]:
    """Previously reported NON_COMPLIANT resource ids, or None if unavailable.

    Callers treat None as "skip flipping records back to COMPLIANT".
    """
    try:
        return fetch_existing_non_compliant(cfg, rule_name)
    except (BotoCoreError, ClientError) as e:
        logger.warning("cannot read existing evaluations for rule %s, compliant flips skipped: %s", rule_name, e)
        return None


def belongs_to_zone(resource_id: str, zone: Zone) -> bool:
    key = parse_resource_id(resource_id)
    return key is not None and key.account_id == zone.account_id and key.zone_id == zone.zone_id


def annotate(finding: Finding) -> str:
    text = f"IPv4: {', '.join(finding.addresses)}"
    if len(text) > MAX_ANNOTATION_LENGTH:
        text = text[:MAX_ANNOTATION_LENGTH - 3] + "..."
    return text


def build_evaluations(zone: Zone, findings: List[Finding], existing: Optional[List[str]],
                      now: Optional[dt.datetime] = None) -> List[EvaluationResult]:
    now = now or dt.datetime.now(dt.timezone.utc)
    batch: Dict[str, EvaluationResult] = {}
    for f in findings:
        rid = build_resource_id(zone.account_id, zone.zone_id, f.name, f.type)
        batch.setdefault(rid, EvaluationResult(rid, ComplianceType.NON_COMPLIANT, now, annotate(f)))
    for rid in existing or []:
        if rid in batch or not belongs_to_zone(rid, zone):
            continue
        batch[rid] = EvaluationResult(rid, ComplianceType.COMPLIANT, now)
    return list(batch.values())


def _chunks(items: List[Any], size: int):
    for i in range(0, len(items), size):
        yield items[i:i + size]


def submit(cfg, zone: Zone, evaluations: List[EvaluationResult], result_token: str) -> List[Dict[str, Any]]:
    failed: List[Dict[str, Any]] = []
    payload = [e.to_api() for e in evaluations]
    try:
        for chunk in _chunks(payload, MAX_EVALUATIONS_PER_CALL):
            kwargs: Dict[str, Any] = {"Evaluations": chunk, "ResultToken": result_token}
            if result_token == TEST_MODE_TOKEN:
                kwargs["TestMode"] = True
            resp = cfg.put_evaluations(**kwargs)
            failed.extend(resp.get("FailedEvaluations", []))
    except (BotoCoreError, ClientError) as e:
        raise PublishError(zone.zone_id, f"put_evaluations failed: {e}") from e
    for f in failed:
        logger.warning("zone %s: evaluation rejected for %s", zone.zone_id, f.get("ComplianceResourceId"))
    return failed


def publish(cfg, zone: Zone, findings: List[Finding], existing: Optional[List[str]], result_token: str,
            dry_run: bool = False, now: Optional[dt.datetime] = None) -> PublishResult:
    evaluations = build_evaluations(zone, findings, existing, now)
    flipped = sum(1 for e in evaluations if e.compliance_type == ComplianceType.COMPLIANT)
    result = PublishResult(zone.zone_id, len(evaluations) - flipped, flipped, False, [])
    if not evaluations:
        logger.debug("zone %s: nothing to report", zone.zone_id)
        return result
    if dry_run:
        logger.info("zone %s: dry-run, %d evaluations not submitted", zone.zone_id, len(evaluations))
        return result
    result.failed = submit(cfg, zone, evaluations, result_token)
    result.submitted = True
    logger.info("zone %s: submitted %d NON_COMPLIANT, %d COMPLIANT", zone.zone_id, result.non_compliant, flipped)
    return result
