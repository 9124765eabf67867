"""
job.py

One audit run: list zones, build the address inventory, then take every zone
through extract -> reconcile -> publish on a bounded thread pool.

Failure scopes:
  - zone listing / region listing / (strict) region query: whole run fails
  - record extraction / evaluation submission: that zone only
  - reading prior evaluations: zones skip COMPLIANT flips this run
"""
import concurrent.futures as cf
import datetime as dt
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

import boto3

from .config import AuditConfig
from .errors import ZoneError
from .inventory import collect_inventory
from .models import Finding, Inventory, Zone
from .publisher import lookup_existing_non_compliant, publish
from .reconcile import compliant_records, reconcile
from .zones import extract_address_index, list_hosted_zones

logger = logging.getLogger(__name__)


@dataclass
class ZoneReport:
    zone_id: str
    name: Optional[str]
    findings: List[Finding] = field(default_factory=list)
    compliant: int = 0
    flipped: int = 0
    submitted: bool = False
    rejected: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class AuditReport:
    account_id: str
    inventory_size: int
    dry_run: bool
    zones: List[ZoneReport]

    @property
    def findings(self) -> int:
        return sum(len(z.findings) for z in self.zones)

    @property
    def failed_zones(self) -> List[str]:
        return [z.zone_id for z in self.zones if z.error]

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["findings"] = self.findings
        out["failed_zones"] = self.failed_zones
        return out


def session(profile: Optional[str]):
    if profile:
        return boto3.Session(profile_name=profile)
    return boto3.Session()


def audit_zone(zone: Zone, inventory: Inventory, existing: Optional[List[str]], r53, cfg,
               config: AuditConfig, now: Optional[dt.datetime] = None) -> ZoneReport:
    report = ZoneReport(zone.zone_id, zone.name)
    index = extract_address_index(r53, zone)
    report.findings = reconcile(inventory, index)
    stale = {f.identity for f in report.findings}
    report.compliant = sum(1 for identity in compliant_records(inventory, index) if identity not in stale)
    if report.findings:
        logger.info("zone %s: records with non-existent addresses: %s",
                    zone.zone_id, ", ".join(f.name for f in report.findings))
    result = publish(cfg, zone, report.findings, existing, config.result_token,
                     dry_run=config.dry_run, now=now)
    report.flipped = result.flipped
    report.submitted = result.submitted
    report.rejected = result.failed
    return report


def run_audit(config: AuditConfig, sess=None, now: Optional[dt.datetime] = None) -> AuditReport:
    sess = sess or session(config.profile)
    r53 = sess.client("route53")
    cfg = sess.client("config")

    zones = list_hosted_zones(r53, config.account_id, config.name_filter)
    inventory = collect_inventory(sess, config.regions, config.region_workers,
                                  config.include_instance_ips, config.strict_regions)
    # one scan of prior results per run, shared read-only by every zone
    existing = lookup_existing_non_compliant(cfg, config.rule_name)

    reports: Dict[str, ZoneReport] = {}
    with cf.ThreadPoolExecutor(max_workers=config.zone_workers) as ex:
        futs = {ex.submit(audit_zone, z, inventory, existing, r53, cfg, config, now): z for z in zones}
        for fut in cf.as_completed(futs):
            zone = futs[fut]
            try:
                reports[zone.zone_id] = fut.result()
            except ZoneError as e:
                logger.error("zone %s skipped this run: %s", zone.zone_id, e)
                reports[zone.zone_id] = ZoneReport(zone.zone_id, zone.name, error=str(e))

    report = AuditReport(config.account_id, len(inventory), config.dry_run,
                         [reports[z.zone_id] for z in zones])
    logger.info("audit done: %d zones, %d findings, %d failed zones",
                len(report.zones), report.findings, len(report.failed_zones))
    return report
