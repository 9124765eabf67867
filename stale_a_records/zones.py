"""
zones.py

Purpose:
  List Route53 hosted zones and index each zone's simple A records by the
  literal addresses they resolve to.

Notes:
  - Alias records and every type other than A are ignored
  - Record names are reported without the trailing dot

Permissions:
  - route53:ListHostedZones, route53:ListResourceRecordSets
"""
import logging
from typing import Any, Dict, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from .errors import ZoneExtractionError, ZoneListingError
from .models import AddressIndex, RecordRef, Zone, normalize_record_name, normalize_zone_id

logger = logging.getLogger(__name__)

ADDRESS_RECORD_TYPE = "A"

# ListResourceRecordSets continuation fields, response key -> request key
_CONTINUATION = (
    ("NextRecordName", "StartRecordName"),
    ("NextRecordType", "StartRecordType"),
    ("NextRecordIdentifier", "StartRecordIdentifier"),
)


def list_hosted_zones(r53, account_id: str, name_filter: Optional[str] = None) -> List[Zone]:
    out: List[Zone] = []
    token = None
    try:
        while True:
            kwargs = {}
            if token:
                kwargs["Marker"] = token
            resp = r53.list_hosted_zones(**kwargs)
            for hz in resp.get("HostedZones", []):
                name = hz.get("Name")
                if name_filter and name_filter not in (name or ""):
                    continue
                out.append(Zone(normalize_zone_id(hz["Id"]), account_id, name))
            token = resp.get("NextMarker")
            if not resp.get("IsTruncated") or not token:
                break
    except (BotoCoreError, ClientError) as e:
        raise ZoneListingError(f"list_hosted_zones failed: {e}") from e
    logger.info("found %d hosted zones", len(out))
    return out


def is_address_record(rrset: Dict[str, Any]) -> bool:
    return rrset.get("Type") == ADDRESS_RECORD_TYPE and not rrset.get("AliasTarget")


def iter_record_sets(r53, zone_id: str):
    kwargs: Dict[str, Any] = {"HostedZoneId": zone_id}
    while True:
        resp = r53.list_resource_record_sets(**kwargs)
        for rrset in resp.get("ResourceRecordSets", []):
            yield rrset
        if not resp.get("IsTruncated"):
            break
        kwargs = {"HostedZoneId": zone_id}
        for resp_key, req_key in _CONTINUATION:
            if resp.get(resp_key):
                kwargs[req_key] = resp[resp_key]
        if "StartRecordName" not in kwargs:
            break


def add_record(index: AddressIndex, ref: RecordRef) -> None:
    for rr in ref.record.get("ResourceRecords", []):
        address = rr.get("Value")
        if not address:
            continue
        bucket = index.setdefault(address, [])
        if ref not in bucket:
            bucket.append(ref)


def extract_address_index(r53, zone: Zone) -> AddressIndex:
    index: AddressIndex = {}
    try:
        for rrset in iter_record_sets(r53, zone.zone_id):
            if not is_address_record(rrset):
                continue
            ref = RecordRef(zone.zone_id, normalize_record_name(rrset["Name"]), rrset["Type"], rrset)
            add_record(index, ref)
    except (BotoCoreError, ClientError) as e:
        raise ZoneExtractionError(zone.zone_id, f"list_resource_record_sets failed: {e}") from e
    logger.debug("zone %s: %d distinct A-record addresses", zone.zone_id, len(index))
    return index
