"""In-memory stand-ins for the boto3 clients the auditor talks to."""
import datetime as dt
from typing import Any, Dict, List, Optional

import pytest
from botocore.exceptions import ClientError

from stale_a_records.models import Zone

ACCOUNT = "111122223333"
ZONE_ID = "Z1PA6795UKMFR9"
NOW = dt.datetime(2026, 10, 19, 12, 0, tzinfo=dt.timezone.utc)


def client_error(op: str, code: str = "AccessDenied") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": f"{op} denied"}}, op)


def a_record(name: str, *values: str, rtype: str = "A", alias: bool = False, set_id: Optional[str] = None):
    rec: Dict[str, Any] = {"Name": name, "Type": rtype}
    if alias:
        rec["AliasTarget"] = {"HostedZoneId": "Z2FDTNDATAQYW2", "DNSName": "d111.cloudfront.net."}
    else:
        rec["TTL"] = 300
        rec["ResourceRecords"] = [{"Value": v} for v in values]
    if set_id:
        rec["SetIdentifier"] = set_id
    return rec


class FakeEC2:
    def __init__(self, addresses=(), instances=(), regions=None, fail_regions=False, fail_addresses=False):
        self.addresses = list(addresses)
        self.instance_pages = [list(instances)] if instances and not isinstance(instances[0], list) else list(instances)
        self.regions = regions or []
        self.fail_regions = fail_regions
        self.fail_addresses = fail_addresses
        self.instance_calls: List[Dict[str, Any]] = []

    def describe_regions(self, **kwargs):
        if self.fail_regions:
            raise client_error("DescribeRegions")
        return {"Regions": [{"RegionName": r} for r in self.regions]}

    def describe_addresses(self, **kwargs):
        if self.fail_addresses:
            raise client_error("DescribeAddresses", "UnauthorizedOperation")
        return {"Addresses": [{"PublicIp": ip, "AllocationId": f"eipalloc-{i}"} for i, ip in enumerate(self.addresses)]}

    def describe_instances(self, **kwargs):
        self.instance_calls.append(kwargs)
        if not self.instance_pages:
            return {"Reservations": []}
        page = int(kwargs.get("NextToken", "0"))
        resp = {"Reservations": [{"Instances": self.instance_pages[page]}]}
        if page + 1 < len(self.instance_pages):
            resp["NextToken"] = str(page + 1)
        return resp


class FakeRoute53:
    """Record pages per zone; each page after the first starts at the previous page's NextRecord*."""

    def __init__(self, zones=(), record_pages=None, failing_zones=(), fail_listing=False):
        self.zones = list(zones)
        self.record_pages: Dict[str, List[List[Dict[str, Any]]]] = record_pages or {}
        self.failing_zones = set(failing_zones)
        self.fail_listing = fail_listing
        self.rrset_calls: List[Dict[str, Any]] = []

    def list_hosted_zones(self, **kwargs):
        if self.fail_listing:
            raise client_error("ListHostedZones")
        return {
            "HostedZones": [{"Id": f"/hostedzone/{zid}", "Name": name} for zid, name in self.zones],
            "IsTruncated": False,
            "MaxItems": "100",
        }

    def list_resource_record_sets(self, **kwargs):
        self.rrset_calls.append(kwargs)
        zone_id = kwargs["HostedZoneId"]
        if zone_id in self.failing_zones:
            raise client_error("ListResourceRecordSets", "NoSuchHostedZone")
        pages = self.record_pages.get(zone_id, [[]])
        page = 0
        if "StartRecordName" in kwargs:
            page = int(kwargs["StartRecordIdentifier"])
        resp: Dict[str, Any] = {"ResourceRecordSets": pages[page], "IsTruncated": page + 1 < len(pages)}
        if resp["IsTruncated"]:
            first = pages[page + 1][0]
            resp["NextRecordName"] = first["Name"]
            resp["NextRecordType"] = first["Type"]
            resp["NextRecordIdentifier"] = str(page + 1)
        return resp


class FakeConfig:
    def __init__(self, existing=(), fail_lookup=False, fail_put=False, failed_evaluations=()):
        self.existing_pages = [list(existing)]
        self.fail_lookup = fail_lookup
        self.fail_put = fail_put
        self.failed_evaluations = list(failed_evaluations)
        self.put_calls: List[Dict[str, Any]] = []
        self.lookup_calls = 0

    def get_compliance_details_by_config_rule(self, **kwargs):
        self.lookup_calls += 1
        if self.fail_lookup:
            raise client_error("GetComplianceDetailsByConfigRule")
        page = int(kwargs.get("NextToken", "0"))
        resp = {
            "EvaluationResults": [
                {
                    "EvaluationResultIdentifier": {
                        "EvaluationResultQualifier": {
                            "ConfigRuleName": kwargs["ConfigRuleName"],
                            "ResourceType": "AWS::::Account",
                            "ResourceId": rid,
                        }
                    },
                    "ComplianceType": "NON_COMPLIANT",
                }
                for rid in self.existing_pages[page]
            ]
        }
        if page + 1 < len(self.existing_pages):
            resp["NextToken"] = str(page + 1)
        return resp

    def put_evaluations(self, **kwargs):
        if self.fail_put:
            raise client_error("PutEvaluations", "InvalidResultTokenException")
        self.put_calls.append(kwargs)
        return {"FailedEvaluations": self.failed_evaluations}

    def submitted_ids(self) -> List[str]:
        return [e["ComplianceResourceId"] for call in self.put_calls for e in call["Evaluations"]]


class FakeSession:
    def __init__(self, ec2=None, regional=None, route53=None, config=None, account=ACCOUNT):
        self.ec2 = ec2 or FakeEC2()
        self.regional = regional or {}
        self.route53 = route53 or FakeRoute53()
        self.config = config or FakeConfig()
        self.account = account

    def client(self, name, region_name=None):
        if name == "ec2":
            if region_name is None:
                return self.ec2
            return self.regional[region_name]
        if name == "route53":
            return self.route53
        if name == "config":
            return self.config
        if name == "sts":
            return _FakeSTS(self.account)
        raise KeyError(name)


class _FakeSTS:
    def __init__(self, account):
        self.account = account

    def get_caller_identity(self):
        return {"Account": self.account, "Arn": f"arn:aws:iam::{self.account}:user/auditor"}


@pytest.fixture
def zone():
    return Zone(ZONE_ID, ACCOUNT, "example.com.")
