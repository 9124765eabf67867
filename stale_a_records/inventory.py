"""
inventory.py

Purpose:
  Build the set of public IPv4 addresses currently owned by live EC2 capacity,
  across every enabled region.

Sources per region:
  - Elastic IPs (ec2:DescribeAddresses)
  - Public addresses of pending/running instances, including every attached
    network interface (ec2:DescribeInstances), unless disabled

Permissions:
  - ec2:DescribeRegions, ec2:DescribeAddresses, ec2:DescribeInstances
"""
import concurrent.futures as cf
import logging
from typing import Any, Dict, Iterable, List, Optional, Set

from botocore.exceptions import BotoCoreError, ClientError

from .errors import InventoryError
from .models import Inventory

logger = logging.getLogger(__name__)

LIVE_INSTANCE_STATES = ["pending", "running"]


def discover_regions(sess, explicit: Optional[List[str]] = None) -> List[str]:
    if explicit:
        return list(explicit)
    try:
        ec2 = sess.client("ec2")
        resp = ec2.describe_regions(AllRegions=False)
    except (BotoCoreError, ClientError) as e:
        raise InventoryError(f"describe_regions failed: {e}") from e
    return sorted(r["RegionName"] for r in resp.get("Regions", []))


def elastic_ips(ec2) -> Set[str]:
    resp = ec2.describe_addresses()
    return {a["PublicIp"] for a in resp.get("Addresses", []) if a.get("PublicIp")}


def _instance_ips(instance: Dict[str, Any]) -> Iterable[str]:
    if instance.get("PublicIpAddress"):
        yield instance["PublicIpAddress"]
    for eni in instance.get("NetworkInterfaces", []):
        assoc = eni.get("Association") or {}
        if assoc.get("PublicIp"):
            yield assoc["PublicIp"]
        for priv in eni.get("PrivateIpAddresses", []):
            assoc = priv.get("Association") or {}
            if assoc.get("PublicIp"):
                yield assoc["PublicIp"]


def instance_public_ips(ec2) -> Set[str]:
    out: Set[str] = set()
    token = None
    while True:
        kwargs: Dict[str, Any] = {
            "Filters": [{"Name": "instance-state-name", "Values": LIVE_INSTANCE_STATES}],
        }
        if token:
            kwargs["NextToken"] = token
        resp = ec2.describe_instances(**kwargs)
        for reservation in resp.get("Reservations", []):
            for instance in reservation.get("Instances", []):
                out.update(_instance_ips(instance))
        token = resp.get("NextToken")
        if not token:
            break
    return out


def region_addresses(ec2, include_instances: bool = True) -> Set[str]:
    out = elastic_ips(ec2)
    if include_instances:
        out |= instance_public_ips(ec2)
    return out


def collect_inventory(sess, regions: Optional[List[str]] = None, workers: int = 8,
                      include_instances: bool = True, strict: bool = True) -> Inventory:
    regs = discover_regions(sess, regions)
    # sessions are not thread safe; clients are
    clients = {region: sess.client("ec2", region_name=region) for region in regs}

    addresses: Set[str] = set()
    with cf.ThreadPoolExecutor(max_workers=max(1, workers)) as ex:
        futs = {ex.submit(region_addresses, ec2, include_instances): region for region, ec2 in clients.items()}
        for fut in cf.as_completed(futs):
            region = futs[fut]
            try:
                found = fut.result()
            except (BotoCoreError, ClientError) as e:
                if strict:
                    raise InventoryError(f"region {region} address listing failed: {e}") from e
                logger.warning("region %s address listing failed, inventory is partial: %s", region, e)
                continue
            logger.debug("region %s: %d public addresses", region, len(found))
            addresses |= found

    logger.info("inventory: %d addresses across %d regions", len(addresses), len(regs))
    return frozenset(addresses)
