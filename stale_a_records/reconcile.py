"""
reconcile.py

Cross-reference a zone's address index against the live address inventory.

A record is a finding when at least one of its addresses is not in the
inventory. Addresses that are in the inventory never show up in a finding,
even when the same record also points somewhere stale.
"""
from typing import Dict, List, Tuple

from .models import AddressIndex, Finding, Inventory


def prune_compliant(inventory: Inventory, index: AddressIndex) -> AddressIndex:
    """Copy of index without the buckets whose address is live."""
    return {address: refs for address, refs in index.items() if address not in inventory}


def compliant_records(inventory: Inventory, index: AddressIndex) -> List[Tuple[str, str]]:
    seen: Dict[Tuple[str, str], None] = {}
    for address, refs in index.items():
        if address in inventory:
            for ref in refs:
                seen.setdefault(ref.identity, None)
    return list(seen)


def reconcile(inventory: Inventory, index: AddressIndex) -> List[Finding]:
    offending: Dict[Tuple[str, str], List[str]] = {}
    for address, refs in prune_compliant(inventory, index).items():
        for ref in refs:
            addresses = offending.setdefault(ref.identity, [])
            if address not in addresses:
                addresses.append(address)
    return [Finding(name, rtype, tuple(addresses)) for (name, rtype), addresses in offending.items()]

