"""
trustsim/receipts.py - Receipt and Audit Hashing

Audit entries, generation runs and timeline digests all hash through
dual_hash, which pairs SHA256 with BLAKE3 so either digest can be checked
independently.
"""

import hashlib
import json
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Union

import blake3

__all__ = [
    "dual_hash",
    "canonical_json",
    "emit_receipt",
    "merkle",
    "StopRule",
]


# =============================================================================
# HASHING
# =============================================================================

def dual_hash(data: Union[bytes, str]) -> str:
    """
    Hash data as "sha256_hex:blake3_hex".

    Strings are UTF-8 encoded first, so dual_hash("x") == dual_hash(b"x").
    """
    raw = data.encode() if isinstance(data, str) else data
    return f"{hashlib.sha256(raw).hexdigest()}:{blake3.blake3(raw).hexdigest()}"


def _json_default(value: Any) -> Any:
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    return str(value)


def canonical_json(data: Any) -> str:
    """Sorted keys, no whitespace. Read-only mappings serialize as objects."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"), default=_json_default)


# =============================================================================
# RECEIPTS
# =============================================================================

def emit_receipt(receipt_type: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Wrap data in a receipt envelope. Nothing is written to disk.

    Args:
        receipt_type: e.g. "population_generation", "audit_entry"
        data: Receipt body; tenant_id defaults to 'default'

    Returns:
        dict with receipt_type, ts, tenant_id, payload_hash and the body fields
    """
    return {
        "receipt_type": receipt_type,
        "ts": datetime.now(timezone.utc).isoformat(),
        "tenant_id": data.get("tenant_id", "default"),
        "payload_hash": dual_hash(canonical_json(data)),
        **data,
    }


def merkle(items: Iterable[Any]) -> str:
    """
    Merkle root over canonical JSON of each item, order-sensitive.

    An odd level duplicates its last hash. No items -> dual_hash(b"empty").
    """
    level = [dual_hash(canonical_json(item)) for item in items]
    if not level:
        return dual_hash(b"empty")
    while len(level) > 1:
        if len(level) % 2:
            level.append(level[-1])
        level = [dual_hash(left + right) for left, right in zip(level[::2], level[1::2])]
    return level[0]


class StopRule(Exception):
    """A structural invariant was broken (unknown universe id, duplicate id, unknown preset)."""
