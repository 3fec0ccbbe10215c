"""
tests/test_receipts.py - Receipt Foundation Tests

Validates dual_hash, canonical JSON, emit_receipt and merkle.
"""

import pytest

from trustsim.constants import SourceKind
from trustsim.receipts import StopRule, canonical_json, dual_hash, emit_receipt, merkle
from trustsim.types_domain import FrozenMap


class TestDualHash:
    """Test dual_hash."""

    def test_format(self):
        h = dual_hash("trust")
        sha, b3 = h.split(":")
        assert len(sha) == 64 and len(b3) == 64

    def test_str_and_bytes_agree(self):
        assert dual_hash("trust") == dual_hash(b"trust")

    def test_distinct_inputs(self):
        assert dual_hash("a") != dual_hash("b")


class TestCanonicalJson:
    """Key order never changes the canonical form."""

    def test_sorted(self):
        assert canonical_json({"b": 1, "a": 2}) == canonical_json({"a": 2, "b": 1})
        assert canonical_json({"b": 1, "a": 2}) == '{"a":2,"b":1}'

    def test_enum_values(self):
        assert canonical_json({"source": SourceKind.PEER}) == '{"source":"peer"}'

    def test_read_only_mapping(self):
        frozen = FrozenMap({"b": [1, 2], "a": {"x": 1}})
        assert canonical_json(frozen) == canonical_json({"a": {"x": 1}, "b": [1, 2]})


class TestEmitReceipt:
    """Test emit_receipt."""

    def test_fields(self):
        r = emit_receipt("population_generation", {"tenant_id": "acme", "count": 10})
        assert r["receipt_type"] == "population_generation"
        assert r["tenant_id"] == "acme"
        assert r["count"] == 10
        assert r["payload_hash"] == dual_hash(canonical_json({"tenant_id": "acme", "count": 10}))
        assert "ts" in r

    def test_default_tenant(self):
        assert emit_receipt("x", {})["tenant_id"] == "default"


class TestMerkle:
    """Test merkle."""

    def test_empty(self):
        assert merkle([]) == dual_hash(b"empty")

    def test_deterministic_and_order_sensitive(self):
        items = [{"i": 1}, {"i": 2}, {"i": 3}]
        assert merkle(items) == merkle(list(items))
        assert merkle(items) != merkle(list(reversed(items)))

    def test_single_item(self):
        assert merkle([{"i": 1}]) == dual_hash(canonical_json({"i": 1}))


class TestStopRule:
    """StopRule is a plain exception carrying its message."""

    def test_raise(self):
        with pytest.raises(StopRule, match="broken"):
            raise StopRule("broken")
