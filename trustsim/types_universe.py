"""
trustsim/types_universe.py - Branching Timeline Types

TrustState, TimelineEvent, AuditEntry and Universe.
Frozen dataclasses holding tuples: a fork shares prior events structurally
and nothing can be edited after the fact.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from .constants import ActionLabel
from .receipts import emit_receipt
from .types_domain import Policy, Signal, freeze


@dataclass(frozen=True)
class TrustState:
    """Snapshot-equivalent carried by a universe."""
    trust_score: float = 0.0
    confidence_score: float = 0.0
    signals: Tuple[Signal, ...] = field(default_factory=tuple)
    trust_debt: float = 0.0
    trust_fragility: float = 0.0

    def __post_init__(self) -> None:
        if not isinstance(self.signals, tuple):
            object.__setattr__(self, "signals", tuple(self.signals))

    @property
    def signal_count(self) -> int:
        return len(self.signals)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trust_score": self.trust_score,
            "confidence_score": self.confidence_score,
            "signals": [s.to_dict() for s in self.signals],
            "trust_debt": self.trust_debt,
            "trust_fragility": self.trust_fragility,
        }


@dataclass(frozen=True)
class TimelineEvent:
    """One transition of a universe. The timeline is built only from these."""
    at: int
    state: TrustState
    action: ActionLabel
    audit_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "at": self.at,
            "state": self.state.to_dict(),
            "action": self.action.value,
            "audit_id": self.audit_id,
        }


@dataclass(frozen=True)
class AuditMeta:
    """Label + id attached to a scripted action."""
    action: ActionLabel
    audit_id: str


@dataclass(frozen=True)
class AuditEntry:
    """
    Cross-cutting log line, independent of any one universe's timeline.

    payload_hash is dual_hash of the canonical payload so a persisted entry
    can be checked against its payload.
    """
    id: str
    at: int
    universe_id: str
    action: str
    payload: Mapping[str, Any]
    outcome: Optional[str]
    payload_hash: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "payload", freeze(self.payload or {}))

    def to_receipt(self) -> Dict[str, Any]:
        """Export as a receipt dict (for callers that persist audit trails)."""
        return emit_receipt("audit_entry", {
            "tenant_id": self.universe_id,
            "audit_id": self.id,
            "at": self.at,
            "action": self.action,
            "payload": self.payload.to_dict(),
            "outcome": self.outcome,
            "entry_payload_hash": self.payload_hash,
        })


@dataclass(frozen=True)
class Universe:
    """
    An independently evolving copy of trust state.

    parent_id is None for roots. The timeline is append-only; trust_state is
    the current position, which time travel may move without touching the
    timeline.
    """
    id: str
    label: str
    policy: Policy
    timeline: Tuple[TimelineEvent, ...]
    trust_state: TrustState
    created_at: int
    parent_id: Optional[str] = None
    forked_at: Optional[int] = None

    def __post_init__(self) -> None:
        if not isinstance(self.timeline, tuple):
            object.__setattr__(self, "timeline", tuple(self.timeline))

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    @property
    def latest_event(self) -> TimelineEvent:
        return self.timeline[-1]


__all__ = [
    "TrustState",
    "TimelineEvent",
    "AuditMeta",
    "AuditEntry",
    "Universe",
]
