"""
trustsim/lab.py - Multiverse Container

Multiverse holds a set of universes plus the cross-cutting audit trail.
Each method performs one multiverse operation on a universe held in the
container and returns (new_container, universe). The container itself is
frozen: nothing is edited in place.

Broken structural invariants (unknown universe id, unknown parent, duplicate
id) raise StopRule.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Tuple

from .chaos_presets import PRESETS
from .constants import ActionLabel
from .counterfactual import break_the_multiverse
from .multiverse import (
    apply_signal,
    create_audit_entry,
    create_universe,
    fake_consensus_injection,
    fork_universe_at,
    new_id,
    now_ms,
    reset_universe,
    supervisor_override,
    time_travel_to,
    trust_collapse,
    trust_debt_collection_event,
)
from .receipts import StopRule
from .types_domain import Policy, Signal
from .types_result import BreakResult, PresetResult
from .types_universe import AuditEntry, AuditMeta, Universe

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Multiverse:
    """Universes in creation order plus the append-only audit trail."""
    universes: Tuple[Universe, ...] = field(default_factory=tuple)
    audit_trail: Tuple[AuditEntry, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not isinstance(self.universes, tuple):
            object.__setattr__(self, "universes", tuple(self.universes))
        if not isinstance(self.audit_trail, tuple):
            object.__setattr__(self, "audit_trail", tuple(self.audit_trail))

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def ids(self) -> Tuple[str, ...]:
        return tuple(u.id for u in self.universes)

    def get(self, universe_id: str) -> Universe:
        for universe in self.universes:
            if universe.id == universe_id:
                return universe
        raise StopRule(f"Unknown universe: {universe_id}")

    def children(self, universe_id: str) -> Tuple[Universe, ...]:
        return tuple(u for u in self.universes if u.parent_id == universe_id)

    def audit_for(self, universe_id: str) -> Tuple[AuditEntry, ...]:
        return tuple(e for e in self.audit_trail if e.universe_id == universe_id)

    # -------------------------------------------------------------------------
    # Structural changes
    # -------------------------------------------------------------------------

    def add(self, universe: Universe) -> Multiverse:
        """Register a universe. Its parent, when set, must already be held."""
        if universe.id in self.ids():
            raise StopRule(f"Duplicate universe id: {universe.id}")
        if universe.parent_id is not None and universe.parent_id not in self.ids():
            raise StopRule(f"Unknown parent universe: {universe.parent_id}")
        return replace(self, universes=self.universes + (universe,))

    def put(self, universe: Universe) -> Multiverse:
        """Replace a held universe with its next version (same id)."""
        self.get(universe.id)
        return replace(self, universes=tuple(
            universe if u.id == universe.id else u for u in self.universes))

    def record(self, entry: AuditEntry) -> Multiverse:
        return replace(self, audit_trail=self.audit_trail + (entry,))

    def destroy(self, universe_id: str) -> Multiverse:
        """Drop a universe. Its children are kept; their parent_id stays as history."""
        self.get(universe_id)
        return replace(self, universes=tuple(u for u in self.universes if u.id != universe_id))

    def _commit(self, universe: Universe, action: Any, payload: Dict[str, Any],
                outcome: Optional[str], at: int, audit_id: str) -> Tuple[Multiverse, Universe]:
        entry = create_audit_entry(universe.id, action, payload, outcome, at=at, entry_id=audit_id)
        return self.put(universe).record(entry), universe

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def create(self, label: str, parent_id: Optional[str] = None,
               policy: Optional[Policy] = None, at: Optional[int] = None,
               universe_id: Optional[str] = None) -> Tuple[Multiverse, Universe]:
        universe = create_universe(label, parent_id=parent_id, policy=policy,
                                   at=at, universe_id=universe_id)
        container = self.add(universe)
        entry = create_audit_entry(universe.id, ActionLabel.INIT, {"label": label},
                                   at=universe.created_at)
        return container.record(entry), universe

    def fork(self, universe_id: str, at_timestamp: Optional[int] = None,
             at: Optional[int] = None) -> Tuple[Multiverse, Universe]:
        """Fork at at_timestamp (defaults to the source's latest event)."""
        source = self.get(universe_id)
        if at_timestamp is None:
            at_timestamp = source.latest_event.at if source.timeline else now_ms()
        fork = fork_universe_at(source, at_timestamp, at=at)
        entry = create_audit_entry(source.id, "fork",
                                   {"fork_id": fork.id, "at_timestamp": at_timestamp},
                                   at=fork.created_at)
        return self.add(fork).record(entry), fork

    def reset(self, universe_id: str, at: Optional[int] = None) -> Tuple[Multiverse, Universe]:
        at = now_ms() if at is None else at
        universe = reset_universe(self.get(universe_id), at=at)
        return self._commit(universe, ActionLabel.RESET, {}, None, at, new_id())

    def inject_signal(self, universe_id: str, signal: Signal,
                      at: Optional[int] = None) -> Tuple[Multiverse, Universe]:
        at = now_ms() if at is None else at
        audit_id = new_id()
        universe = apply_signal(self.get(universe_id), signal,
                                AuditMeta(action=ActionLabel.INJECT, audit_id=audit_id), at=at)
        return self._commit(universe, "inject_signal", signal.to_dict(),
                            f"Score: {universe.trust_state.trust_score:.0f}", at, audit_id)

    def trust_collapse(self, universe_id: str,
                       at: Optional[int] = None) -> Tuple[Multiverse, Universe]:
        at = now_ms() if at is None else at
        audit_id = new_id()
        universe = trust_collapse(self.get(universe_id), audit_id, at=at)
        return self._commit(universe, ActionLabel.TRUST_COLLAPSE, {},
                            "Score forced to 0", at, audit_id)

    def fake_consensus(self, universe_id: str, count: int,
                       at: Optional[int] = None) -> Tuple[Multiverse, Universe]:
        at = now_ms() if at is None else at
        audit_id = new_id()
        universe = fake_consensus_injection(self.get(universe_id), count, audit_id, at=at)
        return self._commit(universe, ActionLabel.FAKE_CONSENSUS, {"count": count},
                            None, at, audit_id)

    def supervisor_override(self, universe_id: str, weight: float,
                            at: Optional[int] = None) -> Tuple[Multiverse, Universe]:
        at = now_ms() if at is None else at
        audit_id = new_id()
        universe = supervisor_override(self.get(universe_id), weight, audit_id, at=at)
        return self._commit(universe, ActionLabel.SUPERVISOR_OVERRIDE, {"weight": weight},
                            None, at, audit_id)

    def time_travel(self, universe_id: str, step: int,
                    at: Optional[int] = None) -> Tuple[Multiverse, Universe]:
        at = now_ms() if at is None else at
        universe = time_travel_to(self.get(universe_id), step)
        return self._commit(universe, "time_travel", {"step": step}, None, at, new_id())

    def debt_collection(self, universe_id: str,
                        at: Optional[int] = None) -> Tuple[Multiverse, Universe]:
        at = now_ms() if at is None else at
        audit_id = new_id()
        before = self.get(universe_id)
        universe = trust_debt_collection_event(before, audit_id, at=at)
        collected = before.trust_state.trust_score - universe.trust_state.trust_score
        return self._commit(universe, ActionLabel.DEBT_COLLECTION, {},
                            f"Debt: {collected:.1f}", at, audit_id)

    def run_preset(self, name: str, universe_id: str,
                   at: Optional[int] = None) -> Tuple[Multiverse, PresetResult]:
        """Run a chaos preset; the scripted fork joins the container."""
        if name not in PRESETS:
            raise StopRule(f"Unknown preset: {name}")
        at = now_ms() if at is None else at
        audit_id = new_id()
        result = PRESETS[name](self.get(universe_id), at=at, audit_id=audit_id)
        container = self
        for universe in result.universes:
            if universe.id not in container.ids():
                container = container.add(universe)
        entry = create_audit_entry(universe_id, f"preset_{name}",
                                   {"divergence_score": result.divergence_score},
                                   result.narrative, at=at, entry_id=audit_id)
        logger.debug(f"preset {name} on {universe_id}")
        return container.record(entry), result

    def break_multiverse(self, universe_id: str,
                         at: Optional[int] = None) -> Tuple[Multiverse, BreakResult]:
        """Run break_the_multiverse; all four forks join the container."""
        at = now_ms() if at is None else at
        audit_id = new_id()
        result = break_the_multiverse(self.get(universe_id), at=at, audit_id=audit_id)
        container = self
        # The rewound fork is the parent of the re-collapsed one, so order matters
        for universe in result.forks:
            container = container.add(universe)
        entry = create_audit_entry(universe_id, "break_multiverse",
                                   {"divergence_score": result.divergence_score},
                                   result.narrative, at=at, entry_id=audit_id)
        return container.record(entry), result


__all__ = [
    "Multiverse",
]
