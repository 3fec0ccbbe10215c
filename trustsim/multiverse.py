"""
trustsim/multiverse.py - Multiverse Engine

Wraps trust state into Universes with an append-only timeline: create, fork,
reset, time travel, and a fixed vocabulary of scripted actions (collapse,
fake consensus, supervisor override, debt collection).

Every operation returns a new Universe. Prior events are shared structurally
(tuples of frozen events) so a fork costs its fork point, not full history.

Timestamps: every operation takes an explicit 'at'. The wall clock is read
only when the caller omits it.
"""

import logging
import time
import uuid
from dataclasses import replace
from typing import Any, Dict, Optional, Sequence

from .constants import (
    CONSENSUS_SIGNAL_WEIGHT,
    DEBT_ACCRUAL_RATE,
    DEBT_STEP_THRESHOLD,
    SCORE_MAX,
    ActionLabel,
    SourceKind,
)
from .numeric import finite
from .receipts import canonical_json, dual_hash, merkle
from .reducer import apply_delta
from .types_domain import Delta, EngineContext, Policy, Signal, Snapshot
from .types_result import UniverseDiff
from .types_universe import AuditEntry, AuditMeta, TimelineEvent, TrustState, Universe

logger = logging.getLogger(__name__)

EMPTY_STATE = TrustState()


def now_ms() -> int:
    """Wall clock in epoch ms. Only used when a caller omits 'at'."""
    return int(time.time() * 1000)


def new_id() -> str:
    return str(uuid.uuid4())


def _resolve_at(at: Optional[int]) -> int:
    return now_ms() if at is None else int(at)


def _append(universe: Universe, event: TimelineEvent) -> Universe:
    return replace(universe, timeline=universe.timeline + (event,), trust_state=event.state)


# =============================================================================
# TRUST DEBT + FRAGILITY
# =============================================================================

def compute_trust_debt(timeline: Sequence[TimelineEvent]) -> float:
    """
    Sum of (curr - prev) * 0.1 over every step that rose by more than 5 points.

    Capped at 100.
    """
    debt = 0.0
    for prev, curr in zip(timeline, timeline[1:]):
        rise = finite(curr.state.trust_score, 0.0) - finite(prev.state.trust_score, 0.0)
        if rise > DEBT_STEP_THRESHOLD:
            debt += rise * DEBT_ACCRUAL_RATE
    return min(float(SCORE_MAX), debt)


def compute_fragility(state: TrustState) -> float:
    """min(100, |score - 50| * 0.5 + signal_count * 2); no signals -> 0."""
    n = len(state.signals)
    if n == 0:
        return 0.0
    score = finite(state.trust_score, 0.0)
    return min(float(SCORE_MAX), abs(score - 50) * 0.5 + n * 2)


# =============================================================================
# CREATE / FORK / RESET
# =============================================================================

def create_universe(label: str, parent_id: Optional[str] = None,
                    policy: Optional[Policy] = None,
                    initial_state: Optional[TrustState] = None,
                    forked_at: Optional[int] = None,
                    at: Optional[int] = None,
                    universe_id: Optional[str] = None) -> Universe:
    """
    New Universe with a single INIT event.

    Args:
        label: Display label
        parent_id: None for a root universe
        policy: Scoring policy (defaults to Policy())
        initial_state: Starting trust state (defaults to zero state)
        forked_at: Fork timestamp, set only for forks
        at: Creation time in epoch ms
        universe_id: Caller-supplied id, else uuid4

    Returns:
        Universe
    """
    at = _resolve_at(at)
    state = initial_state if initial_state is not None else EMPTY_STATE
    return Universe(
        id=universe_id or new_id(),
        label=label,
        policy=policy or Policy(),
        timeline=(TimelineEvent(at=at, state=state, action=ActionLabel.INIT),),
        trust_state=state,
        created_at=at,
        parent_id=parent_id,
        forked_at=forked_at,
    )


def fork_universe_at(universe: Universe, at_timestamp: int,
                     at: Optional[int] = None,
                     universe_id: Optional[str] = None) -> Universe:
    """
    Brand-new Universe seeded from the most recent event at or before
    at_timestamp, or the oldest event when none qualifies.

    The source is never modified.
    """
    source_state = universe.trust_state
    if universe.timeline:
        chosen = universe.timeline[0]
        found = False
        for event in universe.timeline:
            if event.at <= at_timestamp and (not found or event.at >= chosen.at):
                chosen = event
                found = True
        source_state = chosen.state

    fork = create_universe(
        f"{universe.label} (fork)",
        parent_id=universe.id,
        policy=universe.policy,
        initial_state=source_state,
        forked_at=at_timestamp,
        at=at,
        universe_id=universe_id,
    )
    logger.debug(f"fork {universe.id} -> {fork.id} at {at_timestamp}")
    return fork


def reset_universe(universe: Universe, at: Optional[int] = None) -> Universe:
    """Replace the timeline with one RESET event at zero state. Identity and policy kept."""
    event = TimelineEvent(at=_resolve_at(at), state=EMPTY_STATE, action=ActionLabel.RESET)
    return replace(universe, timeline=(event,), trust_state=EMPTY_STATE)


# =============================================================================
# SIGNALS
# =============================================================================

def apply_signal(universe: Universe, signal: Signal,
                 audit: Optional[AuditMeta] = None,
                 at: Optional[int] = None) -> Universe:
    """
    Append one signal, rescored through the reducer with the universe policy.

    The event is labelled with audit.action (SIGNAL when no audit is given).
    """
    at = _resolve_at(at)
    previous = Snapshot(timestamp=at, signals=universe.trust_state.signals)
    snapshot = apply_delta(
        previous,
        Delta(timestamp=at, added_signals=(signal,)),
        EngineContext(policy=universe.policy),
    )
    action = audit.action if audit is not None else ActionLabel.SIGNAL
    audit_id = audit.audit_id if audit is not None else None

    state = TrustState(
        trust_score=float(snapshot.trust_score),
        confidence_score=float(snapshot.confidence_score),
        signals=snapshot.signals,
    )
    provisional = TimelineEvent(at=at, state=state, action=action, audit_id=audit_id)
    state = replace(
        state,
        trust_debt=compute_trust_debt(universe.timeline + (provisional,)),
        trust_fragility=compute_fragility(state),
    )
    return _append(universe, replace(provisional, state=state))


def trust_collapse(universe: Universe, audit_id: Optional[str] = None,
                   at: Optional[int] = None) -> Universe:
    """Force zero signals and zero scores."""
    event = TimelineEvent(at=_resolve_at(at), state=EMPTY_STATE,
                          action=ActionLabel.TRUST_COLLAPSE, audit_id=audit_id)
    return _append(universe, event)


def fake_consensus_injection(universe: Universe, count: int,
                             audit_id: Optional[str] = None,
                             at: Optional[int] = None) -> Universe:
    """Append 'count' synthetic peer signals of fixed weight, one event each."""
    t = _resolve_at(at)
    batch = len(universe.timeline)
    meta = AuditMeta(action=ActionLabel.FAKE_CONSENSUS, audit_id=audit_id)
    result = universe
    for i in range(max(0, int(finite(count, 0)))):
        signal = Signal(
            id=f"consensus-{t}-{batch}-{i}",
            source=SourceKind.PEER,
            weight=CONSENSUS_SIGNAL_WEIGHT,
            timestamp=t - i * 1000,
        )
        result = apply_signal(result, signal, meta, at=t)
    return result


def supervisor_override(universe: Universe, weight: float,
                        audit_id: Optional[str] = None,
                        at: Optional[int] = None,
                        timestamp: Optional[int] = None) -> Universe:
    """
    Append one supervisor signal of the given weight.

    timestamp sets the signal's own time (e.g. backdated); defaults to 'at'.
    """
    t = _resolve_at(at)
    signal = Signal(
        id=f"override-{t}-{len(universe.timeline)}",
        source=SourceKind.SUPERVISOR,
        weight=weight,
        timestamp=t if timestamp is None else int(timestamp),
    )
    meta = AuditMeta(action=ActionLabel.SUPERVISOR_OVERRIDE, audit_id=audit_id)
    return apply_signal(universe, signal, meta, at=t)


# =============================================================================
# TIME TRAVEL + DEBT COLLECTION
# =============================================================================

def time_travel_to(universe: Universe, timeline_index: int) -> Universe:
    """
    Move the current state to timeline[index] without touching the timeline.

    Out-of-range index -> the input universe, unchanged.
    """
    if not isinstance(timeline_index, int) or not 0 <= timeline_index < len(universe.timeline):
        return universe
    return replace(universe, trust_state=universe.timeline[timeline_index].state)


def trust_debt_collection_event(universe: Universe, audit_id: Optional[str] = None,
                                at: Optional[int] = None) -> Universe:
    """Subtract the accrued debt from the current score and append the event."""
    debt = compute_trust_debt(universe.timeline)
    current = universe.trust_state
    state = replace(
        current,
        trust_score=max(0.0, finite(current.trust_score, 0.0) - debt),
        trust_debt=0.0,
        trust_fragility=compute_fragility(current),
    )
    event = TimelineEvent(at=_resolve_at(at), state=state,
                          action=ActionLabel.DEBT_COLLECTION, audit_id=audit_id)
    logger.debug(f"debt collection on {universe.id}: {debt:.1f}")
    return _append(universe, event)


# =============================================================================
# AUDIT
# =============================================================================

def create_audit_entry(universe_id: str, action: str,
                       payload: Optional[Dict[str, Any]] = None,
                       outcome: Optional[str] = None,
                       at: Optional[int] = None,
                       entry_id: Optional[str] = None) -> AuditEntry:
    """Audit line with a dual-hash of its canonical payload."""
    payload = dict(payload or {})
    return AuditEntry(
        id=entry_id or new_id(),
        at=_resolve_at(at),
        universe_id=universe_id,
        action=action.value if isinstance(action, ActionLabel) else str(action),
        payload=payload,
        outcome=outcome,
        payload_hash=dual_hash(canonical_json(payload)),
    )


# =============================================================================
# COMPARISON
# =============================================================================

def diff_universes(a: Universe, b: Universe) -> UniverseDiff:
    """Differences between the current positions of two universes (b relative to a)."""
    ids_a = {s.id for s in a.trust_state.signals}
    ids_b = {s.id for s in b.trust_state.signals}

    if b.parent_id == a.id:
        ancestor = a.id
    elif a.parent_id == b.id:
        ancestor = b.id
    elif a.parent_id is not None and a.parent_id == b.parent_id:
        ancestor = a.parent_id
    else:
        ancestor = None

    return UniverseDiff(
        trust_delta=b.trust_state.trust_score - a.trust_state.trust_score,
        confidence_delta=b.trust_state.confidence_score - a.trust_state.confidence_score,
        signals_only_in_a=tuple(s.id for s in a.trust_state.signals if s.id not in ids_b),
        signals_only_in_b=tuple(s.id for s in b.trust_state.signals if s.id not in ids_a),
        common_ancestor_id=ancestor,
        timeline_lengths=(len(a.timeline), len(b.timeline)),
    )


def timeline_digest(universe: Universe) -> str:
    """Merkle root over the timeline events. Equal histories -> equal digest."""
    return merkle([event.to_dict() for event in universe.timeline])


__all__ = [
    "EMPTY_STATE",
    "now_ms",
    "new_id",
    "compute_trust_debt",
    "compute_fragility",
    "create_universe",
    "fork_universe_at",
    "reset_universe",
    "apply_signal",
    "trust_collapse",
    "fake_consensus_injection",
    "supervisor_override",
    "time_travel_to",
    "trust_debt_collection_event",
    "create_audit_entry",
    "diff_universes",
    "timeline_digest",
]
