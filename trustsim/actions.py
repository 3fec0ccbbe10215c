"""
trustsim/actions.py - Snapshot Action Executor

Turns a named lab action into exactly one Delta and commits it through
apply_delta. Every Delta built here carries action_type and actor in its
metadata; an action that cannot apply to the current snapshot becomes a
no-op Delta whose notes say why ("No effect: ...").

Timestamps are explicit: 'at' is the action time in epoch ms.
"""

import logging
from dataclasses import replace
from typing import Any, Dict, Optional, Tuple

from .chaos_presets import (
    FRAUD_BACKDATE_DAYS,
    FRAUD_SUPERVISOR_WEIGHT,
    GLASSDOOR_COUNT,
    GLASSDOOR_WEIGHT,
    ZOMBIE_SIGNAL_WEIGHT,
)
from .constants import MS_PER_DAY, SnapshotAction, SourceKind
from .reducer import apply_delta
from .types_domain import Delta, EngineContext, Signal, Snapshot

logger = logging.getLogger(__name__)

ACTOR = "lab"
INJECTED_PREFIX = "injected-"
INJECT_DEFAULT_WEIGHT = 2.0
BACKDATE_DEFAULT_DAYS = 30
FAKE_CONSENSUS_DEFAULT_COUNT = 3
FAKE_CONSENSUS_WEIGHT = 0.9
FRAUD_PEER_BACKDATE_DAYS = (30, 14)

NOTES = {
    SnapshotAction.INJECT_SIGNAL: "Inject signal",
    SnapshotAction.MUTATE_SIGNAL: "Mutate injected signals",
    SnapshotAction.BACKDATE_SIGNAL: "Backdate signals",
    SnapshotAction.DELETE_LAST_SIGNAL: "Delete last signal",
    SnapshotAction.TRUST_COLLAPSE: "Trust collapse",
    SnapshotAction.FAKE_CONSENSUS: "Fake consensus",
    SnapshotAction.CHAOS_GLASSDOOR: "Chaos: Glassdoor attack",
    SnapshotAction.CHAOS_ZOMBIE: "Chaos: Zombie startup",
    SnapshotAction.CHAOS_FRAUD: "Chaos: Perfect fraud",
    SnapshotAction.ADD_SIGNAL: "Add signal",
    SnapshotAction.REMOVE_SIGNAL: "Remove signal",
    SnapshotAction.SET_THRESHOLD: "Threshold override",
    SnapshotAction.BULK_DELTA: "Bulk delta",
}


def _meta(action: SnapshotAction, notes: str) -> Dict[str, Any]:
    return {"action_type": action.value, "actor": ACTOR, "notes": notes}


def no_effect_delta(action: SnapshotAction, at: int, reason: str) -> Delta:
    """Labelled Delta that changes no signals and no overrides."""
    return Delta(
        timestamp=at,
        metadata={"action_type": action.value, "actor": ACTOR,
                  "universe_id": None, "notes": f"No effect: {reason}"},
    )


# =============================================================================
# BUILDERS (None -> reason for no effect)
# =============================================================================

def _build(snapshot: Snapshot, action: SnapshotAction, at: int,
           params: Dict[str, Any]) -> Tuple[Optional[Delta], str]:
    signals = snapshot.signals
    meta = _meta(action, NOTES[action])

    if action == SnapshotAction.INJECT_SIGNAL:
        weight = params.get("weight")
        signal = Signal(f"{INJECTED_PREFIX}{at}-{len(signals)}", SourceKind.SUPERVISOR,
                        INJECT_DEFAULT_WEIGHT if weight is None else float(weight), at)
        return Delta(timestamp=at, added_signals=(signal,), metadata=meta), ""

    if action == SnapshotAction.MUTATE_SIGNAL:
        injected = [s for s in signals if s.id.startswith(INJECTED_PREFIX)]
        if not injected:
            return None, "no injected signals to mutate"
        mutated = tuple(replace(s, weight=s.weight + 1) for s in injected)
        return Delta(timestamp=at, added_signals=mutated, metadata=meta), ""

    if action == SnapshotAction.BACKDATE_SIGNAL:
        if not signals:
            return None, "no signals to backdate"
        days = params.get("days_back")
        shift = MS_PER_DAY * (BACKDATE_DEFAULT_DAYS if days is None else int(days))
        backdated = tuple(replace(s, timestamp=s.timestamp - shift) for s in signals)
        return Delta(timestamp=at, added_signals=backdated, metadata=meta), ""

    if action == SnapshotAction.DELETE_LAST_SIGNAL:
        if not signals:
            return None, "no signals to delete"
        return Delta(timestamp=at, removed_signal_ids=(signals[-1].id,), metadata=meta), ""

    if action == SnapshotAction.TRUST_COLLAPSE:
        return Delta(timestamp=at, removed_signal_ids=snapshot.signal_ids(),
                     threshold_override=0, metadata=meta), ""

    if action == SnapshotAction.FAKE_CONSENSUS:
        count = params.get("count")
        count = FAKE_CONSENSUS_DEFAULT_COUNT if count is None else max(0, int(count))
        if count == 0:
            return None, "consensus count is zero"
        fake = tuple(
            Signal(f"synthetic-{at}-{len(signals)}-{i}", SourceKind.SYNTHETIC,
                   FAKE_CONSENSUS_WEIGHT, at)
            for i in range(count)
        )
        return Delta(timestamp=at, added_signals=fake, metadata=meta), ""

    if action == SnapshotAction.CHAOS_GLASSDOOR:
        count = params.get("count")
        count = GLASSDOOR_COUNT if count is None else max(0, int(count))
        if count == 0:
            return None, "attack count is zero"
        attack = tuple(
            Signal(f"glassdoor-{at}-{i}", SourceKind.PEER, GLASSDOOR_WEIGHT, at - i * MS_PER_DAY)
            for i in range(count)
        )
        return Delta(timestamp=at, added_signals=attack, metadata=meta), ""

    if action == SnapshotAction.CHAOS_ZOMBIE:
        zombie = Signal(f"zombie-{at}", SourceKind.SUPERVISOR, ZOMBIE_SIGNAL_WEIGHT, at)
        return Delta(timestamp=at, added_signals=(zombie,),
                     removed_signal_ids=snapshot.signal_ids(),
                     threshold_override=0, metadata=meta), ""

    if action == SnapshotAction.CHAOS_FRAUD:
        fraud = (Signal(f"fraud-supervisor-{at}", SourceKind.SUPERVISOR,
                        FRAUD_SUPERVISOR_WEIGHT, at - FRAUD_BACKDATE_DAYS * MS_PER_DAY),)
        fraud += tuple(
            Signal(f"fraud-peer-{i + 1}-{at}", SourceKind.PEER, 1.0, at - days * MS_PER_DAY)
            for i, days in enumerate(FRAUD_PEER_BACKDATE_DAYS)
        )
        return Delta(timestamp=at, added_signals=fraud, metadata=meta), ""

    if action == SnapshotAction.ADD_SIGNAL:
        signal = params.get("signal")
        if signal is None:
            return None, "no signal given"
        return Delta(timestamp=at, added_signals=(signal,), metadata=meta), ""

    if action == SnapshotAction.REMOVE_SIGNAL:
        signal_id = params.get("signal_id")
        if signal_id not in snapshot.signal_ids():
            return None, f"signal {signal_id!r} not present"
        return Delta(timestamp=at, removed_signal_ids=(signal_id,), metadata=meta), ""

    if action == SnapshotAction.SET_THRESHOLD:
        value = params.get("value")
        if value is None:
            return None, "no threshold value given"
        meta["notes"] = f"Threshold override: {value}"
        return Delta(timestamp=at, threshold_override=float(value), metadata=meta), ""

    # BULK_DELTA
    delta = params.get("delta")
    if delta is None:
        return None, "no delta given"
    merged = dict(delta.metadata)
    merged.setdefault("action_type", action.value)
    merged.setdefault("actor", ACTOR)
    timestamp = delta.timestamp if delta.timestamp is not None else at
    return replace(delta, timestamp=timestamp, metadata=merged), ""


# =============================================================================
# CORE FUNCTIONS
# =============================================================================

def action_to_delta(snapshot: Snapshot, action: SnapshotAction, at: int,
                    **params: Any) -> Delta:
    """
    Build the single Delta for a named action. Does not apply it.

    Args:
        snapshot: Current state (read-only)
        action: SnapshotAction or its string value
        at: Action time in epoch ms; becomes the Delta timestamp
        **params: weight, days_back, count, signal, signal_id, value, delta

    Returns:
        Delta; a labelled no-op Delta when the action cannot apply
    """
    action = SnapshotAction(action)
    delta, reason = _build(snapshot, action, int(at), params)
    if delta is None:
        logger.debug(f"action {action.value}: no effect ({reason})")
        return no_effect_delta(action, int(at), reason)
    return delta


def execute_action(snapshot: Snapshot, action: SnapshotAction, at: int,
                   context: Optional[EngineContext] = None,
                   **params: Any) -> Snapshot:
    """Build the action's Delta and commit it. Always returns a new Snapshot."""
    delta = action_to_delta(snapshot, action, at, **params)
    result = apply_delta(snapshot, delta, context)
    logger.debug(f"action {SnapshotAction(action).value} at {at}: "
                 f"trust {snapshot.trust_score} -> {result.trust_score}")
    return result


__all__ = [
    "action_to_delta",
    "execute_action",
    "no_effect_delta",
]
