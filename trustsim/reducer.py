"""
trustsim/reducer.py - Snapshot State Transition

apply_delta is the single entry point that moves one Snapshot to the next.
Stages are strictly ordered and none may be skipped:

    1. signal removals, then additions (provisional snapshot)
    2. human-factor insights + modifiers
    3. trust score (or the delta's override)
    4. confidence, risk, fragility, trust debt, compliance, culture
    5. attach EngineOutputs, return the new Snapshot

The previous Snapshot is never mutated.
"""

import logging
from typing import Iterable, List, Optional, Tuple

from .constants import Decision
from .engines import (
    compliance_score,
    confidence_score,
    culture_impact_score,
    fragility_score,
    resolve_threshold,
    risk_score,
    trust_debt_score,
    trust_score,
)
from .human_factors import compute_human_factor_insights
from .numeric import clamp_score, finite, optional_finite
from .types_domain import (
    Delta,
    EngineContext,
    EngineOutputs,
    Policy,
    Signal,
    Snapshot,
)
from .types_result import MetricChange, SnapshotDiff

logger = logging.getLogger(__name__)


# =============================================================================
# ZERO SNAPSHOT
# =============================================================================

def create_initial_snapshot(timestamp: int = 0) -> Snapshot:
    """The bare seed: no signals, zero scores, no engine outputs."""
    return Snapshot(timestamp=timestamp)


# =============================================================================
# STAGE 1: signal set
# =============================================================================

def merge_signals(signals: Iterable[Signal], removed_ids: Iterable[str],
                  added: Iterable[Signal]) -> Tuple[Signal, ...]:
    """
    Removals first, then additions.

    An added signal whose id is already present replaces it in place so the
    order stays stable for replay.
    """
    removed = set(removed_ids)
    merged: List[Signal] = [s for s in signals if s.id not in removed]
    positions = {s.id: i for i, s in enumerate(merged)}
    for signal in added:
        if signal.id in positions:
            merged[positions[signal.id]] = signal
        else:
            positions[signal.id] = len(merged)
            merged.append(signal)
    return tuple(merged)


# =============================================================================
# CORE FUNCTION: apply_delta
# =============================================================================

def apply_delta(snapshot: Snapshot, delta: Delta,
                context: Optional[EngineContext] = None) -> Snapshot:
    """
    Run all seven engines over snapshot + delta.

    Args:
        snapshot: Previous state (read-only)
        delta: Pending change
        context: Engine context carrying the employer policy

    Returns:
        New Snapshot with EngineOutputs attached
    """
    context = context or EngineContext()
    timestamp = delta.timestamp if delta.timestamp is not None else snapshot.timestamp

    # Stage 1
    signals = merge_signals(snapshot.signals, delta.removed_signal_ids, delta.added_signals)
    provisional = Snapshot(timestamp=timestamp, signals=signals, metadata=snapshot.metadata)

    # Stage 2
    insights = compute_human_factor_insights(provisional.signals, timestamp)
    mods = insights.modifiers

    # Stage 3
    override = optional_finite(delta.score_override)
    if override is not None:
        trust = clamp_score(override)
    else:
        trust = trust_score(provisional, delta, context)

    # Stage 4
    confidence = confidence_score(provisional, delta, context, mods)
    risk = risk_score(provisional, delta, context, trust, mods)
    fragility = fragility_score(provisional, delta, context, trust, mods)
    debt = trust_debt_score(provisional, delta, context, trust, confidence, mods)
    compliance = compliance_score(provisional, delta, context, trust, mods)
    culture = culture_impact_score(provisional, delta, context)

    # Stage 5
    outputs = EngineOutputs(
        trust_score=trust,
        confidence_score=confidence,
        risk_score=risk,
        fragility_score=fragility,
        trust_debt=debt,
        compliance_score=compliance,
        culture_impact_score=culture,
        human_factor_insights=insights,
    )

    metadata = dict(snapshot.metadata)
    metadata.update(delta.metadata)
    if delta.notes is not None:
        metadata["notes"] = delta.notes

    logger.debug(
        f"apply_delta ts={timestamp} signals={len(signals)} "
        f"trust={trust} confidence={confidence} risk={risk}"
    )

    return Snapshot(
        timestamp=timestamp,
        signals=signals,
        trust_score=trust,
        confidence_score=confidence,
        metadata=metadata,
        engine_outputs=outputs,
    )


# =============================================================================
# REPLAY + DIFF
# =============================================================================

def replay(deltas: Iterable[Delta], context: Optional[EngineContext] = None,
           initial: Optional[Snapshot] = None) -> Tuple[Snapshot, ...]:
    """
    Rebuild snapshot history from an ordered delta log.

    Same policy, same deltas, same timestamps -> identical EngineOutputs.
    The initial snapshot is not included in the returned history.
    """
    current = initial if initial is not None else create_initial_snapshot()
    history = []
    for delta in deltas:
        current = apply_delta(current, delta, context)
        history.append(current)
    return tuple(history)


def _scores(snapshot: Snapshot) -> dict:
    if snapshot.engine_outputs is None:
        return {
            "trust_score": snapshot.trust_score,
            "confidence_score": snapshot.confidence_score,
            "risk_score": 0,
            "fragility_score": 0,
            "trust_debt": 0,
            "compliance_score": 0,
            "culture_impact_score": 0,
        }
    return snapshot.engine_outputs.scores()


def diff_snapshots(before: Snapshot, after: Snapshot) -> SnapshotDiff:
    """Before/after/delta for every metric plus signal-set changes."""
    a, b = _scores(before), _scores(after)
    changes = {name: MetricChange(before=a[name], after=b[name], delta=b[name] - a[name])
               for name in a}
    before_ids, after_ids = set(before.signal_ids()), set(after.signal_ids())
    return SnapshotDiff(
        changes=changes,
        signals_added=tuple(i for i in after.signal_ids() if i not in before_ids),
        signals_removed=tuple(i for i in before.signal_ids() if i not in after_ids),
    )


# =============================================================================
# DECISION
# =============================================================================

def decide(snapshot: Snapshot, policy: Optional[Policy] = None) -> Decision:
    """
    PASS when trust meets the threshold and risk is within tolerance,
    FAIL when trust misses the threshold, REVIEW otherwise.
    """
    policy = policy or Policy()
    context = EngineContext(policy=policy)
    threshold = resolve_threshold(Delta(), context)
    if snapshot.trust_score < threshold:
        return Decision.FAIL
    risk = snapshot.engine_outputs.risk_score if snapshot.engine_outputs else 0
    if risk <= finite(policy.risk_tolerance, 0.0):
        return Decision.PASS
    return Decision.REVIEW


__all__ = [
    "create_initial_snapshot",
    "merge_signals",
    "apply_delta",
    "replay",
    "diff_snapshots",
    "decide",
]
