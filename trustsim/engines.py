"""
trustsim/engines.py - The Seven Scoring Engines

Each engine is a pure function of the provisional snapshot, the pending delta,
the engine context and (where needed) metrics already computed in the same
pass. Each returns one integer in [0, 100].

Order of evaluation is owned by the reducer:
    trust -> confidence -> risk -> fragility -> trust_debt -> compliance -> culture

Malformed numbers never propagate. Non-finite weights count as 0, non-finite
modifiers fall back to their neutral value.
"""

from typing import Optional, Sequence

from .constants import (
    COMPLIANCE_GAP_FACTOR,
    CONFIDENCE_DIVERSITY_POINTS,
    CONFIDENCE_DIVERSITY_SATURATION,
    CONFIDENCE_VOLUME_POINTS,
    CONFIDENCE_VOLUME_SATURATION,
    CULTURE_BALANCE_POINTS,
    CULTURE_VOLUME_POINTS,
    CULTURE_VOLUME_SATURATION,
    DEFAULT_DECAY_RATE,
    DEFAULT_SUPERVISOR_WEIGHT,
    DEFAULT_THRESHOLD,
    FRAGILITY_CONCENTRATION_POINTS,
    FRAGILITY_TRUST_FACTOR,
    FRAGILITY_VARIANCE_SCALE,
    NOISE_INDEX_FACTOR,
    NOISE_MODULUS,
    NOISE_TS_FACTOR,
    RISK_VARIANCE_CAP,
    RISK_VARIANCE_SCALE,
    TRUST_SCALE,
    SourceKind,
)
from .numeric import clamp, clamp_score, finite, optional_finite, population_variance
from .types_domain import (
    Delta,
    EngineContext,
    HumanFactorModifiers,
    Signal,
    Snapshot,
)

_NEUTRAL = HumanFactorModifiers()


# =============================================================================
# SHARED INPUT RESOLUTION
# =============================================================================

def resolve_threshold(delta: Delta, context: EngineContext) -> float:
    """Delta override for this transition only, else policy threshold."""
    override = optional_finite(delta.threshold_override)
    if override is not None:
        return override
    return finite(context.policy.threshold, DEFAULT_THRESHOLD)


def resolve_human_error_rate(delta: Delta) -> float:
    return clamp(finite(delta.intent.human_error_rate, 0.0), 0.0, 1.0)


def resolve_decay(delta: Delta, context: EngineContext) -> float:
    """Intent decay multiplier, else 1 + policy decay rate. Never negative."""
    multiplier = optional_finite(delta.intent.decay_multiplier)
    if multiplier is None:
        multiplier = 1.0 + finite(context.policy.decay_rate, DEFAULT_DECAY_RATE)
    return max(0.0, multiplier)


def resolve_supervisor_weight(delta: Delta, context: EngineContext) -> float:
    override = optional_finite(delta.intent.supervisor_weight_override)
    if override is not None:
        return override
    return finite(context.policy.supervisor_weight, DEFAULT_SUPERVISOR_WEIGHT)


def signal_noise(timestamp: float, index: int, human_error_rate: float) -> float:
    """
    Deterministic damping term in [0, human_error_rate).

    A pure function of (timestamp, index, error rate) so replay is bit-exact.
    """
    ts = abs(int(finite(timestamp, 0.0)))
    phase = (ts * NOISE_TS_FACTOR + index * NOISE_INDEX_FACTOR) % NOISE_MODULUS
    return (phase / NOISE_MODULUS) * human_error_rate


def _weights(signals: Sequence[Signal]) -> list:
    return [finite(s.weight, 0.0) for s in signals]


def _mods(modifiers: Optional[HumanFactorModifiers]) -> HumanFactorModifiers:
    return modifiers if modifiers is not None else _NEUTRAL


# =============================================================================
# ENGINE 1: TrustScore
# =============================================================================

def trust_score(snapshot: Snapshot, delta: Delta, context: EngineContext) -> int:
    """
    Weighted sum of signal weights, scaled by 10 and clamped.

    Supervisor signals are multiplied by the supervisor weight, every signal by
    the intent bias, then damped by (1 - noise).
    """
    supervisor_weight = resolve_supervisor_weight(delta, context)
    bias = finite(delta.intent.intent_bias, 1.0)
    her = resolve_human_error_rate(delta)

    total = 0.0
    for index, signal in enumerate(snapshot.signals):
        weight = finite(signal.weight, 0.0)
        if signal.source == SourceKind.SUPERVISOR:
            weight *= supervisor_weight
        weight *= bias
        weight *= 1.0 - signal_noise(signal.timestamp, index, her)
        total += weight

    return clamp_score(total * TRUST_SCALE)


# =============================================================================
# ENGINE 2: Confidence
# =============================================================================

def confidence_score(snapshot: Snapshot, delta: Delta, context: EngineContext,
                     modifiers: Optional[HumanFactorModifiers] = None) -> int:
    """Volume credit plus source-diversity credit, reduced by human error rate."""
    mods = _mods(modifiers)
    count = len(snapshot.signals)
    kinds = len({s.source for s in snapshot.signals})

    volume = min(count / CONFIDENCE_VOLUME_SATURATION, 1.0) * CONFIDENCE_VOLUME_POINTS
    diversity = min(kinds / CONFIDENCE_DIVERSITY_SATURATION, 1.0) * CONFIDENCE_DIVERSITY_POINTS
    raw = (volume + diversity) * (1.0 - resolve_human_error_rate(delta))
    return clamp_score(raw * finite(mods.confidence_stability, 1.0))


# =============================================================================
# ENGINE 3: Risk
# =============================================================================

def risk_score(snapshot: Snapshot, delta: Delta, context: EngineContext,
               trust: int, modifiers: Optional[HumanFactorModifiers] = None) -> int:
    """Threshold gap plus a capped variance-of-weights penalty."""
    mods = _mods(modifiers)
    gap = max(0.0, resolve_threshold(delta, context) - trust)
    volatility = min(RISK_VARIANCE_CAP,
                     population_variance(_weights(snapshot.signals)) * RISK_VARIANCE_SCALE)
    reduction = clamp(finite(mods.risk_volatility_reduction, 0.0), 0.0, 1.0)
    return clamp_score((gap + volatility) * (1.0 - reduction))


# =============================================================================
# ENGINE 4: Fragility
# =============================================================================

def concentration(signals: Sequence[Signal]) -> float:
    """High when weights cluster tightly. No signals -> 0."""
    if not signals:
        return 0.0
    variance = population_variance(_weights(signals))
    return FRAGILITY_CONCENTRATION_POINTS / (1.0 + variance * FRAGILITY_VARIANCE_SCALE)


def fragility_score(snapshot: Snapshot, delta: Delta, context: EngineContext,
                    trust: int, modifiers: Optional[HumanFactorModifiers] = None) -> int:
    mods = _mods(modifiers)
    base = (100 - trust) * FRAGILITY_TRUST_FACTOR + concentration(snapshot.signals)
    adjusted = base * resolve_decay(delta, context) + finite(mods.fragility_adjustment, 0.0)
    return clamp_score(adjusted)


# =============================================================================
# ENGINE 5: TrustDebt
# =============================================================================

def trust_debt_score(snapshot: Snapshot, delta: Delta, context: EngineContext,
                     trust: int, confidence: int,
                     modifiers: Optional[HumanFactorModifiers] = None) -> int:
    """Trust accruing faster than evidence: (trust ratio - confidence ratio), floored at 0."""
    mods = _mods(modifiers)
    gap = max(0.0, trust / 100.0 - confidence / 100.0)
    multiplier = max(0.0, finite(mods.trust_debt_multiplier, 1.0))
    return clamp_score(gap * 100.0 * resolve_decay(delta, context) * multiplier)


# =============================================================================
# ENGINE 6: Compliance
# =============================================================================

def compliance_score(snapshot: Snapshot, delta: Delta, context: EngineContext,
                     trust: int, modifiers: Optional[HumanFactorModifiers] = None) -> int:
    mods = _mods(modifiers)
    gap = max(0.0, resolve_threshold(delta, context) - trust)
    divisor = finite(mods.compliance_risk_multiplier, 1.0)
    if divisor <= 0:
        divisor = 1.0
    return clamp_score((100.0 - COMPLIANCE_GAP_FACTOR * gap) / divisor)


# =============================================================================
# ENGINE 7: CultureImpact
# =============================================================================

def culture_impact_score(snapshot: Snapshot, delta: Delta, context: EngineContext) -> int:
    """Signal volume plus peer/supervisor balance. No signals -> 0."""
    count = len(snapshot.signals)
    if count == 0:
        return 0
    peers = sum(1 for s in snapshot.signals if s.source == SourceKind.PEER)
    supervisors = sum(1 for s in snapshot.signals if s.source == SourceKind.SUPERVISOR)
    volume = min(count / CULTURE_VOLUME_SATURATION, 1.0) * CULTURE_VOLUME_POINTS
    balance = (1.0 - abs(peers - supervisors) / count) * CULTURE_BALANCE_POINTS
    return clamp_score(volume + balance)


__all__ = [
    "resolve_threshold",
    "resolve_human_error_rate",
    "resolve_decay",
    "resolve_supervisor_weight",
    "signal_noise",
    "concentration",
    "trust_score",
    "confidence_score",
    "risk_score",
    "fragility_score",
    "trust_debt_score",
    "compliance_score",
    "culture_impact_score",
]
