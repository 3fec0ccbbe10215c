"""
trustsim/human_factors.py - Human-Factor Insight Module

Derives auditable proxy measurements from observable signal timing and
composition only: counts, timestamps, source kind, weight. No free text and
no inferred traits. The modifiers returned here are the one place soft
interpretation feeds back into hard scoring, so every modifier is a plain
function of the five proxies.

'now' is always an explicit argument.
"""

import math
from typing import List, Sequence, Tuple

from .constants import (
    MS_PER_DAY,
    RECENCY_WINDOW_DAYS,
    SIGNAL_AGE_WINDOW_DAYS,
    SUPERVISOR_DELAY_WINDOW_DAYS,
    SUPERVISOR_SPREAD_WINDOW_DAYS,
    TIMELINE_SPAN_WINDOW_DAYS,
    SourceKind,
)
from .numeric import clamp, finite, mean, population_variance
from .types_domain import (
    HumanFactor,
    HumanFactorAudit,
    HumanFactorInsights,
    HumanFactorModifiers,
    Signal,
)


# =============================================================================
# HELPERS
# =============================================================================

def _by_source(signals: Sequence[Signal], source: SourceKind) -> List[Signal]:
    return [s for s in signals if s.source == source]


def _sorted_timestamps(signals: Sequence[Signal]) -> List[float]:
    return sorted(finite(s.timestamp, 0.0) for s in signals)


def _days(ms: float) -> float:
    return ms / MS_PER_DAY


def _factor(name: str, proxy: float, explanation: str,
            signals: List[str], effects: List[str]) -> HumanFactor:
    return HumanFactor(
        name=name,
        proxy=round(proxy, 2),
        explanation=explanation,
        signals_contributed=tuple(signals),
        effects_applied=tuple(effects),
    )


# =============================================================================
# PROXY 1: relational trust
# =============================================================================

def relational_trust(signals: Sequence[Signal], now: int) -> Tuple[float, HumanFactor]:
    """
    Blend of peer-signal volume and recency of the latest peer signal.

    proxy = min(1, (peers / 10) * 0.6 + recency * 0.4)
    recency = 1 - days_since_latest_peer / 365, clamped to [0, 1]
    """
    peers = _by_source(signals, SourceKind.PEER)
    count = len(peers)
    if count:
        latest = max(finite(p.timestamp, 0.0) for p in peers)
        days_since = _days(now - latest)
    else:
        days_since = float(RECENCY_WINDOW_DAYS)
    recency = clamp(1 - days_since / RECENCY_WINDOW_DAYS, 0.0, 1.0)
    proxy = min(1.0, (count / 10) * 0.6 + recency * 0.4)

    contributed = []
    if count > 0:
        contributed.append(f"{count} peer signal(s)")
        contributed.append(f"latest peer signal {round(days_since)} days ago")
    if count > 1:
        contributed.append("cross-reviewer engagement")

    effects = []
    if proxy > 0.5:
        effects = [
            "increases confidence stability",
            "lowers fragility",
        ]

    if count == 0:
        explanation = "No peer re-engagement signals yet."
    elif proxy > 0.6:
        explanation = "Peers repeatedly re-engage; recent and multiple peer signals."
    elif proxy > 0.3:
        explanation = "Some repeat peer engagement; recency or volume could strengthen stability."
    else:
        explanation = "Limited peer re-engagement observed."

    return proxy, _factor(
        "Relational Trust", proxy, explanation,
        contributed or ["No peer signals yet"],
        effects or ["No effects until peer signals are present"],
    )


# =============================================================================
# PROXY 2: collaboration stability
# =============================================================================

def collaboration_stability(signals: Sequence[Signal]) -> Tuple[float, HumanFactor]:
    """
    Inverse of normalized variance of inter-signal time gaps.

    proxy = 1 - min(1, stddev(gaps) / mean(gaps)); fewer than two signals -> 1.
    """
    if len(signals) < 2:
        return 1.0, _factor(
            "Collaboration Stability", 1.0,
            "Fewer than two signals; stability not yet measurable.",
            ["Single or no signal"],
            ["No effects until multiple signals"],
        )

    ts = _sorted_timestamps(signals)
    gaps = [b - a for a, b in zip(ts, ts[1:])]
    mean_gap = mean(gaps)
    if mean_gap > 0:
        volatility = min(1.0, math.sqrt(population_variance(gaps)) / mean_gap)
    else:
        # All signals share one timestamp: perfectly regular.
        volatility = 0.0
    proxy = max(0.0, 1.0 - volatility)

    effects = []
    if proxy > 0.5:
        effects = ["reduces downside risk", "smooths trust fluctuations"]

    if proxy > 0.7:
        explanation = "Signals arrive at a steady cadence."
    elif proxy > 0.4:
        explanation = "Some variation in signal timing."
    else:
        explanation = "Signal timing uneven; higher volatility."

    return proxy, _factor(
        "Collaboration Stability", proxy, explanation,
        ["signal timing gap variance", f"{len(signals)} signals over time"],
        effects or ["Limited effect with current volatility"],
    )


# =============================================================================
# PROXY 3: ethical friction (observable delay only)
# =============================================================================

def ethical_friction(signals: Sequence[Signal]) -> Tuple[float, HumanFactor]:
    """
    Spread between earliest and latest supervisor signal, plus the delay from
    the first signal of any kind to the first supervisor signal.

    proxy = min(1, 0.7 * min(1, spread/180d) + 0.3 * min(1, delay/180d))
    """
    supervisors = _by_source(signals, SourceKind.SUPERVISOR)
    if not supervisors:
        return 0.0, _factor(
            "Ethical Friction", 0.0, "No supervisor verifications yet.",
            ["No supervisor verifications"],
            ["No effects until supervisor signals are present"],
        )

    sup_ts = _sorted_timestamps(supervisors)
    spread_days = _days(sup_ts[-1] - sup_ts[0])
    first_any = _sorted_timestamps(signals)[0]
    delay_days = max(0.0, _days(sup_ts[0] - first_any))

    proxy = min(1.0, 0.7 * min(1.0, spread_days / SUPERVISOR_SPREAD_WINDOW_DAYS)
                + 0.3 * min(1.0, delay_days / SUPERVISOR_DELAY_WINDOW_DAYS))

    contributed = [
        f"{len(supervisors)} supervisor verification(s)",
        f"span {round(spread_days)} days",
        f"first supervisor signal {round(delay_days)} days after first signal",
    ]
    if spread_days > 60:
        contributed.append("delayed supervisor verification")

    effects = []
    if proxy > 0.3:
        effects = [
            "increases compliance risk",
            "increases trust debt accumulation",
            "raises fragility",
        ]

    if spread_days > 90 or delay_days > 90:
        explanation = "Long observable delay between supervisor verifications."
    elif spread_days > 30 or delay_days > 30:
        explanation = "Moderate spread in supervisor verification timing."
    else:
        explanation = "Supervisor verifications arrived in a tight window."

    return proxy, _factor(
        "Ethical Friction", proxy, explanation, contributed,
        effects or ["Low friction with current timing"],
    )


# =============================================================================
# PROXY 4: social gravity
# =============================================================================

def social_gravity(signals: Sequence[Signal]) -> Tuple[float, HumanFactor]:
    """
    Blend of total signal count and supervisor share of total weight.

    proxy = min(1, (n / 20) * 0.5 + supervisor_weight_share * 0.5)
    """
    n = len(signals)
    if n == 0:
        return 0.0, _factor(
            "Social Gravity", 0.0, "No network signals yet.",
            ["No signals"], ["No effects"],
        )

    supervisor_weight = sum(finite(s.weight, 0.0) for s in signals
                            if s.source == SourceKind.SUPERVISOR)
    total_weight = sum(finite(s.weight, 0.0) for s in signals)
    share = clamp(supervisor_weight / total_weight, 0.0, 1.0) if total_weight > 0 else 0.0
    proxy = min(1.0, (n / 20) * 0.5 + share * 0.5)

    contributed = [f"network strength: {n} signal(s)", "supervisor weight share"]
    effects = []
    if proxy > 0.3:
        effects = ["widens downstream impact of trust changes"]

    if proxy > 0.5:
        explanation = "Network amplifies downstream impact; strong supervisor-weighted endorsement."
    elif proxy > 0.2:
        explanation = "Some network effect; supervisor weight present."
    else:
        explanation = "Limited network or supervisor signals."

    return proxy, _factor(
        "Social Gravity", proxy, explanation, contributed,
        effects or ["Minimal downstream impact with current network"],
    )


# =============================================================================
# PROXY 5: workplace friction index
# =============================================================================

def workplace_friction(signals: Sequence[Signal], now: int) -> Tuple[float, HumanFactor]:
    """
    Blend of total timeline span and age of the oldest signal.

    proxy = min(1, 0.5 * min(1, span/365d) + 0.5 * min(1, oldest_age/730d))
    """
    if len(signals) < 2:
        return 0.0, _factor(
            "Workplace Friction Index", 0.0, "Not enough signals to estimate friction.",
            ["Insufficient signals"], ["No effects"],
        )

    ts = _sorted_timestamps(signals)
    span_days = _days(ts[-1] - ts[0])
    oldest_age_days = max(0.0, _days(now - ts[0]))
    proxy = min(1.0, 0.5 * min(1.0, span_days / TIMELINE_SPAN_WINDOW_DAYS)
                + 0.5 * min(1.0, oldest_age_days / SIGNAL_AGE_WINDOW_DAYS))

    contributed = ["signal spread", "signal age"]
    if proxy > 0.5:
        contributed.append("stale signals")

    if proxy > 0.6:
        explanation = "Signal history is spread out and older."
    elif proxy > 0.3:
        explanation = "Some spread and age in signal history."
    else:
        explanation = "Signals recent and clustered; low friction."

    return proxy, _factor(
        "Workplace Friction Index", proxy, explanation, contributed,
        ["informational only; does not change trust score"],
    )


# =============================================================================
# CORE FUNCTION: compute_human_factor_insights
# =============================================================================

def compute_human_factor_insights(signals: Sequence[Signal], now: int) -> HumanFactorInsights:
    """
    Compute all five proxies and the engine modifiers.

    Args:
        signals: Signals of the provisional snapshot
        now: Evaluation time in epoch ms (explicit, never read from a clock)

    Returns:
        HumanFactorInsights with factors, modifiers and audit block
    """
    now = int(finite(now, 0.0))

    rt, rt_factor = relational_trust(signals, now)
    cs, cs_factor = collaboration_stability(signals)
    ef, ef_factor = ethical_friction(signals)
    sg, sg_factor = social_gravity(signals)
    wf, wf_factor = workplace_friction(signals, now)

    modifiers = HumanFactorModifiers(
        confidence_stability=0.85 + rt * 0.3,
        risk_volatility_reduction=cs * 0.2,
        fragility_adjustment=ef * 15 - rt * 10 - cs * 5,
        trust_debt_multiplier=0.9 + ef * 0.4,
        compliance_risk_multiplier=0.9 + ef * 0.3,
        decay_reduction_multiplier=0.9 + rt * 0.2,
        blast_radius_multiplier=0.8 + sg * 0.4,
        productivity_multiplier=1 - wf * 0.25,
    )

    audit = HumanFactorAudit(
        relational_trust_proxy=rt_factor.proxy,
        collaboration_stability_proxy=cs_factor.proxy,
        ethical_friction_proxy=ef_factor.proxy,
        social_gravity_proxy=sg_factor.proxy,
        workplace_friction_index=wf_factor.proxy,
        contributing_signal_ids=tuple(s.id for s in signals),
    )

    return HumanFactorInsights(
        factors=(rt_factor, cs_factor, ef_factor, sg_factor, wf_factor),
        modifiers=modifiers,
        audit=audit,
    )


__all__ = [
    "relational_trust",
    "collaboration_stability",
    "ethical_friction",
    "social_gravity",
    "workplace_friction",
    "compute_human_factor_insights",
]
