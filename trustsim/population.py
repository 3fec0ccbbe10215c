"""
trustsim/population.py - Population Engine

Aggregates a list of Snapshots into cross-entity metrics in one pass:
mean/variance of trust, tail risk, concentration risk, fragility
amplification and compliance-breach probability.

Empty input returns an all-zero PopulationMetrics; nothing divides by zero.
"""

import math
from typing import Sequence

import numpy as np

from .constants import COMPLIANCE_BREACH_LINE, SCORE_MAX, TAIL_FRACTION
from .numeric import finite
from .types_domain import Population, Snapshot
from .types_result import PopulationMetrics


def _column(snapshots: Sequence[Snapshot], field: str, missing: float) -> np.ndarray:
    """
    One metric across all snapshots as a float array.

    Snapshots without engine outputs (the zero seed) contribute 'missing'.
    """
    values = []
    for snap in snapshots:
        outputs = snap.engine_outputs
        raw = getattr(outputs, field) if outputs is not None else missing
        values.append(finite(raw, missing))
    return np.asarray(values, dtype=np.float64)


def compute_population_metrics(snapshots: Sequence[Snapshot]) -> PopulationMetrics:
    """
    Compute population-level metrics.

    Args:
        snapshots: Read-only list of Snapshots

    Returns:
        PopulationMetrics (all zero for an empty list)
    """
    n = len(snapshots)
    if n == 0:
        return PopulationMetrics()

    trust = np.asarray([finite(s.trust_score, 0.0) for s in snapshots], dtype=np.float64)
    mean_trust = float(trust.mean())
    variance_trust = float(trust.var()) if n > 1 else 0.0

    # Bottom decile by score, never fewer than one entity
    k = max(1, int(math.floor(n * TAIL_FRACTION)))
    tail = np.sort(trust)[:k]
    tail_risk = SCORE_MAX - float(tail.mean())

    top = float(trust.max())
    concentration_risk = (1.0 - mean_trust / top) * 100.0 if top > 0 else 0.0

    fragility = _column(snapshots, "fragility_score", 0.0)
    variance_fragility = float(fragility.var()) if n > 1 else 0.0
    fragility_amplification = float(fragility.mean()) * (1.0 + min(1.0, variance_fragility / 100.0))

    compliance = _column(snapshots, "compliance_score", float(SCORE_MAX))
    breach_probability = float(np.count_nonzero(compliance < COMPLIANCE_BREACH_LINE)) / n

    return PopulationMetrics(
        count=n,
        mean_trust=mean_trust,
        variance_trust=variance_trust,
        tail_risk=tail_risk,
        concentration_risk=concentration_risk,
        fragility_amplification=fragility_amplification,
        compliance_breach_probability=breach_probability,
    )


def population_metrics(population: Population) -> PopulationMetrics:
    """Convenience wrapper over a Population grouping."""
    return compute_population_metrics(population.snapshots())


__all__ = [
    "compute_population_metrics",
    "population_metrics",
]
