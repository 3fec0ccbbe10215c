"""
trustsim/types_result.py - Result Containers

Immutable outputs of the population engine, generator, presets and analyzers.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Tuple

from .types_domain import Population
from .types_universe import Universe


@dataclass(frozen=True)
class PopulationMetrics:
    """Cross-entity aggregates. All zero for an empty population."""
    count: int = 0
    mean_trust: float = 0.0
    variance_trust: float = 0.0
    tail_risk: float = 0.0
    concentration_risk: float = 0.0
    fragility_amplification: float = 0.0
    compliance_breach_probability: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class MetricChange:
    before: int
    after: int
    delta: int


@dataclass(frozen=True)
class SnapshotDiff:
    """Per-metric before/after between two snapshots."""
    changes: Dict[str, MetricChange]
    signals_added: Tuple[str, ...]
    signals_removed: Tuple[str, ...]

    def changed(self) -> Tuple[str, ...]:
        return tuple(name for name, c in self.changes.items() if c.delta != 0)


@dataclass(frozen=True)
class GenerationResult:
    population: Population
    targets: Tuple[int, ...]
    seed: int
    receipt: Dict[str, Any]


@dataclass(frozen=True)
class PresetResult:
    """Outcome of one chaos preset."""
    name: str
    universes: Tuple[Universe, ...]
    narrative: str
    divergence_score: float


@dataclass(frozen=True)
class CounterfactualResult:
    current_score: float
    threshold: float
    above_threshold: bool
    signal_count: int
    supervisor_weight_sum: float
    conditions: Tuple[str, ...]
    alternatives: Tuple[str, ...]
    narrative: str


@dataclass(frozen=True)
class AutopsyResult:
    """Timeline indices, or None when the pattern never occurred."""
    collapse_point: Optional[int]
    first_mistake: Optional[int]
    last_intervention_point: Optional[int]
    narrative: str


@dataclass(frozen=True)
class BreakResult:
    source: Universe
    forks: Tuple[Universe, ...]
    divergence_score: float
    narrative: str


@dataclass(frozen=True)
class UniverseDiff:
    """How two universes differ at their current positions."""
    trust_delta: float
    confidence_delta: float
    signals_only_in_a: Tuple[str, ...]
    signals_only_in_b: Tuple[str, ...]
    common_ancestor_id: Optional[str]
    timeline_lengths: Tuple[int, int]


__all__ = [
    "PopulationMetrics",
    "MetricChange",
    "SnapshotDiff",
    "GenerationResult",
    "PresetResult",
    "CounterfactualResult",
    "AutopsyResult",
    "BreakResult",
    "UniverseDiff",
]
