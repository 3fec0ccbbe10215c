"""
trustsim/types_domain.py - Domain Value Types

Signal, Delta, Policy, EngineOutputs, Snapshot and the population grouping.
Frozen dataclasses, no scoring behavior.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterator, Optional, Tuple

from .constants import (
    DEFAULT_DECAY_RATE,
    DEFAULT_RISK_TOLERANCE,
    DEFAULT_SUPERVISOR_WEIGHT,
    DEFAULT_THRESHOLD,
    SourceKind,
)


# =============================================================================
# READ-ONLY METADATA
# =============================================================================

def freeze(value: Any) -> Any:
    """Recursively convert dicts to FrozenMap and lists/sets to tuples/frozensets."""
    if isinstance(value, FrozenMap):
        return value
    if isinstance(value, Mapping):
        return FrozenMap(value)
    if isinstance(value, (list, tuple)):
        return tuple(freeze(v) for v in value)
    if isinstance(value, (set, frozenset)):
        return frozenset(freeze(v) for v in value)
    return value


def thaw(value: Any) -> Any:
    """Inverse of freeze: plain dicts and lists, for JSON and callers that edit."""
    if isinstance(value, Mapping):
        return {k: thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [thaw(v) for v in value]
    return value


class FrozenMap(Mapping):
    """
    Hashable, read-only mapping.

    Holds Snapshot/Delta metadata and audit payloads so frozen dataclasses
    stay hashable and nothing can be edited through them. Compares equal to
    a dict with the same items.
    """
    __slots__ = ("_data", "_hash")

    def __init__(self, data: Optional[Mapping] = None) -> None:
        self._data = {k: freeze(v) for k, v in dict(data or {}).items()}
        self._hash: Optional[int] = None

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __hash__(self) -> int:
        if self._hash is None:
            self._hash = hash(frozenset(self._data.items()))
        return self._hash

    def __repr__(self) -> str:
        return f"FrozenMap({self._data!r})"

    def to_dict(self) -> Dict[str, Any]:
        return thaw(self)


# =============================================================================
# SIGNAL
# =============================================================================

@dataclass(frozen=True)
class Signal:
    """
    One weighted observation about an entity.

    Identified by id for removal. Timestamps are epoch milliseconds and are
    always supplied by the caller.
    """
    id: str
    source: SourceKind
    weight: float
    timestamp: int

    def __post_init__(self) -> None:
        if not isinstance(self.source, SourceKind):
            object.__setattr__(self, "source", SourceKind(self.source))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source.value,
            "weight": self.weight,
            "timestamp": self.timestamp,
        }


# =============================================================================
# DELTA
# =============================================================================

@dataclass(frozen=True)
class IntentModifiers:
    """Per-transition knobs. None means 'use the neutral/policy value'."""
    human_error_rate: Optional[float] = None
    intent_bias: Optional[float] = None
    decay_multiplier: Optional[float] = None
    supervisor_weight_override: Optional[float] = None


@dataclass(frozen=True)
class Delta:
    """
    The only input accepted by the reducer.

    Transient: history stores the resulting Snapshot, never the Delta.
    """
    timestamp: Optional[int] = None
    added_signals: Tuple[Signal, ...] = field(default_factory=tuple)
    removed_signal_ids: Tuple[str, ...] = field(default_factory=tuple)
    score_override: Optional[float] = None
    threshold_override: Optional[float] = None
    intent: IntentModifiers = field(default_factory=IntentModifiers)
    notes: Optional[str] = None
    metadata: Mapping[str, Any] = field(default_factory=FrozenMap)

    def __post_init__(self) -> None:
        if not isinstance(self.added_signals, tuple):
            object.__setattr__(self, "added_signals", tuple(self.added_signals))
        if not isinstance(self.removed_signal_ids, tuple):
            object.__setattr__(self, "removed_signal_ids", tuple(self.removed_signal_ids))
        if self.intent is None:
            object.__setattr__(self, "intent", IntentModifiers())
        object.__setattr__(self, "metadata", freeze(self.metadata or {}))


# =============================================================================
# POLICY
# =============================================================================

@dataclass(frozen=True)
class Policy:
    """Employer-owned scoring parameters. Read-only input to the engines."""
    threshold: float = DEFAULT_THRESHOLD
    decay_rate: float = DEFAULT_DECAY_RATE
    supervisor_weight: float = DEFAULT_SUPERVISOR_WEIGHT
    risk_tolerance: float = DEFAULT_RISK_TOLERANCE

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class EngineContext:
    """What the engines may read besides the snapshot and delta."""
    policy: Policy = field(default_factory=Policy)


# =============================================================================
# HUMAN FACTORS
# =============================================================================

@dataclass(frozen=True)
class HumanFactor:
    """One proxy measurement with its plain-language reading."""
    name: str
    proxy: float
    explanation: str
    signals_contributed: Tuple[str, ...]
    effects_applied: Tuple[str, ...]


@dataclass(frozen=True)
class HumanFactorModifiers:
    """
    Multiplicative/additive inputs fed back into the engines.

    The last three are reported for audit only; no engine formula reads them.
    """
    confidence_stability: float = 1.0
    risk_volatility_reduction: float = 0.0
    fragility_adjustment: float = 0.0
    trust_debt_multiplier: float = 1.0
    compliance_risk_multiplier: float = 1.0
    decay_reduction_multiplier: float = 1.0
    blast_radius_multiplier: float = 1.0
    productivity_multiplier: float = 1.0


@dataclass(frozen=True)
class HumanFactorAudit:
    relational_trust_proxy: float
    collaboration_stability_proxy: float
    ethical_friction_proxy: float
    social_gravity_proxy: float
    workplace_friction_index: float
    contributing_signal_ids: Tuple[str, ...]


@dataclass(frozen=True)
class HumanFactorInsights:
    factors: Tuple[HumanFactor, ...]
    modifiers: HumanFactorModifiers
    audit: HumanFactorAudit

    @property
    def insights(self) -> Tuple[str, ...]:
        """Flat list of explanations, one per factor."""
        return tuple(f.explanation for f in self.factors)


# =============================================================================
# ENGINE OUTPUTS + SNAPSHOT
# =============================================================================

@dataclass(frozen=True)
class EngineOutputs:
    """All seven metrics from one reducer pass. Always populated together."""
    trust_score: int
    confidence_score: int
    risk_score: int
    fragility_score: int
    trust_debt: int
    compliance_score: int
    culture_impact_score: int
    human_factor_insights: HumanFactorInsights

    def scores(self) -> Dict[str, int]:
        """Numeric fields only, for diffing and persistence."""
        return {
            "trust_score": self.trust_score,
            "confidence_score": self.confidence_score,
            "risk_score": self.risk_score,
            "fragility_score": self.fragility_score,
            "trust_debt": self.trust_debt,
            "compliance_score": self.compliance_score,
            "culture_impact_score": self.culture_impact_score,
        }


@dataclass(frozen=True)
class Snapshot:
    """
    Complete, self-contained scoring state.

    Never mutated; every transition produces a new Snapshot. engine_outputs is
    None only on the zero snapshot.
    """
    timestamp: int
    signals: Tuple[Signal, ...] = field(default_factory=tuple)
    trust_score: int = 0
    confidence_score: int = 0
    network_strength: int = 0
    metadata: Mapping[str, Any] = field(default_factory=FrozenMap)
    engine_outputs: Optional[EngineOutputs] = None

    def __post_init__(self) -> None:
        if not isinstance(self.signals, tuple):
            object.__setattr__(self, "signals", tuple(self.signals))
        object.__setattr__(self, "network_strength", len(self.signals))
        object.__setattr__(self, "metadata", freeze(self.metadata or {}))

    def signal_ids(self) -> Tuple[str, ...]:
        return tuple(s.id for s in self.signals)


# =============================================================================
# POPULATION GROUPING
# =============================================================================

@dataclass(frozen=True)
class Employer:
    id: str
    name: str
    policy: Policy = field(default_factory=Policy)


@dataclass(frozen=True)
class Employee:
    id: str
    name: str
    role: str
    snapshot: Snapshot


@dataclass(frozen=True)
class Population:
    """Pure grouping; no lifecycle of its own."""
    employees: Tuple[Employee, ...]
    employer: Employer

    def __post_init__(self) -> None:
        if not isinstance(self.employees, tuple):
            object.__setattr__(self, "employees", tuple(self.employees))

    def snapshots(self) -> Tuple[Snapshot, ...]:
        return tuple(e.snapshot for e in self.employees)


__all__ = [
    "FrozenMap",
    "freeze",
    "thaw",
    "Signal",
    "IntentModifiers",
    "Delta",
    "Policy",
    "EngineContext",
    "HumanFactor",
    "HumanFactorModifiers",
    "HumanFactorAudit",
    "HumanFactorInsights",
    "EngineOutputs",
    "Snapshot",
    "Employer",
    "Employee",
    "Population",
]
