"""
trustsim/generator.py - Synthetic Population Generator

Builds fake employees whose signal histories, when run through the reducer,
land each trust score inside the requested target range.

Deterministic: all choices come from random.Random(seed), timestamps are
offsets from an explicit base. Same parameters + same seed -> same output.
"""

import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .constants import (
    DEFAULT_DECAY_RATE,
    DEFAULT_EPOCH_MS,
    DEFAULT_RISK_TOLERANCE,
    DEFAULT_SUPERVISOR_WEIGHT,
    DEFAULT_THRESHOLD,
    GENERATOR_MAX_COUNT,
    GENERATOR_MAX_REVIEWS,
    GENERATOR_MIN_COUNT,
    GENERATOR_TOLERANCE,
    MS_PER_DAY,
    SCORE_MAX,
    SCORE_MIN,
    TRUST_SCALE,
    SourceKind,
)
from .numeric import clamp, finite
from .receipts import emit_receipt
from .reducer import apply_delta, create_initial_snapshot
from .types_domain import (
    Delta,
    Employee,
    Employer,
    EngineContext,
    Policy,
    Population,
    Signal,
)
from .types_result import GenerationResult

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_MIX = {
    SourceKind.PEER: 0.6,
    SourceKind.SUPERVISOR: 0.3,
    SourceKind.MANAGER: 0.1,
}

DEFAULT_ROLES = ("Associate", "Technician", "Coordinator", "Specialist", "Lead")


# =============================================================================
# PARAMETERS
# =============================================================================

@dataclass(frozen=True)
class EmployerParams:
    """Employer identity plus the policy fields the reducer reads."""
    id: str = "employer-synthetic"
    name: str = "Synthetic Employer"
    threshold: float = DEFAULT_THRESHOLD
    decay_rate: float = DEFAULT_DECAY_RATE
    supervisor_weight: float = DEFAULT_SUPERVISOR_WEIGHT
    risk_tolerance: float = DEFAULT_RISK_TOLERANCE

    def policy(self) -> Policy:
        return Policy(
            threshold=self.threshold,
            decay_rate=self.decay_rate,
            supervisor_weight=self.supervisor_weight,
            risk_tolerance=self.risk_tolerance,
        )


@dataclass(frozen=True)
class EmployeeParams:
    """
    Templates and targets for generated employees.

    name_template is formatted with index (1-based). source_mix maps a
    SourceKind to a relative selection weight.
    """
    name_template: str = "Employee {index}"
    role_templates: Tuple[str, ...] = DEFAULT_ROLES
    trust_score_min: int = 50
    trust_score_max: int = 90
    review_count: int = 5
    source_mix: Dict[SourceKind, float] = field(default_factory=lambda: dict(DEFAULT_SOURCE_MIX))
    max_gap_days: int = 30


# =============================================================================
# HELPERS
# =============================================================================

def _target_bounds(params: EmployeeParams) -> Tuple[int, int]:
    """Clamp both ends to the score scale; swap if reversed."""
    low = int(clamp(finite(params.trust_score_min, SCORE_MIN), SCORE_MIN, SCORE_MAX))
    high = int(clamp(finite(params.trust_score_max, SCORE_MAX), SCORE_MIN, SCORE_MAX))
    if low > high:
        low, high = high, low
    return low, high


def _mix(params: EmployeeParams) -> Tuple[List[SourceKind], List[float]]:
    """Sorted kinds + non-negative weights. A degenerate mix falls back to all-peer."""
    by_kind: Dict[SourceKind, float] = {}
    for key, weight in params.source_mix.items():
        by_kind[SourceKind(key)] = max(0.0, finite(weight, 0.0))
    kinds = sorted((k for k, w in by_kind.items() if w > 0), key=lambda k: k.value)
    if not kinds:
        return [SourceKind.PEER], [1.0]
    return kinds, [by_kind[k] for k in kinds]


def _signal_weights(rng: random.Random, sources: List[SourceKind], target: int,
                    supervisor_weight: float) -> List[float]:
    """
    Jittered weights scaled so the reducer's trust sum hits target exactly.

    With zero human-error rate the trust engine computes
    10 * sum(weight_i * multiplier_i), so one scale factor solves it.
    """
    raw = [rng.uniform(0.5, 1.5) for _ in sources]
    multipliers = [supervisor_weight if s == SourceKind.SUPERVISOR else 1.0 for s in sources]
    effective = sum(r * m for r, m in zip(raw, multipliers))
    if effective <= 0:
        # Only reachable with a non-positive supervisor weight
        raw = [1.0 if s != SourceKind.SUPERVISOR else 0.0 for s in sources]
        effective = sum(raw) or 1.0
    scale = (target / TRUST_SCALE) / effective
    return [r * scale for r in raw]


# =============================================================================
# CORE FUNCTION: generate_population
# =============================================================================

def generate_population(employer_params: Optional[EmployerParams] = None,
                        employee_params: Optional[EmployeeParams] = None,
                        count: int = GENERATOR_MIN_COUNT,
                        seed: int = 0,
                        base_timestamp: int = DEFAULT_EPOCH_MS) -> GenerationResult:
    """
    Generate a seeded synthetic population.

    Args:
        employer_params: Employer identity and policy
        employee_params: Templates, target range, review count, source mix
        count: Number of employees, clamped to [10, 1000]
        seed: RNG seed (the only source of variation)
        base_timestamp: Epoch ms of the first generated signal

    Returns:
        GenerationResult with the population, per-employee targets and receipt
    """
    employer_params = employer_params or EmployerParams()
    employee_params = employee_params or EmployeeParams()

    requested = int(finite(count, GENERATOR_MIN_COUNT))
    n = int(clamp(requested, GENERATOR_MIN_COUNT, GENERATOR_MAX_COUNT))
    if n != requested:
        logger.warning(f"generate_population: count {requested} clamped to {n}")

    low, high = _target_bounds(employee_params)
    reviews = int(clamp(finite(employee_params.review_count, 1), 1, GENERATOR_MAX_REVIEWS))
    max_gap = max(1, int(finite(employee_params.max_gap_days, 1)))
    kinds, mix_weights = _mix(employee_params)
    roles = tuple(employee_params.role_templates) or DEFAULT_ROLES

    policy = employer_params.policy()
    context = EngineContext(policy=policy)
    supervisor_weight = finite(policy.supervisor_weight, DEFAULT_SUPERVISOR_WEIGHT)
    rng = random.Random(seed)

    employees = []
    targets = []
    for i in range(n):
        emp_id = f"emp-{seed}-{i:04d}"
        target = rng.randint(low, high)
        sources = rng.choices(kinds, weights=mix_weights, k=reviews)
        weights = _signal_weights(rng, sources, target, supervisor_weight)

        ts = int(base_timestamp)
        signals = []
        for j, (source, weight) in enumerate(zip(sources, weights)):
            if j:
                ts += rng.randint(1, max_gap) * MS_PER_DAY
            signals.append(Signal(id=f"{emp_id}-sig-{j}", source=source, weight=weight, timestamp=ts))

        snapshot = apply_delta(
            create_initial_snapshot(int(base_timestamp)),
            Delta(timestamp=ts, added_signals=tuple(signals), metadata={"synthetic": True}),
            context,
        )
        employees.append(Employee(
            id=emp_id,
            name=employee_params.name_template.format(index=i + 1),
            role=roles[i % len(roles)],
            snapshot=snapshot,
        ))
        targets.append(target)

    population = Population(
        employees=tuple(employees),
        employer=Employer(id=employer_params.id, name=employer_params.name, policy=policy),
    )

    misses = sum(
        1 for e in employees
        if not (low - GENERATOR_TOLERANCE <= e.snapshot.trust_score <= high + GENERATOR_TOLERANCE)
    )
    receipt = emit_receipt("population_generation", {
        "tenant_id": employer_params.id,
        "seed": seed,
        "count": n,
        "review_count": reviews,
        "target_range": [low, high],
        "tolerance": GENERATOR_TOLERANCE,
        "out_of_range": misses,
        "policy": policy.to_dict(),
    })
    logger.debug(f"generate_population seed={seed} count={n} range=[{low},{high}] misses={misses}")

    return GenerationResult(
        population=population,
        targets=tuple(targets),
        seed=seed,
        receipt=receipt,
    )


__all__ = [
    "EmployerParams",
    "EmployeeParams",
    "DEFAULT_SOURCE_MIX",
    "generate_population",
]
