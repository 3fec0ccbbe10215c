"""
trustsim - Trust Simulation Kernel

Public API: deterministic signal scoring, population metrics, synthetic
populations, and branching multiverse timelines.
Flat, focused files. One file = one responsibility.
"""

# =============================================================================
# TYPES (Dataclasses)
# =============================================================================
from .types_domain import (
    FrozenMap,
    Signal,
    IntentModifiers,
    Delta,
    Policy,
    EngineContext,
    HumanFactor,
    HumanFactorModifiers,
    HumanFactorAudit,
    HumanFactorInsights,
    EngineOutputs,
    Snapshot,
    Employer,
    Employee,
    Population,
)
from .types_universe import TrustState, TimelineEvent, AuditMeta, AuditEntry, Universe
from .types_result import (
    PopulationMetrics,
    MetricChange,
    SnapshotDiff,
    GenerationResult,
    PresetResult,
    CounterfactualResult,
    AutopsyResult,
    BreakResult,
    UniverseDiff,
)

# =============================================================================
# CONSTANTS + RECEIPTS
# =============================================================================
from .constants import SourceKind, ActionLabel, SnapshotAction, Decision, CORRECTIVE_ACTIONS
from .receipts import dual_hash, emit_receipt, merkle, StopRule

# =============================================================================
# SCORING
# =============================================================================
from .human_factors import compute_human_factor_insights
from .engines import (
    trust_score,
    confidence_score,
    risk_score,
    fragility_score,
    trust_debt_score,
    compliance_score,
    culture_impact_score,
)
from .reducer import apply_delta, create_initial_snapshot, replay, diff_snapshots, decide
from .actions import action_to_delta, execute_action

# =============================================================================
# POPULATION
# =============================================================================
from .population import compute_population_metrics, population_metrics
from .generator import EmployerParams, EmployeeParams, generate_population

# =============================================================================
# MULTIVERSE
# =============================================================================
from .multiverse import (
    create_universe,
    fork_universe_at,
    reset_universe,
    apply_signal,
    trust_collapse,
    fake_consensus_injection,
    supervisor_override,
    time_travel_to,
    compute_trust_debt,
    compute_fragility,
    trust_debt_collection_event,
    create_audit_entry,
    diff_universes,
    timeline_digest,
)
from .chaos_presets import (
    PRESETS,
    glassdoor_attack,
    zombie_startup,
    perfect_fraud,
    mass_layoff_shock,
    ai_reference_flood,
    run_preset,
)
from .counterfactual import run_counterfactual, run_trust_autopsy, break_the_multiverse
from .lab import Multiverse

# =============================================================================
# CONFIG
# =============================================================================
from .config_schema import KernelConfig, ConfigProvenance, load as load_config

__version__ = "1.0.0"

__all__ = [
    # Types
    "FrozenMap", "Signal", "IntentModifiers", "Delta", "Policy", "EngineContext",
    "HumanFactor", "HumanFactorModifiers", "HumanFactorAudit", "HumanFactorInsights",
    "EngineOutputs", "Snapshot", "Employer", "Employee", "Population",
    "TrustState", "TimelineEvent", "AuditMeta", "AuditEntry", "Universe",
    "PopulationMetrics", "MetricChange", "SnapshotDiff", "GenerationResult",
    "PresetResult", "CounterfactualResult", "AutopsyResult", "BreakResult", "UniverseDiff",
    # Constants + receipts
    "SourceKind", "ActionLabel", "SnapshotAction", "Decision", "CORRECTIVE_ACTIONS",
    "dual_hash", "emit_receipt", "merkle", "StopRule",
    # Scoring
    "compute_human_factor_insights",
    "trust_score", "confidence_score", "risk_score", "fragility_score",
    "trust_debt_score", "compliance_score", "culture_impact_score",
    "apply_delta", "create_initial_snapshot", "replay", "diff_snapshots", "decide",
    "action_to_delta", "execute_action",
    # Population
    "compute_population_metrics", "population_metrics",
    "EmployerParams", "EmployeeParams", "generate_population",
    # Multiverse
    "create_universe", "fork_universe_at", "reset_universe", "apply_signal",
    "trust_collapse", "fake_consensus_injection", "supervisor_override",
    "time_travel_to", "compute_trust_debt", "compute_fragility",
    "trust_debt_collection_event", "create_audit_entry",
    "diff_universes", "timeline_digest",
    "PRESETS", "glassdoor_attack", "zombie_startup", "perfect_fraud",
    "mass_layoff_shock", "ai_reference_flood", "run_preset",
    "run_counterfactual", "run_trust_autopsy", "break_the_multiverse",
    "Multiverse",
    # Config
    "KernelConfig", "ConfigProvenance", "load_config",
]
