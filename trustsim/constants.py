"""
trustsim/constants.py - Kernel Constants and Closed Vocabularies

Source kinds, timeline action labels, decisions and tuning constants.
Centralized for tuning. Pure data, no behavior.
"""

from enum import Enum


# =============================================================================
# CLOSED VOCABULARIES
# =============================================================================

class SourceKind(str, Enum):
    """Who produced a signal."""
    PEER = "peer"
    SUPERVISOR = "supervisor"
    MANAGER = "manager"
    SYNTHETIC = "synthetic"
    SELF = "self"
    EXTERNAL = "external"


class ActionLabel(str, Enum):
    """Action recorded on every timeline event. Closed set."""
    INIT = "init"
    RESET = "reset"
    SIGNAL = "signal"
    INJECT = "inject"
    TRUST_COLLAPSE = "trust_collapse"
    FAKE_CONSENSUS = "fake_consensus"
    SUPERVISOR_OVERRIDE = "supervisor_override"
    DEBT_COLLECTION = "debt_collection"


class SnapshotAction(str, Enum):
    """Named lab action that becomes exactly one Delta. Closed set."""
    INJECT_SIGNAL = "inject_signal"
    MUTATE_SIGNAL = "mutate_signal"
    BACKDATE_SIGNAL = "backdate_signal"
    DELETE_LAST_SIGNAL = "delete_last_signal"
    TRUST_COLLAPSE = "trust_collapse"
    FAKE_CONSENSUS = "fake_consensus"
    CHAOS_GLASSDOOR = "chaos_glassdoor"
    CHAOS_ZOMBIE = "chaos_zombie"
    CHAOS_FRAUD = "chaos_fraud"
    ADD_SIGNAL = "add_signal"
    REMOVE_SIGNAL = "remove_signal"
    SET_THRESHOLD = "set_threshold"
    BULK_DELTA = "bulk_delta"


class Decision(str, Enum):
    """Hiring-style outcome derived from a snapshot and a policy."""
    PASS = "PASS"
    REVIEW = "REVIEW"
    FAIL = "FAIL"


# Actions the autopsy treats as scripted corrections
CORRECTIVE_ACTIONS = frozenset({
    ActionLabel.SUPERVISOR_OVERRIDE,
    ActionLabel.DEBT_COLLECTION,
    ActionLabel.RESET,
})


# =============================================================================
# SCALE
# =============================================================================

SCORE_MIN = 0
SCORE_MAX = 100
MS_PER_DAY = 24 * 60 * 60 * 1000

# Fixed epoch for generated data (2023-11-14T22:13:20Z). Keeps generation replayable.
DEFAULT_EPOCH_MS = 1_700_000_000_000


# =============================================================================
# POLICY DEFAULTS
# =============================================================================

DEFAULT_THRESHOLD = 60
DEFAULT_DECAY_RATE = 0.0
DEFAULT_SUPERVISOR_WEIGHT = 1.5
DEFAULT_RISK_TOLERANCE = 40


# =============================================================================
# ENGINE CONSTANTS
# =============================================================================

TRUST_SCALE = 10.0               # weighted signal sum -> score points
NOISE_MODULUS = 233280           # deterministic noise period
NOISE_TS_FACTOR = 9301
NOISE_INDEX_FACTOR = 49297

CONFIDENCE_VOLUME_SATURATION = 10    # signals for full volume credit
CONFIDENCE_DIVERSITY_SATURATION = 4  # distinct source kinds for full diversity credit
CONFIDENCE_VOLUME_POINTS = 70.0
CONFIDENCE_DIVERSITY_POINTS = 30.0

RISK_VARIANCE_SCALE = 100.0
RISK_VARIANCE_CAP = 50.0

FRAGILITY_TRUST_FACTOR = 0.5
FRAGILITY_CONCENTRATION_POINTS = 30.0
FRAGILITY_VARIANCE_SCALE = 10.0

COMPLIANCE_GAP_FACTOR = 2.0

CULTURE_VOLUME_SATURATION = 10
CULTURE_VOLUME_POINTS = 50.0
CULTURE_BALANCE_POINTS = 50.0


# =============================================================================
# HUMAN FACTOR WINDOWS (days)
# =============================================================================

RECENCY_WINDOW_DAYS = 365
SUPERVISOR_SPREAD_WINDOW_DAYS = 180
SUPERVISOR_DELAY_WINDOW_DAYS = 180
TIMELINE_SPAN_WINDOW_DAYS = 365
SIGNAL_AGE_WINDOW_DAYS = 730


# =============================================================================
# POPULATION
# =============================================================================

TAIL_FRACTION = 0.10
COMPLIANCE_BREACH_LINE = 60


# =============================================================================
# GENERATOR BOUNDS
# =============================================================================

GENERATOR_MIN_COUNT = 10
GENERATOR_MAX_COUNT = 1000
GENERATOR_MAX_REVIEWS = 50
GENERATOR_TOLERANCE = 1


# =============================================================================
# MULTIVERSE
# =============================================================================

DEBT_STEP_THRESHOLD = 5        # single-step increase that accrues debt
DEBT_ACCRUAL_RATE = 0.1
CONSENSUS_SIGNAL_WEIGHT = 1.0
COLLAPSE_LINE = 20             # autopsy collapse point
MISTAKE_DROP = 15              # autopsy first-mistake drop


__all__ = [
    "SourceKind",
    "ActionLabel",
    "SnapshotAction",
    "Decision",
    "CORRECTIVE_ACTIONS",
    "SCORE_MIN",
    "SCORE_MAX",
    "MS_PER_DAY",
    "DEFAULT_EPOCH_MS",
    "DEFAULT_THRESHOLD",
    "DEFAULT_DECAY_RATE",
    "DEFAULT_SUPERVISOR_WEIGHT",
    "DEFAULT_RISK_TOLERANCE",
    "TRUST_SCALE",
    "NOISE_MODULUS",
    "NOISE_TS_FACTOR",
    "NOISE_INDEX_FACTOR",
    "CONFIDENCE_VOLUME_SATURATION",
    "CONFIDENCE_DIVERSITY_SATURATION",
    "CONFIDENCE_VOLUME_POINTS",
    "CONFIDENCE_DIVERSITY_POINTS",
    "RISK_VARIANCE_SCALE",
    "RISK_VARIANCE_CAP",
    "FRAGILITY_TRUST_FACTOR",
    "FRAGILITY_CONCENTRATION_POINTS",
    "FRAGILITY_VARIANCE_SCALE",
    "COMPLIANCE_GAP_FACTOR",
    "CULTURE_VOLUME_SATURATION",
    "CULTURE_VOLUME_POINTS",
    "CULTURE_BALANCE_POINTS",
    "RECENCY_WINDOW_DAYS",
    "SUPERVISOR_SPREAD_WINDOW_DAYS",
    "SUPERVISOR_DELAY_WINDOW_DAYS",
    "TIMELINE_SPAN_WINDOW_DAYS",
    "SIGNAL_AGE_WINDOW_DAYS",
    "TAIL_FRACTION",
    "COMPLIANCE_BREACH_LINE",
    "GENERATOR_MIN_COUNT",
    "GENERATOR_MAX_COUNT",
    "GENERATOR_MAX_REVIEWS",
    "GENERATOR_TOLERANCE",
    "DEBT_STEP_THRESHOLD",
    "DEBT_ACCRUAL_RATE",
    "CONSENSUS_SIGNAL_WEIGHT",
    "COLLAPSE_LINE",
    "MISTAKE_DROP",
]
