"""
trustsim/chaos_presets.py - Chaos Preset Library

Named multi-step sequences of multiverse primitives reproducing canonical
adverse scenarios. Each preset forks the input, scripts the fork, and
returns (source, fork) with a narrative and a divergence score in [0, 1].

Presets compose primitives only; none computes a score of its own.
"""

import logging
from typing import Callable, Dict, Optional

from .constants import MS_PER_DAY, SCORE_MAX, ActionLabel, SourceKind
from .multiverse import (
    apply_signal,
    fake_consensus_injection,
    fork_universe_at,
    new_id,
    now_ms,
    supervisor_override,
    trust_collapse,
    trust_debt_collection_event,
)
from .numeric import clamp
from .types_domain import Signal
from .types_result import PresetResult
from .types_universe import AuditMeta, Universe

logger = logging.getLogger(__name__)

GLASSDOOR_COUNT = 5
GLASSDOOR_WEIGHT = -1.0
ZOMBIE_SIGNAL_WEIGHT = 0.5
FRAUD_SUPERVISOR_WEIGHT = 2.0
FRAUD_BACKDATE_DAYS = 60
FRAUD_CONSENSUS_COUNT = 3
FLOOD_CONSENSUS_COUNT = 25


def divergence(source: Universe, fork: Universe) -> float:
    """|score difference| / 100, clamped to [0, 1]."""
    gap = abs(fork.trust_state.trust_score - source.trust_state.trust_score)
    return clamp(gap / SCORE_MAX, 0.0, 1.0)


def _fork(universe: Universe, t: int) -> Universe:
    return fork_universe_at(universe, t, at=t)


def _result(name: str, source: Universe, fork: Universe, narrative: str) -> PresetResult:
    score = divergence(source, fork)
    logger.debug(f"preset {name}: {source.trust_state.trust_score} -> "
                 f"{fork.trust_state.trust_score} (divergence {score:.2f})")
    return PresetResult(name=name, universes=(source, fork), narrative=narrative,
                        divergence_score=score)


# =============================================================================
# PRESETS
# =============================================================================

def glassdoor_attack(universe: Universe, at: Optional[int] = None,
                     audit_id: Optional[str] = None) -> PresetResult:
    """Flood of negative peer signals."""
    t = now_ms() if at is None else int(at)
    meta = AuditMeta(action=ActionLabel.INJECT, audit_id=audit_id or new_id())
    fork = _fork(universe, t)
    for i in range(GLASSDOOR_COUNT):
        signal = Signal(id=f"glassdoor-{t}-{i}", source=SourceKind.PEER,
                        weight=GLASSDOOR_WEIGHT, timestamp=t + i)
        fork = apply_signal(fork, signal, meta, at=t + i)
    narrative = (
        f"Glassdoor attack: {GLASSDOOR_COUNT} negative peer signals landed at once. "
        f"Trust moved from {fork.timeline[0].state.trust_score:.0f} to "
        f"{fork.trust_state.trust_score:.0f}."
    )
    return _result("glassdoor_attack", universe, fork, narrative)


def zombie_startup(universe: Universe, at: Optional[int] = None,
                   audit_id: Optional[str] = None) -> PresetResult:
    """Forced collapse, then one weak supervisor signal."""
    t = now_ms() if at is None else int(at)
    audit_id = audit_id or new_id()
    fork = trust_collapse(_fork(universe, t), audit_id, at=t)
    fork = supervisor_override(fork, ZOMBIE_SIGNAL_WEIGHT, audit_id, at=t + 1)
    narrative = (
        "Zombie startup: trust collapsed to 0, then a single weak supervisor "
        f"signal brought it back to {fork.trust_state.trust_score:.0f}."
    )
    return _result("zombie_startup", universe, fork, narrative)


def perfect_fraud(universe: Universe, at: Optional[int] = None,
                  audit_id: Optional[str] = None) -> PresetResult:
    """Backdated strong supervisor signal plus injected consensus."""
    t = now_ms() if at is None else int(at)
    audit_id = audit_id or new_id()
    fork = supervisor_override(_fork(universe, t), FRAUD_SUPERVISOR_WEIGHT, audit_id,
                               at=t, timestamp=t - FRAUD_BACKDATE_DAYS * MS_PER_DAY)
    fork = fake_consensus_injection(fork, FRAUD_CONSENSUS_COUNT, audit_id, at=t + 1)
    narrative = (
        f"Perfect fraud: a supervisor signal backdated {FRAUD_BACKDATE_DAYS} days plus "
        f"{FRAUD_CONSENSUS_COUNT} consensus signals pushed trust to "
        f"{fork.trust_state.trust_score:.0f}."
    )
    return _result("perfect_fraud", universe, fork, narrative)


def mass_layoff_shock(universe: Universe, at: Optional[int] = None,
                      audit_id: Optional[str] = None) -> PresetResult:
    """Debt collection followed by collapse."""
    t = now_ms() if at is None else int(at)
    audit_id = audit_id or new_id()
    fork = trust_debt_collection_event(_fork(universe, t), audit_id, at=t)
    after_collection = fork.trust_state.trust_score
    fork = trust_collapse(fork, audit_id, at=t + 1)
    narrative = (
        f"Mass layoff shock: debt collection left trust at {after_collection:.0f}, "
        "then the network collapsed to 0."
    )
    return _result("mass_layoff_shock", universe, fork, narrative)


def ai_reference_flood(universe: Universe, at: Optional[int] = None,
                       audit_id: Optional[str] = None) -> PresetResult:
    """Large injected-consensus batch."""
    t = now_ms() if at is None else int(at)
    fork = fake_consensus_injection(_fork(universe, t), FLOOD_CONSENSUS_COUNT,
                                    audit_id or new_id(), at=t)
    narrative = (
        f"AI reference flood: {FLOOD_CONSENSUS_COUNT} synthetic peer references injected; "
        f"trust reads {fork.trust_state.trust_score:.0f} on volume alone."
    )
    return _result("ai_reference_flood", universe, fork, narrative)


PRESETS: Dict[str, Callable[..., PresetResult]] = {
    "glassdoor_attack": glassdoor_attack,
    "zombie_startup": zombie_startup,
    "perfect_fraud": perfect_fraud,
    "mass_layoff_shock": mass_layoff_shock,
    "ai_reference_flood": ai_reference_flood,
}


def run_preset(name: str, universe: Universe, at: Optional[int] = None,
               audit_id: Optional[str] = None) -> PresetResult:
    """Look up a preset by name. Unknown names raise KeyError."""
    return PRESETS[name](universe, at=at, audit_id=audit_id)


__all__ = [
    "divergence",
    "glassdoor_attack",
    "zombie_startup",
    "perfect_fraud",
    "mass_layoff_shock",
    "ai_reference_flood",
    "PRESETS",
    "run_preset",
]
