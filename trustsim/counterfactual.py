"""
trustsim/counterfactual.py - Counterfactual / Autopsy Analyzer

Read-only explanations over a completed Universe:
    run_counterfactual   - what had to be true for the current score
    run_trust_autopsy    - collapse point, first mistake, last intervention
    break_the_multiverse - four scripted forks and their spread
"""

import logging
from typing import Optional

from .constants import (
    COLLAPSE_LINE,
    CORRECTIVE_ACTIONS,
    DEFAULT_THRESHOLD,
    MISTAKE_DROP,
    SourceKind,
)
from .multiverse import (
    create_universe,
    fork_universe_at,
    now_ms,
    supervisor_override,
    time_travel_to,
    trust_collapse,
)
from .numeric import finite
from .types_result import AutopsyResult, BreakResult, CounterfactualResult
from .types_universe import Universe

logger = logging.getLogger(__name__)

ALTERNATIVES = (
    "Add an independent supervisor verification",
    "Add peer signals from distinct reviewers",
    "Spread signals over time instead of a single burst",
    "Resolve open disputes before re-scoring",
    "Collect accrued trust debt before the next promotion decision",
)

BREAK_OVERRIDE_WEIGHT = 3.0


# =============================================================================
# COUNTERFACTUAL
# =============================================================================

def run_counterfactual(universe: Universe) -> CounterfactualResult:
    """Minimal conditions explaining the current score relative to threshold."""
    state = universe.trust_state
    score = finite(state.trust_score, 0.0)
    threshold = finite(universe.policy.threshold, DEFAULT_THRESHOLD)
    above = score >= threshold
    supervisor_sum = sum(finite(s.weight, 0.0) for s in state.signals
                         if s.source == SourceKind.SUPERVISOR)
    count = len(state.signals)

    conditions = (
        f"signal count: {count}",
        f"supervisor weight sum: {supervisor_sum:.2f}",
        f"policy threshold: {threshold:.0f}",
    )
    if above:
        narrative = (
            f"Score {score:.0f} clears threshold {threshold:.0f} because {count} signal(s) "
            f"with supervisor weight {supervisor_sum:.2f} were present."
        )
    else:
        narrative = (
            f"Score {score:.0f} is {threshold - score:.0f} point(s) short of threshold "
            f"{threshold:.0f} with {count} signal(s) and supervisor weight {supervisor_sum:.2f}."
        )

    return CounterfactualResult(
        current_score=score,
        threshold=threshold,
        above_threshold=above,
        signal_count=count,
        supervisor_weight_sum=supervisor_sum,
        conditions=conditions,
        alternatives=ALTERNATIVES,
        narrative=narrative,
    )


# =============================================================================
# AUTOPSY
# =============================================================================

def run_trust_autopsy(universe: Universe) -> AutopsyResult:
    """
    Scan the timeline.

    collapse_point: first index where score fell below 20 from >= 20
    first_mistake: first index with a single-step drop over 15
    last_intervention_point: last index whose action is corrective
    """
    scores = [finite(e.state.trust_score, 0.0) for e in universe.timeline]
    collapse_point: Optional[int] = None
    first_mistake: Optional[int] = None
    for i in range(1, len(scores)):
        prev, curr = scores[i - 1], scores[i]
        if collapse_point is None and prev >= COLLAPSE_LINE and curr < COLLAPSE_LINE:
            collapse_point = i
        if first_mistake is None and prev - curr > MISTAKE_DROP:
            first_mistake = i

    last_intervention: Optional[int] = None
    for i, event in enumerate(universe.timeline):
        if event.action in CORRECTIVE_ACTIONS:
            last_intervention = i

    parts = []
    if collapse_point is not None:
        parts.append(f"Trust collapsed below {COLLAPSE_LINE} at step {collapse_point}.")
    if first_mistake is not None:
        parts.append(f"First drop over {MISTAKE_DROP} points at step {first_mistake}.")
    if last_intervention is not None:
        action = universe.timeline[last_intervention].action.value
        parts.append(f"Last corrective action ({action}) at step {last_intervention}.")
    narrative = " ".join(parts) or "No collapse, large drop or corrective action on this timeline."

    return AutopsyResult(
        collapse_point=collapse_point,
        first_mistake=first_mistake,
        last_intervention_point=last_intervention,
        narrative=narrative,
    )


# =============================================================================
# BREAK THE MULTIVERSE
# =============================================================================

def break_the_multiverse(universe: Universe, at: Optional[int] = None,
                         audit_id: Optional[str] = None) -> BreakResult:
    """
    Four forks from one source:
        1. positive override
        2. collapse
        3. seeded from the source's first timeline event, by index
        4. the rewound fork, forked again and collapsed

    divergence_score = max - min of the four trust scores.
    """
    t = now_ms() if at is None else int(at)

    boosted = supervisor_override(fork_universe_at(universe, t, at=t),
                                  BREAK_OVERRIDE_WEIGHT, audit_id, at=t + 1)
    collapsed = trust_collapse(fork_universe_at(universe, t, at=t), audit_id, at=t + 1)
    first = time_travel_to(universe, 0)
    rewound = create_universe(
        f"{universe.label} (fork)",
        parent_id=universe.id,
        policy=universe.policy,
        initial_state=first.trust_state,
        forked_at=universe.timeline[0].at if universe.timeline else t,
        at=t,
    )
    recollapsed = trust_collapse(fork_universe_at(rewound, t, at=t + 1), audit_id, at=t + 2)

    forks = (boosted, collapsed, rewound, recollapsed)
    scores = [f.trust_state.trust_score for f in forks]
    spread = max(scores) - min(scores)

    narrative = (
        f"Override fork ended at {scores[0]:.0f}. "
        f"Collapse fork ended at {scores[1]:.0f}. "
        f"Rewound fork returned to {scores[2]:.0f}. "
        f"Re-collapsed fork ended at {scores[3]:.0f}. "
        f"Spread across forks: {spread:.0f}."
    )
    logger.debug(f"break_the_multiverse {universe.id}: spread {spread:.0f}")
    return BreakResult(source=universe, forks=forks, divergence_score=spread, narrative=narrative)


__all__ = [
    "ALTERNATIVES",
    "run_counterfactual",
    "run_trust_autopsy",
    "break_the_multiverse",
]
