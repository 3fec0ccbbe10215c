"""
tests/test_counterfactual.py - Counterfactual / Autopsy Tests

Validates threshold explanations, timeline autopsy and break-the-multiverse.
"""

from trustsim.counterfactual import (
    ALTERNATIVES,
    break_the_multiverse,
    run_counterfactual,
    run_trust_autopsy,
)
from trustsim.multiverse import (
    create_universe,
    fake_consensus_injection,
    supervisor_override,
    trust_collapse,
)

T0 = 1_000_000


def consensus(n):
    return fake_consensus_injection(create_universe("u", at=T0, universe_id="src"), n, "a", at=T0 + 10)


class TestCounterfactual:
    """Test run_counterfactual."""

    def test_below_threshold(self):
        result = run_counterfactual(create_universe("empty", at=T0))
        assert result.above_threshold is False
        assert result.current_score == 0
        assert result.threshold == 60
        assert result.alternatives == ALTERNATIVES
        assert "short" in result.narrative

    def test_above_threshold(self):
        result = run_counterfactual(consensus(7))
        assert result.above_threshold is True
        assert result.signal_count == 7
        assert result.supervisor_weight_sum == 0.0
        assert len(result.conditions) == 3

    def test_supervisor_weight_sum(self):
        u = supervisor_override(consensus(1), 2.5, at=T0 + 20)
        assert run_counterfactual(u).supervisor_weight_sum == 2.5


class TestAutopsy:
    """Test run_trust_autopsy."""

    def test_clean_timeline(self):
        result = run_trust_autopsy(create_universe("fresh", at=T0))
        assert result.collapse_point is None
        assert result.first_mistake is None
        assert result.last_intervention_point is None
        assert result.narrative

    def test_collapse_mistake_and_intervention(self):
        u = trust_collapse(consensus(3), at=T0 + 20)
        u = supervisor_override(u, 1.0, at=T0 + 30)
        result = run_trust_autopsy(u)
        assert result.collapse_point == 4, "30 -> 0 happens at index 4"
        assert result.first_mistake == 4
        assert result.last_intervention_point == 5

    def test_small_drops_are_not_mistakes(self):
        u = trust_collapse(consensus(1), at=T0 + 20)
        result = run_trust_autopsy(u)
        assert result.first_mistake is None, "A 10-point drop is under the 15-point line"
        assert result.collapse_point is None, "Score never reached 20"


class TestBreakTheMultiverse:
    """Exactly four forks and a non-negative spread."""

    def test_four_forks(self):
        src = consensus(3)
        result = break_the_multiverse(src, at=T0 + 100)
        assert len(result.forks) == 4
        assert result.divergence_score >= 0
        assert result.source is src

    def test_fork_fates(self):
        src = consensus(3)
        boosted, collapsed, rewound, recollapsed = break_the_multiverse(src, at=T0 + 100).forks
        assert boosted.trust_state.trust_score == 75
        assert collapsed.trust_state.trust_score == 0
        assert rewound.trust_state == src.timeline[0].state
        assert recollapsed.trust_state.trust_score == 0
        assert recollapsed.parent_id == rewound.id
        assert {boosted.parent_id, collapsed.parent_id, rewound.parent_id} == {src.id}

    def test_divergence_is_spread(self):
        result = break_the_multiverse(consensus(3), at=T0 + 100)
        scores = [f.trust_state.trust_score for f in result.forks]
        assert result.divergence_score == max(scores) - min(scores) == 75

    def test_source_untouched(self):
        src = consensus(2)
        break_the_multiverse(src, at=T0 + 100)
        assert len(src.timeline) == 3
        assert src.trust_state.trust_score == 20

    def test_rewind_ignores_same_time_events(self):
        src = fake_consensus_injection(create_universe("u", at=T0, universe_id="src"), 3, "a", at=T0)
        assert src.timeline[0].at == src.timeline[-1].at, "Both events share one timestamp"
        rewound = break_the_multiverse(src, at=T0 + 100).forks[2]
        assert rewound.trust_state == src.timeline[0].state
        assert rewound.trust_state.trust_score == 0
        assert rewound.forked_at == T0
