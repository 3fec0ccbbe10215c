"""
tests/test_multiverse.py - Multiverse Engine Tests

Validates forking, time travel, scripted actions, debt and audit entries.
"""

import pytest

from trustsim.constants import ActionLabel, SourceKind
from trustsim.multiverse import (
    EMPTY_STATE,
    apply_signal,
    compute_fragility,
    compute_trust_debt,
    create_audit_entry,
    create_universe,
    diff_universes,
    fake_consensus_injection,
    fork_universe_at,
    reset_universe,
    supervisor_override,
    time_travel_to,
    timeline_digest,
    trust_collapse,
    trust_debt_collection_event,
)
from trustsim.receipts import canonical_json, dual_hash
from trustsim.types_domain import Signal
from trustsim.types_universe import AuditMeta, TimelineEvent, TrustState

T0 = 1_000_000


def grown():
    """Root universe: init at T0, then three consensus signals at T0 + 100."""
    u = create_universe("Prime", at=T0, universe_id="prime")
    return fake_consensus_injection(u, 3, "audit-1", at=T0 + 100)


def event(at, score):
    return TimelineEvent(at=at, state=TrustState(trust_score=score), action=ActionLabel.SIGNAL)


class TestCreateUniverse:
    """Test create_universe."""

    def test_single_init_event(self):
        u = create_universe("Prime", at=T0)
        assert len(u.timeline) == 1
        assert u.timeline[0].action == ActionLabel.INIT
        assert u.trust_state == EMPTY_STATE
        assert u.is_root
        assert u.created_at == T0

    def test_ids_unique_when_generated(self):
        assert create_universe("a").id != create_universe("b").id


class TestForkUniverseAt:
    """Forking never mutates the source."""

    def test_source_unchanged_after_many_forks(self):
        source = grown()
        length, state = len(source.timeline), source.trust_state
        for i in range(5):
            fork_universe_at(source, T0 + 100, at=T0 + 200 + i)
        assert len(source.timeline) == length
        assert source.trust_state == state

    def test_fork_metadata(self):
        source = grown()
        fork = fork_universe_at(source, T0 + 100, at=T0 + 200)
        assert fork.parent_id == source.id
        assert fork.forked_at == T0 + 100
        assert fork.label == "Prime (fork)"
        assert fork.policy == source.policy
        assert len(fork.timeline) == 1

    def test_picks_latest_event_at_or_before(self):
        u = create_universe("u", at=100)
        u = supervisor_override(u, 1.0, at=200)
        u = supervisor_override(u, 1.0, at=300)
        fork = fork_universe_at(u, 250)
        assert fork.trust_state == u.timeline[1].state
        assert fork.trust_state.trust_score == 15

    def test_falls_back_to_oldest_event(self):
        u = supervisor_override(create_universe("u", at=100), 1.0, at=200)
        fork = fork_universe_at(u, 50)
        assert fork.trust_state == u.timeline[0].state

    def test_fork_evolves_independently(self):
        source = grown()
        fork = trust_collapse(fork_universe_at(source, T0 + 100), at=T0 + 300)
        assert fork.trust_state.trust_score == 0
        assert source.trust_state.trust_score == 30


class TestResetUniverse:
    """Test reset_universe."""

    def test_single_reset_event(self):
        source = grown()
        reset = reset_universe(source, at=T0 + 500)
        assert reset.id == source.id
        assert reset.policy == source.policy
        assert len(reset.timeline) == 1
        assert reset.timeline[0].action == ActionLabel.RESET
        assert reset.trust_state == EMPTY_STATE


class TestScriptedActions:
    """Test apply_signal and the scripted actions."""

    def test_apply_signal_matches_reducer_golden_value(self):
        u = create_universe("u", at=T0)
        for i in range(3):
            u = apply_signal(u, Signal(f"p{i}", SourceKind.PEER, 0.4, T0), at=T0 + i)
        assert u.trust_state.trust_score == 12
        assert len(u.timeline) == 4
        assert u.latest_event.action == ActionLabel.SIGNAL

    def test_apply_signal_audit_label(self):
        u = apply_signal(create_universe("u", at=T0), Signal("x", SourceKind.PEER, 1.0, T0),
                         AuditMeta(action=ActionLabel.INJECT, audit_id="a-1"), at=T0)
        assert u.latest_event.action == ActionLabel.INJECT
        assert u.latest_event.audit_id == "a-1"

    def test_trust_collapse(self):
        u = trust_collapse(grown(), "a-2", at=T0 + 200)
        assert u.trust_state.trust_score == 0
        assert u.trust_state.signals == ()
        assert u.latest_event.action == ActionLabel.TRUST_COLLAPSE

    def test_fake_consensus(self):
        u = grown()
        assert len(u.timeline) == 4
        assert u.trust_state.trust_score == 30
        assert all(e.action == ActionLabel.FAKE_CONSENSUS for e in u.timeline[1:])
        assert all(s.weight == 1.0 and s.source == SourceKind.PEER for s in u.trust_state.signals)

    def test_repeated_consensus_batches_accumulate(self):
        u = fake_consensus_injection(grown(), 2, at=T0 + 100)
        assert u.trust_state.signal_count == 5

    def test_supervisor_override(self):
        u = supervisor_override(create_universe("u", at=T0), 1.0, at=T0 + 1)
        assert u.trust_state.trust_score == 15
        assert u.latest_event.action == ActionLabel.SUPERVISOR_OVERRIDE
        assert u.trust_state.signals[0].source == SourceKind.SUPERVISOR

    def test_timeline_only_grows(self):
        u = grown()
        before = u.timeline
        after = supervisor_override(u, 1.0, at=T0 + 300).timeline
        assert after[:len(before)] == before


class TestTimeTravel:
    """time_travel_to sets current state to timeline[i] and nothing else."""

    def test_exact_state(self):
        u = grown()
        for i in range(len(u.timeline)):
            moved = time_travel_to(u, i)
            assert moved.trust_state == u.timeline[i].state
            assert moved.timeline == u.timeline

    @pytest.mark.parametrize("index", [-1, 4, 100])
    def test_out_of_range_is_noop(self, index):
        u = grown()
        assert time_travel_to(u, index) is u


class TestTrustDebt:
    """Test compute_trust_debt and debt collection."""

    def test_only_large_rises_accrue(self):
        timeline = (event(0, 0), event(1, 10), event(2, 12), event(3, 30))
        assert compute_trust_debt(timeline) == pytest.approx(2.8)

    def test_drops_do_not_accrue(self):
        timeline = (event(0, 90), event(1, 10), event(2, 14))
        assert compute_trust_debt(timeline) == 0.0

    def test_capped_at_100(self):
        timeline = tuple(event(i, 0 if i % 2 == 0 else 100) for i in range(40))
        assert compute_trust_debt(timeline) == 100.0

    def test_collection_event(self):
        u = trust_debt_collection_event(grown(), "a-3", at=T0 + 200)
        assert u.trust_state.trust_score == pytest.approx(27.0)
        assert u.trust_state.trust_debt == 0.0
        assert u.trust_state.trust_fragility == pytest.approx(16.0)
        assert u.latest_event.action == ActionLabel.DEBT_COLLECTION


class TestFragility:
    """Test compute_fragility."""

    def test_no_signals(self):
        assert compute_fragility(TrustState(trust_score=90)) == 0.0

    def test_formula(self):
        signals = tuple(Signal(f"s{i}", SourceKind.PEER, 1.0, 0) for i in range(3))
        assert compute_fragility(TrustState(trust_score=70, signals=signals)) == pytest.approx(16.0)


class TestAuditEntry:
    """Test create_audit_entry."""

    def test_payload_hash(self):
        entry = create_audit_entry("u-1", ActionLabel.FAKE_CONSENSUS, {"count": 3},
                                   at=T0, entry_id="e-1")
        assert entry.action == "fake_consensus"
        assert entry.payload_hash == dual_hash(canonical_json({"count": 3}))
        assert entry.outcome is None

    def test_to_receipt(self):
        receipt = create_audit_entry("u-1", "time_travel", {"step": 2}, "ok", at=T0).to_receipt()
        assert receipt["receipt_type"] == "audit_entry"
        assert receipt["tenant_id"] == "u-1"
        assert receipt["payload"] == {"step": 2}

    def test_payload_is_read_only(self):
        payload = {"ids": ["s1"]}
        entry = create_audit_entry("u-1", "inject", payload, at=T0)
        payload["ids"].append("s2")
        with pytest.raises(TypeError):
            entry.payload["ids"] = ()
        assert entry.payload["ids"] == ("s1",)
        assert entry.payload_hash == dual_hash(canonical_json(entry.payload))
        assert isinstance(hash(entry), int), "Frozen audit entries must be hashable"


class TestComparison:
    """Test diff_universes and timeline_digest."""

    def test_diff_fork(self):
        source = grown()
        fork = supervisor_override(fork_universe_at(source, T0 + 100, at=T0 + 200), 1.0, at=T0 + 300)
        diff = diff_universes(source, fork)
        assert diff.trust_delta == pytest.approx(15.0)
        assert diff.common_ancestor_id == source.id
        assert len(diff.signals_only_in_b) == 1
        assert diff.signals_only_in_a == ()
        assert diff.timeline_lengths == (4, 2)

    def test_digest_tracks_history(self):
        a = grown()
        assert timeline_digest(a) == timeline_digest(grown())
        assert timeline_digest(a) != timeline_digest(trust_collapse(a, at=T0 + 200))
