"""
tests/test_engines.py - Scoring Engine Tests

Validates the seven engines against hand-computed values.
"""

import math

import pytest

from trustsim.constants import SourceKind
from trustsim.engines import (
    compliance_score,
    concentration,
    confidence_score,
    culture_impact_score,
    fragility_score,
    risk_score,
    signal_noise,
    trust_debt_score,
    trust_score,
)
from trustsim.reducer import apply_delta, create_initial_snapshot
from trustsim.types_domain import (
    Delta,
    EngineContext,
    HumanFactorModifiers,
    IntentModifiers,
    Policy,
    Signal,
    Snapshot,
)

TS = 1_700_000_000_000
CTX = EngineContext()


def sig(i, source=SourceKind.PEER, weight=1.0, ts=TS):
    return Signal(id=f"s{i}", source=source, weight=weight, timestamp=ts)


def snap(*signals):
    return Snapshot(timestamp=TS, signals=signals)


class TestTrustScore:
    """Test trust_score engine."""

    def test_golden_three_peer_signals(self):
        """Three peer signals of weight 0.4 score 12."""
        s = snap(sig(1, weight=0.4), sig(2, weight=0.4), sig(3, weight=0.4))
        assert trust_score(s, Delta(), CTX) == 12, "Expected round(1.2 * 10) = 12"

    def test_golden_through_reducer(self):
        """Same golden value when computed by apply_delta."""
        signals = (sig(1, weight=0.4), sig(2, weight=0.4), sig(3, weight=0.4))
        result = apply_delta(create_initial_snapshot(TS), Delta(timestamp=TS, added_signals=signals))
        assert result.trust_score == 12, f"Expected 12, got {result.trust_score}"
        assert result.engine_outputs.trust_score == 12

    def test_supervisor_multiplier_from_policy(self):
        """Supervisor signals use the policy supervisor weight (1.5)."""
        s = snap(sig(1, SourceKind.SUPERVISOR, 1.0))
        assert trust_score(s, Delta(), CTX) == 15

    def test_supervisor_override_from_intent(self):
        """Intent override replaces the policy supervisor weight."""
        s = snap(sig(1, SourceKind.SUPERVISOR, 1.0))
        delta = Delta(intent=IntentModifiers(supervisor_weight_override=2.0))
        assert trust_score(s, delta, CTX) == 20

    def test_intent_bias(self):
        s = snap(sig(1, weight=1.0))
        delta = Delta(intent=IntentModifiers(intent_bias=2.0))
        assert trust_score(s, delta, CTX) == 20

    def test_human_error_rate_damps_deterministically(self):
        """Noise derived from (timestamp, index, rate) damps the sum."""
        s = Snapshot(timestamp=TS, signals=(Signal("a", SourceKind.PEER, 10.0, 1),))
        assert trust_score(s, Delta(), CTX) == 100
        damped = trust_score(s, Delta(intent=IntentModifiers(human_error_rate=1.0)), CTX)
        assert damped == 96, f"Expected 96 after noise 9301/233280, got {damped}"
        again = trust_score(s, Delta(intent=IntentModifiers(human_error_rate=1.0)), CTX)
        assert damped == again, "Noise must be deterministic"

    def test_noise_bounds(self):
        for ts in (0, 1, 12345, TS, -99):
            for index in range(5):
                n = signal_noise(ts, index, 0.3)
                assert 0.0 <= n < 0.3, f"noise {n} out of [0, 0.3) for ts={ts} index={index}"
        assert signal_noise(TS, 3, 0.0) == 0.0

    def test_non_finite_weights_count_as_zero(self):
        s = snap(sig(1, weight=float("nan")), sig(2, weight=float("inf")), sig(3, weight=0.5))
        assert trust_score(s, Delta(), CTX) == 5

    def test_clamped_to_scale(self):
        assert trust_score(snap(sig(1, weight=50.0)), Delta(), CTX) == 100
        assert trust_score(snap(sig(1, weight=-5.0)), Delta(), CTX) == 0


class TestConfidenceScore:
    """Test confidence_score engine."""

    def test_full_volume_and_diversity(self):
        kinds = [SourceKind.PEER, SourceKind.SUPERVISOR, SourceKind.MANAGER, SourceKind.SELF]
        s = snap(*[sig(i, kinds[i % 4]) for i in range(10)])
        assert confidence_score(s, Delta(), CTX) == 100

    def test_reduced_by_human_error_rate(self):
        kinds = [SourceKind.PEER, SourceKind.SUPERVISOR, SourceKind.MANAGER, SourceKind.SELF]
        s = snap(*[sig(i, kinds[i % 4]) for i in range(10)])
        delta = Delta(intent=IntentModifiers(human_error_rate=0.5))
        assert confidence_score(s, delta, CTX) == 50

    def test_no_signals(self):
        assert confidence_score(snap(), Delta(), CTX) == 0

    def test_stability_modifier_scales(self):
        s = snap(sig(1), sig(2))
        base = confidence_score(s, Delta(), CTX)
        boosted = confidence_score(s, Delta(), CTX, HumanFactorModifiers(confidence_stability=1.15))
        assert base == 22, f"Expected 14 + 7.5 -> 22, got {base}"
        assert boosted >= base


class TestRiskScore:
    """Test risk_score engine."""

    def test_threshold_gap(self):
        assert risk_score(snap(), Delta(), CTX, trust=0) == 60

    def test_threshold_override(self):
        assert risk_score(snap(), Delta(threshold_override=30), CTX, trust=0) == 30

    def test_nan_threshold_override_falls_back_to_policy(self):
        assert risk_score(snap(), Delta(threshold_override=float("nan")), CTX, trust=0) == 60

    def test_variance_penalty_capped(self):
        s = snap(sig(1, weight=0.0), sig(2, weight=10.0))
        assert risk_score(s, Delta(), CTX, trust=100) == 50

    def test_volatility_reduction(self):
        mods = HumanFactorModifiers(risk_volatility_reduction=0.5)
        assert risk_score(snap(), Delta(), CTX, trust=0, modifiers=mods) == 30


class TestFragilityScore:
    """Test fragility_score engine."""

    def test_no_signals_zero_trust(self):
        assert fragility_score(snap(), Delta(), CTX, trust=0) == 50

    def test_decay_multiplier(self):
        delta = Delta(intent=IntentModifiers(decay_multiplier=2.0))
        assert fragility_score(snap(), delta, CTX, trust=0) == 100

    def test_policy_decay_rate(self):
        ctx = EngineContext(policy=Policy(decay_rate=0.5))
        assert fragility_score(snap(), Delta(), ctx, trust=0) == 75

    def test_concentration_when_weights_cluster(self):
        s = snap(sig(1), sig(2), sig(3))
        assert concentration(s.signals) == pytest.approx(30.0)
        assert fragility_score(s, Delta(), CTX, trust=100) == 30

    def test_concentration_empty(self):
        assert concentration(()) == 0.0

    def test_additive_adjustment(self):
        mods = HumanFactorModifiers(fragility_adjustment=-60.0)
        assert fragility_score(snap(), Delta(), CTX, trust=0, modifiers=mods) == 0


class TestTrustDebtScore:
    """Test trust_debt_score engine."""

    def test_trust_ahead_of_evidence(self):
        assert trust_debt_score(snap(), Delta(), CTX, trust=80, confidence=30) == 50

    def test_floored_at_zero(self):
        assert trust_debt_score(snap(), Delta(), CTX, trust=30, confidence=80) == 0

    def test_multiplier(self):
        mods = HumanFactorModifiers(trust_debt_multiplier=1.5)
        assert trust_debt_score(snap(), Delta(), CTX, trust=80, confidence=30, modifiers=mods) == 75


class TestComplianceScore:
    """Test compliance_score engine."""

    def test_gap_penalty(self):
        assert compliance_score(snap(), Delta(), CTX, trust=40) == 60

    def test_above_threshold(self):
        assert compliance_score(snap(), Delta(), CTX, trust=90) == 100

    def test_risk_multiplier_divides(self):
        mods = HumanFactorModifiers(compliance_risk_multiplier=2.0)
        assert compliance_score(snap(), Delta(), CTX, trust=40, modifiers=mods) == 30

    def test_non_positive_multiplier_ignored(self):
        mods = HumanFactorModifiers(compliance_risk_multiplier=0.0)
        assert compliance_score(snap(), Delta(), CTX, trust=40, modifiers=mods) == 60


class TestCultureImpactScore:
    """Test culture_impact_score engine."""

    def test_no_signals(self):
        assert culture_impact_score(snap(), Delta(), CTX) == 0

    def test_balanced(self):
        s = snap(sig(1, SourceKind.PEER), sig(2, SourceKind.SUPERVISOR))
        assert culture_impact_score(s, Delta(), CTX) == 60

    def test_unbalanced(self):
        s = snap(sig(1, SourceKind.PEER), sig(2, SourceKind.PEER))
        assert culture_impact_score(s, Delta(), CTX) == 10


class TestOutputRange:
    """All engine outputs stay within [0, 100] for arbitrary finite input."""

    @pytest.mark.parametrize("weights", [
        [0.0],
        [1e9, -1e9, 3.0],
        [-0.5] * 12,
        [0.1, 0.2, 100.0, -3.0, 7.5],
        [float("nan"), 2.0, float("-inf")],
    ])
    def test_bounds(self, weights):
        kinds = list(SourceKind)
        signals = tuple(
            Signal(f"w{i}", kinds[i % len(kinds)], w, TS - i * 86_400_000)
            for i, w in enumerate(weights)
        )
        delta = Delta(
            timestamp=TS,
            added_signals=signals,
            intent=IntentModifiers(human_error_rate=0.7, intent_bias=3.0, decay_multiplier=4.0),
        )
        result = apply_delta(create_initial_snapshot(TS), delta)
        for name, value in result.engine_outputs.scores().items():
            assert isinstance(value, int), f"{name} should be int"
            assert 0 <= value <= 100, f"{name}={value} out of range"
            assert not math.isnan(value)
