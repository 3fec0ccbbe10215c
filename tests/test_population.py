"""
tests/test_population.py - Population Engine Tests

Validates aggregate metrics and the empty-population branch.
"""

import pytest

from trustsim.population import compute_population_metrics, population_metrics
from trustsim.reducer import apply_delta, create_initial_snapshot
from trustsim.types_domain import Delta, Employee, Employer, Population
from trustsim.types_result import PopulationMetrics

TS = 1_700_000_000_000


def scored(trust):
    return apply_delta(create_initial_snapshot(TS), Delta(timestamp=TS, score_override=trust))


class TestEmptyPopulation:
    """Empty input returns all zeros without raising."""

    def test_all_zero(self):
        metrics = compute_population_metrics([])
        assert metrics == PopulationMetrics()
        assert all(v == 0 for v in metrics.to_dict().values())


class TestPopulationMetrics:
    """Test compute_population_metrics on known values."""

    @pytest.fixture
    def decile(self):
        return [scored(t) for t in range(10, 101, 10)]

    def test_mean_and_variance(self, decile):
        metrics = compute_population_metrics(decile)
        assert metrics.count == 10
        assert metrics.mean_trust == pytest.approx(55.0)
        assert metrics.variance_trust == pytest.approx(825.0)

    def test_tail_risk_uses_bottom_decile(self, decile):
        metrics = compute_population_metrics(decile)
        assert metrics.tail_risk == pytest.approx(90.0), "Bottom 10% of 10 is one entity at 10"

    def test_tail_risk_minimum_sample_of_one(self):
        metrics = compute_population_metrics([scored(40), scored(80)])
        assert metrics.tail_risk == pytest.approx(60.0)

    def test_concentration_risk(self, decile):
        metrics = compute_population_metrics(decile)
        assert metrics.concentration_risk == pytest.approx(45.0)

    def test_compliance_breach_probability(self, decile):
        metrics = compute_population_metrics(decile)
        assert metrics.compliance_breach_probability == pytest.approx(0.3)

    def test_fragility_amplification_non_negative(self, decile):
        metrics = compute_population_metrics(decile)
        fragilities = [s.engine_outputs.fragility_score for s in decile]
        mean_f = sum(fragilities) / len(fragilities)
        assert metrics.fragility_amplification >= mean_f
        assert metrics.fragility_amplification <= 2 * mean_f

    def test_single_entity_has_no_variance(self):
        metrics = compute_population_metrics([scored(50)])
        assert metrics.variance_trust == 0.0
        assert metrics.tail_risk == pytest.approx(50.0)


class TestZeroSnapshots:
    """Snapshots without engine outputs count as fragility 0, compliance 100."""

    def test_zero_seed_only(self):
        metrics = compute_population_metrics([create_initial_snapshot(TS)])
        assert metrics.count == 1
        assert metrics.concentration_risk == 0.0, "max trust 0 must not divide"
        assert metrics.tail_risk == pytest.approx(100.0)
        assert metrics.fragility_amplification == 0.0
        assert metrics.compliance_breach_probability == 0.0


class TestPopulationWrapper:
    """Test population_metrics over a Population grouping."""

    def test_matches_snapshot_list(self):
        snaps = [scored(30), scored(60), scored(90)]
        pop = Population(
            employees=[Employee(id=f"e{i}", name=f"E{i}", role="Associate", snapshot=s)
                       for i, s in enumerate(snaps)],
            employer=Employer(id="acme", name="Acme"),
        )
        assert population_metrics(pop) == compute_population_metrics(snaps)
