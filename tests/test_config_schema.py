"""
tests/test_config_schema.py - Kernel Config Tests

Validates defaults, self-healing, strict mode and file loading.
"""

import json

import pytest
import yaml

from trustsim.config_schema import KernelConfig, default, load
from trustsim.types_domain import Policy


def write(tmp_path, name, data):
    path = tmp_path / name
    if name.endswith((".yaml", ".yml")):
        path.write_text(yaml.safe_dump(data))
    else:
        path.write_text(json.dumps(data))
    return str(path)


def full(**overrides):
    data = {
        "version": "1.0",
        "tenant_id": "acme",
        "policy": {"threshold": 70, "decay_rate": 0.1, "supervisor_weight": 2.0, "risk_tolerance": 30},
        "human_error_rate": 0.05,
        "population_count": 50,
        "generator_seed": 11,
    }
    data.update(overrides)
    return data


class TestDefault:
    """Test KernelConfig.default()."""

    def test_stock_policy(self):
        cfg = default("acme")
        assert cfg.policy == Policy()
        assert cfg.tenant_id == "acme"
        assert cfg.human_error_rate == 0.0
        assert cfg.population_count == 10

    def test_hash_and_provenance(self):
        cfg = KernelConfig.default()
        assert len(cfg.config_hash) == 16
        assert cfg.provenance.author == "system"

    def test_explain(self):
        text = default("acme").explain()
        assert "acme" in text
        assert "policy.threshold: 60" in text
        assert "non-default" not in text

    def test_engine_context_and_intent(self):
        cfg = KernelConfig.from_dict(full())
        assert cfg.engine_context().policy.threshold == 70.0
        assert cfg.intent().human_error_rate == pytest.approx(0.05)


class TestLoad:
    """Test load() for JSON and YAML."""

    def test_json(self, tmp_path):
        cfg = load(write(tmp_path, "kernel.json", full()))
        assert cfg.policy.supervisor_weight == 2.0
        assert cfg.generator_seed == 11

    def test_yaml(self, tmp_path):
        cfg = load(write(tmp_path, "kernel.yaml", full()))
        assert cfg.policy.threshold == 70.0
        assert cfg.population_count == 50

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load(str(tmp_path / "absent.json"))

    def test_save_then_load(self, tmp_path):
        cfg = KernelConfig.from_dict(full())
        path = tmp_path / "saved.yaml"
        cfg.save(str(path))
        assert load(str(path)).policy == cfg.policy


class TestSelfHealing:
    """Invalid values are clamped or defaulted with warnings."""

    def test_out_of_range_clamped(self, tmp_path):
        data = full(policy={"threshold": 150, "decay_rate": 0.0,
                            "supervisor_weight": 1.5, "risk_tolerance": 40})
        with pytest.warns(UserWarning, match="Clamped policy.threshold"):
            cfg = load(write(tmp_path, "kernel.json", data))
        assert cfg.policy.threshold == 100.0

    def test_population_count_clamped(self):
        with pytest.warns(UserWarning, match="population_count"):
            cfg = KernelConfig.from_dict(full(population_count=5000))
        assert cfg.population_count == 1000

    def test_missing_optional_defaulted(self):
        with pytest.warns(UserWarning, match="Missing optional field 'policy'"):
            cfg = KernelConfig.from_dict({"version": "1.0", "tenant_id": "acme"})
        assert cfg.policy == Policy()

    def test_unknown_field_dropped(self):
        with pytest.warns(UserWarning, match="Ignoring unknown field: colour"):
            cfg = KernelConfig.from_dict(full(colour="blue"))
        assert "colour" not in cfg.to_dict()

    def test_wrong_type_cannot_heal(self):
        with pytest.raises(ValueError):
            KernelConfig.from_dict(full(human_error_rate="high"))


class TestStrict:
    """strict=True raises instead of healing."""

    def test_out_of_range(self):
        with pytest.raises(ValueError, match="Config validation failed"):
            KernelConfig.from_dict(full(human_error_rate=2.0), strict=True)

    def test_missing_tenant(self):
        data = full()
        del data["tenant_id"]
        with pytest.raises(ValueError):
            KernelConfig.from_dict(data, strict=True)

    def test_valid_passes(self):
        cfg = KernelConfig.from_dict(full(), strict=True)
        assert cfg.policy.risk_tolerance == 30.0
