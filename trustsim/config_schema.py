"""
trustsim/config_schema.py - Kernel Configuration Schema

KernelConfig is the frozen, self-validating configuration a caller builds
Policy, EngineContext and generator defaults from.

Design Principles:
- Self-validating: Draft 2020-12 JSON Schema via jsonschema
- Self-healing: invalid input -> clamped/default values + warnings
- Self-describing: explain() and schema export
- Auditable: provenance tracks who/when/why plus a content hash
- Immutable: frozen after load
"""

from __future__ import annotations

import hashlib
import json
import warnings
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml
from jsonschema import Draft202012Validator

from .constants import (
    DEFAULT_DECAY_RATE,
    DEFAULT_RISK_TOLERANCE,
    DEFAULT_SUPERVISOR_WEIGHT,
    DEFAULT_THRESHOLD,
    GENERATOR_MAX_COUNT,
    GENERATOR_MIN_COUNT,
)
from .types_domain import EngineContext, IntentModifiers, Policy


__all__ = [
    'KernelConfig',
    'ConfigProvenance',
    'load',
    'default',
]


# =============================================================================
# JSON Schema Definition (Draft 2020-12)
# =============================================================================

_RANGES: Dict[str, Tuple[float, float]] = {
    'threshold': (0.0, 100.0),
    'decay_rate': (0.0, 1.0),
    'supervisor_weight': (0.0, 10.0),
    'risk_tolerance': (0.0, 100.0),
    'human_error_rate': (0.0, 1.0),
    'population_count': (float(GENERATOR_MIN_COUNT), float(GENERATOR_MAX_COUNT)),
}

_POLICY_FIELDS = ('threshold', 'decay_rate', 'supervisor_weight', 'risk_tolerance')


def _number(name: str, description: str) -> Dict[str, Any]:
    low, high = _RANGES[name]
    return {"type": "number", "minimum": low, "maximum": high, "description": description}


_JSON_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "$id": "trustsim/config/v1.0",
    "title": "KernelConfig",
    "description": "Trust simulation kernel configuration",
    "type": "object",
    "required": ["version", "tenant_id"],
    "properties": {
        "version": {"type": "string", "description": "Config schema version"},
        "tenant_id": {"type": "string", "minLength": 1, "description": "Owning employer id"},
        "policy": {
            "type": "object",
            "properties": {
                "threshold": _number('threshold', "Pass threshold on the 0-100 scale"),
                "decay_rate": _number('decay_rate', "Added to 1 to form the default decay multiplier"),
                "supervisor_weight": _number('supervisor_weight', "Multiplier on supervisor signals"),
                "risk_tolerance": _number('risk_tolerance', "Highest risk score that still passes"),
            },
        },
        "human_error_rate": _number('human_error_rate', "Default human error rate for deltas"),
        "population_count": {
            "type": "integer",
            "minimum": GENERATOR_MIN_COUNT,
            "maximum": GENERATOR_MAX_COUNT,
            "description": "Default synthetic population size",
        },
        "generator_seed": {"type": "integer", "description": "Default generator seed"},
        "provenance": {"type": "object"},
    },
}

Draft202012Validator.check_schema(_JSON_SCHEMA)
_COMPILED_VALIDATOR = Draft202012Validator(_JSON_SCHEMA)

_DEFAULTS: Dict[str, Any] = {
    'version': '1.0',
    'policy': {
        'threshold': DEFAULT_THRESHOLD,
        'decay_rate': DEFAULT_DECAY_RATE,
        'supervisor_weight': DEFAULT_SUPERVISOR_WEIGHT,
        'risk_tolerance': DEFAULT_RISK_TOLERANCE,
    },
    'human_error_rate': 0.0,
    'population_count': GENERATOR_MIN_COUNT,
    'generator_seed': 0,
}

_KNOWN_FIELDS = {
    'version', 'tenant_id', 'policy', 'human_error_rate',
    'population_count', 'generator_seed', 'provenance',
}


def _compute_hash(data: Dict[str, Any]) -> str:
    """Compute SHA3-256 hash of config content (excluding provenance hash)."""
    hashable = {k: v for k, v in data.items() if k != "provenance"}
    if "provenance" in data and data["provenance"]:
        prov = dict(data["provenance"])
        prov.pop("config_hash", None)
        hashable["provenance"] = prov

    canonical = json.dumps(hashable, sort_keys=True, separators=(',', ':'))
    return hashlib.sha3_256(canonical.encode()).hexdigest()[:16]


# =============================================================================
# ConfigProvenance Dataclass
# =============================================================================

@dataclass(frozen=True)
class ConfigProvenance:
    """Who created the config, when, why, and its content hash."""
    author: str
    created_at: str
    reason: str
    config_hash: str

    @classmethod
    def create(cls, author: str, reason: str, config_hash: str = "") -> ConfigProvenance:
        """Create provenance with current timestamp."""
        return cls(
            author=author,
            created_at=datetime.now(timezone.utc).isoformat(),
            reason=reason,
            config_hash=config_hash,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# =============================================================================
# KernelConfig Dataclass
# =============================================================================

@dataclass(frozen=True)
class KernelConfig:
    """
    Kernel configuration.

    Attributes:
        version: Config schema version (e.g., "1.0")
        tenant_id: Owning employer id
        policy: Scoring policy handed to the engines
        human_error_rate: Default error rate applied to caller-built deltas
        population_count: Default synthetic population size (10-1000)
        generator_seed: Default generator seed
        provenance: Who/when/why tracking
    """
    version: str
    tenant_id: str
    provenance: ConfigProvenance
    policy: Policy = field(default_factory=Policy)
    human_error_rate: float = 0.0
    population_count: int = GENERATOR_MIN_COUNT
    generator_seed: int = 0

    @property
    def schema(self) -> Dict[str, Any]:
        """Returns JSON Schema dict for external validation."""
        return _JSON_SCHEMA.copy()

    @property
    def config_hash(self) -> str:
        return self.provenance.config_hash

    def engine_context(self) -> EngineContext:
        return EngineContext(policy=self.policy)

    def intent(self) -> IntentModifiers:
        """Intent modifiers carrying the configured default error rate."""
        return IntentModifiers(human_error_rate=self.human_error_rate)

    def explain(self) -> str:
        """Human-readable summary, flagging values that differ from defaults."""
        lines = [f"KernelConfig v{self.version} for {self.tenant_id}"]
        for name in _POLICY_FIELDS:
            value = getattr(self.policy, name)
            marker = "" if value == _DEFAULTS['policy'][name] else "  (non-default)"
            lines.append(f"  policy.{name}: {value}{marker}")
        for name in ('human_error_rate', 'population_count', 'generator_seed'):
            value = getattr(self, name)
            marker = "" if value == _DEFAULTS[name] else "  (non-default)"
            lines.append(f"  {name}: {value}{marker}")
        lines.append(f"  provenance: {self.provenance.author} / {self.provenance.reason}")
        lines.append(f"  hash: {self.config_hash}")
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """Export as dictionary, provenance included."""
        return {
            'version': self.version,
            'tenant_id': self.tenant_id,
            'policy': self.policy.to_dict(),
            'human_error_rate': self.human_error_rate,
            'population_count': self.population_count,
            'generator_seed': self.generator_seed,
            'provenance': self.provenance.to_dict(),
        }

    def to_json(self, pretty: bool = False) -> str:
        if pretty:
            return json.dumps(self.to_dict(), indent=2, sort_keys=True)
        return json.dumps(self.to_dict(), separators=(',', ':'))

    def save(self, path: str) -> None:
        """Write config to .json or .yaml, refreshing config_hash first."""
        data = self.to_dict()
        data['provenance']['config_hash'] = _compute_hash(data)

        path_obj = Path(path)
        if path_obj.suffix in ('.yaml', '.yml'):
            content = yaml.safe_dump(data, default_flow_style=False, sort_keys=True)
        else:
            content = json.dumps(data, indent=2, sort_keys=True)
        path_obj.write_text(content)

    @classmethod
    def default(cls, tenant_id: str = "default") -> KernelConfig:
        """Default config: stock policy, zero error rate."""
        data = json.loads(json.dumps(_DEFAULTS))
        data['tenant_id'] = tenant_id
        data['provenance'] = ConfigProvenance.create(
            author="system", reason="default config").to_dict()
        return _create_config(data, validate=True, strict=True)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], validate: bool = True,
                  strict: bool = False) -> KernelConfig:
        """Create from dictionary. Same validation as load()."""
        return _create_config(data, validate, strict)


# =============================================================================
# Module-Level Functions
# =============================================================================

def load(path: str, validate: bool = True, strict: bool = False) -> KernelConfig:
    """
    Load config from JSON/YAML file.

    Args:
        path: Path to config file
        validate: Whether to validate (default True)
        strict: If True, raise on invalid; if False, self-heal with warnings

    Returns:
        Validated, frozen KernelConfig instance

    Raises:
        FileNotFoundError: If path doesn't exist
        ValueError: If strict=True and validation fails
    """
    path_obj = Path(path)

    if not path_obj.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    content = path_obj.read_text()

    if path_obj.suffix in ('.yaml', '.yml'):
        data = yaml.safe_load(content)
    else:
        data = json.loads(content)

    return _create_config(data or {}, validate, strict)


def default(tenant_id: str = "default") -> KernelConfig:
    """Convenience wrapper for KernelConfig.default()."""
    return KernelConfig.default(tenant_id)


# =============================================================================
# Internal Validation Functions
# =============================================================================

def _validate(data: Dict[str, Any]) -> Tuple[List[str], List[str]]:
    """
    Validate config data.

    Returns: (errors, range_problems)

    errors are structural (wrong type, missing required field) and cannot be
    healed. range_problems are out-of-range numbers that clamping fixes.
    """
    errors: List[str] = []
    ranges: List[str] = []

    for err in _COMPILED_VALIDATOR.iter_errors(data):
        if err.validator in ('minimum', 'maximum'):
            ranges.append(f"Schema: {err.message}")
        else:
            errors.append(f"Schema: {err.message}")

    policy = data.get('policy')
    if isinstance(policy, dict):
        for key in policy:
            if key not in _POLICY_FIELDS:
                ranges.append(f"Unknown policy key: {key}")

    return errors, ranges


def _clamp_field(container: Dict[str, Any], key: str, label: str, warns: List[str]) -> None:
    val = container.get(key)
    if not isinstance(val, (int, float)) or isinstance(val, bool):
        return
    low, high = _RANGES[key]
    if val < low:
        container[key] = low
        warns.append(f"Clamped {label} from {val} to {low}")
    elif val > high:
        container[key] = high
        warns.append(f"Clamped {label} from {val} to {high}")


def _self_heal(data: Dict[str, Any], warns: List[str]) -> Dict[str, Any]:
    """
    Apply self-healing to config data.

    Self-healing behavior:
    - Missing optional field -> use default, add warning
    - Out-of-range value -> clamp to valid range, add warning
    - Unknown field -> ignore, add warning
    """
    healed = dict(data)

    for key, default_val in _DEFAULTS.items():
        if key not in healed:
            healed[key] = json.loads(json.dumps(default_val))
            warns.append(f"Missing optional field '{key}', using default: {default_val}")

    policy = dict(healed['policy']) if isinstance(healed['policy'], dict) else {}
    for key in _POLICY_FIELDS:
        if key not in policy:
            policy[key] = _DEFAULTS['policy'][key]
            warns.append(f"Missing policy.{key}, using default: {policy[key]}")
        _clamp_field(policy, key, f"policy.{key}", warns)
    for key in set(policy) - set(_POLICY_FIELDS):
        del policy[key]
        warns.append(f"Ignoring unknown policy key: {key}")
    healed['policy'] = policy

    _clamp_field(healed, 'human_error_rate', 'human_error_rate', warns)
    _clamp_field(healed, 'population_count', 'population_count', warns)
    if isinstance(healed.get('population_count'), float):
        healed['population_count'] = int(healed['population_count'])

    for key in set(healed) - _KNOWN_FIELDS:
        del healed[key]
        warns.append(f"Ignoring unknown field: {key}")

    return healed


def _create_config(data: Dict[str, Any], validate: bool, strict: bool) -> KernelConfig:
    """
    Internal factory for creating KernelConfig from data.

    Handles validation, self-healing, and hash computation.
    """
    all_warnings: List[str] = []

    if validate:
        errors, ranges = _validate(data)
        if strict and (errors or ranges):
            raise ValueError("Config validation failed:\n" +
                             "\n".join(f"  - {e}" for e in errors + ranges))
        data = _self_heal(data, all_warnings)
        errors, _ = _validate(data)
        if errors:
            raise ValueError("Config validation failed after self-healing:\n" +
                             "\n".join(f"  - {e}" for e in errors))
    else:
        data = _self_heal(data, [])

    for w in all_warnings:
        warnings.warn(f"KernelConfig: {w}", UserWarning, stacklevel=3)

    prov_data: Optional[Dict[str, Any]] = data.get('provenance') if isinstance(
        data.get('provenance'), dict) else None
    if prov_data is not None:
        author = prov_data.get('author', 'unknown')
        created_at = prov_data.get('created_at', datetime.now(timezone.utc).isoformat())
        reason = prov_data.get('reason', 'loaded from file')
    else:
        author, created_at, reason = 'system', datetime.now(timezone.utc).isoformat(), 'created from dict'

    provenance = ConfigProvenance(
        author=author,
        created_at=created_at,
        reason=reason,
        config_hash=_compute_hash(data),
    )

    policy = data['policy']
    return KernelConfig(
        version=str(data.get('version', '1.0')),
        tenant_id=str(data.get('tenant_id', 'default')),
        policy=Policy(
            threshold=float(policy['threshold']),
            decay_rate=float(policy['decay_rate']),
            supervisor_weight=float(policy['supervisor_weight']),
            risk_tolerance=float(policy['risk_tolerance']),
        ),
        human_error_rate=float(data['human_error_rate']),
        population_count=int(data['population_count']),
        generator_seed=int(data['generator_seed']),
        provenance=provenance,
    )
