"""
trustsim/numeric.py - Safe Numeric Helpers

Substitution of non-finite input, clamping, rounding and variance.
Every engine and the population engine route numbers through here so NaN
and infinity never reach an output.
"""

import math
from typing import Any, Iterable, Optional, Sequence

import numpy as np

from .constants import SCORE_MAX, SCORE_MIN


def finite(value: Any, default: float) -> float:
    """
    Return value as a finite float, or default.

    None, booleans, non-numeric values, NaN and +/-inf all map to default.
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(result):
        return default
    return result


def optional_finite(value: Any) -> Optional[float]:
    """Like finite() but keeps 'not supplied' distinguishable from a value."""
    if value is None:
        return None
    result = finite(value, math.nan)
    return None if math.isnan(result) else result


def clamp(value: float, low: float, high: float) -> float:
    """Clamp to [low, high]; non-finite input maps to low."""
    value = finite(value, low)
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (builtin round() is banker's)."""
    return int(math.floor(finite(value, 0.0) + 0.5))


def clamp_score(value: float) -> int:
    """Round then clamp to the integer score scale [0, 100]."""
    return int(clamp(round_half_up(value), SCORE_MIN, SCORE_MAX))


def population_variance(values: Sequence[float]) -> float:
    """
    Population variance (ddof=0).

    Fewer than two values -> 0.0 (no spread is measurable).
    """
    if len(values) < 2:
        return 0.0
    arr = np.asarray(values, dtype=np.float64)
    return float(np.var(arr))


def mean(values: Iterable[float]) -> float:
    """Arithmetic mean; empty -> 0.0."""
    arr = np.fromiter(values, dtype=np.float64)
    if arr.size == 0:
        return 0.0
    return float(np.mean(arr))


__all__ = [
    "finite",
    "optional_finite",
    "clamp",
    "round_half_up",
    "clamp_score",
    "population_variance",
    "mean",
]
