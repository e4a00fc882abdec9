"""
Numeric helpers shared by the demand generator, the policies and analytics.
"""
import math
from typing import Sequence

import numpy as np


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3, -2.5 -> -2)."""
    return int(math.floor(value + 0.5))


def mean(values: Sequence[float], default: float = 0.0) -> float:
    if len(values) == 0:
        return float(default)
    return float(np.mean(values))


def population_variance(values: Sequence[float]) -> float:
    """Variance dividing by ``n`` (not ``n - 1``); 0 for an empty sequence."""
    if len(values) == 0:
        return 0.0
    return float(np.var(np.asarray(values, dtype=float)))


def population_std(values: Sequence[float]) -> float:
    if len(values) == 0:
        return 0.0
    return float(np.std(np.asarray(values, dtype=float)))


def linear_regression_slope(values: Sequence[float]) -> float:
    """Ordinary least squares slope of ``values`` against their index 0..n-1."""
    if len(values) < 2:
        return 0.0
    y = np.asarray(values, dtype=float)
    x = np.arange(len(y), dtype=float)
    slope, _intercept = np.polyfit(x, y, 1)
    return float(slope)


def safe_ratio(numerator: float, denominator: float, default: float) -> float:
    # Zero denominators never raise; callers pick the neutral value.
    if denominator == 0:
        return float(default)
    return float(numerator) / float(denominator)
