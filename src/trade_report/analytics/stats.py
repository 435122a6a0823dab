"""Descriptive statistics over return series.

All helpers accept any float sequence, never raise on short or degenerate
input, and return the documented neutral value instead.
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np


def nearest_rank(sorted_values: Sequence[float], q: float) -> float:
    """Nearest-rank quantile: ``sorted[min(n - 1, floor(q * n))]``."""
    n = len(sorted_values)
    if n == 0:
        return 0.0
    return float(sorted_values[min(n - 1, int(math.floor(q * n)))])


def mean(values: Sequence[float]) -> float:
    return float(np.mean(values)) if len(values) else 0.0


def median(values: Sequence[float]) -> float:
    return float(np.median(values)) if len(values) else 0.0


def sample_std(values: Sequence[float]) -> float:
    """Sample standard deviation (n - 1); 0 for fewer than two values."""
    if len(values) < 2:
        return 0.0
    return float(np.std(values, ddof=1))


def skewness(values: Sequence[float]) -> float:
    """Adjusted Fisher-Pearson sample skewness (needs n >= 3)."""
    n = len(values)
    if n < 3:
        return 0.0
    arr = np.asarray(values, dtype=float)
    s = float(np.std(arr, ddof=1))
    if s == 0:
        return 0.0
    z = (arr - arr.mean()) / s
    return float(n / ((n - 1) * (n - 2)) * np.sum(z ** 3))


def excess_kurtosis(values: Sequence[float]) -> float:
    """Adjusted sample excess kurtosis (needs n >= 4)."""
    n = len(values)
    if n < 4:
        return 0.0
    arr = np.asarray(values, dtype=float)
    s = float(np.std(arr, ddof=1))
    if s == 0:
        return 0.0
    z = (arr - arr.mean()) / s
    head = n * (n + 1) / ((n - 1) * (n - 2) * (n - 3))
    tail = 3 * (n - 1) ** 2 / ((n - 2) * (n - 3))
    return float(head * np.sum(z ** 4) - tail)


def tail_ratio(values: Sequence[float], min_samples: int = 20) -> float:
    """``|P95| / |P5|``; 1 when too short or both tails share a sign."""
    n = len(values)
    if n < min_samples or n == 0:
        return 1.0
    ordered = sorted(values)
    p5 = nearest_rank(ordered, 0.05)
    p95 = nearest_rank(ordered, 0.95)
    if p5 >= 0 or p95 <= 0:
        return 1.0
    return abs(p95 / p5)


def historical_var(values: Sequence[float], confidence: float = 0.95, min_samples: int = 10) -> float:
    """Historical VaR as a positive loss figure in the units of *values*."""
    if len(values) < min_samples:
        return 0.0
    return abs(nearest_rank(sorted(values), 1.0 - confidence))


def autocorrelation(values: Sequence[float], min_samples: int = 10) -> float:
    """Lag-1 autocorrelation."""
    n = len(values)
    if n < min_samples:
        return 0.0
    arr = np.asarray(values, dtype=float)
    dev = arr - arr.mean()
    denom = float(np.sum(dev ** 2))
    if denom == 0:
        return 0.0
    return float(np.sum(dev[:-1] * dev[1:]) / denom)


def downside_deviation(values: Sequence[float]) -> float:
    """Root mean square of the negative values (0 if there are none)."""
    neg = np.asarray([v for v in values if v < 0], dtype=float)
    if neg.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(neg ** 2)))


def pearson(xs: Sequence[float], ys: Sequence[float]) -> float:
    """Pearson r of two aligned series, clamped to [-1, 1].

    0 when the series are shorter than two points or either is constant.
    """
    if len(xs) != len(ys) or len(xs) < 2:
        return 0.0
    x = np.asarray(xs, dtype=float)
    y = np.asarray(ys, dtype=float)
    dx = x - x.mean()
    dy = y - y.mean()
    var_x = float(np.sum(dx ** 2))
    var_y = float(np.sum(dy ** 2))
    if var_x == 0 or var_y == 0:
        return 0.0
    r = float(np.sum(dx * dy)) / math.sqrt(var_x * var_y)
    return max(-1.0, min(1.0, r))
