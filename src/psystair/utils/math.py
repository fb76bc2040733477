"""
math.py
-------

Numeric helpers shared by the controller, the convergence analyzer and the
statistics module.

Includes:
- as_finite_array : validate and convert a sequence to a float64 array.
- population_std : standard deviation with ddof=0.
- coefficient_of_variation : stddev / |mean|.
- linear_slope : least-squares slope over an ordered sequence.
- detect_trend : slope sign -> "increasing" / "decreasing" / "stable".
- variance_trend : first-half vs second-half variance -> "converging" / ...

All dispersion measures use the population (ddof=0) convention.

Examples
--------
>>> from psystair.utils import math
>>> round(math.coefficient_of_variation([60, 62, 60, 62]), 4)
0.0164
>>> math.detect_trend([10.0, 8.0, 6.0, 4.0])
'decreasing'
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Literal

import numpy as np
from scipy import stats

from psystair.errors import NonFiniteInputError

SlopeTrend = Literal["increasing", "decreasing", "stable"]
VarianceTrend = Literal["converging", "diverging", "stable"]

TREND_EPSILON = 0.01


def as_finite_array(values: Sequence[float] | np.ndarray, name: str = "values") -> np.ndarray:
    """
    Convert ``values`` to a 1-D float64 array, rejecting NaN and infinity.

    Raises
    ------
    NonFiniteInputError
        If any element is NaN or infinite.
    """
    arr = np.asarray(values, dtype=np.float64).reshape(-1)
    if not np.all(np.isfinite(arr)):
        raise NonFiniteInputError(f"{name} must be finite, got {arr.tolist()}")
    return arr


def population_std(values: Sequence[float] | np.ndarray) -> float:
    """Population standard deviation (ddof=0); 0.0 for empty input."""
    arr = np.asarray(values, dtype=np.float64)
    if arr.size == 0:
        return 0.0
    return float(np.std(arr))


def coefficient_of_variation(values: Sequence[float] | np.ndarray) -> float:
    """
    Coefficient of variation ``std / |mean|``.

    Returns 0.0 for empty input or when every value is identical, and
    ``inf`` when the mean is zero but the values are spread.
    """
    arr = np.asarray(values, dtype=np.float64)
    if arr.size == 0:
        return 0.0
    std = float(np.std(arr))
    mean = float(np.mean(arr))
    if std == 0.0:
        return 0.0
    if mean == 0.0:
        return float("inf")
    return std / abs(mean)


def linear_slope(values: Sequence[float] | np.ndarray) -> float:
    """
    Least-squares slope of ``values`` against their index 0..n-1.

    Returns 0.0 for fewer than two points.
    """
    arr = np.asarray(values, dtype=np.float64)
    if arr.size < 2:
        return 0.0
    if np.all(arr == arr[0]):
        return 0.0
    return float(stats.linregress(np.arange(arr.size), arr).slope)


def detect_trend(
    values: Sequence[float] | np.ndarray, epsilon: float = TREND_EPSILON
) -> SlopeTrend:
    """
    Classify an ordered sequence by the sign of its least-squares slope.

    Whether "decreasing" means improvement is the caller's decision.

    Parameters
    ----------
    values : sequence of float
        Ordered observations (e.g. reversal levels, session thresholds).
    epsilon : float, default=0.01
        ``|slope| < epsilon`` is reported as "stable".

    Returns
    -------
    {"increasing", "decreasing", "stable"}
    """
    if len(values) < 3:
        return "stable"
    slope = linear_slope(values)
    if abs(slope) < epsilon:
        return "stable"
    return "decreasing" if slope < 0 else "increasing"


def variance_trend(values: Sequence[float] | np.ndarray) -> VarianceTrend:
    """
    Compare the variance of the second half of ``values`` to the first half.

    "converging" when it shrank below 80%, "diverging" when it grew above
    120%, otherwise "stable".
    """
    arr = np.asarray(values, dtype=np.float64)
    if arr.size < 3:
        return "stable"
    half = arr.size // 2
    first_var = float(np.var(arr[:half]))
    second_var = float(np.var(arr[half:]))
    if second_var < first_var * 0.8:
        return "converging"
    if second_var > first_var * 1.2:
        return "diverging"
    return "stable"
