"""
sessions.py
-----------

Comparison of thresholds across repeated sessions of the same test.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal, Protocol

import numpy as np

from psystair.errors import InsufficientDataError
from psystair.utils.math import as_finite_array, coefficient_of_variation, detect_trend

SessionTrend = Literal["improving", "declining", "stable"]


class ThresholdLike(Protocol):
    threshold: float
    confidence: float


@dataclass(frozen=True)
class SessionComparison:
    """
    Attributes
    ----------
    improvement : float
        ``(first - last) / first``; positive when the threshold dropped.
    consistency : float
        ``clamp(1 - CV(thresholds))``.
    reliability : float
        Mean confidence across sessions.
    trend : {"improving", "declining", "stable"}
        Slope trend of the thresholds, read through ``lower_is_better``.
    """

    improvement: float
    consistency: float
    reliability: float
    trend: SessionTrend


def compare_sessions(
    results: Sequence[ThresholdLike], *, lower_is_better: bool = True
) -> SessionComparison:
    """
    Compare two or more completed results in chronological order.

    Parameters
    ----------
    results : sequence
        Objects with ``threshold`` and ``confidence`` (StaircaseResult,
        ThresholdEstimate, ...), oldest first.
    lower_is_better : bool, default=True
        Whether a falling threshold counts as improvement. True for every
        bundled test (smaller detectable difference is better).

    Raises
    ------
    InsufficientDataError
        With fewer than two results.
    NonFiniteInputError
        If any threshold or confidence is NaN or infinite.
    """
    if len(results) < 2:
        raise InsufficientDataError(
            f"compare_sessions needs at least 2 results, got {len(results)}"
        )
    thresholds = as_finite_array([r.threshold for r in results], name="thresholds")
    confidences = as_finite_array([r.confidence for r in results], name="confidences")

    first, last = float(thresholds[0]), float(thresholds[-1])
    improvement = (first - last) / first if first != 0.0 else 0.0

    cv = coefficient_of_variation(thresholds)
    consistency = max(0.0, min(1.0, 1.0 - cv)) if np.isfinite(cv) else 0.0

    slope_trend = detect_trend(thresholds)
    if slope_trend == "stable":
        trend: SessionTrend = "stable"
    elif (slope_trend == "decreasing") == lower_is_better:
        trend = "improving"
    else:
        trend = "declining"

    return SessionComparison(
        improvement=improvement,
        consistency=consistency,
        reliability=float(np.mean(confidences)),
        trend=trend,
    )
