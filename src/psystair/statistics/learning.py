"""
learning.py
-----------

Within-session analyses of a trial history: learning curve and
response-level performance metrics.

Both functions need at least ten trials for the half-split analyses and
return neutral values below that.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

import numpy as np

from psystair.data.trial import Trial
from psystair.utils.math import SlopeTrend, as_finite_array, coefficient_of_variation, detect_trend

ErrorPattern = Literal["random", "systematic", "learning"]

MIN_TRIALS_FOR_CURVE = 10
CONVERGENCE_WINDOW = 5
CONVERGENCE_CV = 0.1
ERROR_LEVEL_BAND = 0.1


@dataclass(frozen=True)
class LearningCurve:
    """
    Attributes
    ----------
    learning_rate : float
        Relative variance reduction from the first to the second half,
        ``max(0, (var1 - var2) / var1)``.
    stability_index : float
        ``clamp(1 - CV(second half))``.
    convergence_point : int
        Smallest zero-based trial index ``i`` such that the five trials
        ending at ``i`` (inclusive) have CV <= 0.1; the trial count if never
        reached.
    trend : {"increasing", "decreasing", "stable"}
        Slope trend of the level sequence.
    """

    learning_rate: float
    stability_index: float
    convergence_point: int
    trend: SlopeTrend


@dataclass(frozen=True)
class PerformanceMetrics:
    accuracy: float
    reaction_consistency: float
    adaptation_rate: float
    error_pattern: ErrorPattern


def _levels(trials: Sequence[Trial]) -> np.ndarray:
    return as_finite_array([t.level for t in trials], name="trial levels")


def find_convergence_point(levels: np.ndarray) -> int:
    for end in range(CONVERGENCE_WINDOW, levels.size + 1):
        if coefficient_of_variation(levels[end - CONVERGENCE_WINDOW:end]) <= CONVERGENCE_CV:
            return end - 1
    return int(levels.size)


def analyze_learning_curve(trials: Sequence[Trial]) -> LearningCurve:
    """
    Compare the first and second half of the level sequence.

    Fewer than ten trials yield ``LearningCurve(0, 0, len(trials), "stable")``.

    Raises
    ------
    NonFiniteInputError
        If any trial level is NaN or infinite.
    """
    levels = _levels(trials)
    if levels.size < MIN_TRIALS_FOR_CURVE:
        return LearningCurve(
            learning_rate=0.0,
            stability_index=0.0,
            convergence_point=int(levels.size),
            trend="stable",
        )

    half = levels.size // 2
    first, second = levels[:half], levels[half:]
    first_var = float(np.var(first))
    second_var = float(np.var(second))
    learning_rate = max(0.0, (first_var - second_var) / first_var) if first_var > 0 else 0.0

    stability_cv = coefficient_of_variation(second)
    stability_index = max(0.0, min(1.0, 1.0 - stability_cv)) if np.isfinite(stability_cv) else 0.0

    return LearningCurve(
        learning_rate=learning_rate,
        stability_index=stability_index,
        convergence_point=find_convergence_point(levels),
        trend=detect_trend(levels),
    )


def reaction_consistency(trials: Sequence[Trial]) -> float:
    """
    Fraction of consecutive pairs where a level rise met a correct answer or
    a non-rise met an incorrect one. 1.0 for fewer than two trials.
    """
    if len(trials) < 2:
        return 1.0
    consistent = 0
    for prev, curr in zip(trials[:-1], trials[1:]):
        rose = curr.level > prev.level
        if rose == curr.response:
            consistent += 1
    return consistent / (len(trials) - 1)


def adaptation_rate(trials: Sequence[Trial]) -> float:
    """Mean inter-reversal distance mapped from [1, 10] trials onto [1, 0]."""
    if len(trials) < 5:
        return 0.0
    reversal_indices = [t.index for t in trials if t.is_reversal]
    if len(reversal_indices) < 2:
        return 0.0
    mean_interval = float(np.mean(np.diff(reversal_indices)))
    return max(0.0, min(1.0, (10.0 - mean_interval) / 9.0))


def error_pattern(trials: Sequence[Trial]) -> ErrorPattern:
    if len(trials) < MIN_TRIALS_FOR_CURVE:
        return "random"
    n = len(trials)
    error_positions = [i for i, t in enumerate(trials) if not t.response]
    if not error_positions:
        return "random"

    first_errors = sum(1 for i in error_positions if i < n / 2)
    second_errors = len(error_positions) - first_errors
    if (first_errors - second_errors) / (n / 2) > 0.2:
        return "learning"

    error_levels = np.asarray([trials[i].level for i in error_positions], dtype=np.float64)
    clustered = max(
        int(np.sum(np.abs(error_levels - level) < ERROR_LEVEL_BAND))
        for level in np.unique(error_levels)
    )
    if clustered / error_levels.size > 0.5:
        return "systematic"
    return "random"


def performance_metrics(trials: Sequence[Trial]) -> PerformanceMetrics:
    """
    Response-level performance of one run.

    Returns
    -------
    PerformanceMetrics
        ``accuracy`` (fraction correct), ``reaction_consistency``,
        ``adaptation_rate`` and ``error_pattern``; all zero / "random" for an
        empty history.
    """
    if not trials:
        return PerformanceMetrics(
            accuracy=0.0, reaction_consistency=0.0, adaptation_rate=0.0, error_pattern="random"
        )
    _levels(trials)
    accuracy = sum(1 for t in trials if t.response) / len(trials)
    return PerformanceMetrics(
        accuracy=accuracy,
        reaction_consistency=reaction_consistency(trials),
        adaptation_rate=adaptation_rate(trials),
        error_pattern=error_pattern(trials),
    )
