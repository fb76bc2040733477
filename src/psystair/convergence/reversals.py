"""
reversals.py
------------

Reversal extraction from a trial history.

A reversal is identified by ``Trial.is_reversal``; its level is the level
presented on that trial, which is the same value the controller pushes onto
``StaircaseState.reversal_levels``. Everything here is a pure function of
the trial sequence.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from psystair.data.trial import ReversalPoint, Trial
from psystair.utils.math import coefficient_of_variation

# Inter-reversal intervals with CV at or below this count as regular.
REGULARITY_CV = 0.3


def detect_reversals(trials: Sequence[Trial]) -> list[ReversalPoint]:
    """Return one ReversalPoint per reversal trial, oldest first."""
    return [
        ReversalPoint(
            trial_index=trial.index,
            level=trial.level,
            previous_direction=trial.direction.flipped(),
            new_direction=trial.direction,
            step_size=trial.step_size_used,
            timestamp=trial.timestamp,
        )
        for trial in trials
        if trial.is_reversal
    ]


def extract_reversal_levels(trials: Sequence[Trial]) -> list[float]:
    """Levels of the reversal trials, oldest first."""
    return [trial.level for trial in trials if trial.is_reversal]


@dataclass(frozen=True)
class ReversalPattern:
    """
    Spacing of reversals along the trial axis.

    Attributes
    ----------
    intervals : tuple[int, ...]
        Trial-index distance between consecutive reversals.
    average_interval : float
        Mean of ``intervals`` (0 with fewer than two reversals).
    pattern_stability : float
        ``max(0, 1 - CV(intervals))``.
    is_regular : bool
        True when ``CV(intervals) <= 0.3``.
    """

    intervals: tuple[int, ...]
    average_interval: float
    pattern_stability: float
    is_regular: bool


def analyze_reversal_pattern(trials: Sequence[Trial]) -> ReversalPattern:
    indices = [trial.index for trial in trials if trial.is_reversal]
    if len(indices) < 2:
        return ReversalPattern(
            intervals=(), average_interval=0.0, pattern_stability=0.0, is_regular=False
        )
    intervals = np.diff(np.asarray(indices, dtype=np.int64))
    cv = coefficient_of_variation(intervals)
    return ReversalPattern(
        intervals=tuple(int(i) for i in intervals),
        average_interval=float(np.mean(intervals)),
        pattern_stability=max(0.0, 1.0 - cv),
        is_regular=cv <= REGULARITY_CV,
    )
