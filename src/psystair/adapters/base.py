"""
base.py
-------

Shared machinery for the categorical discrimination adapters (beat, tempo,
complex rhythm).

Each adapter owns one StaircaseController. A response is a pair
(actual category, subject's answer); the adapter scores it, feeds the
controller, and returns a decorated trial. Results partition the trials by
category and report per-category and overall accuracy next to the generic
threshold and confidence.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any, ClassVar

from psystair.convergence.analyzer import ConvergenceAnalysis, analyze_convergence
from psystair.convergence.config import ConvergenceConfig, get_convergence_config
from psystair.data.trial import Trial
from psystair.errors import InvalidResponseError
from psystair.staircase.config import STAIRCASE_PRESETS, StaircaseConfig
from psystair.staircase.controller import StaircaseController, StaircaseResult

logger = logging.getLogger(__name__)

# Presentation level above the subject's average hearing threshold.
SOUND_LEVEL_OFFSET_DB = 30.0

# Reversals reported in ConvergenceSummary.final_reversals.
FINAL_REVERSAL_COUNT = 6


@dataclass(frozen=True)
class CategoryAccuracy:
    correct: int
    total: int
    accuracy: float

    @classmethod
    def from_responses(cls, responses: Sequence[bool]) -> CategoryAccuracy:
        total = len(responses)
        correct = sum(1 for r in responses if r)
        return cls(correct=correct, total=total, accuracy=correct / total if total else 0.0)

    def to_dict(self) -> dict[str, Any]:
        return {"correct": self.correct, "total": self.total, "accuracy": self.accuracy}


@dataclass(frozen=True)
class ConvergenceSummary:
    """Compact view of a ConvergenceAnalysis stored with adapter results."""

    is_converged: bool
    reversal_count: int
    final_reversals: tuple[float, ...]
    confidence: float

    @classmethod
    def from_analysis(
        cls, analysis: ConvergenceAnalysis, reversal_levels: Sequence[float]
    ) -> ConvergenceSummary:
        return cls(
            is_converged=analysis.has_converged,
            reversal_count=len(reversal_levels),
            final_reversals=tuple(reversal_levels[-FINAL_REVERSAL_COUNT:]),
            confidence=analysis.confidence,
        )


@dataclass(frozen=True)
class CategoricalTrial:
    """
    A staircase trial decorated with the categorical response.

    Attributes
    ----------
    trial : Trial
        The controller's record.
    actual : str
        Category that was presented.
    answer : str
        Category the subject chose.
    """

    trial: Trial
    actual: str
    answer: str

    @property
    def correct(self) -> bool:
        return self.trial.response

    @property
    def level(self) -> float:
        return self.trial.level

    @property
    def reaction_time_ms(self) -> float | None:
        return self.trial.reaction_time_ms

    def to_dict(self) -> dict[str, Any]:
        return {
            "trial_index": self.trial.index,
            "level": self.trial.level,
            "actual": self.actual,
            "answer": self.answer,
            "correct": self.correct,
            "reaction_time_ms": self.reaction_time_ms,
            "is_reversal": self.trial.is_reversal,
            "timestamp": self.trial.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class CategoricalResult:
    """
    Common part of every categorical adapter result.

    ``accuracy`` is keyed by category name plus ``"overall"``.
    """

    threshold: float
    confidence: float
    low_confidence: bool
    total_trials: int
    total_reversals: int
    duration_ms: float
    accuracy: dict[str, CategoryAccuracy]
    convergence: ConvergenceSummary

    def summary_dict(self) -> dict[str, Any]:
        summary: dict[str, Any] = {
            "threshold": self.threshold,
            "confidence": self.confidence,
            "low_confidence": self.low_confidence,
            "total_trials": self.total_trials,
            "total_reversals": self.total_reversals,
            "duration_ms": self.duration_ms,
            "convergence_confidence": self.convergence.confidence,
            "is_converged": self.convergence.is_converged,
        }
        for name, acc in self.accuracy.items():
            summary[f"{name}_accuracy"] = acc.accuracy
        return summary


def category_accuracy(
    trials: Sequence[CategoricalTrial], categories: Sequence[str]
) -> dict[str, CategoryAccuracy]:
    """Per-category and overall accuracy of decorated trials."""
    accuracy = {
        name: CategoryAccuracy.from_responses([t.correct for t in trials if t.actual == name])
        for name in categories
    }
    accuracy["overall"] = CategoryAccuracy.from_responses([t.correct for t in trials])
    return accuracy


class CategoricalAdapter:
    """
    Base class for two-alternative categorical staircase tests.

    Subclasses set ``TEST_TYPE`` and ``CATEGORIES`` and implement
    ``_decorate`` and ``result``.

    Parameters
    ----------
    hearing_threshold_average : float
        Subject's average hearing threshold in dB SPL, used to derive the
        presentation level.
    config : StaircaseConfig, optional
        Defaults to the preset for ``TEST_TYPE``.
    convergence_config : ConvergenceConfig, optional
        Defaults to the preset for ``TEST_TYPE``.
    clock : callable, optional
        Passed to the controller; also used as the analyzer's ``now``.
    """

    TEST_TYPE: ClassVar[str]
    CATEGORIES: ClassVar[tuple[str, str]]

    def __init__(
        self,
        hearing_threshold_average: float,
        config: StaircaseConfig | None = None,
        convergence_config: ConvergenceConfig | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
    ):
        self.hearing_threshold_average = float(hearing_threshold_average)
        self.config = config if config is not None else STAIRCASE_PRESETS[self.TEST_TYPE]
        self.convergence_config = (
            convergence_config
            if convergence_config is not None
            else get_convergence_config(self.TEST_TYPE)
        )
        self._clock = clock
        self.controller = StaircaseController(self.config, clock=clock)
        self._trials: list[CategoricalTrial] = []

    @property
    def sound_level(self) -> float:
        """Presentation level in dB SPL."""
        return self.hearing_threshold_average + SOUND_LEVEL_OFFSET_DB

    def current_level(self) -> float:
        return self.controller.current_level()

    @property
    def trials(self) -> tuple[CategoricalTrial, ...]:
        return tuple(self._trials)

    @property
    def is_complete(self) -> bool:
        return self.controller.is_complete

    def record_response(
        self, actual: str, answer: str, reaction_time_ms: float | None = None
    ) -> CategoricalTrial:
        """
        Score one categorical response and advance the staircase.

        Raises
        ------
        InvalidResponseError
            If either category is unknown or the reaction time is invalid.
        StaircaseCompletedError
            If the staircase already terminated.
        """
        for name, value in (("actual", actual), ("answer", answer)):
            if value not in self.CATEGORIES:
                raise InvalidResponseError(
                    f"{name} must be one of {self.CATEGORIES}, got {value!r}"
                )
        trial = self.controller.record_trial(actual == answer, reaction_time_ms)
        decorated = self._decorate(trial, actual, answer)
        self._trials.append(decorated)
        logger.debug(
            "%s trial %d: actual=%s answer=%s level=%.4g",
            self.TEST_TYPE,
            trial.index,
            actual,
            answer,
            trial.level,
        )
        return decorated

    def _decorate(self, trial: Trial, actual: str, answer: str) -> CategoricalTrial:
        raise NotImplementedError

    def analysis(self, now: datetime | None = None) -> ConvergenceAnalysis:
        if now is None and self._clock is not None:
            now = self._clock()
        return analyze_convergence(
            self.controller.trials,
            self.controller.started_at,
            self.controller.current_level(),
            self.convergence_config,
            now=now,
        )

    def accuracy(self) -> dict[str, CategoryAccuracy]:
        return category_accuracy(self._trials, self.CATEGORIES)

    def _common_fields(self, now: datetime | None = None) -> dict[str, Any]:
        """Fields shared by every CategoricalResult subclass."""
        staircase: StaircaseResult = self.controller.result()
        return {
            "threshold": staircase.threshold,
            "confidence": staircase.confidence,
            "low_confidence": staircase.low_confidence,
            "total_trials": staircase.total_trials,
            "total_reversals": staircase.total_reversals,
            "duration_ms": staircase.duration_ms,
            "accuracy": self.accuracy(),
            "convergence": ConvergenceSummary.from_analysis(
                self.analysis(now), self.controller.reversal_levels
            ),
        }

    def reset(self) -> None:
        self.controller.reset()
        self._trials = []
