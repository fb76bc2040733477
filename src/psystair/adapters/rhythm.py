"""
rhythm.py
---------

Complex-rhythm tempo discrimination: like the tempo-direction test, but the
IOI slope is applied to a syncopated rhythm pattern, so the subject must
find the beat before judging its direction. Each adapter is bound to one
rhythm pattern (``pattern_id``) and reports average reaction time.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import numpy as np

from psystair.adapters.base import (
    CategoricalAdapter,
    CategoricalResult,
    CategoricalTrial,
)
from psystair.adapters.tempo import TEMPO_CATEGORIES, QualityReport, grade_score
from psystair.convergence.config import ConvergenceConfig
from psystair.data.trial import Trial
from psystair.staircase.config import StaircaseConfig

DEFAULT_PATTERN_ID = "default"


@dataclass(frozen=True)
class RhythmTrial(CategoricalTrial):
    sound_level: float
    pattern_id: str

    @property
    def slope(self) -> float:
        return self.trial.level

    def to_dict(self) -> dict[str, Any]:
        row = super().to_dict()
        row.update(slope=self.slope, sound_level=self.sound_level, pattern_id=self.pattern_id)
        return row


@dataclass(frozen=True)
class PatternAnalysis:
    pattern_id: str
    average_reaction_time_ms: float | None
    pattern_accuracy: float


@dataclass(frozen=True)
class RhythmResult(CategoricalResult):
    trials: tuple[RhythmTrial, ...]
    pattern: PatternAnalysis

    @property
    def slope_threshold(self) -> float:
        return self.threshold

    def to_export_dict(self) -> dict[str, Any]:
        summary = self.summary_dict()
        summary.update(
            slope_threshold=self.slope_threshold,
            pattern_id=self.pattern.pattern_id,
            average_reaction_time_ms=self.pattern.average_reaction_time_ms,
            pattern_accuracy=self.pattern.pattern_accuracy,
        )
        return {"summary": summary, "trials": [t.to_dict() for t in self.trials]}


def evaluate_rhythm_quality(result: RhythmResult) -> QualityReport:
    """
    Weighted 0-100 score: 0.4 x ``max(0, 100 - 8 x slope_threshold)``,
    0.3 x overall accuracy, 0.2 x pattern accuracy, 0.1 x convergence
    confidence (the last three as percentages).

    Grades: A >= 90, B >= 80, C >= 70, D >= 60, else F.
    """
    score = (
        max(0.0, 100 - result.slope_threshold * 8) * 0.4
        + result.accuracy["overall"].accuracy * 100 * 0.3
        + result.pattern.pattern_accuracy * 100 * 0.2
        + result.convergence.confidence * 100 * 0.1
    )
    return QualityReport(grade=grade_score(score, (90, 80, 70, 60)), score=int(round(score)))


class ComplexRhythmAdapter(CategoricalAdapter):
    """Accelerando vs ritardando staircase over a complex rhythm pattern."""

    TEST_TYPE = "rhythm"
    CATEGORIES = TEMPO_CATEGORIES

    def __init__(
        self,
        hearing_threshold_average: float,
        config: StaircaseConfig | None = None,
        convergence_config: ConvergenceConfig | None = None,
        *,
        pattern_id: str = DEFAULT_PATTERN_ID,
        clock: Callable[[], datetime] | None = None,
    ):
        super().__init__(hearing_threshold_average, config, convergence_config, clock=clock)
        self.pattern_id = pattern_id

    def current_slope(self) -> float:
        return self.current_level()

    def _decorate(self, trial: Trial, actual: str, answer: str) -> RhythmTrial:
        return RhythmTrial(
            trial=trial,
            actual=actual,
            answer=answer,
            sound_level=self.sound_level,
            pattern_id=self.pattern_id,
        )

    def pattern_analysis(self) -> PatternAnalysis:
        trials = self._trials
        reaction_times = [t.reaction_time_ms for t in trials if t.reaction_time_ms is not None]
        return PatternAnalysis(
            pattern_id=self.pattern_id,
            average_reaction_time_ms=float(np.mean(reaction_times)) if reaction_times else None,
            pattern_accuracy=(
                sum(1 for t in trials if t.correct) / len(trials) if trials else 0.0
            ),
        )

    def result(self, now: datetime | None = None) -> RhythmResult:
        """Terminal result; raises StaircaseNotCompleteError before completion."""
        return RhythmResult(
            trials=self.trials,  # type: ignore[arg-type]
            pattern=self.pattern_analysis(),
            **self._common_fields(now),
        )
