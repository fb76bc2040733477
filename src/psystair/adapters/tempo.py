"""
tempo.py
--------

Tempo-direction discrimination: the subject hears a beat sequence whose
inter-onset interval (IOI) changes linearly and reports whether it speeds
up ("accelerando") or slows down ("ritardando"). The adapted quantity is
the IOI slope in ms/beat; a smaller detectable slope is better.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

from psystair.adapters.base import (
    CategoricalAdapter,
    CategoricalResult,
    CategoricalTrial,
)
from psystair.data.trial import Trial

TEMPO_CATEGORIES = ("accelerando", "ritardando")

QualityGrade = Literal["A", "B", "C", "D", "F"]


@dataclass(frozen=True)
class TempoTrial(CategoricalTrial):
    sound_level: float

    @property
    def slope(self) -> float:
        return self.trial.level

    def to_dict(self) -> dict[str, Any]:
        row = super().to_dict()
        row.update(slope=self.slope, sound_level=self.sound_level)
        return row


@dataclass(frozen=True)
class TempoResult(CategoricalResult):
    trials: tuple[TempoTrial, ...]

    @property
    def slope_threshold(self) -> float:
        return self.threshold

    def to_export_dict(self) -> dict[str, Any]:
        summary = self.summary_dict()
        summary["slope_threshold"] = self.slope_threshold
        return {"summary": summary, "trials": [t.to_dict() for t in self.trials]}


@dataclass(frozen=True)
class QualityReport:
    grade: QualityGrade
    score: int


def grade_score(score: float, cutoffs: tuple[float, float, float, float]) -> QualityGrade:
    for grade, cutoff in zip(("A", "B", "C", "D"), cutoffs):
        if score >= cutoff:
            return grade  # type: ignore[return-value]
    return "F"


def evaluate_tempo_quality(result: TempoResult) -> QualityReport:
    """
    Weighted 0-100 score: 50 x convergence confidence, 30 x overall accuracy,
    20 x ``(10 - slope_threshold) / 10`` (floored at 0).

    Grades: A >= 85, B >= 70, C >= 55, D >= 40, else F.
    """
    score = (
        result.convergence.confidence * 50
        + result.accuracy["overall"].accuracy * 30
        + max(0.0, (10 - result.slope_threshold) / 10) * 20
    )
    return QualityReport(grade=grade_score(score, (85, 70, 55, 40)), score=int(round(score)))


class TempoDirectionAdapter(CategoricalAdapter):
    """Accelerando vs ritardando IOI-slope staircase."""

    TEST_TYPE = "tempo"
    CATEGORIES = TEMPO_CATEGORIES

    def current_slope(self) -> float:
        return self.current_level()

    def _decorate(self, trial: Trial, actual: str, answer: str) -> TempoTrial:
        return TempoTrial(trial=trial, actual=actual, answer=answer, sound_level=self.sound_level)

    def result(self, now: datetime | None = None) -> TempoResult:
        """Terminal result; raises StaircaseNotCompleteError before completion."""
        return TempoResult(trials=self.trials, **self._common_fields(now))  # type: ignore[arg-type]
