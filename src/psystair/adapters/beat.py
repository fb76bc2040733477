"""
beat.py
-------

Beat/meter discrimination: the subject hears a pattern with accented
beats and reports whether it is in duple ("2beat") or triple ("3beat")
meter. The adapted quantity is the volume difference in dB between strong
and weak beats; a smaller detectable difference is better.

Strong beats are presented at ``hearing_threshold_average + 30`` dB SPL,
weak beats at ``strong - volume_difference``.

Examples
--------
>>> from psystair.adapters import BeatPatternAdapter
>>> adapter = BeatPatternAdapter(hearing_threshold_average=20.0)
>>> adapter.strong_beat_level, adapter.weak_beat_level
(50.0, 30.0)
>>> trial = adapter.record_response("2beat", "3beat")
>>> trial.correct, round(adapter.current_volume_difference(), 3)
(False, 28.571)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from psystair.adapters.base import (
    CategoricalAdapter,
    CategoricalResult,
    CategoricalTrial,
)
from psystair.data.trial import Trial

BEAT_CATEGORIES = ("2beat", "3beat")


@dataclass(frozen=True)
class BeatTrial(CategoricalTrial):
    strong_beat_level: float
    weak_beat_level: float

    @property
    def volume_difference(self) -> float:
        return self.trial.level

    def to_dict(self) -> dict[str, Any]:
        row = super().to_dict()
        row.update(
            volume_difference=self.volume_difference,
            strong_beat_level=self.strong_beat_level,
            weak_beat_level=self.weak_beat_level,
        )
        return row


@dataclass(frozen=True)
class BeatResult(CategoricalResult):
    trials: tuple[BeatTrial, ...]

    @property
    def volume_difference_threshold(self) -> float:
        return self.threshold

    def to_export_dict(self) -> dict[str, Any]:
        summary = self.summary_dict()
        summary["volume_difference_threshold"] = self.volume_difference_threshold
        return {"summary": summary, "trials": [t.to_dict() for t in self.trials]}


class BeatPatternAdapter(CategoricalAdapter):
    """Beat/meter (2beat vs 3beat) volume-difference staircase."""

    TEST_TYPE = "beat"
    CATEGORIES = BEAT_CATEGORIES

    @property
    def strong_beat_level(self) -> float:
        return self.sound_level

    @property
    def weak_beat_level(self) -> float:
        return self.strong_beat_level - self.current_volume_difference()

    def current_volume_difference(self) -> float:
        return self.current_level()

    def _decorate(self, trial: Trial, actual: str, answer: str) -> BeatTrial:
        return BeatTrial(
            trial=trial,
            actual=actual,
            answer=answer,
            strong_beat_level=self.strong_beat_level,
            weak_beat_level=self.strong_beat_level - trial.level,
        )

    def result(self, now: datetime | None = None) -> BeatResult:
        """
        Terminal result; raises StaircaseNotCompleteError before completion.
        """
        return BeatResult(trials=self.trials, **self._common_fields(now))  # type: ignore[arg-type]
