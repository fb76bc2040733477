"""
hearing.py
----------

Pure-tone hearing threshold, measured independently at 1000, 2000 and
4000 Hz. The adapted quantity is the presentation level in dB SPL; each
frequency has its own StaircaseController and the subject's answer is
simply "heard" or "not heard".

The session result averages the thresholds of the converged frequencies.
That average is the ``hearing_threshold_average`` the discrimination
adapters use to set their presentation level.

Examples
--------
>>> from psystair.adapters import HearingThresholdAdapter, classify_hearing_loss
>>> adapter = HearingThresholdAdapter()
>>> adapter.current_frequency, adapter.current_level()
(1000, 40.0)
>>> _ = adapter.record_response(heard=False)
>>> adapter.current_level()
48.0
>>> classify_hearing_loss(32.0)
'mild'
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

from psystair.adapters.base import FINAL_REVERSAL_COUNT, ConvergenceSummary
from psystair.convergence.analyzer import ConvergenceAnalysis, analyze_convergence
from psystair.convergence.config import HEARING_CONVERGENCE_CONFIG, ConvergenceConfig
from psystair.data.trial import Trial
from psystair.errors import ConfigurationError, InvalidResponseError
from psystair.staircase.config import HEARING_STAIRCASE_CONFIG, StaircaseConfig
from psystair.staircase.controller import StaircaseController, utcnow

logger = logging.getLogger(__name__)

HEARING_FREQUENCIES: tuple[int, ...] = (1000, 2000, 4000)

HearingLossLevel = Literal["normal", "mild", "moderate", "severe", "profound"]
ThresholdPatternKind = Literal["flat", "sloping", "rising", "notched"]
ReliabilityGrade = Literal["excellent", "good", "fair", "poor"]


@dataclass(frozen=True)
class HearingTrial:
    trial: Trial
    frequency: int
    reaction_time_ms: float | None

    @property
    def db_level(self) -> float:
        return self.trial.level

    @property
    def heard(self) -> bool:
        return self.trial.response

    def to_dict(self) -> dict[str, Any]:
        return {
            "trial_index": self.trial.index,
            "frequency": self.frequency,
            "db_level": self.db_level,
            "heard": self.heard,
            "reaction_time_ms": self.reaction_time_ms,
            "is_reversal": self.trial.is_reversal,
            "timestamp": self.trial.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class HearingResult:
    frequency: int
    threshold_db: float
    confidence: float
    low_confidence: bool
    total_trials: int
    total_reversals: int
    duration_ms: float
    trials: tuple[HearingTrial, ...]
    convergence: ConvergenceSummary


@dataclass(frozen=True)
class HearingSessionResult:
    """
    Attributes
    ----------
    started_at, completed_at : datetime
        ``completed_at`` is None until every frequency has converged.
    results : dict[int, HearingResult]
        One entry per frequency that produced a result.
    average_threshold : float | None
        Mean threshold over converged frequencies; None if none converged.
    """

    started_at: datetime
    completed_at: datetime | None
    frequencies: tuple[int, ...]
    results: dict[int, HearingResult]
    is_completed: bool
    average_threshold: float | None

    def to_export_dict(self) -> dict[str, Any]:
        return {
            "summary": {
                "started_at": self.started_at.isoformat(),
                "completed_at": self.completed_at.isoformat() if self.completed_at else None,
                "is_completed": self.is_completed,
                "average_threshold": self.average_threshold,
                "thresholds": {f: r.threshold_db for f, r in self.results.items()},
            },
            "trials": [t.to_dict() for r in self.results.values() for t in r.trials],
        }


class HearingThresholdAdapter:
    """
    Multi-frequency hearing threshold staircase.

    Parameters
    ----------
    config : StaircaseConfig, optional
        Applied to every frequency. Defaults to HEARING_STAIRCASE_CONFIG.
    convergence_config : ConvergenceConfig, optional
        Defaults to HEARING_CONVERGENCE_CONFIG. That preset lets
        ``is_frequency_complete`` report QUALITY_THRESHOLD convergence on the
        first clean reversal; raise ``quality_min_reversals`` to delay it.
    frequencies : sequence of int, optional
        Test frequencies in Hz, in presentation order.
    clock : callable, optional
        Zero-argument callable returning the current datetime.
    """

    def __init__(
        self,
        config: StaircaseConfig | None = None,
        convergence_config: ConvergenceConfig | None = None,
        *,
        frequencies: Sequence[int] = HEARING_FREQUENCIES,
        clock: Callable[[], datetime] | None = None,
    ):
        if not frequencies:
            raise ConfigurationError("at least one test frequency is required")
        self.config = config if config is not None else HEARING_STAIRCASE_CONFIG
        self.convergence_config = (
            convergence_config if convergence_config is not None else HEARING_CONVERGENCE_CONFIG
        )
        self.frequencies = tuple(int(f) for f in frequencies)
        self._clock = clock
        self.reset_all()

    # ------------------------------------------------------------------
    # FREQUENCY NAVIGATION
    # ------------------------------------------------------------------
    def set_frequency(self, frequency: int) -> None:
        if frequency not in self._controllers:
            raise InvalidResponseError(
                f"unsupported frequency {frequency} Hz; expected one of {self.frequencies}"
            )
        self.current_frequency = frequency

    def next_frequency(self) -> int | None:
        """Move to the next frequency; None (and no move) after the last one."""
        index = self.frequencies.index(self.current_frequency) + 1
        if index >= len(self.frequencies):
            return None
        self.current_frequency = self.frequencies[index]
        return self.current_frequency

    def previous_frequency(self) -> int | None:
        index = self.frequencies.index(self.current_frequency) - 1
        if index < 0:
            return None
        self.current_frequency = self.frequencies[index]
        return self.current_frequency

    # ------------------------------------------------------------------
    # TRIALS
    # ------------------------------------------------------------------
    def controller(self, frequency: int | None = None) -> StaircaseController:
        return self._controllers[self.current_frequency if frequency is None else frequency]

    def current_level(self) -> float:
        """Presentation level in dB SPL at the current frequency."""
        return self.controller().current_level()

    def record_response(self, heard: bool, reaction_time_ms: float | None = None) -> HearingTrial:
        trial = self.controller().record_trial(heard, reaction_time_ms)
        decorated = HearingTrial(
            trial=trial, frequency=self.current_frequency, reaction_time_ms=trial.reaction_time_ms
        )
        self._trials[self.current_frequency].append(decorated)
        logger.debug(
            "hearing %d Hz trial %d: %.1f dB heard=%s",
            self.current_frequency,
            trial.index,
            trial.level,
            trial.response,
        )
        return decorated

    def analysis(self, frequency: int | None = None, now: datetime | None = None) -> ConvergenceAnalysis:
        controller = self.controller(frequency)
        if now is None and self._clock is not None:
            now = self._clock()
        return analyze_convergence(
            controller.trials,
            controller.started_at,
            controller.current_level(),
            self.convergence_config,
            now=now,
        )

    def is_frequency_complete(self, frequency: int | None = None) -> bool:
        controller = self.controller(frequency)
        return controller.is_complete or self.analysis(frequency).has_converged

    def is_session_complete(self) -> bool:
        return all(self.is_frequency_complete(f) for f in self.frequencies)

    # ------------------------------------------------------------------
    # RESULTS
    # ------------------------------------------------------------------
    def result(self, frequency: int | None = None, now: datetime | None = None) -> HearingResult | None:
        """
        Result for one frequency (current by default).

        Returns None if that frequency has no trials yet. Before the staircase
        terminates the threshold is the controller's running estimate.
        """
        frequency = self.current_frequency if frequency is None else frequency
        controller = self.controller(frequency)
        if controller.trial_count == 0:
            return None

        if controller.is_complete:
            staircase = controller.result()
            threshold, confidence = staircase.threshold, staircase.confidence
            low_confidence, duration_ms = staircase.low_confidence, staircase.duration_ms
        else:
            threshold, confidence = controller.estimate_threshold()
            low_confidence = controller.reversal_count < 4
            last = controller.trials[-1].timestamp
            duration_ms = (last - controller.started_at).total_seconds() * 1000.0

        analysis = self.analysis(frequency, now)
        return HearingResult(
            frequency=frequency,
            threshold_db=threshold,
            confidence=confidence,
            low_confidence=low_confidence,
            total_trials=controller.trial_count,
            total_reversals=controller.reversal_count,
            duration_ms=duration_ms,
            trials=tuple(self._trials[frequency]),
            convergence=ConvergenceSummary.from_analysis(analysis, controller.reversal_levels),
        )

    def session_result(self, now: datetime | None = None) -> HearingSessionResult:
        results: dict[int, HearingResult] = {}
        converged: list[float] = []
        for frequency in self.frequencies:
            result = self.result(frequency, now)
            if result is None:
                continue
            results[frequency] = result
            if result.convergence.is_converged:
                converged.append(result.threshold_db)

        is_completed = len(converged) == len(self.frequencies)
        completed_at = None
        if is_completed:
            completed_at = now or (self._clock or utcnow)()
        return HearingSessionResult(
            started_at=self.started_at,
            completed_at=completed_at,
            frequencies=self.frequencies,
            results=results,
            is_completed=is_completed,
            average_threshold=sum(converged) / len(converged) if converged else None,
        )

    # ------------------------------------------------------------------
    # RESET
    # ------------------------------------------------------------------
    def reset_frequency(self, frequency: int | None = None) -> None:
        frequency = self.current_frequency if frequency is None else frequency
        self._controllers[frequency].reset()
        self._trials[frequency] = []

    def reset_all(self) -> None:
        self._controllers = {
            f: StaircaseController(self.config, clock=self._clock) for f in self.frequencies
        }
        self._trials: dict[int, list[HearingTrial]] = {f: [] for f in self.frequencies}
        self.current_frequency = self.frequencies[0]
        self.started_at = (self._clock or utcnow)()


# ----------------------------------------------------------------------
# INTERPRETATION
# ----------------------------------------------------------------------
def classify_hearing_loss(threshold_db: float) -> HearingLossLevel:
    """Degree of hearing loss: normal <= 25 < mild <= 40 < moderate <= 70 < severe <= 90 < profound."""
    if threshold_db <= 25:
        return "normal"
    if threshold_db <= 40:
        return "mild"
    if threshold_db <= 70:
        return "moderate"
    if threshold_db <= 90:
        return "severe"
    return "profound"


@dataclass(frozen=True)
class ThresholdPattern:
    pattern: ThresholdPatternKind
    max_difference: float


def analyze_threshold_pattern(
    results: Mapping[int, HearingResult] | Mapping[int, float],
) -> ThresholdPattern:
    """
    Shape of the audiogram across ascending frequencies.

    Parameters
    ----------
    results : mapping
        Frequency -> HearingResult (or threshold in dB).

    Returns
    -------
    ThresholdPattern
        "flat" when no adjacent difference exceeds 10 dB (or fewer than two
        frequencies); otherwise "sloping" (mean step > 5 dB, high frequencies
        worse), "rising" (mean step < -5 dB) or "notched".
    """
    thresholds = [
        r.threshold_db if isinstance(r, HearingResult) else float(r)
        for _, r in sorted(results.items())
    ]
    if len(thresholds) < 2:
        return ThresholdPattern(pattern="flat", max_difference=0.0)

    differences = [b - a for a, b in zip(thresholds[:-1], thresholds[1:])]
    max_difference = max(abs(d) for d in differences)
    average = sum(differences) / len(differences)
    if max_difference <= 10:
        pattern: ThresholdPatternKind = "flat"
    elif average > 5:
        pattern = "sloping"
    elif average < -5:
        pattern = "rising"
    else:
        pattern = "notched"
    return ThresholdPattern(pattern=pattern, max_difference=max_difference)


@dataclass(frozen=True)
class ReliabilityScore:
    score: float
    convergence: float
    consistency: float
    trial_count: float
    overall: ReliabilityGrade


def evaluate_reliability(result: HearingResult) -> ReliabilityScore:
    """
    Reliability of one frequency's threshold.

    Weighted 0.5 x convergence confidence, 0.3 x reversal consistency
    (``1 - range / 40 dB`` over the final reversals, 0.5 with fewer than
    four), 0.2 x ``min(trials / 20, 1)``.
    """
    reversals = result.convergence.final_reversals[-FINAL_REVERSAL_COUNT:]
    if len(reversals) >= 4:
        consistency = max(0.0, 1 - (max(reversals) - min(reversals)) / 40)
    else:
        consistency = 0.5
    trial_score = min(len(result.trials) / 20, 1.0)
    convergence = result.convergence.confidence
    score = convergence * 0.5 + consistency * 0.3 + trial_score * 0.2

    if score >= 0.8:
        overall: ReliabilityGrade = "excellent"
    elif score >= 0.6:
        overall = "good"
    elif score >= 0.4:
        overall = "fair"
    else:
        overall = "poor"
    return ReliabilityScore(
        score=score,
        convergence=convergence,
        consistency=consistency,
        trial_count=trial_score,
        overall=overall,
    )
