"""
staircase_session.py
--------------------

StaircaseSession orchestrates one adaptive staircase run.

Responsibilities
----------------
1. Feed responses to a StaircaseController.
2. Re-run the convergence analyzer after every trial.
3. Produce a threshold (statistics module, falling back to the controller's
   same-pass estimate) once the run has converged.

Every ``record`` call returns a SessionOutcome, a tagged union of

- Converged(result, analysis) : the run is finished; ``result`` carries the threshold.
- NotConverged(analysis)      : keep presenting trials.
- Failed(kind, message)       : the response was rejected; state is unchanged.

"Not yet converged" is an ordinary outcome, never an exception.

Examples
--------
>>> from psystair.session import StaircaseSession, Converged
>>> session = StaircaseSession.for_test("hearing")
>>> outcome = session.record(True, reaction_time_ms=420.0)
>>> isinstance(outcome, Converged)
False
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Union

from psystair.convergence.analyzer import ConvergenceAnalysis, analyze_convergence
from psystair.convergence.config import ConvergenceConfig, get_convergence_config
from psystair.errors import (
    InsufficientDataError,
    InvalidResponseError,
    StaircaseCompletedError,
)
from psystair.staircase.controller import StaircaseController, create_staircase_controller
from psystair.statistics.threshold import (
    StatisticsConfig,
    ThresholdEstimate,
    threshold_from_reversals,
)

logger = logging.getLogger(__name__)


class FailureKind(str, Enum):
    ALREADY_CONVERGED = "already_converged"
    STAIRCASE_COMPLETED = "staircase_completed"
    INVALID_RESPONSE = "invalid_response"


@dataclass(frozen=True)
class SessionResult:
    """
    Threshold of a converged session.

    Attributes
    ----------
    threshold, confidence : float
    low_confidence : bool
        True when the statistics module could not be used and the value is
        the controller's same-pass estimate with fewer than four reversals.
    estimate : ThresholdEstimate | None
        Full statistics, when enough reversals were available.
    total_trials, total_reversals : int
    """

    threshold: float
    confidence: float
    low_confidence: bool
    estimate: ThresholdEstimate | None
    total_trials: int
    total_reversals: int


@dataclass(frozen=True)
class Converged:
    result: SessionResult
    analysis: ConvergenceAnalysis


@dataclass(frozen=True)
class NotConverged:
    analysis: ConvergenceAnalysis


@dataclass(frozen=True)
class Failed:
    kind: FailureKind
    message: str


SessionOutcome = Union[Converged, NotConverged, Failed]


class StaircaseSession:
    """
    High-level staircase orchestrator.

    Parameters
    ----------
    controller : StaircaseController
        Controller owning the trial state.
    convergence_config : ConvergenceConfig, optional
        Criteria for the analyzer. Defaults to the hearing preset.
    statistics_config : StatisticsConfig, optional
        Options for the final threshold estimate.
    clock : callable, optional
        Evaluation time for the analyzer; wall clock by default.

    Attributes
    ----------
    outcome : SessionOutcome or None
        Outcome of the most recent accepted response.
    """

    def __init__(
        self,
        controller: StaircaseController,
        convergence_config: ConvergenceConfig | None = None,
        statistics_config: StatisticsConfig | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
    ):
        self.controller = controller
        self.convergence_config = (
            convergence_config
            if convergence_config is not None
            else get_convergence_config("hearing")
        )
        self.statistics_config = statistics_config
        self._clock = clock
        self.outcome: SessionOutcome | None = None

    @classmethod
    def for_test(
        cls,
        test_type: str,
        *,
        statistics_config: StatisticsConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> StaircaseSession:
        """
        Session wired with the staircase and convergence presets of ``test_type``.

        The presets keep ``quality_min_reversals=1``, so a single clean
        reversal already converges with QUALITY_THRESHOLD. Build the session
        directly with ``get_convergence_config(test_type).with_overrides(
        quality_min_reversals=...)`` to require more reversals first.
        """
        return cls(
            create_staircase_controller(test_type, clock=clock),
            get_convergence_config(test_type),
            statistics_config,
            clock=clock,
        )

    @property
    def has_converged(self) -> bool:
        return isinstance(self.outcome, Converged)

    def current_level(self) -> float:
        return self.controller.current_level()

    # ------------------------------------------------------------------
    # TRIAL INTERFACE
    # ------------------------------------------------------------------
    def record(self, correct: bool, reaction_time_ms: float | None = None) -> SessionOutcome:
        """
        Record one response and report where the run stands.

        Returns
        -------
        SessionOutcome
            Failed when the session already converged or the controller
            rejected the response; otherwise Converged or NotConverged.
        """
        if self.has_converged:
            return Failed(
                FailureKind.ALREADY_CONVERGED,
                f"session converged after {self.controller.trial_count} trials",
            )
        try:
            self.controller.record_trial(correct, reaction_time_ms)
        except StaircaseCompletedError as exc:
            return Failed(FailureKind.STAIRCASE_COMPLETED, str(exc))
        except InvalidResponseError as exc:
            return Failed(FailureKind.INVALID_RESPONSE, str(exc))

        analysis = self.analyze()
        if analysis.has_converged or self.controller.is_complete:
            result = self.threshold()
            logger.info(
                "session converged (%s) after %d trials: threshold=%.4g confidence=%.3f",
                analysis.reason.value,
                self.controller.trial_count,
                result.threshold,
                result.confidence,
            )
            self.outcome = Converged(result, analysis)
        else:
            self.outcome = NotConverged(analysis)
        return self.outcome

    def analyze(self) -> ConvergenceAnalysis:
        now = self._clock() if self._clock is not None else None
        return analyze_convergence(
            self.controller.trials,
            self.controller.started_at,
            self.controller.current_level(),
            self.convergence_config,
            now=now,
        )

    def threshold(self) -> SessionResult:
        """
        Threshold from the reversal levels so far.

        Uses ``threshold_from_reversals``; when there are too few reversals
        (before or after outlier removal) falls back to the controller's
        same-pass estimate, tagged low-confidence.
        """
        controller = self.controller
        try:
            estimate = threshold_from_reversals(controller.reversal_levels, self.statistics_config)
        except InsufficientDataError as exc:
            logger.debug("falling back to same-pass threshold: %s", exc)
            threshold, confidence = controller.estimate_threshold()
            return SessionResult(
                threshold=threshold,
                confidence=min(confidence, 0.5),
                low_confidence=True,
                estimate=None,
                total_trials=controller.trial_count,
                total_reversals=controller.reversal_count,
            )
        return SessionResult(
            threshold=estimate.threshold,
            confidence=estimate.confidence,
            low_confidence=False,
            estimate=estimate,
            total_trials=controller.trial_count,
            total_reversals=controller.reversal_count,
        )

    def reset(self) -> None:
        self.controller.reset()
        self.outcome = None
