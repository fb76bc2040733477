"""
controller.py
-------------

Adaptive up-down staircase (1-down-1-up or 2-down-1-up).

The controller owns the current level, direction and step size. Each call
to ``record_trial`` consumes one correct/incorrect response, applies the
up-down rule, detects reversals, moves and clamps the level, and checks
the terminal condition

    (reversals >= target_reversals and trials >= min_trials)
    or trials >= max_trials

Once terminal, the state is frozen and a same-pass threshold (mean of the
last six reversal levels) is available through ``result()``.

Levels move only when the rule produces a move: under 2-down-1-up a single
correct answer keeps both the level and the direction. A reversal changes
the step size from the next trial on; the trial on which it happens still
moves by the step that was in effect when it was presented.

Numeric anomalies (non-finite intermediate values) fall back to the last
known-good value, emit NumericAnomalyWarning and are kept in
``diagnostics().anomalies``.

Examples
--------
>>> from psystair.staircase import StaircaseController, StaircaseConfig
>>> controller = StaircaseController(StaircaseConfig(initial_level=50,
...     min_level=0, max_level=100, step_sizes=(8, 4, 2)))
>>> controller.record_trial(False).level
50.0
>>> controller.current_level()
58.0
"""

from __future__ import annotations

import logging
import math
import warnings
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

import numpy as np

from psystair.data.trial import Direction, StaircaseState, Trial
from psystair.errors import (
    InvalidResponseError,
    NumericAnomalyWarning,
    StaircaseCompletedError,
    StaircaseNotCompleteError,
)
from psystair.staircase.config import (
    DEFAULT_STAIRCASE_CONFIG,
    STAIRCASE_PRESETS,
    Rule,
    StaircaseConfig,
)
from psystair.utils.diagnostics import ControllerDiagnostics, NumericAnomaly

logger = logging.getLogger(__name__)

# Number of trailing reversals averaged by the same-pass threshold.
THRESHOLD_WINDOW = 6
MIN_THRESHOLD_REVERSALS = 4
LOW_CONFIDENCE = 0.5
FALLBACK_CONFIDENCE = 0.1


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class StaircaseResult:
    """
    Terminal result of one staircase run.

    Attributes
    ----------
    threshold : float
        Estimated threshold level.
    confidence : float
        Confidence in [0, 1].
    total_trials, total_reversals : int
        Final counters.
    convergence_trials : tuple[int, ...]
        Indices of the trials on which the averaged reversals occurred.
    final_levels : tuple[float, ...]
        Reversal levels that entered the estimate.
    duration_ms : float
        Wall-clock time between the first state and completion.
    low_confidence : bool
        True when fewer than 4 reversals were available; confidence is then
        capped at 0.5.
    """

    threshold: float
    confidence: float
    total_trials: int
    total_reversals: int
    convergence_trials: tuple[int, ...]
    final_levels: tuple[float, ...]
    duration_ms: float
    low_confidence: bool = False


@dataclass(frozen=True)
class StaircaseProgress:
    reversal_progress: float
    trial_progress: float
    overall_progress: float
    estimated_remaining_trials: int


class StaircaseController:
    """
    Staircase controller.

    Parameters
    ----------
    config : StaircaseConfig, optional
        Immutable configuration. Defaults to DEFAULT_STAIRCASE_CONFIG.
    clock : callable, optional
        Zero-argument callable returning a timezone-aware datetime; used to
        timestamp trials. Defaults to the UTC wall clock.

    Notes
    -----
    Not safe for concurrent mutation: run one controller per subject/session.
    """

    def __init__(
        self,
        config: StaircaseConfig | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
    ):
        self.config = config if config is not None else DEFAULT_STAIRCASE_CONFIG
        self._clock = clock or utcnow
        self._anomalies: list[NumericAnomaly] = []
        self._state = self._initial_state()

    def _initial_state(self) -> StaircaseState:
        return StaircaseState(
            current_level=self.config.initial_level,
            current_direction=self.config.start_direction,
            current_step_size=self.config.initial_step_size,
            started_at=self._clock(),
        )

    # ------------------------------------------------------------------
    # READ-ONLY ACCESSORS
    # ------------------------------------------------------------------
    def current_level(self) -> float:
        """Level to present on the next trial."""
        return self._state.current_level

    @property
    def is_complete(self) -> bool:
        return self._state.is_complete

    @property
    def trials(self) -> tuple[Trial, ...]:
        return tuple(self._state.trials)

    @property
    def trial_count(self) -> int:
        return self._state.total_trials

    @property
    def reversal_count(self) -> int:
        return self._state.total_reversals

    @property
    def reversal_levels(self) -> tuple[float, ...]:
        return tuple(self._state.reversal_levels)

    @property
    def started_at(self) -> datetime:
        return self._state.started_at

    def get_state(self) -> StaircaseState:
        """Return a snapshot of the state; mutating it does not affect the controller."""
        return self._state.snapshot()

    # ------------------------------------------------------------------
    # TRIAL RECORDING
    # ------------------------------------------------------------------
    def record_trial(self, correct: bool, reaction_time_ms: float | None = None) -> Trial:
        """
        Record one response and advance the staircase.

        Parameters
        ----------
        correct : bool
            Whether the subject answered correctly.
        reaction_time_ms : float, optional
            Response latency; must be non-negative when given.

        Returns
        -------
        Trial
            Immutable record of the trial just completed.

        Raises
        ------
        StaircaseCompletedError
            If the staircase already reached a terminal state.
        InvalidResponseError
            If ``reaction_time_ms`` is negative or not finite.
        """
        state = self._state
        if state.completed_at is not None:
            raise StaircaseCompletedError(
                f"staircase completed after {state.total_trials} trials; call reset() "
                "to start a new run"
            )
        if reaction_time_ms is not None:
            reaction_time_ms = float(reaction_time_ms)
            if not math.isfinite(reaction_time_ms) or reaction_time_ms < 0:
                raise InvalidResponseError(
                    f"reaction_time_ms must be a non-negative number, got {reaction_time_ms}"
                )
        correct = bool(correct)

        level = state.current_level
        step_used = state.current_step_size
        next_direction, moves = self._next_direction(correct)
        is_reversal = bool(state.trials) and next_direction is not state.current_direction

        if is_reversal:
            state.reversal_levels.append(level)
            state.total_reversals += 1

        next_level = level
        if moves:
            next_level = self._clamp(self._step_level(level, step_used, next_direction))

        if is_reversal:
            state.current_step_size = self._finite_or(
                self.config.step_size_for(state.total_reversals),
                self.config.initial_step_size,
                "step_size",
            )

        if correct:
            state.consecutive_correct += 1
            state.consecutive_incorrect = 0
        else:
            state.consecutive_incorrect += 1
            state.consecutive_correct = 0
        if moves and next_direction is Direction.DOWN:
            state.consecutive_correct = 0

        trial = Trial(
            index=state.total_trials,
            level=level,
            response=correct,
            is_reversal=is_reversal,
            step_size_used=step_used,
            direction=next_direction,
            reaction_time_ms=reaction_time_ms,
            timestamp=self._clock(),
        )
        state.trials.append(trial)
        state.current_level = next_level
        state.current_direction = next_direction
        state.total_trials += 1

        logger.debug(
            "trial %d: level=%.4g correct=%s direction=%s reversal=%s next=%.4g step=%.4g",
            trial.index,
            level,
            correct,
            next_direction.value,
            is_reversal,
            next_level,
            step_used,
        )

        if self._terminal_condition_met():
            state.completed_at = trial.timestamp
            state.threshold, state.confidence = self.estimate_threshold()
            logger.debug(
                "staircase complete after %d trials (%d reversals): threshold=%.4g",
                state.total_trials,
                state.total_reversals,
                state.threshold,
            )

        return trial

    def _next_direction(self, correct: bool) -> tuple[Direction, bool]:
        """Return (direction after this trial, whether the level moves)."""
        if not correct:
            return Direction.UP, True
        if self.config.rule is Rule.ONE_DOWN_ONE_UP:
            return Direction.DOWN, True
        trials = self._state.trials
        if trials and trials[-1].response:
            return Direction.DOWN, True
        return self._state.current_direction, False

    def _step_level(self, level: float, step: float, direction: Direction) -> float:
        if self.config.is_multiplicative:
            multiplier = step if direction is Direction.DOWN else 1.0 / step
            multiplier = self._finite_or(multiplier, 1.0, "multiplier")
            candidate = level * multiplier
        else:
            candidate = level - step if direction is Direction.DOWN else level + step
        return self._finite_or(candidate, level, "level")

    def _clamp(self, level: float) -> float:
        return max(self.config.min_level, min(self.config.max_level, level))

    def _finite_or(self, value: float, fallback: float, quantity: str) -> float:
        if math.isfinite(value):
            return value
        anomaly = NumericAnomaly(
            trial_index=self._state.total_trials,
            quantity=quantity,
            value=value,
            fallback=fallback,
        )
        self._anomalies.append(anomaly)
        logger.warning(
            "non-finite %s (%r) on trial %d, using %r",
            quantity,
            value,
            anomaly.trial_index,
            fallback,
        )
        warnings.warn(
            f"non-finite {quantity} ({value!r}) replaced by {fallback!r}",
            NumericAnomalyWarning,
            stacklevel=3,
        )
        return fallback

    def _terminal_condition_met(self) -> bool:
        state = self._state
        enough_reversals = state.total_reversals >= self.config.target_reversals
        enough_trials = state.total_trials >= self.config.min_trials
        return (enough_reversals and enough_trials) or (
            state.total_trials >= self.config.max_trials
        )

    # ------------------------------------------------------------------
    # THRESHOLD
    # ------------------------------------------------------------------
    def _threshold_window(self) -> list[float]:
        levels = self._state.reversal_levels
        return levels[-min(THRESHOLD_WINDOW, len(levels)):] if levels else []

    def estimate_threshold(self) -> tuple[float, float]:
        """
        Same-pass threshold from the trailing reversals, available at any time.

        Returns
        -------
        threshold, confidence : float
            Mean of the last six reversal levels and ``clamp(1 - std / |mean|)``.
            With fewer than four reversals the current level is returned with
            confidence 0.5.
        """
        window = self._threshold_window()
        current = self._state.current_level
        if len(window) < MIN_THRESHOLD_REVERSALS:
            return current, LOW_CONFIDENCE

        values = np.asarray(window, dtype=np.float64)
        threshold = float(np.mean(values))
        if not math.isfinite(threshold):
            return self._finite_or(threshold, current, "threshold"), FALLBACK_CONFIDENCE

        std = float(np.std(values))
        if threshold == 0.0 or not math.isfinite(std):
            return threshold, FALLBACK_CONFIDENCE
        confidence = max(0.0, min(1.0, 1.0 - std / abs(threshold)))
        return threshold, confidence

    def result(self) -> StaircaseResult:
        """
        Return the terminal result.

        Raises
        ------
        StaircaseNotCompleteError
            If no terminal condition has been reached yet.
        """
        state = self._state
        if state.completed_at is None or state.threshold is None:
            raise StaircaseNotCompleteError(
                f"staircase not complete ({state.total_trials} trials, "
                f"{state.total_reversals} reversals)"
            )
        window = self._threshold_window()
        reversal_trials = [t.index for t in state.trials if t.is_reversal]
        convergence_trials = reversal_trials[len(reversal_trials) - len(window):]
        duration = (state.completed_at - state.started_at).total_seconds() * 1000.0
        return StaircaseResult(
            threshold=state.threshold,
            confidence=state.confidence if state.confidence is not None else 0.0,
            total_trials=state.total_trials,
            total_reversals=state.total_reversals,
            convergence_trials=tuple(convergence_trials),
            final_levels=tuple(window),
            duration_ms=max(0.0, duration),
            low_confidence=len(window) < MIN_THRESHOLD_REVERSALS,
        )

    # ------------------------------------------------------------------
    # PROGRESS / DIAGNOSTICS
    # ------------------------------------------------------------------
    def progress(self) -> StaircaseProgress:
        """Progress towards the terminal condition, for progress displays."""
        state = self._state
        reversal_progress = min(1.0, state.total_reversals / self.config.target_reversals)
        trial_progress = min(1.0, state.total_trials / self.config.max_trials)
        overall = max(reversal_progress * 0.8 + trial_progress * 0.2, trial_progress)
        trials_per_reversal = (
            state.total_trials / state.total_reversals if state.total_reversals > 0 else 5.0
        )
        remaining_reversals = max(0, self.config.target_reversals - state.total_reversals)
        remaining = int(round(remaining_reversals * trials_per_reversal))
        remaining = min(remaining, self.config.max_trials - state.total_trials)
        return StaircaseProgress(
            reversal_progress=reversal_progress,
            trial_progress=trial_progress,
            overall_progress=overall,
            estimated_remaining_trials=max(0, remaining),
        )

    def diagnostics(self) -> ControllerDiagnostics:
        state = self._state
        return ControllerDiagnostics(
            current_level=state.current_level,
            direction=state.current_direction.value,
            step_size=state.current_step_size,
            step_size_index=self.config.step_index_for(state.total_reversals),
            consecutive_correct=state.consecutive_correct,
            consecutive_incorrect=state.consecutive_incorrect,
            reversal_count=state.total_reversals,
            trial_count=state.total_trials,
            progress=self.progress().overall_progress,
            last_trials=tuple(state.trials[-5:]),
            anomalies=tuple(self._anomalies),
        )

    def reset(self) -> None:
        """Discard all history and start a fresh run with the same config."""
        self._anomalies = []
        self._state = self._initial_state()


def create_staircase_controller(
    test_type: str, *, clock: Callable[[], datetime] | None = None, **overrides
) -> StaircaseController:
    """
    Build a controller from a named preset.

    Parameters
    ----------
    test_type : {"hearing", "beat", "tempo", "rhythm"}
        Preset name (case-insensitive). Unknown names use the default config.
    **overrides
        Field overrides applied with StaircaseConfig.with_overrides().
    """
    base = STAIRCASE_PRESETS.get(test_type.lower())
    if base is None:
        logger.debug("unknown test type %r, using default staircase config", test_type)
        base = DEFAULT_STAIRCASE_CONFIG
    config = base.with_overrides(**overrides) if overrides else base
    return StaircaseController(config, clock=clock)
