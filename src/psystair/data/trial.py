"""
trial.py
--------

Core data containers for psystair.

defines:
- Direction: adaptation direction of the staircase ("up" = easier, "down" = harder)
- Trial: immutable record of one presented stimulus and the response to it
- ReversalPoint: a trial at which the adaptation direction flipped
- StaircaseState: mutable state owned by a StaircaseController

Notes
-----
- Trials are appended in presentation order and never reordered.
- StaircaseState is only mutated by StaircaseController.record_trial();
  everything handed to callers is a snapshot (see StaircaseState.snapshot).
- Levels are stored as plain Python floats; numpy arrays are built on demand
  by the analysis modules.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum


class Direction(str, Enum):
    """Direction of the next level change."""

    UP = "up"
    DOWN = "down"

    def flipped(self) -> Direction:
        return Direction.DOWN if self is Direction.UP else Direction.UP


@dataclass(frozen=True)
class Trial:
    """
    One staircase trial.

    Attributes
    ----------
    index : int
        Zero-based position in the trial history.
    level : float
        Stimulus level presented on this trial.
    response : bool
        True if the subject answered correctly.
    is_reversal : bool
        True if the direction computed after this trial differs from the
        direction recorded on the previous trial.
    step_size_used : float
        Step size (additive) or factor (multiplicative) applied after this trial.
    direction : Direction
        Direction in effect after this trial.
    reaction_time_ms : float | None
        Response latency in milliseconds, if measured.
    timestamp : datetime
        When the response was recorded.
    """

    index: int
    level: float
    response: bool
    is_reversal: bool
    step_size_used: float
    direction: Direction
    reaction_time_ms: float | None
    timestamp: datetime


@dataclass(frozen=True)
class ReversalPoint:
    """A direction flip extracted from a trial history."""

    trial_index: int
    level: float
    previous_direction: Direction
    new_direction: Direction
    step_size: float
    timestamp: datetime


@dataclass
class StaircaseState:
    """
    Mutable state of a running staircase.

    Attributes
    ----------
    current_level : float
        Level to present on the next trial, always within [min_level, max_level].
    current_direction : Direction
        Direction recorded on the most recent trial (start direction before any trial).
    current_step_size : float
        Step size or factor applied on the next move.
    consecutive_correct : int
        Run length of unbroken correct responses; reset by an incorrect
        response or by a downward move.
    consecutive_incorrect : int
        Run length of unbroken incorrect responses.
    reversal_levels : list[float]
        Level at the moment of each reversal, oldest first.
    trials : list[Trial]
        Full trial history, oldest first.
    total_trials, total_reversals : int
        Counters; ``total_reversals == len(reversal_levels)`` at all times.
    started_at : datetime
        Creation time of this state.
    completed_at : datetime | None
        Set once a terminal condition is met; the state is frozen afterwards.
    threshold, confidence : float | None
        Same-pass threshold estimate, available once completed.
    """

    current_level: float
    current_direction: Direction
    current_step_size: float
    started_at: datetime
    consecutive_correct: int = 0
    consecutive_incorrect: int = 0
    reversal_levels: list[float] = field(default_factory=list)
    trials: list[Trial] = field(default_factory=list)
    total_trials: int = 0
    total_reversals: int = 0
    completed_at: datetime | None = None
    threshold: float | None = None
    confidence: float | None = None

    @property
    def is_complete(self) -> bool:
        return self.completed_at is not None

    def snapshot(self) -> StaircaseState:
        """Return a copy that shares no mutable containers with this state."""
        return replace(
            self,
            reversal_levels=list(self.reversal_levels),
            trials=list(self.trials),
        )
