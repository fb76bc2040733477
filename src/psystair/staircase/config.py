"""
config.py
---------

Staircase configuration and per-test presets.

StaircaseConfig is immutable and validated on construction; invalid
configurations raise ConfigurationError instead of being corrected.

Presets
-------
- HEARING_STAIRCASE_CONFIG : additive dB steps over [0, 80] dB.
- BEAT_STAIRCASE_CONFIG    : multiplicative factors on a volume difference (dB).
- TEMPO_STAIRCASE_CONFIG   : multiplicative factors on an IOI slope (ms/beat).
- RHYTHM_STAIRCASE_CONFIG  : multiplicative factors on an IOI slope for
  complex rhythm patterns (wider range, longer run).

Examples
--------
>>> from psystair.staircase import StaircaseConfig, Rule
>>> config = StaircaseConfig(initial_level=50, min_level=0, max_level=100,
...                          step_sizes=(8, 4, 2), rule=Rule.TWO_DOWN_ONE_UP)
>>> config.step_size_for(5)
2.0
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from psystair.data.trial import Direction
from psystair.errors import ConfigurationError


class Rule(str, Enum):
    """Up-down rule."""

    ONE_DOWN_ONE_UP = "1down1up"
    TWO_DOWN_ONE_UP = "2down1up"


class AdaptationMode(str, Enum):
    """How a step is applied to the level."""

    ADDITIVE = "additive"
    MULTIPLICATIVE = "multiplicative"


@dataclass(frozen=True)
class StaircaseConfig:
    """
    Immutable staircase configuration.

    Attributes
    ----------
    initial_level : float
        Level presented on the first trial.
    min_level, max_level : float
        Closed interval every level is clamped to.
    initial_step_size : float | None
        Step used before the first reversal. Defaults to ``step_sizes[0]``.
    step_sizes : tuple[float, ...]
        Step schedule indexed by cumulative reversal count; the N-th reversal
        switches to ``step_sizes[min(N, len - 1)]``. Factors in (0, 1) when
        ``adaptation_mode`` is multiplicative.
    target_reversals : int
        Reversals required (together with ``min_trials``) to terminate.
    min_trials : int
        Trials required before reversal-based termination is allowed.
    max_trials : int
        Hard upper bound on the number of trials.
    start_direction : Direction
        Direction assumed before the first trial.
    rule : Rule
        Up-down rule.
    adaptation_mode : AdaptationMode
        Additive (level +/- step) or multiplicative (level * or / factor).
        Multiplicative mode requires ``min_level > 0``.
    """

    initial_level: float = 40.0
    min_level: float = 0.0
    max_level: float = 80.0
    initial_step_size: float | None = None
    step_sizes: tuple[float, ...] = (8.0, 8.0, 4.0, 4.0, 2.0, 2.0)
    target_reversals: int = 6
    min_trials: int = 6
    max_trials: int = 50
    start_direction: Direction = Direction.DOWN
    rule: Rule = Rule.TWO_DOWN_ONE_UP
    adaptation_mode: AdaptationMode = AdaptationMode.ADDITIVE

    def __post_init__(self):
        """Coerce enum/sequence fields and validate."""
        try:
            object.__setattr__(self, "start_direction", Direction(self.start_direction))
            object.__setattr__(self, "rule", Rule(self.rule))
            object.__setattr__(
                self, "adaptation_mode", AdaptationMode(self.adaptation_mode)
            )
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc

        steps = tuple(float(s) for s in self.step_sizes)
        object.__setattr__(self, "step_sizes", steps)
        if not steps:
            raise ConfigurationError("step_sizes must not be empty")
        if self.initial_step_size is None:
            object.__setattr__(self, "initial_step_size", steps[0])
        else:
            object.__setattr__(self, "initial_step_size", float(self.initial_step_size))

        for name in ("initial_level", "min_level", "max_level"):
            value = float(getattr(self, name))
            if not math.isfinite(value):
                raise ConfigurationError(f"{name} must be finite, got {value}")
            object.__setattr__(self, name, value)

        if self.min_level > self.max_level:
            raise ConfigurationError(
                f"min_level ({self.min_level}) must not exceed max_level ({self.max_level})"
            )
        if not self.min_level <= self.initial_level <= self.max_level:
            raise ConfigurationError(
                f"initial_level ({self.initial_level}) must lie in "
                f"[{self.min_level}, {self.max_level}]"
            )
        if self.adaptation_mode is AdaptationMode.MULTIPLICATIVE and self.min_level <= 0:
            raise ConfigurationError(
                f"multiplicative levels must be positive, got min_level {self.min_level}"
            )

        for step in (self.initial_step_size, *steps):
            if not math.isfinite(step) or step <= 0:
                raise ConfigurationError(
                    f"step sizes must be positive and finite, got {step}"
                )
            if self.adaptation_mode is AdaptationMode.MULTIPLICATIVE and step >= 1:
                raise ConfigurationError(
                    f"multiplicative step factors must lie in (0, 1), got {step}"
                )

        if self.target_reversals < 1:
            raise ConfigurationError(
                f"target_reversals must be positive, got {self.target_reversals}"
            )
        if self.min_trials < 0:
            raise ConfigurationError(
                f"min_trials must be non-negative, got {self.min_trials}"
            )
        if self.max_trials < 1:
            raise ConfigurationError(f"max_trials must be positive, got {self.max_trials}")
        if self.min_trials > self.max_trials:
            raise ConfigurationError(
                f"min_trials ({self.min_trials}) must not exceed "
                f"max_trials ({self.max_trials})"
            )

    @property
    def is_multiplicative(self) -> bool:
        return self.adaptation_mode is AdaptationMode.MULTIPLICATIVE

    def step_size_for(self, reversal_count: int) -> float:
        """Step size in effect after ``reversal_count`` reversals."""
        index = min(max(reversal_count, 0), len(self.step_sizes) - 1)
        return self.step_sizes[index]

    def step_index_for(self, reversal_count: int) -> int:
        return min(max(reversal_count, 0), len(self.step_sizes) - 1)

    def with_overrides(self, **overrides: Any) -> StaircaseConfig:
        """
        Return a validated copy with selected fields replaced.

        Overriding ``step_sizes`` without ``initial_step_size`` re-derives the
        initial step from the new schedule head.
        """
        if "step_sizes" in overrides and "initial_step_size" not in overrides:
            overrides["initial_step_size"] = None
        return replace(self, **overrides)


DEFAULT_STAIRCASE_CONFIG = StaircaseConfig()

HEARING_STAIRCASE_CONFIG = StaircaseConfig(
    initial_level=40.0,
    min_level=0.0,
    max_level=80.0,
    step_sizes=(8.0, 8.0, 4.0, 4.0, 2.0, 2.0),
    target_reversals=6,
    min_trials=6,
    max_trials=30,
)

# Multiplicative factors shared by the beat and tempo tests.
_FACTOR_STEPS = (0.7, 0.7, 0.8, 0.8, 0.9, 0.9)

BEAT_STAIRCASE_CONFIG = StaircaseConfig(
    initial_level=20.0,
    min_level=1.0,
    max_level=40.0,
    step_sizes=_FACTOR_STEPS,
    target_reversals=6,
    min_trials=6,
    max_trials=40,
    adaptation_mode=AdaptationMode.MULTIPLICATIVE,
)

TEMPO_STAIRCASE_CONFIG = StaircaseConfig(
    initial_level=5.0,
    min_level=0.5,
    max_level=20.0,
    step_sizes=_FACTOR_STEPS,
    target_reversals=6,
    min_trials=6,
    max_trials=40,
    adaptation_mode=AdaptationMode.MULTIPLICATIVE,
)

RHYTHM_STAIRCASE_CONFIG = StaircaseConfig(
    initial_level=8.0,
    min_level=0.5,
    max_level=30.0,
    step_sizes=_FACTOR_STEPS,
    target_reversals=6,
    min_trials=8,
    max_trials=50,
    adaptation_mode=AdaptationMode.MULTIPLICATIVE,
)

STAIRCASE_PRESETS: dict[str, StaircaseConfig] = {
    "hearing": HEARING_STAIRCASE_CONFIG,
    "beat": BEAT_STAIRCASE_CONFIG,
    "tempo": TEMPO_STAIRCASE_CONFIG,
    "rhythm": RHYTHM_STAIRCASE_CONFIG,
}
