"""
config.py
---------

Convergence criteria for the analyzer, plus per-test presets.

Examples
--------
>>> from psystair.convergence import get_convergence_config
>>> get_convergence_config("hearing").max_trials
30
>>> get_convergence_config("unknown").max_trials  # falls back to hearing
30
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Any

from psystair.errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConvergenceConfig:
    """
    Convergence and quality criteria.

    Attributes
    ----------
    target_reversals : int
        Reversals after which the run counts as converged.
    min_reversals : int
        Reversals required before stability-based convergence.
    max_trials : int
        Trial count after which the run is stopped.
    stability_window : int
        Number of trailing reversal levels checked for stability.
    stability_threshold : float
        Maximum coefficient of variation of that window.
    stability_min_samples : int
        Reversals required before the stability check runs at all.
    early_convergence : bool
        Whether the trial-level early convergence check is enabled.
    early_convergence_trials : int
        Trailing trials checked by the early convergence test.
    early_convergence_threshold : float
        Maximum coefficient of variation of those trial levels.
    max_duration_ms : float
        Elapsed time after which the run times out.
    timeout_warning_ms : float
        Elapsed time after which an approaching-timeout warning is raised.
    min_confidence : float
        Data-quality floor for the low-confidence warning.
    max_variability : float
        Reversal variability ceiling for the high-variability warning.
    outlier_detection : bool
        Whether to warn about outlying trial levels.
    quality_min_reversals : int
        Reversals required before an excellent quality grade counts as
        convergence. The default of 1 lets a single clean reversal converge.
    """

    target_reversals: int = 6
    min_reversals: int = 4
    max_trials: int = 50
    stability_window: int = 5
    stability_threshold: float = 0.15
    stability_min_samples: int = 3
    early_convergence: bool = True
    early_convergence_trials: int = 15
    early_convergence_threshold: float = 0.1
    max_duration_ms: float = 300_000.0
    timeout_warning_ms: float = 240_000.0
    min_confidence: float = 0.7
    max_variability: float = 0.3
    outlier_detection: bool = True
    quality_min_reversals: int = 1

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """
        Check internal consistency.

        Raises
        ------
        ConfigurationError
            On inconsistent reversal counts, out-of-range thresholds, non-positive
            window sizes or a timeout warning later than the timeout itself.
        """
        if self.target_reversals < 1:
            raise ConfigurationError(
                f"target_reversals must be positive, got {self.target_reversals}"
            )
        if self.min_reversals < 2:
            raise ConfigurationError(
                f"min_reversals must be at least 2, got {self.min_reversals}"
            )
        if self.min_reversals > self.target_reversals:
            raise ConfigurationError(
                f"min_reversals ({self.min_reversals}) must not exceed "
                f"target_reversals ({self.target_reversals})"
            )
        for name in (
            "max_trials",
            "stability_window",
            "stability_min_samples",
            "early_convergence_trials",
            "quality_min_reversals",
        ):
            if getattr(self, name) < 1:
                raise ConfigurationError(f"{name} must be at least 1, got {getattr(self, name)}")
        for name in (
            "stability_threshold",
            "early_convergence_threshold",
            "min_confidence",
            "max_variability",
        ):
            value = getattr(self, name)
            if not (math.isfinite(value) and 0 < value <= 1):
                raise ConfigurationError(f"{name} must lie in (0, 1], got {value}")
        if not (self.max_duration_ms > 0 and math.isfinite(self.max_duration_ms)):
            raise ConfigurationError(
                f"max_duration_ms must be positive and finite, got {self.max_duration_ms}"
            )
        if self.timeout_warning_ms > self.max_duration_ms:
            raise ConfigurationError(
                f"timeout_warning_ms ({self.timeout_warning_ms}) must not exceed "
                f"max_duration_ms ({self.max_duration_ms})"
            )

    def with_overrides(self, **overrides: Any) -> ConvergenceConfig:
        return replace(self, **overrides)


DEFAULT_CONVERGENCE_CONFIG = ConvergenceConfig()

HEARING_CONVERGENCE_CONFIG = ConvergenceConfig(
    max_trials=30, stability_threshold=0.2, early_convergence_threshold=0.15
)
BEAT_CONVERGENCE_CONFIG = ConvergenceConfig(
    max_trials=40, stability_threshold=0.15, early_convergence_threshold=0.1
)
TEMPO_CONVERGENCE_CONFIG = ConvergenceConfig(
    max_trials=40, stability_threshold=0.15, early_convergence_threshold=0.1
)
RHYTHM_CONVERGENCE_CONFIG = ConvergenceConfig(
    max_trials=50, stability_threshold=0.2, early_convergence_threshold=0.15
)

CONVERGENCE_PRESETS: dict[str, ConvergenceConfig] = {
    "hearing": HEARING_CONVERGENCE_CONFIG,
    "beat": BEAT_CONVERGENCE_CONFIG,
    "tempo": TEMPO_CONVERGENCE_CONFIG,
    "rhythm": RHYTHM_CONVERGENCE_CONFIG,
}


def get_convergence_config(test_type: str) -> ConvergenceConfig:
    """Preset for ``test_type`` (case-insensitive); unknown types get the hearing preset."""
    config = CONVERGENCE_PRESETS.get(test_type.lower())
    if config is None:
        logger.debug("unknown test type %r, using hearing convergence config", test_type)
        return HEARING_CONVERGENCE_CONFIG
    return config
