"""
threshold.py
------------

Threshold estimation from reversal levels.

``threshold_from_reversals`` is the full estimator used after a run:

1. reject non-finite input and fewer than ``min_samples`` values;
2. optionally drop outliers in a single pass (values farther than
   ``outlier_threshold`` population std from the mean);
3. reject the cleaned data if it fell below ``min_samples``;
4. compute the central tendency (mean, median or trimmed mean), the
   dispersion, and a normal-approximation confidence interval.

Examples
--------
>>> from psystair.statistics import threshold_from_reversals
>>> est = threshold_from_reversals([58, 62, 60, 62, 60, 62])
>>> round(est.threshold, 2)
60.67
>>> est.confidence_interval  # doctest: +SKIP
(59.37, 61.96)
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

import numpy as np

from psystair.errors import ConfigurationError, InsufficientDataError
from psystair.utils.math import as_finite_array

logger = logging.getLogger(__name__)

ThresholdMethod = Literal["mean", "median", "trimmed_mean"]

_METHODS = ("mean", "median", "trimmed_mean")

# Two-sided z values for the usual confidence levels.
Z_SCORES: dict[float, float] = {0.90: 1.645, 0.95: 1.96, 0.99: 2.576}
DEFAULT_Z = 1.96


@dataclass(frozen=True)
class StatisticsConfig:
    """
    Options for ``threshold_from_reversals``.

    Attributes
    ----------
    method : {"mean", "median", "trimmed_mean"}
        Central tendency.
    trim_percent : float
        Total share of values trimmed by "trimmed_mean", split evenly between
        the two tails. Must lie in [0, 100).
    confidence_level : float
        Two-sided level of the confidence interval, in (0, 1).
    min_samples : int
        Minimum sample size before and after outlier removal.
    outlier_detection : bool
        Whether to run the single-pass outlier filter.
    outlier_threshold : float
        Outlier cut-off in population standard deviations.
    """

    method: ThresholdMethod = "mean"
    trim_percent: float = 20.0
    confidence_level: float = 0.95
    min_samples: int = 4
    outlier_detection: bool = True
    outlier_threshold: float = 2.5

    def __post_init__(self):
        if self.method not in _METHODS:
            raise ConfigurationError(
                f"method must be one of {_METHODS}, got {self.method!r}"
            )
        if not (math.isfinite(self.trim_percent) and 0 <= self.trim_percent < 100):
            raise ConfigurationError(
                f"trim_percent must lie in [0, 100), got {self.trim_percent}"
            )
        if not (math.isfinite(self.confidence_level) and 0 < self.confidence_level < 1):
            raise ConfigurationError(
                f"confidence_level must lie in (0, 1), got {self.confidence_level}"
            )
        if self.min_samples < 1:
            raise ConfigurationError(f"min_samples must be positive, got {self.min_samples}")
        if not (math.isfinite(self.outlier_threshold) and self.outlier_threshold > 0):
            raise ConfigurationError(
                f"outlier_threshold must be positive, got {self.outlier_threshold}"
            )


DEFAULT_STATISTICS_CONFIG = StatisticsConfig()


@dataclass(frozen=True)
class ThresholdEstimate:
    threshold: float
    confidence: float
    standard_error: float
    stddev: float
    variance: float
    sample_size: int
    outliers: tuple[float, ...]
    confidence_interval: tuple[float, float]
    method: ThresholdMethod


def z_score(confidence_level: float) -> float:
    """Two-sided z for 0.90 / 0.95 / 0.99; 1.96 for any other level."""
    for level, z in Z_SCORES.items():
        if math.isclose(confidence_level, level):
            return z
    return DEFAULT_Z


def remove_outliers(values: np.ndarray, threshold: float) -> tuple[np.ndarray, np.ndarray]:
    """
    Single-pass outlier filter.

    Returns
    -------
    kept, removed : np.ndarray
        Values within ``threshold`` population std of the mean, and the rest,
        both in input order.
    """
    mean = float(np.mean(values))
    std = float(np.std(values))
    keep = np.abs(values - mean) <= threshold * std
    return values[keep], values[~keep]


def trimmed_mean(values: np.ndarray, trim_percent: float) -> float:
    """Mean after dropping ``trim_percent / 2`` percent from each tail."""
    ordered = np.sort(values)
    cut = int(math.floor(ordered.size * trim_percent / 200.0))
    if cut > 0:
        ordered = ordered[cut:ordered.size - cut]
    return float(np.mean(ordered))


def central_tendency(values: np.ndarray, method: ThresholdMethod, trim_percent: float) -> float:
    if method == "median":
        return float(np.median(values))
    if method == "trimmed_mean":
        return trimmed_mean(values, trim_percent)
    return float(np.mean(values))


def threshold_from_reversals(
    levels: Sequence[float] | np.ndarray,
    config: StatisticsConfig | None = None,
) -> ThresholdEstimate:
    """
    Estimate a threshold from reversal levels.

    Parameters
    ----------
    levels : sequence of float
        Reversal levels, oldest first.
    config : StatisticsConfig, optional
        Defaults to DEFAULT_STATISTICS_CONFIG.

    Returns
    -------
    ThresholdEstimate

    Raises
    ------
    NonFiniteInputError
        If any level is NaN or infinite.
    InsufficientDataError
        If fewer than ``min_samples`` levels are given, or remain after
        outlier removal.
    """
    config = config if config is not None else DEFAULT_STATISTICS_CONFIG
    values = as_finite_array(levels, name="levels")
    if values.size < config.min_samples:
        raise InsufficientDataError(
            f"need at least {config.min_samples} reversal levels, got {values.size}"
        )

    outliers = np.empty(0, dtype=np.float64)
    if config.outlier_detection:
        values, outliers = remove_outliers(values, config.outlier_threshold)
        if outliers.size:
            logger.debug("removed %d outlier(s): %s", outliers.size, outliers.tolist())
        if values.size < config.min_samples:
            raise InsufficientDataError(
                f"only {values.size} levels left after outlier removal "
                f"(need {config.min_samples})"
            )

    threshold = central_tendency(values, config.method, config.trim_percent)
    variance = float(np.var(values))
    stddev = math.sqrt(variance)
    standard_error = stddev / math.sqrt(values.size)
    margin = z_score(config.confidence_level) * standard_error

    if threshold == 0.0:
        confidence = 0.0
    else:
        confidence = max(0.0, min(1.0, 1.0 - stddev / abs(threshold)))

    return ThresholdEstimate(
        threshold=threshold,
        confidence=confidence,
        standard_error=standard_error,
        stddev=stddev,
        variance=variance,
        sample_size=int(values.size),
        outliers=tuple(float(v) for v in outliers),
        confidence_interval=(threshold - margin, threshold + margin),
        method=config.method,
    )
