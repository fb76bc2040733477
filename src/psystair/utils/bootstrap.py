"""
bootstrap.py
------------

Bootstrap resampling for reversal-based thresholds.

Provides non-parametric percentile intervals that complement the
normal-approximation interval of ``threshold_from_reversals``. Useful for:
- short runs where the normal approximation is doubtful
- comparing two sessions of the same subject
- Note: assumes the reversal levels are exchangeable

Examples
--------
>>> import jax.random as jr
>>> from psystair.utils.bootstrap import bootstrap_threshold
>>> estimate, lower, upper = bootstrap_threshold(
...     [58, 62, 60, 62, 60, 62], n_bootstrap=500, key=jr.PRNGKey(0)
... )  # doctest: +SKIP

>>> bootstrap_threshold([58, 62, 60, 62, 60, 62], seed=3)  # doctest: +SKIP

>>> from psystair.utils.bootstrap import bootstrap_threshold_difference
>>> diff, lower, upper, significant = bootstrap_threshold_difference(
...     first_session_levels, second_session_levels, key=jr.PRNGKey(1)
... )  # doctest: +SKIP

References
----------
Efron, B., & Tibshirani, R. J. (1994). An introduction to the bootstrap.
CRC press.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import jax.random as jr
import numpy as np

from psystair.errors import ConfigurationError, InsufficientDataError
from psystair.statistics.threshold import ThresholdMethod, central_tendency
from psystair.utils.math import as_finite_array
from psystair.utils.rng import resolve_key, session_keys


def _check_args(n_bootstrap: int, confidence_level: float) -> None:
    if n_bootstrap < 1:
        raise ConfigurationError(f"n_bootstrap must be positive, got {n_bootstrap}")
    if not 0 < confidence_level < 1:
        raise ConfigurationError(
            f"confidence_level must lie in (0, 1), got {confidence_level}"
        )


def _resample_statistics(
    values: np.ndarray,
    n_bootstrap: int,
    method: ThresholdMethod,
    trim_percent: float,
    key: Any,
) -> np.ndarray:
    n = values.size
    statistics = np.empty(n_bootstrap, dtype=np.float64)
    for b in range(n_bootstrap):
        # Resample with replacement
        key, subkey = jr.split(key)
        indices = np.asarray(jr.randint(subkey, (n,), 0, n))
        statistics[b] = central_tendency(values[indices], method, trim_percent)
    return statistics


def bootstrap_threshold(
    levels: Sequence[float] | np.ndarray,
    *,
    n_bootstrap: int = 1000,
    confidence_level: float = 0.95,
    method: ThresholdMethod = "mean",
    trim_percent: float = 20.0,
    key: Any = None,
    seed: int | None = None,
) -> tuple[float, float, float]:
    """
    Percentile bootstrap interval for a reversal threshold.

    Parameters
    ----------
    levels : sequence of float
        Reversal levels.
    n_bootstrap : int, default=1000
        Number of resamples.
    confidence_level : float, default=0.95
        Two-sided coverage of the interval.
    method : {"mean", "median", "trimmed_mean"}, default="mean"
        Statistic recomputed on each resample.
    trim_percent : float, default=20.0
        Used by "trimmed_mean".
    key : jax PRNG key, optional
        Random key for reproducibility.
    seed : int, optional
        Seed for a fresh key when ``key`` is not given. With neither, the
        package default seed is used.

    Returns
    -------
    estimate : float
        Mean of the bootstrap distribution.
    ci_lower, ci_upper : float
        Percentile bounds.

    Raises
    ------
    InsufficientDataError
        With fewer than two levels.
    NonFiniteInputError
        If any level is NaN or infinite.
    """
    _check_args(n_bootstrap, confidence_level)
    values = as_finite_array(levels, name="levels")
    if values.size < 2:
        raise InsufficientDataError(
            f"bootstrap needs at least 2 reversal levels, got {values.size}"
        )
    alpha = 1 - confidence_level

    statistics = _resample_statistics(
        values, n_bootstrap, method, trim_percent, resolve_key(key, seed)
    )

    estimate = float(np.mean(statistics))
    ci_lower = float(np.percentile(statistics, 100 * alpha / 2))
    ci_upper = float(np.percentile(statistics, 100 * (1 - alpha / 2)))
    return estimate, ci_lower, ci_upper


def bootstrap_threshold_difference(
    first_levels: Sequence[float] | np.ndarray,
    second_levels: Sequence[float] | np.ndarray,
    *,
    n_bootstrap: int = 1000,
    confidence_level: float = 0.95,
    method: ThresholdMethod = "mean",
    trim_percent: float = 20.0,
    key: Any = None,
    seed: int | None = None,
) -> tuple[float, float, float, bool]:
    """
    Bootstrap the threshold difference (first - second) between two sessions.

    Each session is resampled independently with its own subkey. ``key``
    and ``seed`` are resolved as in ``bootstrap_threshold``.

    Returns
    -------
    diff_estimate : float
        Mean bootstrap difference; positive means the first threshold is higher.
    ci_lower, ci_upper : float
        Percentile bounds on the difference.
    is_significant : bool
        True if the interval excludes zero.
    """
    _check_args(n_bootstrap, confidence_level)
    first = as_finite_array(first_levels, name="first_levels")
    second = as_finite_array(second_levels, name="second_levels")
    if first.size < 2 or second.size < 2:
        raise InsufficientDataError(
            "bootstrap needs at least 2 reversal levels per session, "
            f"got {first.size} and {second.size}"
        )
    alpha = 1 - confidence_level

    key_first, key_second = session_keys(resolve_key(key, seed), 2)
    differences = _resample_statistics(
        first, n_bootstrap, method, trim_percent, key_first
    ) - _resample_statistics(second, n_bootstrap, method, trim_percent, key_second)

    diff_estimate = float(np.mean(differences))
    ci_lower = float(np.percentile(differences, 100 * alpha / 2))
    ci_upper = float(np.percentile(differences, 100 * (1 - alpha / 2)))
    is_significant = bool((ci_lower > 0) or (ci_upper < 0))
    return diff_estimate, ci_lower, ci_upper, is_significant
