"""
utils
=====

Shared utility functions and helpers for psystair.

This subpackage provides:
- bootstrap : percentile intervals for reversal thresholds via resampling.
- diagnostics : versioned diagnostic snapshots and result summaries.
- math : dispersion, coefficient of variation and trend helpers.
- rng : PRNG key policy (explicit key, integer seed or package default).
"""

from .bootstrap import bootstrap_threshold, bootstrap_threshold_difference
from .diagnostics import (
    ANALYZER_DIAGNOSTICS_VERSION,
    CONTROLLER_DIAGNOSTICS_VERSION,
    AnalyzerDiagnostics,
    ControllerDiagnostics,
    NumericAnomaly,
    print_result_summary,
    result_summary,
)
from .math import (
    coefficient_of_variation,
    detect_trend,
    linear_slope,
    population_std,
    variance_trend,
)
from .rng import DEFAULT_BOOTSTRAP_SEED, resolve_key, session_keys

__all__ = [
    # bootstrap
    "bootstrap_threshold",
    "bootstrap_threshold_difference",
    # diagnostics
    "ANALYZER_DIAGNOSTICS_VERSION",
    "CONTROLLER_DIAGNOSTICS_VERSION",
    "AnalyzerDiagnostics",
    "ControllerDiagnostics",
    "NumericAnomaly",
    "result_summary",
    "print_result_summary",
    # math
    "coefficient_of_variation",
    "detect_trend",
    "linear_slope",
    "population_std",
    "variance_trend",
    # rng
    "DEFAULT_BOOTSTRAP_SEED",
    "resolve_key",
    "session_keys",
]
