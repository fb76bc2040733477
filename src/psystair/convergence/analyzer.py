"""
analyzer.py
-----------

Stateless convergence analysis of a staircase trial history.

``analyze_convergence`` is recomputed on demand from (trials, start time,
current level, ConvergenceConfig); nothing is cached between calls.

Reason precedence (first match wins):

1. TIMEOUT            elapsed time exceeds ``max_duration_ms``
2. MAX_TRIALS         trial count reaches ``max_trials``
3. TARGET_REVERSALS   reversal count reaches ``target_reversals``
4. EARLY_CONVERGENCE  CV of the last ``early_convergence_trials`` levels is small
5. STABILITY          CV of the last ``stability_window`` reversal levels is small
6. QUALITY_THRESHOLD  quality grade is EXCELLENT with confidence >= 0.9
                      (and at least ``quality_min_reversals`` reversals)
7. NOT_CONVERGED

Quality grading uses the variability ``v = std / |mean|`` of all reversal
levels and ``confidence = clamp(1 - v)``:

    EXCELLENT   confidence >= 0.9 and v <= 0.1
    GOOD        confidence >= 0.8 and v <= 0.2
    ACCEPTABLE  confidence >= 0.7 and v <= 0.3
    POOR        otherwise

Examples
--------
>>> from psystair.convergence import analyze_convergence, HEARING_CONVERGENCE_CONFIG
>>> analysis = analyze_convergence(controller.trials, controller.started_at,
...                                controller.current_level(),
...                                HEARING_CONVERGENCE_CONFIG)  # doctest: +SKIP
>>> analysis.reason, analysis.quality  # doctest: +SKIP
(<ConvergenceReason.TARGET_REVERSALS: 'target_reversals'>, <ConvergenceQuality.EXCELLENT: 'excellent'>)
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

import numpy as np

from psystair.convergence.config import DEFAULT_CONVERGENCE_CONFIG, ConvergenceConfig
from psystair.convergence.reversals import extract_reversal_levels
from psystair.data.trial import Trial
from psystair.utils.diagnostics import AnalyzerDiagnostics
from psystair.utils.math import VarianceTrend, coefficient_of_variation, variance_trend

logger = logging.getLogger(__name__)

# Reversal window used by the stability index.
STABILITY_INDEX_WINDOW = 6
UNSTABLE_PATTERN_INDEX = 0.5
TOO_MANY_TRIALS_FRACTION = 0.8
OUTLIER_STD_MULTIPLIER = 2.5
OUTLIER_MIN_TRIALS = 5


class ConvergenceReason(str, Enum):
    TIMEOUT = "timeout"
    MAX_TRIALS = "max_trials"
    TARGET_REVERSALS = "target_reversals"
    EARLY_CONVERGENCE = "early_convergence"
    STABILITY = "stability_achieved"
    QUALITY_THRESHOLD = "quality_threshold"
    NOT_CONVERGED = "not_converged"


class ConvergenceQuality(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    ACCEPTABLE = "acceptable"
    POOR = "poor"


class ConvergenceWarning(str, Enum):
    HIGH_VARIABILITY = "high_variability"
    LOW_CONFIDENCE = "low_confidence"
    APPROACHING_TIMEOUT = "approaching_timeout"
    TOO_MANY_TRIALS = "too_many_trials"
    UNSTABLE_PATTERN = "unstable_pattern"
    OUTLIERS_DETECTED = "outliers_detected"


@dataclass(frozen=True)
class ConvergenceMetrics:
    """
    Summary numbers of one analysis.

    Attributes
    ----------
    total_trials, total_reversals : int
    stability_index : float
        ``1 - CV`` of the last six reversal levels (0 with fewer than three).
    variability_index : float
        CV of all reversal levels (1 when there are none).
    efficiency_score : float
        ``1 - trials / max_trials``, floored at 0.
    convergence_speed : float
        Reversals per trial.
    data_quality : float
        ``1 - variability_index``, floored at 0.
    elapsed_ms : float
    """

    total_trials: int
    total_reversals: int
    stability_index: float
    variability_index: float
    efficiency_score: float
    convergence_speed: float
    data_quality: float
    elapsed_ms: float


@dataclass(frozen=True)
class ConvergenceAnalysis:
    has_converged: bool
    reason: ConvergenceReason
    confidence: float
    stability: float
    quality: ConvergenceQuality
    warnings: tuple[ConvergenceWarning, ...]
    metrics: ConvergenceMetrics
    trend: VarianceTrend
    diagnostics: AnalyzerDiagnostics


@dataclass(frozen=True)
class StabilityCheck:
    stability: float
    is_stable: bool
    trend: VarianceTrend
    window_cv: float | None


@dataclass(frozen=True)
class QualityCheck:
    quality: ConvergenceQuality
    confidence: float
    variability: float


@dataclass(frozen=True)
class ConvergencePrediction:
    estimated_trials_remaining: int
    confidence: float
    reasoning: str


def _clamp01(value: float) -> float:
    if not np.isfinite(value):
        return 0.0
    return max(0.0, min(1.0, value))


def elapsed_ms(started_at: datetime, now: datetime | None = None) -> float:
    """Milliseconds between ``started_at`` and ``now`` (wall clock by default)."""
    if now is None:
        now = datetime.now(started_at.tzinfo)
    return (now - started_at).total_seconds() * 1000.0


# ----------------------------------------------------------------------
# INDIVIDUAL CHECKS
# ----------------------------------------------------------------------
def early_convergence_cv(trials: Sequence[Trial], config: ConvergenceConfig) -> float | None:
    """CV of the trailing trial levels, or None when the check does not apply."""
    if not config.early_convergence or len(trials) < config.early_convergence_trials:
        return None
    window = [t.level for t in trials[-config.early_convergence_trials:]]
    return coefficient_of_variation(window)


def check_stability(reversal_levels: Sequence[float], config: ConvergenceConfig) -> StabilityCheck:
    if len(reversal_levels) < config.stability_min_samples:
        return StabilityCheck(stability=0.0, is_stable=False, trend="stable", window_cv=None)
    window = list(reversal_levels[-min(config.stability_window, len(reversal_levels)):])
    cv = coefficient_of_variation(window)
    return StabilityCheck(
        stability=_clamp01(1.0 - cv),
        is_stable=cv <= config.stability_threshold,
        trend=variance_trend(window),
        window_cv=cv,
    )


def grade_quality(reversal_levels: Sequence[float]) -> QualityCheck:
    """Grade reversal-level variability into a ConvergenceQuality."""
    if not reversal_levels:
        return QualityCheck(quality=ConvergenceQuality.POOR, confidence=0.0, variability=1.0)
    variability = coefficient_of_variation(reversal_levels)
    confidence = _clamp01(1.0 - variability)
    if confidence >= 0.9 and variability <= 0.1:
        quality = ConvergenceQuality.EXCELLENT
    elif confidence >= 0.8 and variability <= 0.2:
        quality = ConvergenceQuality.GOOD
    elif confidence >= 0.7 and variability <= 0.3:
        quality = ConvergenceQuality.ACCEPTABLE
    else:
        quality = ConvergenceQuality.POOR
    return QualityCheck(quality=quality, confidence=confidence, variability=variability)


def has_outliers(trials: Sequence[Trial]) -> bool:
    """True if any level lies more than 2.5 population std from the mean of all levels."""
    if len(trials) < OUTLIER_MIN_TRIALS:
        return False
    levels = np.asarray([t.level for t in trials], dtype=np.float64)
    std = float(np.std(levels))
    if std == 0.0:
        return False
    return bool(np.any(np.abs(levels - levels.mean()) > OUTLIER_STD_MULTIPLIER * std))


def compute_metrics(
    trials: Sequence[Trial],
    reversal_levels: Sequence[float],
    elapsed: float,
    config: ConvergenceConfig,
) -> ConvergenceMetrics:
    total_trials = len(trials)
    total_reversals = len(reversal_levels)

    if total_reversals >= 3:
        recent = reversal_levels[-min(STABILITY_INDEX_WINDOW, total_reversals):]
        stability_index = _clamp01(1.0 - coefficient_of_variation(recent))
    else:
        stability_index = 0.0
    variability_index = coefficient_of_variation(reversal_levels) if total_reversals else 1.0

    return ConvergenceMetrics(
        total_trials=total_trials,
        total_reversals=total_reversals,
        stability_index=stability_index,
        variability_index=variability_index,
        efficiency_score=max(0.0, 1.0 - total_trials / config.max_trials),
        convergence_speed=total_reversals / total_trials if total_reversals else 0.0,
        data_quality=_clamp01(1.0 - variability_index),
        elapsed_ms=elapsed,
    )


def collect_warnings(
    trials: Sequence[Trial],
    metrics: ConvergenceMetrics,
    config: ConvergenceConfig,
) -> tuple[ConvergenceWarning, ...]:
    """Independent, non-exclusive warning flags."""
    warnings: list[ConvergenceWarning] = []
    if metrics.variability_index > config.max_variability:
        warnings.append(ConvergenceWarning.HIGH_VARIABILITY)
    if metrics.data_quality < config.min_confidence:
        warnings.append(ConvergenceWarning.LOW_CONFIDENCE)
    if metrics.elapsed_ms > config.timeout_warning_ms:
        warnings.append(ConvergenceWarning.APPROACHING_TIMEOUT)
    if len(trials) > config.max_trials * TOO_MANY_TRIALS_FRACTION:
        warnings.append(ConvergenceWarning.TOO_MANY_TRIALS)
    if metrics.stability_index < UNSTABLE_PATTERN_INDEX:
        warnings.append(ConvergenceWarning.UNSTABLE_PATTERN)
    if config.outlier_detection and has_outliers(trials):
        warnings.append(ConvergenceWarning.OUTLIERS_DETECTED)
    return tuple(warnings)


# ----------------------------------------------------------------------
# ANALYSIS
# ----------------------------------------------------------------------
def analyze_convergence(
    trials: Sequence[Trial],
    started_at: datetime,
    current_level: float,
    config: ConvergenceConfig | None = None,
    *,
    now: datetime | None = None,
) -> ConvergenceAnalysis:
    """
    Analyze a trial history for convergence, quality and warnings.

    Parameters
    ----------
    trials : sequence of Trial
        History in presentation order.
    started_at : datetime
        Start of the run; compared against ``now`` for the timeout check.
    current_level : float
        Level the controller would present next (reported in diagnostics only).
    config : ConvergenceConfig, optional
        Criteria. Defaults to DEFAULT_CONVERGENCE_CONFIG.
    now : datetime, optional
        Evaluation time. Defaults to the wall clock in ``started_at``'s timezone.

    Returns
    -------
    ConvergenceAnalysis
    """
    config = config if config is not None else DEFAULT_CONVERGENCE_CONFIG
    trials = list(trials)
    elapsed = elapsed_ms(started_at, now)
    reversal_levels = extract_reversal_levels(trials)
    n_reversals = len(reversal_levels)

    metrics = compute_metrics(trials, reversal_levels, elapsed, config)
    stability = check_stability(reversal_levels, config)
    quality = grade_quality(reversal_levels)
    warnings = collect_warnings(trials, metrics, config)
    recent_cv = early_convergence_cv(trials, config)

    if elapsed > config.max_duration_ms:
        reason = ConvergenceReason.TIMEOUT
    elif len(trials) >= config.max_trials:
        reason = ConvergenceReason.MAX_TRIALS
    elif n_reversals >= config.target_reversals:
        reason = ConvergenceReason.TARGET_REVERSALS
    elif recent_cv is not None and recent_cv <= config.early_convergence_threshold:
        reason = ConvergenceReason.EARLY_CONVERGENCE
    elif stability.is_stable and n_reversals >= config.min_reversals:
        reason = ConvergenceReason.STABILITY
    elif (
        quality.quality is ConvergenceQuality.EXCELLENT
        and quality.confidence >= 0.9
        and n_reversals >= config.quality_min_reversals
    ):
        reason = ConvergenceReason.QUALITY_THRESHOLD
    else:
        reason = ConvergenceReason.NOT_CONVERGED

    notes = []
    if n_reversals < config.stability_min_samples:
        notes.append(
            f"stability check skipped: {n_reversals} < {config.stability_min_samples} reversals"
        )
    if recent_cv is None and config.early_convergence:
        notes.append(
            f"early convergence check skipped: {len(trials)} < "
            f"{config.early_convergence_trials} trials"
        )

    diagnostics = AnalyzerDiagnostics(
        trial_count=len(trials),
        reversal_count=n_reversals,
        elapsed_ms=elapsed,
        current_level=float(current_level),
        recent_level_cv=recent_cv,
        reversal_window_cv=stability.window_cv,
        reversal_variability=quality.variability,
        reason=reason.value,
        notes=tuple(notes),
    )
    has_converged = reason is not ConvergenceReason.NOT_CONVERGED
    logger.debug(
        "convergence after %d trials / %d reversals: %s (quality=%s, warnings=%s)",
        len(trials),
        n_reversals,
        reason.value,
        quality.quality.value,
        [w.value for w in warnings],
    )

    return ConvergenceAnalysis(
        has_converged=has_converged,
        reason=reason,
        confidence=quality.confidence,
        stability=stability.stability,
        quality=quality.quality,
        warnings=warnings,
        metrics=metrics,
        trend=stability.trend,
        diagnostics=diagnostics,
    )


def predict_convergence(
    trials: Sequence[Trial], config: ConvergenceConfig | None = None
) -> ConvergencePrediction:
    """
    Estimate how many more trials are needed to reach the target reversals.

    Uses the observed trials-per-reversal rate (5 before the first reversal),
    capped by the trials left before ``max_trials``.
    """
    config = config if config is not None else DEFAULT_CONVERGENCE_CONFIG
    n_trials = len(trials)
    reversal_levels = extract_reversal_levels(trials)
    n_reversals = len(reversal_levels)
    trials_left = max(0, config.max_trials - n_trials)
    remaining_reversals = max(0, config.target_reversals - n_reversals)

    if remaining_reversals == 0 or trials_left == 0:
        return ConvergencePrediction(
            estimated_trials_remaining=0,
            confidence=1.0,
            reasoning="convergence criteria already met",
        )

    if n_reversals == 0:
        estimate = min(trials_left, remaining_reversals * 5)
        return ConvergencePrediction(
            estimated_trials_remaining=estimate,
            confidence=0.0 if n_trials == 0 else 0.2,
            reasoning="no reversals yet; assuming 5 trials per reversal",
        )

    rate = n_trials / n_reversals
    estimate = min(trials_left, int(round(remaining_reversals * rate)))
    quality = grade_quality(reversal_levels)
    # Scaled by the fraction of target reversals already observed.
    confidence = _clamp01(
        quality.confidence * min(1.0, n_reversals / config.target_reversals)
    )
    return ConvergencePrediction(
        estimated_trials_remaining=estimate,
        confidence=confidence,
        reasoning=(
            f"{remaining_reversals} reversals remaining at {rate:.1f} trials per reversal"
        ),
    )
