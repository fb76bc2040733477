"""
test_convergence.py
-------------------

Tests for the stateless convergence analyzer.

Coverage:
- Reason precedence: timeout > max trials > target reversals > early > stability > quality
- Quality grading from reversal-level variability
- Warning flags (variability, confidence, timeout, trial budget, stability, outliers)
- Reversal extraction and reversal-spacing pattern
- Convergence prediction
- ConvergenceConfig validation and presets
"""

from datetime import timedelta

import pytest
from conftest import START, make_trials

from psystair.convergence import (
    BEAT_CONVERGENCE_CONFIG,
    DEFAULT_CONVERGENCE_CONFIG,
    HEARING_CONVERGENCE_CONFIG,
    ConvergenceConfig,
    ConvergenceQuality,
    ConvergenceReason,
    ConvergenceWarning,
    analyze_convergence,
    analyze_reversal_pattern,
    detect_reversals,
    extract_reversal_levels,
    get_convergence_config,
    grade_quality,
    predict_convergence,
)
from psystair.data import Direction
from psystair.errors import ConfigurationError

NOW = START + timedelta(seconds=12)


def analyze(trials, config=DEFAULT_CONVERGENCE_CONFIG, now=NOW):
    return analyze_convergence(trials, START, trials[-1].level if trials else 50.0, config, now=now)


# ==============================================================================
# Test Reason Precedence
# ==============================================================================


class TestReasons:
    """Which convergence reason is reported for a given history."""

    def test_target_reversals(self, reference_trials):
        """Six reversals in the recorded run reach the default target."""
        analysis = analyze(reference_trials)
        assert analysis.has_converged
        assert analysis.reason is ConvergenceReason.TARGET_REVERSALS
        assert analysis.quality is ConvergenceQuality.EXCELLENT
        assert analysis.confidence == pytest.approx(0.9754, abs=1e-4)

    def test_timeout_wins(self, reference_trials):
        analysis = analyze(reference_trials, now=START + timedelta(seconds=301))
        assert analysis.reason is ConvergenceReason.TIMEOUT

    def test_max_trials_before_target_reversals(self, reference_trials):
        config = ConvergenceConfig(max_trials=12)
        analysis = analyze(reference_trials, config)
        assert analysis.reason is ConvergenceReason.MAX_TRIALS
        assert ConvergenceWarning.TOO_MANY_TRIALS in analysis.warnings

    def test_stability(self, reference_trials):
        """Four tightly clustered reversals reach stability before the target."""
        analysis = analyze(reference_trials[:8])
        assert analysis.reason is ConvergenceReason.STABILITY
        assert analysis.stability == pytest.approx(1 - 0.0274, abs=1e-3)

    def test_quality_threshold(self, reference_trials):
        """Two reversals are too few for stability but grade as excellent."""
        analysis = analyze(reference_trials[:6])
        assert analysis.reason is ConvergenceReason.QUALITY_THRESHOLD
        assert analysis.diagnostics.reversal_window_cv is None

    def test_quality_threshold_needs_enough_reversals(self, reference_trials):
        config = DEFAULT_CONVERGENCE_CONFIG.with_overrides(quality_min_reversals=4)
        analysis = analyze(reference_trials[:6], config)
        assert analysis.reason is ConvergenceReason.NOT_CONVERGED
        assert analysis.quality is ConvergenceQuality.EXCELLENT

    def test_early_convergence(self):
        """Fifteen trials at a constant level converge early without reversals."""
        trials = make_trials([40.0] * 15, [True, False, True] * 5)
        analysis = analyze(trials)
        assert analysis.reason is ConvergenceReason.EARLY_CONVERGENCE
        assert analysis.diagnostics.recent_level_cv == 0.0

    def test_early_convergence_disabled(self):
        trials = make_trials([40.0] * 15, [True, False, True] * 5)
        config = DEFAULT_CONVERGENCE_CONFIG.with_overrides(early_convergence=False)
        assert analyze(trials, config).reason is ConvergenceReason.NOT_CONVERGED

    def test_not_converged(self, reference_trials):
        analysis = analyze(reference_trials[:4])
        assert not analysis.has_converged
        assert analysis.reason is ConvergenceReason.NOT_CONVERGED
        assert analysis.quality is ConvergenceQuality.POOR
        assert analysis.confidence == 0.0

    def test_empty_history(self):
        analysis = analyze([])
        assert analysis.reason is ConvergenceReason.NOT_CONVERGED
        assert analysis.metrics.total_trials == 0
        assert analysis.metrics.convergence_speed == 0.0

    def test_pure_function(self, reference_trials):
        """Same inputs, same analysis."""
        assert analyze(reference_trials) == analyze(reference_trials)


# ==============================================================================
# Test Quality and Metrics
# ==============================================================================


class TestQuality:
    """Quality grading and summary metrics."""

    @pytest.mark.parametrize(
        "levels, expected",
        [
            ([60.0, 62.0, 60.0, 62.0], ConvergenceQuality.EXCELLENT),
            ([50.0, 65.0, 50.0, 65.0], ConvergenceQuality.GOOD),
            ([40.0, 65.0, 40.0, 65.0], ConvergenceQuality.ACCEPTABLE),
            ([10.0, 60.0, 10.0, 60.0], ConvergenceQuality.POOR),
            ([], ConvergenceQuality.POOR),
        ],
    )
    def test_grades(self, levels, expected):
        assert grade_quality(levels).quality is expected

    def test_metrics(self, reference_trials):
        metrics = analyze(reference_trials).metrics
        assert metrics.total_trials == 12
        assert metrics.total_reversals == 6
        assert metrics.convergence_speed == pytest.approx(0.5)
        assert metrics.efficiency_score == pytest.approx(1 - 12 / 50)
        assert metrics.data_quality == pytest.approx(1 - metrics.variability_index)
        assert metrics.elapsed_ms == pytest.approx(12_000.0)

    def test_diagnostics(self, reference_trials):
        diag = analyze(reference_trials).diagnostics
        assert diag.trial_count == 12
        assert diag.reversal_count == 6
        assert diag.current_level == 58.0
        assert diag.reason == "target_reversals"


# ==============================================================================
# Test Warnings
# ==============================================================================


class TestWarnings:
    """Independent warning flags."""

    def test_no_reversals(self, reference_trials):
        warnings = analyze(reference_trials[:4]).warnings
        assert ConvergenceWarning.HIGH_VARIABILITY in warnings
        assert ConvergenceWarning.LOW_CONFIDENCE in warnings
        assert ConvergenceWarning.UNSTABLE_PATTERN in warnings
        assert ConvergenceWarning.APPROACHING_TIMEOUT not in warnings
        assert ConvergenceWarning.OUTLIERS_DETECTED not in warnings

    def test_recorded_run(self, reference_trials):
        """Only the opening level of 50 lies outside 2.5 std of the run."""
        assert analyze(reference_trials).warnings == (ConvergenceWarning.OUTLIERS_DETECTED,)

    def test_outliers_disabled(self, reference_trials):
        config = DEFAULT_CONVERGENCE_CONFIG.with_overrides(outlier_detection=False)
        assert analyze(reference_trials, config).warnings == ()

    def test_outlier_level(self):
        trials = make_trials([50.0] * 9 + [100.0], [True] * 10)
        assert ConvergenceWarning.OUTLIERS_DETECTED in analyze(trials).warnings

    def test_approaching_timeout(self, reference_trials):
        analysis = analyze(reference_trials, now=START + timedelta(seconds=250))
        assert ConvergenceWarning.APPROACHING_TIMEOUT in analysis.warnings
        assert analysis.reason is ConvergenceReason.TARGET_REVERSALS


# ==============================================================================
# Test Reversal Helpers
# ==============================================================================


class TestReversalHelpers:
    """Reversal extraction and spacing."""

    def test_detect_reversals(self, reference_trials):
        points = detect_reversals(reference_trials)
        assert [p.trial_index for p in points] == [4, 5, 6, 7, 8, 9]
        assert points[0].new_direction is Direction.UP
        assert points[0].previous_direction is Direction.DOWN
        assert points[0].step_size == 4.0

    def test_extract_levels(self, reference_trials):
        assert extract_reversal_levels(reference_trials) == [58.0, 62.0, 60.0, 62.0, 60.0, 62.0]

    def test_regular_pattern(self, reference_trials):
        pattern = analyze_reversal_pattern(reference_trials)
        assert pattern.intervals == (1, 1, 1, 1, 1)
        assert pattern.average_interval == 1.0
        assert pattern.pattern_stability == 1.0
        assert pattern.is_regular

    def test_too_few_reversals(self, reference_trials):
        pattern = analyze_reversal_pattern(reference_trials[:5])
        assert pattern.intervals == ()
        assert not pattern.is_regular


# ==============================================================================
# Test Prediction
# ==============================================================================


class TestPrediction:
    """predict_convergence()."""

    def test_already_met(self, reference_trials):
        prediction = predict_convergence(reference_trials)
        assert prediction.estimated_trials_remaining == 0
        assert prediction.confidence == 1.0

    def test_observed_rate(self, reference_trials):
        """Two reversals in six trials: four more at three trials each."""
        prediction = predict_convergence(reference_trials[:6])
        assert prediction.estimated_trials_remaining == 12
        assert 0.0 < prediction.confidence < 1.0

    def test_no_trials(self):
        prediction = predict_convergence([])
        assert prediction.estimated_trials_remaining == 30
        assert prediction.confidence == 0.0

    def test_capped_by_trial_budget(self, reference_trials):
        config = ConvergenceConfig(max_trials=8)
        prediction = predict_convergence(reference_trials[:6], config)
        assert prediction.estimated_trials_remaining == 2


# ==============================================================================
# Test Config
# ==============================================================================


class TestConfig:
    """ConvergenceConfig validation and presets."""

    @pytest.mark.parametrize(
        "overrides",
        [
            {"target_reversals": 0},
            {"min_reversals": 1},
            {"min_reversals": 8},
            {"stability_window": 0},
            {"stability_threshold": 0.0},
            {"max_variability": 1.5},
            {"max_duration_ms": -1.0},
            {"timeout_warning_ms": 400_000.0},
            {"quality_min_reversals": 0},
        ],
    )
    def test_rejected(self, overrides):
        with pytest.raises(ConfigurationError):
            DEFAULT_CONVERGENCE_CONFIG.with_overrides(**overrides)

    def test_presets(self):
        assert get_convergence_config("hearing") is HEARING_CONVERGENCE_CONFIG
        assert get_convergence_config("Beat") is BEAT_CONVERGENCE_CONFIG
        assert get_convergence_config("rhythm").max_trials == 50

    def test_unknown_falls_back_to_hearing(self):
        assert get_convergence_config("bfit-v2") is HEARING_CONVERGENCE_CONFIG
