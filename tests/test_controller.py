"""
test_controller.py
------------------

Tests for the adaptive staircase controller.

Coverage:
- 2-down-1-up and 1-down-1-up level updates (including "no move" on a single correct)
- Reversal detection and reversal counting
- Step schedule indexed by reversal count
- Additive and multiplicative adaptation, clamping to [min_level, max_level]
- Terminal conditions (target reversals + min trials, max trials)
- Same-pass threshold, low-confidence result, result before completion
- Numeric anomaly fallback and NumericAnomalyWarning
- Determinism, snapshots, reset, progress, diagnostics, presets
- StaircaseConfig validation
"""

import numpy as np
import pytest
from conftest import ALTERNATING_RESPONSES, TickingClock

from psystair.data import Direction
from psystair.errors import (
    ConfigurationError,
    InvalidResponseError,
    NumericAnomalyWarning,
    StaircaseCompletedError,
    StaircaseNotCompleteError,
)
from psystair.staircase import (
    BEAT_STAIRCASE_CONFIG,
    DEFAULT_STAIRCASE_CONFIG,
    HEARING_STAIRCASE_CONFIG,
    AdaptationMode,
    Rule,
    StaircaseConfig,
    StaircaseController,
    create_staircase_controller,
)

# ==============================================================================
# Fixtures
# ==============================================================================


@pytest.fixture
def controller(scenario_config, clock):
    """Controller at 50 in [0, 100] with steps (8, 4, 2), 2-down-1-up."""
    return StaircaseController(scenario_config, clock=clock)


def run(controller, responses):
    return [controller.record_trial(r) for r in responses]


# ==============================================================================
# Test Up-Down Rules
# ==============================================================================


class TestTwoDownOneUp:
    """Level updates under the 2-down-1-up rule."""

    def test_two_correct_move_down_one_step(self, controller):
        """[T, T] from L with step S ends at L - S."""
        run(controller, [True, True])
        assert controller.current_level() == 50 - 8

    def test_single_correct_keeps_level(self, controller):
        """A single correct answer neither moves the level nor reverses."""
        trial = controller.record_trial(True)
        assert controller.current_level() == 50
        assert not trial.is_reversal
        assert trial.direction is Direction.DOWN

    def test_correct_then_incorrect_reverses_upwards(self, controller):
        """[T, F]: unchanged after T, then L + S with a reversal on the second trial."""
        first = controller.record_trial(True)
        assert controller.current_level() == 50
        second = controller.record_trial(False)
        assert controller.current_level() == 58
        assert not first.is_reversal
        assert second.is_reversal
        assert controller.reversal_levels == (50.0,)

    def test_worked_sequence(self, controller):
        """F moves up to 58; T keeps it; the second T reverses down by the old step."""
        run(controller, [False])
        assert controller.current_level() == 58
        run(controller, [True])
        assert controller.current_level() == 58
        trial = controller.record_trial(True)
        assert trial.is_reversal
        assert trial.level == 58
        assert controller.current_level() == 50

    def test_first_trial_is_never_a_reversal(self, controller):
        """Starting direction is DOWN; an initial incorrect answer is not a reversal."""
        trial = controller.record_trial(False)
        assert trial.direction is Direction.UP
        assert not trial.is_reversal
        assert controller.reversal_count == 0

    def test_recorded_responses_replay(self, controller):
        """Replaying F,F,T,T,F,T,F,T,F,T,T,T yields three reversals."""
        responses = [False, False, True, True, False, True, False, True, False, True, True, True]
        trials = run(controller, responses)
        assert controller.reversal_count == 3
        assert controller.reversal_levels == (66.0, 58.0, 66.0)
        assert [t.index for t in trials if t.is_reversal] == [3, 4, 10]
        assert not controller.is_complete


class TestOneDownOneUp:
    """Level updates under the 1-down-1-up rule."""

    def test_every_response_moves(self, scenario_config, clock):
        config = scenario_config.with_overrides(rule=Rule.ONE_DOWN_ONE_UP)
        controller = StaircaseController(config, clock=clock)
        controller.record_trial(True)
        assert controller.current_level() == 42
        trial = controller.record_trial(False)
        assert trial.is_reversal
        assert controller.current_level() == 50

    def test_rule_accepts_string_value(self, scenario_config):
        config = scenario_config.with_overrides(rule="1down1up")
        assert config.rule is Rule.ONE_DOWN_ONE_UP


# ==============================================================================
# Test Reversals and Step Schedule
# ==============================================================================


class TestReversals:
    """Reversal counting and step-size schedule."""

    def test_one_reversal_per_direction_change(self, controller):
        """Alternating F,T,T produces exactly one reversal per direction change."""
        trials = run(controller, ALTERNATING_RESPONSES[:10])
        changes = sum(
            1
            for prev, curr in zip(trials, trials[1:])
            if curr.direction is not prev.direction
        )
        assert controller.reversal_count == changes == 6
        assert controller.reversal_count == len(controller.reversal_levels)

    def test_reversal_levels_are_trial_levels(self, controller):
        trials = run(controller, ALTERNATING_RESPONSES[:10])
        assert controller.reversal_levels == tuple(t.level for t in trials if t.is_reversal)
        assert controller.reversal_levels == (58.0, 50.0, 54.0, 52.0, 54.0, 52.0)

    def test_step_changes_after_reversal(self, controller):
        """The reversal trial moves by the old step; the next trial uses the new one."""
        trials = run(controller, ALTERNATING_RESPONSES[:10])
        steps = [t.step_size_used for t in trials]
        assert steps[:3] == [8.0, 8.0, 8.0]
        assert steps[3] == 4.0
        assert all(s == 2.0 for s in steps[4:])
        assert all(a >= b for a, b in zip(steps, steps[1:]))

    def test_step_schedule_saturates(self):
        config = StaircaseConfig(initial_level=50, min_level=0, max_level=100, step_sizes=(8, 4, 2))
        assert config.step_size_for(0) == 8.0
        assert config.step_size_for(2) == 2.0
        assert config.step_size_for(17) == 2.0
        assert config.step_index_for(17) == 2


# ==============================================================================
# Test Adaptation and Bounds
# ==============================================================================


class TestAdaptation:
    """Additive/multiplicative moves and clamping."""

    def test_multiplicative_moves(self, clock):
        """Factor 0.8 at 50: down gives 40, up gives 62.5."""
        config = StaircaseConfig(
            initial_level=50,
            min_level=1,
            max_level=100,
            step_sizes=(0.8,),
            rule=Rule.ONE_DOWN_ONE_UP,
            adaptation_mode=AdaptationMode.MULTIPLICATIVE,
        )
        down = StaircaseController(config, clock=clock)
        down.record_trial(True)
        assert down.current_level() == pytest.approx(40.0)

        up = StaircaseController(config, clock=TickingClock())
        up.record_trial(False)
        assert up.current_level() == pytest.approx(62.5)

    def test_clamped_to_bounds(self, clock):
        config = StaircaseConfig(
            initial_level=4, min_level=0, max_level=10, step_sizes=(8,), rule=Rule.ONE_DOWN_ONE_UP
        )
        controller = StaircaseController(config, clock=clock)
        controller.record_trial(True)
        assert controller.current_level() == 0
        controller.record_trial(False)
        assert controller.current_level() == 8
        controller.record_trial(False)
        assert controller.current_level() == 10

    def test_levels_stay_in_bounds_for_random_responses(self, clock):
        """Every presented level stays inside [min_level, max_level]."""
        rng = np.random.default_rng(0)
        config = DEFAULT_STAIRCASE_CONFIG.with_overrides(max_trials=200, target_reversals=200)
        controller = StaircaseController(config, clock=clock)
        for correct in rng.random(200) < 0.6:
            trial = controller.record_trial(bool(correct))
            assert config.min_level <= trial.level <= config.max_level
            assert config.min_level <= controller.current_level() <= config.max_level
        assert controller.reversal_count == sum(t.is_reversal for t in controller.trials)


# ==============================================================================
# Test Termination and Threshold
# ==============================================================================


class TestTermination:
    """Terminal conditions and results."""

    def test_completes_at_target_reversals(self, controller):
        run(controller, ALTERNATING_RESPONSES[:10])
        assert controller.is_complete
        assert controller.trial_count == 10

    def test_record_after_completion_raises(self, controller):
        run(controller, ALTERNATING_RESPONSES[:10])
        with pytest.raises(StaircaseCompletedError):
            controller.record_trial(True)
        assert controller.trial_count == 10

    def test_max_trials_bound(self, scenario_config, clock):
        """Exactly max_trials trials are accepted; the next one raises."""
        config = scenario_config.with_overrides(min_trials=3, max_trials=5, target_reversals=20)
        controller = StaircaseController(config, clock=clock)
        run(controller, [True] * 5)
        assert controller.is_complete
        with pytest.raises(StaircaseCompletedError):
            controller.record_trial(True)

    def test_same_pass_threshold(self, controller):
        """Threshold is the mean of the last six reversal levels."""
        run(controller, ALTERNATING_RESPONSES[:10])
        result = controller.result()
        levels = np.array([58.0, 50.0, 54.0, 52.0, 54.0, 52.0])
        assert result.threshold == pytest.approx(levels.mean())
        assert result.confidence == pytest.approx(1 - levels.std() / levels.mean())
        assert result.final_levels == tuple(levels)
        assert result.convergence_trials == (2, 3, 5, 6, 8, 9)
        assert result.total_trials == 10
        assert result.total_reversals == 6
        assert not result.low_confidence
        assert result.duration_ms == pytest.approx(10_000.0)

    def test_low_confidence_result(self, scenario_config, clock):
        """Terminating with fewer than 4 reversals reports the current level at 0.5."""
        config = scenario_config.with_overrides(min_trials=0, max_trials=3)
        controller = StaircaseController(config, clock=clock)
        run(controller, [False, False, False])
        result = controller.result()
        assert result.threshold == 74.0
        assert result.confidence == 0.5
        assert result.low_confidence
        assert result.final_levels == ()

    def test_result_before_completion_raises(self, controller):
        controller.record_trial(True)
        with pytest.raises(StaircaseNotCompleteError):
            controller.result()

    def test_estimate_threshold_mid_run(self, controller):
        assert controller.estimate_threshold() == (50.0, 0.5)
        run(controller, ALTERNATING_RESPONSES[:7])
        threshold, confidence = controller.estimate_threshold()
        assert threshold == pytest.approx(np.mean([58.0, 50.0, 54.0, 52.0]))
        assert 0.0 <= confidence <= 1.0


# ==============================================================================
# Test Response Validation and Numeric Anomalies
# ==============================================================================


class TestValidation:
    """Invalid responses and numeric fallbacks."""

    @pytest.mark.parametrize("rt", [-1.0, float("nan"), float("inf")])
    def test_invalid_reaction_time(self, controller, rt):
        with pytest.raises(InvalidResponseError):
            controller.record_trial(True, reaction_time_ms=rt)
        assert controller.trial_count == 0
        assert controller.current_level() == 50

    def test_reaction_time_is_recorded(self, controller):
        trial = controller.record_trial(True, reaction_time_ms=412)
        assert trial.reaction_time_ms == 412.0

    def test_overflow_falls_back_to_last_level(self, clock):
        """A non-finite level keeps the last good value and is reported."""
        config = StaircaseConfig(
            initial_level=1.5e308,
            min_level=1.0,
            max_level=1.7e308,
            step_sizes=(0.5,),
            rule=Rule.ONE_DOWN_ONE_UP,
            adaptation_mode=AdaptationMode.MULTIPLICATIVE,
        )
        controller = StaircaseController(config, clock=clock)
        with pytest.warns(NumericAnomalyWarning):
            controller.record_trial(False)
        assert np.isfinite(controller.current_level())
        assert controller.current_level() == 1.5e308
        anomalies = controller.diagnostics().anomalies
        assert len(anomalies) == 1
        assert anomalies[0].quantity == "level"
        assert anomalies[0].fallback == 1.5e308


# ==============================================================================
# Test State, Determinism and Reset
# ==============================================================================


class TestState:
    """Snapshots, determinism, reset, progress and diagnostics."""

    def test_deterministic(self, scenario_config):
        responses = [True, False, True, True, False, False, True, True, True, False]
        a = StaircaseController(scenario_config, clock=TickingClock())
        b = StaircaseController(scenario_config, clock=TickingClock())
        assert run(a, responses) == run(b, responses)
        assert a.get_state() == b.get_state()

    def test_snapshot_is_independent(self, controller):
        run(controller, [False, True])
        snapshot = controller.get_state()
        snapshot.trials.clear()
        snapshot.reversal_levels.append(1.0)
        assert controller.trial_count == 2
        assert len(controller.trials) == 2
        assert controller.reversal_levels == ()

    def test_trials_are_indexed_in_order(self, controller):
        trials = run(controller, ALTERNATING_RESPONSES[:9])
        assert [t.index for t in trials] == list(range(9))
        assert all(a.timestamp < b.timestamp for a, b in zip(trials, trials[1:]))

    def test_reset(self, controller):
        run(controller, ALTERNATING_RESPONSES[:10])
        controller.reset()
        assert controller.trial_count == 0
        assert controller.reversal_count == 0
        assert controller.current_level() == 50
        assert not controller.is_complete
        controller.record_trial(False)
        assert controller.current_level() == 58

    def test_initial_progress(self, controller):
        progress = controller.progress()
        assert progress.reversal_progress == 0.0
        assert progress.overall_progress == 0.0
        assert progress.estimated_remaining_trials == 30

    def test_progress_after_completion(self, controller):
        run(controller, ALTERNATING_RESPONSES[:10])
        progress = controller.progress()
        assert progress.reversal_progress == 1.0
        assert progress.overall_progress == pytest.approx(0.8 + 0.2 * 10 / 50)
        assert progress.estimated_remaining_trials == 0

    def test_diagnostics(self, controller):
        run(controller, ALTERNATING_RESPONSES[:7])
        diag = controller.diagnostics()
        assert diag.schema_version == 1
        assert diag.trial_count == 7
        assert diag.reversal_count == 4
        assert diag.step_size == 2.0
        assert diag.step_size_index == 2
        assert len(diag.last_trials) == 5
        assert diag.anomalies == ()


# ==============================================================================
# Test Presets and Factory
# ==============================================================================


class TestPresets:
    """Named presets and create_staircase_controller()."""

    def test_hearing_preset(self):
        controller = create_staircase_controller("hearing")
        assert controller.config is HEARING_STAIRCASE_CONFIG
        assert controller.current_level() == 40.0

    def test_case_insensitive(self):
        assert create_staircase_controller("BEAT").config is BEAT_STAIRCASE_CONFIG
        assert BEAT_STAIRCASE_CONFIG.is_multiplicative

    def test_unknown_type_uses_default(self):
        controller = create_staircase_controller("unknown-test")
        assert controller.config is DEFAULT_STAIRCASE_CONFIG

    def test_overrides(self):
        controller = create_staircase_controller("tempo", max_trials=12)
        assert controller.config.max_trials == 12
        assert controller.config.adaptation_mode is AdaptationMode.MULTIPLICATIVE


# ==============================================================================
# Test Config Validation
# ==============================================================================


class TestConfigValidation:
    """Invalid configurations are rejected, never silently corrected."""

    @pytest.mark.parametrize(
        "overrides",
        [
            {"min_level": 90.0, "max_level": 10.0},
            {"initial_level": 120.0},
            {"step_sizes": ()},
            {"step_sizes": (8.0, -1.0)},
            {"initial_step_size": 0.0},
            {"target_reversals": 0},
            {"max_trials": 0},
            {"min_trials": 60},
            {"rule": "3down1up"},
            {"adaptation_mode": "exponential"},
            {"initial_level": float("nan")},
        ],
    )
    def test_rejected(self, overrides):
        with pytest.raises(ConfigurationError):
            DEFAULT_STAIRCASE_CONFIG.with_overrides(**overrides)

    def test_multiplicative_factor_must_be_below_one(self):
        with pytest.raises(ConfigurationError):
            StaircaseConfig(
                initial_level=5, min_level=1, max_level=10,
                step_sizes=(1.2,), adaptation_mode=AdaptationMode.MULTIPLICATIVE,
            )

    @pytest.mark.parametrize(
        "bounds",
        [
            {"initial_level": 0.0, "min_level": 0.0, "max_level": 40.0},
            {"initial_level": -5.0, "min_level": -10.0, "max_level": 10.0},
        ],
    )
    def test_multiplicative_range_must_be_positive(self, bounds):
        """A zero level never moves and a negative one moves the wrong way."""
        with pytest.raises(ConfigurationError):
            StaircaseConfig(
                **bounds, step_sizes=(0.7,), adaptation_mode=AdaptationMode.MULTIPLICATIVE
            )

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            StaircaseConfig(step_sizes=())

    def test_initial_step_defaults_to_schedule_head(self):
        assert DEFAULT_STAIRCASE_CONFIG.initial_step_size == 8.0

    def test_overridden_schedule_resets_initial_step(self, clock):
        config = DEFAULT_STAIRCASE_CONFIG.with_overrides(step_sizes=(2.0, 1.0))
        assert config.initial_step_size == 2.0
        controller = StaircaseController(config, clock=clock)
        controller.record_trial(False)
        assert controller.current_level() == 42.0

    def test_explicit_initial_step_survives_schedule_override(self):
        config = DEFAULT_STAIRCASE_CONFIG.with_overrides(
            step_sizes=(2.0, 1.0), initial_step_size=5.0
        )
        assert config.initial_step_size == 5.0

    def test_custom_multiplicative_controller(self, clock):
        controller = create_staircase_controller(
            "custom",
            clock=clock,
            step_sizes=(0.7, 0.8),
            adaptation_mode="multiplicative",
            min_level=1.0,
        )
        assert controller.config.initial_step_size == 0.7
        controller.record_trial(False)
        assert controller.current_level() == pytest.approx(40.0 / 0.7)
