"""
test_diagnostics.py
-------------------

Tests for diagnostics utilities (result summaries, diagnostic snapshots).
"""

import pytest
from conftest import ALTERNATING_RESPONSES

from psystair.staircase import StaircaseController
from psystair.utils import (
    ANALYZER_DIAGNOSTICS_VERSION,
    CONTROLLER_DIAGNOSTICS_VERSION,
    print_result_summary,
    result_summary,
)


@pytest.fixture
def completed_controller(scenario_config, clock):
    """A controller run to its target reversals."""
    controller = StaircaseController(scenario_config, clock=clock)
    for r in ALTERNATING_RESPONSES[:10]:
        controller.record_trial(r)
    return controller


def test_result_summary_keys(completed_controller):
    summary = result_summary(completed_controller.result())
    assert set(summary) == {
        "threshold",
        "confidence",
        "low_confidence",
        "total_trials",
        "total_reversals",
        "final_levels",
        "duration_ms",
    }
    assert summary["total_reversals"] == 6
    assert summary["final_levels"] == [58.0, 50.0, 54.0, 52.0, 54.0, 52.0]


def test_print_result_summary(completed_controller, capsys):
    print_result_summary(completed_controller.result())
    out = capsys.readouterr().out
    assert "Threshold:" in out
    assert "10 trials, 6 reversals" in out
    assert "low-confidence" not in out


def test_print_low_confidence_warning(scenario_config, clock, capsys):
    controller = StaircaseController(
        scenario_config.with_overrides(min_trials=0, max_trials=2), clock=clock
    )
    controller.record_trial(False)
    controller.record_trial(False)
    print_result_summary(controller.result())
    assert "low-confidence" in capsys.readouterr().out


def test_schema_versions(completed_controller):
    assert completed_controller.diagnostics().schema_version == CONTROLLER_DIAGNOSTICS_VERSION
    assert ANALYZER_DIAGNOSTICS_VERSION >= 1
