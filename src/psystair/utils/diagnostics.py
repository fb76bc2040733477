"""
diagnostics.py
--------------

Fixed, versioned diagnostic snapshots and human-readable summaries.

Provides:
- NumericAnomaly : one recovered non-finite intermediate value.
- ControllerDiagnostics : snapshot of a StaircaseController's internals.
- AnalyzerDiagnostics : intermediate quantities of one convergence analysis.
- result_summary / print_result_summary : threshold report for a finished run.

Each snapshot carries ``schema_version`` so persisted diagnostics can be
told apart when fields change.

Examples
--------
>>> from psystair.utils.diagnostics import print_result_summary
>>> print_result_summary(controller.result())  # doctest: +SKIP
Staircase Result (12 trials, 6 reversals):
  Threshold: 60.667 (confidence 0.975)
  Final levels: [58.0, 62.0, 60.0, 62.0, 60.0, 62.0]
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from psystair.data.trial import Trial
    from psystair.staircase.controller import StaircaseResult

CONTROLLER_DIAGNOSTICS_VERSION = 1
ANALYZER_DIAGNOSTICS_VERSION = 1


@dataclass(frozen=True)
class NumericAnomaly:
    """
    A non-finite value that was replaced before it could reach the state.

    Attributes
    ----------
    trial_index : int
        Trial during which the anomaly occurred.
    quantity : str
        What was being computed ("level", "step_size", "threshold", ...).
    value : float
        The offending value (NaN or +/-inf).
    fallback : float
        The last known-good value used instead.
    """

    trial_index: int
    quantity: str
    value: float
    fallback: float


@dataclass(frozen=True)
class ControllerDiagnostics:
    current_level: float
    direction: str
    step_size: float
    step_size_index: int
    consecutive_correct: int
    consecutive_incorrect: int
    reversal_count: int
    trial_count: int
    progress: float
    last_trials: tuple[Trial, ...]
    anomalies: tuple[NumericAnomaly, ...] = ()
    schema_version: int = CONTROLLER_DIAGNOSTICS_VERSION


@dataclass(frozen=True)
class AnalyzerDiagnostics:
    trial_count: int
    reversal_count: int
    elapsed_ms: float
    current_level: float
    recent_level_cv: float | None
    reversal_window_cv: float | None
    reversal_variability: float
    reason: str
    notes: tuple[str, ...] = field(default_factory=tuple)
    schema_version: int = ANALYZER_DIAGNOSTICS_VERSION


def result_summary(result: StaircaseResult) -> dict[str, Any]:
    """
    Flatten a StaircaseResult into a plain dictionary.

    Returns
    -------
    dict
        Keys: threshold, confidence, low_confidence, total_trials,
        total_reversals, final_levels, duration_ms.
    """
    return {
        "threshold": result.threshold,
        "confidence": result.confidence,
        "low_confidence": result.low_confidence,
        "total_trials": result.total_trials,
        "total_reversals": result.total_reversals,
        "final_levels": list(result.final_levels),
        "duration_ms": result.duration_ms,
    }


def print_result_summary(result: StaircaseResult) -> None:
    """Print a human-readable threshold report."""
    summary = result_summary(result)
    print(
        f"Staircase Result ({summary['total_trials']} trials, "
        f"{summary['total_reversals']} reversals):"
    )
    print(
        f"  Threshold: {summary['threshold']:.3f} "
        f"(confidence {summary['confidence']:.3f})"
    )
    if summary["low_confidence"]:
        print("  Warning: fewer than 4 reversals, estimate is low-confidence")
    print(f"  Final levels: {summary['final_levels']}")
