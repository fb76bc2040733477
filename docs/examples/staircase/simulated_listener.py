"""
Offline example: run a 2-down-1-up staircase against a simulated listener
-------------------------------------------------------------------------

This script demonstrates the full loop without any audio hardware:

1. Define a 'ground-truth' listener whose probability of a correct answer is
   a logistic function of the presented level (dB SPL).
2. Drive a StaircaseSession with responses sampled from that listener.
3. Report the session threshold, the convergence analysis and a bootstrap
   interval for the reversal levels.

A 2-down-1-up track converges to the level with p(correct) ~= 0.707, so the
estimate should land a little above the listener's 50% point.
"""

from __future__ import annotations

import os
import sys

import jax.numpy as jnp
import jax.random as jr

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../../../src")))
# --8<-- [start:imports]
from psystair import Converged, Failed, StaircaseSession, create_staircase_controller
from psystair.convergence import get_convergence_config
from psystair.utils import bootstrap_threshold

# --8<-- [end:imports]

TRUE_THRESHOLD_DB = 32.0
SLOPE = 0.4


def p_correct(level: float) -> float:
    """Logistic psychometric function of the simulated listener."""
    return float(1.0 / (1.0 + jnp.exp(-SLOPE * (level - TRUE_THRESHOLD_DB))))


def main() -> None:
    # A single clean reversal grades as excellent; ask for four before trusting it.
    convergence = get_convergence_config("hearing").with_overrides(quality_min_reversals=4)
    session = StaircaseSession(create_staircase_controller("hearing"), convergence)
    key = jr.PRNGKey(0)

    outcome = None
    while not session.has_converged:
        key, subkey = jr.split(key)
        level = session.current_level()
        heard = bool(jr.uniform(subkey) < p_correct(level))
        outcome = session.record(heard, reaction_time_ms=450.0)
        if isinstance(outcome, Failed):
            raise RuntimeError(outcome.message)

    assert isinstance(outcome, Converged)
    result, analysis = outcome.result, outcome.analysis
    print(f"Converged ({analysis.reason.value}) after {result.total_trials} trials")
    print(f"  Threshold: {result.threshold:.2f} dB (confidence {result.confidence:.3f})")
    print(f"  Quality: {analysis.quality.value}, warnings: {[w.value for w in analysis.warnings]}")

    levels = session.controller.reversal_levels
    if len(levels) >= 2:
        key, subkey = jr.split(key)
        estimate, lower, upper = bootstrap_threshold(levels, n_bootstrap=500, key=subkey)
        print(f"  Bootstrap: {estimate:.2f} dB [{lower:.2f}, {upper:.2f}]")


if __name__ == "__main__":
    main()
