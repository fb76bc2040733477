"""
psystair
========

Adaptive up-down staircases for psychoacoustic threshold estimation.

This package implements 1-down-1-up and 2-down-1-up staircase procedures
with additive (dB) or multiplicative (factor) steps, a stateless
convergence/quality analyzer, threshold statistics over reversal levels,
and per-test adapters for a hearing-threshold test and three rhythm
perception tests (beat/meter, tempo direction, complex-rhythm tempo).

----------------------------------------------------------------------
Workflow
----------------------------------------------------------------------

Core design
-----------
1. StaircaseController (staircase/controller.py):
   - Owns the current level, direction and step size.
   - record_trial(correct, rt) applies the up-down rule, detects reversals,
     moves and clamps the level, and checks the terminal condition.
   - Once terminal, result() returns a same-pass threshold.

2. Convergence analyzer (convergence/analyzer.py):
   - Pure function of the trial history, start time and ConvergenceConfig.
   - Reports reason (timeout, max trials, target reversals, early,
     stability, quality), quality grade, warnings and metrics.

3. Threshold statistics (statistics/):
   - threshold_from_reversals: outlier filter, mean/median/trimmed mean,
     normal-approximation confidence interval.
   - analyze_learning_curve, performance_metrics, compare_sessions.

4. Adapters (adapters/):
   - HearingThresholdAdapter: one controller per test frequency.
   - BeatPatternAdapter, TempoDirectionAdapter, ComplexRhythmAdapter:
     categorical responses scored against the presented category.

5. StaircaseSession (session/staircase_session.py):
   - Couples a controller with the analyzer and returns a tri-state
     SessionOutcome: Converged / NotConverged / Failed.

Unified import style
--------------------
Top-level:
  from psystair import StaircaseController, StaircaseConfig, Rule, AdaptationMode
  from psystair import analyze_convergence, threshold_from_reversals, StaircaseSession

Subpackages:
  from psystair.staircase import HEARING_STAIRCASE_CONFIG, create_staircase_controller
  from psystair.convergence import ConvergenceConfig, get_convergence_config, predict_convergence
  from psystair.statistics import StatisticsConfig, analyze_learning_curve, compare_sessions
  from psystair.adapters import HearingThresholdAdapter, BeatPatternAdapter
  from psystair.utils import bootstrap_threshold, resolve_key

Data flow
---------
- The caller presents ``controller.current_level()`` as a stimulus and
  reports the response through ``record_trial``; each call returns an
  immutable Trial.
- The analyzer and the statistics functions only read Trial sequences and
  reversal levels; they never mutate controller state.
- Numeric anomalies (non-finite levels or factors) fall back to the last
  good value and emit NumericAnomalyWarning; configuration and usage errors
  raise subclasses of ValueError / RuntimeError (psystair.errors).

Logging
-------
Every module logs to ``logging.getLogger(__name__)``; per-trial traces are
at DEBUG. The library never configures handlers.

----------------------------------------------------------------------
"""

from . import adapters as adapters
from . import convergence as convergence
from . import data as data
from . import session as session
from . import staircase as staircase
from . import statistics as statistics
from . import utils as utils

# Adapters
from .adapters import (
    BeatPatternAdapter,
    ComplexRhythmAdapter,
    HearingThresholdAdapter,
    TempoDirectionAdapter,
)

# Convergence
from .convergence import (
    ConvergenceAnalysis,
    ConvergenceConfig,
    ConvergenceQuality,
    ConvergenceReason,
    ConvergenceWarning,
    analyze_convergence,
    get_convergence_config,
)

# Data
from .data import Direction, StaircaseState, Trial

# Errors
from .errors import (
    ConfigurationError,
    InsufficientDataError,
    InvalidResponseError,
    NonFiniteInputError,
    NumericAnomalyWarning,
    StaircaseCompletedError,
    StaircaseError,
    StaircaseNotCompleteError,
)

# Orchestration
from .session import Converged, Failed, NotConverged, SessionOutcome, StaircaseSession

# Staircase
from .staircase import (
    AdaptationMode,
    Rule,
    StaircaseConfig,
    StaircaseController,
    StaircaseResult,
    create_staircase_controller,
)

# Statistics
from .statistics import (
    StatisticsConfig,
    ThresholdEstimate,
    analyze_learning_curve,
    compare_sessions,
    performance_metrics,
    threshold_from_reversals,
)

__version__ = "0.1.0"

__all__ = [
    # Staircase
    "AdaptationMode",
    "Rule",
    "StaircaseConfig",
    "StaircaseController",
    "StaircaseResult",
    "create_staircase_controller",
    # Data
    "Direction",
    "StaircaseState",
    "Trial",
    # Convergence
    "ConvergenceAnalysis",
    "ConvergenceConfig",
    "ConvergenceQuality",
    "ConvergenceReason",
    "ConvergenceWarning",
    "analyze_convergence",
    "get_convergence_config",
    # Statistics
    "StatisticsConfig",
    "ThresholdEstimate",
    "analyze_learning_curve",
    "compare_sessions",
    "performance_metrics",
    "threshold_from_reversals",
    # Adapters
    "BeatPatternAdapter",
    "ComplexRhythmAdapter",
    "HearingThresholdAdapter",
    "TempoDirectionAdapter",
    # Orchestration
    "Converged",
    "Failed",
    "NotConverged",
    "SessionOutcome",
    "StaircaseSession",
    # Errors
    "ConfigurationError",
    "InsufficientDataError",
    "InvalidResponseError",
    "NonFiniteInputError",
    "NumericAnomalyWarning",
    "StaircaseCompletedError",
    "StaircaseError",
    "StaircaseNotCompleteError",
    # Subpackages
    "adapters",
    "convergence",
    "data",
    "session",
    "staircase",
    "statistics",
    "utils",
]
