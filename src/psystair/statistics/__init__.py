"""
psystair.statistics
===================

Threshold statistics.

Includes:
- threshold: StatisticsConfig, ThresholdEstimate, threshold_from_reversals
- learning: analyze_learning_curve, performance_metrics
- sessions: compare_sessions
"""

from .learning import (
    LearningCurve,
    PerformanceMetrics,
    analyze_learning_curve,
    performance_metrics,
)
from .sessions import SessionComparison, compare_sessions
from .threshold import (
    DEFAULT_STATISTICS_CONFIG,
    StatisticsConfig,
    ThresholdEstimate,
    threshold_from_reversals,
    z_score,
)

__all__ = [
    "DEFAULT_STATISTICS_CONFIG",
    "LearningCurve",
    "PerformanceMetrics",
    "SessionComparison",
    "StatisticsConfig",
    "ThresholdEstimate",
    "analyze_learning_curve",
    "compare_sessions",
    "performance_metrics",
    "threshold_from_reversals",
    "z_score",
]
