"""
psystair.convergence
====================

Convergence analysis of staircase trial histories.

Includes:
- config: ConvergenceConfig and per-test presets
- reversals: reversal extraction and reversal-spacing analysis
- analyzer: analyze_convergence, predict_convergence
"""

from .analyzer import (
    ConvergenceAnalysis,
    ConvergenceMetrics,
    ConvergencePrediction,
    ConvergenceQuality,
    ConvergenceReason,
    ConvergenceWarning,
    analyze_convergence,
    grade_quality,
    predict_convergence,
)
from .config import (
    BEAT_CONVERGENCE_CONFIG,
    CONVERGENCE_PRESETS,
    DEFAULT_CONVERGENCE_CONFIG,
    HEARING_CONVERGENCE_CONFIG,
    RHYTHM_CONVERGENCE_CONFIG,
    TEMPO_CONVERGENCE_CONFIG,
    ConvergenceConfig,
    get_convergence_config,
)
from .reversals import (
    ReversalPattern,
    analyze_reversal_pattern,
    detect_reversals,
    extract_reversal_levels,
)

__all__ = [
    "BEAT_CONVERGENCE_CONFIG",
    "CONVERGENCE_PRESETS",
    "ConvergenceAnalysis",
    "ConvergenceConfig",
    "ConvergenceMetrics",
    "ConvergencePrediction",
    "ConvergenceQuality",
    "ConvergenceReason",
    "ConvergenceWarning",
    "DEFAULT_CONVERGENCE_CONFIG",
    "HEARING_CONVERGENCE_CONFIG",
    "RHYTHM_CONVERGENCE_CONFIG",
    "ReversalPattern",
    "TEMPO_CONVERGENCE_CONFIG",
    "analyze_convergence",
    "analyze_reversal_pattern",
    "detect_reversals",
    "extract_reversal_levels",
    "get_convergence_config",
    "grade_quality",
    "predict_convergence",
]
