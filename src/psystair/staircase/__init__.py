"""
psystair.staircase
==================

Adaptive up-down staircase controllers.

Includes:
- config: StaircaseConfig, Rule, AdaptationMode and per-test presets
- controller: StaircaseController, StaircaseResult, StaircaseProgress
"""

from .config import (
    BEAT_STAIRCASE_CONFIG,
    DEFAULT_STAIRCASE_CONFIG,
    HEARING_STAIRCASE_CONFIG,
    RHYTHM_STAIRCASE_CONFIG,
    STAIRCASE_PRESETS,
    TEMPO_STAIRCASE_CONFIG,
    AdaptationMode,
    Rule,
    StaircaseConfig,
)
from .controller import (
    StaircaseController,
    StaircaseProgress,
    StaircaseResult,
    create_staircase_controller,
)

__all__ = [
    "AdaptationMode",
    "BEAT_STAIRCASE_CONFIG",
    "DEFAULT_STAIRCASE_CONFIG",
    "HEARING_STAIRCASE_CONFIG",
    "RHYTHM_STAIRCASE_CONFIG",
    "Rule",
    "STAIRCASE_PRESETS",
    "StaircaseConfig",
    "StaircaseController",
    "StaircaseProgress",
    "StaircaseResult",
    "TEMPO_STAIRCASE_CONFIG",
    "create_staircase_controller",
]
