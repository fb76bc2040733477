"""
psystair.adapters
=================

Per-test wrappers around StaircaseController.

Includes:
- hearing: HearingThresholdAdapter (1000/2000/4000 Hz, dB SPL)
- beat: BeatPatternAdapter (2beat vs 3beat, volume difference in dB)
- tempo: TempoDirectionAdapter (accelerando vs ritardando, IOI slope)
- rhythm: ComplexRhythmAdapter (tempo direction over a rhythm pattern)
- base: CategoryAccuracy and the shared categorical adapter
"""

from .base import (
    SOUND_LEVEL_OFFSET_DB,
    CategoricalAdapter,
    CategoricalResult,
    CategoricalTrial,
    CategoryAccuracy,
    ConvergenceSummary,
)
from .beat import BEAT_CATEGORIES, BeatPatternAdapter, BeatResult, BeatTrial
from .hearing import (
    HEARING_FREQUENCIES,
    HearingResult,
    HearingSessionResult,
    HearingThresholdAdapter,
    HearingTrial,
    analyze_threshold_pattern,
    classify_hearing_loss,
    evaluate_reliability,
)
from .rhythm import ComplexRhythmAdapter, RhythmResult, RhythmTrial, evaluate_rhythm_quality
from .tempo import (
    TEMPO_CATEGORIES,
    QualityReport,
    TempoDirectionAdapter,
    TempoResult,
    TempoTrial,
    evaluate_tempo_quality,
)

__all__ = [
    "BEAT_CATEGORIES",
    "BeatPatternAdapter",
    "BeatResult",
    "BeatTrial",
    "CategoricalAdapter",
    "CategoricalResult",
    "CategoricalTrial",
    "CategoryAccuracy",
    "ComplexRhythmAdapter",
    "ConvergenceSummary",
    "HEARING_FREQUENCIES",
    "HearingResult",
    "HearingSessionResult",
    "HearingThresholdAdapter",
    "HearingTrial",
    "QualityReport",
    "RhythmResult",
    "RhythmTrial",
    "SOUND_LEVEL_OFFSET_DB",
    "TEMPO_CATEGORIES",
    "TempoDirectionAdapter",
    "TempoResult",
    "TempoTrial",
    "analyze_threshold_pattern",
    "classify_hearing_loss",
    "evaluate_reliability",
    "evaluate_rhythm_quality",
    "evaluate_tempo_quality",
]
