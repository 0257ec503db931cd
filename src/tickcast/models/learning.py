from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import StrEnum


class VolatilityState(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    EXTREME = "extreme"


@dataclass
class MultiLevelSummary:
    """Running averages of the per-prediction accuracy levels (0-100 scale)."""

    samples: int = 0
    direction_accuracy: float = 0.0
    magnitude_accuracy: float = 0.0
    timing_accuracy: float = 0.0
    avg_confidence: float = 0.0
    confidence_calibration_error: float = 0.0  # |avg_confidence - hit rate|
    composite_accuracy: float = 0.0
    composite_trend: float = 0.0

    def to_dict(self) -> dict:
        return {
            "samples": self.samples,
            "directionAccuracy": self.direction_accuracy,
            "magnitudeAccuracy": self.magnitude_accuracy,
            "timingAccuracy": self.timing_accuracy,
            "avgConfidence": self.avg_confidence,
            "confidenceCalibrationError": self.confidence_calibration_error,
            "compositeAccuracy": self.composite_accuracy,
            "compositeTrend": self.composite_trend,
        }


@dataclass
class LearningState:
    adaptive_horizon_ms: int
    total_predictions: int = 0
    correct_predictions: int = 0
    accuracy: float = 0.0  # percent
    streak: int = 0
    best_streak: int = 0
    worst_streak: int = 0  # longest run of consecutive misses
    recent_accuracy: float = 0.0  # percent, trailing window
    confidence_multiplier: float = 1.0
    volatility_state: VolatilityState = VolatilityState.MEDIUM
    momentum_bias: float = 0.0
    multi_level: MultiLevelSummary = field(default_factory=MultiLevelSummary)
    last_update: int = 0

    def snapshot(self) -> LearningState:
        return copy.deepcopy(self)

    def to_dict(self) -> dict:
        return {
            "totalPredictions": self.total_predictions,
            "correctPredictions": self.correct_predictions,
            "accuracy": self.accuracy,
            "streak": self.streak,
            "bestStreak": self.best_streak,
            "worstStreak": self.worst_streak,
            "recentAccuracy": self.recent_accuracy,
            "confidenceMultiplier": self.confidence_multiplier,
            "adaptiveHorizonMs": self.adaptive_horizon_ms,
            "volatilityState": self.volatility_state.value,
            "momentumBias": self.momentum_bias,
            "multiLevel": self.multi_level.to_dict(),
            "lastUpdate": self.last_update,
        }
