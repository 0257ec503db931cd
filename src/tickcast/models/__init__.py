from __future__ import annotations

from tickcast.models.learning import LearningState, MultiLevelSummary, VolatilityState
from tickcast.models.prediction import (
    Direction,
    MultiLevelAccuracy,
    Prediction,
    PredictionStatus,
)
from tickcast.models.tick import Tick

__all__ = [
    # tick
    "Tick",
    # prediction
    "Direction",
    "PredictionStatus",
    "MultiLevelAccuracy",
    "Prediction",
    # learning
    "VolatilityState",
    "MultiLevelSummary",
    "LearningState",
]
