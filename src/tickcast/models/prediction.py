from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

DIRECTION_WEIGHT = 0.40
MAGNITUDE_WEIGHT = 0.25
TIMING_WEIGHT = 0.15
CONFIDENCE_WEIGHT = 0.20


class Direction(StrEnum):
    UP = "up"
    DOWN = "down"
    FLAT = "flat"


class PredictionStatus(StrEnum):
    PENDING = "PENDING"
    RESOLVED_CORRECT = "RESOLVED_CORRECT"
    RESOLVED_INCORRECT = "RESOLVED_INCORRECT"


@dataclass(frozen=True)
class MultiLevelAccuracy:
    direction: float  # 0 or 100
    magnitude: float  # 0-100
    timing: float  # 0-100
    confidence: float  # 0-100

    @property
    def composite(self) -> float:
        return (
            DIRECTION_WEIGHT * self.direction
            + MAGNITUDE_WEIGHT * self.magnitude
            + TIMING_WEIGHT * self.timing
            + CONFIDENCE_WEIGHT * self.confidence
        )

    def to_dict(self) -> dict:
        return {
            "direction": self.direction,
            "magnitude": self.magnitude,
            "timing": self.timing,
            "confidence": self.confidence,
            "composite": self.composite,
        }


@dataclass
class Prediction:
    id: str
    created_at: int
    predicted_direction: Direction
    confidence: float
    horizon_ms: int
    price_at_creation: float
    target_price: float
    expires_at: int
    resolved: bool = False
    was_correct: bool | None = None
    actual_direction: Direction | None = None
    actual_price: float | None = None
    resolved_at: int | None = None
    accuracy_levels: MultiLevelAccuracy | None = None

    @property
    def status(self) -> PredictionStatus:
        if not self.resolved:
            return PredictionStatus.PENDING
        if self.was_correct:
            return PredictionStatus.RESOLVED_CORRECT
        return PredictionStatus.RESOLVED_INCORRECT

    def mark_resolved(
        self,
        *,
        actual_direction: Direction,
        actual_price: float,
        resolved_at: int,
        accuracy_levels: MultiLevelAccuracy,
    ) -> None:
        """Move the prediction into its terminal state. Only allowed once."""
        if self.resolved:
            raise ValueError(f"Prediction {self.id} is already resolved")
        self.resolved = True
        self.actual_direction = actual_direction
        self.actual_price = actual_price
        self.resolved_at = resolved_at
        self.was_correct = self.predicted_direction == actual_direction
        self.accuracy_levels = accuracy_levels

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "createdAt": self.created_at,
            "predictedDirection": self.predicted_direction.value,
            "confidence": self.confidence,
            "horizonMs": self.horizon_ms,
            "priceAtCreation": self.price_at_creation,
            "targetPrice": self.target_price,
            "expiresAt": self.expires_at,
            "status": self.status.value,
            "resolved": self.resolved,
            "wasCorrect": self.was_correct,
            "actualDirection": self.actual_direction.value if self.actual_direction else None,
            "actualPrice": self.actual_price,
            "resolvedAt": self.resolved_at,
            "accuracyLevels": self.accuracy_levels.to_dict() if self.accuracy_levels else None,
        }
