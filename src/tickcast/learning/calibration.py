"""Calibration reporting for resolved tick predictions.

Compares stated confidence (25-95 scale, mapped to 0-1) with realised
direction accuracy. Produces calibration buckets, ECE, Brier score and
plain-language recommendations.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from tickcast.models.learning import MultiLevelSummary
from tickcast.models.prediction import Direction, Prediction

logger = logging.getLogger(__name__)

MIN_BUCKET_SAMPLES = 5
MIN_DIRECTION_SAMPLES = 10


@dataclass
class CalibrationBucket:
    """A single calibration bin (e.g. 0.7–0.8 confidence range)."""

    low: float
    high: float
    count: int = 0
    correct: int = 0

    @property
    def accuracy(self) -> float:
        return self.correct / self.count if self.count > 0 else 0.0

    @property
    def midpoint(self) -> float:
        return (self.low + self.high) / 2

    @property
    def gap(self) -> float:
        """Calibration gap: |accuracy - midpoint|."""
        return abs(self.accuracy - self.midpoint)

    def contains(self, confidence: float) -> bool:
        return self.low <= confidence < self.high or (
            self.high == 1.0 and confidence == 1.0
        )

    def to_dict(self) -> dict:
        return {
            "low": self.low,
            "high": self.high,
            "midpoint": self.midpoint,
            "count": self.count,
            "correct": self.correct,
            "accuracy": self.accuracy,
        }


@dataclass
class CalibrationReport:
    symbol: str
    total_resolved: int
    total_correct: int
    overall_accuracy: float
    buckets: list[CalibrationBucket]
    ece: float  # Expected Calibration Error
    brier: float  # Brier score
    direction_accuracy: dict[str, float] = field(default_factory=dict)
    multi_level: MultiLevelSummary | None = None
    recommendations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "symbol": self.symbol,
            "totalResolved": self.total_resolved,
            "totalCorrect": self.total_correct,
            "overallAccuracy": self.overall_accuracy,
            "buckets": [b.to_dict() for b in self.buckets],
            "ece": self.ece,
            "brierScore": self.brier,
            "directionAccuracy": self.direction_accuracy,
            "multiLevel": self.multi_level.to_dict() if self.multi_level else None,
            "recommendations": self.recommendations,
        }


class CalibrationEngine:
    """Computes calibration metrics and adjustment recommendations."""

    BUCKET_RANGES = [
        (0.2, 0.4),
        (0.4, 0.5),
        (0.5, 0.6),
        (0.6, 0.7),
        (0.7, 0.8),
        (0.8, 0.9),
        (0.9, 1.0),
    ]

    def compute_calibration(
        self,
        settled_data: Sequence[tuple[float, bool]],
    ) -> tuple[list[CalibrationBucket], float, float]:
        """Compute calibration buckets, ECE, and Brier score.

        Args:
            settled_data: (confidence in 0-1, was_correct) pairs.

        Returns:
            Tuple of (buckets, ece, brier_score).
        """
        buckets = [CalibrationBucket(low=lo, high=hi) for lo, hi in self.BUCKET_RANGES]

        for conf, correct in settled_data:
            for bucket in buckets:
                if bucket.contains(conf):
                    bucket.count += 1
                    if correct:
                        bucket.correct += 1
                    break

        total = len(settled_data)
        ece = 0.0
        brier = 0.0
        if total > 0:
            for bucket in buckets:
                if bucket.count > 0:
                    ece += (bucket.count / total) * bucket.gap
            for conf, correct in settled_data:
                outcome = 1.0 if correct else 0.0
                brier += (conf - outcome) ** 2
            brier /= total

        return buckets, ece, brier

    def generate_report(
        self,
        predictions: Sequence[Prediction],
        symbol: str = "",
        multi_level: MultiLevelSummary | None = None,
    ) -> CalibrationReport:
        """Build a report from resolved predictions (pending ones are ignored)."""
        resolved = [p for p in predictions if p.resolved]
        settled = [(p.confidence / 100, bool(p.was_correct)) for p in resolved]
        buckets, ece, brier = self.compute_calibration(settled)

        total = len(resolved)
        correct = sum(1 for p in resolved if p.was_correct)

        direction_accuracy: dict[str, float] = {}
        direction_counts: dict[str, int] = {}
        for direction in Direction:
            group = [p for p in resolved if p.predicted_direction is direction]
            direction_counts[direction.value] = len(group)
            direction_accuracy[direction.value] = (
                sum(1 for p in group if p.was_correct) / len(group) if group else 0.0
            )

        report = CalibrationReport(
            symbol=symbol,
            total_resolved=total,
            total_correct=correct,
            overall_accuracy=correct / total if total > 0 else 0.0,
            buckets=buckets,
            ece=ece,
            brier=brier,
            direction_accuracy=direction_accuracy,
            multi_level=multi_level,
        )
        report.recommendations = self._generate_recommendations(
            buckets, ece, brier, direction_accuracy, direction_counts,
        )
        logger.debug(
            "Calibration for %s: n=%d ece=%.3f brier=%.3f", symbol or "engine", total, ece, brier,
        )
        return report

    def _generate_recommendations(
        self,
        buckets: list[CalibrationBucket],
        ece: float,
        brier: float,
        direction_accuracy: dict[str, float],
        direction_counts: dict[str, int],
    ) -> list[str]:
        recs: list[str] = []

        if ece > 0.15:
            recs.append(
                f"High calibration error (ECE={ece:.3f}). "
                "Confidence multiplier is not tracking realised accuracy."
            )

        if brier > 0.30:
            recs.append(
                f"High Brier score ({brier:.3f}). "
                "Predictions are poorly calibrated overall."
            )

        for bucket in buckets:
            if bucket.count < MIN_BUCKET_SAMPLES:
                continue
            if bucket.accuracy < bucket.midpoint - 0.15:
                recs.append(
                    f"Overconfident in {bucket.low:.0%}-{bucket.high:.0%} range: "
                    f"claimed {bucket.midpoint:.0%}, actual {bucket.accuracy:.0%}. "
                    "Consider a lower base confidence."
                )
            elif bucket.accuracy > bucket.midpoint + 0.15:
                recs.append(
                    f"Underconfident in {bucket.low:.0%}-{bucket.high:.0%} range: "
                    f"claimed {bucket.midpoint:.0%}, actual {bucket.accuracy:.0%}. "
                    "Consider a higher base confidence."
                )

        for direction, accuracy in direction_accuracy.items():
            if direction_counts.get(direction, 0) >= MIN_DIRECTION_SAMPLES and accuracy < 0.45:
                recs.append(
                    f"'{direction}' calls are weak ({accuracy:.0%} correct). "
                    "Signals favouring this direction need review."
                )

        if not recs:
            recs.append("Calibration looks healthy. No adjustments needed.")

        return recs

    def get_confidence_adjustment(
        self, buckets: list[CalibrationBucket],
    ) -> dict[str, float]:
        """Suggest confidence adjustments per bucket.

        Returns a dict like {"0.7-0.8": -0.05} meaning reduce confidence
        by 5 points for predictions in the 0.7-0.8 range.
        """
        adjustments: dict[str, float] = {}
        for bucket in buckets:
            if bucket.count < MIN_BUCKET_SAMPLES:
                continue
            gap = bucket.accuracy - bucket.midpoint
            if abs(gap) > 0.10:
                adjustments[f"{bucket.low:.1f}-{bucket.high:.1f}"] = round(gap, 3)
        return adjustments
