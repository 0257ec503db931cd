"""Outcome resolution: judge expired predictions against the tick that follows.

Resolution is tick-driven. A prediction whose horizon elapses during a gap in
the feed is judged against the first tick at or after its expiry, so
resolution latency is bounded by feed cadence rather than by ``horizon_ms``.
"""

from __future__ import annotations

import logging

from tickcast.config import EngineConfig
from tickcast.engine.ledger import PredictionLedger
from tickcast.models.prediction import Direction, MultiLevelAccuracy, Prediction
from tickcast.models.tick import Tick

logger = logging.getLogger(__name__)

# Score awarded when no move was predicted and none happened
NO_MOVE_MAGNITUDE_SCORE = 80.0
# Relative timing error that costs 50 points
TIMING_TOLERANCE = 0.3
_EPSILON = 1e-9


def percent_change(start: float, end: float) -> float:
    if start <= 0:
        return 0.0
    return (end - start) / start * 100


def classify_move(change_pct: float, flat_threshold_pct: float) -> Direction:
    if change_pct > flat_threshold_pct:
        return Direction.UP
    if change_pct < -flat_threshold_pct:
        return Direction.DOWN
    return Direction.FLAT


def magnitude_score(predicted_pct: float, actual_pct: float, flat_threshold_pct: float) -> float:
    """Closeness of the realised move to the predicted one, on absolute percents."""
    predicted = abs(predicted_pct)
    actual = abs(actual_pct)
    if predicted <= _EPSILON:
        return NO_MOVE_MAGNITUDE_SCORE if actual <= flat_threshold_pct else 0.0
    return max(0.0, 100 - abs(actual - predicted) / predicted * 100)


def timing_score(elapsed_ms: int, horizon_ms: int) -> float:
    if horizon_ms <= 0:
        return 0.0
    deviation = abs(elapsed_ms - horizon_ms) / (TIMING_TOLERANCE * horizon_ms)
    return max(0.0, 100 - deviation * 50)


def confidence_score(confidence: float, was_correct: bool) -> float:
    return confidence if was_correct else 100 - confidence


def score_prediction(
    prediction: Prediction,
    actual_direction: Direction,
    actual_price: float,
    now: int,
    flat_threshold_pct: float,
) -> MultiLevelAccuracy:
    was_correct = prediction.predicted_direction == actual_direction
    predicted_pct = percent_change(prediction.price_at_creation, prediction.target_price)
    actual_pct = percent_change(prediction.price_at_creation, actual_price)
    return MultiLevelAccuracy(
        direction=100.0 if was_correct else 0.0,
        magnitude=magnitude_score(predicted_pct, actual_pct, flat_threshold_pct),
        timing=timing_score(now - prediction.created_at, prediction.horizon_ms),
        confidence=confidence_score(prediction.confidence, was_correct),
    )


class OutcomeResolver:
    """Resolves due ledger entries against the latest tick."""

    def __init__(self, config: EngineConfig) -> None:
        self._config = config

    def resolve_due(self, ledger: PredictionLedger, tick: Tick, now: int) -> list[Prediction]:
        """Resolve every pending prediction with ``expires_at <= now``.

        Returns the newly resolved predictions, soonest expiry first. The
        caller feeds each one to the learning state. Resolved history beyond
        the ledger cap is pruned afterwards; the returned objects stay valid.
        """
        resolved: list[Prediction] = []
        for prediction in ledger.due(now):
            change = percent_change(prediction.price_at_creation, tick.price)
            actual = classify_move(change, self._config.flat_threshold_pct)
            levels = score_prediction(
                prediction, actual, tick.price, now, self._config.flat_threshold_pct,
            )
            prediction.mark_resolved(
                actual_direction=actual,
                actual_price=tick.price,
                resolved_at=now,
                accuracy_levels=levels,
            )
            logger.debug(
                "Resolved %s: predicted=%s actual=%s (%+.4f%%) composite=%.1f",
                prediction.id,
                prediction.predicted_direction.value,
                actual.value,
                change,
                levels.composite,
            )
            resolved.append(prediction)
        ledger.prune()
        return resolved
