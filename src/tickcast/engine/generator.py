from __future__ import annotations

import logging
import uuid
from typing import Sequence

from tickcast.config import EngineConfig
from tickcast.engine.signals import VOLUME_TICKS, SignalSet, extract_signals
from tickcast.models.learning import LearningState, VolatilityState
from tickcast.models.prediction import Direction, Prediction
from tickcast.models.tick import Tick

logger = logging.getLogger(__name__)

MOMENTUM_WEIGHT = 0.35
TREND_WEIGHT = 0.30
VOLUME_WEIGHT = 0.20
BIAS_WEIGHT = 0.15

DIRECTION_THRESHOLD = 0.15
SIGNAL_CONFIDENCE_SCALE = 40

MIN_CONFIDENCE = 25.0
MAX_CONFIDENCE = 95.0

_VOLATILITY_CONFIDENCE: dict[VolatilityState, float] = {
    VolatilityState.EXTREME: 0.7,
    VolatilityState.LOW: 1.1,
}

STREAK_BOOST_MIN = 5
STREAK_BOOST_PER_WIN = 0.02


def combine_signals(signals: SignalSet, momentum_bias: float) -> float:
    return (
        MOMENTUM_WEIGHT * signals.momentum
        + TREND_WEIGHT * signals.micro_trend
        + VOLUME_WEIGHT * signals.volume
        + BIAS_WEIGHT * momentum_bias
    )


def direction_for(signal: float) -> Direction:
    if signal > DIRECTION_THRESHOLD:
        return Direction.UP
    if signal < -DIRECTION_THRESHOLD:
        return Direction.DOWN
    return Direction.FLAT


def confidence_for(
    signal: float,
    state: LearningState,
    base_confidence: float,
    external_multiplier: float = 1.0,
) -> float:
    """Confidence on the 25-95 scale for a combined signal under the current state."""
    confidence = base_confidence + abs(signal) * SIGNAL_CONFIDENCE_SCALE
    confidence *= state.confidence_multiplier
    confidence *= _VOLATILITY_CONFIDENCE.get(state.volatility_state, 1.0)
    if state.streak >= STREAK_BOOST_MIN:
        confidence *= 1 + state.streak * STREAK_BOOST_PER_WIN
    confidence *= external_multiplier
    return min(MAX_CONFIDENCE, max(MIN_CONFIDENCE, confidence))


def target_price_for(price: float, direction: Direction, volatility: float, horizon_ms: int) -> float:
    avg_move = volatility * (horizon_ms / 1000)
    if direction is Direction.UP:
        return price * (1 + avg_move)
    if direction is Direction.DOWN:
        return price * (1 - avg_move)
    return price


def new_prediction_id(created_at: int) -> str:
    return f"pred-{created_at}-{uuid.uuid4().hex[:8]}"


class PredictionGenerator:
    """Turns a tick window and the current learning state into a forecast."""

    def __init__(self, config: EngineConfig) -> None:
        self._config = config

    @property
    def lookback(self) -> int:
        """Number of trailing ticks the extractors can use."""
        return max(
            self._config.momentum_window,
            self._config.volatility_window,
            self._config.min_ticks_for_prediction,
            VOLUME_TICKS,
        )

    def generate(
        self,
        ticks: Sequence[Tick],
        state: LearningState,
        now: int,
        horizon_ms: int | None = None,
        external_multiplier: float = 1.0,
    ) -> Prediction | None:
        """Build a prediction, or None when the window is below the minimum.

        ``ticks`` must be the trailing window in arrival order. ``now`` stamps
        the prediction; expiry is ``now + horizon``.
        """
        if len(ticks) < self._config.min_ticks_for_prediction:
            return None

        horizon = horizon_ms if horizon_ms is not None else state.adaptive_horizon_ms
        current = ticks[-1]

        signals = extract_signals(ticks, self._config)
        signal = combine_signals(signals, state.momentum_bias)
        direction = direction_for(signal)
        confidence = confidence_for(
            signal, state, self._config.base_confidence, external_multiplier,
        )

        prediction = Prediction(
            id=new_prediction_id(now),
            created_at=now,
            predicted_direction=direction,
            confidence=confidence,
            horizon_ms=horizon,
            price_at_creation=current.price,
            target_price=target_price_for(current.price, direction, signals.volatility, horizon),
            expires_at=now + horizon,
        )
        logger.debug(
            "Prediction %s: %s conf=%.1f horizon=%dms signal=%.3f (%s)",
            prediction.id, direction.value, confidence, horizon, signal, signals.to_dict(),
        )
        return prediction
