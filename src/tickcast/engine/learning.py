"""Learning state manager: the single feedback channel of the engine.

Each resolved prediction updates the state incrementally; nothing is
recomputed from history. Given the previous state and one outcome, the
next state is fully determined.
"""

from __future__ import annotations

import logging
from collections import deque

from tickcast.config import EngineConfig
from tickcast.models.learning import LearningState, VolatilityState
from tickcast.models.prediction import Direction, Prediction

logger = logging.getLogger(__name__)

MIN_MULTIPLIER = 0.6
MAX_MULTIPLIER = 1.5
MULTIPLIER_STEP_FACTOR = 0.1

RAISE_CONFIDENCE_ABOVE = 70.0
LOWER_CONFIDENCE_BELOW = 45.0

SHORTEN_HORIZON_ABOVE = 65.0
LENGTHEN_HORIZON_BELOW = 45.0

BIAS_DECAY = 0.9


def _running_mean(previous: float, value: float, n: int) -> float:
    return previous + (value - previous) / n


class LearningStateManager:
    """Owns one LearningState and applies outcomes to it."""

    def __init__(self, config: EngineConfig) -> None:
        self._config = config
        self._recent: deque[bool] = deque(maxlen=config.recent_window)
        self._miss_run = 0
        self.state = self.initial_state()

    def initial_state(self) -> LearningState:
        return LearningState(adaptive_horizon_ms=self._config.initial_horizon_ms)

    def reset(self) -> None:
        self._recent.clear()
        self._miss_run = 0
        self.state = self.initial_state()

    @property
    def recent_outcomes(self) -> list[bool]:
        return list(self._recent)

    def observe_volatility(self, volatility_state: VolatilityState) -> None:
        if volatility_state != self.state.volatility_state:
            logger.debug(
                "Volatility regime %s -> %s",
                self.state.volatility_state.value, volatility_state.value,
            )
        self.state.volatility_state = volatility_state

    def apply(self, prediction: Prediction) -> None:
        """Fold one resolved prediction into the state."""
        if not prediction.resolved:
            raise ValueError(f"Prediction {prediction.id} is not resolved")

        state = self.state
        correct = bool(prediction.was_correct)

        state.total_predictions += 1
        if correct:
            state.correct_predictions += 1
            state.streak += 1
            state.best_streak = max(state.best_streak, state.streak)
            self._miss_run = 0
        else:
            state.streak = 0
            self._miss_run += 1
            state.worst_streak = max(state.worst_streak, self._miss_run)

        state.accuracy = state.correct_predictions / state.total_predictions * 100

        self._recent.append(correct)
        state.recent_accuracy = sum(self._recent) / len(self._recent) * 100

        self._update_multi_level(prediction)
        self._adapt_confidence_multiplier()
        self._adapt_horizon()
        self._adapt_momentum_bias(correct, prediction.predicted_direction)

        if prediction.resolved_at is not None:
            state.last_update = prediction.resolved_at

    def _update_multi_level(self, prediction: Prediction) -> None:
        levels = prediction.accuracy_levels
        if levels is None:
            return
        summary = self.state.multi_level
        summary.samples += 1
        n = summary.samples

        previous_composite = summary.composite_accuracy
        summary.direction_accuracy = _running_mean(summary.direction_accuracy, levels.direction, n)
        summary.magnitude_accuracy = _running_mean(summary.magnitude_accuracy, levels.magnitude, n)
        summary.timing_accuracy = _running_mean(summary.timing_accuracy, levels.timing, n)
        summary.avg_confidence = _running_mean(summary.avg_confidence, prediction.confidence, n)
        summary.confidence_calibration_error = abs(
            summary.avg_confidence - summary.direction_accuracy
        )
        summary.composite_accuracy = _running_mean(summary.composite_accuracy, levels.composite, n)
        summary.composite_trend = summary.composite_accuracy - previous_composite

    def _adapt_confidence_multiplier(self) -> None:
        state = self.state
        step = self._config.learning_rate * MULTIPLIER_STEP_FACTOR
        if state.recent_accuracy > RAISE_CONFIDENCE_ABOVE:
            state.confidence_multiplier = min(MAX_MULTIPLIER, state.confidence_multiplier + step)
        elif state.recent_accuracy < LOWER_CONFIDENCE_BELOW:
            state.confidence_multiplier = max(MIN_MULTIPLIER, state.confidence_multiplier - step)

    def _adapt_horizon(self) -> None:
        # An accurate engine tries faster forecasts; an inaccurate one slows down
        state = self.state
        composite = state.multi_level.composite_accuracy
        previous = state.adaptive_horizon_ms
        if composite > SHORTEN_HORIZON_ABOVE:
            state.adaptive_horizon_ms = max(
                self._config.min_horizon_ms, previous - self._config.horizon_step_ms,
            )
        elif composite < LENGTHEN_HORIZON_BELOW:
            state.adaptive_horizon_ms = min(
                self._config.max_horizon_ms, previous + self._config.horizon_step_ms,
            )
        if state.adaptive_horizon_ms != previous:
            logger.info(
                "Adaptive horizon %dms -> %dms (composite=%.1f)",
                previous, state.adaptive_horizon_ms, composite,
            )

    def _adapt_momentum_bias(self, correct: bool, direction: Direction) -> None:
        state = self.state
        rate = self._config.learning_rate
        if correct and direction is Direction.UP:
            state.momentum_bias = min(1.0, state.momentum_bias + rate)
        elif correct and direction is Direction.DOWN:
            state.momentum_bias = max(-1.0, state.momentum_bias - rate)
        else:
            state.momentum_bias *= BIAS_DECAY
