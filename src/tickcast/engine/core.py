"""Tick prediction engine: one buffer, one ledger, one learning state per symbol.

The engine is synchronous and keeps no timers. Its clock is the tick stream:
``process_tick`` sweeps expiries at the incoming tick's timestamp and
``generate_prediction`` stamps forecasts with the latest tick's timestamp.
Callers sharing an engine across threads must serialize access (see
``EngineRegistry``).
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from tickcast.config import EngineConfig
from tickcast.engine.buffer import TickBuffer
from tickcast.engine.generator import PredictionGenerator
from tickcast.engine.learning import LearningStateManager
from tickcast.engine.ledger import PredictionLedger
from tickcast.engine.resolver import OutcomeResolver
from tickcast.engine.signals import classify_volatility, volatility
from tickcast.feeds.base import CrossAssetSignal
from tickcast.models.learning import LearningState
from tickcast.models.prediction import Direction, Prediction
from tickcast.models.tick import Tick

logger = logging.getLogger(__name__)


@dataclass
class DirectionStats:
    total: int = 0
    correct: int = 0

    @property
    def accuracy(self) -> float:
        return self.correct / self.total * 100 if self.total > 0 else 0.0

    def to_dict(self) -> dict:
        return {"total": self.total, "correct": self.correct, "accuracy": self.accuracy}


@dataclass
class EngineStats:
    total_predictions: int
    accuracy: float
    recent_accuracy: float
    current_streak: int
    best_streak: int
    per_direction: dict[Direction, DirectionStats]

    def to_dict(self) -> dict:
        return {
            "totalPredictions": self.total_predictions,
            "accuracy": self.accuracy,
            "recentAccuracy": self.recent_accuracy,
            "currentStreak": self.current_streak,
            "bestStreak": self.best_streak,
            "perDirection": {
                d.value: stats.to_dict() for d, stats in self.per_direction.items()
            },
        }


class TickPredictionEngine:
    """Closed-loop tick forecaster for a single symbol/feed."""

    def __init__(
        self,
        config: EngineConfig | None = None,
        symbol: str = "",
        cross_asset: CrossAssetSignal | None = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.symbol = symbol
        self.cross_asset = cross_asset
        self._buffer = TickBuffer(self.config.buffer_capacity)
        self._ledger = PredictionLedger(self.config.resolved_history)
        self._learning = LearningStateManager(self.config)
        self._generator = PredictionGenerator(self.config)
        self._resolver = OutcomeResolver(self.config)

    def process_tick(self, tick: Tick) -> list[Prediction]:
        """Ingest a tick, then resolve every prediction that has expired.

        Returns the predictions resolved by this tick.
        """
        if not math.isfinite(tick.price) or tick.price <= 0:
            raise ValueError(f"Tick price must be finite and > 0, got {tick.price}")

        self._buffer.append(tick)
        window = self._buffer.window(self.config.volatility_window)
        self._learning.observe_volatility(
            classify_volatility(volatility(window, self.config.volatility_window))
        )

        resolved = self._resolver.resolve_due(self._ledger, tick, tick.timestamp)
        for prediction in resolved:
            self._learning.apply(prediction)
        if resolved:
            state = self._learning.state
            logger.debug(
                "%s: resolved %d prediction(s), accuracy=%.1f%% recent=%.1f%% streak=%d",
                self.symbol or "engine", len(resolved),
                state.accuracy, state.recent_accuracy, state.streak,
            )
        return resolved

    def generate_prediction(self, horizon_ms: int | None = None) -> Prediction | None:
        """Forecast the next ``horizon_ms`` (default: the adaptive horizon).

        Returns None until ``min_ticks_for_prediction`` ticks have arrived.
        """
        if horizon_ms is not None and horizon_ms <= 0:
            raise ValueError(f"horizon_ms must be > 0, got {horizon_ms}")
        if len(self._buffer) < self.config.min_ticks_for_prediction:
            return None

        latest = self._buffer.latest()
        if latest is None:
            return None
        multiplier = 1.0
        if self.cross_asset is not None:
            multiplier = self.cross_asset.confidence_multiplier(self.symbol)

        prediction = self._generator.generate(
            self._buffer.window(self._generator.lookback),
            self._learning.state,
            now=latest.timestamp,
            horizon_ms=horizon_ms,
            external_multiplier=multiplier,
        )
        if prediction is not None:
            self._ledger.add(prediction)
        return prediction

    def get_state(self) -> LearningState:
        return self._learning.state.snapshot()

    def get_stats(self) -> EngineStats:
        per_direction = {d: DirectionStats() for d in Direction}
        for prediction in self._ledger.resolved():
            stats = per_direction[prediction.predicted_direction]
            stats.total += 1
            if prediction.was_correct:
                stats.correct += 1

        state = self._learning.state
        return EngineStats(
            total_predictions=state.total_predictions,
            accuracy=state.accuracy,
            recent_accuracy=state.recent_accuracy,
            current_streak=state.streak,
            best_streak=state.best_streak,
            per_direction=per_direction,
        )

    def get_pending_predictions(self) -> list[Prediction]:
        return self._ledger.pending()

    def get_recent_predictions(self, count: int = 20) -> list[Prediction]:
        if count <= 0:
            return []
        return self._ledger.resolved()[:count]

    def reset(self) -> None:
        self._buffer.clear()
        self._ledger.clear()
        self._learning.reset()
        logger.info("%s: engine reset", self.symbol or "engine")

    def get_tick_count(self) -> int:
        return len(self._buffer)

    def get_latest_tick(self) -> Tick | None:
        return self._buffer.latest()
