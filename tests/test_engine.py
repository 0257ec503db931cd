from __future__ import annotations

import math

import pytest

from tickcast.config import EngineConfig
from tickcast.engine.core import TickPredictionEngine
from tickcast.feeds.base import StaticCrossAssetSignal
from tickcast.models.learning import VolatilityState
from tickcast.models.prediction import Direction, PredictionStatus
from tickcast.models.tick import Tick


def _feed_rising(engine: TickPredictionEngine, n: int, dt: int = 100, start: int = 0) -> Tick:
    tick = None
    for i in range(n):
        tick = Tick(price=100.0 * 1.001 ** i, volume=500.0, timestamp=start + dt * i)
        engine.process_tick(tick)
    return tick


def _run_winning_streak(engine: TickPredictionEngine, rounds: int) -> None:
    """10 rising ticks 1s apart, then `rounds` x (predict 1s, next rising tick)."""
    price, ts = 100.0, 0
    for _ in range(10):
        engine.process_tick(Tick(price=price, volume=100.0, timestamp=ts))
        price *= 1.001
        ts += 1000
    for _ in range(rounds):
        engine.generate_prediction(1000)
        engine.process_tick(Tick(price=price, volume=100.0, timestamp=ts))
        price *= 1.001
        ts += 1000


@pytest.fixture
def engine() -> TickPredictionEngine:
    return TickPredictionEngine(symbol="TEST")


class TestGeneration:
    def test_no_prediction_before_min_ticks(self, engine: TickPredictionEngine) -> None:
        _feed_rising(engine, 9)
        assert engine.generate_prediction() is None
        assert engine.get_pending_predictions() == []

    def test_rising_series(self, engine: TickPredictionEngine) -> None:
        last = _feed_rising(engine, 20)
        pred = engine.generate_prediction(1000)

        assert pred.predicted_direction is Direction.UP
        # 50 + (0.35 + 0.30) * 40, boosted 10% for low volatility
        assert pred.confidence == pytest.approx(83.6, abs=0.05)
        assert pred.created_at == last.timestamp
        assert pred.expires_at == last.timestamp + 1000
        assert pred.status is PredictionStatus.PENDING
        assert engine.get_state().volatility_state is VolatilityState.LOW
        assert engine.get_pending_predictions() == [pred]

    def test_default_horizon_is_adaptive(self, engine: TickPredictionEngine) -> None:
        _feed_rising(engine, 10)
        pred = engine.generate_prediction()
        assert pred.horizon_ms == engine.get_state().adaptive_horizon_ms == 5000

    def test_invalid_horizon(self, engine: TickPredictionEngine) -> None:
        _feed_rising(engine, 10)
        with pytest.raises(ValueError):
            engine.generate_prediction(0)
        with pytest.raises(ValueError):
            engine.generate_prediction(-5)

    def test_cross_asset_multiplier(self) -> None:
        engine = TickPredictionEngine(
            symbol="ABC", cross_asset=StaticCrossAssetSignal({"abc": 0.5}),
        )
        _feed_rising(engine, 20)
        pred = engine.generate_prediction(1000)
        assert pred.confidence == pytest.approx(41.8, abs=0.05)

    def test_pending_sorted_by_expiry(self, engine: TickPredictionEngine) -> None:
        _feed_rising(engine, 10)
        for horizon in (3000, 1000, 2000):
            engine.generate_prediction(horizon)
        assert [p.horizon_ms for p in engine.get_pending_predictions()] == [1000, 2000, 3000]


class TestResolution:
    def test_tick_after_expiry_resolves_correct(self, engine: TickPredictionEngine) -> None:
        _feed_rising(engine, 20)
        pred = engine.generate_prediction(1000)

        resolved = engine.process_tick(
            Tick(price=pred.price_at_creation * 1.02, volume=500.0, timestamp=pred.created_at + 1500)
        )

        assert resolved == [pred]
        assert pred.was_correct is True
        assert pred.actual_direction is Direction.UP
        assert pred.resolved_at == pred.created_at + 1500
        assert pred.accuracy_levels.direction == 100.0
        assert pred.accuracy_levels.timing == pytest.approx(100 - 500 / 300 * 50)

        state = engine.get_state()
        assert state.total_predictions == 1
        assert state.correct_predictions == 1
        assert state.streak == 1
        assert state.last_update == pred.created_at + 1500
        assert engine.get_pending_predictions() == []
        assert engine.get_recent_predictions() == [pred]

    def test_tick_before_expiry_leaves_pending(self, engine: TickPredictionEngine) -> None:
        _feed_rising(engine, 20)
        pred = engine.generate_prediction(1000)
        assert engine.process_tick(
            Tick(price=200.0, volume=1.0, timestamp=pred.created_at + 999)
        ) == []
        assert pred.resolved is False

    def test_resolved_exactly_once(self, engine: TickPredictionEngine) -> None:
        _feed_rising(engine, 20)
        pred = engine.generate_prediction(1000)
        engine.process_tick(Tick(price=101.0, volume=1.0, timestamp=pred.expires_at))
        assert engine.process_tick(Tick(price=50.0, volume=1.0, timestamp=pred.expires_at + 10)) == []
        assert pred.actual_price == 101.0
        assert engine.get_state().total_predictions == 1

    def test_deadband_counts_as_flat(self, engine: TickPredictionEngine) -> None:
        for i in range(20):
            price = 100.0 if i % 2 == 0 else 100.005
            engine.process_tick(Tick(price=price, volume=100.0, timestamp=i * 100))
        pred = engine.generate_prediction(1000)
        assert pred.predicted_direction is Direction.FLAT

        engine.process_tick(Tick(price=100.0, volume=100.0, timestamp=pred.expires_at))

        assert pred.actual_direction is Direction.FLAT
        assert pred.was_correct is True
        assert pred.accuracy_levels.magnitude == 80.0

    def test_rejects_non_positive_price(self, engine: TickPredictionEngine) -> None:
        with pytest.raises(ValueError):
            engine.process_tick(Tick(price=0.0, volume=1.0, timestamp=1))
        with pytest.raises(ValueError):
            engine.process_tick(Tick(price=-1.0, volume=1.0, timestamp=1))
        assert engine.get_tick_count() == 0

    @pytest.mark.parametrize("price", [math.nan, math.inf, -math.inf])
    def test_rejects_non_finite_price(self, engine: TickPredictionEngine, price: float) -> None:
        _feed_rising(engine, 20)
        pred = engine.generate_prediction(1000)
        before = engine.get_state()

        with pytest.raises(ValueError):
            engine.process_tick(Tick(price=price, volume=1.0, timestamp=pred.expires_at))

        assert engine.get_tick_count() == 20
        assert pred.resolved is False
        assert engine.get_state() == before
        after = engine.generate_prediction(1000)
        assert math.isfinite(after.target_price)


class TestLearningLoop:
    def test_winning_streak(self, engine: TickPredictionEngine) -> None:
        _run_winning_streak(engine, 25)

        state = engine.get_state()
        assert state.total_predictions == 25
        assert state.accuracy == pytest.approx(100.0)
        assert state.streak == 25
        assert state.best_streak >= 25
        assert 1.0 <= state.confidence_multiplier <= 1.5
        assert state.momentum_bias > 0
        assert engine.config.min_horizon_ms <= state.adaptive_horizon_ms <= engine.config.max_horizon_ms

    def test_stats(self, engine: TickPredictionEngine) -> None:
        _run_winning_streak(engine, 12)
        stats = engine.get_stats()
        assert stats.total_predictions == 12
        assert stats.current_streak == 12
        assert stats.per_direction[Direction.UP].total == 12
        assert stats.per_direction[Direction.UP].accuracy == pytest.approx(100.0)
        assert stats.per_direction[Direction.DOWN].total == 0
        assert stats.to_dict()["perDirection"]["up"]["correct"] == 12

    def test_recent_predictions_newest_first(self, engine: TickPredictionEngine) -> None:
        _run_winning_streak(engine, 6)
        recent = engine.get_recent_predictions(3)
        assert len(recent) == 3
        assert recent[0].created_at > recent[1].created_at > recent[2].created_at
        assert engine.get_recent_predictions(0) == []

    def test_resolved_history_is_capped(self) -> None:
        engine = TickPredictionEngine(EngineConfig(resolved_history=5))
        _run_winning_streak(engine, 8)
        assert len(engine.get_recent_predictions(100)) == 5
        # the learning state still counts every outcome
        assert engine.get_state().total_predictions == 8


class TestBufferAndReset:
    def test_buffer_keeps_latest_500(self, engine: TickPredictionEngine) -> None:
        last = _feed_rising(engine, 600, dt=10)
        assert engine.get_tick_count() == 500
        assert engine.get_latest_tick() == last

    def test_reset_matches_fresh_engine(self, engine: TickPredictionEngine) -> None:
        _run_winning_streak(engine, 10)
        engine.generate_prediction(5000)
        engine.reset()

        fresh = TickPredictionEngine(symbol="TEST")
        assert engine.get_state() == fresh.get_state()
        assert engine.get_tick_count() == 0
        assert engine.get_latest_tick() is None
        assert engine.get_pending_predictions() == []
        assert engine.get_recent_predictions() == []

    def test_state_is_a_snapshot(self, engine: TickPredictionEngine) -> None:
        state = engine.get_state()
        state.streak = 99
        assert engine.get_state().streak == 0
