from __future__ import annotations

import threading

import pytest

from tickcast.config import EngineConfig
from tickcast.engine.core import TickPredictionEngine
from tickcast.engine.registry import EngineRegistry
from tickcast.feeds.base import StaticCrossAssetSignal
from tickcast.models.tick import Tick


@pytest.fixture
def registry() -> EngineRegistry:
    return EngineRegistry()


class TestCreateAndGet:
    def test_create_returns_engine(self, registry: EngineRegistry) -> None:
        engine = registry.create("aapl")
        assert isinstance(engine, TickPredictionEngine)
        assert engine.symbol == "AAPL"
        assert "AAPL" in registry
        assert "aapl" in registry
        assert len(registry) == 1

    def test_create_is_idempotent(self, registry: EngineRegistry) -> None:
        assert registry.create("MSFT") is registry.create(" msft ")

    def test_create_rejects_blank(self, registry: EngineRegistry) -> None:
        with pytest.raises(ValueError):
            registry.create("  ")

    def test_get_unknown(self, registry: EngineRegistry) -> None:
        with pytest.raises(KeyError):
            registry.get("NOPE")

    def test_symbols_sorted(self, registry: EngineRegistry) -> None:
        for symbol in ("TSLA", "AAPL", "MSFT"):
            registry.create(symbol)
        assert registry.symbols() == ["AAPL", "MSFT", "TSLA"]

    def test_remove(self, registry: EngineRegistry) -> None:
        registry.create("AAPL")
        registry.remove("aapl")
        assert "AAPL" not in registry
        registry.remove("AAPL")  # unknown symbol is a no-op

    def test_engines_share_config_and_cross_asset(self) -> None:
        config = EngineConfig(min_ticks_for_prediction=12)
        signal = StaticCrossAssetSignal({"AAPL": 0.9})
        registry = EngineRegistry(config, cross_asset=signal)
        engine = registry.create("AAPL")
        assert engine.config is config
        assert engine.cross_asset is signal

    def test_engines_are_isolated(self, registry: EngineRegistry) -> None:
        a = registry.create("A")
        b = registry.create("B")
        a.process_tick(Tick(price=1.0, volume=1.0, timestamp=1))
        assert a.get_tick_count() == 1
        assert b.get_tick_count() == 0


class TestLocked:
    def test_yields_engine(self, registry: EngineRegistry) -> None:
        created = registry.create("AAPL")
        with registry.locked("aapl") as engine:
            assert engine is created

    def test_unknown_symbol(self, registry: EngineRegistry) -> None:
        with pytest.raises(KeyError):
            with registry.locked("NOPE"):
                pass

    def test_serializes_writers(self, registry: EngineRegistry) -> None:
        registry.create("AAPL")

        def writer(offset: int) -> None:
            for i in range(200):
                with registry.locked("AAPL") as engine:
                    engine.process_tick(
                        Tick(price=100.0 + i * 0.01, volume=1.0, timestamp=offset + i)
                    )

        threads = [threading.Thread(target=writer, args=(n * 1000,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert registry.get("AAPL").get_tick_count() == 500
