from __future__ import annotations

import asyncio
import itertools
import time
from unittest.mock import PropertyMock, patch

from tickcast.config import EngineConfig
from tickcast.engine.registry import EngineRegistry
from tickcast.feeds.base import TickFeed
from tickcast.feeds.stream import DataQuality, TickStream
from tickcast.models.tick import Tick


class FakeFeed(TickFeed):
    def __init__(self, ticks: list[Tick | None], symbol: str = "fake") -> None:
        self.symbol = symbol
        self._ticks = list(ticks)
        self.closed = False

    def fetch(self) -> Tick | None:
        return self._ticks.pop(0) if self._ticks else None

    def close(self) -> None:
        self.closed = True


class FailingFeed(TickFeed):
    symbol = "BAD"

    def fetch(self) -> Tick | None:
        raise ConnectionError("feed offline")


def _rising(n: int) -> list[Tick]:
    return [Tick(price=100.0 + i * 0.1, volume=10.0, timestamp=1_000 * i) for i in range(n)]


class TestIngest:
    def test_creates_engine_and_processes_ticks(self) -> None:
        registry = EngineRegistry()
        stream = TickStream(FakeFeed([]), registry)
        assert "FAKE" in registry

        for tick in _rising(3):
            stream.ingest(tick)

        assert registry.get("FAKE").get_tick_count() == 3
        assert stream.status().ticks_received == 3

    def test_predicts_every_n_ticks(self) -> None:
        registry = EngineRegistry(EngineConfig(min_ticks_for_prediction=10))
        stream = TickStream(FakeFeed([]), registry, predict_every=5, max_pending=10)

        made = [stream.ingest(t) for t in _rising(20)]

        # tick 5 arrives before min_ticks_for_prediction
        assert [i + 1 for i, p in enumerate(made) if p is not None] == [10, 15, 20]
        assert stream.status().predictions_made == 3

    def test_respects_max_pending(self) -> None:
        registry = EngineRegistry()
        stream = TickStream(FakeFeed([]), registry, predict_every=1, max_pending=2)
        # ticks 1ms apart never reach the default horizon, so nothing resolves
        for i in range(20):
            stream.ingest(Tick(price=100.0 + i * 0.1, volume=1.0, timestamp=i))
        assert len(registry.get("FAKE").get_pending_predictions()) == 2

    def test_listeners_and_removal(self) -> None:
        stream = TickStream(FakeFeed([]), EngineRegistry())
        seen: list[Tick] = []
        remove = stream.add_listener(seen.append)
        tick = Tick(price=1.0, volume=1.0, timestamp=1)
        stream.ingest(tick)
        remove()
        stream.ingest(Tick(price=1.1, volume=1.0, timestamp=2))
        assert seen == [tick]

    def test_listener_errors_do_not_break_ingest(self) -> None:
        stream = TickStream(FakeFeed([]), EngineRegistry())

        def boom(tick: Tick) -> None:
            raise RuntimeError("listener bug")

        seen: list[Tick] = []
        stream.add_listener(boom)
        stream.add_listener(seen.append)
        stream.ingest(Tick(price=1.0, volume=1.0, timestamp=1))
        assert len(seen) == 1


class TestPolling:
    def test_poll_once_ingests(self) -> None:
        registry = EngineRegistry()
        tick = Tick(price=5.0, volume=1.0, timestamp=1)
        stream = TickStream(FakeFeed([tick]), registry)

        assert asyncio.run(stream.poll_once()) == tick
        assert asyncio.run(stream.poll_once()) is None
        assert registry.get("FAKE").get_tick_count() == 1

    def test_feed_error_is_recorded(self) -> None:
        stream = TickStream(FailingFeed(), EngineRegistry())
        assert asyncio.run(stream.poll_once()) is None
        status = stream.status()
        assert status.last_error == "feed offline"
        assert status.data_quality is DataQuality.DISCONNECTED

    def test_run_and_stop(self) -> None:
        registry = EngineRegistry()
        feed = FakeFeed(_rising(3))
        stream = TickStream(feed, registry, poll_interval=0.001)

        async def scenario() -> None:
            stream.start()
            for _ in range(200):
                if registry.get("FAKE").get_tick_count() == 3:
                    break
                await asyncio.sleep(0.005)
            await stream.stop()

        asyncio.run(scenario())
        assert registry.get("FAKE").get_tick_count() == 3
        assert feed.closed is True
        assert stream.status().running is False


class TestDataQuality:
    def test_disconnected_before_first_tick(self) -> None:
        stream = TickStream(FakeFeed([]), EngineRegistry())
        assert stream.data_quality is DataQuality.DISCONNECTED
        assert stream.ticks_per_second == 0.0

    def test_real_then_stale(self) -> None:
        stream = TickStream(FakeFeed([]), EngineRegistry(), stale_after=5.0)
        stream.ingest(Tick(price=1.0, volume=1.0, timestamp=1))
        assert stream.data_quality is DataQuality.REAL
        assert stream.ticks_per_second >= 1.0

        stream._last_tick_at = time.monotonic() - 10
        assert stream.data_quality is DataQuality.STALE
        assert stream.status().to_dict()["dataQuality"] == "stale"

    def test_arrival_window_stays_bounded_without_status_reads(self) -> None:
        stream = TickStream(FakeFeed([]), EngineRegistry())
        clock = itertools.count()
        with patch("tickcast.feeds.stream.time.monotonic", side_effect=lambda: float(next(clock))):
            for i in range(5000):
                stream.ingest(Tick(price=100.0, volume=1.0, timestamp=i))
        # one tick per second: only the last window's arrivals are kept
        assert len(stream._arrivals) <= 2

    def test_open_circuit_reports_disconnected(self) -> None:
        feed = FakeFeed([])
        stream = TickStream(feed, EngineRegistry())
        stream.ingest(Tick(price=1.0, volume=1.0, timestamp=1))
        with patch.object(FakeFeed, "healthy", new_callable=PropertyMock, return_value=False):
            assert stream.data_quality is DataQuality.DISCONNECTED
        assert stream.data_quality is DataQuality.REAL
