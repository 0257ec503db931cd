"""Async pump from a TickFeed into an EngineRegistry.

One stream per (symbol, feed). Feed calls run in a worker thread so a slow
HTTP poll never blocks the event loop; engine access goes through the
registry lock.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass
from enum import StrEnum
from typing import Callable

from tickcast.engine.registry import EngineRegistry
from tickcast.feeds.base import TickFeed
from tickcast.models.prediction import Prediction
from tickcast.models.tick import Tick

logger = logging.getLogger(__name__)

TickListener = Callable[[Tick], None]

TPS_WINDOW_SECONDS = 1.0


class DataQuality(StrEnum):
    REAL = "real"
    STALE = "stale"
    DISCONNECTED = "disconnected"


@dataclass
class StreamStatus:
    symbol: str
    running: bool
    data_quality: DataQuality
    ticks_received: int
    ticks_per_second: float
    predictions_made: int
    last_tick_at: float | None
    last_error: str | None

    def to_dict(self) -> dict:
        return {
            "symbol": self.symbol,
            "running": self.running,
            "dataQuality": self.data_quality.value,
            "ticksReceived": self.ticks_received,
            "ticksPerSecond": self.ticks_per_second,
            "predictionsMade": self.predictions_made,
            "lastTickAt": self.last_tick_at,
            "lastError": self.last_error,
        }


class TickStream:
    """Polls a feed, pushes ticks into the symbol's engine, optionally predicts."""

    def __init__(
        self,
        feed: TickFeed,
        registry: EngineRegistry,
        poll_interval: float = 1.5,
        predict_every: int = 0,
        max_pending: int = 3,
        stale_after: float | None = None,
    ) -> None:
        self.feed = feed
        self.symbol = feed.symbol.upper()
        self._registry = registry
        self._poll_interval = poll_interval
        self._predict_every = predict_every
        self._max_pending = max_pending
        self._stale_after = stale_after if stale_after is not None else poll_interval * 4
        self._listeners: set[TickListener] = set()
        self._arrivals: deque[float] = deque()
        self._ticks_received = 0
        self._predictions_made = 0
        self._last_tick_at: float | None = None
        self._last_error: str | None = None
        self._running = False
        self._task: asyncio.Task | None = None
        registry.create(self.symbol)

    def add_listener(self, listener: TickListener) -> Callable[[], None]:
        """Register a tick callback. Returns a function that removes it."""
        self._listeners.add(listener)
        return lambda: self._listeners.discard(listener)

    def ingest(self, tick: Tick) -> Prediction | None:
        """Feed one tick through the engine and fan it out to listeners.

        Returns the prediction made on this tick, if any.
        """
        prediction: Prediction | None = None
        with self._registry.locked(self.symbol) as engine:
            engine.process_tick(tick)
            self._ticks_received += 1
            if self._should_predict(engine):
                prediction = engine.generate_prediction()
                if prediction is not None:
                    self._predictions_made += 1

        now = time.monotonic()
        self._last_tick_at = now
        self._arrivals.append(now)
        self._prune_arrivals(now)
        self._last_error = None

        for listener in list(self._listeners):
            try:
                listener(tick)
            except Exception:
                logger.exception("Tick listener failed for %s", self.symbol)
        return prediction

    def _should_predict(self, engine) -> bool:
        if self._predict_every <= 0:
            return False
        if self._ticks_received % self._predict_every != 0:
            return False
        return len(engine.get_pending_predictions()) < self._max_pending

    async def poll_once(self) -> Tick | None:
        try:
            tick = await asyncio.to_thread(self.feed.fetch)
        except Exception as exc:
            self._last_error = str(exc)
            logger.warning("Feed error for %s: %s", self.symbol, exc)
            return None
        if tick is not None:
            self.ingest(tick)
        return tick

    async def run(self) -> None:
        self._running = True
        logger.info(
            "Tick stream started for %s (poll interval %.2fs)", self.symbol, self._poll_interval,
        )
        try:
            while self._running:
                await self.poll_once()
                await asyncio.sleep(self._poll_interval)
        finally:
            self._running = False
            self.feed.close()
            logger.info("Tick stream stopped for %s", self.symbol)

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self) -> None:
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    def _prune_arrivals(self, now: float) -> None:
        cutoff = now - TPS_WINDOW_SECONDS
        while self._arrivals and self._arrivals[0] < cutoff:
            self._arrivals.popleft()

    @property
    def ticks_per_second(self) -> float:
        self._prune_arrivals(time.monotonic())
        return len(self._arrivals) / TPS_WINDOW_SECONDS

    @property
    def data_quality(self) -> DataQuality:
        if self._last_tick_at is None or not self.feed.healthy:
            return DataQuality.DISCONNECTED
        if time.monotonic() - self._last_tick_at > self._stale_after:
            return DataQuality.STALE
        return DataQuality.REAL

    def status(self) -> StreamStatus:
        return StreamStatus(
            symbol=self.symbol,
            running=self._running,
            data_quality=self.data_quality,
            ticks_received=self._ticks_received,
            ticks_per_second=self.ticks_per_second,
            predictions_made=self._predictions_made,
            last_tick_at=self._last_tick_at,
            last_error=self._last_error,
        )
