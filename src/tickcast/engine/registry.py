from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator

from tickcast.config import EngineConfig
from tickcast.engine.core import TickPredictionEngine
from tickcast.feeds.base import CrossAssetSignal

logger = logging.getLogger(__name__)


class EngineRegistry:
    """One engine per symbol, each guarded by its own lock.

    Engines are not thread-safe; every read-modify-write on an engine must
    go through ``locked()`` (or the helpers built on it) when the registry is
    shared between the API, WebSocket handlers and stream tasks.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        cross_asset: CrossAssetSignal | None = None,
    ) -> None:
        self._config = config or EngineConfig()
        self._cross_asset = cross_asset
        self._engines: dict[str, TickPredictionEngine] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    @staticmethod
    def _key(symbol: str) -> str:
        return symbol.strip().upper()

    def create(self, symbol: str) -> TickPredictionEngine:
        """Return the engine for ``symbol``, creating it on first use."""
        key = self._key(symbol)
        if not key:
            raise ValueError("symbol must be non-empty")
        with self._guard:
            engine = self._engines.get(key)
            if engine is None:
                engine = TickPredictionEngine(self._config, symbol=key, cross_asset=self._cross_asset)
                self._engines[key] = engine
                self._locks[key] = threading.Lock()
                logger.info("Created engine for %s", key)
            return engine

    def get(self, symbol: str) -> TickPredictionEngine:
        key = self._key(symbol)
        with self._guard:
            if key not in self._engines:
                raise KeyError(f"No engine for symbol {key}")
            return self._engines[key]

    def remove(self, symbol: str) -> None:
        key = self._key(symbol)
        with self._guard:
            self._engines.pop(key, None)
            self._locks.pop(key, None)

    def symbols(self) -> list[str]:
        with self._guard:
            return sorted(self._engines)

    def __contains__(self, symbol: object) -> bool:
        return isinstance(symbol, str) and self._key(symbol) in self._engines

    def __len__(self) -> int:
        return len(self._engines)

    @contextmanager
    def locked(self, symbol: str) -> Iterator[TickPredictionEngine]:
        """Hold the symbol's lock for the duration of the block."""
        key = self._key(symbol)
        with self._guard:
            if key not in self._engines:
                raise KeyError(f"No engine for symbol {key}")
            engine, lock = self._engines[key], self._locks[key]
        with lock:
            yield engine
