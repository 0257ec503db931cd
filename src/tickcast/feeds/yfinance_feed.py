from __future__ import annotations

import logging
import math
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any

import yfinance as yf

from tickcast.feeds.base import TickFeed
from tickcast.models.tick import Tick

logger = logging.getLogger(__name__)


def _to_float(value: Any) -> float | None:
    """Convert a quote field to a finite float, or None."""
    if value is None:
        return None
    try:
        result = float(value)
    except (ValueError, TypeError):
        return None
    return result if math.isfinite(result) else None


@dataclass
class CircuitBreaker:
    """Opens when too many of the latest polls failed; probes again after a cooldown.

    While open, ``allow_request()`` is False until ``cooldown_seconds`` have
    passed. The first poll after that is a probe: success closes the breaker
    and forgets the failure history, failure re-opens it for another cooldown.
    """

    threshold: float = 0.50  # failure share of the recent polls
    window: int = 20  # polls considered
    min_polls: int = 10
    cooldown_seconds: float = 30.0
    _outcomes: deque[bool] = field(init=False, repr=False)
    _opened_at: float | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        self._outcomes = deque(maxlen=self.window)

    def record(self, ok: bool) -> None:
        if ok:
            if self._opened_at is not None:
                logger.info("Circuit closed after successful probe")
                self.reset()
            self._outcomes.append(True)
            return

        self._outcomes.append(False)
        if self._opened_at is not None:
            self._opened_at = time.monotonic()
        elif len(self._outcomes) >= self.min_polls and self.failure_rate >= self.threshold:
            self._opened_at = time.monotonic()
            logger.warning(
                "Circuit opened: %.0f%% of the last %d polls failed",
                self.failure_rate * 100, len(self._outcomes),
            )

    @property
    def is_open(self) -> bool:
        return self._opened_at is not None

    def allow_request(self) -> bool:
        if self._opened_at is None:
            return True
        return time.monotonic() - self._opened_at >= self.cooldown_seconds

    @property
    def failure_rate(self) -> float:
        if not self._outcomes:
            return 0.0
        return self._outcomes.count(False) / len(self._outcomes)

    def reset(self) -> None:
        self._outcomes.clear()
        self._opened_at = None


class YFinanceTickFeed(TickFeed):
    """Polls yfinance ``fast_info`` for the latest trade of one symbol.

    yfinance reports cumulative day volume; the tick carries the increment
    since the previous poll so volume spikes stay visible to the engine.
    """

    def __init__(self, symbol: str, circuit_breaker: CircuitBreaker | None = None) -> None:
        self.symbol = symbol.upper()
        self._ticker: yf.Ticker | None = None
        self._circuit_breaker = circuit_breaker or CircuitBreaker()
        self._last_day_volume: float | None = None

    @property
    def circuit_breaker(self) -> CircuitBreaker:
        return self._circuit_breaker

    @property
    def healthy(self) -> bool:
        return not self._circuit_breaker.is_open

    def _get_ticker(self) -> yf.Ticker:
        if self._ticker is None:
            self._ticker = yf.Ticker(self.symbol)
        return self._ticker

    def fetch(self) -> Tick | None:
        if not self._circuit_breaker.allow_request():
            logger.debug("Circuit open, skipping poll for %s", self.symbol)
            return None

        try:
            info = self._get_ticker().fast_info
            price = _to_float(getattr(info, "last_price", None))
            day_volume = _to_float(getattr(info, "last_volume", None))
        except Exception:
            logger.warning("yfinance fetch failed for %s", self.symbol, exc_info=True)
            self._circuit_breaker.record(False)
            return None

        if price is None or price <= 0:
            logger.debug("Dropping tick for %s: invalid price %r", self.symbol, price)
            self._circuit_breaker.record(False)
            return None

        self._circuit_breaker.record(True)
        return Tick(
            price=price,
            volume=self._volume_delta(day_volume),
            timestamp=int(time.time() * 1000),
            source="yfinance",
        )

    def _volume_delta(self, day_volume: float | None) -> float:
        if day_volume is None:
            return 0.0
        previous = self._last_day_volume
        self._last_day_volume = day_volume
        if previous is None or day_volume < previous:
            return 0.0
        return day_volume - previous
