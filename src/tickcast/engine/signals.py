"""Signal extractors: pure functions over a window of ticks.

Every extractor returns 0 when the window is too small to say anything,
so callers never have to special-case a cold buffer.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

from tickcast.config import EngineConfig
from tickcast.models.learning import VolatilityState
from tickcast.models.tick import Tick

MICRO_TREND_TICKS = 5
VOLUME_TICKS = 10
VOLUME_SPIKE_RATIO = 1.5
VOLUME_SIGNAL = 0.5

# Upper bounds (exclusive) for each volatility band; above the last is EXTREME
VOLATILITY_BANDS: list[tuple[float, VolatilityState]] = [
    (0.0005, VolatilityState.LOW),
    (0.002, VolatilityState.MEDIUM),
    (0.005, VolatilityState.HIGH),
]


@dataclass(frozen=True)
class SignalSet:
    momentum: float
    volatility: float
    micro_trend: float
    volume: float

    def to_dict(self) -> dict:
        return {
            "momentum": self.momentum,
            "volatility": self.volatility,
            "microTrend": self.micro_trend,
            "volume": self.volume,
        }


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def momentum(ticks: Sequence[Tick], window: int) -> float:
    """Normalized price change across the window, scaled x100 into [-1, 1]."""
    recent = ticks[-window:] if window > 0 else []
    if len(recent) < 2:
        return 0.0
    first = recent[0].price
    if first <= 0:
        return 0.0
    change = (recent[-1].price - first) / first
    return _clamp(change * 100, -1.0, 1.0)


def volatility(ticks: Sequence[Tick], window: int) -> float:
    """Population standard deviation of per-tick returns."""
    recent = ticks[-window:] if window > 0 else []
    if len(recent) < 2:
        return 0.0
    returns = [
        (cur.price - prev.price) / prev.price
        for prev, cur in zip(recent, recent[1:])
        if prev.price > 0
    ]
    if not returns:
        return 0.0
    mean = sum(returns) / len(returns)
    variance = sum((r - mean) ** 2 for r in returns) / len(returns)
    return math.sqrt(variance)


def micro_trend(ticks: Sequence[Tick]) -> float:
    """(ups - downs) / 4 over the last five ticks."""
    if len(ticks) < MICRO_TREND_TICKS:
        return 0.0
    last = ticks[-MICRO_TREND_TICKS:]
    ups = downs = 0
    for prev, cur in zip(last, last[1:]):
        if cur.price > prev.price:
            ups += 1
        elif cur.price < prev.price:
            downs += 1
    return (ups - downs) / (MICRO_TREND_TICKS - 1)


def volume_pattern(ticks: Sequence[Tick]) -> float:
    """+/-0.5 when the latest tick trades on a volume spike, signed by its move."""
    if len(ticks) < VOLUME_TICKS:
        return 0.0
    last = ticks[-VOLUME_TICKS:]
    avg_volume = sum(t.volume for t in last) / VOLUME_TICKS
    latest = last[-1]
    if latest.volume > avg_volume * VOLUME_SPIKE_RATIO:
        price_change = latest.price - last[-2].price
        return VOLUME_SIGNAL if price_change > 0 else -VOLUME_SIGNAL
    return 0.0


def classify_volatility(value: float) -> VolatilityState:
    for upper, state in VOLATILITY_BANDS:
        if value < upper:
            return state
    return VolatilityState.EXTREME


def extract_signals(ticks: Sequence[Tick], config: EngineConfig) -> SignalSet:
    return SignalSet(
        momentum=momentum(ticks, config.momentum_window),
        volatility=volatility(ticks, config.volatility_window),
        micro_trend=micro_trend(ticks),
        volume=volume_pattern(ticks),
    )
