from __future__ import annotations

import abc
from typing import Protocol, runtime_checkable

from tickcast.models.tick import Tick


class TickFeed(abc.ABC):
    """Source of ticks for one symbol.

    Adapters own input hygiene: malformed ticks (missing or non-positive
    price) are dropped here and never reach an engine.
    """

    symbol: str

    @abc.abstractmethod
    def fetch(self) -> Tick | None:
        """Return the next tick, or None when nothing usable is available."""

    @property
    def healthy(self) -> bool:
        """False while the adapter is backing off its upstream source."""
        return True

    def close(self) -> None:  # noqa: B027
        pass


@runtime_checkable
class CrossAssetSignal(Protocol):
    """Optional provider of a confidence factor derived from correlated markets."""

    def confidence_multiplier(self, symbol: str) -> float:
        ...


class StaticCrossAssetSignal:
    """Fixed per-symbol multipliers, defaulting to neutral."""

    def __init__(self, multipliers: dict[str, float] | None = None, default: float = 1.0) -> None:
        self._multipliers = {k.upper(): v for k, v in (multipliers or {}).items()}
        self._default = default

    def confidence_multiplier(self, symbol: str) -> float:
        return self._multipliers.get(symbol.upper(), self._default)
