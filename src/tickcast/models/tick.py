from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping


def _optional_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(result) else result


@dataclass(frozen=True)
class Tick:
    price: float
    volume: float
    timestamp: int  # epoch milliseconds
    bid: float | None = None
    ask: float | None = None
    source: str | None = None

    @property
    def spread(self) -> float | None:
        if self.bid is None or self.ask is None:
            return None
        return self.ask - self.bid

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Tick:
        """Build a Tick from a loosely-typed mapping (CSV row, JSON body)."""
        return cls(
            price=float(data["price"]),
            volume=float(data.get("volume") or 0.0),
            timestamp=int(data["timestamp"]),
            bid=_optional_float(data.get("bid")),
            ask=_optional_float(data.get("ask")),
            source=data.get("source"),
        )

    def to_dict(self) -> dict:
        return {
            "price": self.price,
            "volume": self.volume,
            "timestamp": self.timestamp,
            "bid": self.bid,
            "ask": self.ask,
            "source": self.source,
        }
