"""Replay ticks from a CSV file.

Expected columns: ``price``, ``timestamp`` (epoch ms) and optionally
``volume``, ``bid``, ``ask``. Rows with a missing or non-positive price or a
missing timestamp are dropped on load.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import pandas as pd

from tickcast.feeds.base import TickFeed
from tickcast.models.tick import Tick

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("price", "timestamp")


def load_ticks_frame(path: str | Path) -> pd.DataFrame:
    df = pd.read_csv(path)
    df.columns = [str(c).strip().lower() for c in df.columns]

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"{path}: missing required column(s) {', '.join(missing)}")

    if "volume" not in df.columns:
        df["volume"] = 0.0

    df["price"] = pd.to_numeric(df["price"], errors="coerce")
    df["timestamp"] = pd.to_numeric(df["timestamp"], errors="coerce")
    df["volume"] = pd.to_numeric(df["volume"], errors="coerce").fillna(0.0)

    before = len(df)
    df = df[df["price"].notna() & (df["price"] > 0) & df["timestamp"].notna()]
    dropped = before - len(df)
    if dropped:
        logger.warning("%s: dropped %d malformed row(s)", path, dropped)

    return df.sort_values("timestamp", kind="stable").reset_index(drop=True)


class ReplayTickFeed(TickFeed):
    """Serves ticks from a CSV file in timestamp order, then returns None."""

    def __init__(self, path: str | Path, symbol: str = "REPLAY") -> None:
        self.symbol = symbol.upper()
        self.path = Path(path)
        self._ticks = [
            Tick.from_dict({**row, "source": "replay"})
            for row in load_ticks_frame(self.path).to_dict("records")
        ]
        self._pos = 0

    def __len__(self) -> int:
        return len(self._ticks)

    def __iter__(self) -> Iterator[Tick]:
        while True:
            tick = self.fetch()
            if tick is None:
                return
            yield tick

    @property
    def exhausted(self) -> bool:
        return self._pos >= len(self._ticks)

    def fetch(self) -> Tick | None:
        if self.exhausted:
            return None
        tick = self._ticks[self._pos]
        self._pos += 1
        return tick

    def rewind(self) -> None:
        self._pos = 0
