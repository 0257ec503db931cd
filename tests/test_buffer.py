from __future__ import annotations

import pytest

from tickcast.engine.buffer import DEFAULT_CAPACITY, TickBuffer
from tickcast.models.tick import Tick


def _tick(i: int) -> Tick:
    return Tick(price=100.0 + i, volume=10.0, timestamp=1_000 + i)


class TestTickBuffer:
    def test_empty(self) -> None:
        buf = TickBuffer()
        assert len(buf) == 0
        assert buf.latest() is None
        assert buf.window(10) == []

    def test_default_capacity(self) -> None:
        assert TickBuffer().capacity == DEFAULT_CAPACITY == 500

    def test_invalid_capacity(self) -> None:
        with pytest.raises(ValueError):
            TickBuffer(0)

    def test_window_returns_arrival_order(self) -> None:
        buf = TickBuffer(10)
        for i in range(5):
            buf.append(_tick(i))
        assert [t.timestamp for t in buf.window(3)] == [1_002, 1_003, 1_004]

    def test_window_larger_than_size(self) -> None:
        buf = TickBuffer(10)
        for i in range(4):
            buf.append(_tick(i))
        assert len(buf.window(50)) == 4

    def test_window_non_positive(self) -> None:
        buf = TickBuffer(10)
        buf.append(_tick(0))
        assert buf.window(0) == []
        assert buf.window(-3) == []

    def test_evicts_oldest_when_full(self) -> None:
        buf = TickBuffer(3)
        for i in range(5):
            buf.append(_tick(i))
        assert len(buf) == 3
        assert [t.timestamp for t in buf.window(3)] == [1_002, 1_003, 1_004]
        assert buf.latest().timestamp == 1_004

    def test_window_across_wraparound(self) -> None:
        buf = TickBuffer(4)
        for i in range(7):
            buf.append(_tick(i))
        assert [t.timestamp for t in buf.window(4)] == [1_003, 1_004, 1_005, 1_006]
        assert [t.timestamp for t in buf.window(2)] == [1_005, 1_006]

    def test_default_capacity_eviction(self) -> None:
        buf = TickBuffer()
        for i in range(600):
            buf.append(_tick(i))
        assert len(buf) == 500
        assert buf.window(500)[0].timestamp == 1_100

    def test_clear(self) -> None:
        buf = TickBuffer(5)
        for i in range(7):
            buf.append(_tick(i))
        buf.clear()
        assert len(buf) == 0
        assert buf.latest() is None
        buf.append(_tick(42))
        assert buf.window(5) == [_tick(42)]
