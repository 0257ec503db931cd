from __future__ import annotations

from tickcast.models.tick import Tick

DEFAULT_CAPACITY = 500


class TickBuffer:
    """Fixed-capacity circular buffer of ticks in arrival order.

    Slots are preallocated; ``_head`` is the next write position. Once full,
    each append overwrites the oldest tick.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be > 0, got {capacity}")
        self._capacity = capacity
        self._slots: list[Tick | None] = [None] * capacity
        self._head = 0
        self._size = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return self._size

    def append(self, tick: Tick) -> None:
        self._slots[self._head] = tick
        self._head = (self._head + 1) % self._capacity
        if self._size < self._capacity:
            self._size += 1

    def window(self, n: int) -> list[Tick]:
        """Return the last min(n, size) ticks, oldest first."""
        count = min(n, self._size)
        if count <= 0:
            return []
        start = (self._head - count) % self._capacity
        if start + count <= self._capacity:
            return list(self._slots[start:start + count])  # type: ignore[arg-type]
        tail = self._capacity - start
        return list(self._slots[start:]) + list(self._slots[:count - tail])  # type: ignore[arg-type]

    def latest(self) -> Tick | None:
        if self._size == 0:
            return None
        return self._slots[(self._head - 1) % self._capacity]

    def clear(self) -> None:
        self._slots = [None] * self._capacity
        self._head = 0
        self._size = 0
