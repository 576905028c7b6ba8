"""
Bounded holding area for pending log events.

Many producer threads enqueue while a single flusher drains. A drain swaps
out the backing list in one step, so it takes ownership of exactly the events
enqueued before it and none enqueued during it. The lock only guards the
append/swap itself and is never held across I/O.
"""

from __future__ import annotations

import threading
from typing import Generic, TypeVar

from .events import LogEvent

T = TypeVar("T")

DEFAULT_CAPACITY = 20


class EventBuffer(Generic[T]):
    """Fixed-capacity FIFO buffer that drops (never blocks) when full."""

    __slots__ = ("_capacity", "_dropped_pending", "_dropped_total", "_items", "_lock")

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be > 0")
        self._capacity = capacity
        self._items: list[T] = []
        self._dropped_total = 0
        self._dropped_pending = 0
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def dropped(self) -> int:
        """Total events discarded because the buffer was full."""
        return self._dropped_total

    def enqueue(self, item: T) -> bool:
        """Append ``item``; returns False when it was dropped at capacity."""
        with self._lock:
            if len(self._items) >= self._capacity:
                self._dropped_total += 1
                self._dropped_pending += 1
                return False
            self._items.append(item)
            return True

    def drain_all(self) -> list[T]:
        """Remove and return every held item in arrival order."""
        with self._lock:
            items, self._items = self._items, []
        return items

    def take_dropped(self) -> int:
        """Return drops recorded since the previous call and reset that count."""
        with self._lock:
            dropped, self._dropped_pending = self._dropped_pending, 0
        return dropped

    def is_empty(self) -> bool:
        return not self._items

    def size(self) -> int:
        return len(self._items)

    def __len__(self) -> int:
        return len(self._items)


LogEventBuffer = EventBuffer[LogEvent]

__all__ = ["DEFAULT_CAPACITY", "EventBuffer", "LogEventBuffer"]
