# Copyright 2026 DriftSpan Contributors
# SPDX-License-Identifier: Apache-2.0

"""Bounded FIFO container used for span events and finished-span capture.

When the buffer is at capacity the oldest item is evicted before the new one
is appended, so the buffer always holds the most recently added items in
their original order. A capacity of ``None`` means unbounded.

All access happens on one logical thread, so there is no locking.
"""

from __future__ import annotations

from collections import deque
from typing import Generic, TypeVar

T = TypeVar("T")


class RingBuffer(Generic[T]):
    """Fixed-capacity FIFO backed by ``collections.deque``.

    Args:
        capacity: Maximum number of items held, or None for no limit.
    """

    __slots__ = ("_buffer", "_capacity", "_dropped")

    def __init__(self, capacity: int | None = None) -> None:
        if capacity is not None and capacity < 0:
            raise ValueError("capacity must be >= 0")
        self._capacity = capacity
        self._buffer: deque[T] = deque(maxlen=capacity)
        self._dropped: int = 0

    def add(self, item: T) -> T | None:
        """Append an item, returning the evicted oldest item if one was dropped."""
        evicted = None
        if self.is_full:
            self._dropped += 1
            if self._buffer:
                evicted = self._buffer.popleft()
            else:
                # zero capacity: the item itself is the drop
                return item
        self._buffer.append(item)
        return evicted

    def items(self) -> list[T]:
        """Return a copy of the held items, oldest first."""
        return list(self._buffer)

    @property
    def capacity(self) -> int | None:
        return self._capacity

    @property
    def is_full(self) -> bool:
        return self._capacity is not None and len(self._buffer) >= self._capacity

    @property
    def dropped_count(self) -> int:
        """Total number of items evicted or refused because of the capacity."""
        return self._dropped

    def clear(self) -> None:
        self._buffer.clear()

    def __len__(self) -> int:
        return len(self._buffer)

    def __repr__(self) -> str:
        return f"RingBuffer(size={len(self._buffer)}, capacity={self._capacity}, dropped={self._dropped})"
