"""Growable circular buffer.

Elements occupy logical positions head, head+1, ..., head+count-1 modulo
capacity. When a push finds the buffer full, capacity doubles and the
occupied range is copied front-to-back into the start of the new storage.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Generic, TypeVar

from services.triage.src.triage.core.errors import EmptyError

T = TypeVar("T")

DEFAULT_CAPACITY = 20


class RingBuffer(Generic[T]):
    """FIFO ring buffer with amortized O(1) push and O(1) pop."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._slots: list[T | None] = [None] * capacity
        self._head = 0
        self._count = 0
        # Bumped on every structural change so live iterators can detect it
        self._version = 0

    # -- queries ------------------------------------------------------------

    @property
    def capacity(self) -> int:
        return len(self._slots)

    def size(self) -> int:
        return self._count

    def is_empty(self) -> bool:
        return self._count == 0

    def is_full(self) -> bool:
        return self._count == len(self._slots)

    def __len__(self) -> int:
        return self._count

    def __bool__(self) -> bool:
        return self._count > 0

    def __repr__(self) -> str:
        return f"<RingBuffer size={self._count} capacity={self.capacity}>"

    # -- mutation -----------------------------------------------------------

    def push(self, value: T) -> None:
        """Append value at the logical tail, growing the storage if full."""
        if self.is_full():
            self._grow()
        self._slots[self._physical(self._count)] = value
        self._count += 1
        self._version += 1

    def pop(self) -> T:
        """Remove and return the head element."""
        if self._count == 0:
            raise EmptyError("pop from empty buffer")
        value = self._slots[self._head]
        self._slots[self._head] = None
        self._head = (self._head + 1) % len(self._slots)
        self._count -= 1
        self._version += 1
        return value

    def peek(self) -> T:
        """Return the head element without removing it."""
        if self._count == 0:
            raise EmptyError("peek on empty buffer")
        return self._slots[self._head]

    # -- iteration ----------------------------------------------------------

    def __iter__(self) -> Iterator[T]:
        """Yield elements head to tail without consuming them."""
        version = self._version
        for offset in range(self._count):
            if self._version != version:
                raise RuntimeError("RingBuffer mutated during iteration")
            yield self._slots[self._physical(offset)]

    # -- internals ----------------------------------------------------------

    def _physical(self, offset: int) -> int:
        """Map a logical offset from head to an index into the storage."""
        return (self._head + offset) % len(self._slots)

    def _grow(self) -> None:
        old = self._slots
        old_capacity = len(old)
        new_slots: list[T | None] = [None] * (old_capacity * 2)
        # The occupied range may wrap past the end of the old storage
        for offset in range(self._count):
            new_slots[offset] = old[(self._head + offset) % old_capacity]
        self._slots = new_slots
        self._head = 0
