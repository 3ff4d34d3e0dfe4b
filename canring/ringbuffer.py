"""Fixed-size ring buffers, plain and with per-item priorities."""

from __future__ import annotations

from typing import Generic, TypeVar

T = TypeVar("T")

_MIN_SIZE = 3


class BufferFullError(Exception):
    """Raised when an item is added to a buffer that has no free slot."""


class BufferEmptyError(Exception):
    """Raised when an item is read from a buffer that holds none."""


class RingBuffer(Generic[T]):
    """A FIFO ring of ``size`` slots holding at most ``size - 1`` items."""

    def __init__(self, size: int) -> None:
        self.size = max(size, _MIN_SIZE)
        self._slots: list[T | None] = [None] * self.size
        self._head = 0
        self._tail = 0

    def __len__(self) -> int:
        return (self._head - self._tail) % self.size

    def is_empty(self) -> bool:
        """Return True when no item is waiting."""
        return self._head == self._tail

    def clear(self) -> None:
        """Drop every item."""
        self._head = self._tail = 0
        self._slots = [None] * self.size

    def add(self, item: T) -> None:
        """Append ``item``; raise BufferFullError if there is no room."""
        next_entry = (self._head + 1) % self.size
        if next_entry == self._tail:
            raise BufferFullError("ring buffer full")
        self._slots[self._head] = item
        self._head = next_entry

    def read(self) -> T:
        """Remove and return the oldest item; raise BufferEmptyError if none."""
        if self.is_empty():
            raise BufferEmptyError("ring buffer empty")
        item = self._slots[self._tail]
        self._slots[self._tail] = None
        self._tail = (self._tail + 1) % self.size
        return item  # type: ignore[return-value]


class PriorityRingBuffer(Generic[T]):
    """A ring buffer whose items carry a priority; lower numbers are read first.

    Items of equal priority come out in the order they were added. Slots are
    only reused once every item before them in the ring has been read.
    """

    def __init__(self, size: int, max_priorities: int = 1) -> None:
        self.size = max(size, _MIN_SIZE)
        self.max_priorities = max(max_priorities, 1)
        self._values: list[T | None] = [None] * self.size
        self._next: list[int | None] = [None] * self.size
        self._live = [False] * self.size
        self._first: list[int | None] = [None] * self.max_priorities
        self._last: list[int | None] = [None] * self.max_priorities
        self._head = 0
        self._tail = 0

    def __len__(self) -> int:
        return (self._head - self._tail) % self.size

    def _clamp(self, priority: int) -> int:
        if priority < 0:
            raise ValueError(f"priority must not be negative: {priority}")
        return min(priority, self.max_priorities - 1)

    def is_empty(self, priority: int | None = None) -> bool:
        """Return True when nothing waits at ``priority``, or at all if None."""
        if priority is None or priority >= self.max_priorities:
            return self._head == self._tail
        return self._first[priority] is None

    def clear(self) -> None:
        """Drop every item of every priority."""
        self._head = self._tail = 0
        self._values = [None] * self.size
        self._next = [None] * self.size
        self._live = [False] * self.size
        self._first = [None] * self.max_priorities
        self._last = [None] * self.max_priorities

    def add(self, item: T, priority: int = 0) -> None:
        """Store ``item`` at ``priority``; raise BufferFullError if no slot is free.

        Priorities beyond the highest are clamped to it.
        """
        priority = self._clamp(priority)
        next_entry = (self._head + 1) % self.size
        if next_entry == self._tail:
            raise BufferFullError("priority ring buffer full")
        slot = self._head
        self._values[slot] = item
        self._next[slot] = None
        self._live[slot] = True
        last = self._last[priority]
        if self._first[priority] is None:
            self._first[priority] = slot
        else:
            self._next[last] = slot  # type: ignore[index]
        self._last[priority] = slot
        self._head = next_entry

    def read(self, priority: int | None = None) -> T:
        """Remove and return the next item.

        With ``priority`` given, the oldest item of that priority; otherwise
        the oldest item of the most urgent priority that has any.
        """
        if priority is None:
            return self.read_with_priority()[1]
        return self._read_at(self._clamp(priority))

    def read_with_priority(self) -> tuple[int, T]:
        """Remove the most urgent item and return it with its priority."""
        for priority, first in enumerate(self._first):
            if first is not None:
                return priority, self._read_at(priority)
        raise BufferEmptyError("priority ring buffer empty")

    def _read_at(self, priority: int) -> T:
        ref = self._first[priority]
        if ref is None:
            raise BufferEmptyError(f"no items of priority {priority}")
        item = self._values[ref]
        self._first[priority] = self._next[ref]
        if self._first[priority] is None:
            self._last[priority] = None
        self._live[ref] = False
        self._next[ref] = None
        self._values[ref] = None
        if ref == self._tail:
            self._tail = (self._tail + 1) % self.size
            while self._tail != self._head and not self._live[self._tail]:
                self._tail = (self._tail + 1) % self.size
        return item  # type: ignore[return-value]