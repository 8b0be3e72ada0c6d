"""Fixed-capacity ring buffer shared by the history buffer and delivery queues.

Storage is a preallocated list plus a head index and a count; nothing is ever
resized. Appending to a full ring overwrites the oldest slot.
"""
from typing import Generic, Iterator, List, Optional, TypeVar

T = TypeVar("T")


class RingBuffer(Generic[T]):
    """Bounded FIFO with overwrite-oldest-on-full semantics.

    Attributes:
        capacity: Maximum number of items held at once.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._slots: List[Optional[T]] = [None] * capacity
        self._head = 0  # index of the oldest item
        self._count = 0

    def __len__(self) -> int:
        return self._count

    def __bool__(self) -> bool:
        return self._count > 0

    def __iter__(self) -> Iterator[T]:
        for offset in range(self._count):
            yield self._slots[(self._head + offset) % self.capacity]

    @property
    def full(self) -> bool:
        return self._count == self.capacity

    def append(self, item: T) -> Optional[T]:
        """Add an item at the tail.

        Returns:
            The item that was overwritten to make room, or None.
        """
        if self._count < self.capacity:
            self._slots[(self._head + self._count) % self.capacity] = item
            self._count += 1
            return None
        overwritten = self._slots[self._head]
        self._slots[self._head] = item
        self._head = (self._head + 1) % self.capacity
        return overwritten

    def appendleft(self, item: T) -> Optional[T]:
        """Put an item back at the head, ahead of everything else.

        When the ring is full the new head is itself the oldest entry, so it is
        the one discarded and returned; the tail is never sacrificed.
        """
        if self._count == self.capacity:
            return item
        self._head = (self._head - 1) % self.capacity
        self._slots[self._head] = item
        self._count += 1
        return None

    def popleft(self) -> T:
        """Remove and return the oldest item.

        Raises:
            IndexError: If the ring is empty.
        """
        if not self._count:
            raise IndexError("pop from an empty ring buffer")
        item = self._slots[self._head]
        self._slots[self._head] = None
        self._head = (self._head + 1) % self.capacity
        self._count -= 1
        return item

    def clear(self) -> None:
        self._slots = [None] * self.capacity
        self._head = 0
        self._count = 0

    def copy(self) -> List[T]:
        """Return the held items, oldest first, as a new list."""
        return list(self)
