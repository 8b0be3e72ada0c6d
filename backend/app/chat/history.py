"""Bounded backlog of the most recent messages in the room."""
from typing import Iterator, List

from .ring import RingBuffer
from .schemas import Message

# Number of messages kept for replay
DEFAULT_HISTORY_SIZE = 20


class HistorySnapshot:
    """Point-in-time view of the history buffer.

    The slots are copied when the snapshot is taken, so later posts never show
    up in it. It can be iterated any number of times.
    """

    def __init__(self, messages: List[Message]) -> None:
        self._messages = messages

    def __iter__(self) -> Iterator[Message]:
        return iter(self._messages)

    def __len__(self) -> int:
        return len(self._messages)


class HistoryBuffer:
    """Ring of the last ``capacity`` messages, oldest overwritten first."""

    def __init__(self, capacity: int = DEFAULT_HISTORY_SIZE) -> None:
        self._ring: RingBuffer[Message] = RingBuffer(capacity)

    @property
    def capacity(self) -> int:
        return self._ring.capacity

    def __len__(self) -> int:
        return len(self._ring)

    def append(self, message: Message) -> None:
        self._ring.append(message)

    def snapshot(self) -> HistorySnapshot:
        """Return the held messages in arrival order."""
        return HistorySnapshot(self._ring.copy())
