"""Per-user delivery queue.

A bounded FIFO written by the room's broadcast and read by that user's polls.
Writers never block: a full queue drops its oldest undelivered message, so a
stalled client only ever loses its own backlog.
"""
import asyncio
from typing import List, Optional

from .errors import UnknownUser
from .ring import RingBuffer
from .schemas import Message

# Matches the history depth
DEFAULT_QUEUE_SIZE = 20


class DeliveryQueue:
    """Ring-backed message queue with an awaitable receive.

    Intended for use from a single event loop; every method except ``get`` is
    synchronous and therefore atomic with respect to other tasks.
    """

    def __init__(self, owner: str, capacity: int = DEFAULT_QUEUE_SIZE) -> None:
        self.owner = owner
        self._ring: RingBuffer[Message] = RingBuffer(capacity)
        self._ready = asyncio.Event()
        self._closed = False
        self.dropped = 0

    def __len__(self) -> int:
        return len(self._ring)

    @property
    def capacity(self) -> int:
        return self._ring.capacity

    @property
    def closed(self) -> bool:
        return self._closed

    def put(self, message: Message) -> Optional[Message]:
        """Enqueue a message without blocking.

        Returns:
            The oldest pending message if it had to be dropped, otherwise None.
        """
        dropped = self._ring.append(message)
        if dropped is not None:
            self.dropped += 1
        self._ready.set()
        return dropped

    def redeliver(self, message: Message) -> Optional[Message]:
        """Return a taken message to the front of the queue.

        Returns:
            The message that could not be kept (the redelivered one when the
            queue filled up in the meantime), otherwise None.
        """
        lost = self._ring.appendleft(message)
        if lost is not None:
            self.dropped += 1
        self._ready.set()
        return lost

    def get_nowait(self) -> Optional[Message]:
        if self._ring:
            return self._ring.popleft()
        return None

    async def get(self) -> Message:
        """Wait for and remove the next message.

        Raises:
            UnknownUser: If the queue was closed because its owner left.
        """
        while not self._ring:
            if self._closed:
                raise UnknownUser(self.owner)
            self._ready.clear()
            await self._ready.wait()
        return self._ring.popleft()

    def clear(self) -> None:
        self._ring.clear()

    def drain(self) -> List[Message]:
        """Remove and return every pending message, oldest first."""
        pending = self._ring.copy()
        self._ring.clear()
        return pending

    def close(self) -> None:
        """Wake every pending receiver; further receives fail."""
        self._closed = True
        self._ring.clear()
        self._ready.set()
