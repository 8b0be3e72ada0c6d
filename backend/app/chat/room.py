"""The chat room: user registry, message history and broadcast.

The room is the only owner of its registry and history. Every mutation runs
under ``self._lock`` with no await inside the critical section, so joins,
leaves and posts are atomic with respect to each other and to failures. Polls
resolve the user under the lock and then wait on that user's own queue with
the lock released, so a slow poller never holds up a post.

Thread Safety:
    Designed for a single asyncio event loop. Not safe to call from other
    threads.
"""
import asyncio
import logging
import time
from typing import List, Optional

from .delivery import DEFAULT_QUEUE_SIZE
from .errors import EmptyBody, UnknownUser
from .history import DEFAULT_HISTORY_SIZE, HistoryBuffer
from .poll import DEFAULT_POLL_TIMEOUT_SECONDS, CancelSignal, PollCoordinator
from .registry import User, UserRegistry
from .schemas import Message, PollOutcome, PollResult, utcnow

logger = logging.getLogger(__name__)


class Room:
    """A single chat channel fanning posts out to long-polling users.

    Attributes:
        registry: Users currently in the room.
        history: The most recent messages, replayed on a user's first poll.
        poll_timeout: Default seconds a poll waits before timing out.
    """

    def __init__(
        self,
        history_size: int = DEFAULT_HISTORY_SIZE,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        poll_timeout: float = DEFAULT_POLL_TIMEOUT_SECONDS,
    ) -> None:
        self.registry = UserRegistry(queue_size=queue_size)
        self.history = HistoryBuffer(history_size)
        self.poll_timeout = poll_timeout
        self._coordinator = PollCoordinator()
        self._lock = asyncio.Lock()

    # =========================================================================
    # Membership
    # =========================================================================

    async def join(self, username: Optional[str]) -> User:
        """Add a user to the room.

        Raises:
            InvalidUsername: If the username is blank.
            DuplicateUsername: If the username is taken.
        """
        async with self._lock:
            return self.registry.join(username)

    async def leave(self, username: str) -> bool:
        """Remove a user; any poll they have in flight fails with UnknownUser."""
        async with self._lock:
            return self.registry.leave(username)

    def lookup(self, username: Optional[str]) -> Optional[User]:
        return self.registry.lookup(username)

    def _require(self, username: Optional[str]) -> User:
        user = self.registry.lookup(username)
        if user is None:
            raise UnknownUser(username or "")
        return user

    # =========================================================================
    # Broadcast
    # =========================================================================

    async def post_message(self, author: Optional[str], body: Optional[str]) -> Message:
        """Record a message and queue it for every user, the author included.

        A user whose queue is full loses their oldest pending message; nobody
        else is affected and the poster never waits.

        Raises:
            UnknownUser: If the author is not in the room.
            EmptyBody: If the body is empty or whitespace.
        """
        async with self._lock:
            user = self._require(author)
            if not body or not body.strip():
                raise EmptyBody()

            message = Message(author=user.username, body=body, timestamp=utcnow())
            self.history.append(message)
            for member in self.registry:
                dropped = member.queue.put(message)
                if dropped is not None:
                    logger.warning(
                        "Queue for %s is full; dropped message from %s at %s",
                        member.username,
                        dropped.author,
                        dropped.timestamp.isoformat(),
                    )
            user.touch()

        logger.info("%s: %s", message.author, message.body)
        return message

    # =========================================================================
    # Polling
    # =========================================================================

    async def await_message(
        self,
        username: Optional[str],
        timeout: Optional[float] = None,
        cancelled: Optional[CancelSignal] = None,
    ) -> Optional[Message]:
        """Block until the user's next message arrives.

        Returns:
            The message, or None on timeout or cancellation.

        Raises:
            UnknownUser: If the user is not in the room (checked before waiting).
        """
        async with self._lock:
            user = self._require(username)
            user.touch()
            if timeout is not None and timeout <= 0:
                return self._take_now(user).message
        result = await self._coordinator.wait(user, self._timeout(timeout), cancelled)
        return result.message

    async def poll(
        self,
        username: Optional[str],
        timeout: Optional[float] = None,
        cancelled: Optional[CancelSignal] = None,
    ) -> PollResult:
        """Catch up on history on the first poll, then stream one message at a time.

        The first poll of a session returns the whole history snapshot
        immediately when there is one. The user's queue is drained in the same
        step; queued messages that have already rolled out of the history are
        older than all of it and go in front of the snapshot.

        A ``timeout`` of zero or less checks the queue without waiting.

        Raises:
            UnknownUser: If the user is not in the room.
        """
        async with self._lock:
            user = self._require(username)
            user.touch()
            if user.last_poll_time is None:
                user.last_poll_time = utcnow()
                backlog = list(self.history.snapshot())
                if backlog:
                    in_history = {id(message) for message in backlog}
                    older = [m for m in user.queue.drain() if id(m) not in in_history]
                    return PollResult(PollOutcome.REPLAY, older + backlog)
            if timeout is not None and timeout <= 0:
                return self._take_now(user)

        result = await self._coordinator.wait(user, self._timeout(timeout), cancelled)
        user.touch()
        return result

    def _take_now(self, user: User) -> PollResult:
        message = user.queue.get_nowait()
        if message is None:
            return PollResult(PollOutcome.TIMEOUT, [])
        user.last_poll_time = utcnow()
        return PollResult(PollOutcome.DELIVERED, [message])

    def _timeout(self, timeout: Optional[float]) -> float:
        if timeout is None:
            return self.poll_timeout
        return min(timeout, self.poll_timeout)

    # =========================================================================
    # Idle reaping
    # =========================================================================

    async def reap_idle(self, max_idle: float) -> List[str]:
        """Remove users with no poll in flight and no activity for ``max_idle`` seconds.

        Returns:
            Usernames that were removed.
        """
        cutoff = time.monotonic() - max_idle
        async with self._lock:
            idle = [
                user.username for user in self.registry
                if user.active_polls == 0 and user.last_seen < cutoff
            ]
            for username in idle:
                self.registry.leave(username)
        if idle:
            logger.info("[Room] Reaped %d idle user(s): %s", len(idle), ", ".join(idle))
        return idle

    def stats(self) -> dict:
        return {"users": len(self.registry), "history": len(self.history)}


async def run_idle_reaper(room: Room, max_idle: float, interval: float) -> None:
    """Periodically drop idle users until cancelled."""
    logger.info("[Room] Idle reaper started (max_idle=%ss, interval=%ss)", max_idle, interval)
    while True:
        await asyncio.sleep(interval)
        await room.reap_idle(max_idle)
