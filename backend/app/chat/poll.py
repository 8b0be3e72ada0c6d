"""Long-poll coordination for a single user.

A poll moves from waiting to exactly one of delivered, timeout or cancelled.
The wait runs as its own receiver task racing a deadline and, optionally, a
disconnect watcher. The room lock is never held here.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

from .registry import User
from .schemas import PollOutcome, PollResult, utcnow

logger = logging.getLogger(__name__)

# Long-poll convention: hold the request for up to two minutes
DEFAULT_POLL_TIMEOUT_SECONDS = 120.0

CancelSignal = Callable[[], Awaitable[object]]


class PollCoordinator:
    """Blocks one request on one user's delivery queue."""

    async def wait(
        self,
        user: User,
        timeout: float,
        cancelled: Optional[CancelSignal] = None,
    ) -> PollResult:
        """Wait for the next message on ``user``'s queue.

        Args:
            user: A user already resolved from the registry.
            timeout: Seconds to wait before giving up.
            cancelled: Factory for an awaitable that completes when the peer
                disconnects.

        Returns:
            PollResult with outcome DELIVERED, TIMEOUT or CANCELLED.

        Raises:
            UnknownUser: If the user leaves the room while waiting.
        """
        receiver = asyncio.ensure_future(user.queue.get())
        watcher = asyncio.ensure_future(cancelled()) if cancelled is not None else None
        pending = {receiver} if watcher is None else {receiver, watcher}

        user.active_polls += 1
        try:
            done, _ = await asyncio.wait(
                pending, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            self._release(user, receiver)
            logger.debug("Poll for %s cancelled by server", user.username)
            raise
        finally:
            user.active_polls -= 1
            if watcher is not None and not watcher.done():
                watcher.cancel()

        if watcher is not None and watcher in done:
            if not watcher.cancelled() and watcher.exception() is not None:
                logger.warning(
                    "Disconnect watcher for %s failed: %s", user.username, watcher.exception()
                )
            self._release(user, receiver)
            logger.debug("Poll for %s cancelled: peer disconnected", user.username)
            return PollResult(PollOutcome.CANCELLED)

        if receiver in done:
            message = receiver.result()  # re-raises UnknownUser after a leave
            user.last_poll_time = utcnow()
            return PollResult(PollOutcome.DELIVERED, [message])

        self._release(user, receiver)
        return PollResult(PollOutcome.TIMEOUT)

    @staticmethod
    def _release(user: User, receiver: "asyncio.Future") -> None:
        """Stop the receiver; a message it already took goes back to the front."""
        if not receiver.done():
            receiver.cancel()
            return
        if receiver.cancelled() or receiver.exception() is not None:
            return
        lost = user.queue.redeliver(receiver.result())
        if lost is not None:
            logger.warning(
                "Queue for %s refilled during a cancelled poll; dropped oldest message",
                user.username,
            )
