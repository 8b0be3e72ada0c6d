"""Registry of the users currently in the room."""
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterator, List, Optional

from .delivery import DEFAULT_QUEUE_SIZE, DeliveryQueue
from .errors import DuplicateUsername, InvalidUsername
from .schemas import utcnow

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class User:
    """A participant and their pending deliveries.

    Attributes:
        username: Unique key within the room.
        queue: Messages broadcast to this user and not yet polled.
        last_poll_time: When a poll last handed something over; None until the
            first poll, which is what triggers the history replay.
        joined_at: Wall-clock join time.
        last_seen: Monotonic time of the last poll or post, for idle reaping.
        active_polls: Number of polls currently waiting on ``queue``.
    """
    username: str
    queue: DeliveryQueue
    last_poll_time: Optional[datetime] = None
    joined_at: datetime = field(default_factory=utcnow)
    last_seen: float = field(default_factory=time.monotonic)
    active_polls: int = 0

    def touch(self) -> None:
        self.last_seen = time.monotonic()


class UserRegistry:
    """Users keyed by username, in join order.

    Not synchronized on its own; the owning room serializes access.
    """

    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE) -> None:
        self.queue_size = queue_size
        self._users: Dict[str, User] = {}

    def __len__(self) -> int:
        return len(self._users)

    def __iter__(self) -> Iterator[User]:
        return iter(list(self._users.values()))

    def __contains__(self, username: str) -> bool:
        return username in self._users

    def join(self, username: Optional[str]) -> User:
        """Register a new user with an empty delivery queue.

        Raises:
            InvalidUsername: If the username is missing or blank.
            DuplicateUsername: If the username is already registered.
        """
        if not username or not username.strip():
            raise InvalidUsername()
        if username in self._users:
            raise DuplicateUsername(username)

        user = User(username=username, queue=DeliveryQueue(username, self.queue_size))
        self._users[username] = user
        logger.info("User %s has entered the room.", username)
        return user

    def leave(self, username: str) -> bool:
        """Remove a user if present.

        Returns:
            True if a user was removed, False if there was nobody to remove.
        """
        user = self._users.pop(username, None)
        if user is None:
            return False
        user.queue.close()
        logger.info("User %s has left the room.", username)
        return True

    def lookup(self, username: Optional[str]) -> Optional[User]:
        if not username:
            return None
        return self._users.get(username)

    def usernames(self) -> List[str]:
        return list(self._users)
