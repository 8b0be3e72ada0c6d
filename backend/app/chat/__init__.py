"""Single-room chat over HTTP long-polling.

Components:
    - Room: owns the user registry and message history; broadcasts posts.
    - UserRegistry: active participants and their delivery queues.
    - HistoryBuffer: the last N messages, replayed on a user's first poll.
    - PollCoordinator: blocking wait with timeout and disconnect handling.
"""
from .errors import ChatError, DuplicateUsername, EmptyBody, InvalidUsername, UnknownUser
from .room import Room
from .schemas import Message, PollOutcome, PollResult

__all__ = [
    "ChatError",
    "DuplicateUsername",
    "EmptyBody",
    "InvalidUsername",
    "Message",
    "PollOutcome",
    "PollResult",
    "Room",
    "UnknownUser",
]
