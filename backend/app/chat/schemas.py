"""Pydantic schemas and result types for the chat room."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Message(BaseModel):
    """A posted chat message.

    Instances are frozen: the same object is shared by the history buffer and
    every recipient's delivery queue.

    Attributes:
        author: Username of the poster.
        body: Message text.
        timestamp: When the room accepted the message (UTC).
    """
    model_config = ConfigDict(frozen=True)

    author: str = Field(..., description="Username of the poster")
    body: str = Field(..., description="Message text")
    timestamp: datetime = Field(default_factory=utcnow, description="Post time (UTC)")


class PollOutcome(str, Enum):
    """How a poll call ended.

    Attributes:
        DELIVERED: One queued message was handed over.
        REPLAY: First poll of a session; the history snapshot was handed over.
        TIMEOUT: Nothing arrived before the deadline.
        CANCELLED: The peer went away; nothing was consumed.
    """
    DELIVERED = "delivered"
    REPLAY = "replay"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"


@dataclass
class PollResult:
    """Result of a poll.

    Attributes:
        outcome: Terminal state of the poll.
        messages: One message when delivered, the backlog on replay, else empty.
    """
    outcome: PollOutcome
    messages: List[Message] = field(default_factory=list)

    @property
    def message(self) -> Optional[Message]:
        if self.outcome is PollOutcome.DELIVERED:
            return self.messages[0]
        return None


# =============================================================================
# HTTP payloads
# =============================================================================


class LoginRequest(BaseModel):
    """Request body for POST /login."""
    username: str = Field(default="", description="Name to join the room as")


class LoginResponse(BaseModel):
    username: str


class LogoutResponse(BaseModel):
    left: bool


class PostRequest(BaseModel):
    """Request body for POST /feed."""
    body: str = Field(default="", description="Message text")


class PollResponse(BaseModel):
    """Response body for GET /feed."""
    status: Literal["delivered", "replay", "timeout", "cancelled"]
    messages: List[Message] = Field(default_factory=list)
