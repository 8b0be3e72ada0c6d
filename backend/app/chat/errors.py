"""Failures raised by the chat room core.

Timeouts and cancelled polls are ordinary outcomes (see ``PollOutcome``) and
are deliberately not represented here.
"""


class ChatError(Exception):
    """Base exception for chat room errors."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidUsername(ChatError):
    """Raised when a join is attempted with an empty username."""
    def __init__(self, message: str = "A username is required."):
        super().__init__(message)


class DuplicateUsername(ChatError):
    """Raised when a join uses a username that is already in the room."""
    def __init__(self, username: str):
        self.username = username
        super().__init__("That username is already taken.")


class UnknownUser(ChatError):
    """Raised when an operation names a user who is not in the room."""
    def __init__(self, username: str):
        self.username = username
        if username:
            super().__init__(f"User {username!r} is not in the room.")
        else:
            super().__init__("Not logged in.")


class EmptyBody(ChatError):
    """Raised when a message is posted without any text."""
    def __init__(self, message: str = "Message body must not be empty."):
        super().__init__(message)
