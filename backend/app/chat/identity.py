"""Caller identity for the chat routes.

The room trusts whatever username the resolver returns. The default cookie
scheme performs no verification at all; swap in a different resolver to
strengthen it without touching the room.
"""
from typing import Protocol
from urllib.parse import quote, unquote

from fastapi import Request, Response

DEFAULT_COOKIE_NAME = "username"


class IdentityResolver(Protocol):
    def resolve(self, request: Request) -> str:
        """Return the caller's username, or an empty string if unknown."""
        ...

    def remember(self, response: Response, username: str) -> None:
        ...

    def forget(self, response: Response) -> None:
        ...


class CookieIdentityResolver:
    """Identity carried in a plain HttpOnly cookie.

    Usernames may hold any character, while header values are Latin-1 and
    cookie values a narrower set still, so the name is percent-encoded.
    """

    def __init__(self, cookie_name: str = DEFAULT_COOKIE_NAME) -> None:
        self.cookie_name = cookie_name

    def resolve(self, request: Request) -> str:
        return unquote(request.cookies.get(self.cookie_name, ""))

    def remember(self, response: Response, username: str) -> None:
        response.set_cookie(
            self.cookie_name, quote(username, safe=""), httponly=True, samesite="lax"
        )

    def forget(self, response: Response) -> None:
        response.delete_cookie(self.cookie_name)
