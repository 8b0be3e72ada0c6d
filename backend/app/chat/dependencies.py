"""FastAPI dependencies for the chat routes.

The room and the identity resolver live on ``app.state``; they are created in
the application lifespan so each app instance gets its own.
"""
import logging

from fastapi import Depends, Request

from .identity import IdentityResolver
from .room import Room

logger = logging.getLogger(__name__)


def log_request(request: Request) -> None:
    logger.info("%s %s", request.method, request.url.path)


def get_room(request: Request) -> Room:
    """Get the room owned by the running application."""
    return request.app.state.room


def get_identity_resolver(request: Request) -> IdentityResolver:
    """Get the configured identity resolver."""
    return request.app.state.identity


def get_username(
    request: Request,
    resolver: IdentityResolver = Depends(get_identity_resolver),
) -> str:
    """Resolve the caller's username; empty when not logged in."""
    return resolver.resolve(request)
