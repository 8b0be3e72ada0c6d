"""Chat router providing the long-poll HTTP endpoints.

This module provides:
    - GET /: Chat page (HTML)
    - POST /login: Join the room; sets the identity cookie
    - DELETE /login: Leave the room; clears the identity cookie
    - POST /feed: Post a message to everyone in the room
    - GET /feed: Long-poll for the next message

Poll protocol:
    The first poll after login returns the room history at once
    (status "replay"). Later polls hold the request open until one message
    arrives ("delivered") or the timeout passes ("timeout"); the client is
    expected to poll again straight away either way.
"""
import asyncio
import logging
from pathlib import Path
from typing import Dict, Optional, Type

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import FileResponse, JSONResponse

from .dependencies import get_identity_resolver, get_room, get_username, log_request
from .errors import ChatError, DuplicateUsername, EmptyBody, InvalidUsername, UnknownUser
from .identity import IdentityResolver
from .poll import CancelSignal
from .room import Room
from .schemas import (
    LoginRequest,
    LoginResponse,
    LogoutResponse,
    Message,
    PollResponse,
    PostRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"], dependencies=[Depends(log_request)])

# HTML template directory
TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

# Status code for each core failure
ERROR_STATUS: Dict[Type[ChatError], int] = {
    InvalidUsername: 400,
    DuplicateUsername: 409,
    UnknownUser: 401,
    EmptyBody: 400,
}


async def chat_error_handler(request: Request, exc: ChatError) -> JSONResponse:
    """Convert a ChatError raised by the room into a JSON error response."""
    status_code = ERROR_STATUS.get(type(exc), 400)
    logger.info("%s %s -> %d: %s", request.method, request.url.path, status_code, exc.message)
    return JSONResponse({"error": exc.message}, status_code=status_code)


def _disconnect_signal(request: Request, interval: float) -> CancelSignal:
    """Build an awaitable factory that completes once the client goes away."""
    async def watch() -> None:
        while not await request.is_disconnected():
            await asyncio.sleep(interval)
    return watch


@router.get("/", include_in_schema=False)
async def home() -> FileResponse:
    """Serve the chat page."""
    return FileResponse(TEMPLATES_DIR / "index.html", media_type="text/html")


@router.get("/favicon.ico", include_in_schema=False)
async def favicon() -> Response:
    return Response(status_code=204)


@router.post("/login", response_model=LoginResponse)
async def login(
    request: LoginRequest,
    response: Response,
    room: Room = Depends(get_room),
    identity: IdentityResolver = Depends(get_identity_resolver),
) -> LoginResponse:
    """Join the room under the requested username.

    Returns:
        The username now in use. The identity cookie is set on the response.
    """
    # Cookie first: a failed join discards this response, a failed cookie
    # leaves the room untouched.
    identity.remember(response, request.username or "")
    user = await room.join(request.username)
    return LoginResponse(username=user.username)


@router.delete("/login", response_model=LogoutResponse)
async def logout(
    response: Response,
    room: Room = Depends(get_room),
    identity: IdentityResolver = Depends(get_identity_resolver),
    username: str = Depends(get_username),
) -> LogoutResponse:
    """Leave the room.

    Leaving twice is not an error; ``left`` reports whether anything changed.
    """
    if not username:
        raise UnknownUser("")
    left = await room.leave(username)
    identity.forget(response)
    return LogoutResponse(left=left)


@router.post("/feed", response_model=Message, status_code=201)
async def post_message(
    request: PostRequest,
    room: Room = Depends(get_room),
    username: str = Depends(get_username),
) -> Message:
    """Post a message to everyone in the room, the author included."""
    return await room.post_message(username, request.body)


@router.get("/feed", response_model=PollResponse)
async def poll(
    request: Request,
    timeout: Optional[float] = Query(
        None, gt=0, description="Seconds to wait; capped at the server's poll timeout"
    ),
    room: Room = Depends(get_room),
    username: str = Depends(get_username),
) -> PollResponse:
    """Long-poll for the caller's next message.

    Example:
        GET /feed
        GET /feed?timeout=30
    """
    interval = request.app.state.settings.room.disconnect_check_seconds
    result = await room.poll(
        username,
        timeout=timeout,
        cancelled=_disconnect_signal(request, interval),
    )
    return PollResponse(status=result.outcome.value, messages=result.messages)
