"""Long-poll chat server application.

This is the main entry point for the chat backend. A single room lives for
the lifetime of the process; clients log in with a bare username, post
messages, and long-poll ``/feed`` for what everyone else says.

Modules:
    - chat: room, history, delivery queues, long-poll coordination, routes
    - config: YAML-backed settings
"""
import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.staticfiles import StaticFiles

from app.chat.errors import ChatError
from app.chat.identity import CookieIdentityResolver
from app.chat.room import Room, run_idle_reaper
from app.chat.router import chat_error_handler, router as chat_router
from app.config import AppSettings, get_config

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# Chat requests are logged by the router; uvicorn's access log only
# duplicates them.
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).resolve().parent / "static"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the room on startup and stop background work on shutdown."""
    # Startup
    config: AppSettings = app.state.settings

    configured_level = getattr(logging, config.logging.level.upper(), None)
    if configured_level is not None:
        logging.getLogger().setLevel(configured_level)
        logger.info("Root logger level set to %s", config.logging.level.upper())

    room_cfg = config.room
    app.state.room = Room(
        history_size=room_cfg.history_size,
        queue_size=room_cfg.queue_size,
        poll_timeout=room_cfg.poll_timeout_seconds,
    )
    app.state.identity = CookieIdentityResolver(config.identity.cookie_name)

    reaper: Optional[asyncio.Task] = None
    if room_cfg.idle_timeout_seconds > 0:
        reaper = asyncio.create_task(
            run_idle_reaper(
                app.state.room,
                room_cfg.idle_timeout_seconds,
                room_cfg.reaper_interval_seconds,
            )
        )
    else:
        logger.info("Idle reaping disabled")

    logger.info(
        "Serving at %s:%s ----------------------------------------------------",
        config.server.host,
        config.server.port,
    )

    yield  # Application runs here

    # Shutdown
    if reaper is not None:
        reaper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await reaper
    logger.info("Application shutdown complete")


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Explicit settings; loaded from the settings file if omitted.
    """
    app = FastAPI(
        title="Long-Poll Chat",
        description="Single-room chat over HTTP long-polling",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings or get_config()

    app.add_exception_handler(ChatError, chat_error_handler)

    app.include_router(chat_router)
    app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

    @app.get("/health")
    async def health(request: Request) -> dict:
        """Health check endpoint.

        Returns:
            dict: Status plus the current number of users in the room.
        """
        return {"status": "ok", **request.app.state.room.stats()}

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    config = get_config()
    uvicorn.run(
        "app.main:app",
        host=config.server.host,
        port=config.server.port,
        reload=config.server.reload,
        log_level=config.logging.level,
    )


if __name__ == "__main__":
    run()
