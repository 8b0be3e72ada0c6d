"""Chat server configuration.

Loads settings from a single YAML file, ``chat.settings.yaml`` in the working
directory by default. Set ``CHAT_SETTINGS_FILE`` to point somewhere else.
Every field has a default, so the server also runs with no file at all.
"""
from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SETTINGS_FILE = Path("chat.settings.yaml")
SETTINGS_ENV_VAR = "CHAT_SETTINGS_FILE"


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with path.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class ServerSettings(BaseModel):
    host:   str  = "0.0.0.0"
    port:   int  = 8080
    reload: bool = False


class LoggingSettings(BaseModel):
    level: str = "info"

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        if not isinstance(logging.getLevelName(value.upper()), int):
            raise ValueError(f"unknown log level: {value}")
        return value.lower()


class RoomSettings(BaseModel):
    """Room sizing and long-poll timing."""
    history_size:             int   = Field(default=20, ge=1)
    queue_size:               int   = Field(default=20, ge=1)
    poll_timeout_seconds:     float = Field(default=120.0, gt=0)
    disconnect_check_seconds: float = Field(default=0.5, gt=0)
    idle_timeout_seconds:     float = Field(default=0.0, ge=0)  # 0 disables reaping
    reaper_interval_seconds:  float = Field(default=30.0, gt=0)


class IdentitySettings(BaseModel):
    cookie_name: str = "username"


class AppSettings(BaseModel):
    server:   ServerSettings   = Field(default_factory=ServerSettings)
    logging:  LoggingSettings  = Field(default_factory=LoggingSettings)
    room:     RoomSettings     = Field(default_factory=RoomSettings)
    identity: IdentitySettings = Field(default_factory=IdentitySettings)


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def settings_path() -> Path:
    return Path(os.environ.get(SETTINGS_ENV_VAR, str(SETTINGS_FILE)))


def load_settings(path: Optional[Path] = None) -> AppSettings:
    """Load the settings file into an *AppSettings* object."""
    app_settings = AppSettings(**_load_yaml(path or settings_path()))
    logger.info(
        "Settings loaded (server=%s:%s, history=%d, queue=%d, poll_timeout=%ss)",
        app_settings.server.host,
        app_settings.server.port,
        app_settings.room.history_size,
        app_settings.room.queue_size,
        app_settings.room.poll_timeout_seconds,
    )
    return app_settings


@lru_cache(maxsize=1)
def get_config() -> AppSettings:
    """Return the process-wide settings, loading them on first use."""
    return load_settings()
