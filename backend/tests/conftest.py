"""Shared test fixtures and configuration for backend tests."""
import pytest
from fastapi.testclient import TestClient

from app.chat.room import Room
from app.config import AppSettings, RoomSettings
from app.main import create_app


@pytest.fixture
def settings():
    """Settings with short timings so long-polls finish quickly."""
    return AppSettings(
        room=RoomSettings(
            poll_timeout_seconds=1.0,
            disconnect_check_seconds=0.05,
        )
    )


@pytest.fixture
def api_client(settings):
    """Provide a TestClient for a fresh app, with its lifespan running."""
    with TestClient(create_app(settings)) as client:
        yield client


@pytest.fixture
def room():
    """A room with the default sizes and a short poll timeout."""
    return Room(poll_timeout=1.0)
