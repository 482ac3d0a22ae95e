"""Shared test fixtures and configuration for backend tests."""
import pytest
from fastapi.testclient import TestClient

from roomchat.chat.registry import ChatRegistry
from roomchat.config import AppConfig, StaticSettings
from roomchat.main import create_app

FIXED_TS = 1_700_000_000_000

# Deterministic stand-in for the word-list filter.
BLOCKED_WORDS = {"darn", "heck"}


def fake_is_profane(text: str) -> bool:
    return any(word in BLOCKED_WORDS for word in text.lower().split())


@pytest.fixture
def clock():
    """Clock that always returns the same millisecond timestamp."""
    return lambda: FIXED_TS


@pytest.fixture
def registry():
    return ChatRegistry()


@pytest.fixture
def app(tmp_path, clock):
    """A fresh app with its own registry, fixed clock and fake filter."""
    config = AppConfig(static=StaticSettings(directory=str(tmp_path / "no-static")))
    return create_app(config, clock=clock, profanity_filter=fake_is_profane)


@pytest.fixture
def api_client(app):
    """Provide a TestClient for a freshly built app.

    Entered as a context manager so every WebSocket session shares one
    event loop, as they do under a real server.
    """
    with TestClient(app) as client:
        yield client
