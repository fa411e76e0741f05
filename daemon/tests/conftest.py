"""Pytest configuration and shared fixtures."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from pairgate.config import SessionConfig
from pairgate.sessions.persistence import SessionPersistence
from pairgate.sessions.store import SessionStore


class FakeClock:
    """Controllable time source."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2025, 1, 27, 10, 30, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture(autouse=True)
def reset_logging_state():
    """Reset logging state before each test."""
    from pairgate.logging import reset_logging

    reset_logging()
    yield
    reset_logging()


@pytest.fixture
def clock() -> FakeClock:
    """Fake clock starting at 2025-01-27 10:30 UTC."""
    return FakeClock()


@pytest.fixture
def sessions_path(tmp_path: Path) -> Path:
    """Path for a temporary sessions file."""
    return tmp_path / "sessions.json"


@pytest.fixture
def session_config() -> SessionConfig:
    """Default session settings (overridable per test module)."""
    return SessionConfig()


@pytest.fixture
def store(sessions_path: Path, session_config: SessionConfig, clock: FakeClock) -> SessionStore:
    """Session store backed by a temporary file."""
    return SessionStore(SessionPersistence(sessions_path), session_config, clock=clock)
