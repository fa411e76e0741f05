"""Session tokens: model, persistence and store."""

from .models import Session
from .persistence import SessionPersistence
from .store import SessionStore

__all__ = [
    "Session",
    "SessionPersistence",
    "SessionStore",
]
