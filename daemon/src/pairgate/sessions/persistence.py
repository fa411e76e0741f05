"""Session persistence via JSON file."""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any, Callable

from pairgate.errors import StorageError
from pairgate.sessions.models import Session

logger = logging.getLogger(__name__)


class SessionPersistence:
    """Loads and saves the full session set as a JSON array.

    Every save rewrites the whole file. Uses atomic writes with owner-only
    permissions to prevent corruption and leaking tokens.
    """

    def __init__(
        self,
        path: Path | str | None = None,
        file_ops: dict[str, Callable[..., Any]] | None = None,
    ):
        """Initialize persistence.

        Args:
            path: Path to JSON file. Defaults to ~/.config/pairgate/sessions.json.
            file_ops: Injectable file operations for testing.
        """
        if path is None:
            path = Path.home() / ".config" / "pairgate" / "sessions.json"
        self._path = Path(path)

        # Allow injection for testing
        self._file_ops = file_ops or {
            "exists": lambda p: p.exists(),
            "read": lambda p: p.read_text(),
            "write": self._atomic_write,
            "mkdir": lambda p: p.mkdir(parents=True, exist_ok=True),
        }

    @property
    def path(self) -> Path:
        """Path to the session file."""
        return self._path

    def _atomic_write(self, path: Path, content: str) -> None:
        """Write atomically via temp file and rename, mode 600."""
        temp_path = path.with_suffix(f".{os.getpid()}.tmp")
        fd = os.open(temp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        try:
            os.write(fd, content.encode())
        finally:
            os.close(fd)
        os.replace(temp_path, path)

    async def load(self) -> list[Session]:
        """Load sessions from JSON file.

        Returns:
            List of sessions, or empty list if the file is missing or corrupt.
        """
        # Run blocking I/O in thread pool
        return await asyncio.to_thread(self._load_sync)

    def _load_sync(self) -> list[Session]:
        """Synchronous load implementation."""
        if not self._file_ops["exists"](self._path):
            logger.debug(f"No sessions file at {self._path}")
            return []

        try:
            content = self._file_ops["read"](self._path)
            data = json.loads(content)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error(f"Corrupt sessions file, ignoring it: {e}")
            return []
        except OSError as e:
            logger.error(f"Failed to read sessions file: {e}")
            return []

        if not isinstance(data, list):
            logger.error("Sessions file does not contain a list, ignoring it")
            return []

        sessions = []
        for item in data:
            try:
                sessions.append(Session.from_dict(item))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Skipping invalid session entry: {e!r}")

        logger.debug(f"Loaded {len(sessions)} sessions from {self._path}")
        return sessions

    async def save(self, sessions: list[Session]) -> None:
        """Save sessions to JSON file.

        Args:
            sessions: Sessions to save, in file order. Callers pass
                copies that nothing else mutates.

        Raises:
            StorageError: If the file cannot be written.
        """
        await asyncio.to_thread(self._save_sync, sessions)

    def _save_sync(self, sessions: list[Session]) -> None:
        """Synchronous save implementation."""
        content = json.dumps([s.to_dict() for s in sessions], indent=2)

        try:
            self._file_ops["mkdir"](self._path.parent)
            self._file_ops["write"](self._path, content)
        except OSError as e:
            raise StorageError(f"Failed to write sessions file: {e}") from e

        logger.debug(f"Saved {len(sessions)} sessions to {self._path}")
