"""Single-writer lock on the data directory.

Only one process may rewrite the sessions file at a time. A running
PairingService holds the lock for its whole lifetime; the CLI takes it
briefly before revoking and refuses to write while a service holds it.
"""

import fcntl
import os
from pathlib import Path

from pairgate.errors import DataDirLocked


class DataDirLock:
    """Exclusive fcntl lock on ``<data_dir>/pairgate.lock``.

    The lock file records the holder's PID for error messages. The kernel
    drops the lock when the holder exits, so a crashed process never
    leaves a stale lock behind.

    Usage:
        with DataDirLock(config.lock_file):
            # sole writer of the sessions file
    """

    def __init__(self, lock_file: Path):
        self._lock_file = Path(lock_file).expanduser()
        self._fd: int | None = None

    @property
    def path(self) -> Path:
        """Path to the lock file."""
        return self._lock_file

    def is_held(self) -> bool:
        """Whether this instance holds the lock."""
        return self._fd is not None

    def acquire(self) -> None:
        """Take the lock without blocking.

        Raises:
            DataDirLocked: If another holder has the lock.
        """
        if self._fd is not None:
            return

        self._lock_file.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(str(self._lock_file), os.O_RDWR | os.O_CREAT, 0o600)

        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError:
            os.close(fd)
            raise DataDirLocked(pid=self.get_owner_pid())

        os.ftruncate(fd, 0)
        os.write(fd, f"{os.getpid()}\n".encode())
        self._fd = fd

    def release(self) -> None:
        """Release the lock. Safe to call when not held.

        The lock file stays in place so every process locks the same inode.
        """
        if self._fd is None:
            return
        fd, self._fd = self._fd, None
        os.ftruncate(fd, 0)
        fcntl.flock(fd, fcntl.LOCK_UN)
        os.close(fd)

    def get_owner_pid(self) -> int | None:
        """PID recorded in the lock file, or None."""
        try:
            return int(self._lock_file.read_text().strip())
        except (FileNotFoundError, ValueError, OSError):
            return None

    def __enter__(self) -> "DataDirLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()
