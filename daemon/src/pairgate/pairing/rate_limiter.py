"""Fixed-window rate limiter for pairing initiation."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from pairgate.formatting import utc_now

logger = logging.getLogger(__name__)


@dataclass
class RateLimitWindow:
    """Attempt counter for one origin address."""

    origin_address: str
    attempts: int
    reset_at: datetime


class RateLimiter:
    """Fixed window rate limiter keyed by origin address.

    The first attempt opens a window of ``window_seconds``; attempts
    within that window are allowed until ``max_attempts`` have been
    counted. Stale windows are not dropped here but by the cleanup sweep
    via purge_expired().

    None of the methods suspend, so each call is atomic on the event loop.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        window_seconds: float = 60,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize rate limiter.

        Args:
            max_attempts: Maximum attempts allowed per window.
            window_seconds: Window size in seconds.
            clock: Time source. Defaults to the current UTC time.
        """
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self._clock = clock or utc_now
        self.windows: Dict[str, RateLimitWindow] = {}

    def check_and_consume(self, origin_address: str) -> bool:
        """Count an attempt and report whether it is allowed.

        Args:
            origin_address: Rate limit key (client IP).

        Returns:
            True if the attempt is allowed, False if rate limited.
        """
        now = self._clock()
        window = self.windows.get(origin_address)

        if window is None or window.reset_at < now:
            self.windows[origin_address] = RateLimitWindow(
                origin_address=origin_address,
                attempts=1,
                reset_at=now + timedelta(seconds=self.window_seconds),
            )
            return True

        if window.attempts >= self.max_attempts:
            return False

        window.attempts += 1
        return True

    def purge_expired(self) -> int:
        """Drop windows whose reset time has passed.

        Returns:
            Number of windows removed.
        """
        now = self._clock()
        stale = [key for key, w in self.windows.items() if w.reset_at < now]
        for key in stale:
            del self.windows[key]
        if stale:
            logger.debug(f"Purged {len(stale)} rate limit windows")
        return len(stale)

    def __len__(self) -> int:
        return len(self.windows)
