"""Periodic sweep of expired pairing codes, sessions and rate limit windows."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from pairgate.errors import StorageError
from pairgate.pairing.rate_limiter import RateLimiter
from pairgate.pairing.registry import PairingRegistry
from pairgate.sessions.store import SessionStore

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    """Counts removed by one sweep."""

    codes: int = 0
    sessions: int = 0
    windows: int = 0


class CleanupScheduler:
    """Runs a cleanup sweep every ``interval`` seconds.

    Each step takes only the lock of the component it cleans, so request
    handling is never blocked for longer than that step.
    """

    def __init__(
        self,
        registry: PairingRegistry,
        store: SessionStore,
        limiter: RateLimiter,
        interval: float = 60.0,
    ):
        """Initialize cleanup scheduler.

        Args:
            registry: Pairing registry to purge expired codes from.
            store: Session store to purge expired sessions from.
            limiter: Rate limiter to purge stale windows from.
            interval: Seconds between sweeps.
        """
        self._registry = registry
        self._store = store
        self._limiter = limiter
        self._interval = interval
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def interval(self) -> float:
        """Seconds between sweeps."""
        return self._interval

    @property
    def is_running(self) -> bool:
        """Whether the periodic sweep is active."""
        return self._running

    async def start(self) -> None:
        """Start the periodic sweep."""
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._sweep_loop())
        logger.info(f"Cleanup scheduler started (interval={self._interval}s)")

    async def stop(self) -> None:
        """Stop the periodic sweep."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Cleanup scheduler stopped")

    async def sweep_now(self) -> SweepResult:
        """Run one sweep immediately.

        A failing step is logged and does not prevent the others.

        Returns:
            Counts of removed codes, sessions and windows.
        """
        result = SweepResult()

        result.codes = await self._registry.purge_expired()

        try:
            result.sessions = await self._store.purge_expired()
        except StorageError as e:
            logger.error(f"Failed to save sessions after cleanup: {e}")

        result.windows = self._limiter.purge_expired()

        if result.codes or result.sessions or result.windows:
            logger.debug(
                f"Sweep removed {result.codes} codes, {result.sessions} sessions, "
                f"{result.windows} rate limit windows"
            )
        return result

    async def _sweep_loop(self) -> None:
        """Periodically sweep expired state."""
        while self._running:
            await asyncio.sleep(self._interval)
            if not self._running:
                break
            try:
                await self.sweep_now()
            except Exception as e:
                logger.error(f"Cleanup sweep failed: {e}")
