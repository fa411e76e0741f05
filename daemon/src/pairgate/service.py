"""Pairing service wires the pairing components together.

Builds the rate limiter, pairing registry, session store, session guard
and cleanup scheduler from one Config, owns the scheduler lifecycle, and
exposes the operations a transport adapter calls.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Optional

from pairgate.cleanup import CleanupScheduler, SweepResult
from pairgate.config import Config
from pairgate.formatting import utc_now
from pairgate.guard import SessionGuard
from pairgate.lock import DataDirLock
from pairgate.pairing.announcer import CodeAnnouncer
from pairgate.pairing.rate_limiter import RateLimiter
from pairgate.pairing.registry import CodeIssuedCallback, InitiateResult, PairingRegistry
from pairgate.sessions.models import Session
from pairgate.sessions.persistence import SessionPersistence
from pairgate.sessions.store import SessionStore

logger = logging.getLogger(__name__)


class PairingService:
    """Device pairing and session token service.

    Usage:
        service = PairingService(config)
        await service.start()

        result = await service.initiate("phone", origin_address="10.0.0.5")
        session = await service.complete(code, result.correlation_id)
        context = await service.guard.authenticate(f"Bearer {session.token}")

        await service.stop()
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        persistence: Optional[SessionPersistence] = None,
        on_code_issued: Optional[CodeIssuedCallback] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize pairing service.

        Args:
            config: Configuration. Defaults to Config().
            persistence: Session storage. Defaults to config.sessions_file.
            on_code_issued: Out-of-band code display. Defaults to a console
                CodeAnnouncer.
            clock: Time source shared by all components.
        """
        self.config = config or Config()
        clock = clock or utc_now

        if persistence is None:
            persistence = SessionPersistence(self.config.sessions_file)
        if on_code_issued is None:
            on_code_issued = CodeAnnouncer(
                show_qr=self.config.pairing.show_qr, clock=clock
            )

        self.limiter = RateLimiter(
            max_attempts=self.config.pairing.max_attempts_per_window,
            window_seconds=self.config.pairing.rate_limit_window_seconds,
            clock=clock,
        )
        self.store = SessionStore(persistence, self.config.sessions, clock=clock)
        self.registry = PairingRegistry(
            self.store,
            self.limiter,
            self.config.pairing,
            on_code_issued=on_code_issued,
            clock=clock,
        )
        self.guard = SessionGuard(
            self.store,
            origin_binding=self.config.sessions.origin_binding,
            user_agent_binding=self.config.sessions.user_agent_binding,
        )
        self.scheduler = CleanupScheduler(
            self.registry,
            self.store,
            self.limiter,
            interval=self.config.cleanup.interval_seconds,
        )
        self.lock = DataDirLock(self.config.lock_file)
        self._started = False

    @property
    def is_running(self) -> bool:
        """Whether start() has completed and stop() has not been called."""
        return self._started

    async def start(self) -> None:
        """Take the data directory lock, load stored sessions and start the sweep.

        Raises:
            DataDirLocked: If another process is writing the sessions file.
        """
        if self._started:
            return

        self.lock.acquire()
        try:
            await self.store.load()
        except BaseException:
            self.lock.release()
            raise
        await self.scheduler.start()
        self._started = True
        logger.info(
            f"Pairing service started (code length {self.config.pairing.code_length}, "
            f"code expiry {self.config.pairing.code_expiry_seconds}s)"
        )

    async def stop(self) -> None:
        """Stop the cleanup sweep and release the data directory lock."""
        await self.scheduler.stop()
        self.lock.release()
        self._started = False
        logger.info("Pairing service stopped")

    async def initiate(
        self,
        device_name: Optional[str] = None,
        origin_address: Optional[str] = None,
    ) -> InitiateResult:
        """Issue a pairing code. See PairingRegistry.initiate()."""
        return await self.registry.initiate(device_name, origin_address)

    async def complete(
        self,
        code: str,
        correlation_id: str,
        origin_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        device_name: Optional[str] = None,
    ) -> Session:
        """Redeem a pairing code. See PairingRegistry.complete()."""
        return await self.registry.complete(
            code,
            correlation_id,
            origin_address=origin_address,
            user_agent=user_agent,
            device_name=device_name,
        )

    async def validate(self, token: str) -> Optional[Session]:
        """Validate a session token. Never raises."""
        return await self.store.validate(token)

    async def list_sessions(self) -> list[Session]:
        """List live sessions."""
        return await self.store.all()

    async def get_session(self, session_id: str) -> Optional[Session]:
        """Get a live session by ID."""
        return await self.store.get(session_id)

    async def revoke(self, session_id: str) -> bool:
        """Revoke one session."""
        return await self.store.revoke(session_id)

    async def revoke_all(self) -> int:
        """Revoke every session."""
        return await self.store.revoke_all()

    async def sweep(self) -> SweepResult:
        """Run one cleanup sweep now."""
        return await self.scheduler.sweep_now()

    def status(self) -> dict[str, Any]:
        """Pairing availability and counters."""
        return {
            "pairingEnabled": True,
            "codeLength": self.config.pairing.code_length,
            "codeExpiry": self.config.pairing.code_expiry_seconds,
            "pendingCodes": len(self.registry),
            "sessions": len(self.store),
            "maxSessions": self.store.max_count,
        }
