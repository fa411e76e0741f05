"""Pairing registry: issues pairing codes and redeems them for sessions."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from pairgate.config import PairingConfig
from pairgate.crypto import generate_code, generate_id, secrets_equal
from pairgate.errors import (
    PairingCodeExpired,
    PairingCodeInvalid,
    PairingRateLimited,
    SessionLimitReached,
)
from pairgate.formatting import mask_secret, utc_now
from pairgate.pairing.code import PairingCode, PairingState, normalize_code
from pairgate.pairing.rate_limiter import RateLimiter
from pairgate.sessions.models import Session
from pairgate.sessions.store import SessionStore

logger = logging.getLogger(__name__)

CodeIssuedCallback = Callable[[PairingCode], None]


@dataclass(frozen=True)
class InitiateResult:
    """Result of starting a pairing."""

    code: str
    correlation_id: str
    expires_in: int  # seconds


class PairingRegistry:
    """Holds outstanding pairing codes and turns a valid one into a session.

    Codes live only in memory. A code is deleted when it is redeemed or
    found expired, so it can never be used twice.
    """

    def __init__(
        self,
        store: SessionStore,
        limiter: RateLimiter,
        config: Optional[PairingConfig] = None,
        on_code_issued: Optional[CodeIssuedCallback] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize pairing registry.

        Args:
            store: Session store that receives redeemed pairings.
            limiter: Rate limiter gating initiate() per origin address.
            config: Pairing settings. Defaults to PairingConfig().
            on_code_issued: Callback that shows a new code to the operator.
            clock: Time source. Defaults to the current UTC time.
        """
        self._store = store
        self._limiter = limiter
        self._config = config or PairingConfig()
        self._on_code_issued = on_code_issued
        self._clock = clock or utc_now

        self._codes: Dict[str, PairingCode] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._codes)

    async def initiate(
        self,
        device_name: Optional[str] = None,
        origin_address: Optional[str] = None,
    ) -> InitiateResult:
        """Issue a new pairing code.

        Args:
            device_name: Name the client wants for its session.
            origin_address: Client address; rate limited when given.

        Returns:
            InitiateResult with code, correlation id and lifetime.

        Raises:
            PairingRateLimited: If origin_address has used up its attempts.
        """
        logger.debug(f"Initiating pairing request (device={device_name!r})")

        if origin_address is not None and not self._limiter.check_and_consume(
            origin_address
        ):
            logger.warning(f"Rate limit exceeded for pairing from {origin_address}")
            raise PairingRateLimited()

        now = self._clock()
        expiry = self._config.code_expiry_seconds

        async with self._lock:
            code = generate_code(self._config.code_length)
            while code in self._codes:
                code = generate_code(self._config.code_length)

            pairing = PairingCode(
                code=code,
                correlation_id=generate_id(),
                created_at=now,
                expires_at=now + timedelta(seconds=expiry),
                device_name=device_name,
                origin_address=origin_address,
            )
            self._codes[code] = pairing

        logger.info(
            f"Pairing code generated: {mask_secret(code)} "
            f"(session {pairing.correlation_id[:8]}..., expires in {expiry}s)"
        )

        if self._on_code_issued is not None:
            try:
                self._on_code_issued(pairing)
            except Exception as e:
                logger.error(f"Failed to announce pairing code: {e}")

        return InitiateResult(
            code=code,
            correlation_id=pairing.correlation_id,
            expires_in=expiry,
        )

    async def complete(
        self,
        code: str,
        correlation_id: str,
        origin_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        device_name: Optional[str] = None,
    ) -> Session:
        """Redeem a pairing code for a new session.

        The device name and origin address recorded at initiation are used
        when the caller does not supply its own.

        Args:
            code: Code as typed by the user (case-insensitive).
            correlation_id: Identifier returned by initiate().
            origin_address: Client address.
            user_agent: Client agent string.
            device_name: Overrides the name given at initiation.

        Returns:
            The new session, including its token.

        Raises:
            PairingCodeInvalid: If the code is unknown or the correlation id
                does not match.
            PairingCodeExpired: If the code has expired (it is deleted).
            SessionLimitReached: If the session store is full. The code
                stays valid.
            StorageError: If the new session could not be persisted.
        """
        normalized = normalize_code(code)
        logger.debug(f"Attempting to complete pairing: {mask_secret(normalized)}")

        now = self._clock()

        async with self._lock:
            pairing = self._codes.get(normalized)
            if pairing is None or not secrets_equal(
                pairing.correlation_id, correlation_id or ""
            ):
                logger.warning(f"Invalid pairing code: {mask_secret(normalized)}")
                raise PairingCodeInvalid()

            if pairing.is_expired(now):
                del self._codes[normalized]
                pairing.transition_to(PairingState.EXPIRED)
                logger.info(f"Pairing code expired: {mask_secret(normalized)}")
                raise PairingCodeExpired()

            # Consume before creating the session so no concurrent call
            # can redeem the same code.
            del self._codes[normalized]

        try:
            session = await self._store.create(
                device_name=device_name or pairing.device_name,
                origin_address=origin_address or pairing.origin_address,
                user_agent=user_agent,
                session_id=pairing.correlation_id,
            )
        except SessionLimitReached:
            async with self._lock:
                self._codes.setdefault(normalized, pairing)
            raise

        pairing.transition_to(PairingState.CONSUMED)
        logger.info(f"Pairing completed for session {session.id[:8]}...")
        return session

    async def purge_expired(self) -> int:
        """Delete every expired code.

        Returns:
            Number of codes removed.
        """
        now = self._clock()
        async with self._lock:
            expired = [c for c, p in self._codes.items() if p.is_expired(now)]
            for code in expired:
                self._codes.pop(code).transition_to(PairingState.EXPIRED)

        for code in expired:
            logger.info(f"Cleaned up expired pairing code: {mask_secret(code)}")
        return len(expired)
