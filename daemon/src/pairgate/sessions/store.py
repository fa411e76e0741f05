"""Active session store with write-through persistence.

All session state lives in one SessionStore instance. Mutations happen
under an asyncio lock; the resulting snapshot is then written to disk
outside that lock so request handling is not blocked for the duration
of file I/O.

Write ordering:
    Each mutation bumps a version counter and snapshots copies of the
    sessions while still holding the state lock. Snapshots are written
    under a separate write lock, and a snapshot older than the last one
    written is skipped because the newer file already contains it. An
    operation returns only after its snapshot (or a newer one) is on disk.
"""

import asyncio
import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from pairgate.config import SessionConfig
from pairgate.crypto import generate_id, generate_token
from pairgate.errors import SessionExpired, SessionInvalid, SessionLimitReached, StorageError
from pairgate.formatting import utc_now
from pairgate.sessions.models import DEFAULT_DEVICE_NAME, Session
from pairgate.sessions.persistence import SessionPersistence

logger = logging.getLogger(__name__)

_Snapshot = tuple[int, list[Session]]


class SessionStore:
    """Holds active sessions; validates, extends, and revokes them.

    Usage:
        store = SessionStore(SessionPersistence(path), SessionConfig())
        await store.load()

        session = await store.create("phone", origin_address="10.0.0.5")
        assert await store.validate(session.token) is not None
        await store.revoke(session.id)

    Returned sessions are copies; mutating them does not affect the store.
    """

    def __init__(
        self,
        persistence: SessionPersistence,
        config: Optional[SessionConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize the session store.

        Args:
            persistence: Durable storage for the session set.
            config: Session settings. Defaults to SessionConfig().
            clock: Time source. Defaults to the current UTC time.
        """
        self._persistence = persistence
        self._config = config or SessionConfig()
        self._clock = clock or utc_now

        self._sessions: Dict[str, Session] = {}
        self._by_token: Dict[str, str] = {}
        self._lock = asyncio.Lock()
        self._write_lock = asyncio.Lock()
        self._version = 0
        self._saved_version = 0

    @property
    def config(self) -> SessionConfig:
        """Session settings."""
        return self._config

    @property
    def max_count(self) -> int:
        """Maximum number of live sessions."""
        return self._config.max_count

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    async def load(self) -> None:
        """Load sessions from durable storage.

        Missing or corrupt storage leaves the store empty. Sessions that
        expired while the process was down are dropped.
        """
        loaded = await self._persistence.load()
        now = self._clock()

        async with self._lock:
            self._sessions.clear()
            self._by_token.clear()
            for session in loaded:
                self._insert_locked(session)
            removed = self._drop_expired_locked(now)
            snapshot = self._snapshot_locked() if removed else None

        logger.info(f"Loaded {len(self._sessions)} existing sessions")

        if snapshot is not None:
            logger.info(f"Dropped {removed} sessions that expired while offline")
            try:
                await self._persist(snapshot)
            except StorageError as e:
                logger.error(f"Failed to save sessions after load: {e}")

    async def create(
        self,
        device_name: Optional[str],
        origin_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> Session:
        """Create and persist a new session.

        Args:
            device_name: Human-readable device name.
            origin_address: Network address of the client.
            user_agent: Client agent string.
            session_id: Identifier to use. Defaults to a fresh random id.

        Returns:
            The new session, including its token.

        Raises:
            SessionLimitReached: If max_count live sessions already exist.
            StorageError: If the session could not be persisted. The session
                stays active in memory.
        """
        now = self._clock()

        async with self._lock:
            self._drop_expired_locked(now)
            if len(self._sessions) >= self._config.max_count:
                logger.warning(
                    f"Session limit reached ({self._config.max_count}), "
                    "refusing new session"
                )
                raise SessionLimitReached()

            session = Session(
                id=session_id or generate_id(),
                token=generate_token(self._config.token_byte_length),
                device_name=device_name or DEFAULT_DEVICE_NAME,
                created_at=now,
                last_used_at=now,
                expires_at=now + timedelta(seconds=self._config.expiry_seconds),
                origin_address=origin_address,
                user_agent=user_agent,
            )
            self._insert_locked(session)
            snapshot = self._snapshot_locked()
            result = replace(session)

        await self._persist(snapshot)
        logger.info(
            f"New session created: {session.id[:8]}... "
            f"({session.device_name}, expires {session.expires_at.isoformat()})"
        )
        return result

    async def require(self, token: str) -> Session:
        """Look up a live session by token and record the use.

        Updates last_used_at and, with sliding expiry, moves expires_at
        forward. Expired sessions are removed.

        Args:
            token: Bearer token.

        Returns:
            Copy of the session after the update.

        Raises:
            SessionInvalid: If no session has this token.
            SessionExpired: If the session has expired (it is removed).
        """
        if not token:
            raise SessionInvalid()

        now = self._clock()

        async with self._lock:
            session_id = self._by_token.get(token)
            if session_id is None:
                logger.debug("No matching session found for token")
                raise SessionInvalid()

            session = self._sessions[session_id]
            if session.is_expired(now):
                self._remove_locked(session_id)
                snapshot = self._snapshot_locked()
                result = None
            else:
                extend = self._config.expiry_seconds if self._config.sliding_expiry else None
                session.touch(now, extend)
                snapshot = self._snapshot_locked()
                result = replace(session)

        try:
            await self._persist(snapshot)
        except StorageError as e:
            # Memory stays authoritative; the next successful write catches up
            logger.error(f"Failed to save sessions after validation: {e}")

        if result is None:
            logger.info(f"Session expired, removed: {session_id[:8]}...")
            raise SessionExpired()

        logger.debug(f"Session validated: {session_id[:8]}... ({result.device_name})")
        return result

    async def validate(self, token: str) -> Optional[Session]:
        """Look up a live session by token, treating every failure as absent.

        Same effects as require(). Never raises.

        Returns:
            Copy of the session, or None if unknown, revoked or expired.
        """
        try:
            return await self.require(token)
        except SessionInvalid:
            return None

    async def all(self) -> list[Session]:
        """List live sessions, oldest first.

        Expired sessions are swept (and the sweep persisted) first.
        """
        await self.purge_expired()
        async with self._lock:
            return [replace(s) for s in self._ordered_locked()]

    async def get(self, session_id: str) -> Optional[Session]:
        """Get a live session by ID, or None."""
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None or session.is_expired(self._clock()):
                return None
            return replace(session)

    async def revoke(self, session_id: str) -> bool:
        """Revoke a session.

        Returns:
            True if a session was removed, False if not found.

        Raises:
            StorageError: If the removal could not be persisted.
        """
        async with self._lock:
            if session_id not in self._sessions:
                return False
            self._remove_locked(session_id)
            snapshot = self._snapshot_locked()

        await self._persist(snapshot)
        logger.info(f"Session revoked: {session_id[:8]}...")
        return True

    async def revoke_all(self) -> int:
        """Revoke every session.

        Returns:
            Number of sessions removed.

        Raises:
            StorageError: If the removal could not be persisted.
        """
        async with self._lock:
            count = len(self._sessions)
            self._sessions.clear()
            self._by_token.clear()
            snapshot = self._snapshot_locked()

        await self._persist(snapshot)
        logger.info(f"All {count} sessions revoked")
        return count

    async def purge_expired(self) -> int:
        """Remove expired sessions with one combined save.

        Returns:
            Number of sessions removed.

        Raises:
            StorageError: If the removal could not be persisted.
        """
        now = self._clock()
        async with self._lock:
            removed = self._drop_expired_locked(now)
            if not removed:
                return 0
            snapshot = self._snapshot_locked()

        await self._persist(snapshot)
        logger.info(f"Cleaned up {removed} expired sessions")
        return removed

    # Internal helpers. The *_locked methods require self._lock.

    def _insert_locked(self, session: Session) -> None:
        previous = self._sessions.get(session.id)
        if previous is not None:
            self._by_token.pop(previous.token, None)
        self._sessions[session.id] = session
        self._by_token[session.token] = session.id

    def _remove_locked(self, session_id: str) -> None:
        session = self._sessions.pop(session_id)
        self._by_token.pop(session.token, None)

    def _drop_expired_locked(self, now: datetime) -> int:
        expired = [sid for sid, s in self._sessions.items() if s.is_expired(now)]
        for sid in expired:
            self._remove_locked(sid)
        return len(expired)

    def _ordered_locked(self) -> list[Session]:
        return sorted(self._sessions.values(), key=lambda s: s.created_at)

    def _snapshot_locked(self) -> _Snapshot:
        self._version += 1
        return self._version, [replace(s) for s in self._ordered_locked()]

    async def _persist(self, snapshot: _Snapshot) -> None:
        version, sessions = snapshot
        async with self._write_lock:
            if version <= self._saved_version:
                return
            await self._persistence.save(sessions)
            self._saved_version = version
