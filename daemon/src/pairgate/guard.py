"""Request-time session authentication.

SessionGuard turns a bearer credential into a SessionContext, applying
the optional origin-address and user-agent binding checks. It raises
pairgate errors; choosing a status code is up to the caller.
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from aiohttp import hdrs, web

from pairgate.errors import PairgateError, SessionInvalid, Unauthorized
from pairgate.sessions.store import SessionStore

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "
SESSION_KEY = "session"

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


@dataclass(frozen=True)
class SessionContext:
    """Authenticated session details exposed to request handlers."""

    session_id: str
    device_name: str


class SessionGuard:
    """Validates bearer tokens against the session store."""

    def __init__(
        self,
        store: SessionStore,
        origin_binding: bool = False,
        user_agent_binding: bool = False,
    ):
        """Initialize session guard.

        Args:
            store: Session store used for token lookup.
            origin_binding: Reject tokens used from a different address
                than the one recorded at pairing.
            user_agent_binding: Reject tokens used with a different agent
                string than the one recorded at pairing.
        """
        self._store = store
        self.origin_binding = origin_binding
        self.user_agent_binding = user_agent_binding

    @staticmethod
    def extract_bearer(authorization: Optional[str]) -> str:
        """Extract the token from an Authorization header value.

        Raises:
            Unauthorized: If the header is missing, not a Bearer credential,
                or carries an empty token.
        """
        if not authorization or not authorization.startswith(BEARER_PREFIX):
            raise Unauthorized()
        token = authorization[len(BEARER_PREFIX):].strip()
        if not token:
            raise Unauthorized()
        return token

    async def authenticate(
        self,
        authorization: Optional[str],
        origin_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> SessionContext:
        """Authenticate a request.

        Args:
            authorization: Authorization header value.
            origin_address: Caller's current network address.
            user_agent: Caller's current agent string.

        Returns:
            SessionContext for the authenticated session.

        Raises:
            Unauthorized: If the credential is missing or malformed.
            SessionInvalid: If the token is unknown or a binding check fails.
            SessionExpired: If the token's session has expired.
        """
        token = self.extract_bearer(authorization)
        session = await self._store.require(token)

        if self.origin_binding and session.origin_address:
            if origin_address != session.origin_address:
                logger.warning(f"Session address mismatch: {session.id[:8]}...")
                raise SessionInvalid()

        if self.user_agent_binding and session.user_agent:
            if user_agent != session.user_agent:
                logger.warning(f"Session user agent mismatch: {session.id[:8]}...")
                raise SessionInvalid()

        return SessionContext(session_id=session.id, device_name=session.device_name)

    async def authenticate_optional(
        self,
        authorization: Optional[str],
        origin_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Optional[SessionContext]:
        """Authenticate if possible; never fails.

        Returns:
            SessionContext, or None for absent or invalid credentials.
        """
        if not authorization:
            return None
        try:
            return await self.authenticate(authorization, origin_address, user_agent)
        except PairgateError:
            return None

    async def authenticate_request(self, request: web.Request) -> SessionContext:
        """Authenticate an aiohttp request.

        Reads the Authorization and User-Agent headers and the peer address.

        Raises:
            Unauthorized, SessionInvalid, SessionExpired: As authenticate().
        """
        return await self.authenticate(
            request.headers.get(hdrs.AUTHORIZATION),
            origin_address=request.remote,
            user_agent=request.headers.get(hdrs.USER_AGENT),
        )

    async def authenticate_request_optional(
        self, request: web.Request
    ) -> Optional[SessionContext]:
        """Authenticate an aiohttp request if possible; never fails."""
        return await self.authenticate_optional(
            request.headers.get(hdrs.AUTHORIZATION),
            origin_address=request.remote,
            user_agent=request.headers.get(hdrs.USER_AGENT),
        )


def optional_session_middleware(guard: SessionGuard):
    """Create middleware that attaches the caller's session when present.

    Sets ``request["session"]`` to a SessionContext or None and always
    continues to the handler.
    """

    @web.middleware
    async def middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
        request[SESSION_KEY] = await guard.authenticate_request_optional(request)
        return await handler(request)

    return middleware
