"""Base exceptions for pairgate.

Every error carries a stable machine-readable ``code`` so a transport
adapter can map it to a wire response. Messages are deliberately generic:
they never reveal which part of a code or token failed to match.
"""


class PairgateError(Exception):
    """Base exception for all pairgate errors."""

    code = "INTERNAL_ERROR"
    default_message = "Internal error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        """Human-readable message."""
        return str(self)


class PairingError(PairgateError):
    """Pairing flow error."""

    pass


class PairingCodeInvalid(PairingError):
    """Pairing code unknown or correlation id mismatch."""

    code = "PAIRING_CODE_INVALID"
    default_message = "Invalid pairing code"


class PairingCodeExpired(PairingError):
    """Pairing code outlived its expiry."""

    code = "PAIRING_CODE_EXPIRED"
    default_message = "Pairing code has expired"


class PairingRateLimited(PairingError):
    """Too many pairing attempts from one origin."""

    code = "PAIRING_RATE_LIMITED"
    default_message = "Too many pairing attempts. Please try again later."


class SessionError(PairgateError):
    """Session error."""

    pass


class SessionInvalid(SessionError):
    """Session token unknown, revoked, or failing a binding check."""

    code = "SESSION_INVALID"
    default_message = "Invalid or expired session token"


class SessionExpired(SessionInvalid):
    """Session token outlived its expiry."""

    code = "SESSION_EXPIRED"


class SessionLimitReached(SessionError):
    """Session store is at capacity."""

    code = "SESSION_LIMIT_REACHED"
    default_message = "Maximum number of sessions reached"


class Unauthorized(PairgateError):
    """Bearer credential missing or malformed."""

    code = "UNAUTHORIZED"
    default_message = "Missing or invalid authorization header"


class StorageError(PairgateError):
    """Storage operation error."""

    code = "STORAGE_ERROR"
    default_message = "Storage operation failed"


class DataDirLocked(PairgateError):
    """Another process is the sole writer of the data directory."""

    code = "DATA_DIR_LOCKED"
    default_message = "Data directory is in use by another pairgate process"

    def __init__(self, message: str | None = None, pid: int | None = None) -> None:
        self.pid = pid
        if message is None and pid:
            message = f"Data directory is in use by pairgate process {pid}"
        super().__init__(message)
