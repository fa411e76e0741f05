"""Session record."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

from pairgate.formatting import from_iso, to_iso

DEFAULT_DEVICE_NAME = "Unknown Device"


@dataclass
class Session:
    """A paired device session.

    Attributes:
        id: Session identifier (the correlation id issued at initiation).
        token: Secret bearer token. Never logged or shown in full.
        device_name: Human-readable device name.
        created_at: When the session was created.
        last_used_at: When the token was last validated.
        expires_at: When the token stops being accepted.
        origin_address: Network address recorded at creation.
        user_agent: Client agent string recorded at creation.
    """

    id: str
    token: str
    device_name: str
    created_at: datetime
    last_used_at: datetime
    expires_at: datetime
    origin_address: Optional[str] = None
    user_agent: Optional[str] = None

    def __repr__(self) -> str:
        return (
            f"Session(id={self.id[:8]}..., device_name={self.device_name!r}, "
            f"expires_at={to_iso(self.expires_at)})"
        )

    def is_expired(self, now: datetime) -> bool:
        """Expired strictly after expires_at."""
        return self.expires_at < now

    def touch(self, now: datetime, extend_seconds: Optional[float] = None) -> None:
        """Record a successful use.

        last_used_at never moves backwards.

        Args:
            now: Current time.
            extend_seconds: If given, slide expiry to now + extend_seconds.
        """
        if now > self.last_used_at:
            self.last_used_at = now
        if extend_seconds is not None:
            self.expires_at = now + timedelta(seconds=extend_seconds)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        d: dict[str, Any] = {
            "id": self.id,
            "token": self.token,
            "deviceName": self.device_name,
            "createdAt": to_iso(self.created_at),
            "lastUsedAt": to_iso(self.last_used_at),
            "expiresAt": to_iso(self.expires_at),
        }
        if self.origin_address is not None:
            d["originAddress"] = self.origin_address
        if self.user_agent is not None:
            d["userAgent"] = self.user_agent
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "Session":
        """Create from dictionary.

        Raises:
            KeyError, TypeError, ValueError: If the record is malformed.
        """
        return cls(
            id=d["id"],
            token=d["token"],
            device_name=d.get("deviceName") or DEFAULT_DEVICE_NAME,
            created_at=from_iso(d["createdAt"]),
            last_used_at=from_iso(d.get("lastUsedAt") or d["createdAt"]),
            expires_at=from_iso(d["expiresAt"]),
            origin_address=d.get("originAddress"),
            user_agent=d.get("userAgent"),
        )

    def to_public_dict(self, current_id: Optional[str] = None) -> dict[str, Any]:
        """Wire view without the token.

        Args:
            current_id: Session id of the caller, flagged as ``current``.
        """
        return {
            "id": self.id,
            "deviceName": self.device_name,
            "createdAt": to_iso(self.created_at),
            "lastUsedAt": to_iso(self.last_used_at),
            "expiresAt": to_iso(self.expires_at),
            "current": self.id == current_id,
        }
