"""Timestamp and display helpers."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_iso(ts: datetime) -> str:
    """Format a datetime as fixed-width ISO 8601 UTC with a 'Z' suffix.

    Millisecond precision keeps every value the same width, so the
    strings sort in time order.

    Examples:
        >>> to_iso(datetime(2024, 1, 1, tzinfo=timezone.utc))
        "2024-01-01T00:00:00.000Z"
    """
    return (
        ts.astimezone(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def from_iso(value: str) -> datetime:
    """Parse an ISO 8601 timestamp (with or without 'Z' suffix) as UTC."""
    ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def mask_secret(value: str | None, visible: int = 3) -> str:
    """Mask a secret for logs, keeping only a short prefix.

    Examples:
        >>> mask_secret("A7K9M2")
        "A7K***"
    """
    if not value:
        return "***"
    return value[:visible] + "***"


def format_time_ago(ts: datetime | None, now: datetime | None = None) -> str:
    """Format a timestamp as relative time (e.g., '2 hours ago').

    Args:
        ts: Timestamp, or None.
        now: Reference time. Defaults to the current UTC time.

    Returns:
        Human-readable relative time string like "2 hours ago" or "Never".
    """
    if ts is None:
        return "Never"

    now = now or utc_now()
    seconds = (now - ts).total_seconds()

    if seconds < 60:
        return "Just now"
    elif seconds < 3600:
        minutes = int(seconds / 60)
        return f"{minutes} minute{'s' if minutes != 1 else ''} ago"
    elif seconds < 86400:
        hours = int(seconds / 3600)
        return f"{hours} hour{'s' if hours != 1 else ''} ago"
    else:
        days = int(seconds / 86400)
        return f"{days} day{'s' if days != 1 else ''} ago"


def format_time_until(ts: datetime, now: datetime | None = None) -> str:
    """Format a future timestamp as remaining time (e.g., 'in 3 days')."""
    now = now or utc_now()
    seconds = (ts - now).total_seconds()

    if seconds <= 0:
        return "Expired"
    elif seconds < 3600:
        minutes = max(1, int(seconds / 60))
        return f"in {minutes} minute{'s' if minutes != 1 else ''}"
    elif seconds < 86400:
        hours = int(seconds / 3600)
        return f"in {hours} hour{'s' if hours != 1 else ''}"
    else:
        days = int(seconds / 86400)
        return f"in {days} day{'s' if days != 1 else ''}"
