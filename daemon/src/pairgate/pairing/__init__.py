"""Pairing module for pairgate.

Provides pairing code functionality including:
- Pairing code state machine
- Per-origin rate limiting
- Code issue and redemption
- Operator console announcements
"""

from .announcer import CodeAnnouncer
from .code import PairingCode, PairingState
from .rate_limiter import RateLimiter, RateLimitWindow
from .registry import InitiateResult, PairingRegistry

__all__ = [
    "CodeAnnouncer",
    "InitiateResult",
    "PairingCode",
    "PairingRegistry",
    "PairingState",
    "RateLimitWindow",
    "RateLimiter",
]
