"""Pairing code state machine.

A pairing code is a short-lived, single-use secret relayed by a human
from the operator console to the pairing client.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import Optional


class PairingState(Enum):
    """Pairing code states."""

    PENDING = auto()
    CONSUMED = auto()
    EXPIRED = auto()


_VALID_TRANSITIONS = {
    PairingState.PENDING: {PairingState.CONSUMED, PairingState.EXPIRED},
    PairingState.CONSUMED: set(),
    PairingState.EXPIRED: set(),
}


def normalize_code(code: str | None) -> str:
    """Normalize user input to the stored code form (stripped, uppercase)."""
    return (code or "").strip().upper()


@dataclass
class PairingCode:
    """An outstanding pairing code.

    Attributes:
        code: Uppercase code shown to the operator.
        correlation_id: Identifier the client must echo on completion.
        created_at: When the code was issued.
        expires_at: When the code stops being accepted.
        device_name: Device name supplied at initiation.
        origin_address: Network address that requested the code.
        state: Current state.
    """

    code: str
    correlation_id: str
    created_at: datetime
    expires_at: datetime
    device_name: Optional[str] = None
    origin_address: Optional[str] = None
    state: PairingState = field(default=PairingState.PENDING, compare=False)

    def __repr__(self) -> str:
        return (
            f"PairingCode(correlation_id={self.correlation_id[:8]}..., "
            f"state={self.state.name}, expires_at={self.expires_at.isoformat()})"
        )

    def is_expired(self, now: datetime) -> bool:
        """Expired strictly after expires_at; still valid at that instant."""
        return self.expires_at < now

    def expires_in(self, now: datetime) -> int:
        """Whole seconds until expiry (never negative)."""
        return max(0, int((self.expires_at - now).total_seconds()))

    def transition_to(self, new_state: PairingState) -> None:
        """Transition to a new state with validation.

        Args:
            new_state: Target state.

        Raises:
            ValueError: If transition is not valid from current state.
        """
        if new_state not in _VALID_TRANSITIONS.get(self.state, set()):
            raise ValueError(f"Invalid transition: {self.state} -> {new_state}")

        self.state = new_state
