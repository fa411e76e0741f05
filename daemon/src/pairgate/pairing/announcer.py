"""Operator console announcements for new pairing codes.

The pairing code is the shared secret a human relays to the client, so it
has to reach the operator through a channel other than the API response.
CodeAnnouncer prints it to the console, optionally as a QR code.
"""

import io
from datetime import datetime
from typing import Callable, Optional

import click
import qrcode
from qrcode.main import QRCode

from pairgate.formatting import utc_now
from pairgate.pairing.code import PairingCode


class CodeAnnouncer:
    """Print pairing codes to the operator console.

    Usage:
        announcer = CodeAnnouncer(show_qr=True)
        registry = PairingRegistry(..., on_code_issued=announcer)
    """

    def __init__(
        self,
        show_qr: bool = False,
        echo: Optional[Callable[[str], None]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize announcer.

        Args:
            show_qr: Also render the code as a terminal QR code.
            echo: Output function. Defaults to click.echo.
            clock: Time source used for the remaining lifetime.
        """
        self.show_qr = show_qr
        self._echo = echo or click.echo
        self._clock = clock or utc_now

    def __call__(self, pairing: PairingCode) -> None:
        self.announce(pairing)

    def announce(self, pairing: PairingCode) -> None:
        """Display a freshly issued pairing code."""
        lines = [""]
        if pairing.device_name:
            lines.append(f"Pairing request from: {pairing.device_name}")
        lines.append(f"Pairing Code: {pairing.code}")
        lines.append(f"Expires in: {pairing.expires_in(self._clock())} seconds")
        lines.append("")

        if self.show_qr:
            lines.insert(1, to_terminal_qr(pairing.code))

        self._echo("\n".join(lines))


def _create_qr(data: str) -> QRCode:
    """Create QR code object.

    Returns:
        QRCode instance with the given data.
    """
    qr = qrcode.QRCode(
        version=None,  # Auto-size
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=10,
        border=4,
    )
    qr.add_data(data)
    qr.make(fit=True)
    return qr


def to_terminal_qr(data: str) -> str:
    """Render data as ASCII art for terminal display.

    Returns:
        String with QR code using Unicode block characters.
    """
    qr = _create_qr(data)

    output = io.StringIO()
    qr.print_ascii(out=output, invert=True)
    return output.getvalue()
