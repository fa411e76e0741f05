"""Random material for pairing codes, session tokens and identifiers.

This module provides:
- Human-friendly pairing codes
- Session tokens
- Session / correlation identifiers
- Constant-time string comparison

Security notes:
- Uses Python's `secrets` module (the platform CSPRNG) for everything
- Never substitute `random` here
"""

import hmac
import secrets

__all__ = [
    "CODE_ALPHABET",
    "ID_BYTES",
    "generate_code",
    "generate_token",
    "generate_id",
    "secrets_equal",
]

# No 0/O, 1/I: easy to confuse when read aloud or typed
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
ID_BYTES = 16  # 32 hex chars


def generate_code(length: int) -> str:
    """Generate a pairing code.

    Each character is drawn uniformly from CODE_ALPHABET.

    Args:
        length: Number of characters.

    Returns:
        Uppercase code such as "A7K9M2".

    Raises:
        ValueError: If length is less than 1.
    """
    if length < 1:
        raise ValueError("Code length must be at least 1")
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def generate_token(byte_length: int) -> str:
    """Generate a session token.

    Args:
        byte_length: Bytes of entropy (32 recommended).

    Returns:
        Hex string of 2 * byte_length characters.
    """
    return secrets.token_hex(byte_length)


def generate_id() -> str:
    """Generate a 32-hex-char identifier."""
    return secrets.token_hex(ID_BYTES)


def secrets_equal(a: str, b: str) -> bool:
    """Compare two strings in constant time.

    Uses `hmac.compare_digest` on the UTF-8 encodings so that non-ASCII
    input from clients cannot raise.
    """
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))
