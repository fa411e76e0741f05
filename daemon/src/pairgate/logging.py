"""Logging for pairgate.

Everything under the ``pairgate`` logger goes to the console and, when
configured, to a log file. Both handlers pass records through
TokenRedactor so a bearer token that ends up in a message (for example
inside an exception string) is never written out.
"""

import logging
import re
from pathlib import Path

from pairgate.config import Config

LOGGER_NAME = "pairgate"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
REDACTED = "[redacted]"

# Session ids are 32 hex chars and stay readable; tokens are longer.
_TOKEN_RE = re.compile(r"\b[0-9a-f]{40,}\b")

_logger: logging.Logger | None = None


class TokenRedactor(logging.Filter):
    """Replaces long hex runs (session tokens) in log messages."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = _TOKEN_RE.sub(REDACTED, message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def _make_handler(handler: logging.Handler) -> logging.Handler:
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    handler.addFilter(TokenRedactor())
    return handler


def setup_logging(config: Config) -> logging.Logger:
    """Configure the pairgate logger once.

    Later calls return the already configured logger unchanged, so the CLI
    and an embedding host can both call this safely.

    Args:
        config: Supplies log_level and log_file.

    Returns:
        The ``pairgate`` logger.
    """
    global _logger

    if _logger is not None:
        return _logger

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, config.log_level.upper(), logging.INFO))
    logger.handlers.clear()

    if config.log_file:
        log_path = Path(config.log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.addHandler(_make_handler(logging.FileHandler(log_path)))

    logger.addHandler(_make_handler(logging.StreamHandler()))
    logger.propagate = False

    _logger = logger
    return logger


def reset_logging() -> None:
    """Close handlers and forget the configured logger. Used for testing."""
    global _logger
    if _logger is None:
        return
    for handler in _logger.handlers:
        handler.close()
    _logger.handlers.clear()
    _logger.propagate = True
    _logger = None
