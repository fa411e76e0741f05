"""pairgate - device pairing codes and session tokens."""

__version__ = "0.1.0"
