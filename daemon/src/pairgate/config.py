"""Configuration management for pairgate."""

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Callable

import yaml


DEFAULT_DATA_DIR = "~/.config/pairgate"
SESSIONS_FILE_NAME = "sessions.json"
LOCK_FILE_NAME = "pairgate.lock"


def _require_positive(section: object) -> None:
    """Reject zero or negative numeric settings."""
    for f in fields(section):
        value = getattr(section, f.name)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            continue
        if value <= 0:
            raise ValueError(
                f"{type(section).__name__}.{f.name} must be positive, got {value}"
            )


@dataclass
class PairingConfig:
    """Pairing code configuration."""

    code_length: int = 6
    code_expiry_seconds: int = 300
    max_attempts_per_window: int = 3
    rate_limit_window_seconds: int = 60
    show_qr: bool = False  # Also render the code as a terminal QR code

    def __post_init__(self):
        _require_positive(self)


@dataclass
class SessionConfig:
    """Session token configuration."""

    token_byte_length: int = 32
    expiry_seconds: int = 2_592_000  # 30 days
    max_count: int = 10
    sliding_expiry: bool = False
    origin_binding: bool = False
    user_agent_binding: bool = False

    def __post_init__(self):
        _require_positive(self)


@dataclass
class CleanupConfig:
    """Background sweep configuration."""

    interval_seconds: float = 60.0

    def __post_init__(self):
        _require_positive(self)


@dataclass
class Config:
    """pairgate configuration."""

    log_level: str = "INFO"
    log_file: str | None = None
    data_dir: str = DEFAULT_DATA_DIR
    pairing: PairingConfig = field(default_factory=PairingConfig)
    sessions: SessionConfig = field(default_factory=SessionConfig)
    cleanup: CleanupConfig = field(default_factory=CleanupConfig)

    @property
    def sessions_file(self) -> Path:
        """Path of the durable session file."""
        return Path(self.data_dir).expanduser() / SESSIONS_FILE_NAME

    @property
    def lock_file(self) -> Path:
        """Path of the single-writer lock file."""
        return Path(self.data_dir).expanduser() / LOCK_FILE_NAME


def get_config_path(custom_path: Path | None = None) -> Path:
    """Get the configuration file path.

    Args:
        custom_path: Override path. If None, returns default.

    Returns:
        Path to config file.
    """
    if custom_path is not None:
        return custom_path
    return Path.home() / ".config" / "pairgate" / "config.yaml"


def _default_file_reader(path: Path) -> dict[str, Any] | None:
    """Default file reader that loads YAML from disk."""
    if not path.exists():
        return None
    try:
        content = path.read_text()
        if not content.strip():
            return None
        return yaml.safe_load(content)
    except yaml.YAMLError:
        return None


def load_config(
    path: Path | None = None,
    file_reader: Callable[[Path], dict[str, Any] | None] | None = None,
) -> Config:
    """Load configuration from file.

    Args:
        path: Path to config file. If None, uses default path.
        file_reader: Injectable file reader for testing.

    Returns:
        Config object with values from file or defaults.

    Raises:
        ValueError: If a numeric setting is zero or negative.
    """
    config_path = get_config_path(path)
    reader = file_reader or _default_file_reader

    data = reader(config_path)

    if not isinstance(data, dict):
        return Config()

    # Parse pairing config section
    pairing_data = data.get("pairing") or {}
    pairing_config = PairingConfig(
        code_length=pairing_data.get("code_length", PairingConfig.code_length),
        code_expiry_seconds=pairing_data.get(
            "code_expiry_seconds", PairingConfig.code_expiry_seconds
        ),
        max_attempts_per_window=pairing_data.get(
            "max_attempts_per_window", PairingConfig.max_attempts_per_window
        ),
        rate_limit_window_seconds=pairing_data.get(
            "rate_limit_window_seconds", PairingConfig.rate_limit_window_seconds
        ),
        show_qr=pairing_data.get("show_qr", PairingConfig.show_qr),
    )

    # Parse sessions config section
    sessions_data = data.get("sessions") or {}
    sessions_config = SessionConfig(
        token_byte_length=sessions_data.get(
            "token_byte_length", SessionConfig.token_byte_length
        ),
        expiry_seconds=sessions_data.get("expiry_seconds", SessionConfig.expiry_seconds),
        max_count=sessions_data.get("max_count", SessionConfig.max_count),
        sliding_expiry=sessions_data.get("sliding_expiry", SessionConfig.sliding_expiry),
        origin_binding=sessions_data.get("origin_binding", SessionConfig.origin_binding),
        user_agent_binding=sessions_data.get(
            "user_agent_binding", SessionConfig.user_agent_binding
        ),
    )

    # Parse cleanup config section
    cleanup_data = data.get("cleanup") or {}
    cleanup_config = CleanupConfig(
        interval_seconds=cleanup_data.get(
            "interval_seconds", CleanupConfig.interval_seconds
        ),
    )

    return Config(
        log_level=data.get("log_level", Config.log_level),
        log_file=data.get("log_file", Config.log_file),
        data_dir=data.get("data_dir", Config.data_dir),
        pairing=pairing_config,
        sessions=sessions_config,
        cleanup=cleanup_config,
    )
