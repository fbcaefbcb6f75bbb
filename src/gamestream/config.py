"""Configuration management for the GameStream host."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import yaml


@dataclass
class PairingConfig:
    """Pairing handshake configuration."""

    attempt_timeout: float = 300.0  # seconds, 5 minutes
    pin_length: int = 4


@dataclass
class IdentityConfig:
    """Host certificate configuration."""

    cert_file: str | None = None
    key_file: str | None = None
    common_name: str = "GameStream Host"
    key_size: int = 2048
    valid_days: int = 7300  # 20 years


@dataclass
class Config:
    """Host configuration."""

    log_level: str = "INFO"
    log_file: str | None = None
    pairing: PairingConfig = field(default_factory=PairingConfig)
    identity: IdentityConfig = field(default_factory=IdentityConfig)


def get_config_path(custom_path: Path | None = None) -> Path:
    """Get the configuration file path.

    Args:
        custom_path: Override path. If None, returns default.

    Returns:
        Path to config file.
    """
    if custom_path is not None:
        return custom_path
    return Path.home() / ".config" / "gamestream" / "config.yaml"


def get_state_dir() -> Path:
    """Directory holding the generated host certificate and key."""
    return Path.home() / ".config" / "gamestream"


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
    """
    config_path = get_config_path(path)
    reader = file_reader or _default_file_reader

    data = reader(config_path)

    if not isinstance(data, dict):
        return Config()

    pairing_data = data.get("pairing") or {}
    pairing_config = PairingConfig(
        attempt_timeout=float(
            pairing_data.get("attempt_timeout", PairingConfig.attempt_timeout)
        ),
        pin_length=int(pairing_data.get("pin_length", PairingConfig.pin_length)),
    )

    identity_data = data.get("identity") or {}
    identity_config = IdentityConfig(
        cert_file=identity_data.get("cert_file", IdentityConfig.cert_file),
        key_file=identity_data.get("key_file", IdentityConfig.key_file),
        common_name=identity_data.get("common_name", IdentityConfig.common_name),
        key_size=int(identity_data.get("key_size", IdentityConfig.key_size)),
        valid_days=int(identity_data.get("valid_days", IdentityConfig.valid_days)),
    )

    return Config(
        log_level=data.get("log_level", Config.log_level),
        log_file=data.get("log_file", Config.log_file),
        pairing=pairing_config,
        identity=identity_config,
    )
