"""Logging setup for the GameStream host.

Every module logs through a child of the ``gamestream`` logger, so one
call here routes pairing, identity and CLI messages to the same place.
Pairing code logs truncated client ids only, never keys or secrets.
"""

import logging
from pathlib import Path

from gamestream.config import Config

PACKAGE_LOGGER = "gamestream"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_logger: logging.Logger | None = None


def _resolve_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging(config: Config, level: str | None = None) -> logging.Logger:
    """Configure the package logger once.

    Args:
        config: Configuration with log level and optional log file.
        level: Level name overriding config.log_level.

    Returns:
        The ``gamestream`` logger. Later calls return it unchanged.
    """
    global _logger

    if _logger is not None:
        return _logger

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(_resolve_level(level or config.log_level))
    logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if config.log_file:
        log_path = Path(config.log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.propagate = False

    _logger = logger
    return logger


def reset_logging() -> None:
    """Close handlers and forget the configured logger. Used by tests."""
    global _logger
    if _logger is not None:
        for handler in _logger.handlers:
            handler.close()
        _logger.handlers.clear()
        _logger = None
