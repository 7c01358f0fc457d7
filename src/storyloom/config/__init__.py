"""Storyloom configuration module."""

from __future__ import annotations

from typing import Any

from storyloom.config.logging import configure_logging
from storyloom.config.logging import get_logger as _get_logger
from storyloom.config.settings import (
    StoryloomSettings,
    clear_settings_cache,
    get_settings,
    get_settings_for_cli,
    set_settings,
)
from storyloom.config.settings import (
    reset_settings as _reset_settings,
)

__all__ = [
    "StoryloomSettings",
    "clear_settings_cache",
    "configure_logging",
    "get_logger",
    "get_settings",
    "get_settings_for_cli",
    "reset_settings",
    "set_settings",
]

_logging_initialized = False
_logger_cache: dict[str, Any] = {}


def _ensure_logging_configured() -> None:
    """Configure logging from the global settings on first use."""
    global _logging_initialized
    if not _logging_initialized:
        configure_logging(get_settings())
        _logging_initialized = True


def get_logger(name: str) -> Any:
    """Get a configured logger instance.

    Loggers are cached per name so hot import loops skip the structlog lookup.

    Args:
        name: Logger name (usually __name__).

    Returns:
        Configured structlog logger.
    """
    if name in _logger_cache:
        return _logger_cache[name]

    _ensure_logging_configured()

    logger = _get_logger(name)
    _logger_cache[name] = logger
    return logger


def reset_settings() -> None:
    """Reset settings and clear the logger cache."""
    global _logging_initialized
    _reset_settings()
    _logging_initialized = False
    _logger_cache.clear()
