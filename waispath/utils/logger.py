"""Centralised Loguru logger shared by every engine component."""
from __future__ import annotations

import sys

from loguru import logger

_DEFAULT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)


def configure_logging(level: str = "INFO") -> None:
    """Replace the default sink with one honouring the configured level.

    Called by entry points once the YAML configuration has been read. Library
    code never calls it, so embedding applications keep control of their sinks.
    """

    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=_DEFAULT_FORMAT)
    logger.debug("Logging configured at level {}", level.upper())


__all__ = ["configure_logging", "logger"]
