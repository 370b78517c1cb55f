"""Logging configuration for the Terra alert monitor."""

import logging
import sys

_configured = False

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s - %(message)s"


def configure(level: int | str | None = None) -> None:
    """Configure logging for the application.

    Safe to call multiple times - only configures once. When no level is
    given, LOG_LEVEL from the settings is used.
    """
    global _configured
    if _configured:
        return

    if level is None:
        from terra.lib.config import get_settings

        level = get_settings().log_level

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger("terra")
    root.setLevel(level)
    root.addHandler(handler)

    # Share the handler with uvicorn (child loggers propagate to it)
    uv_log = logging.getLogger("uvicorn")
    uv_log.handlers.clear()
    uv_log.addHandler(handler)

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the 'terra' namespace.

    Args:
        name: Logger name (will be prefixed with 'terra.')

    Returns:
        Configured logger instance.
    """
    return logging.getLogger(f"terra.{name}")
