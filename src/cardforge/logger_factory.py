"""Centralized logger factory so every module logs through the same handlers."""

from __future__ import annotations

import logging

_logging_configured = False
_pending_loggers: dict[str, logging.Logger] = {}


def mark_logging_configured() -> None:
    """Record that configure_logging() has installed the handlers."""
    global _logging_configured
    _logging_configured = True


def is_logging_configured() -> bool:
    """Check if logging has been configured."""
    return _logging_configured


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger that inherits the service-wide handlers.

    Loggers created before configure_logging() runs are remembered so they can
    be wired up once the handlers exist.

    Args:
        name: Logger name (typically ``__name__`` of the calling module)

    Example:
        ```python
        from cardforge.logger_factory import get_logger

        logger = get_logger(__name__)
        logger.info("batch reviewed: batch_id=%s", batch_id)
        ```
    """
    logger = logging.getLogger(name)

    if name != "root":
        # Child loggers propagate to root and own no handlers of their own.
        logger.propagate = True
        logger.handlers.clear()
        if logger.level != logging.NOTSET:
            logger.level = logging.NOTSET

    if not _logging_configured and name not in _pending_loggers:
        _pending_loggers[name] = logger

    return logger


def get_pending_loggers() -> list[str]:
    """Names of loggers requested before configure_logging() was called."""
    return list(_pending_loggers.keys())
