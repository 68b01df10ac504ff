"""Helpers for configuring structured logging across the service."""

from __future__ import annotations

import logging
import sys

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Handlers installed by configure_logging(), reused by configure_logger()
_configured_handlers: list[logging.Handler] = []
_logging_level: int = logging.INFO
# Override noisy third-party loggers (match exact name or dotted prefix)
_LOGGER_LEVEL_OVERRIDES: dict[str, int] = {
    "sqlalchemy.engine": logging.WARNING,
    "sqlalchemy.pool": logging.WARNING,
    "httpx": logging.WARNING,
    "openai": logging.WARNING,
}
_HTTP_CLIENT_LOGGERS = ("urllib3", "requests")


class _NoHTTPLibLogsFilter(logging.Filter):
    """Keep HTTP client chatter out of Loki to avoid feedback loops."""

    def filter(self, record: logging.LogRecord) -> bool:
        return not record.name.startswith(_HTTP_CLIENT_LOGGERS)


def configure_logger(logger: logging.Logger) -> None:
    """
    Apply the configured handlers to a specific logger instance.

    Safe to call repeatedly; existing handlers are replaced.
    """
    if not _configured_handlers:
        return

    logger.handlers.clear()
    for handler in _configured_handlers:
        logger.addHandler(handler)

    level_override: int | None = None
    for name, override in _LOGGER_LEVEL_OVERRIDES.items():
        if logger.name == name or logger.name.startswith(f"{name}."):
            level_override = override
            break

    logger.setLevel(level_override if level_override is not None else _logging_level)

    # Handlers are attached directly, so propagation would duplicate records.
    logger.propagate = False


def _build_loki_handler(
    loki_url: str,
    loki_labels: dict[str, str] | None,
    level: int,
) -> logging.Handler:
    """Create a Loki push handler tagged with the service labels."""
    import socket

    from logging_loki import LokiHandler  # type: ignore[import-not-found]

    labels = dict(loki_labels or {})
    labels.setdefault("host", socket.gethostname())
    labels.setdefault("job", "cardforge")

    # Must happen before the handler exists: an unreachable Loki would otherwise
    # log its own connection errors back into itself.
    for name in _HTTP_CLIENT_LOGGERS:
        client_logger = logging.getLogger(name)
        client_logger.setLevel(logging.WARNING)
        client_logger.propagate = False

    handler = LokiHandler(url=loki_url, tags=labels, version="1", auth=None)
    handler.setLevel(level)
    handler.addFilter(_NoHTTPLibLogsFilter())
    return handler


def configure_logging(
    level: str,
    loki_url: str | None = None,
    loki_labels: dict[str, str] | None = None,
) -> None:
    """
    Configure root logging with the provided level and a consistent format.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        loki_url: Optional Loki push endpoint (e.g. http://loki:3100/loki/api/v1/push)
        loki_labels: Optional stream labels (e.g. {"environment": "production"})
    """
    try:
        resolved_level = getattr(logging, level.upper())
    except AttributeError:
        resolved_level = logging.INFO

    handlers: list[logging.Handler] = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(resolved_level)
    console_handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
    handlers.append(console_handler)

    loki_enabled = False
    if loki_url:
        try:
            handlers.append(_build_loki_handler(loki_url, loki_labels, resolved_level))
            loki_enabled = True
        except ImportError:
            logging.getLogger(__name__).warning(
                "python-logging-loki is not installed. Loki logging disabled. "
                "Install with: pip install 'cardforge[loki]'"
            )
        except Exception:
            logging.getLogger(__name__).exception("Failed to configure Loki handler")

    global _configured_handlers, _logging_level
    _configured_handlers = handlers.copy()
    _logging_level = resolved_level

    root_logger = logging.getLogger()
    root_logger.setLevel(resolved_level)
    root_logger.handlers.clear()
    for handler in handlers:
        root_logger.addHandler(handler)

    logging.captureWarnings(True)

    # Imported late: the factory module reads state written above.
    from .logger_factory import get_logger as _get_logger
    from .logger_factory import get_pending_loggers, mark_logging_configured

    logger = _get_logger(__name__)
    logger.info("Logging configured (level=%s)", logging.getLevelName(resolved_level))
    if loki_enabled:
        logger.info("Loki logging enabled (url=%s, labels=%s)", loki_url, loki_labels or {})

    # Loggers created at import time predate the handlers above.
    logger_names = list(logging.Logger.manager.loggerDict.keys())
    logger.debug("Configuring %d existing loggers", len(logger_names))
    for name in logger_names:
        if name != "root" and not name.startswith(_HTTP_CLIENT_LOGGERS):
            configure_logger(logging.getLogger(name))

    mark_logging_configured()

    pending = get_pending_loggers()
    if pending:
        logger.debug(
            "Detected %d logger(s) created before configure_logging: %s",
            len(pending),
            ", ".join(pending[:5]) + ("..." if len(pending) > 5 else ""),
        )
        for name in pending:
            configure_logger(logging.getLogger(name))
