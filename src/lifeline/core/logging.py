"""
Lifeline logging - structured logging via structlog.

Registry and backend modules log lifecycle events (timer scheduled, poll
queued, owner destroyed) as structured key/value records. Applications call
``configure_logging`` once at startup; library code only ever calls
``get_logger(__name__)``. Until then events go to stdlib ``logging``, which
drops the DEBUG lifecycle records under its default configuration.

Examples:
    >>> from lifeline.core.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG")
    >>> logger = get_logger(__name__)
    >>> logger.debug("timer_scheduled", delay=0.5, handle_id=3)

    Scoped context:

    >>> with LogContext(owner="SearchBox#12"):
    ...     logger.debug("owner_destroyed")
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import Processor

from lifeline.core.settings import get_settings

_configured = False


def configure_logging(
    level: str | None = None,
    json_format: bool | None = None,
    add_timestamp: bool = True,
    force: bool = False,
) -> None:
    """Install the lifeline structlog pipeline.

    Subsequent calls are no-ops unless ``force=True``.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR); defaults to LIFELINE_LOG_LEVEL
        json_format: True for JSON, False for console; defaults to LIFELINE_LOG_FORMAT
        add_timestamp: Stamp each event with an ISO-8601 UTC time
        force: Reconfigure even if already configured
    """
    global _configured

    if _configured and not force:
        return

    settings = get_settings()
    log_level = (level or settings.log_level).upper()
    if json_format is None:
        json_format = settings.log_format == "json"

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
    ]

    if add_timestamp:
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso", utc=True))

    if json_format:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, log_level)),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level),
    )
    logging.getLogger("lifeline").setLevel(getattr(logging, log_level))

    _configured = True


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``).

    Events are rendered by structlog and handed to the stdlib logger of the
    same name, so an application that never calls ``configure_logging``
    only sees them through its own ``logging`` setup (WARNING and above by
    default). Lifecycle events are emitted at DEBUG.
    """
    return structlog.wrap_logger(logging.getLogger(name or "lifeline"))


def bind_context(**kwargs: Any) -> None:
    """Bind keys (e.g. ``owner``) onto every event logged from this context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Drop the given keys from the bound context."""
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    """Forget every bound key."""
    structlog.contextvars.clear_contextvars()


def is_configured() -> bool:
    """Check if logging has been configured."""
    return _configured


class LogContext:
    """Bind keys for the duration of a ``with`` block, then unbind them.

    Example:
        with LogContext(owner="SearchBox#12"):
            registry.destroy()
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs

    def __enter__(self) -> LogContext:
        bind_context(**self._context)
        return self

    def __exit__(self, *args: Any) -> None:
        unbind_context(*self._context.keys())


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    "is_configured",
    "LogContext",
]
