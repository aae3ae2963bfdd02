"""Timer backends for lifeline.

A backend is the timer primitive the task registry builds on: it runs a
callback after a delay, cancels it, and keeps keyed debounce/throttle
windows. The registry owns everything lifecycle-related.

Backends:
    • AsyncioTimerBackend (default): ``loop.call_later``
    • ManualTimerBackend: virtual clock for deterministic tests
"""

from __future__ import annotations

from lifeline.core.errors import InvalidConfigError
from lifeline.core.settings import get_settings

from .asyncio_backend import AsyncioTimerBackend
from .base import KeyedTimerBackend
from .manual_backend import ManualTimerBackend
from .protocol import BackendHealth, TimerBackend, TimerHandle

_BACKENDS: dict[str, type[KeyedTimerBackend]] = {
    "asyncio": AsyncioTimerBackend,
    "manual": ManualTimerBackend,
}


def create_timer_backend(name: str | None = None) -> TimerBackend:
    """Factory function for timer backends.

    Args:
        name: "asyncio" or "manual"; defaults to ``LIFELINE_TIMER_BACKEND``

    Raises:
        InvalidConfigError: for unknown backend names

    Example:
        >>> backend = create_timer_backend("manual")
        >>> backend.name
        'manual'
    """
    backend_name = name or get_settings().timer_backend
    try:
        backend_cls = _BACKENDS[backend_name]
    except KeyError:
        raise InvalidConfigError("timer_backend", backend_name) from None
    return backend_cls()


__all__ = [
    "TimerBackend",
    "TimerHandle",
    "BackendHealth",
    "KeyedTimerBackend",
    "AsyncioTimerBackend",
    "ManualTimerBackend",
    "create_timer_backend",
]
