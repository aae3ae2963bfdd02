"""Shared bookkeeping for keyed timer backends.

Concrete backends only know how to run a callback later and how to cancel
that native token. Everything else (handle allocation, fire-time state
transitions, debounce replacement and throttle windows) lives here so that
the asyncio and manual backends behave identically.

Debounce:
    ``debounce(key, ...)`` cancels the pending handle for ``key`` (if any)
    and schedules a fresh one with the latest arguments.

Throttle:
    ``throttle(key, ...)`` opens a window handle that closes after ``wait``
    seconds and invokes the callback immediately. Calls while the window is
    open are dropped; nothing is replayed when it closes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Hashable
from typing import Any

from lifeline.core.errors import InvalidArgumentError
from lifeline.core.logging import get_logger

from .protocol import BackendHealth, HandleKind, TimerHandle

logger = get_logger(__name__)


def _close_window() -> None:
    """Throttle windows carry no work of their own."""


def check_delay(delay: Any, param: str = "delay") -> float:
    """Validate a delay/wait argument and return it as a float."""
    if isinstance(delay, bool) or not isinstance(delay, (int, float)):
        raise InvalidArgumentError(f"`{param}` must be a number of seconds, got {delay!r}")
    if delay < 0:
        raise InvalidArgumentError(f"`{param}` must be >= 0, got {delay!r}")
    return float(delay)


class KeyedTimerBackend(ABC):
    """Base class implementing the ``TimerBackend`` protocol on top of a native timer."""

    name: str = "keyed"

    def __init__(self) -> None:
        self._next_id = 1
        self._native: dict[TimerHandle, Any] = {}
        self._debounces: dict[Hashable, TimerHandle] = {}
        self._throttles: dict[Hashable, TimerHandle] = {}
        self._fired_count = 0
        self._cancelled_count = 0

    # ------------------------------------------------------------------
    # Native timer hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def now(self) -> float:
        """Current time on the backend's clock, in seconds."""

    @abstractmethod
    def _call_later(self, delay: float, callback: Callable[[], None]) -> Any:
        """Arrange for ``callback`` to run after ``delay``; return a native token."""

    @abstractmethod
    def _cancel_native(self, token: Any) -> None:
        """Cancel a native token returned by ``_call_later``."""

    # ------------------------------------------------------------------
    # TimerBackend protocol
    # ------------------------------------------------------------------

    def schedule(self, delay: float, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> TimerHandle:
        return self._schedule("timer", check_delay(delay), None, fn, args, kwargs)

    def cancel(self, handle: TimerHandle | None) -> bool:
        if not isinstance(handle, TimerHandle) or not handle.pending:
            return False

        token = self._native.pop(handle, None)
        if token is None:
            # issued by a different backend
            return False

        handle.cancelled = True
        self._cancel_native(token)
        self._forget_key(handle)
        self._cancelled_count += 1
        logger.debug("timer_canceled", backend=self.name, handle_id=handle.id, kind=handle.kind)
        return True

    def debounce(
        self, key: Hashable, fn: Callable[..., Any], wait: float, *args: Any, **kwargs: Any
    ) -> TimerHandle:
        wait = check_delay(wait, "wait")
        previous = self._debounces.get(key)
        if previous is not None:
            self.cancel(previous)

        handle = self._schedule("debounce", wait, key, fn, args, kwargs)
        self._debounces[key] = handle
        logger.debug(
            "debounce_scheduled",
            backend=self.name,
            handle_id=handle.id,
            replaced=previous.id if previous is not None else None,
        )
        return handle

    def throttle(
        self, key: Hashable, fn: Callable[..., Any], wait: float, *args: Any, **kwargs: Any
    ) -> TimerHandle:
        wait = check_delay(wait, "wait")
        window = self._throttles.get(key)
        if window is not None and window.pending:
            logger.debug("throttle_suppressed", backend=self.name, handle_id=window.id)
            return window

        # Open the window before invoking so a re-entrant call is suppressed.
        window = self._schedule("throttle", wait, key, _close_window, (), {})
        self._throttles[key] = window
        fn(*args, **kwargs)
        return window

    @property
    def pending_count(self) -> int:
        return len(self._native)

    def get_health(self) -> BackendHealth:
        """Return structured health status."""
        return BackendHealth(
            healthy=True,
            backend=self.name,
            pending=self.pending_count,
            fired=self._fired_count,
            cancelled=self._cancelled_count,
        )

    def health(self) -> dict[str, Any]:
        return self.get_health().to_dict()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _schedule(
        self,
        kind: HandleKind,
        delay: float,
        key: Hashable | None,
        fn: Callable[..., Any],
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> TimerHandle:
        handle = TimerHandle(id=self._next_id, kind=kind, when=self.now() + delay, key=key)
        self._next_id += 1

        def fire() -> None:
            if not handle.pending:
                return
            handle.fired = True
            self._native.pop(handle, None)
            self._forget_key(handle)
            self._fired_count += 1
            fn(*args, **kwargs)

        self._native[handle] = self._call_later(delay, fire)
        logger.debug("timer_scheduled", backend=self.name, handle_id=handle.id, kind=kind, delay=delay)
        return handle

    def _forget_key(self, handle: TimerHandle) -> None:
        if handle.kind == "debounce":
            table = self._debounces
        elif handle.kind == "throttle":
            table = self._throttles
        else:
            return
        if table.get(handle.key) is handle:
            del table[handle.key]


__all__ = ["KeyedTimerBackend", "check_delay"]
