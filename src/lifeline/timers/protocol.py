"""Timer backend protocol.

┌──────────────────────────────────────────────────────────────────────────────┐
│  TIMER BACKEND PROTOCOL                                                       │
│                                                                               │
│  Backends control WHEN callbacks fire; the task registry controls WHICH      │
│  callbacks are still allowed to fire for a given owner.                      │
│                                                                               │
│   ┌─────────────────────┐   schedule()/cancel()   ┌──────────────────────┐   │
│   │ LifecycleTask       │ ──────────────────────► │  AsyncioTimerBackend │   │
│   │ Registry (per owner)│   debounce()/throttle() │  (loop.call_later)   │   │
│   └─────────────────────┘                         └──────────────────────┘   │
│                                                   ┌──────────────────────┐   │
│                                                   │  ManualTimerBackend  │   │
│                                                   │  (virtual clock)     │   │
│                                                   └──────────────────────┘   │
│                                                                               │
│  Responsibility Split:                                                        │
│  - Backend: delayed invocation, cancellation, debounce/throttle windows      │
│    keyed by an arbitrary hashable grouping key                               │
│  - Registry: per-owner bookkeeping, preconditions, destroy-time teardown     │
└──────────────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

from collections.abc import Callable, Hashable
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol, runtime_checkable

HandleKind = Literal["timer", "debounce", "throttle"]


@dataclass(eq=False)
class TimerHandle:
    """Opaque token for one scheduled callback.

    Compared and hashed by identity, so a handle can live in a set or be used
    as a dict key regardless of its mutable state flags.
    """

    id: int
    kind: HandleKind
    when: float
    key: Hashable | None = None
    fired: bool = False
    cancelled: bool = False

    @property
    def pending(self) -> bool:
        """True until the callback fires or the handle is canceled."""
        return not (self.fired or self.cancelled)

    def __repr__(self) -> str:
        state = "pending" if self.pending else ("fired" if self.fired else "cancelled")
        return f"TimerHandle(id={self.id}, kind={self.kind}, when={self.when:.3f}, {state})"


@dataclass
class BackendHealth:
    """Structured backend status."""

    healthy: bool
    backend: str
    pending: int = 0
    fired: int = 0
    cancelled: int = 0
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "healthy": self.healthy,
            "backend": self.backend,
            "pending": self.pending,
            "fired": self.fired,
            "cancelled": self.cancelled,
            **self.extra,
        }


@runtime_checkable
class TimerBackend(Protocol):
    """Protocol for pluggable timer primitives.

    Implementations:
        - AsyncioTimerBackend: event-loop ``call_later`` (default)
        - ManualTimerBackend: virtual clock advanced explicitly (tests, simulations)

    Contract:
        - ``cancel`` is idempotent and returns False for unknown, fired or
          already-canceled handles; it never raises.
        - ``debounce`` replaces any pending timer for ``key`` and always
          returns a fresh handle carrying the latest arguments.
        - ``throttle`` invokes ``fn`` immediately when no window is open for
          ``key`` and suppresses calls until the window closes. There is no
          trailing-edge replay.
    """

    name: str

    def schedule(self, delay: float, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> TimerHandle:
        """Run ``fn(*args, **kwargs)`` after ``delay`` seconds."""
        ...

    def cancel(self, handle: TimerHandle) -> bool:
        """Cancel a pending handle. Returns True if something was canceled."""
        ...

    def debounce(
        self, key: Hashable, fn: Callable[..., Any], wait: float, *args: Any, **kwargs: Any
    ) -> TimerHandle:
        """Collapse repeated calls for ``key`` into one call ``wait`` seconds after the last."""
        ...

    def throttle(
        self, key: Hashable, fn: Callable[..., Any], wait: float, *args: Any, **kwargs: Any
    ) -> TimerHandle:
        """Call ``fn`` on the leading edge, suppress repeats for ``wait`` seconds."""
        ...

    @property
    def pending_count(self) -> int:
        """Number of timers that have neither fired nor been canceled."""
        ...

    def health(self) -> dict[str, Any]:
        """Return backend status as a dictionary."""
        ...


__all__ = ["TimerHandle", "TimerBackend", "BackendHealth", "HandleKind"]
