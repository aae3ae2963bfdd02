"""Virtual-clock timer backend.

Time only moves when the caller advances it, which makes every debounce,
throttle and teardown scenario reproducible without real sleeps.

Example:
    >>> backend = ManualTimerBackend()
    >>> calls = []
    >>> backend.schedule(0.2, calls.append, "once")
    TimerHandle(id=1, kind=timer, when=0.200, pending)
    >>> backend.advance(0.1)
    0
    >>> backend.advance(0.1)
    1
    >>> calls
    ['once']
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from heapq import heappop, heappush

from lifeline.core.errors import LifelineError

from .base import KeyedTimerBackend, check_delay
from .protocol import BackendHealth


@dataclass(slots=True)
class _ScheduledCall:
    when: float
    seq: int
    callback: Callable[[], None]
    cancelled: bool = False


class ManualTimerBackend(KeyedTimerBackend):
    """Timer backend whose clock is advanced explicitly.

    Callbacks run in (due time, scheduling order). Callbacks scheduled by a
    running callback are picked up in the same ``advance`` call if they fall
    due before its target time. Exceptions raised by callbacks propagate out
    of ``advance``. A single ``advance``/``run_until`` runs at most
    ``max_callbacks`` callbacks before raising ``LifelineError``.
    """

    name = "manual"

    def __init__(self, start: float = 0.0, max_callbacks: int = 10_000) -> None:
        super().__init__()
        self._now = float(start)
        self._max_callbacks = max_callbacks
        self._seq = 0
        self._queue: list[tuple[float, int, _ScheduledCall]] = []

    def now(self) -> float:
        return self._now

    def _call_later(self, delay: float, callback: Callable[[], None]) -> _ScheduledCall:
        call = _ScheduledCall(when=self._now + delay, seq=self._seq, callback=callback)
        self._seq += 1
        heappush(self._queue, (call.when, call.seq, call))
        return call

    def _cancel_native(self, token: _ScheduledCall) -> None:
        token.cancelled = True

    # ------------------------------------------------------------------
    # Clock control
    # ------------------------------------------------------------------

    def advance(self, seconds: float) -> int:
        """Advance the clock by ``seconds`` and run every callback that falls due.

        Returns:
            Number of callbacks executed.
        """
        seconds = check_delay(seconds, "seconds")
        return self.run_until(self._now + seconds)

    def run_until(self, target: float, limit: int | None = None) -> int:
        """Run callbacks due at or before ``target`` and move the clock there.

        Args:
            target: Clock position to stop at.
            limit: Most callbacks this call may run; defaults to the
                ``max_callbacks`` given at construction.

        Raises:
            LifelineError: if ``target`` is in the past, or if more than
                ``limit`` callbacks fall due, which usually means a
                zero-delay chain keeps rescheduling itself.
        """
        if target < self._now:
            raise LifelineError(f"Cannot move the clock backwards ({target} < {self._now})")
        if limit is None:
            limit = self._max_callbacks

        executed = 0
        while self._queue and self._queue[0][0] <= target:
            entry = heappop(self._queue)
            when, _, call = entry
            if call.cancelled:
                continue
            if executed >= limit:
                heappush(self._queue, entry)
                self._now = when
                raise LifelineError(f"ran more than {limit} callbacks before t={target}; timers keep rescheduling")
            self._now = when
            call.callback()
            executed += 1

        self._now = target
        return executed

    def run_due(self) -> int:
        """Run callbacks already due at the current time (e.g. zero-delay timers)."""
        return self.run_until(self._now)

    def flush(self, limit: int = 1000) -> int:
        """Advance until no timers remain pending.

        Raises:
            LifelineError: if more than ``limit`` callbacks run, which usually
                means a live poll chain keeps rescheduling itself.
        """
        executed = 0
        while True:
            self._drop_cancelled()
            if not self._queue:
                return executed
            executed += self.run_until(max(self._queue[0][0], self._now), limit=limit - executed)

    def _drop_cancelled(self) -> None:
        while self._queue and self._queue[0][2].cancelled:
            heappop(self._queue)

    def get_health(self) -> BackendHealth:
        health = super().get_health()
        health.extra["now"] = self._now
        return health


__all__ = ["ManualTimerBackend"]
