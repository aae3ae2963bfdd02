"""asyncio-based timer backend.

This is the DEFAULT backend. Callbacks are dispatched with
``loop.call_later`` and canceled with ``asyncio.TimerHandle.cancel``; all
bookkeeping runs on the loop thread, so no locking is needed.

Example:
    >>> async def main():
    ...     backend = AsyncioTimerBackend()
    ...     handle = backend.schedule(0.5, print, "half a second later")
    ...     backend.cancel(handle)
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

from lifeline.core.errors import PreconditionError

from .base import KeyedTimerBackend
from .protocol import BackendHealth


class AsyncioTimerBackend(KeyedTimerBackend):
    """Timer backend driven by an asyncio event loop.

    The loop is either passed explicitly or taken from the running loop the
    first time a timer is scheduled, so the backend can be constructed
    outside of a coroutine.
    """

    name = "asyncio"

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        super().__init__()
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            try:
                self._loop = asyncio.get_running_loop()
            except RuntimeError as exc:
                raise PreconditionError(
                    "The asyncio timer backend needs a running event loop. Schedule from "
                    "inside a coroutine, pass `loop=` explicitly, or set "
                    "LIFELINE_TIMER_BACKEND=manual.",
                    cause=exc,
                ).with_context(operation="schedule", backend=self.name) from exc
        return self._loop

    def now(self) -> float:
        return self.loop.time()

    def _call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(delay, callback)

    def _cancel_native(self, token: Any) -> None:
        token.cancel()

    def get_health(self) -> BackendHealth:
        health = super().get_health()
        bound = self._loop is not None
        health.healthy = not bound or not self._loop.is_closed()
        health.extra["loop_bound"] = bound
        return health
