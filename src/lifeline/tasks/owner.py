"""Owner base class.

Composes one ``LifecycleTaskRegistry`` into an object and exposes the single
teardown entry point a host lifecycle calls.

Example:
    >>> class ConnectionHandler(LifecycleOwner):
    ...     def __init__(self, sock):
    ...         super().__init__()
    ...         self.sock = sock
    ...         self.tasks.register_disposable(sock.close)
    ...         self.tasks.poll_task(self.heartbeat, f"conn#{id(self)}")
    ...
    ...     def heartbeat(self, next):
    ...         self.sock.send(b"ping")
    ...         self.tasks.run_task(next, 30)
    ...
    >>> with ConnectionHandler(sock) as handler:
    ...     ...
    >>> # heartbeat canceled, socket closed
"""

from __future__ import annotations

from typing import Any

from lifeline.timers import TimerBackend

from .polling import PollTaskRegistry
from .registry import LifecycleTaskRegistry


class LifecycleOwner:
    """Base class for objects whose scheduled work must not outlive them."""

    def __init__(
        self,
        *,
        backend: TimerBackend | None = None,
        poll_registry: PollTaskRegistry | None = None,
    ) -> None:
        self.tasks = LifecycleTaskRegistry(self, backend=backend, poll_registry=poll_registry)

    @property
    def is_destroyed(self) -> bool:
        return self.tasks.is_destroyed

    def will_destroy(self) -> None:
        """Hook run before the registry is torn down. Override as needed."""

    def destroy(self) -> None:
        """Destroy the owner: run ``will_destroy`` then tear down all tasks.

        Calling it again is a no-op.
        """
        if self.tasks.is_destroying or self.tasks.is_destroyed:
            return
        try:
            self.will_destroy()
        finally:
            self.tasks.destroy()

    def __enter__(self) -> LifecycleOwner:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.destroy()


__all__ = ["LifecycleOwner"]
