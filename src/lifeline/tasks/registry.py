"""Lifecycle task registry - owner-bound scheduling with guaranteed teardown.

Manifesto:
    Short-lived objects (UI components, session workers, connection
    handlers) routinely schedule work that outlives them: a timer fires after
    the component is gone, a poll loop keeps hitting an API for a closed
    session. The registry ties every timer, debounce, poll chain and
    disposable to one owner and tears all of it down the moment the owner is
    destroyed.

┌──────────────────────────────────────────────────────────────────────────────┐
│  LIFECYCLE TASK REGISTRY                                                      │
│                                                                               │
│   owner.tasks ──────────────────────────────────────────────────────┐        │
│   │                                                                  │        │
│   │  run_task / cancel_task ───────► PendingTimerSet                 │        │
│   │  debounce_task / cancel_debounce ► PendingDebounces (by name)    │        │
│   │  throttle_task ────────────────► backend throttle window         │        │
│   │  poll_task / cancel_poll ──────► PollerLabels ──► PollTaskRegistry│       │
│   │  register_disposable / run_disposable ► DisposableStack          │        │
│   │                                                                  │        │
│   │  destroy()  (called once by the host lifecycle)                  │        │
│   │     1. cancel pending timers                                     │        │
│   │     2. cancel pending debounces                                  │        │
│   │     3. clear this owner's poll labels                            │        │
│   │     4. drain disposables, most recent first                      │        │
│   └──────────────────────────────────────────────────────────────────┘        │
└──────────────────────────────────────────────────────────────────────────────┘

Guardrails:
    ❌ Scheduling on a destroyed owner
    ✅ PreconditionError at the call site
    ❌ Raising when canceling something that already fired
    ✅ cancel_* is idempotent and returns False

Example:
    >>> class SearchBox:
    ...     def __init__(self):
    ...         self.tasks = LifecycleTaskRegistry(self)
    ...     def save(self, text):
    ...         ...
    ...     def on_input(self, text):
    ...         self.tasks.debounce_task("save", text, wait=0.3)
    ...     def close(self):
    ...         self.tasks.destroy()
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from lifeline.core.errors import InvalidArgumentError, PreconditionError, TeardownError
from lifeline.core.logging import get_logger
from lifeline.timers import TimerBackend, TimerHandle, create_timer_backend

from .disposables import DisposableHandle, DisposableStack
from .polling import PollTask, PollTaskRegistry, get_poll_registry

logger = get_logger(__name__)

CallbackOrName = Callable[..., Any] | str


@dataclass
class _DebounceEntry:
    debounced_fn: Callable[..., None]
    handle: TimerHandle


@dataclass
class TaskRegistryStats:
    """Point-in-time view of one registry."""

    pending_timers: int = 0
    pending_debounces: int = 0
    poll_labels: int = 0
    disposables: int = 0
    tasks_fired: int = 0
    tasks_cancelled: int = 0
    destroyed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "pending_timers": self.pending_timers,
            "pending_debounces": self.pending_debounces,
            "poll_labels": self.poll_labels,
            "disposables": self.disposables,
            "tasks_fired": self.tasks_fired,
            "tasks_cancelled": self.tasks_cancelled,
            "destroyed": self.destroyed,
        }


class LifecycleTaskRegistry:
    """Per-owner registry of timers, debounces, poll tasks and disposables.

    The owner holds exactly one registry. All four collections are allocated
    on first use. After ``destroy()`` begins, every scheduling operation
    raises ``PreconditionError``; cancellation stays a silent no-op.

    Args:
        owner: The object whose lifetime bounds the scheduled work.
        backend: Timer backend; defaults to ``create_timer_backend()`` on first use.
        poll_registry: Label registry for poll tasks; defaults to the
            process-wide registry.
    """

    def __init__(
        self,
        owner: Any,
        backend: TimerBackend | None = None,
        poll_registry: PollTaskRegistry | None = None,
    ) -> None:
        self._owner = owner
        self._backend = backend
        self._poll_registry = poll_registry or get_poll_registry()

        self._pending_timers: dict[TimerHandle, None] | None = None
        self._pending_debounces: dict[str, _DebounceEntry] | None = None
        self._poller_labels: dict[str, None] | None = None
        self._disposables: DisposableStack | None = None

        self._destroying = False
        self._destroyed = False
        self._tasks_fired = 0
        self._tasks_cancelled = 0

    def __repr__(self) -> str:
        state = "destroyed" if self._destroyed else ("destroying" if self._destroying else "alive")
        return f"LifecycleTaskRegistry(owner={self._owner_label()}, {state})"

    # === Properties ===

    @property
    def owner(self) -> Any:
        return self._owner

    @property
    def backend(self) -> TimerBackend:
        if self._backend is None:
            self._backend = create_timer_backend()
        return self._backend

    @property
    def poll_registry(self) -> PollTaskRegistry:
        return self._poll_registry

    @property
    def is_destroying(self) -> bool:
        return self._destroying and not self._destroyed

    @property
    def is_destroyed(self) -> bool:
        return self._destroyed

    @property
    def pending_timers(self) -> tuple[TimerHandle, ...]:
        return tuple(self._pending_timers or ())

    @property
    def pending_debounces(self) -> tuple[str, ...]:
        return tuple(self._pending_debounces or ())

    @property
    def poll_labels(self) -> tuple[str, ...]:
        return tuple(self._poller_labels or ())

    # === Delayed tasks ===

    def run_task(self, callback_or_name: CallbackOrName, delay: float = 0.0) -> TimerHandle:
        """Run a callback after ``delay`` seconds unless the owner is destroyed first.

        ``callback_or_name`` is a callable or the name of a method on the
        owner; names are resolved and bound now, not at fire time.

        Returns:
            The handle, usable with ``cancel_task`` before it fires.
        """
        self._assert_alive("run_task")
        callback = self._resolve_callback(callback_or_name, "run_task")
        pending = self._get_or_allocate_timers()
        handle: TimerHandle | None = None

        def fire() -> None:
            pending.pop(handle, None)
            self._tasks_fired += 1
            callback()

        handle = self.backend.schedule(delay, fire)
        pending[handle] = None
        return handle

    def cancel_task(self, handle: TimerHandle | None) -> bool:
        """Cancel a task scheduled by this registry.

        Accepts handles from ``run_task`` and ``debounce_task``. Handles this
        registry did not issue, or that already fired, are a no-op.
        """
        if not isinstance(handle, TimerHandle):
            return False
        if handle.kind == "debounce":
            return self._cancel_debounce_handle(handle)
        if not self._pending_timers or handle not in self._pending_timers:
            return False
        del self._pending_timers[handle]
        return self._cancel_handle(handle)

    # === Debounce / throttle ===

    def debounce_task(self, name: str, *args: Any, wait: float, **kwargs: Any) -> TimerHandle:
        """Run ``owner.<name>`` once, ``wait`` seconds after the last call for that name.

        Repeated calls within the window collapse into one invocation with
        the latest arguments. Each call returns a fresh handle.
        """
        self._resolve_method(name, "debounce_task")
        self._assert_alive("debounce_task")

        debounces = self._get_or_allocate_debounces()
        entry = debounces.get(name)

        if entry is None:

            def debounced_fn(*fn_args: Any, **fn_kwargs: Any) -> None:
                debounces.pop(name, None)
                self._tasks_fired += 1
                getattr(self._owner, name)(*fn_args, **fn_kwargs)

        else:
            debounced_fn = entry.debounced_fn

        # the handle is new even when the debounced function is reused
        handle = self.backend.debounce(debounced_fn, debounced_fn, wait, *args, **kwargs)
        debounces[name] = _DebounceEntry(debounced_fn=debounced_fn, handle=handle)
        return handle

    def cancel_debounce(self, name: str) -> bool:
        """Cancel the pending debounce for ``name``; no-op if there is none."""
        if not self._pending_debounces:
            return False
        entry = self._pending_debounces.pop(name, None)
        if entry is None:
            return False
        return self._cancel_handle(entry.handle)

    def throttle_task(self, name: str, *args: Any, wait: float = 0.0, **kwargs: Any) -> TimerHandle:
        """Run ``owner.<name>`` now, then drop repeat calls for ``wait`` seconds.

        There is no trailing-edge call for suppressed invocations.
        """
        method = self._resolve_method(name, "throttle_task")
        self._assert_alive("throttle_task")
        return self.backend.throttle((self, name), method, wait, *args, **kwargs)

    # === Polling ===

    def poll_task(self, callback_or_name: CallbackOrName, label: str | None = None) -> None:
        """Start a self-rescheduling poll chain.

        The callback is invoked synchronously with a ``next`` continuation.
        In live mode ``next()`` runs the callback again; under test control
        it queues the tick for ``poll_task_for(label)`` (or does nothing for
        unlabeled tasks).

        Raises:
            DuplicateLabelError: if ``label`` is already registered.
        """
        self._assert_alive("poll_task")
        callback = self._resolve_callback(callback_or_name, "poll_task")
        if label is not None and (not isinstance(label, str) or not label):
            raise InvalidArgumentError(f"Poll task labels must be non-empty strings, got {label!r}").with_context(
                owner=self._owner_label(), operation="poll_task"
            )

        polls = self._poll_registry
        task = PollTask(label=label, owner=self, live=polls.should_poll())

        if label is not None:
            polls.register(task)
            self._get_or_allocate_labels()[label] = None

        def tick() -> Any:
            return callback(next_tick)

        if task.live:

            def next_tick() -> Any:
                if self._poll_active(task):
                    return tick()
                return None

        elif label is not None:

            def next_tick() -> None:
                polls.enqueue(task, tick)

        else:

            def next_tick() -> None:
                return None

        logger.debug("poll_started", owner=self._owner_label(), label=label, live=task.live)
        callback(next_tick)

    def cancel_poll(self, label: str) -> bool:
        """Clear a poll label and its queued continuation; no-op for unknown labels."""
        if self._poller_labels is not None:
            self._poller_labels.pop(label, None)
        return self._poll_registry.cancel(label)

    # === Disposables ===

    def register_disposable(self, disposable: Callable[[], Any]) -> DisposableHandle:
        """Register a teardown action to run when the owner is destroyed.

        Allowed while the owner is being destroyed: the action then runs in
        the same drain.
        """
        self._assert_alive("register_disposable", allow_destroying=True)
        return self._get_or_allocate_disposables().push(disposable)

    def run_disposable(self, handle: DisposableHandle) -> bool:
        """Run and remove a single disposable now; no-op if it already ran."""
        if self._disposables is None:
            return False
        return self._disposables.run(handle)

    # === Destroy hook ===

    def destroy(self) -> None:
        """Tear down everything registered for the owner.

        Called once by the host lifecycle. Later calls are ignored.

        Raises:
            TeardownError: if one or more disposables raised. Every other
                disposable still ran.
        """
        if self._destroying:
            logger.warning("destroy_ignored", owner=self._owner_label(), reason="already destroyed")
            return

        self._destroying = True
        try:
            self._cancel_timers()
            self._cancel_debounces()
            self._clear_pollers()
            self._run_disposables()
        finally:
            self._destroyed = True
            logger.debug("owner_destroyed", owner=self._owner_label(), **self.stats().to_dict())

    def stats(self) -> TaskRegistryStats:
        return TaskRegistryStats(
            pending_timers=len(self._pending_timers or ()),
            pending_debounces=len(self._pending_debounces or ()),
            poll_labels=len(self._poller_labels or ()),
            disposables=len(self._disposables or ()),
            tasks_fired=self._tasks_fired,
            tasks_cancelled=self._tasks_cancelled,
            destroyed=self._destroyed,
        )

    # === Teardown phases ===

    def _cancel_timers(self) -> None:
        if not self._pending_timers:
            return
        for handle in list(self._pending_timers):
            self._cancel_handle(handle)
        self._pending_timers.clear()

    def _cancel_debounces(self) -> None:
        if not self._pending_debounces:
            return
        for entry in list(self._pending_debounces.values()):
            self._cancel_handle(entry.handle)
        self._pending_debounces.clear()

    def _clear_pollers(self) -> None:
        if not self._poller_labels:
            return
        for label in list(self._poller_labels):
            self._poll_registry.cancel(label, owner=self)
        self._poller_labels.clear()

    def _run_disposables(self) -> None:
        if self._disposables is None:
            return
        try:
            self._disposables.drain()
        except TeardownError as exc:
            exc.with_context(owner=self._owner_label(), operation="destroy")
            raise

    # === Internals ===

    def _cancel_handle(self, handle: TimerHandle) -> bool:
        if self._backend is None:
            return False
        cancelled = self._backend.cancel(handle)
        if cancelled:
            self._tasks_cancelled += 1
        return cancelled

    def _cancel_debounce_handle(self, handle: TimerHandle) -> bool:
        if not self._pending_debounces:
            return False
        for name, entry in self._pending_debounces.items():
            if entry.handle is handle:
                del self._pending_debounces[name]
                return self._cancel_handle(handle)
        return False

    def _poll_active(self, task: PollTask) -> bool:
        if self._destroying:
            return False
        return task.label is None or self._poll_registry.task_for(task.label) is task

    def _assert_alive(self, operation: str, allow_destroying: bool = False) -> None:
        if self._destroyed or (self._destroying and not allow_destroying):
            raise PreconditionError(
                f"Called `{operation}` on destroyed object: {self._owner_label()}."
            ).with_context(owner=self._owner_label(), operation=operation)

    def _resolve_callback(self, callback_or_name: Any, operation: str) -> Callable[..., Any]:
        if isinstance(callback_or_name, str):
            method = getattr(self._owner, callback_or_name, None)
            if callable(method):
                return method
        elif callable(callback_or_name):
            return callback_or_name

        raise InvalidArgumentError(
            f"You must pass a callback function or method name to `{operation}`."
        ).with_context(owner=self._owner_label(), operation=operation, name=repr(callback_or_name))

    def _resolve_method(self, name: Any, operation: str) -> Callable[..., Any]:
        if not isinstance(name, str):
            raise InvalidArgumentError(
                f"Called `{operation}` without a string as the first argument on {self._owner_label()}."
            ).with_context(owner=self._owner_label(), operation=operation)

        method = getattr(self._owner, name, None)
        if not callable(method):
            raise InvalidArgumentError(
                f"Called `{operation}('{name}', ...)` where '{name}' is not a method on {self._owner_label()}."
            ).with_context(owner=self._owner_label(), operation=operation, name=name)
        return method

    def _owner_label(self) -> str:
        return f"{type(self._owner).__name__}@{id(self._owner):#x}"

    def _get_or_allocate_timers(self) -> dict[TimerHandle, None]:
        if self._pending_timers is None:
            self._pending_timers = {}
        return self._pending_timers

    def _get_or_allocate_debounces(self) -> dict[str, _DebounceEntry]:
        if self._pending_debounces is None:
            self._pending_debounces = {}
        return self._pending_debounces

    def _get_or_allocate_labels(self) -> dict[str, None]:
        if self._poller_labels is None:
            self._poller_labels = {}
        return self._poller_labels

    def _get_or_allocate_disposables(self) -> DisposableStack:
        if self._disposables is None:
            self._disposables = DisposableStack()
        return self._disposables


__all__ = ["LifecycleTaskRegistry", "TaskRegistryStats", "CallbackOrName"]
