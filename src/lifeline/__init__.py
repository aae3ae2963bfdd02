"""
Lifeline - lifecycle-bound task scheduling.

Schedule delayed, debounced, throttled and polling work from an owner object
and have all of it canceled, plus every registered teardown action run, the
moment the owner is destroyed.

Quick start:
    >>> from lifeline import LifecycleOwner
    >>> class SearchBox(LifecycleOwner):
    ...     def save(self, text):
    ...         ...
    ...     def on_input(self, text):
    ...         self.tasks.debounce_task("save", text, wait=0.3)
    >>> box = SearchBox()
    >>> box.destroy()   # pending save is canceled

Packages:
    lifeline.core    errors, logging, settings
    lifeline.timers  timer backends (asyncio, manual clock)
    lifeline.tasks   per-owner registry, poll coordinator, disposables
"""

from lifeline.core.errors import (
    DuplicateLabelError,
    InvalidArgumentError,
    LifelineError,
    PreconditionError,
    TeardownError,
    UnknownLabelError,
)
from lifeline.tasks import (
    DisposableHandle,
    LifecycleOwner,
    LifecycleTaskRegistry,
    PollTaskRegistry,
    TaskRegistryStats,
    get_poll_registry,
    poll_task_for,
    set_poll_registry,
    set_should_poll,
)
from lifeline.timers import (
    AsyncioTimerBackend,
    ManualTimerBackend,
    TimerBackend,
    TimerHandle,
    create_timer_backend,
)

__version__ = "0.1.0"

__all__ = [
    "LifecycleOwner",
    "LifecycleTaskRegistry",
    "TaskRegistryStats",
    "DisposableHandle",
    "PollTaskRegistry",
    "get_poll_registry",
    "set_poll_registry",
    "set_should_poll",
    "poll_task_for",
    "TimerBackend",
    "TimerHandle",
    "AsyncioTimerBackend",
    "ManualTimerBackend",
    "create_timer_backend",
    "LifelineError",
    "PreconditionError",
    "InvalidArgumentError",
    "DuplicateLabelError",
    "UnknownLabelError",
    "TeardownError",
]
