"""Owner-bound task scheduling.

Exports the per-owner registry, the owner base class, the disposable stack
and the poll test-control API.
"""

from __future__ import annotations

from .disposables import DisposableHandle, DisposableStack
from .owner import LifecycleOwner
from .polling import (
    PollTask,
    PollTaskRegistry,
    get_poll_registry,
    poll_task_for,
    set_poll_registry,
    set_should_poll,
)
from .registry import LifecycleTaskRegistry, TaskRegistryStats

__all__ = [
    "LifecycleTaskRegistry",
    "TaskRegistryStats",
    "LifecycleOwner",
    "DisposableHandle",
    "DisposableStack",
    "PollTask",
    "PollTaskRegistry",
    "get_poll_registry",
    "set_poll_registry",
    "set_should_poll",
    "poll_task_for",
]
