"""Poll task registry and test-control API.

┌──────────────────────────────────────────────────────────────────────────────┐
│  POLL COORDINATOR                                                             │
│                                                                               │
│   registry.poll_task(cb, "search#refresh")                                   │
│        │                                                                      │
│        ├── register label (DuplicateLabelError if taken)                      │
│        ├── decide mode once: should_poll()                                    │
│        └── cb(next)   ◄── invoked synchronously                               │
│                                                                               │
│   live mode:          next() ──► cb(next) again (until destroy/cancel)        │
│   test-control mode:  next() ──► queue[label] = tick                          │
│                       poll_task_for(label) ──► pop tick, run it               │
│                       (unlabeled: next() is a no-op)                          │
└──────────────────────────────────────────────────────────────────────────────┘

The label registry and the queued-continuation map are process-wide by
nature (labels must be unique across every owner), but they live on an
explicit ``PollTaskRegistry`` object. Owners receive one by injection or fall
back to the default instance, and tests can ``reset()`` it between runs.

Example:
    >>> from lifeline import poll_task_for
    >>> owner.tasks.poll_task(refresh, "search#refresh")   # runs refresh once
    >>> poll_task_for("search#refresh")                    # runs it again
"""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from lifeline.core.errors import DuplicateLabelError, UnknownLabelError
from lifeline.core.logging import get_logger
from lifeline.core.settings import get_settings

logger = get_logger(__name__)

ShouldPoll = Callable[[], bool]


def running_under_test() -> bool:
    """True while pytest is executing a test."""
    return "PYTEST_CURRENT_TEST" in os.environ


@dataclass(eq=False)
class PollTask:
    """One registered poll chain."""

    label: str | None
    owner: Any
    live: bool


class PollTaskRegistry:
    """Label registry, queued continuations and the should-poll predicate.

    Invariant: a label maps to at most one live ``PollTask``. Registering a
    label that is already taken raises ``DuplicateLabelError``.
    """

    def __init__(self, should_poll: ShouldPoll | None = None) -> None:
        self._labels: dict[str, PollTask] = {}
        self._queued: dict[str, Callable[[], Any]] = {}
        self._should_poll_override = should_poll

    # ------------------------------------------------------------------
    # Mode selection
    # ------------------------------------------------------------------

    def set_should_poll(self, predicate: ShouldPoll | None) -> None:
        """Replace the should-poll predicate; ``None`` restores the default."""
        self._should_poll_override = predicate

    def should_poll(self) -> bool:
        """True for live polling, False for test-control mode."""
        if self._should_poll_override is not None:
            return bool(self._should_poll_override())

        mode = get_settings().poll_mode
        if mode == "live":
            return True
        if mode == "test":
            return False
        return not running_under_test()

    # ------------------------------------------------------------------
    # Labels
    # ------------------------------------------------------------------

    def register(self, task: PollTask) -> None:
        label = task.label
        if label is None:
            return
        if label in self._labels:
            raise DuplicateLabelError(label)
        self._labels[label] = task
        logger.debug("poll_registered", label=label, live=task.live)

    def task_for(self, label: str) -> PollTask | None:
        return self._labels.get(label)

    def is_registered(self, label: str) -> bool:
        return label in self._labels

    def is_queued(self, label: str) -> bool:
        return label in self._queued

    def labels(self) -> list[str]:
        return list(self._labels)

    def cancel(self, label: str, owner: Any = None) -> bool:
        """Clear the registered flag and any queued continuation for ``label``.

        When ``owner`` is given, the label is only cleared if that owner
        registered it; a label re-registered by someone else is left alone.
        Unknown labels are a no-op.
        """
        task = self._labels.get(label)
        if task is None:
            self._queued.pop(label, None)
            return False
        if owner is not None and task.owner is not owner:
            return False

        del self._labels[label]
        self._queued.pop(label, None)
        logger.debug("poll_canceled", label=label)
        return True

    # ------------------------------------------------------------------
    # Test control
    # ------------------------------------------------------------------

    def enqueue(self, task: PollTask, tick: Callable[[], Any]) -> None:
        """Defer ``tick`` until ``advance(label)``; stale tasks are ignored."""
        label = task.label
        if label is None or self._labels.get(label) is not task:
            return
        self._queued[label] = tick
        logger.debug("poll_queued", label=label)

    def advance(self, label: str) -> Any:
        """Run the queued tick for ``label`` and return its result.

        Raises:
            UnknownLabelError: if the label is not registered or ``next`` has
                not been called since the last advance.
        """
        if label not in self._labels:
            raise UnknownLabelError(label)

        tick = self._queued.pop(label, None)
        if tick is None:
            raise UnknownLabelError(
                label,
                f"You cannot advance a poll task (`{label}`) when `next` has not been called.",
            )

        logger.debug("poll_advanced", label=label)
        return tick()

    def reset(self) -> None:
        """Forget every label, queued continuation and predicate override."""
        self._labels.clear()
        self._queued.clear()
        self._should_poll_override = None


_default_registry = PollTaskRegistry()


def get_poll_registry() -> PollTaskRegistry:
    """Return the process-wide default poll registry."""
    return _default_registry


def set_poll_registry(registry: PollTaskRegistry) -> PollTaskRegistry:
    """Install ``registry`` as the default and return the previous one."""
    global _default_registry
    previous = _default_registry
    _default_registry = registry
    return previous


def set_should_poll(predicate: ShouldPoll | None) -> None:
    """Override the live/test-control decision on the default registry."""
    get_poll_registry().set_should_poll(predicate)


def poll_task_for(label: str) -> Any:
    """Advance a deferred poll tick on the default registry."""
    return get_poll_registry().advance(label)


__all__ = [
    "PollTask",
    "PollTaskRegistry",
    "ShouldPoll",
    "get_poll_registry",
    "set_poll_registry",
    "set_should_poll",
    "poll_task_for",
    "running_under_test",
]
