"""Disposable stack.

A disposable is a zero-argument teardown action that is not tied to the timer
system: unsubscribing a listener, closing a socket, releasing a lock. The
stack runs them in reverse registration order at destroy time, mirroring
stack unwinding so teardown is the inverse of setup.

Handles are monotonically increasing ids rather than list positions, so a
handle keeps pointing at the same action no matter which other disposables
have been run individually in the meantime.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any, NewType

from lifeline.core.errors import InvalidArgumentError, TeardownError
from lifeline.core.logging import get_logger

logger = get_logger(__name__)

DisposableHandle = NewType("DisposableHandle", int)


class DisposableStack:
    """Ordered, id-keyed collection of teardown actions."""

    def __init__(self) -> None:
        self._items: dict[DisposableHandle, Callable[[], Any]] = {}
        self._next_id = 0

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, handle: object) -> bool:
        return handle in self._items

    def __iter__(self) -> Iterator[DisposableHandle]:
        return iter(list(self._items))

    def push(self, action: Callable[[], Any]) -> DisposableHandle:
        """Register ``action`` and return its handle."""
        if not callable(action):
            raise InvalidArgumentError("You must pass a function as a disposable").with_context(
                operation="register_disposable"
            )

        handle = DisposableHandle(self._next_id)
        self._next_id += 1
        self._items[handle] = action
        return handle

    def run(self, handle: DisposableHandle) -> bool:
        """Remove and invoke the disposable for ``handle``.

        Returns False when the handle is not one this stack issued or was
        already run.
        """
        if not isinstance(handle, int):
            return False
        action = self._items.pop(handle, None)
        if action is None:
            return False
        action()
        return True

    def drain(self) -> int:
        """Run every remaining disposable, most recently registered first.

        Actions registered while draining are run in the same pass. A failing
        action does not stop the drain; once everything has run, a
        ``TeardownError`` carrying every failure is raised.

        Returns:
            Number of disposables run.
        """
        errors: list[BaseException] = []
        ran = 0
        while self._items:
            handle, action = self._items.popitem()
            ran += 1
            try:
                action()
            except Exception as exc:
                logger.exception("disposable_failed", handle=handle)
                errors.append(exc)

        if errors:
            raise TeardownError(errors)
        return ran


__all__ = ["DisposableHandle", "DisposableStack"]
