"""
Shared pytest fixtures for lifeline tests.

This module provides:
- Global state cleanup (default poll registry, cached settings, env vars)
- A deterministic ManualTimerBackend clock
- Isolated poll registries for test-control and live modes
- A Widget owner with recordable methods

Usage:
    def test_something(widget, clock):
        widget.tasks.run_task(widget.log, 1.0)
        clock.advance(1.0)
"""

from collections.abc import Generator
from typing import Any

import pytest

from lifeline import LifecycleOwner
from lifeline.core.settings import get_settings
from lifeline.tasks.polling import PollTaskRegistry, get_poll_registry
from lifeline.timers import ManualTimerBackend

_LIFELINE_ENV = (
    "LIFELINE_LOG_LEVEL",
    "LIFELINE_LOG_FORMAT",
    "LIFELINE_POLL_MODE",
    "LIFELINE_TIMER_BACKEND",
)


class Widget(LifecycleOwner):
    """Owner that records every method invocation."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.calls: list[tuple[str, tuple, dict]] = []
        self.not_a_method = 42

    def save(self, *args: Any, **kwargs: Any) -> None:
        self.calls.append(("save", args, kwargs))

    def log(self) -> None:
        self.calls.append(("log", (), {}))

    def names(self) -> list[str]:
        return [name for name, _, _ in self.calls]


# =============================================================================
# Global State Cleanup
# =============================================================================


@pytest.fixture(autouse=True)
def reset_lifeline_state(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """
    Reset process-wide lifeline state before and after each test.

    Ensures no test leaks labels, queued poll ticks, predicate overrides or
    cached settings into another.
    """
    for var in _LIFELINE_ENV:
        monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()
    get_poll_registry().reset()
    yield
    get_poll_registry().reset()
    get_settings.cache_clear()


# =============================================================================
# Clocks and Registries
# =============================================================================


@pytest.fixture
def clock() -> ManualTimerBackend:
    """Virtual clock starting at t=0."""
    return ManualTimerBackend()


@pytest.fixture
def polls() -> PollTaskRegistry:
    """Poll registry forced into test-control mode."""
    return PollTaskRegistry(should_poll=lambda: False)


@pytest.fixture
def live_polls() -> PollTaskRegistry:
    """Poll registry forced into live mode."""
    return PollTaskRegistry(should_poll=lambda: True)


# =============================================================================
# Owners
# =============================================================================


@pytest.fixture
def widget_cls() -> type[Widget]:
    return Widget


@pytest.fixture
def make_widget(clock: ManualTimerBackend, polls: PollTaskRegistry):
    """Factory for Widgets sharing the test clock and poll registry."""

    def factory(**kwargs: Any) -> Widget:
        kwargs.setdefault("backend", clock)
        kwargs.setdefault("poll_registry", polls)
        return Widget(**kwargs)

    return factory


@pytest.fixture
def widget(make_widget) -> Widget:
    return make_widget()
