"""Tests for run_task / cancel_task."""

import pytest

from lifeline import LifecycleTaskRegistry
from lifeline.core.errors import InvalidArgumentError, PreconditionError


class TestRunTask:
    """Delayed task scheduling bound to an owner."""

    def test_runs_after_delay(self, widget, clock):
        widget.tasks.run_task(widget.log, 1.0)
        clock.advance(0.5)
        assert widget.calls == []
        clock.advance(0.5)
        assert widget.names() == ["log"]

    def test_default_delay_is_zero(self, widget, clock):
        handle = widget.tasks.run_task(widget.log)
        assert handle.when == pytest.approx(0.0)
        clock.run_due()
        assert widget.names() == ["log"]

    def test_method_name_is_resolved_against_owner(self, widget, clock):
        widget.tasks.run_task("log", 0.1)
        clock.advance(0.1)
        assert widget.names() == ["log"]

    def test_unresolvable_name_rejected(self, widget):
        with pytest.raises(InvalidArgumentError) as excinfo:
            widget.tasks.run_task("does_not_exist")
        assert "run_task" in str(excinfo.value)

    def test_non_callable_attribute_rejected(self, widget):
        with pytest.raises(InvalidArgumentError):
            widget.tasks.run_task("not_a_method")

    def test_non_callable_rejected(self, widget):
        with pytest.raises(InvalidArgumentError):
            widget.tasks.run_task(42)

    def test_returns_handle_that_can_cancel(self, widget, clock):
        handle = widget.tasks.run_task(widget.log, 1.0)
        assert handle in widget.tasks.pending_timers
        assert widget.tasks.cancel_task(handle) is True
        assert widget.tasks.pending_timers == ()
        clock.advance(2)
        assert widget.calls == []

    def test_schedule_then_cancel_never_runs(self, widget, clock):
        for delay in (0, 0.1, 1, 10):
            widget.tasks.cancel_task(widget.tasks.run_task(widget.log, delay))
        clock.flush()
        assert widget.calls == []

    def test_handle_removed_before_callback_body(self, widget, clock):
        seen = []

        def callback():
            seen.append(widget.tasks.pending_timers)
            seen.append(widget.tasks.cancel_task(handle))

        handle = widget.tasks.run_task(callback, 0.1)
        clock.advance(0.1)
        assert seen == [(), False]

    def test_pending_set_tracks_outstanding_timers(self, widget, clock):
        first = widget.tasks.run_task(widget.log, 1)
        second = widget.tasks.run_task(widget.log, 2)
        assert widget.tasks.pending_timers == (first, second)
        clock.advance(1)
        assert widget.tasks.pending_timers == (second,)


class TestCancelTask:
    """Cancellation is idempotent and re-entrant."""

    def test_cancel_unknown_or_fired_is_noop(self, widget, clock):
        assert widget.tasks.cancel_task(None) is False
        assert widget.tasks.cancel_task("bogus") is False

        handle = widget.tasks.run_task(widget.log, 0.1)
        clock.advance(0.1)
        assert widget.tasks.cancel_task(handle) is False
        assert widget.tasks.cancel_task(handle) is False

    def test_cancel_from_inside_other_callback(self, widget, clock):
        victim = widget.tasks.run_task(widget.log, 0.2)
        widget.tasks.run_task(lambda: widget.tasks.cancel_task(victim), 0.1)
        clock.advance(1)
        assert widget.calls == []

    def test_cannot_cancel_another_owners_timer(self, make_widget, clock):
        a, b = make_widget(), make_widget()
        handle = b.tasks.run_task(b.log, 1)

        assert a.tasks.cancel_task(handle) is False
        assert handle.pending
        assert b.tasks.pending_timers == (handle,)
        assert a.tasks.stats().tasks_cancelled == 0

        clock.advance(1)
        assert b.names() == ["log"]
        assert b.tasks.pending_timers == ()

    def test_throttle_handle_is_not_cancelable(self, widget):
        window = widget.tasks.throttle_task("save", wait=1)
        assert widget.tasks.cancel_task(window) is False
        assert window.pending

    def test_cancel_after_destroy_is_noop(self, widget):
        handle = widget.tasks.run_task(widget.log, 1)
        widget.destroy()
        assert widget.tasks.cancel_task(handle) is False


class TestPreconditions:
    """Scheduling on a destroyed owner fails fast."""

    def test_run_task_on_destroyed_owner(self, widget):
        widget.destroy()
        with pytest.raises(PreconditionError) as excinfo:
            widget.tasks.run_task(widget.log)
        assert "destroyed" in str(excinfo.value)
        assert excinfo.value.context.operation == "run_task"

    def test_default_backend_created_lazily(self, monkeypatch):
        from lifeline.core.settings import get_settings
        from lifeline.timers import ManualTimerBackend

        monkeypatch.setenv("LIFELINE_TIMER_BACKEND", "manual")
        get_settings.cache_clear()

        registry = LifecycleTaskRegistry(object())
        assert isinstance(registry.backend, ManualTimerBackend)
        assert registry.backend is registry.backend
