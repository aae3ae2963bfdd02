"""Tests for debounce_task / cancel_debounce / throttle_task."""

import pytest

from lifeline.core.errors import InvalidArgumentError, PreconditionError


class TestDebounceTask:
    """Debounce collapsing per (owner, name)."""

    def test_three_calls_collapse_into_one(self, widget, clock):
        """Calls at t=0, 100ms, 200ms with a 300ms wait run once at ~500ms."""
        widget.tasks.debounce_task("save", wait=0.3)
        clock.advance(0.1)
        widget.tasks.debounce_task("save", wait=0.3)
        clock.advance(0.1)
        handle = widget.tasks.debounce_task("save", wait=0.3)

        assert handle.when == pytest.approx(0.5)
        clock.run_until(0.45)
        assert widget.calls == []
        clock.run_until(0.5)
        assert widget.names() == ["save"]

    def test_latest_arguments_win(self, widget, clock):
        for i in range(5):
            widget.tasks.debounce_task("save", i, wait=1, source=f"call-{i}")
        clock.advance(1)
        assert widget.calls == [("save", (4,), {"source": "call-4"})]

    def test_fresh_handle_each_call(self, widget):
        first = widget.tasks.debounce_task("save", wait=1)
        second = widget.tasks.debounce_task("save", wait=1)
        assert first is not second
        assert widget.tasks.pending_debounces == ("save",)

    def test_entry_removed_before_invocation(self, widget, clock, monkeypatch):
        seen = []
        monkeypatch.setattr(widget, "save", lambda: seen.append(widget.tasks.pending_debounces))
        widget.tasks.debounce_task("save", wait=0.1)
        clock.advance(0.1)
        assert seen == [()]

    def test_nested_debounce_starts_new_window(self, widget, clock, monkeypatch):
        runs = []

        def save(n):
            runs.append(n)
            if n == 1:
                widget.tasks.debounce_task("save", 2, wait=1)

        monkeypatch.setattr(widget, "save", save)
        widget.tasks.debounce_task("save", 1, wait=1)
        clock.advance(1)
        assert runs == [1]
        assert widget.tasks.pending_debounces == ("save",)
        clock.advance(1)
        assert runs == [1, 2]

    def test_names_are_independent(self, widget, clock):
        widget.tasks.debounce_task("save", wait=1)
        widget.tasks.debounce_task("log", wait=1)
        clock.advance(1)
        assert sorted(widget.names()) == ["log", "save"]

    def test_owners_are_independent(self, make_widget, clock):
        a, b = make_widget(), make_widget()
        a.tasks.debounce_task("save", "a", wait=1)
        b.tasks.debounce_task("save", "b", wait=1)
        clock.advance(1)
        assert a.calls == [("save", ("a",), {})]
        assert b.calls == [("save", ("b",), {})]

    def test_name_must_be_string(self, widget):
        with pytest.raises(InvalidArgumentError) as excinfo:
            widget.tasks.debounce_task(widget.save, wait=1)
        assert "without a string" in str(excinfo.value)

    def test_name_must_resolve_to_method(self, widget):
        with pytest.raises(InvalidArgumentError):
            widget.tasks.debounce_task("missing", wait=1)
        with pytest.raises(InvalidArgumentError):
            widget.tasks.debounce_task("not_a_method", wait=1)

    def test_negative_wait_rejected(self, widget):
        with pytest.raises(InvalidArgumentError):
            widget.tasks.debounce_task("save", wait=-1)

    def test_destroyed_owner(self, widget):
        widget.destroy()
        with pytest.raises(PreconditionError):
            widget.tasks.debounce_task("save", wait=1)


class TestCancelDebounce:
    """cancel_debounce()."""

    def test_cancel_pending(self, widget, clock):
        widget.tasks.debounce_task("save", wait=1)
        assert widget.tasks.cancel_debounce("save") is True
        clock.advance(2)
        assert widget.calls == []
        assert widget.tasks.pending_debounces == ()

    def test_cancel_unknown_is_noop(self, widget):
        assert widget.tasks.cancel_debounce("save") is False
        widget.tasks.debounce_task("log", wait=1)
        assert widget.tasks.cancel_debounce("save") is False

    def test_cancel_after_fire_is_noop(self, widget, clock):
        widget.tasks.debounce_task("save", wait=1)
        clock.advance(1)
        assert widget.tasks.cancel_debounce("save") is False

    def test_cancel_task_with_debounce_handle(self, widget, clock):
        handle = widget.tasks.debounce_task("save", 1, wait=1)
        assert widget.tasks.cancel_task(handle) is True
        assert widget.tasks.pending_debounces == ()
        assert widget.tasks.stats().pending_debounces == 0

        clock.advance(5)
        assert widget.calls == []

        widget.tasks.debounce_task("save", 2, wait=1)
        clock.advance(1)
        assert widget.calls == [("save", (2,), {})]

    def test_superseded_debounce_handle_cancels_nothing(self, widget, clock):
        stale = widget.tasks.debounce_task("save", 1, wait=1)
        widget.tasks.debounce_task("save", 2, wait=1)
        assert widget.tasks.cancel_task(stale) is False
        clock.advance(1)
        assert widget.calls == [("save", (2,), {})]

    def test_cannot_cancel_another_owners_debounce(self, make_widget, clock):
        a, b = make_widget(), make_widget()
        handle = b.tasks.debounce_task("save", wait=1)
        assert a.tasks.cancel_task(handle) is False
        clock.advance(1)
        assert b.names() == ["save"]

    def test_debounce_again_after_cancel(self, widget, clock):
        widget.tasks.debounce_task("save", 1, wait=1)
        widget.tasks.cancel_debounce("save")
        widget.tasks.debounce_task("save", 2, wait=1)
        clock.advance(1)
        assert widget.calls == [("save", (2,), {})]


class TestThrottleTask:
    """Leading-edge throttle."""

    def test_first_call_runs_immediately(self, widget):
        widget.tasks.throttle_task("save", "now", wait=1)
        assert widget.calls == [("save", ("now",), {})]

    def test_repeats_suppressed_within_window(self, widget, clock):
        widget.tasks.throttle_task("save", 1, wait=1)
        widget.tasks.throttle_task("save", 2, wait=1)
        clock.advance(0.5)
        widget.tasks.throttle_task("save", 3, wait=1)
        clock.advance(2)
        assert widget.calls == [("save", (1,), {})]

    def test_runs_again_after_window(self, widget, clock):
        widget.tasks.throttle_task("save", wait=1)
        clock.advance(1)
        widget.tasks.throttle_task("save", wait=1)
        assert widget.names() == ["save", "save"]

    def test_windows_are_per_owner(self, make_widget):
        a, b = make_widget(), make_widget()
        a.tasks.throttle_task("save", wait=1)
        b.tasks.throttle_task("save", wait=1)
        assert a.names() == ["save"]
        assert b.names() == ["save"]

    def test_default_wait_suppresses_same_tick(self, widget, clock):
        widget.tasks.throttle_task("save")
        widget.tasks.throttle_task("save")
        assert widget.names() == ["save"]
        clock.run_due()
        widget.tasks.throttle_task("save")
        assert widget.names() == ["save", "save"]

    def test_preconditions(self, widget):
        with pytest.raises(InvalidArgumentError):
            widget.tasks.throttle_task(123)
        with pytest.raises(InvalidArgumentError):
            widget.tasks.throttle_task("missing")
        widget.destroy()
        with pytest.raises(PreconditionError):
            widget.tasks.throttle_task("save")
