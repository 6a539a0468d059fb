"""Tests for the Kivy scheduler and the debounced widget factory."""

from typing import Any, Callable, List

import pytest

pytest.importorskip("kivy")

from kivy.event import EventDispatcher
from kivy.properties import ObjectProperty, StringProperty

from debouncer import ConfigError
from debouncer.kivy_host import KivyClockScheduler, debounced


class _Pad(EventDispatcher):
    parent = ObjectProperty(None, allownone=True)
    label = StringProperty("")
    submit = ObjectProperty(None, allownone=True)

    def __init__(self, **kwargs: Any) -> None:
        self.parent_changes: List[Any] = []
        super().__init__(**kwargs)

    def on_parent(self, instance: Any, parent: Any) -> None:
        self.parent_changes.append(parent)


class _FakeClockEvent:
    def __init__(self, callback: Callable[[float], None], timeout: float) -> None:
        self.callback = callback
        self.timeout = timeout
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class _FakeClock:
    def __init__(self) -> None:
        self.events: List[_FakeClockEvent] = []

    def schedule_once(self, callback: Callable[[float], None], timeout: float = 0) -> _FakeClockEvent:
        event = _FakeClockEvent(callback, timeout)
        self.events.append(event)
        return event


def test_kivy_scheduler_wraps_schedule_once(monkeypatch: pytest.MonkeyPatch) -> None:
    clock = _FakeClock()
    monkeypatch.setattr("debouncer.kivy_host.Clock", clock)
    fired: List[str] = []

    handle = KivyClockScheduler().call_later(0.25, lambda: fired.append("x"))

    event = clock.events[0]
    assert handle is event
    assert event.timeout == pytest.approx(0.25)
    event.callback(0.25)
    assert fired == ["x"]


def test_debounced_widget_forwards_through_property_and_attribute(scheduler, recorder) -> None:
    seen: List[Any] = []
    DebouncedPad = debounced(
        _Pad,
        {"propTypesToDebounce": ["submit", "reset"], "duration": 100},
        scheduler_factory=lambda: scheduler,
    )
    pad = DebouncedPad(label="Go", submit=recorder, reset=seen.append)

    assert DebouncedPad.__name__ == "Debounced_Pad"
    assert pad.label == "Go"
    pad.submit("first")
    pad.submit("second")
    pad.reset("r")
    assert recorder.args == [("first",)]
    assert seen == ["r"]
    assert pad.debounce_dispatcher.pending_channels() == ("submit", "reset")


def test_debounced_widget_handler_can_be_swapped(scheduler, recorder) -> None:
    DebouncedPad = debounced(
        _Pad,
        {"propTypesToDebounce": "submit", "type": "trailing", "duration": 100},
        scheduler_factory=lambda: scheduler,
    )
    pad = DebouncedPad()
    pad.submit("draft")
    pad.set_debounced_handler("submit", recorder)
    scheduler.advance(0.1)
    assert recorder.args == [("draft",)]

    with pytest.raises(KeyError):
        pad.set_debounced_handler("label", print)


def test_removing_widget_from_parent_cancels_timers(scheduler, recorder) -> None:
    DebouncedPad = debounced(
        _Pad,
        {"propTypesToDebounce": "submit", "type": "throttle", "duration": 100},
        scheduler_factory=lambda: scheduler,
    )
    pad = DebouncedPad(submit=recorder)
    pad.parent = object()
    pad.submit("pending")
    assert scheduler.pending() == 1

    pad.parent = None

    assert not pad.debounce_dispatcher.closed
    assert scheduler.pending() == 0
    assert pad.parent_changes[-1] is None
    scheduler.advance(1.0)
    assert recorder.calls == []


def test_moved_widget_keeps_forwarding(scheduler, recorder) -> None:
    DebouncedPad = debounced(
        _Pad,
        {"propTypesToDebounce": "submit", "type": "trailing", "duration": 100},
        scheduler_factory=lambda: scheduler,
    )
    pad = DebouncedPad(submit=recorder)
    first_parent, second_parent = object(), object()
    pad.parent = first_parent
    pad.submit("before-move")

    pad.parent = None
    pad.parent = second_parent
    pad.submit("after-move")
    scheduler.advance(0.1)

    assert recorder.args == [("after-move",)]
    assert pad.parent_changes == [first_parent, None, second_parent]


def test_dispose_debounce_is_final(scheduler, recorder) -> None:
    DebouncedPad = debounced(_Pad, "submit", scheduler_factory=lambda: scheduler)
    pad = DebouncedPad(submit=recorder)
    pad.dispose_debounce()
    pad.dispose_debounce()

    assert pad.debounce_dispatcher.closed
    pad.submit("late")
    pad.parent = None
    assert recorder.calls == []


def test_each_instance_owns_its_dispatcher(scheduler, recorder) -> None:
    DebouncedPad = debounced(_Pad, "submit", scheduler_factory=lambda: scheduler)
    first = DebouncedPad(submit=recorder)
    second = DebouncedPad(submit=recorder)
    first.submit(1)
    second.submit(2)
    assert recorder.args == [(1,), (2,)]
    assert first.debounce_dispatcher is not second.debounce_dispatcher


def test_invalid_config_fails_when_class_is_built() -> None:
    with pytest.raises(ConfigError):
        debounced(_Pad, {"duration": 100})
