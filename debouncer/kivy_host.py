"""Kivy integration: Clock-backed scheduler and a debounced widget factory."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional, Type

from kivy.clock import Clock
from kivy.properties import Property

from core.clock import Scheduler
from debouncer.capabilities import DebouncedCapabilities
from debouncer.config import DebouncerConfig, resolve_config

__all__ = ["KivyClockScheduler", "debounced"]

log = logging.getLogger(__name__)


class KivyClockScheduler:
    """Defer callbacks with :meth:`kivy.clock.Clock.schedule_once`.

    Callbacks run on the Kivy main loop, so triggers coming from widget events
    and the deferred forwards never overlap.
    """

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> Any:
        return Clock.schedule_once(lambda _dt: callback(), max(0.0, float(delay_s)))


def debounced(
    widget_cls: Type[Any],
    config: Any,
    *,
    scheduler_factory: Callable[[], Scheduler] = KivyClockScheduler,
) -> Type[Any]:
    """Return a subclass of ``widget_cls`` whose channel handlers are debounced.

    Handlers are passed as keyword arguments named after the channels::

        SaveButton = debounced(Button, {"propTypesToDebounce": "submit", "duration": 500})
        button = SaveButton(text="Save", submit=self.save)
        button.bind(on_release=button.submit)

    The instance exposes the debounced forwarders under the same attribute
    names (as the Kivy property value when ``widget_cls`` declares one).
    Removing the widget from its parent cancels pending timers but keeps the
    handlers live, so a moved widget keeps working. :meth:`dispose_debounce`
    tears the dispatcher down for good.
    """

    resolved: DebouncerConfig = resolve_config(config)
    property_channels = tuple(
        name for name in resolved.channels if isinstance(getattr(widget_cls, name, None), Property)
    )

    class DebouncedWidget(widget_cls):  # type: ignore[misc, valid-type]
        debounce_config = resolved

        def __init__(self, **kwargs: Any) -> None:
            bindings: Dict[str, Any] = {
                name: kwargs.pop(name) for name in resolved.channels if name in kwargs
            }
            self._debounce_bindings = bindings
            self._debounce = DebouncedCapabilities(
                bindings, resolved, scheduler=scheduler_factory()
            ).on_attach()
            for name in property_channels:
                kwargs[name] = self._debounce[name]
            super().__init__(**kwargs)
            for name in resolved.channels:
                if name not in property_channels:
                    setattr(self, name, self._debounce[name])

        @property
        def debounce_dispatcher(self) -> Any:
            return self._debounce.dispatcher

        def set_debounced_handler(self, name: str, handler: Optional[Callable[..., Any]]) -> None:
            if name not in resolved.channels:
                raise KeyError(f"{name!r} is not a debounced channel")
            if handler is None:
                self._debounce_bindings.pop(name, None)
            else:
                self._debounce_bindings[name] = handler

        def dispose_debounce(self) -> None:
            self._debounce.on_detach()

        def on_parent(self, instance: Any, parent: Any) -> None:
            if parent is None and self._debounce.attached:
                # The widget may be re-added; only pending timers are dropped.
                cancelled = self._debounce.dispatcher.cancel_pending()
                log.debug(
                    "%s detached from parent; cancelled %d timer(s)", type(self).__name__, cancelled
                )
            parent_hook = getattr(super(), "on_parent", None)
            if callable(parent_hook):
                parent_hook(instance, parent)

    DebouncedWidget.__name__ = f"Debounced{widget_cls.__name__}"
    DebouncedWidget.__qualname__ = DebouncedWidget.__name__
    return DebouncedWidget
