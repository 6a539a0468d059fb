"""Wrap a set of named handlers so that selected ones are debounced."""

from __future__ import annotations

import logging
from typing import Any, Iterator, Mapping, Optional

from core.clock import Scheduler
from core.config import DebounceSettings
from debouncer.config import DebouncerConfig, resolve_config
from debouncer.dispatcher import RateLimitedDispatcher

__all__ = ["DebouncedCapabilities", "create_dispatcher"]

log = logging.getLogger(__name__)


class DebouncedCapabilities(Mapping[str, Any]):
    """Read-only view of ``capabilities`` with debounced channel entries.

    Keys named in the configuration resolve to the dispatcher's forwarding
    callables; every other key passes through unchanged. ``capabilities`` is
    held by reference and consulted on each forward, so handlers may be
    replaced at any time.

    The configuration is validated in the constructor. The dispatcher itself
    is created by :meth:`on_attach` and torn down by :meth:`on_detach`. Until
    then channel keys are listed but raise ``KeyError`` when read.
    """

    def __init__(
        self,
        capabilities: Optional[Mapping[str, Any]],
        config: Any,
        *,
        scheduler: Optional[Scheduler] = None,
        settings: Optional[DebounceSettings] = None,
    ) -> None:
        self._settings = settings
        self._config: DebouncerConfig = resolve_config(config, settings=settings)
        self._capabilities: Mapping[str, Any] = capabilities if capabilities is not None else {}
        self._scheduler = scheduler
        self._dispatcher: Optional[RateLimitedDispatcher] = None
        self._detached = False

    @property
    def config(self) -> DebouncerConfig:
        return self._config

    @property
    def dispatcher(self) -> Optional[RateLimitedDispatcher]:
        return self._dispatcher

    @property
    def attached(self) -> bool:
        return self._dispatcher is not None and not self._detached

    # ------------------------------------------------------------------
    def on_attach(self) -> "DebouncedCapabilities":
        if self._detached:
            raise RuntimeError("capabilities were detached; create a new instance")
        if self._dispatcher is None:
            self._dispatcher = RateLimitedDispatcher(
                self._config,
                self._lookup_handler,
                scheduler=self._scheduler,
                settings=self._settings,
            )
            log.debug("Attached debounced capabilities for %s", ", ".join(self._config.channels))
        return self

    def on_detach(self) -> None:
        if self._detached:
            return
        self._detached = True
        if self._dispatcher is not None:
            self._dispatcher.dispose()

    def rebind(self, capabilities: Mapping[str, Any]) -> None:
        """Replace the whole set of underlying handlers and metadata."""
        self._capabilities = capabilities

    def _lookup_handler(self, name: str) -> Any:
        return self._capabilities.get(name)

    # ------------------------------------------------------------------
    def __getitem__(self, key: str) -> Any:
        if key in self._config.channels:
            if self._dispatcher is None:
                raise KeyError(key)
            return self._dispatcher.handlers[key]
        return self._capabilities[key]

    def __iter__(self) -> Iterator[str]:
        yield from dict.fromkeys([*self._capabilities, *self._config.channels])

    def __len__(self) -> int:
        return len(dict.fromkeys([*self._capabilities, *self._config.channels]))

    def __contains__(self, key: object) -> bool:
        return key in self._config.channels or key in self._capabilities


def create_dispatcher(
    capabilities: Optional[Mapping[str, Any]],
    config: Any,
    *,
    scheduler: Optional[Scheduler] = None,
    settings: Optional[DebounceSettings] = None,
) -> DebouncedCapabilities:
    """Validate ``config`` and return attached, debounced ``capabilities``."""

    wrapped = DebouncedCapabilities(
        capabilities, config, scheduler=scheduler, settings=settings
    )
    return wrapped.on_attach()
