"""Keyed rate-limiting dispatcher."""

from __future__ import annotations

import functools
import logging
import threading
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Set, Tuple

from core.clock import Scheduler, ThreadTimerScheduler
from core.config import DEFAULT_SETTINGS, DebounceSettings
from debouncer.config import DebouncerConfig, resolve_config
from debouncer.policies import Call, ChannelState, resolve_policy

__all__ = ["RateLimitedDispatcher", "HandlerLookup"]

log = logging.getLogger(__name__)

HandlerLookup = Callable[[str], Any]


class RateLimitedDispatcher:
    """Route calls on named channels through their debounce policy.

    ``handler_lookup`` is asked for the downstream callable every time a call
    is forwarded, so handlers swapped between calls take effect immediately.
    A missing or non-callable handler turns the forward into a no-op.
    """

    def __init__(
        self,
        config: Any,
        handler_lookup: HandlerLookup,
        *,
        scheduler: Optional[Scheduler] = None,
        settings: Optional[DebounceSettings] = None,
    ) -> None:
        self._settings = settings or DEFAULT_SETTINGS
        self._config: DebouncerConfig = resolve_config(config, settings=self._settings)
        self._handler_lookup = handler_lookup
        self._scheduler: Scheduler = scheduler or ThreadTimerScheduler()
        self._lock = threading.Lock()
        self._closed = False
        self._warned_missing: Set[str] = set()
        self._channels: Dict[str, ChannelState] = {}
        self._forwarders: Dict[str, Callable[..., None]] = {}

        for name in self._config.channels:
            channel_policy = self._config.policy_for(name)
            forward = functools.partial(self.trigger, name)
            self._channels[name] = ChannelState(
                name=name,
                duration_s=channel_policy.duration_s,
                policy=resolve_policy(channel_policy.debounce_type),
                forward=forward,
            )
            self._forwarders[name] = forward

        log.info(
            "Debouncing %d channel(s) %s (%s, %sms)",
            len(self._channels),
            ", ".join(self._channels),
            self._config.debounce_type.value,
            self._config.duration_ms,
        )

    # ------------------------------------------------------------------
    @property
    def config(self) -> DebouncerConfig:
        return self._config

    @property
    def channels(self) -> Tuple[str, ...]:
        return self._config.channels

    @property
    def handlers(self) -> Mapping[str, Callable[..., None]]:
        """Channel name to the debounced entry point handed to the caller."""
        return MappingProxyType(self._forwarders)

    @property
    def closed(self) -> bool:
        return self._closed

    def is_blocked(self, channel: str) -> bool:
        state = self._channels.get(channel)
        return bool(state and state.blocked)

    def pending_channels(self) -> Tuple[str, ...]:
        return tuple(name for name, state in self._channels.items() if state.blocked)

    # ------------------------------------------------------------------
    def trigger(self, channel: str, *args: Any, **kwargs: Any) -> None:
        """Submit a call on ``channel``; the policy decides what happens to it."""

        if self._closed:
            log.debug("Dispatcher disposed; dropping call on %s", channel)
            return
        state = self._channels.get(channel)
        if state is None:
            raise KeyError(f"unknown channel {channel!r}")

        with state.lock:
            if self._closed:
                return
            was_blocked = state.blocked
            call = state.policy.on_trigger(state, (args, kwargs), self._schedule)
        if call is not None:
            self._forward(channel, call)
        elif was_blocked:
            log.debug("Call on %s absorbed by %s window", channel, state.policy.kind.value)

    def cancel_pending(self) -> int:
        """Cancel outstanding timers and return every channel to idle.

        The dispatcher stays open, so later triggers are handled normally.
        Returns the number of timers cancelled.
        """

        cancelled = 0
        for state in self._channels.values():
            with state.lock:
                if state.blocked and state.cancel_pending():
                    cancelled += 1
                # Invalidate timers that already fired but have not run yet.
                state.generation += 1
                state.release()
        if cancelled:
            log.debug("Cancelled %d pending timer(s)", cancelled)
        return cancelled

    def dispose(self) -> None:
        """Cancel every outstanding timer and drop all channel state.

        Safe to call more than once; later calls do nothing.
        """

        with self._lock:
            if self._closed:
                return
            self._closed = True

        cancelled = self.cancel_pending()
        self._channels.clear()
        log.info("Dispatcher disposed (%d pending timer(s) cancelled)", cancelled)

    def __enter__(self) -> "RateLimitedDispatcher":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.dispose()

    # ------------------------------------------------------------------
    def _schedule(self, state: ChannelState) -> None:
        state.generation += 1
        generation = state.generation
        state.pending = self._scheduler.call_later(
            state.duration_s, lambda: self._expire(state, generation)
        )
        log.debug("%s: window open for %.3fs", state.name, state.duration_s)

    def _expire(self, state: ChannelState, generation: int) -> None:
        with state.lock:
            if self._closed or state.generation != generation:
                return
            call = state.policy.on_expire(state)
        if call is not None:
            self._forward(state.name, call)

    def _forward(self, channel: str, call: Call) -> None:
        handler = self._handler_lookup(channel)
        if not callable(handler):
            if not self._settings.warn_missing_handler:
                return
            with self._lock:
                first = channel not in self._warned_missing
                self._warned_missing.add(channel)
            if first:
                log.warning("No callable handler bound for channel %s; call ignored", channel)
            return
        args, kwargs = call
        handler(*args, **kwargs)
