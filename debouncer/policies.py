"""Per-channel state and the three debounce policies.

Each policy is a pair of functions operating on a :class:`ChannelState` while
the channel lock is held:

``on_trigger(state, call, schedule)``
    Called for every trigger. Returns the call to forward immediately, or
    ``None``. ``schedule(state)`` arms a fresh timer for the channel.
``on_expire(state)``
    Called when the channel's current timer fires. Returns the call to
    forward, or ``None``.

Forwarding itself is done by the dispatcher after the lock is released.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple

from core.clock import Cancellable
from debouncer.config import DebounceType

__all__ = [
    "Call",
    "ChannelState",
    "Policy",
    "POLICIES",
    "resolve_policy",
]

Call = Tuple[Tuple[Any, ...], Dict[str, Any]]
ScheduleFn = Callable[["ChannelState"], None]


@dataclass
class ChannelState:
    """Mutable state owned by a single channel."""

    name: str
    duration_s: float
    policy: "Policy"
    forward: Optional[Callable[..., None]] = None
    blocked: bool = False
    pending: Optional[Cancellable] = None
    pending_call: Optional[Call] = None
    generation: int = 0
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def release(self) -> Optional[Call]:
        """Return to idle and hand back the stored call, if any."""
        call = self.pending_call
        self.blocked = False
        self.pending = None
        self.pending_call = None
        return call

    def cancel_pending(self) -> bool:
        if self.pending is None:
            return False
        self.pending.cancel()
        self.pending = None
        return True


@dataclass(frozen=True)
class Policy:
    kind: DebounceType
    on_trigger: Callable[[ChannelState, Call, ScheduleFn], Optional[Call]]
    on_expire: Callable[[ChannelState], Optional[Call]]


def _leading_trigger(state: ChannelState, call: Call, schedule: ScheduleFn) -> Optional[Call]:
    if state.blocked:
        return None
    state.blocked = True
    schedule(state)
    return call


def _leading_expire(state: ChannelState) -> Optional[Call]:
    state.release()
    return None


def _trailing_trigger(state: ChannelState, call: Call, schedule: ScheduleFn) -> Optional[Call]:
    # A burst keeps pushing the deadline out and only the newest call survives.
    if state.blocked:
        state.cancel_pending()
    state.blocked = True
    state.pending_call = call
    schedule(state)
    return None


def _throttle_trigger(state: ChannelState, call: Call, schedule: ScheduleFn) -> Optional[Call]:
    if state.blocked:
        return None
    state.blocked = True
    state.pending_call = call
    schedule(state)
    return None


def _deferred_expire(state: ChannelState) -> Optional[Call]:
    return state.release()


POLICIES: Dict[DebounceType, Policy] = {
    DebounceType.LEADING_EDGE: Policy(
        DebounceType.LEADING_EDGE, _leading_trigger, _leading_expire
    ),
    DebounceType.TRAILING_EDGE: Policy(
        DebounceType.TRAILING_EDGE, _trailing_trigger, _deferred_expire
    ),
    DebounceType.THROTTLE: Policy(
        DebounceType.THROTTLE, _throttle_trigger, _deferred_expire
    ),
}


def resolve_policy(kind: Any) -> Policy:
    """Return the :class:`Policy` registered for ``kind``.

    ``kind`` may be a :class:`DebounceType` or anything
    :meth:`DebounceType.coerce` accepts.
    """

    return POLICIES[DebounceType.coerce(kind)]
