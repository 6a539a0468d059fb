"""Timer facilities used to defer debounced callbacks.

Every scheduler exposes ``call_later(delay_s, callback)`` and returns a handle
with a ``cancel()`` method, mirroring :meth:`kivy.clock.Clock.schedule_once`
and :meth:`asyncio.loop.call_later`.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
import threading
from typing import Callable, List, Optional, Protocol, Tuple

__all__ = [
    "Cancellable",
    "Scheduler",
    "ThreadTimerScheduler",
    "AsyncioScheduler",
    "ManualScheduler",
    "ManualTimer",
    "seconds_to_ns",
]

log = logging.getLogger(__name__)

_NS_PER_SECOND = 1_000_000_000


def seconds_to_ns(seconds: float) -> int:
    """Convert seconds to integer nanoseconds, rounding to the nearest ns."""
    return int(round(float(seconds) * _NS_PER_SECOND))


class Cancellable(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    def call_later(self, delay_s: float, callback: Callable[[], None]) -> Cancellable:
        ...


class ThreadTimerScheduler:
    """Run callbacks on :class:`threading.Timer` daemon threads."""

    def __init__(self, *, name_prefix: str = "debounce") -> None:
        self._name_prefix = name_prefix
        self._counter = itertools.count(1)

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> threading.Timer:
        timer = threading.Timer(max(0.0, float(delay_s)), callback)
        timer.name = f"{self._name_prefix}-timer-{next(self._counter)}"
        timer.daemon = True
        timer.start()
        return timer


class AsyncioScheduler:
    """Schedule callbacks on an asyncio event loop.

    When no loop is given the running loop of the calling thread is used, so
    ``call_later`` must then be invoked from inside that loop.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(max(0.0, float(delay_s)), callback)


class ManualTimer:
    """Handle returned by :class:`ManualScheduler`."""

    __slots__ = ("deadline_ns", "callback", "cancelled")

    def __init__(self, deadline_ns: int, callback: Callable[[], None]) -> None:
        self.deadline_ns = deadline_ns
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Virtual clock for hosts that drive time themselves.

    Time only moves when :meth:`advance` or :meth:`advance_to` is called.
    Deadlines are kept in integer nanoseconds so that millisecond timelines
    compare exactly. Callbacks due at the same instant run in scheduling order,
    and :meth:`now` reports the callback's deadline while it runs.
    """

    def __init__(self, start_s: float = 0.0) -> None:
        self._now_ns = seconds_to_ns(start_s)
        self._queue: List[Tuple[int, int, ManualTimer]] = []
        self._sequence = itertools.count()

    def now(self) -> float:
        return self._now_ns / _NS_PER_SECOND

    def now_ns(self) -> int:
        return self._now_ns

    def pending(self) -> int:
        """Return the number of scheduled callbacks that were not cancelled."""
        return sum(1 for _, _, timer in self._queue if not timer.cancelled)

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> ManualTimer:
        deadline = self._now_ns + max(0, seconds_to_ns(delay_s))
        timer = ManualTimer(deadline, callback)
        heapq.heappush(self._queue, (deadline, next(self._sequence), timer))
        return timer

    def advance(self, seconds: float) -> int:
        """Move the clock forward by ``seconds`` and run due callbacks."""
        return self._run_until(self._now_ns + max(0, seconds_to_ns(seconds)))

    def advance_to(self, seconds: float) -> int:
        """Move the clock to the absolute time ``seconds``.

        Returns the number of callbacks that ran. Moving backwards is an error.
        """
        target_ns = seconds_to_ns(seconds)
        if target_ns < self._now_ns:
            raise ValueError(
                f"cannot move clock backwards ({seconds}s < {self.now()}s)"
            )
        return self._run_until(target_ns)

    def _run_until(self, target_ns: int) -> int:
        fired = 0
        while self._queue and self._queue[0][0] <= target_ns:
            deadline, _, timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self._now_ns = deadline
            fired += 1
            timer.callback()
        self._now_ns = target_ns
        if fired:
            log.debug("Manual clock at %.3fs after %d callback(s)", self.now(), fired)
        return fired
