"""Delayed-callback schedulers used by the debounce and throttle modifiers.

A scheduler only needs ``call_later(delay, callback)`` returning a handle
with ``cancel()``. That is the shape of ``asyncio.AbstractEventLoop.call_later``
and of ``threading.Timer``, so both plug in directly. ``ManualScheduler``
drives a virtual clock for tests.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import threading
from typing import Callable, Protocol


class Cancellable(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> Cancellable: ...


class TimerScheduler:
    """Runs each callback on a daemon ``threading.Timer``."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> threading.Timer:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer


class AsyncioScheduler:
    """Schedules callbacks on an asyncio event loop.

    Uses *loop* when given, otherwise the loop running at call time.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)


class ScheduledCall:
    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Virtual-time scheduler: nothing runs until :meth:`advance` is called."""

    def __init__(self) -> None:
        self.now = 0.0
        self._queue: list[tuple[float, int, ScheduledCall]] = []
        self._seq = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledCall:
        call = ScheduledCall(self.now + delay, callback)
        heapq.heappush(self._queue, (call.due, next(self._seq), call))
        return call

    def advance(self, seconds: float) -> None:
        """Move the clock forward, running due callbacks in due-time order.

        Callbacks scheduled while advancing run too if they fall due
        before the new time.
        """
        target = self.now + seconds
        while self._queue and self._queue[0][0] <= target:
            due, _, call = heapq.heappop(self._queue)
            if call.cancelled:
                continue
            self.now = due
            call.callback()
        self.now = target

    @property
    def pending(self) -> int:
        return sum(1 for _, _, call in self._queue if not call.cancelled)
