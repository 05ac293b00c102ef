"""Lifecycle-scoped view of an EventBus."""

from __future__ import annotations

from typing import Any, Callable

from eventbus.domain.bus import EventBus
from eventbus.domain.models import Listener


class ScopedEventBus:
    """Delegates to a shared bus and undoes its own subscriptions on close.

    Use it as a context manager, or call :meth:`close` from whatever
    teardown hook the host provides.
    """

    def __init__(self, bus: EventBus) -> None:
        self.bus = bus
        self._cleanups: list[Callable[[], None]] = []
        self.closed = False

    def on(self, event_name: str, listener: Listener, options: Any = None, **option_fields: Any) -> None:
        self.bus.subscribe(event_name, listener, options, **option_fields)
        self._cleanups.append(lambda: self.bus.unsubscribe(event_name, listener))

    def off(self, event_name: str, listener: Listener) -> None:
        self.bus.unsubscribe(event_name, listener)

    def emit(self, event_name: str, *args: Any, **kwargs: Any) -> None:
        self.bus.publish(event_name, *args, **kwargs)

    def reset(self) -> None:
        self.bus.clear()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        cleanups, self._cleanups = self._cleanups, []
        for cleanup in cleanups:
            cleanup()

    def __enter__(self) -> ScopedEventBus:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
