"""Synchronous in-process event bus with prioritised, modifiable listeners."""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from functools import partial
from typing import Any

from eventbus.domain.models import (
    BusConfig,
    EventRecord,
    Listener,
    ListenerEntry,
    ListenerOptions,
)
from eventbus.services.scheduling import Scheduler, TimerScheduler
from eventbus.services.wrapping import wrap_listener

logger = logging.getLogger(__name__)


def log_listener_error(event_name: str, error: BaseException) -> None:
    """Default error handler: log the failure with its traceback."""
    logger.error(
        "Error executing listener for event %r", event_name, exc_info=error
    )


class EventBus:
    """Publish/subscribe bus keyed by event name.

    Listeners run synchronously on the publisher's thread, highest
    priority first and in registration order among equal priorities. A
    listener that raises is reported to the configured error handler and
    does not stop the others.

    Debounced and throttled listeners rely on *scheduler* for their
    timers; it defaults to :class:`TimerScheduler`.
    """

    def __init__(
        self,
        config: BusConfig | None = None,
        *,
        scheduler: Scheduler | None = None,
    ) -> None:
        self.config = config or BusConfig()
        self.scheduler = scheduler or TimerScheduler()
        self._events: dict[str, EventRecord] = {}
        self._lock = threading.RLock()

    @property
    def max_listeners(self) -> int:
        return self.config.max_listeners

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def subscribe(
        self,
        event_name: str,
        listener: Listener,
        options: ListenerOptions | Mapping[str, Any] | None = None,
        **option_fields: Any,
    ) -> None:
        """Register *listener* for *event_name*.

        Options come as a :class:`ListenerOptions`, a mapping, keyword
        arguments, or a mix (keywords override). Unknown option names
        raise ``pydantic.ValidationError``.

        With ``immediate=True`` (and ``once=False``) the listener is also
        called once right away with no arguments. With ``once=True`` there
        is never an early call: the listener fires on the next publish only,
        whether or not ``immediate`` is set.
        """
        opts = _coerce_options(options, option_fields)
        wrapped = wrap_listener(
            listener,
            opts,
            self.scheduler,
            remove=partial(self.unsubscribe, event_name, listener),
            on_error=partial(self._handle_error, event_name),
        )

        if opts.immediate and not opts.once:
            self._invoke(event_name, wrapped, (), {})

        with self._lock:
            record = self._events.setdefault(event_name, EventRecord())
            record.listeners.append(
                ListenerEntry(
                    wrapped_listener=wrapped,
                    original_listener=listener,
                    priority=opts.priority,
                )
            )
            record.sorted = False
            count = len(record.listeners)

        if count > self.max_listeners:
            logger.warning(
                "More than %d listeners for event %r (%d registered)",
                self.max_listeners,
                event_name,
                count,
            )

    def unsubscribe(self, event_name: str, listener: Listener) -> None:
        """Remove every registration of *listener* for *event_name*."""
        with self._lock:
            record = self._events.get(event_name)
            if record is None:
                return
            record.listeners = [
                entry
                for entry in record.listeners
                if entry.original_listener != listener
            ]
            record.sorted = False

    def publish(self, event_name: str, *args: Any, **kwargs: Any) -> None:
        """Call every listener of *event_name* with the given arguments."""
        with self._lock:
            record = self._events.get(event_name)
            if record is None:
                return
            record.sort_by_priority()
            entries = list(record.listeners)

        for entry in entries:
            self._invoke(event_name, entry.wrapped_listener, args, kwargs)

    def clear(self) -> None:
        """Drop every event and listener. Pending timers are left alone."""
        with self._lock:
            self._events.clear()

    # ------------------------------------------------------------------
    # Error isolation
    # ------------------------------------------------------------------

    def _invoke(
        self, event_name: str, listener: Listener, args: tuple, kwargs: dict
    ) -> None:
        try:
            listener(*args, **kwargs)
        except Exception as exc:
            self._handle_error(event_name, exc)

    def _handle_error(self, event_name: str, error: BaseException) -> None:
        self.config.error_handler(event_name, error)


def _coerce_options(
    options: ListenerOptions | Mapping[str, Any] | None,
    overrides: Mapping[str, Any],
) -> ListenerOptions:
    if options is None and not overrides:
        return ListenerOptions()
    if isinstance(options, ListenerOptions):
        if not overrides:
            return options
        options = options.model_dump()
    return ListenerOptions(**{**(options or {}), **overrides})
