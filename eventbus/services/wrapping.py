"""Listener wrapping pipeline: timing modifier first, then one-shot."""

from __future__ import annotations

from typing import Any, Callable

from eventbus.domain.models import Listener, ListenerOptions
from eventbus.services.scheduling import Cancellable, Scheduler


def debounce(
    listener: Listener,
    delay: float,
    scheduler: Scheduler,
    on_error: Callable[[BaseException], None] | None = None,
) -> Listener:
    """Trailing-edge debounce.

    Each call cancels the pending call and schedules a new one *delay*
    seconds out, carrying the latest arguments. The deferred call runs
    outside any publish, so its failure goes to *on_error* when given.
    """
    pending: Cancellable | None = None

    def fire(args: tuple, kwargs: dict) -> None:
        try:
            listener(*args, **kwargs)
        except Exception as exc:
            if on_error is None:
                raise
            on_error(exc)

    def debounced(*args: Any, **kwargs: Any) -> None:
        nonlocal pending
        if pending is not None:
            pending.cancel()
        pending = scheduler.call_later(delay, lambda: fire(args, kwargs))

    return debounced


def throttle(listener: Listener, interval: float, scheduler: Scheduler) -> Listener:
    """Leading-edge throttle.

    The first call goes through and closes the gate; calls are dropped
    until the gate reopens *interval* seconds later. No trailing call.
    """
    throttled = False

    def reopen() -> None:
        nonlocal throttled
        throttled = False

    def gated(*args: Any, **kwargs: Any) -> None:
        nonlocal throttled
        if throttled:
            return
        throttled = True
        scheduler.call_later(interval, reopen)
        listener(*args, **kwargs)

    return gated


def once(listener: Listener, remove: Callable[[], None]) -> Listener:
    """Call *listener*, then *remove* it. A raising call leaves it registered."""

    def wrapper(*args: Any, **kwargs: Any) -> None:
        listener(*args, **kwargs)
        remove()

    return wrapper


def apply_timing(
    listener: Listener,
    options: ListenerOptions,
    scheduler: Scheduler,
    on_error: Callable[[BaseException], None] | None = None,
) -> Listener:
    if options.debounce > 0:
        return debounce(listener, options.debounce, scheduler, on_error)
    if options.throttle > 0:
        return throttle(listener, options.throttle, scheduler)
    return listener


def wrap_listener(
    listener: Listener,
    options: ListenerOptions,
    scheduler: Scheduler,
    remove: Callable[[], None],
    on_error: Callable[[BaseException], None] | None = None,
) -> Listener:
    """Build the callable stored in the registry for *listener*.

    *remove* unsubscribes the original listener; it is only used when
    ``options.once`` is set.
    """
    wrapped = apply_timing(listener, options, scheduler, on_error)
    if options.once:
        wrapped = once(wrapped, remove)
    return wrapped
