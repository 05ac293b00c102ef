"""Factory for a shared event bus, and its FastAPI wiring.

The application lifespan owns the bus: it is stored on ``app.state`` at
startup and cleared at shutdown. Request handlers that depend on
:func:`scoped_event_bus` get subscriptions that end with the request.
"""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import AsyncIterator, Callable, Iterator, NamedTuple

from fastapi import FastAPI, Request

from eventbus.domain.bus import EventBus
from eventbus.domain.models import BusConfig
from eventbus.domain.scoped import ScopedEventBus
from eventbus.services.scheduling import Scheduler


class EventBusHandle(NamedTuple):
    event_bus: EventBus
    use_event_bus: Callable[[], ScopedEventBus]


def create_event_bus(
    config: BusConfig | None = None,
    *,
    scheduler: Scheduler | None = None,
) -> EventBusHandle:
    """Create a bus plus a factory for scoped views onto it."""
    event_bus = EventBus(config, scheduler=scheduler)
    return EventBusHandle(
        event_bus=event_bus,
        use_event_bus=lambda: ScopedEventBus(event_bus),
    )


# ── FastAPI wiring ────────────────────────────────────────────────────


def event_bus_lifespan(
    handle: EventBusHandle,
) -> Callable[[FastAPI], AbstractAsyncContextManager[None]]:
    """Return a lifespan for ``FastAPI(lifespan=...)`` bound to *handle*."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.event_bus = handle
        try:
            yield
        finally:
            handle.event_bus.clear()

    return lifespan


def get_event_bus(request: Request) -> EventBus:
    return request.app.state.event_bus.event_bus


def scoped_event_bus(request: Request) -> Iterator[ScopedEventBus]:
    """Dependency yielding a scoped bus that unsubscribes when the request ends."""
    with request.app.state.event_bus.use_event_bus() as scoped:
        yield scoped
