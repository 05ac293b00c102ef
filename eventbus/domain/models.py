"""Domain models for the event bus: listener options, bus config and registry records."""

from __future__ import annotations

import os
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field

Listener = Callable[..., Any]
ErrorHandler = Callable[[str, BaseException], None]

DEFAULT_MAX_LISTENERS = 20


def _default_error_handler() -> ErrorHandler:
    from eventbus.domain.bus import log_listener_error

    return log_listener_error


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ListenerOptions(BaseModel):
    """Per-subscription modifiers. Durations are in seconds.

    When both ``debounce`` and ``throttle`` are set, debounce wins.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    priority: int = 0
    once: bool = False
    immediate: bool = False
    debounce: float = Field(default=0, ge=0)
    throttle: float = Field(default=0, ge=0)


class BusConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    max_listeners: int = Field(default=DEFAULT_MAX_LISTENERS, ge=0)
    error_handler: ErrorHandler = Field(default_factory=_default_error_handler)

    @classmethod
    def from_env(cls, **overrides: Any) -> BusConfig:
        """Build a config, taking ``max_listeners`` from EVENTBUS_MAX_LISTENERS if set."""
        values: dict[str, Any] = {}
        raw = os.environ.get("EVENTBUS_MAX_LISTENERS")
        if raw:
            values["max_listeners"] = raw
        values.update(overrides)
        return cls(**values)


# ---------------------------------------------------------------------------
# Registry records
# ---------------------------------------------------------------------------


class ListenerEntry(BaseModel):
    """A registered listener.

    ``original_listener`` is the callable the caller passed in; it is the
    identity used for removal, whatever wrapping was applied.
    """

    wrapped_listener: Listener
    original_listener: Listener
    priority: int = 0


class EventRecord(BaseModel):
    listeners: list[ListenerEntry] = Field(default_factory=list)
    sorted: bool = True

    def sort_by_priority(self) -> None:
        if not self.sorted:
            # list.sort is stable, reverse=True included
            self.listeners.sort(key=lambda entry: entry.priority, reverse=True)
            self.sorted = True
