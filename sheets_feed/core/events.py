"""Synchronous publish/subscribe for client lifecycle notifications."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, Callable

from pydantic import Field

from sheets_feed.providers.base import RecordModel

LOGGER = logging.getLogger(__name__)

Listener = Callable[[Any], Any]


class EventName(StrEnum):
    """Events published by :class:`~sheets_feed.providers.sheets.SheetsClient`."""

    ON_LOAD = "onLoad"
    ON_ERROR = "onError"
    ON_REFRESH = "onRefresh"


class LoadEvent(RecordModel):
    """A dataset finished loading, either from the network or the cache."""

    dataset: str
    count: int
    from_cache: bool = False


class ErrorEvent(RecordModel):
    """A dataset (or the combined ``all`` fetch) failed to load."""

    dataset: str
    error: BaseException


class RefreshEvent(RecordModel):
    """A scheduled refresh cycle completed."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    positions: int = 0
    research: int = 0


def _resolve(event: str) -> EventName | None:
    try:
        return EventName(event)
    except ValueError:
        return None


class EventBus:
    """Dispatch payloads to listeners registered per :class:`EventName`.

    Unknown event names are ignored rather than rejected. Listeners run in
    registration order and an exception raised by one is logged without
    stopping the rest or reaching the caller of :meth:`emit`.
    """

    def __init__(self) -> None:
        self._listeners: dict[EventName, list[Listener]] = {name: [] for name in EventName}

    def on(self, event: str, callback: Listener) -> None:
        name = _resolve(event)
        if name is None:
            LOGGER.debug("Ignoring listener for unknown event %r", event)
            return
        self._listeners[name].append(callback)
        LOGGER.debug("Listener added: %s", name)

    def off(self, event: str, callback: Listener) -> None:
        name = _resolve(event)
        if name is None:
            return
        self._listeners[name] = [cb for cb in self._listeners[name] if cb != callback]

    def emit(self, event: str, payload: Any = None) -> None:
        name = _resolve(event)
        if name is None:
            return
        for callback in list(self._listeners[name]):
            try:
                callback(payload)
            except Exception:
                LOGGER.exception("Error in %s listener %r", name, callback)

    def listener_count(self, event: str) -> int:
        name = _resolve(event)
        return len(self._listeners[name]) if name is not None else 0

    def clear(self) -> None:
        for name in EventName:
            self._listeners[name] = []


__all__ = [
    "ErrorEvent",
    "EventBus",
    "EventName",
    "Listener",
    "LoadEvent",
    "RefreshEvent",
]
