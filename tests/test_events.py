"""Tests for the event bus."""

from __future__ import annotations

import logging
from pathlib import Path
import sys

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from sheets_feed.core.events import EventBus, EventName, LoadEvent


def test_listeners_fire_in_registration_order() -> None:
    bus = EventBus()
    calls: list[str] = []
    bus.on("onLoad", lambda payload: calls.append(f"first:{payload}"))
    bus.on(EventName.ON_LOAD, lambda payload: calls.append(f"second:{payload}"))

    bus.emit("onLoad", "x")

    assert calls == ["first:x", "second:x"]


def test_failing_listener_does_not_block_others(caplog: pytest.LogCaptureFixture) -> None:
    bus = EventBus()
    received: list[object] = []

    def _broken(_: object) -> None:
        raise RuntimeError("boom")

    bus.on("onError", _broken)
    bus.on("onError", received.append)

    caplog.set_level(logging.ERROR)
    bus.emit("onError", "payload")

    assert received == ["payload"]
    assert any("onError" in record.getMessage() for record in caplog.records)


def test_unknown_events_are_ignored() -> None:
    bus = EventBus()
    calls: list[object] = []

    bus.on("onExplode", calls.append)
    bus.emit("onExplode", 1)
    bus.off("onExplode", calls.append)

    assert calls == []
    assert bus.listener_count("onExplode") == 0


def test_off_removes_listener() -> None:
    bus = EventBus()
    calls: list[object] = []
    bus.on("onRefresh", calls.append)
    bus.off("onRefresh", calls.append)

    bus.emit("onRefresh", 1)

    assert calls == []
    assert bus.listener_count("onRefresh") == 0


def test_clear_drops_every_listener() -> None:
    bus = EventBus()
    for name in EventName:
        bus.on(name, print)

    bus.clear()

    assert all(bus.listener_count(name) == 0 for name in EventName)


def test_load_event_payload_fields() -> None:
    event = LoadEvent(dataset="positions", count=3, from_cache=True)

    assert event.model_dump() == {"dataset": "positions", "count": 3, "from_cache": True}
