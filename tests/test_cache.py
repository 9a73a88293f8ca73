"""Tests for the timed cache."""

from __future__ import annotations

from pathlib import Path
import sys

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from sheets_feed.core.cache import TimedCache
from sheets_feed.providers.base import ProviderConfigurationError


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def test_set_then_get_returns_value() -> None:
    cache = TimedCache(10.0, clock=FakeClock())
    cache.set("positions", [{"Symbol": "BTC"}])

    assert cache.get("positions") == [{"Symbol": "BTC"}]


def test_missing_key_returns_none() -> None:
    assert TimedCache(10.0).get("nope") is None


def test_expired_entry_is_evicted_and_stays_gone() -> None:
    clock = FakeClock()
    cache = TimedCache(10.0, clock=clock)
    cache.set("positions", [])
    clock.advance(9.99)
    assert cache.get("positions") == []

    clock.advance(0.02)
    assert cache.get("positions") is None
    assert "positions" not in cache.keys()
    assert cache.get("positions") is None


def test_set_resets_timestamp() -> None:
    clock = FakeClock()
    cache = TimedCache(10.0, clock=clock)
    cache.set("k", 1)
    clock.advance(8)
    cache.set("k", 2)
    clock.advance(8)

    assert cache.get("k") == 2


def test_expiry_change_applies_to_later_checks() -> None:
    clock = FakeClock()
    cache = TimedCache(300.0, clock=clock)
    cache.set("k", "v")
    clock.advance(60)
    assert cache.get("k") == "v"

    cache.expiry = 30.0
    assert cache.get("k") is None


def test_clear_single_key_and_all() -> None:
    cache = TimedCache(10.0)
    cache.set("a", 1)
    cache.set("b", 2)

    cache.clear("a")
    assert cache.get("a") is None
    assert cache.get("b") == 2

    cache.clear("missing")
    cache.clear()
    assert len(cache) == 0


def test_status_lists_items() -> None:
    cache = TimedCache(42.0)
    cache.set("positions", [])
    status = cache.status()

    assert status.size == 1
    assert status.expiry == 42.0
    assert status.items == ["positions"]


def test_negative_expiry_rejected() -> None:
    with pytest.raises(ProviderConfigurationError):
        TimedCache(-1)
