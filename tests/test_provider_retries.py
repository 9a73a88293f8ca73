"""Tests covering provider retry, backoff and Retry-After handling."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime
from pathlib import Path
import sys
from typing import Any

import httpx
import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from sheets_feed.providers.base import BaseProvider, ProviderError


class _EchoProvider(BaseProvider):
    name = "echo"


class _ScriptedClient:
    """Replays a fixed sequence of responses or exceptions."""

    def __init__(self, outcomes: list[Any]) -> None:
        self._outcomes = list(outcomes)
        self.calls = 0

    async def get(self, url: str, *_: Any, params: Any = None, **__: Any) -> httpx.Response:
        self.calls += 1
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        status, headers = outcome
        request = httpx.Request("GET", url, params=params)
        return httpx.Response(status, text="ok", headers=headers, request=request)

    async def aclose(self) -> None:  # pragma: no cover - interface parity
        return None


def _fake_sleep_recorder(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    sleep_calls: list[float] = []

    async def _fake_sleep(delay: float, result: object | None = None) -> object | None:
        sleep_calls.append(delay)
        return result

    monkeypatch.setattr(asyncio, "sleep", _fake_sleep)
    return sleep_calls


def test_retry_recovers_after_transient_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    """A failed first attempt is retried with exponential backoff."""

    async def _runner() -> None:
        client = _ScriptedClient([httpx.ConnectError("reset"), (200, {})])
        provider = _EchoProvider(client=client, retries=2, backoff_factor=0.25, jitter=0.0)  # type: ignore[arg-type]

        assert await provider._get_text("https://example.com/data") == "ok"
        assert client.calls == 2

    sleep_calls = _fake_sleep_recorder(monkeypatch)
    asyncio.run(_runner())
    assert sleep_calls == [pytest.approx(0.25)]


def test_retry_uses_full_retry_after_delay(monkeypatch: pytest.MonkeyPatch) -> None:
    """Retry-After hints override the capped backoff."""

    async def _runner() -> None:
        client = _ScriptedClient([(429, {"Retry-After": "120"}), (200, {})])
        provider = _EchoProvider(
            client=client,  # type: ignore[arg-type]
            retries=2,
            backoff_factor=1.0,
            max_retry_wait=10.0,
            jitter=0.0,
        )

        await provider._get_text("https://example.com/data")

    sleep_calls = _fake_sleep_recorder(monkeypatch)
    asyncio.run(_runner())
    assert sleep_calls[0] == pytest.approx(120.0)


def test_exhausted_retries_raise_provider_error() -> None:
    async def _runner() -> None:
        client = _ScriptedClient([(503, {})])
        provider = _EchoProvider(client=client, retries=1)  # type: ignore[arg-type]

        with pytest.raises(ProviderError) as excinfo:
            await provider._get_text("https://example.com/data")

        assert "HTTP 503" in str(excinfo.value)
        assert isinstance(excinfo.value.__cause__, httpx.HTTPStatusError)

    asyncio.run(_runner())


def test_retry_after_header_accepts_http_dates() -> None:
    request = httpx.Request("GET", "https://example.com")
    retry_at = datetime.now(timezone.utc) + timedelta(seconds=45)
    dated = httpx.Response(
        429, request=request, headers={"Retry-After": format_datetime(retry_at, usegmt=True)}
    )
    garbage = httpx.Response(429, request=request, headers={"Retry-After": "soon-ish"})
    missing = httpx.Response(429, request=request)

    delay = BaseProvider._retry_after_header(dated)

    assert delay is not None and delay == pytest.approx(45, abs=2)
    assert BaseProvider._retry_after_header(garbage) is None
    assert BaseProvider._retry_after_header(missing) is None


def test_rate_limiter_spaces_requests(monkeypatch: pytest.MonkeyPatch) -> None:
    async def _runner() -> None:
        client = _ScriptedClient([(200, {}), (200, {})])
        provider = _EchoProvider(client=client, rate_limit_per_sec=2.0)  # type: ignore[arg-type]

        await provider._get_text("https://example.com/a")
        await provider._get_text("https://example.com/b")

    sleep_calls = _fake_sleep_recorder(monkeypatch)
    asyncio.run(_runner())
    assert len(sleep_calls) == 1
    assert 0 < sleep_calls[0] <= 0.5


@pytest.mark.parametrize(
    "failure", [httpx.InvalidURL("no host"), RuntimeError("client has been closed")]
)
def test_unrecoverable_transport_errors_become_provider_errors(failure: Exception) -> None:
    async def _runner() -> None:
        client = _ScriptedClient([failure, (200, {})])
        provider = _EchoProvider(client=client, retries=3)  # type: ignore[arg-type]

        with pytest.raises(ProviderError) as excinfo:
            await provider._get_text("https://example.com/data")

        assert excinfo.value.__cause__ is failure
        assert client.calls == 1

    asyncio.run(_runner())
