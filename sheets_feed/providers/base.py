"""Asynchronous provider base class and shared utilities."""

from __future__ import annotations

import abc
import asyncio
import logging
import random
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from enum import StrEnum
from typing import Any, Mapping

import httpx
from pydantic import BaseModel, ConfigDict

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class ProviderError(RuntimeError):
    """Base class for provider related failures."""


class ProviderConfigurationError(ProviderError):
    """Raised when the caller supplies unsupported parameters."""


class DatasetType(StrEnum):
    """Logical spreadsheet datasets served by the client."""

    POSITIONS = "positions"
    MARKET_RESEARCH = "marketResearch"


class RecordModel(BaseModel):
    """Base class for structured payloads handed to the presentation layer."""

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        validate_by_name=True,
        populate_by_name=True,
    )


class _AsyncRateLimiter:
    """Simple coroutine based rate limiter."""

    def __init__(self, rate_per_sec: float) -> None:
        self._interval = 1.0 / rate_per_sec if rate_per_sec > 0 else 0.0
        self._lock = asyncio.Lock()
        self._last_call = 0.0

    async def acquire(self) -> None:
        if self._interval <= 0:
            return
        async with self._lock:
            now = time.monotonic()
            wait_for = self._interval - (now - self._last_call)
            if wait_for > 0:
                await asyncio.sleep(wait_for)
            self._last_call = time.monotonic()


class BaseProvider(abc.ABC):
    """Base class for providers that pull text or JSON over HTTP with retries."""

    name: str = "provider"

    def __init__(
        self,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        rate_limit_per_sec: float = 0.0,
        retries: int = 1,
        backoff_factor: float = 0.5,
        max_retry_wait: float = 30.0,
        jitter: float = 0.3,
    ) -> None:
        self._client = client
        self._client_owner = client is None
        self._timeout = float(timeout)
        self._rate_limiter = _AsyncRateLimiter(rate_limit_per_sec)
        self._retries = max(1, int(retries))
        self._backoff_factor = max(0.0, float(backoff_factor))
        self._max_retry_wait = float(max(0.0, max_retry_wait))
        self._jitter = float(max(0.0, jitter))

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client_owner and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "BaseProvider":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _get_text(self, url: str, params: Mapping[str, Any] | None = None) -> str:
        response = await self._request(url, params)
        return response.text

    async def _get_json(self, url: str, params: Mapping[str, Any] | None = None) -> Any:
        response = await self._request(url, params)
        return response.json()

    async def _request(
        self, url: str, params: Mapping[str, Any] | None = None
    ) -> httpx.Response:
        attempt_errors: list[str] = []
        last_error: Exception | None = None

        for attempt in range(1, self._retries + 1):
            await self._rate_limiter.acquire()
            wait = 0.0
            try:
                response = await self.client.get(url, params=dict(params or {}))
                response.raise_for_status()
                return response
            except httpx.HTTPStatusError as exc:
                last_error = exc
                attempt_errors.append(f"HTTP {exc.response.status_code}")
                wait = self._retry_delay(attempt, exc)
            except httpx.HTTPError as exc:
                last_error = exc
                attempt_errors.append(str(exc) or type(exc).__name__)
                wait = self._retry_delay(attempt, exc)
            except (httpx.InvalidURL, RuntimeError) as exc:
                # Bad URLs and closed clients do not recover on retry.
                raise ProviderError(f"{self.name} request to {url} failed: {exc}") from exc

            if attempt >= self._retries:
                break

            if wait > 0:
                LOGGER.debug(
                    "Provider %s retrying %s (%s/%s) in %.2fs because %s",
                    self.name,
                    url,
                    attempt,
                    self._retries,
                    wait,
                    attempt_errors[-1],
                )
                await asyncio.sleep(wait)

        detail = "; ".join(attempt_errors) or str(last_error)
        raise ProviderError(f"{self.name} request to {url} failed: {detail}") from last_error

    def _retry_delay(self, attempt: int, exc: Exception) -> float:
        base_delay = self._backoff_factor * (2 ** (attempt - 1))
        header_delay = None
        if isinstance(exc, httpx.HTTPStatusError):
            header_delay = self._retry_after_header(exc.response)
        if header_delay is not None:
            base_delay = max(base_delay, header_delay)
        jitter = random.uniform(0.0, self._jitter * max(base_delay, 1.0))
        total_delay = base_delay + jitter
        if header_delay is not None:
            return total_delay
        return min(self._max_retry_wait, total_delay)

    @staticmethod
    def _retry_after_header(response: httpx.Response) -> float | None:
        header = response.headers.get("Retry-After")
        if not header:
            return None
        try:
            return float(header)
        except ValueError:
            try:
                retry_time = parsedate_to_datetime(header)
            except (TypeError, ValueError):
                return None
            if retry_time is None:
                return None
            if retry_time.tzinfo is None:
                retry_time = retry_time.replace(tzinfo=timezone.utc)
            return max(
                0.0,
                (retry_time - datetime.now(timezone.utc)).total_seconds(),
            )


__all__ = [
    "BaseProvider",
    "DEFAULT_TIMEOUT",
    "DatasetType",
    "ProviderConfigurationError",
    "ProviderError",
    "RecordModel",
]
