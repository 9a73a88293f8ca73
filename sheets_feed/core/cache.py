"""In-memory cache with a single, adjustable expiry window."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Hashable, MutableMapping

from sheets_feed.providers.base import ProviderConfigurationError, RecordModel

LOGGER = logging.getLogger(__name__)

DEFAULT_CACHE_EXPIRY = 300.0


class CacheStatus(RecordModel):
    """Summary of the cache contents for diagnostics."""

    size: int
    expiry: float
    items: list[str]


class TimedCache:
    """Key/value store whose entries go stale ``expiry`` seconds after ``set``.

    Stale entries are evicted lazily by the ``get`` that discovers them; there
    is no background sweep. The expiry applies to every entry and changing it
    affects all freshness checks made afterwards.
    """

    def __init__(
        self,
        expiry: float = DEFAULT_CACHE_EXPIRY,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._data: MutableMapping[Hashable, tuple[float, Any]] = {}
        self._clock = clock
        self._expiry = 0.0
        self.expiry = expiry

    @property
    def expiry(self) -> float:
        return self._expiry

    @expiry.setter
    def expiry(self, seconds: float) -> None:
        try:
            value = float(seconds)
        except (TypeError, ValueError) as exc:
            raise ProviderConfigurationError("cache expiry must be a number of seconds.") from exc
        if value < 0:
            raise ProviderConfigurationError("cache expiry must be non-negative.")
        self._expiry = value

    def set(self, key: Hashable, value: Any) -> None:
        self._data[key] = (self._clock(), value)
        LOGGER.debug("Cache set: %s", key)

    def get(self, key: Hashable) -> Any | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at >= self._expiry:
            del self._data[key]
            LOGGER.debug("Cache expired: %s", key)
            return None
        LOGGER.debug("Cache hit: %s", key)
        return value

    def clear(self, key: Hashable | None = None) -> None:
        if key is None:
            self._data.clear()
            LOGGER.debug("All cache entries cleared")
            return
        self._data.pop(key, None)
        LOGGER.debug("Cache cleared: %s", key)

    def keys(self) -> list[Hashable]:
        return list(self._data.keys())

    def __len__(self) -> int:
        return len(self._data)

    def status(self) -> CacheStatus:
        return CacheStatus(
            size=len(self._data),
            expiry=self._expiry,
            items=[str(key) for key in self._data],
        )


__all__ = ["CacheStatus", "DEFAULT_CACHE_EXPIRY", "TimedCache"]
