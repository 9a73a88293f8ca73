"""Recurring background refresh driven by an asyncio task."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from sheets_feed.core.events import EventName, RefreshEvent
from sheets_feed.providers.base import ProviderConfigurationError

if TYPE_CHECKING:  # pragma: no cover - typing only
    from sheets_feed.providers.sheets import SheetsClient

LOGGER = logging.getLogger(__name__)

DEFAULT_REFRESH_INTERVAL = 60.0


class RefreshScheduler:
    """Periodically re-fetch every dataset, bypassing the cache.

    Each tick awaits ``client.fetch_all(use_cache=False)`` and then emits an
    ``onRefresh`` event with the row counts, even when a dataset came back
    empty. :meth:`stop` wakes a sleeping loop immediately; a tick already in
    flight finishes its cycle and no further tick is scheduled.
    """

    def __init__(
        self,
        client: "SheetsClient",
        *,
        interval: float = DEFAULT_REFRESH_INTERVAL,
    ) -> None:
        self._client = client
        self._interval = _coerce_interval(interval)
        self._task: asyncio.Task[None] | None = None
        self._draining: set[asyncio.Task[None]] = set()
        self._stop_event: asyncio.Event | None = None
        self._ticks = 0

    @property
    def interval(self) -> float:
        return self._interval

    @interval.setter
    def interval(self, value: float) -> None:
        # Picked up by the next sleep of a running loop.
        self._interval = _coerce_interval(value)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done() and not self._stopping

    @property
    def ticks(self) -> int:
        return self._ticks

    @property
    def _stopping(self) -> bool:
        return self._stop_event is None or self._stop_event.is_set()

    def start(self, interval: float | None = None) -> bool:
        """Start ticking on the running event loop.

        Returns ``False`` without creating a second task when already running.
        """

        if self.running:
            LOGGER.info("Auto-refresh already running")
            return False
        if interval is not None:
            self._interval = _coerce_interval(interval)
        loop = asyncio.get_running_loop()
        previous = self._task
        if previous is not None and not previous.done():
            # A stopped loop may still be finishing its last tick.
            self._draining.add(previous)
            previous.add_done_callback(self._draining.discard)
        self._stop_event = asyncio.Event()
        self._task = loop.create_task(self._run(self._stop_event), name="sheets-auto-refresh")
        LOGGER.info("Auto-refresh started (%.1fs)", self._interval)
        return True

    def stop(self) -> None:
        """Stop ticking. Safe to call when not running."""

        if self._stop_event is None or self._stop_event.is_set():
            return
        self._stop_event.set()
        LOGGER.info("Auto-refresh stopped")

    async def wait_closed(self) -> None:
        """Wait for the background task, including an in-flight tick, to finish."""

        current = asyncio.current_task()
        tasks = [
            task
            for task in (self._task, *self._draining)
            if task is not None and task is not current
        ]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _run(self, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass
            else:
                break
            await self._tick()

    async def _tick(self) -> None:
        data = await self._client.fetch_all(use_cache=False)
        self._ticks += 1
        self._client.events.emit(
            EventName.ON_REFRESH,
            RefreshEvent(positions=len(data.positions), research=len(data.market_research)),
        )


def _coerce_interval(value: float) -> float:
    try:
        interval = float(value)
    except (TypeError, ValueError) as exc:
        raise ProviderConfigurationError("refresh interval must be a number of seconds.") from exc
    if interval <= 0:
        raise ProviderConfigurationError("refresh interval must be positive.")
    return interval


__all__ = ["DEFAULT_REFRESH_INTERVAL", "RefreshScheduler"]
