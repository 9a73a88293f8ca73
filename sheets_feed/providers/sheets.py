"""Google Sheets CSV client orchestrating fetch, parse, filter, cache and notify."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Sequence

import httpx

from sheets_feed.core.cache import CacheStatus, TimedCache
from sheets_feed.core.config import SheetsConfig
from sheets_feed.core.events import ErrorEvent, EventBus, EventName, Listener, LoadEvent
from sheets_feed.core.parser import parse_delimited, to_delimited_text, to_json_text
from sheets_feed.core.rows import (
    PortfolioMetrics,
    Row,
    StatisticsSnapshot,
    calculate_portfolio_metrics,
    compute_statistics,
    filter_by_field,
    filter_by_sentiment,
    filter_by_signal,
    filter_by_symbol,
    has_content,
    is_active_position,
)
from sheets_feed.core.scheduler import RefreshScheduler

from .base import BaseProvider, DatasetType, ProviderError

LOGGER = logging.getLogger(__name__)

ALL_DATASETS = "all"

_DATASET_LABELS = {
    DatasetType.POSITIONS: "positions",
    DatasetType.MARKET_RESEARCH: "market research",
}


@dataclass(slots=True)
class SheetsData:
    """Rows for both datasets returned by :meth:`SheetsClient.fetch_all`."""

    positions: list[Row]
    market_research: list[Row]

    @classmethod
    def empty(cls) -> "SheetsData":
        return cls([], [])

    def __iter__(self) -> Any:
        """Allow ``positions, research = await client.fetch_all()``."""

        return iter((self.positions, self.market_research))


class SheetsClient(BaseProvider):
    """Fetch the positions and market research sheets as parsed rows.

    Each client owns its :class:`TimedCache` and :class:`EventBus` unless
    shared instances are passed in. Network failures never propagate: they
    are logged, published as ``onError`` and answered with an empty list.

    Usage::

        async with SheetsClient(build_config()) as client:
            client.on("onLoad", print)
            positions, research = await client.fetch_all()
    """

    name = "google_sheets"

    def __init__(
        self,
        config: SheetsConfig,
        *,
        client: httpx.AsyncClient | None = None,
        cache: TimedCache | None = None,
        events: EventBus | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(
            client=client,
            timeout=config.request_timeout,
            retries=config.retries,
        )
        self.config = config
        if cache is None:
            cache = TimedCache(config.cache_expiry)
        else:
            config.cache_expiry = cache.expiry
        self.cache = cache
        self.events = events if events is not None else EventBus()
        self._clock = clock
        self._scheduler = RefreshScheduler(self, interval=config.refresh_interval)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------
    @property
    def debug(self) -> bool:
        return self.config.debug

    @property
    def cache_enabled(self) -> bool:
        return self.config.cache_enabled

    @property
    def scheduler(self) -> RefreshScheduler:
        return self._scheduler

    def configure(
        self,
        *,
        debug: bool | None = None,
        cache_enabled: bool | None = None,
        cache_expiry: float | None = None,
        auto_refresh: bool | None = None,
        refresh_interval: float | None = None,
    ) -> None:
        """Adjust runtime settings; ``None`` leaves a setting unchanged."""

        if debug is not None:
            self.config.debug = bool(debug)
        if cache_enabled is not None:
            self.config.cache_enabled = bool(cache_enabled)
        if cache_expiry is not None:
            self.cache.expiry = cache_expiry
            self.config.cache_expiry = self.cache.expiry
        if refresh_interval is not None:
            self._scheduler.interval = refresh_interval
            self.config.refresh_interval = self._scheduler.interval
        if auto_refresh is not None:
            if auto_refresh:
                self._enable_auto_refresh()
            else:
                self.stop_auto_refresh()
                self.config.auto_refresh = False
        self._log(
            "Configuration updated: debug=%s cache=%s expiry=%.1fs refresh=%.1fs",
            self.config.debug,
            self.config.cache_enabled,
            self.config.cache_expiry,
            self.config.refresh_interval,
        )

    def _enable_auto_refresh(self) -> None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            LOGGER.warning(
                "No running event loop; auto-refresh will start when the client "
                "context is entered"
            )
        else:
            self.start_auto_refresh()
        self.config.auto_refresh = True

    def _log(self, message: str, *args: Any) -> None:
        if self.config.debug:
            LOGGER.info(message, *args)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    def on(self, event: str, callback: Listener) -> None:
        self.events.on(event, callback)

    def off(self, event: str, callback: Listener) -> None:
        self.events.off(event, callback)

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------
    def dataset_gid(self, dataset: DatasetType) -> str:
        if dataset is DatasetType.POSITIONS:
            return self.config.positions_gid
        return self.config.market_research_gid

    def export_params(self, dataset: DatasetType) -> dict[str, str]:
        return {
            "format": "csv",
            "gid": self.dataset_gid(dataset),
            "t": str(int(self._clock() * 1000)),
        }

    async def fetch_positions(self, use_cache: bool = True) -> list[Row]:
        return await self._load(DatasetType.POSITIONS, use_cache)

    async def fetch_market_research(self, use_cache: bool = True) -> list[Row]:
        return await self._load(DatasetType.MARKET_RESEARCH, use_cache)

    async def fetch_all(self, use_cache: bool = True) -> SheetsData:
        """Fetch both datasets concurrently; one failing does not cancel the other."""

        self._log("Fetching all sheets...")
        try:
            raw_results = await asyncio.gather(
                self.fetch_positions(use_cache),
                self.fetch_market_research(use_cache),
                return_exceptions=True,
            )
        except Exception as exc:
            LOGGER.error("Failed to fetch all data: %s", exc)
            self.events.emit(EventName.ON_ERROR, ErrorEvent(dataset=ALL_DATASETS, error=exc))
            return SheetsData.empty()

        positions, research = (
            self._settle(dataset, outcome)
            for dataset, outcome in zip(
                (DatasetType.POSITIONS, DatasetType.MARKET_RESEARCH), raw_results
            )
        )
        self._log(
            "Fetch complete: %s positions, %s research rows",
            len(positions),
            len(research),
        )
        return SheetsData(positions, research)

    def _settle(self, dataset: DatasetType, outcome: Any) -> list[Row]:
        if isinstance(outcome, Exception):
            LOGGER.error("Failed to fetch %s: %s", _DATASET_LABELS[dataset], outcome)
            self.events.emit(EventName.ON_ERROR, ErrorEvent(dataset=dataset.value, error=outcome))
            return []
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def _load(self, dataset: DatasetType, use_cache: bool) -> list[Row]:
        label = _DATASET_LABELS[dataset]
        if use_cache and self.config.cache_enabled:
            cached = self.cache.get(dataset)
            if cached is not None:
                self._log("Cache hit: %s", label)
                self.events.emit(
                    EventName.ON_LOAD,
                    LoadEvent(dataset=dataset.value, count=len(cached), from_cache=True),
                )
                return [dict(row) for row in cached]

        self._log("Fetching %s...", label)
        try:
            text = await self._get_text(self.config.sheet_url(), self.export_params(dataset))
        except ProviderError as exc:
            LOGGER.warning("Failed to fetch %s: %s", label, exc)
            self.events.emit(EventName.ON_ERROR, ErrorEvent(dataset=dataset.value, error=exc))
            return []
        self._log("%s CSV received (%s bytes)", label.capitalize(), len(text))

        rows = self._select_rows(dataset, parse_delimited(text))
        self._log("Parsed %s %s rows", len(rows), label)

        if self.config.cache_enabled:
            self.cache.set(dataset, rows)
        self.events.emit(
            EventName.ON_LOAD,
            LoadEvent(dataset=dataset.value, count=len(rows), from_cache=False),
        )
        return [dict(row) for row in rows]

    @staticmethod
    def _select_rows(dataset: DatasetType, rows: list[Row]) -> list[Row]:
        if dataset is DatasetType.POSITIONS:
            return [row for row in rows if is_active_position(row)]
        return [row for row in rows if has_content(row)]

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------
    @staticmethod
    def filter_by_field(rows: Sequence[Row], field_name: str, value: str) -> list[Row]:
        return filter_by_field(rows, field_name, value)

    @staticmethod
    def filter_by_symbol(rows: Sequence[Row], symbol: str) -> list[Row]:
        return filter_by_symbol(rows, symbol)

    @staticmethod
    def filter_by_signal(rows: Sequence[Row], status: str) -> list[Row]:
        return filter_by_signal(rows, status)

    @staticmethod
    def filter_by_sentiment(rows: Sequence[Row], sentiment: str) -> list[Row]:
        return filter_by_sentiment(rows, sentiment)

    @staticmethod
    def compute_statistics(rows: Sequence[Row]) -> StatisticsSnapshot:
        return compute_statistics(rows)

    @staticmethod
    def portfolio_metrics(rows: Sequence[Row]) -> PortfolioMetrics:
        return calculate_portfolio_metrics(rows)

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------
    def export_csv(self, rows: Sequence[Row], path: str | Path | None = None) -> str | None:
        """Return ``rows`` as quoted CSV text, writing it to ``path`` when given."""

        if not rows:
            LOGGER.error("No data to export")
            return None
        text = to_delimited_text(rows)
        self._write_export(text, path)
        self._log("Exported %s rows%s", len(rows), f" to {path}" if path else "")
        return text

    def export_json(self, rows: Sequence[Row], path: str | Path | None = None) -> str | None:
        """Return ``rows`` as indented JSON, writing it to ``path`` when given."""

        if not rows:
            LOGGER.error("No data to export")
            return None
        text = to_json_text(rows)
        self._write_export(text, path)
        self._log("Exported %s rows as JSON%s", len(rows), f" to {path}" if path else "")
        return text

    @staticmethod
    def _write_export(text: str, path: str | Path | None) -> None:
        if path is None:
            return
        target = Path(path).expanduser()
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")

    # ------------------------------------------------------------------
    # Cache and lifecycle
    # ------------------------------------------------------------------
    def clear_cache(self, dataset: DatasetType | str | None = None) -> None:
        """Drop one dataset's cache entry, or every entry when ``dataset`` is ``None``."""

        if dataset is None:
            self.cache.clear()
            return
        try:
            key = DatasetType(dataset)
        except ValueError:
            LOGGER.warning("Ignoring cache clear for unknown dataset %r", dataset)
            return
        self.cache.clear(key)

    def cache_status(self) -> CacheStatus:
        return self.cache.status()

    def metadata(self) -> dict[str, object]:
        return {
            "spreadsheet_id": self.config.spreadsheet_id,
            "positions_gid": self.config.positions_gid,
            "market_research_gid": self.config.market_research_gid,
            "cache_enabled": self.config.cache_enabled,
            "debug_enabled": self.config.debug,
            "auto_refresh": self._scheduler.running,
            "refresh_interval": self._scheduler.interval,
            "cache_status": self.cache_status().model_dump(),
        }

    def start_auto_refresh(self, interval: float | None = None) -> bool:
        """Start the recurring refresh on the running event loop."""

        return self._scheduler.start(interval)

    def stop_auto_refresh(self) -> None:
        self._scheduler.stop()

    def reset(self) -> None:
        """Stop auto-refresh, drop every cached dataset and every listener."""

        self.stop_auto_refresh()
        self.cache.clear()
        self.events.clear()
        self._log("SheetsClient reset")

    async def aclose(self) -> None:
        self.stop_auto_refresh()
        await self._scheduler.wait_closed()
        await super().aclose()

    async def __aenter__(self) -> "SheetsClient":
        if self.config.auto_refresh:
            self.start_auto_refresh()
        return self


__all__ = ["ALL_DATASETS", "SheetsClient", "SheetsData"]
