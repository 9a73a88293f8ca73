"""Parsing, caching, notification and scheduling primitives."""

from sheets_feed.core.cache import DEFAULT_CACHE_EXPIRY, CacheStatus, TimedCache
from sheets_feed.core.config import (
    SheetsConfig,
    build_config,
    configure_logging,
    load_environment,
)
from sheets_feed.core.events import (
    ErrorEvent,
    EventBus,
    EventName,
    LoadEvent,
    RefreshEvent,
)
from sheets_feed.core.parser import (
    parse_delimited,
    split_delimited_line,
    to_delimited_text,
    to_json_text,
)
from sheets_feed.core.research import BlockKind, ResearchBlock, segment_research
from sheets_feed.core.rows import (
    NO_POSITIONS_SENTINEL,
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
    parse_number,
)
from sheets_feed.core.scheduler import DEFAULT_REFRESH_INTERVAL, RefreshScheduler

__all__ = [
    "BlockKind",
    "CacheStatus",
    "DEFAULT_CACHE_EXPIRY",
    "DEFAULT_REFRESH_INTERVAL",
    "ErrorEvent",
    "EventBus",
    "EventName",
    "LoadEvent",
    "NO_POSITIONS_SENTINEL",
    "PortfolioMetrics",
    "RefreshEvent",
    "RefreshScheduler",
    "ResearchBlock",
    "Row",
    "SheetsConfig",
    "StatisticsSnapshot",
    "TimedCache",
    "build_config",
    "calculate_portfolio_metrics",
    "compute_statistics",
    "configure_logging",
    "filter_by_field",
    "filter_by_sentiment",
    "filter_by_signal",
    "filter_by_symbol",
    "has_content",
    "is_active_position",
    "load_environment",
    "parse_delimited",
    "parse_number",
    "segment_research",
    "split_delimited_line",
    "to_delimited_text",
    "to_json_text",
]
