"""Data fetching and caching module."""

from .charts import ChartFetcher, clean_series, map_timeframe
from .dividends import DividendFetcher, adjust_for_splits, parse_splits
from .fetcher import MarketDataFetcher
from .http import ResilientHttpClient
from .models import (
    ChartParams,
    ComparisonCharts,
    DividendHistory,
    DividendRecord,
    PriceSeries,
    Quote,
    SplitEvent,
)
from .quotes import QuoteFetcher
from .refresh import refresh_total_returns, refresh_total_returns_file

__all__ = [
    "MarketDataFetcher",
    "ResilientHttpClient",
    "QuoteFetcher",
    "ChartFetcher",
    "DividendFetcher",
    "map_timeframe",
    "clean_series",
    "parse_splits",
    "adjust_for_splits",
    "refresh_total_returns",
    "refresh_total_returns_file",
    "Quote",
    "ChartParams",
    "PriceSeries",
    "ComparisonCharts",
    "SplitEvent",
    "DividendRecord",
    "DividendHistory",
]
