"""
ETF Market Data Engine

Market data layer for a dividend-ETF dashboard with:
- Quote, chart and dividend fetching from Yahoo Finance
- Per-data-kind in-memory caching with time-to-live
- Retry with exponential backoff on transient upstream failures
- Split-adjusted dividend histories
- Trailing return and forward yield calculations
"""

from .cache import CacheStore
from .config import (
    MarketDataConfig,
    ProviderConfig,
    RetryConfig,
    CacheTTLConfig,
    LoggingConfig,
    create_default_config,
)
from .exceptions import MarketDataError, RequestError, QuoteFetchError
from .data import (
    MarketDataFetcher,
    ResilientHttpClient,
    Quote,
    PriceSeries,
    ComparisonCharts,
    DividendRecord,
    DividendHistory,
    map_timeframe,
    refresh_total_returns,
)
from .analytics import (
    calculate_return,
    calculate_week_return,
    calculate_average_dividend,
    forward_yield,
    TrailingReturns,
    TotalReturns,
)

__version__ = "1.0.0"

__all__ = [
    # Cache
    "CacheStore",
    # Config
    "MarketDataConfig",
    "ProviderConfig",
    "RetryConfig",
    "CacheTTLConfig",
    "LoggingConfig",
    "create_default_config",
    # Errors
    "MarketDataError",
    "RequestError",
    "QuoteFetchError",
    # Data
    "MarketDataFetcher",
    "ResilientHttpClient",
    "Quote",
    "PriceSeries",
    "ComparisonCharts",
    "DividendRecord",
    "DividendHistory",
    "map_timeframe",
    "refresh_total_returns",
    # Analytics
    "calculate_return",
    "calculate_week_return",
    "calculate_average_dividend",
    "forward_yield",
    "TrailingReturns",
    "TotalReturns",
]
