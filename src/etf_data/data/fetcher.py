"""
ETF Market Data Fetcher Module

Provides the market data surface used by the route layer: quotes, price
charts, split-adjusted dividend histories and the return/yield figures derived
from them. Every data kind has its own in-memory TTL cache, and all upstream
requests share one HTTP client with retry and exponential backoff.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional

import httpx

from ..analytics.returns import (
    TotalReturns,
    TrailingReturns,
    annual_dividend,
    calculate_average_dividend,
    forward_yield,
    total_returns,
    trailing_returns,
)
from ..cache import CacheStore
from ..config import MarketDataConfig
from .charts import ChartFetcher
from .dividends import DividendFetcher
from .http import ResilientHttpClient
from .models import ComparisonCharts, DividendHistory, PriceSeries, Quote
from .quotes import QuoteFetcher

logger = logging.getLogger(__name__)

RETURNS_TIMEFRAME = "3Y"


class MarketDataFetcher:
    """
    Facade over the quote, chart and dividend fetchers.

    Provides methods to:
    - Fetch single and batch quotes
    - Fetch price charts for one or several symbols
    - Fetch split-adjusted dividend histories
    - Derive trailing returns and forward yields

    Example:
        >>> async with MarketDataFetcher() as fetcher:
        ...     quote = await fetcher.fetch_quote("JEPI")
        ...     charts = await fetcher.fetch_comparison_charts(["JEPI", "SCHD"], "1Y")
    """

    def __init__(
        self,
        config: MarketDataConfig | None = None,
        client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] | None = None,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
    ) -> None:
        """
        Initialize the fetcher.

        Args:
            config: Provider, retry and cache settings. Defaults to production values.
            client: HTTP client to use. One is created and owned when omitted.
            clock: Time source in seconds for every cache. Defaults to time.time.
            sleep: Backoff sleep coroutine. Defaults to asyncio.sleep.
        """
        self.config = config or MarketDataConfig()
        self.http = ResilientHttpClient(
            client=client,
            retry_config=self.config.retry,
            provider_config=self.config.provider,
            sleep=sleep,
        )

        base_url = self.config.provider.base_url
        ttl = self.config.cache
        self.quote_cache = CacheStore(clock)
        self.chart_cache = CacheStore(clock)
        self.dividend_cache = CacheStore(clock)
        self.total_returns_cache = CacheStore(clock)

        self.quotes = QuoteFetcher(self.http, self.quote_cache, ttl.quote_ms, base_url)
        self.charts = ChartFetcher(self.http, self.chart_cache, ttl.chart_ms, base_url)
        self.dividends = DividendFetcher(
            self.http, self.dividend_cache, ttl.dividend_ms, base_url
        )

    async def fetch_quote(self, symbol: str) -> Quote:
        """Latest quote for *symbol*. Raises on upstream failure."""
        return await self.quotes.fetch_quote(symbol)

    async def fetch_batch_quotes(self, symbols: list[str]) -> dict[str, Quote]:
        """Quotes for *symbols*; failing symbols come back with null fields."""
        return await self.quotes.fetch_batch_quotes(symbols)

    async def fetch_chart(self, symbol: str, timeframe: str) -> PriceSeries:
        """Cleaned price series; empty on upstream failure."""
        return await self.charts.fetch_chart(symbol, timeframe)

    async def fetch_comparison_charts(
        self, symbols: list[str], timeframe: str
    ) -> ComparisonCharts:
        """Price series for several symbols over one timeframe."""
        return await self.charts.fetch_comparison_charts(symbols, timeframe)

    async def fetch_dividend_history(self, symbol: str) -> DividendHistory:
        """Split-adjusted dividend history; empty on upstream failure."""
        return await self.dividends.fetch_dividend_history(symbol)

    async def fetch_returns(self, symbol: str) -> TrailingReturns:
        """
        Quote plus 1W to 3Y trailing price returns for *symbol*.

        Raises:
            QuoteFetchError, RequestError: The quote could not be fetched.
        """
        quote = await self.fetch_quote(symbol)
        series = await self.fetch_chart(symbol, RETURNS_TIMEFRAME)
        return trailing_returns(series, quote)

    async def fetch_total_returns(self, symbol: str) -> TotalReturns:
        """3M to 3Y returns for *symbol*, cached for the total-returns TTL."""
        cache_key = CacheStore.make_key("total-returns", symbol)
        cached = self.total_returns_cache.get(cache_key, self.config.cache.total_returns_ms)
        if cached is not None:
            return cached

        series = await self.fetch_chart(symbol, RETURNS_TIMEFRAME)
        returns = total_returns(series)
        if not series.is_empty:
            self.total_returns_cache.set(cache_key, returns)
        return returns

    async def fetch_forward_yield(
        self,
        symbol: str,
        payments_per_year: int = 12,
        fallback: Optional[float] = None,
    ) -> Optional[float]:
        """
        Forward yield in percent from the average historical dividend.

        Falls back to *fallback* when the dividend history is empty or the
        price is unavailable.
        """
        history = await self.fetch_dividend_history(symbol)
        average = calculate_average_dividend(history.dividends, payments_per_year)
        if average is None:
            return fallback

        try:
            quote = await self.fetch_quote(symbol)
        except Exception as e:
            logger.warning(f"No price for forward yield of {symbol}: {e}")
            return fallback

        return forward_yield(annual_dividend(average, payments_per_year), quote.price, fallback)

    def clear_cache(self) -> None:
        """Clear all cached data."""
        for cache in (
            self.quote_cache,
            self.chart_cache,
            self.dividend_cache,
            self.total_returns_cache,
        ):
            cache.clear()
        logger.info("Cache cleared")

    async def aclose(self) -> None:
        await self.http.aclose()

    async def __aenter__(self) -> "MarketDataFetcher":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


__all__ = ["MarketDataFetcher", "RETURNS_TIMEFRAME"]
