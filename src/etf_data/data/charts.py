"""
Chart/history retrieval.

Maps display timeframes to provider range/interval parameters, fetches
closing-price series and cleans them into aligned timestamp/close lists.
Charts are supplementary data: any failure degrades to an empty series.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Sequence
from urllib.parse import quote as url_quote

import pandas as pd

from ..cache import CacheStore
from ..config import DEFAULT_BASE_URL
from .http import ResilientHttpClient
from .models import ChartParams, ChartResponse, ComparisonCharts, PriceSeries

logger = logging.getLogger(__name__)

CHART_TTL_MS = 60_000

TIMEFRAME_PARAMS: dict[str, ChartParams] = {
    "1D": ChartParams("1d", "5m"),
    "1W": ChartParams("5d", "30m"),
    "1M": ChartParams("1mo", "1d"),
    "3M": ChartParams("3mo", "1d"),
    "6M": ChartParams("6mo", "1d"),
    "YTD": ChartParams("ytd", "1d"),
    "1Y": ChartParams("1y", "1d"),
    "3Y": ChartParams("3y", "1wk"),
    "5Y": ChartParams("5y", "1wk"),
    "10Y": ChartParams("max", "1mo"),
    "20Y": ChartParams("max", "1mo"),
    "MAX": ChartParams("max", "1mo"),
}

DEFAULT_CHART_PARAMS = ChartParams("1mo", "1d")


def map_timeframe(timeframe: str) -> ChartParams:
    """Return the provider range/interval for *timeframe*, ``1mo/1d`` if unknown."""
    return TIMEFRAME_PARAMS.get(timeframe, DEFAULT_CHART_PARAMS)


def chart_url(base_url: str, symbol: str) -> str:
    return f"{base_url}/v8/finance/chart/{url_quote(symbol, safe='')}"


def clean_series(
    timestamps: Sequence[Optional[int]],
    closes: Sequence[Optional[float]],
) -> tuple[list[int], list[float]]:
    """
    Drop every point with a missing timestamp or a null/NaN close.

    The provider's close array may be shorter than its timestamp array; the
    missing tail counts as null closes. Surviving pairs keep their order.

    Example:
        >>> clean_series([10, 20, None], [1, None, 3])
        ([10], [1.0])
    """
    n = len(timestamps)
    ts = pd.Series(list(timestamps), dtype="object")
    cl = pd.to_numeric(
        pd.Series(list(closes)[:n], dtype="object"), errors="coerce"
    ).reindex(range(n))

    mask = ts.notna().to_numpy() & cl.notna().to_numpy()
    return (
        [int(t) for t in ts[mask]],
        [float(c) for c in cl[mask]],
    )


class ChartFetcher:
    """Fetches and caches closing-price series per symbol and timeframe."""

    def __init__(
        self,
        http: ResilientHttpClient,
        cache: CacheStore,
        ttl_ms: int = CHART_TTL_MS,
        base_url: str = DEFAULT_BASE_URL,
    ) -> None:
        self.http = http
        self.cache = cache
        self.ttl_ms = ttl_ms
        self.base_url = base_url

    async def fetch_chart(self, symbol: str, timeframe: str) -> PriceSeries:
        """
        Return the cleaned price series for *symbol* over *timeframe*.

        Never raises: upstream failures are logged and yield an empty series,
        which is not cached.
        """
        params = map_timeframe(timeframe)
        cache_key = CacheStore.make_key("chart", symbol, params.range, params.interval)
        cached = self.cache.get(cache_key, self.ttl_ms)
        if cached is not None:
            logger.debug(f"Chart cache hit for {cache_key}")
            return PriceSeries(symbol, timeframe, list(cached.timestamps), list(cached.closes))

        try:
            response = await self.http.request_with_retry(
                chart_url(self.base_url, symbol),
                params={"range": params.range, "interval": params.interval},
            )
            if not response.is_success:
                logger.error(f"Chart fetch failed for {symbol}: {response.status_code}")
                return PriceSeries.empty(symbol, timeframe)

            result = ChartResponse.model_validate(response.json()).first_result()
            timestamps, closes = clean_series(result.timestamps, result.closes)
        except Exception as e:
            logger.error(f"Chart error for {symbol}: {e!r}")
            return PriceSeries.empty(symbol, timeframe)

        series = PriceSeries(symbol, timeframe, timestamps, closes)
        self.cache.set(cache_key, series)
        return series

    async def fetch_comparison_charts(
        self, symbols: list[str], timeframe: str
    ) -> ComparisonCharts:
        """Fetch *symbols* concurrently over one timeframe. Always succeeds."""
        series_list = await asyncio.gather(
            *(self.fetch_chart(symbol, timeframe) for symbol in symbols)
        )
        return ComparisonCharts(
            symbols=list(symbols),
            timeframe=timeframe,
            data={series.symbol: series for series in series_list},
        )


__all__ = [
    "ChartFetcher",
    "CHART_TTL_MS",
    "TIMEFRAME_PARAMS",
    "DEFAULT_CHART_PARAMS",
    "map_timeframe",
    "clean_series",
    "chart_url",
]
