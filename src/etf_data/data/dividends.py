"""
Dividend history retrieval with split adjustment.

Historical dividends are restated in terms of the current share count: each
payment is multiplied by the ratio of every split that happened after it.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Mapping

from ..cache import CacheStore
from ..config import DEFAULT_BASE_URL
from .charts import chart_url
from .http import ResilientHttpClient
from .models import (
    ChartResponse,
    DividendEvent,
    DividendHistory,
    DividendRecord,
    SplitEvent,
    SplitEventPayload,
    event_timestamp,
)

logger = logging.getLogger(__name__)

DIVIDEND_TTL_MS = 6 * 60 * 60 * 1000


def parse_splits(splits: Mapping[str, SplitEventPayload]) -> list[SplitEvent]:
    """
    Convert raw split events to ``SplitEvent`` objects sorted by date.

    A missing numerator or denominator counts as 1. Splits with a zero
    denominator carry no usable ratio and are skipped.
    """
    events: list[SplitEvent] = []
    for key, item in splits.items():
        numerator = 1.0 if item.numerator is None else float(item.numerator)
        denominator = 1.0 if item.denominator is None else float(item.denominator)
        if denominator == 0:
            logger.warning(f"Skipping split {key} with zero denominator")
            continue
        seconds = event_timestamp(key, item.date, item.timestamp)
        events.append(SplitEvent(date=seconds * 1000, ratio=numerator / denominator))

    return sorted(events, key=lambda s: s.date)


def iso_date(epoch_ms: int) -> str:
    """Format epoch milliseconds as a UTC ``YYYY-MM-DD`` string."""
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d")


def adjust_for_splits(
    dividends: Mapping[str, DividendEvent],
    splits: list[SplitEvent],
    symbol: str = "",
) -> list[DividendRecord]:
    """
    Build split-adjusted dividend records.

    Each dividend is multiplied by the ratio of every split dated strictly
    after it. Records whose adjusted amount is not positive are dropped and
    the rest are sorted ascending by date.

    Example:
        >>> splits = [SplitEvent(date=1590969600000, ratio=2.0)]  # 2020-06-01
        >>> adjust_for_splits({"1577836800": DividendEvent(amount=1.0)}, splits)
        [DividendRecord(date='2020-01-01', dividend=2.0)]
    """
    records: list[DividendRecord] = []
    for key, item in dividends.items():
        div_date = event_timestamp(key, item.date, item.timestamp) * 1000
        original = float(item.amount or 0.0)

        adjusted = original
        for split in splits:
            if split.date > div_date:
                adjusted *= split.ratio

        if adjusted != original:
            logger.debug(f"[{symbol}] Adjusted dividend: {original:.4f} -> {adjusted:.4f}")

        if adjusted > 0:
            records.append(DividendRecord(date=iso_date(div_date), dividend=adjusted))

    return sorted(records, key=lambda r: r.date)


class DividendFetcher:
    """Fetches dividend and split events and caches the adjusted history."""

    def __init__(
        self,
        http: ResilientHttpClient,
        cache: CacheStore,
        ttl_ms: int = DIVIDEND_TTL_MS,
        base_url: str = DEFAULT_BASE_URL,
    ) -> None:
        self.http = http
        self.cache = cache
        self.ttl_ms = ttl_ms
        self.base_url = base_url

    async def fetch_dividend_history(self, symbol: str) -> DividendHistory:
        """
        Return the split-adjusted dividend history of *symbol*.

        Never raises: upstream failures are logged and yield an empty history,
        which is not cached.
        """
        cache_key = CacheStore.make_key("dividends", symbol)
        cached = self.cache.get(cache_key, self.ttl_ms)
        if cached is not None:
            logger.debug(f"Dividend cache hit for {symbol}")
            return cached

        try:
            response = await self.http.request_with_retry(
                chart_url(self.base_url, symbol),
                params={"range": "max", "interval": "1d", "events": "div,splits"},
            )
            if not response.is_success:
                logger.error(f"Dividend fetch failed for {symbol}: {response.status_code}")
                return DividendHistory(symbol=symbol)

            result = ChartResponse.model_validate(response.json()).first_result()
            splits = parse_splits(result.split_events)
            records = adjust_for_splits(result.dividend_events, splits, symbol=symbol)
        except Exception as e:
            logger.error(f"Dividend error for {symbol}: {e!r}")
            return DividendHistory(symbol=symbol)

        history = DividendHistory(symbol=symbol, dividends=records)
        self.cache.set(cache_key, history)
        return history


__all__ = [
    "DividendFetcher",
    "DIVIDEND_TTL_MS",
    "parse_splits",
    "adjust_for_splits",
    "iso_date",
]
