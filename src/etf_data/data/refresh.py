"""Batch refresh of stored total-return figures on ETF records."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

from ..analytics.returns import TotalReturns, total_returns
from .fetcher import RETURNS_TIMEFRAME, MarketDataFetcher

logger = logging.getLogger(__name__)

RETURN_FIELDS = ("totalReturn3Mo", "totalReturn6Mo", "totalReturn12Mo", "totalReturn3Yr")


async def _returns_for(
    fetcher: MarketDataFetcher, symbol: Optional[str], timeframe: str
) -> Optional[TotalReturns]:
    if not symbol:
        logger.error("Skipping ETF record without a symbol")
        return None

    try:
        series = await fetcher.fetch_chart(symbol, timeframe)
    except Exception as e:
        logger.error(f"Error fetching data for {symbol}: {e}")
        return None

    if series.is_empty:
        return None
    return total_returns(series, precision=2)


async def refresh_total_returns(
    fetcher: MarketDataFetcher,
    records: list[dict[str, Any]],
    batch_size: int = 10,
    pause_seconds: float = 2.0,
    timeframe: str = RETURNS_TIMEFRAME,
) -> tuple[int, int]:
    """
    Update *records* in place with 3M to 3Y total returns.

    Records are processed in batches of *batch_size*; symbols inside a batch
    are fetched concurrently and batches are separated by *pause_seconds*.
    A record whose symbol yields no price data is left untouched.

    Returns:
        Tuple of (updated count, error count).

    Raises:
        ValueError: If *batch_size* is less than 1.
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be at least 1, got {batch_size}")

    updated = 0
    errors = 0
    total_batches = (len(records) + batch_size - 1) // batch_size

    for start in range(0, len(records), batch_size):
        batch = records[start:start + batch_size]
        symbols = [record.get("symbol") for record in batch]
        logger.info(
            f"Processing batch {start // batch_size + 1}/{total_batches}: "
            f"{', '.join(str(s) for s in symbols)}"
        )

        results = await asyncio.gather(
            *(_returns_for(fetcher, symbol, timeframe) for symbol in symbols)
        )

        for record, result in zip(batch, results):
            if result is None:
                errors += 1
                continue
            values = result.to_dict()
            record.update({field: values[field] for field in RETURN_FIELDS})
            updated += 1

        if start + batch_size < len(records) and pause_seconds > 0:
            await asyncio.sleep(pause_seconds)

    logger.info(f"Update complete: {updated} ETFs updated, {errors} errors")
    return updated, errors


async def refresh_total_returns_file(
    fetcher: MarketDataFetcher,
    path: Union[str, Path],
    batch_size: int = 10,
    pause_seconds: float = 2.0,
    timeframe: str = RETURNS_TIMEFRAME,
) -> tuple[int, int]:
    """Run ``refresh_total_returns`` over a JSON array of ETF records stored at *path*."""
    path = Path(path)
    with open(path) as f:
        records = json.load(f)

    counts = await refresh_total_returns(
        fetcher, records, batch_size=batch_size, pause_seconds=pause_seconds, timeframe=timeframe
    )

    with open(path, "w") as f:
        json.dump(records, f, indent=2)
    return counts


__all__ = ["RETURN_FIELDS", "refresh_total_returns", "refresh_total_returns_file"]
