"""
Return and yield derivation.

Pure functions over normalized price series and dividend histories; nothing
here touches the network.

Trailing returns compare the latest close with the close whose timestamp is
nearest to ``latest - horizon``. Months are approximated as 30 days.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

import numpy as np

from ..data.models import DividendRecord, PriceSeries, Quote

DAY_SECONDS = 24 * 60 * 60
MONTH_SECONDS = 30 * DAY_SECONDS
WEEK_SECONDS = 7 * DAY_SECONDS


def _is_positive_price(price: Optional[float]) -> bool:
    return price is not None and not math.isnan(price) and price > 0


def percent_change(past_price: Optional[float], current_price: Optional[float]) -> Optional[float]:
    """Return the change from *past_price* to *current_price* in percent."""
    if not _is_positive_price(past_price) or not _is_positive_price(current_price):
        return None
    return ((current_price - past_price) / past_price) * 100


def calculate_return(
    closes: Sequence[float],
    timestamps: Sequence[int],
    months: float,
) -> Optional[float]:
    """
    Trailing return over *months* months, in percent.

    The past point is found by a forward scan for the timestamp nearest to the
    target time; on ties the earliest point wins.

    Returns:
        Percentage change, or None with fewer than two points or a
        non-positive endpoint price.
    """
    if closes is None or len(closes) < 2:
        return None

    current_price = closes[-1]
    target_time = timestamps[-1] - months * MONTH_SECONDS

    diffs = np.abs(np.asarray(timestamps, dtype=float) - target_time)
    closest_index = int(np.argmin(diffs))

    return percent_change(closes[closest_index], current_price)


def calculate_week_return(
    closes: Sequence[float],
    timestamps: Sequence[int],
) -> Optional[float]:
    """
    Trailing one-week return, in percent.

    The past point is found by a backward scan; on ties the latest point wins.
    """
    if closes is None or len(closes) < 2:
        return None

    current_price = closes[-1]
    target_time = timestamps[-1] - WEEK_SECONDS

    diffs = np.abs(np.asarray(timestamps, dtype=float) - target_time)
    closest_index = len(diffs) - 1 - int(np.argmin(diffs[::-1]))

    return percent_change(closes[closest_index], current_price)


def calculate_average_dividend(
    dividends: Optional[Iterable[Union[DividendRecord, Mapping[str, float]]]],
    payments_per_year: int = 12,
) -> Optional[float]:
    """
    Arithmetic mean of the dividend amounts, or None for no records.

    *payments_per_year* does not enter the mean; callers annualize with it.
    """
    amounts = [
        d["dividend"] if isinstance(d, Mapping) else d.dividend
        for d in dividends or []
    ]
    if not amounts:
        return None
    return sum(amounts) / len(amounts)


def annual_dividend(average_dividend: Optional[float], payments_per_year: int) -> Optional[float]:
    if average_dividend is None:
        return None
    return average_dividend * payments_per_year


def forward_yield(
    annual: Optional[float],
    current_price: Optional[float],
    fallback: Optional[float] = None,
) -> Optional[float]:
    """Annual dividend over price in percent, or *fallback* when either is unavailable."""
    if annual is None or not _is_positive_price(current_price):
        return fallback
    return annual / current_price * 100


@dataclass(frozen=True)
class TrailingReturns:
    """Price returns over the standard horizons for one symbol."""

    symbol: str
    current_price: Optional[float]
    price_change: Optional[float]
    return_1w: Optional[float]
    return_1m: Optional[float]
    return_3m: Optional[float]
    return_6m: Optional[float]
    return_12m: Optional[float]
    return_3y: Optional[float]

    def to_dict(self) -> dict[str, Any]:
        horizons = {
            "1Wk": self.return_1w,
            "1Mo": self.return_1m,
            "3Mo": self.return_3m,
            "6Mo": self.return_6m,
            "12Mo": self.return_12m,
            "3Yr": self.return_3y,
        }
        data: dict[str, Any] = {
            "symbol": self.symbol,
            "currentPrice": self.current_price,
            "priceChange": self.price_change,
        }
        data.update({f"priceReturn{k}": v for k, v in horizons.items()})
        # Total returns are reported as price returns; distributions are not reinvested.
        data.update({f"totalReturn{k}": v for k, v in horizons.items()})
        return data


@dataclass(frozen=True)
class TotalReturns:
    """The 3-month to 3-year returns stored on ETF records."""

    symbol: str
    total_return_3m: Optional[float]
    total_return_6m: Optional[float]
    total_return_12m: Optional[float]
    total_return_3y: Optional[float]

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "totalReturn3Mo": self.total_return_3m,
            "totalReturn6Mo": self.total_return_6m,
            "totalReturn12Mo": self.total_return_12m,
            "totalReturn3Yr": self.total_return_3y,
        }


def trailing_returns(series: PriceSeries, quote: Optional[Quote] = None) -> TrailingReturns:
    """Compute 1W, 1M, 3M, 6M, 12M and 3Y returns from *series*."""
    closes, timestamps = series.closes, series.timestamps
    return TrailingReturns(
        symbol=series.symbol,
        current_price=quote.price if quote else None,
        price_change=quote.price_change if quote else None,
        return_1w=calculate_week_return(closes, timestamps),
        return_1m=calculate_return(closes, timestamps, 1),
        return_3m=calculate_return(closes, timestamps, 3),
        return_6m=calculate_return(closes, timestamps, 6),
        return_12m=calculate_return(closes, timestamps, 12),
        return_3y=calculate_return(closes, timestamps, 36),
    )


def total_returns(series: PriceSeries, precision: Optional[int] = None) -> TotalReturns:
    """Compute 3M, 6M, 12M and 3Y returns, optionally rounded to *precision* decimals."""

    def compute(months: int) -> Optional[float]:
        value = calculate_return(series.closes, series.timestamps, months)
        if value is None or precision is None:
            return value
        return round(value, precision)

    return TotalReturns(
        symbol=series.symbol,
        total_return_3m=compute(3),
        total_return_6m=compute(6),
        total_return_12m=compute(12),
        total_return_3y=compute(36),
    )


__all__ = [
    "DAY_SECONDS",
    "MONTH_SECONDS",
    "WEEK_SECONDS",
    "percent_change",
    "calculate_return",
    "calculate_week_return",
    "calculate_average_dividend",
    "annual_dividend",
    "forward_yield",
    "TrailingReturns",
    "TotalReturns",
    "trailing_returns",
    "total_returns",
]
