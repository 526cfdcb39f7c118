"""
Data models for the market data layer.

Two families live here:

- Provider response shapes (Pydantic). Every field of the upstream JSON that
  the fetchers read is declared explicitly as optional, so a missing branch of
  the payload parses to ``None`` or an empty container instead of being probed
  at each call site.
- Normalized entities (dataclasses) handed to callers: quotes, price series,
  split events and split-adjusted dividend records.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Provider response shapes
# ---------------------------------------------------------------------------

class ProviderModel(BaseModel):
    """Base for upstream payloads: unknown keys are ignored."""

    class Config:
        extra = "ignore"
        populate_by_name = True


class QuoteResult(ProviderModel):
    """One entry of ``quoteResponse.result``."""
    regular_market_price: Optional[float] = Field(default=None, alias="regularMarketPrice")
    regular_market_change: Optional[float] = Field(default=None, alias="regularMarketChange")
    regular_market_previous_close: Optional[float] = Field(
        default=None, alias="regularMarketPreviousClose"
    )
    currency: Optional[str] = None
    full_exchange_name: Optional[str] = Field(default=None, alias="fullExchangeName")


class QuoteResponseBody(ProviderModel):
    result: Optional[List[QuoteResult]] = None


class QuoteResponse(ProviderModel):
    """Payload of ``/v7/finance/quote``."""
    quote_response: Optional[QuoteResponseBody] = Field(default=None, alias="quoteResponse")

    def first_result(self) -> QuoteResult:
        """Return the first result, or an all-empty result when there is none."""
        if self.quote_response and self.quote_response.result:
            return self.quote_response.result[0]
        return QuoteResult()


class QuoteIndicator(ProviderModel):
    close: Optional[List[Optional[float]]] = None


class Indicators(ProviderModel):
    quote: Optional[List[QuoteIndicator]] = None


class DividendEvent(ProviderModel):
    amount: Optional[float] = None
    date: Optional[int] = None
    timestamp: Optional[int] = None


class SplitEventPayload(ProviderModel):
    numerator: Optional[float] = None
    denominator: Optional[float] = None
    date: Optional[int] = None
    timestamp: Optional[int] = None


class ChartEvents(ProviderModel):
    dividends: Optional[Dict[str, DividendEvent]] = None
    splits: Optional[Dict[str, SplitEventPayload]] = None


class ChartResult(ProviderModel):
    timestamp: Optional[List[Optional[int]]] = None
    indicators: Optional[Indicators] = None
    events: Optional[ChartEvents] = None

    @property
    def closes(self) -> List[Optional[float]]:
        if self.indicators and self.indicators.quote:
            return self.indicators.quote[0].close or []
        return []

    @property
    def timestamps(self) -> List[Optional[int]]:
        return self.timestamp or []

    @property
    def dividend_events(self) -> Dict[str, DividendEvent]:
        return (self.events.dividends if self.events else None) or {}

    @property
    def split_events(self) -> Dict[str, SplitEventPayload]:
        return (self.events.splits if self.events else None) or {}


class ChartBody(ProviderModel):
    result: Optional[List[ChartResult]] = None


class ChartResponse(ProviderModel):
    """Payload of ``/v8/finance/chart/<symbol>``."""
    chart: Optional[ChartBody] = None

    def first_result(self) -> ChartResult:
        if self.chart and self.chart.result:
            return self.chart.result[0]
        return ChartResult()


def event_timestamp(key: str, date: Optional[int], timestamp: Optional[int]) -> int:
    """Seconds since epoch of an event: its ``date``, else ``timestamp``, else its key."""
    return date or timestamp or int(float(key))


# ---------------------------------------------------------------------------
# Normalized entities
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Quote:
    """Latest quote for a symbol. Missing provider fields stay None, never zero."""

    symbol: str
    price: Optional[float] = None
    price_change: Optional[float] = None
    previous_close: Optional[float] = None
    currency: Optional[str] = None
    exchange: Optional[str] = None

    @classmethod
    def empty(cls, symbol: str) -> "Quote":
        """Degraded quote used when a symbol could not be fetched."""
        return cls(symbol=symbol)

    @classmethod
    def from_result(cls, symbol: str, result: QuoteResult) -> "Quote":
        return cls(
            symbol=symbol,
            price=result.regular_market_price,
            price_change=result.regular_market_change,
            previous_close=result.regular_market_previous_close,
            currency=result.currency,
            exchange=result.full_exchange_name,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "price": self.price,
            "priceChange": self.price_change,
            "previousClose": self.previous_close,
            "currency": self.currency,
            "exchange": self.exchange,
        }


@dataclass(frozen=True)
class ChartParams:
    """Provider range/interval pair for a timeframe."""

    range: str
    interval: str


@dataclass
class PriceSeries:
    """Closing prices with parallel, ascending epoch-second timestamps."""

    symbol: str
    timeframe: str
    timestamps: List[int] = field(default_factory=list)
    closes: List[float] = field(default_factory=list)

    @classmethod
    def empty(cls, symbol: str, timeframe: str) -> "PriceSeries":
        return cls(symbol=symbol, timeframe=timeframe)

    @property
    def is_empty(self) -> bool:
        return not self.timestamps

    def __len__(self) -> int:
        return len(self.closes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "timeframe": self.timeframe,
            "timestamps": list(self.timestamps),
            "closes": list(self.closes),
        }


@dataclass
class ComparisonCharts:
    """Price series for several symbols over one timeframe."""

    symbols: List[str]
    timeframe: str
    data: Dict[str, PriceSeries] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbols": list(self.symbols),
            "timeframe": self.timeframe,
            "data": {
                symbol: {"timestamps": list(s.timestamps), "closes": list(s.closes)}
                for symbol, s in self.data.items()
            },
        }


@dataclass(frozen=True)
class SplitEvent:
    """A stock split: ``date`` in epoch milliseconds, ``ratio`` = numerator / denominator."""

    date: int
    ratio: float


@dataclass(frozen=True)
class DividendRecord:
    """A split-adjusted dividend payment on a ``YYYY-MM-DD`` date."""

    date: str
    dividend: float

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date, "dividend": self.dividend}


@dataclass
class DividendHistory:
    """Split-adjusted dividends for a symbol, ascending by date."""

    symbol: str
    dividends: List[DividendRecord] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "dividends": [d.to_dict() for d in self.dividends],
        }


__all__ = [
    "QuoteResult",
    "QuoteResponse",
    "ChartResult",
    "ChartResponse",
    "DividendEvent",
    "SplitEventPayload",
    "event_timestamp",
    "Quote",
    "ChartParams",
    "PriceSeries",
    "ComparisonCharts",
    "SplitEvent",
    "DividendRecord",
    "DividendHistory",
]
