"""Exceptions raised by the market data layer."""

from __future__ import annotations


class MarketDataError(Exception):
    """Base class for market data failures."""


class RequestError(MarketDataError):
    """Raised when an upstream request still fails after all retries."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class QuoteFetchError(MarketDataError):
    """Raised when the quote endpoint answers with a non-retryable failure."""

    def __init__(self, symbol: str, message: str = "Failed to fetch quote") -> None:
        super().__init__(f"{message}: {symbol}")
        self.symbol = symbol


__all__ = ["MarketDataError", "RequestError", "QuoteFetchError"]
