"""
Pytest configuration and fixtures for the ETF market data tests.

This module provides reusable fixtures for:
- A controllable clock and a recording sleep
- Yahoo Finance style quote and chart payloads
- A mock upstream served through httpx.MockTransport
- Fetchers wired to the mock upstream
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Union

import httpx
import pytest

from etf_data.config import MarketDataConfig
from etf_data.data.fetcher import MarketDataFetcher


DAY = 24 * 60 * 60
START_TS = 1_600_000_000


# =============================================================================
# Time Fixtures
# =============================================================================

class FakeClock:
    """Time source in seconds that only moves when told to."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


# =============================================================================
# Payload Builders
# =============================================================================

def quote_payload(
    price: Optional[float] = 25.0,
    change: Optional[float] = 0.5,
    previous_close: Optional[float] = 24.5,
    currency: Optional[str] = "USD",
    exchange: Optional[str] = "NYSEArca",
) -> Dict[str, Any]:
    """Build a /v7/finance/quote payload with one result."""
    result: Dict[str, Any] = {}
    for key, value in [
        ("regularMarketPrice", price),
        ("regularMarketChange", change),
        ("regularMarketPreviousClose", previous_close),
        ("currency", currency),
        ("fullExchangeName", exchange),
    ]:
        if value is not None:
            result[key] = value
    return {"quoteResponse": {"result": [result], "error": None}}


def chart_payload(
    timestamps: List[Optional[int]],
    closes: List[Optional[float]],
    dividends: Optional[Dict[str, Dict[str, Any]]] = None,
    splits: Optional[Dict[str, Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    """Build a /v8/finance/chart payload."""
    result: Dict[str, Any] = {
        "meta": {"currency": "USD"},
        "timestamp": timestamps,
        "indicators": {"quote": [{"close": closes, "open": closes}]},
    }
    events: Dict[str, Any] = {}
    if dividends is not None:
        events["dividends"] = dividends
    if splits is not None:
        events["splits"] = splits
    if events:
        result["events"] = events
    return {"chart": {"result": [result], "error": None}}


def weekly_series(weeks: int, start_price: float = 100.0, step: float = 1.0):
    """Timestamps one week apart and linearly rising closes."""
    timestamps = [START_TS + i * 7 * DAY for i in range(weeks)]
    closes = [start_price + i * step for i in range(weeks)]
    return timestamps, closes


# =============================================================================
# Mock Upstream
# =============================================================================

ResponseSpec = Union[int, Dict[str, Any], tuple, Exception, Callable[[httpx.Request], httpx.Response]]


class MockUpstream:
    """
    Fake Yahoo Finance served through httpx.MockTransport.

    Responses are queued per route key (``quote:<symbol>``, ``chart:<symbol>``,
    ``dividends:<symbol>``). The last queued response repeats once the queue
    is down to one. Unknown routes answer 404.
    """

    def __init__(self) -> None:
        self.routes: Dict[str, List[ResponseSpec]] = {}
        self.requests: List[httpx.Request] = []

    def add(self, key: str, *specs: ResponseSpec) -> "MockUpstream":
        self.routes.setdefault(key, []).extend(specs)
        return self

    @staticmethod
    def route_key(request: httpx.Request) -> str:
        path = request.url.path
        if path.endswith("/v7/finance/quote"):
            return f"quote:{request.url.params.get('symbols')}"
        if "/v8/finance/chart/" in path:
            symbol = path.rsplit("/", 1)[1]
            kind = "dividends" if "events" in request.url.params else "chart"
            return f"{kind}:{symbol}"
        return path

    def count(self, key: str) -> int:
        return sum(1 for r in self.requests if self.route_key(r) == key)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get(self.route_key(request))
        if not queue:
            return httpx.Response(404, json={"error": "not found"})

        spec = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(spec, Exception):
            raise spec
        if callable(spec):
            return spec(request)
        if isinstance(spec, int):
            return httpx.Response(spec)
        if isinstance(spec, tuple):
            status, body = spec
            if isinstance(body, (bytes, str)):
                return httpx.Response(status, content=body)
            return httpx.Response(status, json=body)
        return httpx.Response(200, json=spec)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def upstream() -> MockUpstream:
    return MockUpstream()


@pytest.fixture
def market_config() -> MarketDataConfig:
    return MarketDataConfig()


@pytest.fixture
def make_fetcher(upstream, clock, sleep, market_config):
    """Factory for MarketDataFetcher instances talking to the mock upstream."""

    def factory(config: Optional[MarketDataConfig] = None) -> MarketDataFetcher:
        return MarketDataFetcher(
            config=config or market_config,
            client=upstream.client(),
            clock=clock,
            sleep=sleep,
        )

    return factory
