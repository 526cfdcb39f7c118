"""
Tests for quote fetching.

This module tests:
- Provider field mapping and null handling
- Quote caching
- Error propagation on the single-symbol path
- Failure isolation on the batch path
"""

import asyncio

import httpx
import pytest

from etf_data.cache import CacheStore
from etf_data.data.http import ResilientHttpClient
from etf_data.data.models import Quote
from etf_data.data.quotes import QuoteFetcher
from etf_data.exceptions import QuoteFetchError, RequestError

from conftest import quote_payload


@pytest.fixture
def quote_fetcher(upstream, clock, sleep):
    http = ResilientHttpClient(client=upstream.client(), sleep=sleep)
    return QuoteFetcher(http, CacheStore(clock))


# =============================================================================
# Single Quote
# =============================================================================

class TestFetchQuote:
    """Tests for single-symbol quotes."""

    def test_maps_provider_fields(self, upstream, quote_fetcher):
        upstream.add("quote:JEPI", quote_payload(55.12, -0.23, 55.35, "USD", "NYSEArca"))

        quote = asyncio.run(quote_fetcher.fetch_quote("JEPI"))

        assert quote == Quote(
            symbol="JEPI",
            price=55.12,
            price_change=-0.23,
            previous_close=55.35,
            currency="USD",
            exchange="NYSEArca",
        )
        assert upstream.requests[0].url.params["symbols"] == "JEPI"

    def test_missing_fields_are_null_not_zero(self, upstream, quote_fetcher):
        upstream.add("quote:JEPI", quote_payload(price=55.0, change=None, previous_close=None))

        quote = asyncio.run(quote_fetcher.fetch_quote("JEPI"))

        assert quote.price == 55.0
        assert quote.price_change is None
        assert quote.previous_close is None

    def test_empty_result_gives_null_quote(self, upstream, quote_fetcher):
        upstream.add("quote:ZZZZ", {"quoteResponse": {"result": []}})

        quote = asyncio.run(quote_fetcher.fetch_quote("ZZZZ"))

        assert quote == Quote.empty("ZZZZ")

    def test_zero_price_is_kept(self, upstream, quote_fetcher):
        upstream.add("quote:JEPI", quote_payload(price=0.0))

        quote = asyncio.run(quote_fetcher.fetch_quote("JEPI"))

        assert quote.price == 0.0

    def test_to_dict_uses_camel_case(self):
        quote = Quote("SCHD", 27.5, 0.1, 27.4, "USD", "NYSEArca")

        assert quote.to_dict() == {
            "symbol": "SCHD",
            "price": 27.5,
            "priceChange": 0.1,
            "previousClose": 27.4,
            "currency": "USD",
            "exchange": "NYSEArca",
        }


class TestQuoteCaching:
    """Tests for the 10 second quote cache."""

    def test_second_call_served_from_cache(self, upstream, quote_fetcher, clock):
        upstream.add("quote:JEPI", quote_payload(55.0))

        async def scenario():
            first = await quote_fetcher.fetch_quote("JEPI")
            clock.advance(5)
            second = await quote_fetcher.fetch_quote("JEPI")
            return first, second

        first, second = asyncio.run(scenario())

        assert first == second
        assert upstream.count("quote:JEPI") == 1

    def test_refetched_after_ttl(self, upstream, quote_fetcher, clock):
        upstream.add("quote:JEPI", quote_payload(55.0), quote_payload(56.0))

        async def scenario():
            await quote_fetcher.fetch_quote("JEPI")
            clock.advance(10)
            return await quote_fetcher.fetch_quote("JEPI")

        quote = asyncio.run(scenario())

        assert quote.price == 56.0
        assert upstream.count("quote:JEPI") == 2


class TestQuoteErrors:
    """Tests for failures on the single-symbol path."""

    def test_not_found_raises(self, upstream, quote_fetcher):
        upstream.add("quote:NOPE", 404)

        with pytest.raises(QuoteFetchError) as exc_info:
            asyncio.run(quote_fetcher.fetch_quote("NOPE"))

        assert exc_info.value.symbol == "NOPE"

    def test_malformed_json_raises(self, upstream, quote_fetcher):
        upstream.add("quote:JEPI", (200, b"<html>maintenance</html>"))

        with pytest.raises(QuoteFetchError):
            asyncio.run(quote_fetcher.fetch_quote("JEPI"))

    def test_exhausted_retries_raise_request_error(self, upstream, quote_fetcher):
        upstream.add("quote:JEPI", 429)

        with pytest.raises(RequestError):
            asyncio.run(quote_fetcher.fetch_quote("JEPI"))

    def test_failures_are_not_cached(self, upstream, quote_fetcher):
        upstream.add("quote:JEPI", 404, quote_payload(55.0))

        async def scenario():
            with pytest.raises(QuoteFetchError):
                await quote_fetcher.fetch_quote("JEPI")
            return await quote_fetcher.fetch_quote("JEPI")

        assert asyncio.run(scenario()).price == 55.0


# =============================================================================
# Batch Quotes
# =============================================================================

class TestFetchBatchQuotes:
    """Tests for batch quotes."""

    def test_returns_all_symbols(self, upstream, quote_fetcher):
        upstream.add("quote:JEPI", quote_payload(55.0))
        upstream.add("quote:SCHD", quote_payload(27.0))

        quotes = asyncio.run(quote_fetcher.fetch_batch_quotes(["JEPI", "SCHD"]))

        assert list(quotes) == ["JEPI", "SCHD"]
        assert quotes["JEPI"].price == 55.0
        assert quotes["SCHD"].price == 27.0

    def test_failing_symbol_degrades_to_null_quote(self, upstream, quote_fetcher):
        upstream.add("quote:AAA", quote_payload(10.0))
        upstream.add("quote:BBB", 500)

        quotes = asyncio.run(quote_fetcher.fetch_batch_quotes(["AAA", "BBB"]))

        assert quotes["AAA"].price == 10.0
        assert quotes["BBB"] == Quote(symbol="BBB")
        assert quotes["BBB"].to_dict() == {
            "symbol": "BBB",
            "price": None,
            "priceChange": None,
            "previousClose": None,
            "currency": None,
            "exchange": None,
        }

    def test_unexpected_exception_is_absorbed(self, quote_fetcher):
        async def boom(symbol):
            if symbol == "BBB":
                raise RuntimeError("unexpected")
            return Quote(symbol=symbol, price=1.0)

        quote_fetcher.fetch_quote = boom

        quotes = asyncio.run(quote_fetcher.fetch_batch_quotes(["AAA", "BBB"]))

        assert quotes["AAA"].price == 1.0
        assert quotes["BBB"] == Quote.empty("BBB")

    def test_cached_symbols_are_not_refetched(self, upstream, quote_fetcher):
        upstream.add("quote:JEPI", quote_payload(55.0))
        upstream.add("quote:SCHD", quote_payload(27.0))

        async def scenario():
            await quote_fetcher.fetch_quote("JEPI")
            return await quote_fetcher.fetch_batch_quotes(["JEPI", "SCHD"])

        quotes = asyncio.run(scenario())

        assert quotes["JEPI"].price == 55.0
        assert upstream.count("quote:JEPI") == 1
        assert upstream.count("quote:SCHD") == 1

    def test_duplicate_symbols_fetched_once(self, upstream, quote_fetcher):
        upstream.add("quote:JEPI", quote_payload(55.0))

        quotes = asyncio.run(quote_fetcher.fetch_batch_quotes(["JEPI", "JEPI"]))

        assert list(quotes) == ["JEPI"]
        assert upstream.count("quote:JEPI") == 1

    def test_misses_are_fetched_concurrently(self, upstream, quote_fetcher):
        symbols = ["JEPI", "JEPQ", "SCHD", "DIVO"]
        in_flight = {"now": 0, "peak": 0}
        finished = []

        def slow_quote(symbol, delay):
            async def respond(request):
                in_flight["now"] += 1
                in_flight["peak"] = max(in_flight["peak"], in_flight["now"])
                await asyncio.sleep(delay)
                in_flight["now"] -= 1
                finished.append(symbol)
                return httpx.Response(200, json=quote_payload(10.0))
            return respond

        upstream.add("quote:JEPI", slow_quote("JEPI", 0.2))
        for symbol in symbols[1:]:
            upstream.add(f"quote:{symbol}", slow_quote(symbol, 0.01))

        quotes = asyncio.run(quote_fetcher.fetch_batch_quotes(symbols))

        # the slow first symbol does not hold back the others
        assert in_flight["peak"] == len(symbols)
        assert finished[-1] == "JEPI"
        assert list(quotes) == symbols
        assert all(q.price == 10.0 for q in quotes.values())

    def test_empty_batch(self, upstream, quote_fetcher):
        assert asyncio.run(quote_fetcher.fetch_batch_quotes([])) == {}
        assert upstream.requests == []
