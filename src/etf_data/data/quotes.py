"""Quote retrieval, single-symbol and batch."""

from __future__ import annotations

import asyncio
import logging

from pydantic import ValidationError

from ..cache import CacheStore
from ..config import DEFAULT_BASE_URL
from ..exceptions import QuoteFetchError
from .http import ResilientHttpClient
from .models import Quote, QuoteResponse

logger = logging.getLogger(__name__)

QUOTE_TTL_MS = 10_000


class QuoteFetcher:
    """
    Fetches latest quotes through the provider's batch quote endpoint.

    Quotes back headline figures, so a failed single-symbol fetch raises.
    The batch path degrades each failing symbol to an all-null quote instead.
    """

    def __init__(
        self,
        http: ResilientHttpClient,
        cache: CacheStore,
        ttl_ms: int = QUOTE_TTL_MS,
        base_url: str = DEFAULT_BASE_URL,
    ) -> None:
        self.http = http
        self.cache = cache
        self.ttl_ms = ttl_ms
        self.base_url = base_url

    @property
    def quote_url(self) -> str:
        return f"{self.base_url}/v7/finance/quote"

    def get_cached(self, symbol: str) -> Quote | None:
        return self.cache.get(CacheStore.make_key("quote", symbol), self.ttl_ms)

    async def fetch_quote(self, symbol: str) -> Quote:
        """
        Return the latest quote for *symbol*.

        Raises:
            QuoteFetchError: The endpoint answered with a non-retryable failure
                status or a body that is not a quote payload.
            RequestError: Retries were exhausted.
        """
        cached = self.get_cached(symbol)
        if cached is not None:
            logger.debug(f"Quote cache hit for {symbol}")
            return cached

        response = await self.http.request_with_retry(
            self.quote_url, params={"symbols": symbol}
        )
        if not response.is_success:
            raise QuoteFetchError(symbol, f"Failed to fetch quote (HTTP {response.status_code})")

        try:
            payload = QuoteResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise QuoteFetchError(symbol, "Malformed quote response") from e

        quote = Quote.from_result(symbol, payload.first_result())
        self.cache.set(CacheStore.make_key("quote", symbol), quote)
        return quote

    async def _fetch_or_empty(self, symbol: str) -> Quote:
        try:
            return await self.fetch_quote(symbol)
        except Exception as e:
            logger.warning(f"Quote fetch failed for {symbol}: {e}")
            return Quote.empty(symbol)

    async def fetch_batch_quotes(self, symbols: list[str]) -> dict[str, Quote]:
        """
        Return quotes keyed by symbol.

        Fresh cache entries are used as-is; every miss is fetched concurrently.
        Every requested symbol is present in the result, failures included.
        """
        results: dict[str, Quote] = {}
        misses: list[str] = []

        for symbol in symbols:
            cached = self.get_cached(symbol)
            if cached is not None:
                results[symbol] = cached
            elif symbol not in misses:
                misses.append(symbol)

        if misses:
            fetched = await asyncio.gather(*(self._fetch_or_empty(s) for s in misses))
            results.update(zip(misses, fetched))

        return {symbol: results[symbol] for symbol in symbols}


__all__ = ["QuoteFetcher", "QUOTE_TTL_MS"]
