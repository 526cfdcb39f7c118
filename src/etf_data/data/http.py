"""
Resilient HTTP fetching.

Wraps an ``httpx.AsyncClient`` with browser-like default headers and a retry
loop that backs off exponentially on rate limiting (429), server errors (5xx)
and network failures. Every other response, successful or not, is handed back
to the caller unchanged.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Mapping

import httpx

from ..config import DEFAULT_HEADERS, ProviderConfig, RetryConfig
from ..exceptions import RequestError

logger = logging.getLogger(__name__)


def is_retryable_status(status_code: int) -> bool:
    """Return True for statuses worth retrying: 429 and any 5xx."""
    return status_code == 429 or 500 <= status_code < 600


class ResilientHttpClient:
    """
    HTTP GET with retry and exponential backoff.

    Example:
        >>> async with ResilientHttpClient() as http:
        ...     response = await http.request_with_retry(url, params={"symbols": "JEPI"})
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        retry_config: RetryConfig | None = None,
        provider_config: ProviderConfig | None = None,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            client: Client to send requests with. One is created (and owned) when omitted.
            retry_config: Retry count and backoff schedule.
            provider_config: Supplies default headers and the request timeout.
            sleep: Coroutine function taking seconds. Defaults to asyncio.sleep.
        """
        self.retry_config = retry_config or RetryConfig()
        self.provider_config = provider_config or ProviderConfig()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=self.provider_config.timeout_seconds,
        )
        self._sleep = sleep or asyncio.sleep

    @property
    def default_headers(self) -> dict[str, str]:
        return {**DEFAULT_HEADERS, **self.provider_config.headers}

    async def request_with_retry(
        self,
        url: str,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        retries: int | None = None,
        initial_backoff_ms: float | None = None,
    ) -> httpx.Response:
        """
        GET *url*, retrying transient failures.

        Args:
            url: Absolute URL to request.
            params: Query string parameters.
            headers: Extra headers, merged over the default browser-like set.
            retries: Attempts allowed after the first one. Defaults to the retry config.
            initial_backoff_ms: First delay between attempts, doubled after each one.

        Returns:
            The first response that is not 429/5xx, whatever its status.

        Raises:
            RequestError: When every attempt failed with a retryable status or a
                network error.
        """
        retries = self.retry_config.max_retries if retries is None else retries
        backoff_ms = (
            self.retry_config.initial_backoff_ms
            if initial_backoff_ms is None
            else initial_backoff_ms
        )
        merged_headers = {**self.default_headers, **(headers or {})}

        last_error: Exception | None = None
        for attempt in range(retries + 1):
            try:
                response = await self._client.get(url, params=params, headers=merged_headers)
            except httpx.HTTPError as e:
                last_error = e
                logger.warning(f"Request to {url} failed (attempt {attempt + 1}): {e!r}")
            else:
                if not is_retryable_status(response.status_code):
                    return response
                last_error = RequestError(
                    f"HTTP {response.status_code}", status_code=response.status_code
                )
                logger.warning(
                    f"Request to {url} returned HTTP {response.status_code} "
                    f"(attempt {attempt + 1})"
                )

            if attempt == retries:
                break

            await self._sleep(backoff_ms / 1000.0)
            backoff_ms *= self.retry_config.backoff_multiplier

        if isinstance(last_error, RequestError):
            raise last_error
        if last_error is not None:
            raise RequestError(f"Request failed: {last_error}") from last_error
        raise RequestError("Request failed")

    async def aclose(self) -> None:
        """Close the underlying client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ResilientHttpClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


__all__ = ["ResilientHttpClient", "is_retryable_status"]
