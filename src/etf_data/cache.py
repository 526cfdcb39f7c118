"""
In-memory TTL cache.

Entries remember when they were stored; freshness is decided by the caller's
time-to-live at lookup time. Expired entries are evicted lazily on the next
``get`` for their key, there is no background sweep.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """A cached value and its insertion time in milliseconds."""

    value: Any
    timestamp: float


class CacheStore:
    """
    Key/value store with per-lookup time-to-live.

    One store is created per data kind and injected into the fetcher that
    owns it, so tests can build isolated stores with a fake clock.

    Example:
        >>> cache = CacheStore()
        >>> cache.set(CacheStore.make_key("quote", "SCHD"), {"price": 27.1})
        >>> cache.get("quote:SCHD", ttl_ms=10_000)
        {'price': 27.1}
    """

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        """
        Initialize the store.

        Args:
            clock: Returns the current time in seconds. Defaults to time.time.
        """
        self._clock = clock or time.time
        self._entries: dict[str, CacheEntry] = {}

    @staticmethod
    def make_key(kind: str, *parts: str) -> str:
        """Build a ``<kind>:<discriminator>`` key."""
        return ":".join([kind, *parts])

    def _now_ms(self) -> float:
        return self._clock() * 1000.0

    def get(self, key: str, ttl_ms: float) -> Any | None:
        """
        Return the value for *key* if it is younger than *ttl_ms*.

        An entry whose age has reached the TTL is deleted and treated as absent.
        """
        entry = self._entries.get(key)
        if entry is None:
            return None

        if self._now_ms() - entry.timestamp >= ttl_ms:
            del self._entries[key]
            logger.debug(f"Cache entry expired: {key}")
            return None

        return entry.value

    def set(self, key: str, value: Any) -> None:
        """Store *value* under *key* stamped with the current time."""
        self._entries[key] = CacheEntry(value=value, timestamp=self._now_ms())

    def clear(self) -> None:
        """Drop every entry."""
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries


__all__ = ["CacheStore", "CacheEntry"]
