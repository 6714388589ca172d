"""
Rate caching to reduce upstream market-data calls.

Time-bounded memoization keyed by the ordered currency pair. Entries are
immutable ResolvedRate values; a refresh overwrites in place.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from cryptoflow.pricing.models import CurrencyPair, ResolvedRate, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """Cached rate with its insertion time."""
    pair: CurrencyPair
    rate: ResolvedRate
    inserted_at: datetime

    def age_seconds(self, now: datetime) -> float:
        return (now - self.inserted_at).total_seconds()


class RateCache:
    """
    In-memory rate cache with a fixed freshness window.

    Constructed once at process start and passed to the resolver. Safe for
    concurrent coroutines: reads and writes are single dict operations and
    concurrent writers for the same pair resolve as last-writer-wins.
    """

    DEFAULT_TTL = 30  # seconds

    def __init__(
        self,
        ttl_seconds: Optional[int] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize the rate cache.

        Args:
            ttl_seconds: Freshness window in seconds.
            clock: Returns the current UTC datetime.
        """
        self.ttl_seconds = self.DEFAULT_TTL if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._entries: Dict[CurrencyPair, CacheEntry] = {}
        self._hits = 0
        self._misses = 0

    def _is_fresh(self, entry: CacheEntry, now: datetime) -> bool:
        return entry.age_seconds(now) <= self.ttl_seconds

    def get(self, pair: CurrencyPair) -> Optional[ResolvedRate]:
        """
        Get a fresh cached rate for the exact ordered pair.

        Returns:
            ResolvedRate if present and fresh, None otherwise.
        """
        entry = self._entries.get(pair)

        if entry is None:
            self._misses += 1
            return None

        if not self._is_fresh(entry, self._clock()):
            # Superseded; drop so the next resolution refreshes it
            self._entries.pop(pair, None)
            self._misses += 1
            return None

        self._hits += 1
        return entry.rate

    def set(self, rate: ResolvedRate) -> None:
        """Store or overwrite the entry for the rate's pair."""
        self._entries[rate.pair] = CacheEntry(
            pair=rate.pair,
            rate=rate,
            inserted_at=self._clock(),
        )

    def clear(self) -> int:
        """Clear all entries. Returns the number removed."""
        count = len(self._entries)
        self._entries.clear()
        logger.info(f"Cleared rate cache: {count} entries")
        return count

    def clear_expired(self) -> int:
        """Remove stale entries. Returns the number removed."""
        now = self._clock()
        expired = [pair for pair, entry in self._entries.items() if not self._is_fresh(entry, now)]
        for pair in expired:
            self._entries.pop(pair, None)
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        total_requests = self._hits + self._misses
        hit_rate = (self._hits / total_requests * 100) if total_requests > 0 else 0

        return {
            "entries": len(self._entries),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate_pct": round(hit_rate, 1),
            "ttl_seconds": self.ttl_seconds,
        }
