"""
ExpiringCache - In-memory key/value store with a fixed TTL.

Features:
- One timestamp per entry, fixed TTL per cache instance
- Lazy expiry: a stale entry is evicted by the read that finds it
- Injectable clock for deterministic tests
- No size bound; the key space is limited to known substance names
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable

from loguru import logger

# Live substance lookups
LOOKUP_CACHE_TTL = timedelta(hours=1)
# Long-lived variant for callers that keep results across page loads
LONG_TERM_CACHE_TTL = timedelta(hours=24)


@dataclass(frozen=True)
class CacheEntry:
    """A single cache entry. Replaced wholesale, never mutated."""

    value: Any
    stored_at: datetime

    def is_expired(self, now: datetime, ttl: timedelta) -> bool:
        """Check if entry is past its TTL."""
        return now - self.stored_at > ttl


class ExpiringCache:
    """
    Memory-resident cache with lazy TTL expiry.

    Reads and writes are synchronous, so a caller can partition a batch into
    hits and misses before its first await.

    Usage:
        cache = ExpiringCache(ttl=timedelta(hours=1))

        value = cache.get("pw_lsd")
        if value is None:
            value = await fetch()
            cache.set("pw_lsd", value)
    """

    def __init__(
        self,
        ttl: timedelta = LOOKUP_CACHE_TTL,
        clock: Callable[[], datetime] = datetime.now,
        debug: bool = False,
    ):
        self._memory: dict[str, CacheEntry] = {}
        self._ttl = ttl
        self._clock = clock
        self._debug = debug
        self._stats = CacheStats()

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def get(self, key: str | None) -> Any | None:
        """
        Get value from cache.

        Returns None if the key is missing or its entry has expired.
        """
        if not key:
            return None

        entry = self._memory.get(key)
        if entry is None:
            self._stats.misses += 1
            self._log(f"MISS: {key[:50]}")
            return None

        if entry.is_expired(self._clock(), self._ttl):
            del self._memory[key]
            self._stats.misses += 1
            self._stats.expirations += 1
            self._log(f"EXPIRED: {key[:50]}")
            return None

        self._stats.hits += 1
        self._log(f"HIT: {key[:50]}")
        return entry.value

    def set(self, key: str | None, value: Any) -> None:
        """Store value under key. Empty keys and empty values are ignored."""
        if not key or not value:
            return

        self._memory[key] = CacheEntry(value=value, stored_at=self._clock())
        self._log(f"SET: {key[:50]} (TTL: {self._ttl.total_seconds()}s)")

    def delete(self, key: str) -> bool:
        """Delete a specific key from cache."""
        if key in self._memory:
            del self._memory[key]
            self._log(f"DELETE: {key[:50]}")
            return True
        return False

    def clear(self) -> None:
        """Clear all cache entries."""
        count = len(self._memory)
        self._memory.clear()
        self._log(f"CLEAR: {count} entries removed")

    def __contains__(self, key: str) -> bool:
        entry = self._memory.get(key)
        return entry is not None and not entry.is_expired(self._clock(), self._ttl)

    def __len__(self) -> int:
        return len(self._memory)

    def get_stats(self) -> "CacheStats":
        """Get cache statistics."""
        self._stats.size = len(self._memory)
        return self._stats

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[ExpiringCache] {message}")


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    expirations: int = 0
    size: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "expirations": self.expirations,
            "size": self.size,
            "hit_rate": f"{self.hit_rate:.2%}",
        }
