"""
Thread-safe in-process cache of current weather per location.

Entries are keyed by the spatial bin of the request coordinates and hold a
WeatherCacheEntry, so freshness is decided by the entry's own TTL rather
than by the cache. The cache is bounded and evicts least recently used
locations when full.
"""
import logging
import threading
from collections import OrderedDict
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from golfsim.weather.environment import (
    CACHE_DURATION_SECONDS,
    WeatherCacheEntry,
    WeatherData,
    location_bin,
    utcnow,
)

logger = logging.getLogger(__name__)

LocationKey = Tuple[int, int]


class WeatherCache:
    """
    Bounded LRU map of location bin -> WeatherCacheEntry.

    Usage:
        cache = WeatherCache(max_entries=500)
        cache.refresh(lat, lon, weather)
        current = cache.get(lat, lon)
    """

    def __init__(
        self,
        max_entries: int = 500,
        ttl_seconds: int = CACHE_DURATION_SECONDS,
        precision: int = 3,
        name: str = "weather"
    ):
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self.precision = precision
        self.name = name

        self._entries: "OrderedDict[LocationKey, WeatherCacheEntry]" = OrderedDict()
        self._lock = threading.RLock()

        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expirations = 0

    def _key(self, lat: float, lon: float) -> LocationKey:
        return location_bin(lat, lon, self.precision)

    def get(self, lat: float, lon: float, now: Optional[datetime] = None) -> Optional[WeatherData]:
        """
        Get fresh weather for a location.

        Returns:
            The cached observation, or None if absent, invalid, or stale
        """
        key = self._key(lat, lon)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None

            if entry.needs_refresh(now):
                self._expirations += 1
                self._misses += 1
                return None

            self._entries.move_to_end(key)
            self._hits += 1
            return entry.data

    def refresh(
        self,
        lat: float,
        lon: float,
        data: WeatherData,
        now: Optional[datetime] = None
    ) -> bool:
        """
        Store a new observation for a location.

        Returns:
            True if the observation was valid and is now served from cache
        """
        key = self._key(lat, lon)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                while len(self._entries) >= self.max_entries:
                    self._evict_oldest()
                entry = WeatherCacheEntry(ttl_seconds=self.ttl_seconds)
                self._entries[key] = entry
            else:
                self._entries.move_to_end(key)

            entry.update(data, now or utcnow())
            return entry.valid

    def invalidate(self, lat: float, lon: float) -> bool:
        """Mark a location stale. Returns True if an entry existed."""
        with self._lock:
            entry = self._entries.get(self._key(lat, lon))
            if entry is None:
                return False
            entry.invalidate()
            return True

    def clear(self) -> int:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            logger.info(f"Cache '{self.name}' cleared: {count} entries removed")
            return count

    def _evict_oldest(self) -> None:
        if self._entries:
            oldest_key = next(iter(self._entries))
            del self._entries[oldest_key]
            self._evictions += 1
            logger.debug(f"Cache '{self.name}' evicted: {oldest_key}")

    def cleanup_expired(self, now: Optional[datetime] = None) -> int:
        """
        Remove all stale entries.

        Returns:
            Number of entries removed
        """
        with self._lock:
            now = now or utcnow()
            expired = [k for k, e in self._entries.items() if e.needs_refresh(now)]
            for key in expired:
                del self._entries[key]
                self._expirations += 1
            if expired:
                logger.debug(f"Cache '{self.name}' cleanup: {len(expired)} expired entries removed")
            return len(expired)

    def get_stats(self) -> Dict[str, Any]:
        """Cache statistics for monitoring."""
        with self._lock:
            total = self._hits + self._misses
            return {
                "name": self.name,
                "size": len(self._entries),
                "max_entries": self.max_entries,
                "ttl_seconds": self.ttl_seconds,
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": round(self._hits / total * 100, 2) if total else 0.0,
                "evictions": self._evictions,
                "expirations": self._expirations,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
