"""Aggregation Result Cache"""
import logging
import time
from dataclasses import dataclass
from threading import Lock, RLock
from typing import Callable, Dict, Hashable, Optional

from domain.entities import AggregatedMetrics

logger = logging.getLogger("metrics.infrastructure.cache")


@dataclass(frozen=True)
class CacheEntry:
    """A stored result and the clock reading at insertion"""
    value: AggregatedMetrics
    created_at: float

    def is_expired(self, now: float, ttl_seconds: float) -> bool:
        return now - self.created_at >= ttl_seconds


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    evictions: int = 0

    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0


class ResultCache:
    """Time-bounded memo of full aggregation results.

    Entries are replaced wholesale, never mutated, so a reader holding the
    dict can look one up without taking the lock. Inserts, evictions and
    invalidation are serialized. Every invalidation starts a new generation;
    a result computed under an older generation is not stored.
    """

    def __init__(self,
                 ttl_seconds: float = 300,
                 clock: Callable[[], float] = time.monotonic,
                 max_entries: int = 0):
        if ttl_seconds <= 0:
            raise ValueError("TTL must be greater than 0")
        if max_entries < 0:
            raise ValueError("max_entries cannot be negative")
        self._ttl = ttl_seconds
        self._clock = clock
        self._max_entries = max_entries
        self._entries: Dict[Hashable, CacheEntry] = {}
        self._generation = 0
        self._lock = RLock()
        self._stats_lock = Lock()
        self.stats = CacheStats()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    @property
    def generation(self) -> int:
        return self._generation

    def get(self, key: Hashable) -> Optional[AggregatedMetrics]:
        """Return the stored result if it is still within its TTL"""
        entry = self._entries.get(key)
        if entry is None or entry.is_expired(self._clock(), self._ttl):
            with self._stats_lock:
                self.stats.misses += 1
            return None
        with self._stats_lock:
            self.stats.hits += 1
        return entry.value

    def set(self, key: Hashable, value: AggregatedMetrics, generation: Optional[int] = None) -> bool:
        """
        Store a result stamped with the current clock reading.

        Args:
            generation: the value of ``generation`` when computing the result
                began; the write is dropped if the cache was invalidated since

        Returns:
            True if the result was stored
        """
        with self._lock:
            if generation is not None and generation != self._generation:
                logger.debug(f"Dropped result for {key} computed before invalidation")
                return False

            now = self._clock()
            self._purge_expired(now)

            if self._max_entries and key not in self._entries:
                while len(self._entries) >= self._max_entries:
                    oldest = min(self._entries, key=lambda k: self._entries[k].created_at)
                    del self._entries[oldest]
                    self.stats.evictions += 1

            self._entries[key] = CacheEntry(value=value, created_at=now)
            return True

    def invalidate(self) -> None:
        """Drop every entry and start a new generation"""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._generation += 1
        logger.info(f"Aggregation cache invalidated ({count} entries dropped)")

    def _purge_expired(self, now: float) -> None:
        expired = [k for k, e in self._entries.items() if e.is_expired(now, self._ttl)]
        for key in expired:
            del self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)
