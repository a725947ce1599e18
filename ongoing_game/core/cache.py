"""
Bounded LRU caches for per-game payloads.

Game records and game timelines are immutable once fetched for a given source,
so they are kept across generations and reused whenever the same game shows up
in another player's history.
"""

import threading
from collections import OrderedDict
from typing import TYPE_CHECKING, Any, Dict, Generic, Hashable, Optional, TypeVar
import structlog

from .enums import DataSource

if TYPE_CHECKING:
    from ..models import Sourced

logger = structlog.get_logger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

DEFAULT_CAPACITY = 400


class LRUCache(Generic[K, V]):
    """Capacity-bounded map evicting the least recently accessed entry."""

    def __init__(self, maxsize: int = DEFAULT_CAPACITY, name: str = "lru"):
        """
        Initialize LRU cache.

        Args:
            maxsize: Maximum number of entries
            name: Cache name used in logs
        """
        if maxsize < 1:
            raise ValueError(f"maxsize must be at least 1, got {maxsize}")

        self.maxsize = maxsize
        self.name = name
        self.cache: "OrderedDict[K, V]" = OrderedDict()
        self.lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, key: K) -> Optional[V]:
        """
        Get value and mark it as most recently used.

        Args:
            key: Cache key

        Returns:
            Cached value if present, None otherwise
        """
        with self.lock:
            if key in self.cache:
                self.cache.move_to_end(key)
                self._hits += 1
                return self.cache[key]
            self._misses += 1
            return None

    def peek(self, key: K) -> Optional[V]:
        """Get value without touching its recency."""
        with self.lock:
            return self.cache.get(key)

    def set(self, key: K, value: V) -> None:
        """
        Insert or replace a value, evicting the oldest entry when over capacity.

        Args:
            key: Cache key
            value: Value to cache
        """
        with self.lock:
            self.cache[key] = value
            self.cache.move_to_end(key)
            while len(self.cache) > self.maxsize:
                evicted, _ = self.cache.popitem(last=False)
                self._evictions += 1
                logger.debug("Cache eviction", cache=self.name, key=evicted, reason="full")

    def delete(self, key: K) -> bool:
        with self.lock:
            return self.cache.pop(key, None) is not None

    def clear(self) -> None:
        """Clear all entries from cache."""
        with self.lock:
            count = len(self.cache)
            self.cache.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0
            logger.info("Cache cleared", cache=self.name, entries_removed=count)

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self.lock:
            total = self._hits + self._misses
            return {
                "size": len(self.cache),
                "maxsize": self.maxsize,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "hit_rate": self._hits / total if total > 0 else 0.0,
            }

    def __contains__(self, key: object) -> bool:
        with self.lock:
            return key in self.cache

    def __len__(self) -> int:
        """Get number of entries in cache."""
        return len(self.cache)


class SourcedCache(LRUCache[int, "Sourced[Any]"]):
    """Game-id keyed cache of source-tagged payloads."""

    def get_for_source(self, game_id: int, source: DataSource) -> Optional["Sourced[Any]"]:
        """Return the entry only when it was loaded from ``source``."""
        entry = self.get(game_id)
        if entry is not None and entry.source == source:
            return entry
        return None
