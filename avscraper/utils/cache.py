"""In-memory cache with per-entry expiry and LRU eviction."""

import logging
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Hashable, Optional, Tuple


class TTLCache:
    """
    Bounded key/value cache.

    Every entry carries an expiry time; expired entries are dropped on read
    and by ``sweep_expired``. When full, the least recently used entry is
    evicted.
    """

    def __init__(
        self,
        default_ttl: float = 600.0,
        max_entries: int = 500,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize the cache.

        Args:
            default_ttl: Lifetime in seconds for entries set without a ttl
            max_entries: Capacity before LRU eviction
            clock: Monotonic time source
        """
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")

        self.default_ttl = default_ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[Hashable, Tuple[Any, float]]" = OrderedDict()
        self.logger = logging.getLogger(__name__)

        self.stats = {
            'hits': 0,
            'misses': 0,
            'evictions': 0,
            'expirations': 0,
        }

    def get(self, key: Hashable, default: Any = None) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            self.stats['misses'] += 1
            return default

        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            self.stats['expirations'] += 1
            self.stats['misses'] += 1
            return default

        self._entries.move_to_end(key)
        self.stats['hits'] += 1
        return value

    def get_entry(self, key: Hashable) -> Optional[Tuple[Any, float]]:
        """``(value, expires_at)`` for a live entry, without touching recency."""
        entry = self._entries.get(key)
        if entry is None or self._clock() >= entry[1]:
            return None
        return entry

    def set(self, key: Hashable, value: Any, ttl: Optional[float] = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        if ttl <= 0:
            self._entries.pop(key, None)
            return

        self._entries[key] = (value, self._clock() + ttl)
        self._entries.move_to_end(key)

        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            self.stats['evictions'] += 1
            self.logger.debug(f"Evicted cache entry: {evicted}")

    def delete(self, key: Hashable) -> bool:
        return self._entries.pop(key, None) is not None

    def sweep_expired(self) -> int:
        """Drop every expired entry; returns how many were removed."""
        now = self._clock()
        expired = [k for k, (_, expires_at) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        self.stats['expirations'] += len(expired)
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: Hashable) -> bool:
        return self.get_entry(key) is not None

    def __len__(self) -> int:
        return len(self._entries)

    def get_stats(self) -> Dict[str, Any]:
        lookups = self.stats['hits'] + self.stats['misses']
        return {
            **self.stats,
            'size': len(self._entries),
            'max_entries': self.max_entries,
            'hit_rate': (self.stats['hits'] / lookups * 100) if lookups else 0.0,
        }
