"""
Per-process availability cache.

Entries are keyed by the value tuple (business_id, date, duration, staff_id) and
indexed per business so a write can drop everything for that business at once.
The cache is a best-effort read accelerator and is never authoritative; once it
holds `max_entries` values the least recently used one is evicted.
"""
import logging
import threading
from collections import OrderedDict
from datetime import date
from typing import Dict, Optional, Set, Tuple

from booking_engine.config.settings import get_settings

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, date, int, Optional[str]]


class AvailabilityCache:
    """
    Thread-safe LRU map of CacheKey -> DayAvailability.

    Every invalidation bumps the business's generation. A reader records the
    generation before it touches the store and `put` refuses results computed
    under an older generation, so a slow read can't resurrect pre-write data.
    """

    def __init__(self, max_entries: Optional[int] = None):
        self.max_entries = max_entries or get_settings().CACHE_MAX_ENTRIES
        self._entries: "OrderedDict[CacheKey, object]" = OrderedDict()
        self._by_business: Dict[str, Set[CacheKey]] = {}
        self._generations: Dict[str, int] = {}
        self._lock = threading.Lock()

    @staticmethod
    def make_key(business_id: str, day: date, duration: int, staff_id: Optional[str] = None) -> CacheKey:
        return (business_id, day, duration, staff_id)

    def get(self, key: CacheKey):
        with self._lock:
            value = self._entries.get(key)
            if value is not None:
                self._entries.move_to_end(key)
            return value

    def generation(self, business_id: str) -> int:
        with self._lock:
            return self._generations.get(business_id, 0)

    def put(self, key: CacheKey, value, generation: int):
        """Store `value` and return the object callers should use."""
        business_id = key[0]
        with self._lock:
            if self._generations.get(business_id, 0) != generation:
                return value

            # Concurrent readers of the same key all end up with one object
            existing = self._entries.get(key)
            if existing is not None:
                self._entries.move_to_end(key)
                return existing

            self._entries[key] = value
            self._by_business.setdefault(business_id, set()).add(key)
            while len(self._entries) > self.max_entries:
                self._evict_oldest()
            return value

    def _evict_oldest(self):
        key, _ = self._entries.popitem(last=False)
        keys = self._by_business.get(key[0])
        if keys is not None:
            keys.discard(key)
            if not keys:
                del self._by_business[key[0]]

    def invalidate_business(self, business_id: str) -> int:
        with self._lock:
            self._generations[business_id] = self._generations.get(business_id, 0) + 1
            dropped = self._by_business.pop(business_id, set())
            for key in dropped:
                self._entries.pop(key, None)
        if dropped:
            logger.debug(f"Dropped {len(dropped)} cached availability entries for business {business_id}")
        return len(dropped)

    def clear(self):
        with self._lock:
            for business_id in self._by_business:
                self._generations[business_id] = self._generations.get(business_id, 0) + 1
            self._entries.clear()
            self._by_business.clear()

    def __len__(self):
        with self._lock:
            return len(self._entries)
