"""
In-memory TTL cache shared by the reader, the subscription registry and the batch mutator
"""
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Generic, List, Optional, Set, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")

DEFAULT_TTL_SECONDS = 5 * 60


@dataclass
class CacheEntry(Generic[V]):
    key: str
    value: V
    stored_at: float
    ttl: float
    collection: Optional[str] = None

    def is_expired(self, now: float) -> bool:
        return now - self.stored_at > self.ttl


class ExpiringCache(Generic[V]):
    """
    Key -> value store with per-entry time-to-live

    Features:
    - Expired entries are evicted lazily on access
    - Keys can be tagged with the collection they were read from, so writes
      can drop exactly that collection's entries (invalidate_collection)
    - Substring invalidation is kept for callers that scope by key pattern

    All operations are total; nothing here raises.
    """

    def __init__(self, default_ttl: float = DEFAULT_TTL_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[str, CacheEntry[V]] = {}
        self._index: Dict[str, Set[str]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def set(self, key: str, value: V, ttl: Optional[float] = None,
            collection: Optional[str] = None):
        """Store value, overwriting any existing entry for key"""
        self._discard(key)
        entry = CacheEntry(
            key=key,
            value=value,
            stored_at=self._clock(),
            ttl=self.default_ttl if ttl is None else ttl,
            collection=collection,
        )
        self._entries[key] = entry
        if collection is not None:
            self._index.setdefault(collection, set()).add(key)

    def get(self, key: str) -> Optional[V]:
        """Return the cached value, or None when missing or expired"""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            logger.debug(f"Cache entry expired: {key}")
            self._discard(key)
            return None
        return entry.value

    def invalidate(self, pattern: str) -> int:
        """Remove every entry whose key contains pattern"""
        keys = [key for key in self._entries if pattern in key]
        for key in keys:
            self._discard(key)
        return len(keys)

    def invalidate_collection(self, collection: str) -> int:
        """Remove every entry tagged with collection"""
        keys = list(self._index.get(collection, ()))
        for key in keys:
            self._discard(key)
        if keys:
            logger.debug(f"Invalidated {len(keys)} cache entries for {collection}")
        return len(keys)

    def keys(self) -> List[str]:
        return list(self._entries)

    def clear(self):
        self._entries.clear()
        self._index.clear()

    def _discard(self, key: str):
        entry = self._entries.pop(key, None)
        if entry is None or entry.collection is None:
            return
        keys = self._index.get(entry.collection)
        if keys is not None:
            keys.discard(key)
            if not keys:
                del self._index[entry.collection]
