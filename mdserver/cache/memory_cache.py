"""
Bounded in-memory cache with oldest-first eviction.
Backs both the directory-tree cache and the per-file render cache.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, Generic, List, Optional, TypeVar
import threading
import time

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    """
    A cached value plus the stamp used to judge its validity.

    Attributes:
        value: The cached value
        timestamp: Validity stamp. Wall-clock insertion time for the tree
                   cache, source file mtime for the render cache.
        inserted_at: Wall-clock time the entry was stored
    """
    value: T
    timestamp: float
    inserted_at: float = field(default_factory=time.time)

    def age(self, now: Optional[float] = None) -> float:
        """Seconds elapsed since the entry was inserted."""
        return (now if now is not None else time.time()) - self.inserted_at


class MemoryCache(Generic[T]):
    """
    Size-bounded cache keyed by string.

    Features:
    - Insertion-ordered storage; re-setting a key makes it the newest entry
    - Oldest-first eviction once max_size is exceeded
    - Thread-safe operations (invalidation arrives from the watcher thread)
    - Hit/miss statistics
    """

    def __init__(self, max_size: int = 100, clock: Callable[[], float] = time.time):
        """
        Initialize the cache.

        Args:
            max_size: Maximum number of entries in the cache
            clock: Wall-clock source used for insertion stamps
        """
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self._clock = clock
        self._entries: Dict[str, CacheEntry[T]] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, key: str) -> Optional[CacheEntry[T]]:
        """
        Return the entry stored under key, or None.

        Validity is judged by the caller, which knows what the timestamp means.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
            else:
                self._hits += 1
            return entry

    def set(self, key: str, value: T, timestamp: Optional[float] = None) -> CacheEntry[T]:
        """
        Store a value, evicting the oldest entries if the cache overflows.

        Args:
            key: Cache key
            value: Value to store
            timestamp: Validity stamp; defaults to the insertion time

        Returns:
            The stored CacheEntry
        """
        now = self._clock()
        entry = CacheEntry(
            value=value,
            timestamp=now if timestamp is None else timestamp,
            inserted_at=now,
        )
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = entry
            while len(self._entries) > self.max_size:
                oldest_key = next(iter(self._entries))
                del self._entries[oldest_key]
                self._evictions += 1
        return entry

    def delete(self, key: str) -> bool:
        """Remove one entry. Returns True if it existed."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> int:
        """Remove all entries and return how many were dropped."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            return count

    def keys(self) -> List[str]:
        """Keys from oldest to newest."""
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def stats(self) -> dict:
        """
        Return cache statistics.

        Returns:
            Dictionary with size, max_size, keys, hits, misses and evictions
        """
        with self._lock:
            return {
                "size": len(self._entries),
                "max_size": self.max_size,
                "keys": list(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
            }
