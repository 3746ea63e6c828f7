"""Cache package for mdserver.

Provides the bounded in-memory cache shared by the scanner and renderer.
"""

from mdserver.cache.memory_cache import CacheEntry, MemoryCache

__all__ = [
    "CacheEntry",
    "MemoryCache",
]
