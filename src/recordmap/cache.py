"""
Caching for select-to-record column mappings.

Resolving result columns to record fields is repeated for every select with
the same shape, so resolved mappings are kept in named cachetools TTL caches.
"""
import logging
import threading
from collections.abc import Callable, Hashable
from typing import Any

import cachetools

logger = logging.getLogger(__name__)

FIELD_INDEX_CACHE = 'field_index'


class Cache:
    """Process-wide registry of named TTL caches.

    Use `Cache.get_instance()` rather than constructing directly.
    """

    _instance = None
    _caches: dict[str, cachetools.TTLCache] = {}
    _lock = threading.RLock()

    @classmethod
    def get_instance(cls) -> 'Cache':
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    def get_cache(self, name: str, maxsize: int = 256, ttl: int = 600) -> cachetools.TTLCache:
        """Named cache, created on first use.

        `maxsize` and `ttl` (seconds) only apply when the cache is created.
        """
        with self._lock:
            cache = self._caches.get(name)
            if cache is None:
                cache = self._caches[name] = cachetools.TTLCache(maxsize=maxsize, ttl=ttl)
        return cache

    def get_or_build(self, name: str, key: Hashable, builder: Callable[[], Any]) -> Any:
        """Return the cached value for key, building and storing it on a miss.

        The builder runs outside the lock; concurrent misses may both build,
        and the last one stored wins.
        """
        cache = self.get_cache(name)
        with self._lock:
            if key in cache:
                return cache[key]
        value = builder()
        with self._lock:
            cache[key] = value
        logger.debug(f'Cached {name} entry for {key!r}')
        return value

    def clear_all(self) -> None:
        """Empty every cache, keeping the caches themselves."""
        with self._lock:
            for cache in self._caches.values():
                cache.clear()
