"""
Cache Registry - explicit lifecycle for the named caches.

Replaces module-level cache singletons with an object that is created
at application startup, passed to whoever needs it, and shut down with
the application.

Usage:
    registry = CacheRegistry.create(get_settings().cache)
    policy_cache = registry.get(POLICY_ENGINE)
    ...
    registry.shutdown()
"""

import logging
import time
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from config.settings import CacheSettings

from .monitored_cache import MonitoredCache

logger = logging.getLogger(__name__)

# Named cache instances
EMBEDDING = "embedding"
RAG = "rag"
DOCUMENT = "document"
POLICY_ENGINE = "policy_engine"

CACHE_NAMES: Tuple[str, ...] = (EMBEDDING, RAG, DOCUMENT, POLICY_ENGINE)

ALL = "all"


class UnknownCacheError(KeyError):
    """Raised when a cache name is not registered."""

    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown cache: {self.name}"


class CacheRegistry:
    """
    Registry of independently tracked, named caches.

    Keys never collide across caches: each name is its own namespace.
    """

    def __init__(self, caches: Optional[Dict[str, MonitoredCache]] = None):
        self._caches: Dict[str, MonitoredCache] = dict(caches or {})
        self._closed = False

    @classmethod
    def create(
        cls,
        settings: Optional[CacheSettings] = None,
        clock: Callable[[], float] = time.time,
    ) -> "CacheRegistry":
        """
        Build the standard set of named caches.

        Args:
            settings: Cache settings (defaults loaded from environment)
            clock: Time source shared by every cache

        Returns:
            Registry holding embedding, rag, document and policy_engine caches
        """
        settings = settings or CacheSettings()
        caches = {
            name: MonitoredCache(
                name=name,
                default_ttl=settings.ttl_for(name),
                max_memory_mb=settings.max_memory_for(name),
                response_time_window=settings.response_time_window,
                clock=clock,
            )
            for name in CACHE_NAMES
        }
        logger.info(f"Cache registry created with caches: {', '.join(caches)}")
        return cls(caches)

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def names(self) -> List[str]:
        return list(self._caches)

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("Cache registry has been shut down")

    def register(self, cache: MonitoredCache) -> None:
        """Add a cache under its own name."""
        self._ensure_open()
        if cache.name in self._caches:
            raise ValueError(f"Cache already registered: {cache.name}")
        self._caches[cache.name] = cache
        logger.debug(f"Cache registered: {cache.name}")

    def get(self, name: str) -> MonitoredCache:
        """Get a named cache."""
        self._ensure_open()
        try:
            return self._caches[name]
        except KeyError:
            raise UnknownCacheError(name) from None

    def __contains__(self, name: str) -> bool:
        return name in self._caches

    def __iter__(self) -> Iterator[Tuple[str, MonitoredCache]]:
        return iter(list(self._caches.items()))

    def clear(self, name: str = ALL) -> int:
        """
        Clear one cache, or every cache with "all".

        Returns:
            Number of entries cleared
        """
        if name == ALL:
            cleared = sum(cache.clear() for _, cache in self)
            logger.info(f"All caches cleared ({cleared} entries)")
            return cleared
        return self.get(name).clear()

    def reset_all_metrics(self) -> None:
        """Reset metrics on every cache (administrative/test use)."""
        for _, cache in self:
            cache.reset_metrics()
        logger.info("All cache metrics reset")

    def shutdown(self) -> None:
        """Drop all entries and close the registry. Safe to call twice."""
        if self._closed:
            return
        for _, cache in self:
            cache.clear()
        self._closed = True
        logger.info("Cache registry shut down")
