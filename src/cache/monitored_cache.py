"""
In-Memory TTL Cache with Hit/Miss Monitoring

Provides:
1. Time-based expiration (lazy, checked on access)
2. Hit/miss/latency/memory accounting for capacity planning
3. Thread-safe operations (one critical section per operation)
4. Memory-pressure eviction of the oldest entries

Usage:
    cache = MonitoredCache("policy_engine", default_ttl=3600)

    cache.set("calc:tax:abc123", result, ttl=60)
    value = cache.get("calc:tax:abc123")

    metrics = cache.get_metrics()
    print(metrics.hit_rate)
"""

from __future__ import annotations

import json
import logging
import math
import sys
import threading
import time
from collections import deque
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Deque, Dict, Iterable, List, Mapping, Optional, Tuple, Union

logger = logging.getLogger(__name__)

BYTES_PER_MB = 1024 * 1024

# Entry shapes accepted by mset(): {"key": ..., "val": ..., "ttl": ...} or (key, val[, ttl])
MSetEntry = Union[Mapping[str, Any], Tuple[Any, ...]]


def _fallback_size(value: Any) -> int:
    """Estimate object size without serializing it. Safe for cycles and deep nesting."""
    seen = set()
    stack = [value]
    size = 0
    while stack:
        current = stack.pop()
        if id(current) in seen:
            continue
        seen.add(id(current))

        size += sys.getsizeof(current, 64)
        if isinstance(current, Mapping):
            for k, v in current.items():
                stack.append(k)
                stack.append(v)
        elif isinstance(current, (list, tuple, set, frozenset)):
            stack.extend(current)
        elif hasattr(current, "__dict__"):
            stack.append(vars(current))
    return size


def estimate_size(key: str, value: Any) -> int:
    """
    Estimate the memory footprint of a cache entry in bytes.

    Uses the JSON-serialized length of key and value. Values that cannot be
    serialized (cycles, deep nesting, failing __str__) fall back to a walk
    summing getsizeof, and finally to the shallow getsizeof of the value.
    """
    key_bytes = len(key.encode("utf-8"))
    try:
        serialized = json.dumps(value, default=str)
        return key_bytes + len(serialized.encode("utf-8"))
    except Exception as e:
        logger.debug(f"Falling back to size estimate for {key}: {e}")

    try:
        return key_bytes + _fallback_size(value)
    except Exception as e:
        logger.debug(f"Using shallow size for {key}: {e}")
        return key_bytes + sys.getsizeof(value, 64)


class CacheEntry:
    """A cached value with expiration."""

    __slots__ = ("value", "created_at", "expires_at", "size_bytes")

    def __init__(self, value: Any, ttl: float, now: float, size_bytes: int):
        self.value = value
        self.created_at = now
        self.expires_at = now + ttl if ttl > 0 else None
        self.size_bytes = size_bytes

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at

    def remaining(self, now: float) -> float:
        if self.expires_at is None:
            return math.inf
        return max(0.0, self.expires_at - now)


@dataclass(frozen=True)
class CacheMetrics:
    """Point-in-time statistics for one cache."""

    name: str
    hits: int
    misses: int
    sets: int
    deletes: int
    evictions: int
    expired: int
    hit_rate: float
    avg_response_time: float
    memory_usage: float
    memory_bytes: int
    total_keys: int
    default_ttl: int
    last_reset: datetime

    @property
    def total_requests(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate_percent(self) -> float:
        return round(self.hit_rate * 100, 2)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["last_reset"] = self.last_reset.isoformat()
        data["total_requests"] = self.total_requests
        data["hit_rate_percent"] = self.hit_rate_percent
        return data


def hit_rate(hits: int, misses: int) -> float:
    """Fraction of lookups that hit. Zero when nothing was looked up."""
    total = hits + misses
    return hits / total if total > 0 else 0.0


class MonitoredCache:
    """
    Thread-safe in-memory cache with TTL and lifetime statistics.

    Hit/miss counters are lifetime statistics: clear() drops entries but
    keeps the counters, so hit-rate trends survive cache flushes. Only
    reset_metrics() zeroes them.
    """

    def __init__(
        self,
        name: str = "default",
        default_ttl: int = 300,
        max_memory_mb: float = 100.0,
        response_time_window: int = 1000,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize cache.

        Args:
            name: Cache name used in logs and aggregate views
            default_ttl: Default time-to-live in seconds (5 min)
            max_memory_mb: Estimated memory above which oldest entries are evicted
            response_time_window: Number of timings kept for the running average
            clock: Time source in seconds (injectable for tests)
        """
        self.name = name
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self._default_ttl = default_ttl
        self._max_memory_bytes = int(max_memory_mb * BYTES_PER_MB)
        self._clock = clock
        self._response_times: Deque[float] = deque(maxlen=max(1, response_time_window))
        self._memory_bytes = 0
        self._reset_counters()

    def _reset_counters(self) -> None:
        self._stats = {
            "hits": 0,
            "misses": 0,
            "sets": 0,
            "deletes": 0,
            "evictions": 0,
            "expired": 0,
        }
        self._response_times.clear()
        self._last_reset = datetime.now(timezone.utc)

    @property
    def default_ttl(self) -> int:
        return self._default_ttl

    @staticmethod
    def _is_valid_key(key: Any) -> bool:
        return isinstance(key, str) and key != ""

    def _record_time(self, started: float) -> None:
        self._response_times.append((time.perf_counter() - started) * 1000)

    def _remove(self, key: str) -> CacheEntry:
        entry = self._entries.pop(key)
        self._memory_bytes -= entry.size_bytes
        return entry

    def _lookup(self, key: str, now: float) -> Optional[CacheEntry]:
        """Find a live entry, evicting it first if it has expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(now):
            self._remove(key)
            self._stats["expired"] += 1
            logger.debug(f"Cache '{self.name}' expired: {key}")
            return None
        return entry

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get value from cache.

        Every call counts as exactly one hit or one miss. Invalid keys
        (None, empty string, non-strings) are guaranteed misses.

        Args:
            key: Cache key
            default: Value returned when the key is absent or expired

        Returns:
            Cached value or default
        """
        started = time.perf_counter()
        with self._lock:
            if not self._is_valid_key(key):
                self._stats["misses"] += 1
                self._record_time(started)
                return default

            entry = self._lookup(key, self._clock())
            if entry is None:
                self._stats["misses"] += 1
                self._record_time(started)
                logger.debug(f"Cache '{self.name}' MISS: {key}")
                return default

            self._stats["hits"] += 1
            self._record_time(started)
            logger.debug(f"Cache '{self.name}' HIT: {key}")
            return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> bool:
        """
        Set value in cache, replacing any existing entry and its TTL.

        Args:
            key: Cache key
            value: Value to cache (cyclic values are accepted)
            ttl: Time-to-live in seconds (default TTL if None, no expiry if <= 0)

        Returns:
            True if stored, False for an unusable key
        """
        if not self._is_valid_key(key):
            logger.warning(f"Cache '{self.name}' rejected invalid key: {key!r}")
            return False

        if ttl is None:
            ttl = self._default_ttl

        started = time.perf_counter()
        size_bytes = estimate_size(key, value)

        with self._lock:
            if key in self._entries:
                self._remove(key)

            self._entries[key] = CacheEntry(value, ttl, self._clock(), size_bytes)
            self._memory_bytes += size_bytes
            self._stats["sets"] += 1

            if self._memory_bytes > self._max_memory_bytes:
                self._evict_oldest(keep=key)

            self._record_time(started)
            return True

    def delete(self, keys: Union[str, Iterable[str]]) -> int:
        """
        Delete one key or several keys.

        Returns:
            Number of entries removed (absent keys are not an error)
        """
        if isinstance(keys, str):
            keys = [keys]

        removed = 0
        with self._lock:
            for key in keys:
                if self._is_valid_key(key) and key in self._entries:
                    self._remove(key)
                    removed += 1
            self._stats["deletes"] += removed
        return removed

    def has(self, key: str) -> bool:
        """Check for a live entry without touching hit/miss counters."""
        if not self._is_valid_key(key):
            return False
        with self._lock:
            return self._lookup(key, self._clock()) is not None

    def mget(self, keys: Iterable[str]) -> Dict[str, Any]:
        """
        Get several keys. Same accounting as calling get() per key.

        Returns:
            Mapping of the keys that were found to their values
        """
        found: Dict[str, Any] = {}
        missing = object()
        for key in keys:
            value = self.get(key, missing)
            if value is not missing:
                found[key] = value
        return found

    def mset(self, entries: Iterable[MSetEntry]) -> bool:
        """
        Set several entries. Same semantics as calling set() per entry.

        Args:
            entries: {"key", "val", "ttl"} mappings or (key, val[, ttl]) tuples

        Returns:
            True if every entry was stored
        """
        success = True
        for entry in entries:
            if isinstance(entry, Mapping):
                key, value, ttl = entry.get("key"), entry.get("val"), entry.get("ttl")
            elif isinstance(entry, (tuple, list)) and 2 <= len(entry) <= 3:
                key, value = entry[0], entry[1]
                ttl = entry[2] if len(entry) > 2 else None
            else:
                logger.warning(f"Cache '{self.name}' rejected malformed entry: {entry!r}")
                success = False
                continue
            success = self.set(key, value, ttl) and success
        return success

    def keys(self) -> List[str]:
        """Live (non-expired) keys. Expired entries found here are evicted."""
        with self._lock:
            now = self._clock()
            return [k for k in list(self._entries) if self._lookup(k, now) is not None]

    def clear(self) -> int:
        """
        Clear all cached entries. Lifetime counters are kept.

        Returns:
            Number of entries cleared
        """
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._memory_bytes = 0
        if count:
            logger.info(f"Cache '{self.name}' cleared {count} entries")
        return count

    def get_ttl(self, key: str) -> Optional[float]:
        """
        Remaining lifetime of a live entry in seconds.

        Returns:
            Seconds left, math.inf for entries without expiry, None if absent
        """
        if not self._is_valid_key(key):
            return None
        with self._lock:
            now = self._clock()
            entry = self._lookup(key, now)
            return entry.remaining(now) if entry else None

    def ttl(self, key: str, ttl: Optional[float] = None) -> bool:
        """
        Reset the lifetime of a live entry without altering its value.

        Args:
            key: Cache key
            ttl: New time-to-live in seconds from now (default TTL if None)

        Returns:
            False if the key is absent or expired
        """
        if not self._is_valid_key(key):
            return False
        if ttl is None:
            ttl = self._default_ttl
        with self._lock:
            now = self._clock()
            entry = self._lookup(key, now)
            if entry is None:
                return False
            entry.expires_at = now + ttl if ttl > 0 else None
            return True

    def invalidate_pattern(self, pattern: str) -> int:
        """
        Invalidate all keys containing pattern.

        Returns:
            Number of keys invalidated
        """
        with self._lock:
            matching = [k for k in self._entries if pattern in k]
        return self.delete(matching)

    def _evict_oldest(self, keep: Optional[str] = None) -> int:
        """Remove the oldest 10% of entries under memory pressure."""
        to_evict = math.ceil(len(self._entries) * 0.1)
        oldest = [k for k in self._entries if k != keep][:to_evict]
        for key in oldest:
            self._remove(key)
        self._stats["evictions"] += len(oldest)
        logger.info(
            f"Cache '{self.name}' evicted {len(oldest)} keys due to memory pressure"
        )
        return len(oldest)

    def get_metrics(self) -> CacheMetrics:
        """Get cache statistics."""
        with self._lock:
            now = self._clock()
            live_keys = sum(1 for e in self._entries.values() if not e.is_expired(now))
            samples = len(self._response_times)
            avg = sum(self._response_times) / samples if samples else 0.0

            return CacheMetrics(
                name=self.name,
                hits=self._stats["hits"],
                misses=self._stats["misses"],
                sets=self._stats["sets"],
                deletes=self._stats["deletes"],
                evictions=self._stats["evictions"],
                expired=self._stats["expired"],
                hit_rate=hit_rate(self._stats["hits"], self._stats["misses"]),
                avg_response_time=avg,
                memory_usage=self._memory_bytes / BYTES_PER_MB,
                memory_bytes=self._memory_bytes,
                total_keys=live_keys,
                default_ttl=self._default_ttl,
                last_reset=self._last_reset,
            )

    def reset_metrics(self) -> None:
        """Zero the lifetime counters. Administrative/test use only."""
        with self._lock:
            self._reset_counters()
        logger.info(f"Cache '{self.name}' metrics reset")

    def is_performant(self, target_hit_rate: float = 70.0) -> bool:
        """Check whether the hit rate (percent) meets the target."""
        return self.get_metrics().hit_rate_percent >= target_hit_rate
