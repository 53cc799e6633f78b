"""
Cache Metrics Aggregation

Read-time reducer over the named caches of a CacheRegistry. Nothing here
is cached: every call snapshots each cache once and sums the snapshots.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, List

from .monitored_cache import CacheMetrics, hit_rate
from .registry import DOCUMENT, EMBEDDING, POLICY_ENGINE, RAG, CacheRegistry

DEFAULT_TARGET_HIT_RATE = 70.0

# Estimated external cost avoided per cache hit (USD)
COST_PER_CALL: Dict[str, float] = {
    EMBEDDING: 0.00001,   # Gemini text embedding
    RAG: 0.0005,          # Gemini generation for a RAG answer
    DOCUMENT: 0.0025,     # Gemini vision document analysis
}

# Estimated latency avoided per PolicyEngine cache hit (seconds)
POLICY_ENGINE_SECONDS_PER_CALL = 2.0

HIGH_VOLUME_REQUESTS = 50000
LOW_HIT_RATE_PERCENT = 30.0
CACHE_SIZE_WARNING = {EMBEDDING: 8000, RAG: 4000}


@dataclass(frozen=True)
class OverallCacheMetrics:
    """Totals across every named cache."""

    total_hits: int
    total_misses: int
    total_requests: int
    overall_hit_rate: float
    total_keys: int
    total_memory_usage: float
    is_performant: bool


@dataclass(frozen=True)
class GlobalCacheView:
    """Per-cache metrics plus the overall totals."""

    caches: Dict[str, CacheMetrics]
    overall: OverallCacheMetrics

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {name: m.to_dict() for name, m in self.caches.items()}
        data["overall"] = asdict(self.overall)
        return data


def get_global_cache_metrics(
    registry: CacheRegistry,
    target_hit_rate: float = DEFAULT_TARGET_HIT_RATE,
) -> GlobalCacheView:
    """
    Aggregate hits, misses, keys and memory across all named caches.

    Args:
        registry: Registry whose caches are summed
        target_hit_rate: Percent hit rate considered performant

    Returns:
        GlobalCacheView built from one snapshot per cache
    """
    snapshots = {name: cache.get_metrics() for name, cache in registry}

    total_hits = sum(m.hits for m in snapshots.values())
    total_misses = sum(m.misses for m in snapshots.values())
    overall_rate = hit_rate(total_hits, total_misses)

    overall = OverallCacheMetrics(
        total_hits=total_hits,
        total_misses=total_misses,
        total_requests=total_hits + total_misses,
        overall_hit_rate=overall_rate,
        total_keys=sum(m.total_keys for m in snapshots.values()),
        total_memory_usage=sum(m.memory_usage for m in snapshots.values()),
        is_performant=overall_rate * 100 >= target_hit_rate,
    )
    return GlobalCacheView(caches=snapshots, overall=overall)


def cost_savings_report(registry: CacheRegistry) -> Dict[str, Any]:
    """
    Estimate external API spend and latency avoided by cache hits.

    Returns:
        Dict with summary, per-cache breakdown and daily/monthly/yearly projections
    """
    view = get_global_cache_metrics(registry)

    breakdown: Dict[str, Dict[str, Any]] = {}
    total_savings = 0.0
    for name, metrics in view.caches.items():
        entry: Dict[str, Any] = {
            "hits": metrics.hits,
            "hit_rate": metrics.hit_rate,
        }
        if name in COST_PER_CALL:
            savings = metrics.hits * COST_PER_CALL[name]
            total_savings += savings
            entry["savings"] = round(savings, 4)
        if name == POLICY_ENGINE:
            entry["time_saved_seconds"] = metrics.hits * POLICY_ENGINE_SECONDS_PER_CALL
        breakdown[name] = entry

    rate = view.overall.overall_hit_rate
    without_caching = total_savings / rate if rate > 0 else 0.0

    return {
        "summary": {
            "total_requests": view.overall.total_requests,
            "cache_hit_rate": rate,
            "estimated_savings": round(total_savings, 4),
            "estimated_current_cost": round(without_caching - total_savings, 4),
            "estimated_without_caching": round(without_caching, 4),
        },
        "breakdown": breakdown,
        # Savings are accumulated since the last metrics reset, projected hourly
        "projections": {
            "daily": round(total_savings * 24, 4),
            "monthly": round(total_savings * 24 * 30, 4),
            "yearly": round(total_savings * 24 * 365, 4),
        },
    }


def recommendations(registry: CacheRegistry) -> List[str]:
    """Operational recommendations derived from current cache usage."""
    view = get_global_cache_metrics(registry)
    result: List[str] = []

    if view.overall.total_requests and view.overall.overall_hit_rate * 100 < LOW_HIT_RATE_PERCENT:
        result.append(
            "Low cache hit rate - consider increasing TTL or reviewing invalidation patterns"
        )

    if view.overall.total_requests > HIGH_VOLUME_REQUESTS:
        result.append(
            "High request volume - consider a distributed cache layer for cross-instance sharing"
        )

    for name, limit in CACHE_SIZE_WARNING.items():
        metrics = view.caches.get(name)
        if metrics and metrics.total_keys > limit:
            result.append(f"{name} cache approaching limit - consider LRU eviction")

    if not result:
        result.append("All cache layers operating within healthy parameters")
    return result
