"""Cache layer for the benefits navigation platform.

Provides in-memory TTL caches with hit/miss monitoring for expensive
external calls (embeddings, RAG answers, document analysis and
PolicyEngine calculations), plus a registry and aggregate metrics view.
"""

from .keys import CALC_TAX_PREFIX, generate_cache_key

from .monitored_cache import (
    CacheEntry,
    CacheMetrics,
    MonitoredCache,
    hit_rate,
)

from .registry import (
    ALL,
    CACHE_NAMES,
    DOCUMENT,
    EMBEDDING,
    POLICY_ENGINE,
    RAG,
    CacheRegistry,
    UnknownCacheError,
)

from .metrics import (
    GlobalCacheView,
    OverallCacheMetrics,
    cost_savings_report,
    get_global_cache_metrics,
    recommendations,
)

__all__ = [
    # Keys
    "CALC_TAX_PREFIX",
    "generate_cache_key",
    # Monitored cache
    "CacheEntry",
    "CacheMetrics",
    "MonitoredCache",
    "hit_rate",
    # Registry
    "ALL",
    "CACHE_NAMES",
    "DOCUMENT",
    "EMBEDDING",
    "POLICY_ENGINE",
    "RAG",
    "CacheRegistry",
    "UnknownCacheError",
    # Aggregation
    "GlobalCacheView",
    "OverallCacheMetrics",
    "cost_savings_report",
    "get_global_cache_metrics",
    "recommendations",
]
