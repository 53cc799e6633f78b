"""
Cache Monitoring Routes - Read-only metrics plus administrative actions.

Routes:
- GET /api/cache/metrics - Aggregate view across all named caches
- GET /api/cache/metrics/{name} - Metrics for one cache
- GET /api/cache/cost-savings - Estimated API spend avoided
- GET /api/cache/recommendations - Operational recommendations
- POST /api/cache/clear/{name} - Clear one cache or "all"
- POST /api/cache/metrics/reset - Reset lifetime counters
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from cache import (
    CacheRegistry,
    UnknownCacheError,
    cost_savings_report,
    get_global_cache_metrics,
    recommendations,
)

from ..dependencies import get_cache_registry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cache", tags=["Cache"])


@router.get("/metrics")
async def global_metrics(registry: CacheRegistry = Depends(get_cache_registry)) -> Dict[str, Any]:
    """Aggregate metrics across every named cache."""
    return get_global_cache_metrics(registry).to_dict()


@router.get("/metrics/{name}")
async def cache_metrics(
    name: str,
    registry: CacheRegistry = Depends(get_cache_registry),
) -> Dict[str, Any]:
    """Metrics for one named cache."""
    try:
        return registry.get(name).get_metrics().to_dict()
    except UnknownCacheError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/cost-savings")
async def cost_savings(registry: CacheRegistry = Depends(get_cache_registry)) -> Dict[str, Any]:
    """Estimated external API spend avoided by cache hits."""
    return cost_savings_report(registry)


@router.get("/recommendations")
async def cache_recommendations(
    registry: CacheRegistry = Depends(get_cache_registry),
) -> Dict[str, Any]:
    return {"recommendations": recommendations(registry)}


@router.post("/clear/{name}")
async def clear_cache(
    name: str,
    registry: CacheRegistry = Depends(get_cache_registry),
) -> Dict[str, Any]:
    """Clear one cache, or every cache with name "all". Counters are kept."""
    try:
        cleared = registry.clear(name)
    except UnknownCacheError as e:
        raise HTTPException(status_code=404, detail=str(e))
    logger.info(f"Cache clear requested for '{name}': {cleared} entries")
    return {"cleared": cleared, "cache": name}


@router.post("/metrics/reset")
async def reset_metrics(registry: CacheRegistry = Depends(get_cache_registry)) -> Dict[str, Any]:
    """Administrative reset of every cache's lifetime counters."""
    registry.reset_all_metrics()
    return {"reset": True}
