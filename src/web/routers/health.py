"""
Health Check Endpoints

Provides:
1. /health - Liveness plus cache registry status
2. /health/live - Simple liveness probe (for k8s)
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends

from cache import CacheRegistry

from ..dependencies import get_cache_registry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Application start time for uptime calculation
_start_time = datetime.now(timezone.utc)


@router.get("/health/live")
async def liveness() -> Dict[str, str]:
    """Liveness probe."""
    return {"status": "alive"}


@router.get("/health")
async def health(registry: CacheRegistry = Depends(get_cache_registry)) -> Dict[str, Any]:
    """Health check including cache registry state."""
    uptime = (datetime.now(timezone.utc) - _start_time).total_seconds()
    return {
        "status": "unhealthy" if registry.is_closed else "healthy",
        "uptime_seconds": round(uptime, 1),
        "caches": registry.names,
    }
