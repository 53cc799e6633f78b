"""
FastAPI dependencies resolving per-application services from app.state.

The services are created by the application lifespan (see web.app), so
tests can build an app with their own registry and clock.
"""

from fastapi import Request

from cache import CacheRegistry
from services.estimate_service import EstimateService


def get_cache_registry(request: Request) -> CacheRegistry:
    """Cache registry owned by the running application."""
    return request.app.state.cache_registry


def get_estimate_service(request: Request) -> EstimateService:
    """Estimate service owned by the running application."""
    return request.app.state.estimate_service
