"""
FastAPI Routers - Modular endpoint organization.

Router modules:
- health: Liveness and cache registry status
- tax_preview: VITA intake tax estimate
- cache_metrics: Cache monitoring and administration
"""

from .health import router as health_router
from .tax_preview import router as tax_preview_router
from .cache_metrics import router as cache_metrics_router

__all__ = [
    "health_router",
    "tax_preview_router",
    "cache_metrics_router",
]
