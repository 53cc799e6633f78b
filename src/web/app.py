"""
FastAPI application for the VITA tax preview and cache monitoring API.

Routes:
- POST /api/vita-intake/calculate-tax : tax estimate (cached)
- GET  /api/cache/metrics             : aggregate cache metrics
- GET  /api/cache/metrics/{name}      : metrics for one cache
- GET  /api/cache/cost-savings        : estimated API spend avoided
- GET  /api/cache/recommendations     : operational recommendations
- POST /api/cache/clear/{name}        : clear one cache or "all"
- POST /api/cache/metrics/reset       : reset cache counters
- GET  /health                        : health check
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from cache import CacheRegistry
from calculator.vita_rules_engine import UnsupportedTaxYearError, VitaTaxRulesEngine
from config import Settings, get_settings
from services.estimate_service import EstimateService
from services.logging_config import configure_logging

from .middleware import RequestIDMiddleware
from .routers import cache_metrics_router, health_router, tax_preview_router

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    registry: Optional[CacheRegistry] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Application settings (defaults to get_settings()).
        registry: Pre-built cache registry. When omitted the lifespan creates
            one from settings.cache and shuts it down on exit.

    Returns:
        Configured FastAPI app.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(level=settings.log_level, json_output=settings.log_json)
        cache_registry = registry or CacheRegistry.create(settings.cache)
        app.state.settings = settings
        app.state.cache_registry = cache_registry
        app.state.estimate_service = EstimateService.from_registry(
            cache_registry, VitaTaxRulesEngine()
        )
        logger.info(f"{settings.name} started: {settings.summary()}")
        try:
            yield
        finally:
            cache_registry.shutdown()
            logger.info(f"{settings.name} stopped")

    app = FastAPI(
        title=settings.name,
        version=settings.version,
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.add_middleware(RequestIDMiddleware)

    app.include_router(health_router)
    app.include_router(tax_preview_router)
    app.include_router(cache_metrics_router)

    @app.exception_handler(UnsupportedTaxYearError)
    async def unsupported_tax_year_handler(request: Request, exc: UnsupportedTaxYearError):
        logger.info(f"Rejected estimate request: {exc}")
        return JSONResponse(
            status_code=400,
            content={"error": "unsupported_tax_year", "detail": str(exc)},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        """Handle Pydantic validation errors with readable field paths."""
        errors = []
        for error in exc.errors():
            field = " -> ".join(str(loc) for loc in error["loc"])
            errors.append(f"{field}: {error['msg']}")
        return JSONResponse(
            status_code=422,
            content={"error": "validation_error", "detail": errors},
        )

    return app


app = create_app()
