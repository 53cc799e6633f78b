"""
Services Module - Application services for the benefits navigation platform.

Infrastructure Services:
- TaxCalculationClient: HTTP client for the tax calculation service
- EstimateService: Cached VITA tax estimates
- Logging and observability

Imports are deferred to avoid circular imports with the preview package.
"""


def get_estimate_service(registry, engine=None):
    """Get an EstimateService bound to a cache registry."""
    from .estimate_service import EstimateService
    return EstimateService.from_registry(registry, engine=engine)


def get_calculation_client(settings=None):
    """Get a TaxCalculationClient configured from settings."""
    from .calculation_client import TaxCalculationClient
    return TaxCalculationClient.from_settings(settings)


__all__ = [
    "get_estimate_service",
    "get_calculation_client",
]
