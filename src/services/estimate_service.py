"""Estimate Service - VITA estimates with cache-aside.

1. Check the policy_engine cache for an identical request
2. If miss, run the rules engine
3. Cache the result for future requests
"""

from __future__ import annotations

import logging
from typing import Optional

from cache import CALC_TAX_PREFIX, POLICY_ENGINE, CacheRegistry, MonitoredCache, generate_cache_key
from calculator.vita_rules_engine import VitaTaxRulesEngine
from preview.models import EstimateResult, VitaTaxInput

from .logging_config import log_performance

logger = logging.getLogger(__name__)


class EstimateService:
    """Tax estimates backed by the rules engine and a monitored cache.

    Usage:
        service = EstimateService.from_registry(registry)
        result = service.estimate(tax_input)
    """

    def __init__(
        self,
        engine: Optional[VitaTaxRulesEngine] = None,
        cache: Optional[MonitoredCache] = None,
        ttl: Optional[int] = None,
    ):
        """Initialize estimate service.

        Args:
            engine: Rules engine (default instance if not provided).
            cache: Cache for results; caching disabled when None.
            ttl: Optional TTL override in seconds.
        """
        self._engine = engine or VitaTaxRulesEngine()
        self._cache = cache
        self._ttl = ttl

    @classmethod
    def from_registry(
        cls,
        registry: CacheRegistry,
        engine: Optional[VitaTaxRulesEngine] = None,
    ) -> "EstimateService":
        return cls(engine=engine, cache=registry.get(POLICY_ENGINE))

    @staticmethod
    def cache_key(tax_input: VitaTaxInput) -> str:
        return generate_cache_key(tax_input.model_dump(mode="json"), CALC_TAX_PREFIX)

    @log_performance("vita_estimate")
    def estimate(self, tax_input: VitaTaxInput, bypass_cache: bool = False) -> EstimateResult:
        """Compute (or fetch) the estimate for an input.

        Args:
            tax_input: Normalized household input.
            bypass_cache: Skip cache lookup (the result is still stored).

        Returns:
            EstimateResult.
        """
        key = self.cache_key(tax_input)

        if self._cache is not None and not bypass_cache:
            cached = self._cache.get(key)
            if cached is not None:
                logger.debug(f"Using cached estimate {key}")
                return cached

        result = self._engine.calculate(tax_input)

        if self._cache is not None:
            self._cache.set(key, result, self._ttl)

        return result

    def invalidate(self) -> int:
        """Drop every cached tax estimate (e.g. after a rules update)."""
        if self._cache is None:
            return 0
        removed = self._cache.invalidate_pattern(f"{CALC_TAX_PREFIX}:")
        logger.info(f"Invalidated {removed} cached tax estimates")
        return removed
