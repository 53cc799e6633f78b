"""Tests for cached estimate computation."""

from unittest.mock import MagicMock

import pytest

from cache import CALC_TAX_PREFIX, POLICY_ENGINE
from calculator.vita_rules_engine import VitaTaxRulesEngine
from services import get_estimate_service
from services.estimate_service import EstimateService


class TestEstimateService:
    """Cache-aside around the rules engine."""

    @pytest.fixture
    def engine(self):
        """Rules engine spy that still computes real results."""
        real = VitaTaxRulesEngine()
        spy = MagicMock(spec=VitaTaxRulesEngine)
        spy.calculate.side_effect = real.calculate
        return spy

    @pytest.fixture
    def service(self, registry, engine):
        return EstimateService.from_registry(registry, engine)

    def test_second_call_is_cached(self, service, engine, registry, single_tax_input):
        first = service.estimate(single_tax_input)
        second = service.estimate(single_tax_input)

        assert first == second
        assert engine.calculate.call_count == 1

        metrics = registry.get(POLICY_ENGINE).get_metrics()
        assert metrics.hits == 1
        assert metrics.misses == 1
        assert metrics.total_keys == 1

    def test_different_inputs_not_shared(self, service, engine, single_tax_input):
        service.estimate(single_tax_input)
        service.estimate(single_tax_input.model_copy(update={"wages": 1_000_000}))
        assert engine.calculate.call_count == 2

    def test_bypass_cache(self, service, engine, single_tax_input):
        service.estimate(single_tax_input)
        service.estimate(single_tax_input, bypass_cache=True)
        assert engine.calculate.call_count == 2

    def test_cache_key(self, single_tax_input):
        key = EstimateService.cache_key(single_tax_input)
        assert key.startswith(f"{CALC_TAX_PREFIX}:")
        assert key == EstimateService.cache_key(single_tax_input.model_copy())

    def test_expired_result_recomputed(self, service, engine, clock, single_tax_input):
        service.estimate(single_tax_input)
        clock.advance(3601)
        service.estimate(single_tax_input)
        assert engine.calculate.call_count == 2

    def test_invalidate(self, service, engine, single_tax_input):
        service.estimate(single_tax_input)
        assert service.invalidate() == 1
        service.estimate(single_tax_input)
        assert engine.calculate.call_count == 2

    def test_without_cache(self, engine, single_tax_input):
        service = EstimateService(engine=engine)
        service.estimate(single_tax_input)
        service.estimate(single_tax_input)
        assert engine.calculate.call_count == 2
        assert service.invalidate() == 0

    def test_engine_errors_propagate(self, service, single_tax_input):
        with pytest.raises(ValueError):
            service.estimate(single_tax_input.model_copy(update={"tax_year": 2021}))

    def test_get_estimate_service(self, registry, single_tax_input):
        service = get_estimate_service(registry)
        service.estimate(single_tax_input)
        assert registry.get(POLICY_ENGINE).get_metrics().sets == 1
