"""Tests for the named cache registry and global cache metrics."""

import pytest

from cache import (
    ALL,
    CACHE_NAMES,
    DOCUMENT,
    EMBEDDING,
    POLICY_ENGINE,
    RAG,
    CacheRegistry,
    MonitoredCache,
    UnknownCacheError,
    cost_savings_report,
    generate_cache_key,
    get_global_cache_metrics,
    recommendations,
)
from config.settings import CacheSettings


class TestCacheRegistry:
    """Tests for CacheRegistry lifecycle."""

    def test_create_builds_named_caches(self, registry):
        """All four named caches exist."""
        assert registry.names == list(CACHE_NAMES)
        for name in CACHE_NAMES:
            assert name in registry
            assert registry.get(name).name == name

    def test_create_uses_settings_ttls(self, clock):
        settings = CacheSettings(rag_ttl=42, embedding_ttl=7)
        reg = CacheRegistry.create(settings, clock=clock)
        assert reg.get(RAG).default_ttl == 42
        assert reg.get(EMBEDDING).default_ttl == 7
        assert reg.get(DOCUMENT).default_ttl == 3600

    def test_unknown_cache_raises(self, registry):
        with pytest.raises(UnknownCacheError) as exc_info:
            registry.get("nope")
        assert "nope" in str(exc_info.value)

    def test_caches_are_isolated(self, registry):
        """Same key in two caches never collides."""
        registry.get(RAG).set("shared", "rag")
        registry.get(DOCUMENT).set("shared", "doc")
        assert registry.get(RAG).get("shared") == "rag"
        assert registry.get(DOCUMENT).get("shared") == "doc"

    def test_register_duplicate_rejected(self, registry):
        with pytest.raises(ValueError):
            registry.register(MonitoredCache(RAG))

    def test_register_custom_cache(self):
        reg = CacheRegistry()
        reg.register(MonitoredCache("custom"))
        assert reg.names == ["custom"]

    def test_clear_single(self, registry):
        registry.get(RAG).set("a", 1)
        registry.get(DOCUMENT).set("b", 2)
        assert registry.clear(RAG) == 1
        assert registry.get(DOCUMENT).has("b")

    def test_clear_all(self, registry):
        registry.get(RAG).set("a", 1)
        registry.get(DOCUMENT).set("b", 2)
        assert registry.clear(ALL) == 2
        assert all(cache.keys() == [] for _, cache in registry)

    def test_clear_unknown(self, registry):
        with pytest.raises(UnknownCacheError):
            registry.clear("nope")

    def test_reset_all_metrics(self, registry):
        registry.get(RAG).get("x")
        registry.get(EMBEDDING).get("y")
        registry.reset_all_metrics()
        for _, cache in registry:
            assert cache.get_metrics().misses == 0

    def test_shutdown_is_idempotent(self, registry):
        registry.get(RAG).set("a", 1)
        cache = registry.get(RAG)

        registry.shutdown()
        registry.shutdown()

        assert registry.is_closed
        assert cache.keys() == []
        with pytest.raises(RuntimeError):
            registry.get(RAG)


class TestGlobalCacheMetrics:
    """Tests for the aggregate view."""

    def test_empty_registry_totals(self, registry):
        """Zero requests yields zero hit rate."""
        view = get_global_cache_metrics(registry)
        assert view.overall.total_requests == 0
        assert view.overall.overall_hit_rate == 0.0
        assert view.overall.is_performant is False

    def test_totals_are_sums(self, registry):
        rag = registry.get(RAG)
        rag.set("a", 1)
        rag.get("a")
        rag.get("a")
        registry.get(DOCUMENT).get("missing")
        registry.get(EMBEDDING).set("e", [0.1, 0.2])

        view = get_global_cache_metrics(registry)

        assert view.overall.total_hits == 2
        assert view.overall.total_misses == 1
        assert view.overall.total_requests == 3
        assert view.overall.overall_hit_rate == pytest.approx(2 / 3)
        assert view.overall.total_keys == 2
        assert view.overall.total_memory_usage == pytest.approx(
            sum(m.memory_usage for m in view.caches.values())
        )

    def test_overall_rate_is_not_mean_of_rates(self, registry):
        """Overall hit rate weights caches by request volume."""
        rag = registry.get(RAG)
        rag.set("a", 1)
        for _ in range(9):
            rag.get("a")
        registry.get(DOCUMENT).get("missing")

        view = get_global_cache_metrics(registry)
        assert view.overall.overall_hit_rate == pytest.approx(0.9)
        assert view.overall.is_performant is True

    def test_to_dict_shape(self, registry):
        data = get_global_cache_metrics(registry).to_dict()
        assert set(data) == set(CACHE_NAMES) | {"overall"}
        assert data["overall"]["total_requests"] == 0
        assert data[RAG]["name"] == RAG


class TestCostSavings:
    """Tests for the cost savings report."""

    def test_savings_from_hits(self, registry):
        embedding = registry.get(EMBEDDING)
        embedding.set("e", [0.1])
        for _ in range(100):
            embedding.get("e")
        document = registry.get(DOCUMENT)
        document.set("d", {"text": "W-2"})
        for _ in range(10):
            document.get("d")
        policy = registry.get(POLICY_ENGINE)
        policy.set("p", 1)
        policy.get("p")

        report = cost_savings_report(registry)

        assert report["breakdown"][EMBEDDING]["savings"] == pytest.approx(0.001)
        assert report["breakdown"][DOCUMENT]["savings"] == pytest.approx(0.025)
        assert report["breakdown"][POLICY_ENGINE]["time_saved_seconds"] == 2.0
        assert report["summary"]["estimated_savings"] == pytest.approx(0.026)
        assert report["projections"]["daily"] == pytest.approx(0.026 * 24)

    def test_no_traffic(self, registry):
        report = cost_savings_report(registry)
        assert report["summary"]["estimated_savings"] == 0
        assert report["summary"]["estimated_without_caching"] == 0


class TestRecommendations:
    """Tests for operational recommendations."""

    def test_healthy_by_default(self, registry):
        assert recommendations(registry) == [
            "All cache layers operating within healthy parameters"
        ]

    def test_low_hit_rate(self, registry):
        for _ in range(10):
            registry.get(RAG).get("missing")
        result = recommendations(registry)
        assert any("Low cache hit rate" in r for r in result)


class TestGenerateCacheKey:
    """Tests for deterministic key generation."""

    def test_mapping_order_ignored(self):
        assert generate_cache_key({"a": 1, "b": {"c": 2, "d": 3}}) == \
            generate_cache_key({"b": {"d": 3, "c": 2}, "a": 1})

    def test_prefix(self):
        key = generate_cache_key({"a": 1}, "calc:tax")
        assert key.startswith("calc:tax:")
        assert len(key.split(":")[-1]) == 16

    def test_different_data_different_key(self):
        assert generate_cache_key({"a": 1}) != generate_cache_key({"a": 2})
