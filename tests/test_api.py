"""Tests for the FastAPI routes."""

import pytest
from fastapi.testclient import TestClient

from cache import CacheRegistry, POLICY_ENGINE, RAG
from config.settings import Settings
from services.logging_config import request_id_var, session_id_var
from web.app import create_app


@pytest.fixture
def app_registry(clock):
    return CacheRegistry.create(clock=clock)


@pytest.fixture
def client(app_registry):
    app = create_app(Settings(log_level="warning"), registry=app_registry)
    with TestClient(app) as test_client:
        yield test_client


SINGLE_FILER = {
    "taxYear": 2024,
    "filingStatus": "single",
    "wages": 3_000_000,
    "marylandCounty": "baltimore_city",
}


class TestCalculateTax:
    """POST /api/vita-intake/calculate-tax"""

    def test_returns_estimate(self, client):
        response = client.post("/api/vita-intake/calculate-tax", json=SINGLE_FILER)

        assert response.status_code == 200
        data = response.json()
        assert data["totalTaxLiability"] == 394_850
        assert data["marylandTax"]["countyName"] == "Baltimore City"

    def test_repeat_request_hits_cache(self, client, app_registry):
        client.post("/api/vita-intake/calculate-tax", json=SINGLE_FILER)
        client.post("/api/vita-intake/calculate-tax", json=SINGLE_FILER)

        metrics = app_registry.get(POLICY_ENGINE).get_metrics()
        assert metrics.hits == 1
        assert metrics.misses == 1

    def test_unknown_county_is_not_an_error(self, client):
        body = dict(SINGLE_FILER, marylandCounty="atlantis")
        response = client.post("/api/vita-intake/calculate-tax", json=body)

        assert response.status_code == 200
        assert response.json()["marylandTax"]["countyName"] == "Unknown"

    def test_unsupported_tax_year(self, client):
        body = dict(SINGLE_FILER, taxYear=2021)
        response = client.post("/api/vita-intake/calculate-tax", json=body)

        assert response.status_code == 400
        assert response.json()["error"] == "unsupported_tax_year"
        assert "2021" in response.json()["detail"]

    def test_invalid_body(self, client):
        body = dict(SINGLE_FILER, wages=-5)
        response = client.post("/api/vita-intake/calculate-tax", json=body)

        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"


class TestCacheRoutes:
    """/api/cache routes"""

    def test_global_metrics(self, client, app_registry):
        rag = app_registry.get(RAG)
        rag.set("q", "answer")
        rag.get("q")
        rag.get("other")

        response = client.get("/api/cache/metrics")

        assert response.status_code == 200
        overall = response.json()["overall"]
        assert overall["total_hits"] == 1
        assert overall["total_misses"] == 1
        assert overall["overall_hit_rate"] == 0.5

    def test_single_cache_metrics(self, client):
        response = client.get(f"/api/cache/metrics/{RAG}")
        assert response.status_code == 200
        assert response.json()["name"] == RAG

    def test_unknown_cache_is_404(self, client):
        assert client.get("/api/cache/metrics/nope").status_code == 404
        assert client.post("/api/cache/clear/nope").status_code == 404

    def test_cost_savings(self, client):
        response = client.get("/api/cache/cost-savings")
        assert response.status_code == 200
        assert set(response.json()) == {"summary", "breakdown", "projections"}

    def test_recommendations(self, client):
        response = client.get("/api/cache/recommendations")
        assert response.status_code == 200
        assert response.json()["recommendations"]

    def test_clear_all(self, client, app_registry):
        app_registry.get(RAG).set("q", "answer")
        response = client.post("/api/cache/clear/all")

        assert response.status_code == 200
        assert response.json()["cleared"] == 1
        assert app_registry.get(RAG).keys() == []

    def test_reset_metrics(self, client, app_registry):
        app_registry.get(RAG).get("missing")
        response = client.post("/api/cache/metrics/reset")

        assert response.status_code == 200
        assert app_registry.get(RAG).get_metrics().misses == 0


class TestHealth:
    """/health routes"""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert POLICY_ENGINE in response.json()["caches"]

    def test_liveness(self, client):
        assert client.get("/health/live").json() == {"status": "alive"}

    def test_shutdown_closes_registry(self, app_registry):
        app = create_app(Settings(log_level="warning"), registry=app_registry)
        with TestClient(app):
            pass
        assert app_registry.is_closed


class TestRequestTracing:
    """Request and session IDs reach the logging context."""

    @pytest.fixture
    def traced_client(self, app_registry):
        app = create_app(Settings(log_level="warning"), registry=app_registry)

        @app.get("/_context")
        async def context_ids():
            return {"request_id": request_id_var.get(), "session_id": session_id_var.get()}

        with TestClient(app) as test_client:
            yield test_client

    def test_generates_request_id(self, traced_client):
        response = traced_client.get("/_context")

        request_id = response.headers["X-Request-ID"]
        assert request_id.startswith("req-")
        assert response.json() == {"request_id": request_id, "session_id": None}

    def test_reuses_incoming_ids(self, traced_client):
        response = traced_client.get(
            "/_context",
            headers={"X-Request-ID": "req-abc", "X-Session-ID": "intake-7"},
        )

        assert response.headers["X-Request-ID"] == "req-abc"
        assert response.json() == {"request_id": "req-abc", "session_id": "intake-7"}

    def test_context_reset_after_request(self, traced_client):
        traced_client.get("/_context", headers={"X-Request-ID": "req-abc"})
        assert request_id_var.get() is None
