"""HTTP surface tests using FastAPI's TestClient with dependency overrides."""

import pytest
from fastapi.testclient import TestClient

from venuescout.main import app
from venuescout.routers.cache import get_cache
from venuescout.routers.recommendations import get_recommendation_engine
from venuescout.services.adaptive_cache import AdaptiveCache, CachePriority
from venuescout.services.fallback_manager import FallbackManager
from venuescout.services.recommendation_engine import RecommendationEngine

from conftest import DummyPlaces, FailingPipeline


@pytest.fixture
def cache():
    return AdaptiveCache(max_size=10, default_ttl=60)


@pytest.fixture
def client(cache):
    engine = RecommendationEngine(
        pipeline=FailingPipeline(),
        fallback=FallbackManager(places=DummyPlaces()),
        cache=cache,
    )
    app.dependency_overrides[get_recommendation_engine] = lambda: engine
    app.dependency_overrides[get_cache] = lambda: cache
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_create_recommendations(client):
    resp = client.post("/api/recommendations", json={"destination": "Paris", "categories": ["Culture"]})

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["metadata"]["source"] == "fallback"
    assert all("fallback" in rec["tags"] for rec in body["data"])


def test_blank_destination_is_rejected(client):
    resp = client.post("/api/recommendations", json={"destination": "   "})
    assert resp.status_code == 422


def test_reversed_dates_are_rejected(client):
    resp = client.post(
        "/api/recommendations",
        json={"destination": "Paris", "start_date": "2026-06-10", "end_date": "2026-06-01"},
    )
    assert resp.status_code == 422


def test_failure_is_reported_in_body(client):
    resp = client.post("/api/recommendations", json={"destination": "Atlantis", "categories": ["wellness"]})

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is False
    assert body["metadata"]["failed_at"] == "venue_discovery"


def test_metrics_and_reset(client):
    client.post("/api/recommendations", json={"destination": "Paris"})

    metrics = client.get("/api/recommendations/metrics").json()
    assert metrics["engine"]["requests"] == 1
    assert metrics["engine"]["fallbacks"] == 1

    reset = client.post("/api/recommendations/reset").json()
    assert reset["status"] == "reset"
    assert client.get("/api/recommendations/metrics").json()["engine"]["requests"] == 0


def test_cache_stats_and_optimize(client, cache):
    cache.set("k", "v", priority=CachePriority.LOW)

    stats = client.get("/api/cache/stats").json()
    assert stats["size"] == 1

    result = client.post("/api/cache/optimize").json()
    assert result["priorities_adjusted"] == 1
    assert result["stats"]["priority_distribution"]["medium"] == 1
