"""Tests for the HTTP API: crawl trigger, health and sites."""

import pytest
from fastapi.testclient import TestClient

from conftest import FakeFetcher, make_site
from zenradar.config import settings
from zenradar.dependencies import get_document_store, get_fetcher, get_sites
from zenradar.main import app
from zenradar.sites import BUILTIN_SITES

LISTING = """
<div class="product-card">
  <a class="product-card__link" href="/products/uji-matcha"><span class="product-card__title">Uji Matcha</span></a>
  <span class="price">€24,00</span>
  <button class="add-to-cart">Add to cart</button>
</div>
"""

AUTH = {"Authorization": "Bearer s3cret"}


@pytest.fixture
def sites():
    return {
        "teashop": make_site(),
        "othershop": make_site(
            site_id="othershop",
            base_url="https://othershop.example",
            listing_url="https://othershop.example/collections/matcha",
        ),
    }


@pytest.fixture
def client(memory_store, sites, monkeypatch):
    monkeypatch.setattr(settings, "CRAWL_API_KEY", "s3cret")
    fetcher = FakeFetcher({sites["teashop"].listing_url: LISTING})

    app.dependency_overrides[get_document_store] = lambda: memory_store
    app.dependency_overrides[get_sites] = lambda: sites
    app.dependency_overrides[get_fetcher] = lambda: fetcher

    # No context manager: lifespan (database setup) is not needed here
    yield TestClient(app)

    app.dependency_overrides.clear()


def crawl_body(**overrides):
    body = {"requestId": "req-1", "triggerType": "manual", "sites": ["teashop"]}
    body.update(overrides)
    return body


# ============================================================================
# TESTS: CRAWL TRIGGER
# ============================================================================

class TestCrawlEndpoint:
    """Tests for POST /api/v1/crawl."""

    def test_missing_token(self, client):
        response = client.post("/api/v1/crawl", json=crawl_body())

        assert response.status_code == 401

    def test_wrong_token(self, client):
        response = client.post("/api/v1/crawl", json=crawl_body(), headers={"Authorization": "Bearer nope"})

        assert response.status_code == 403

    def test_any_token_accepted_without_configured_key(self, client, monkeypatch):
        monkeypatch.setattr(settings, "CRAWL_API_KEY", "")

        response = client.post("/api/v1/crawl", json=crawl_body(), headers={"Authorization": "Bearer anything"})

        assert response.status_code == 200

    def test_invalid_body(self, client):
        response = client.post("/api/v1/crawl", json={"triggerType": "manual"}, headers=AUTH)

        assert response.status_code == 422

    def test_successful_crawl(self, client, memory_store):
        response = client.post("/api/v1/crawl", json=crawl_body(), headers=AUTH)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["requestId"] == "req-1"
        assert data["jobId"].startswith("job_req-1_")
        assert isinstance(data["duration"], int)
        assert data["results"] == {
            "totalProducts": 1,
            "stockUpdates": 1,
            "sitesProcessed": 1,
            "errors": [],
        }
        assert "teashop_ujimatcha_ujimatcha" in memory_store.products
        assert memory_store.crawl_requests["req-1"]["status"] == "completed"
        assert memory_store.crawl_requests["req-1"]["trigger_type"] == "manual"

    def test_empty_site_list_crawls_everything(self, client):
        response = client.post("/api/v1/crawl", json=crawl_body(sites=[]), headers=AUTH)

        results = response.json()["results"]
        assert results["sitesProcessed"] == 1
        assert [error["site"] for error in results["errors"]] == ["othershop"]

    def test_snake_case_body_accepted(self, client):
        body = {"request_id": "req-2", "trigger_type": "scheduled", "sites": ["teashop"]}

        response = client.post("/api/v1/crawl", json=body, headers=AUTH)

        assert response.status_code == 200
        assert response.json()["requestId"] == "req-2"

    def test_crawl_failure(self, client, memory_store, monkeypatch):
        class BrokenCoordinator:
            def __init__(self, service, sites):
                pass

            async def run(self, site_ids=None):
                raise RuntimeError("store offline")

        monkeypatch.setattr("zenradar.api.v1.crawl.CrawlCoordinator", BrokenCoordinator)

        response = client.post("/api/v1/crawl", json=crawl_body(), headers=AUTH)

        assert response.status_code == 500
        data = response.json()
        assert data["success"] is False
        assert data["error"] == "Crawl job failed"
        assert data["details"] == "store offline"
        assert data["requestId"] == "req-1"
        assert memory_store.crawl_requests["req-1"]["status"] == "failed"


# ============================================================================
# TESTS: HEALTH AND SITES
# ============================================================================

class TestHealthEndpoint:
    """Tests for GET /api/v1/health."""

    def test_healthy(self, client):
        response = client.get("/api/v1/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["store"]["backend"] == "memory"

    def test_degraded(self, client):
        class DownStore:
            async def health(self):
                return {"healthy": False, "error": "connection refused"}

        app.dependency_overrides[get_document_store] = lambda: DownStore()

        assert client.get("/api/v1/health").json()["status"] == "degraded"


class TestSitesEndpoint:
    """Tests for GET /api/v1/sites."""

    def test_list_builtin_sites(self, client):
        app.dependency_overrides[get_sites] = lambda: {site.site_id: site for site in BUILTIN_SITES}

        data = client.get("/api/v1/sites").json()

        assert data["total"] == len(BUILTIN_SITES)
        specialized = {site["site_id"] for site in data["sites"] if site["specialized"]}
        assert specialized == {"poppatea", "horiishichimeien"}

    def test_get_site(self, client):
        data = client.get("/api/v1/sites/teashop").json()

        assert data["listing_url"] == "https://teashop.example/collections/matcha"
        assert data["specialized"] is False

    def test_unknown_site(self, client):
        response = client.get("/api/v1/sites/nowhere")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "SiteNotFoundError"
