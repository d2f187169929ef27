"""
Integration tests for the HTTP API.

Covers translation, batch translation, cache management, provider status
and health endpoints end to end through the routers.
"""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from lingomesh.services.providers.errors import ProviderResponseError

pytestmark = pytest.mark.integration


class TestTranslateEndpoint:
    """POST /api/v1/translate"""

    def test_translate_then_cached(self, client: TestClient, drain):
        payload = {"text": "Hello", "source_lang": "en", "target_lang": "hi"}

        first = client.post("/api/v1/translate", json=payload, headers={"X-Tenant-ID": "acme"})
        drain()
        second = client.post("/api/v1/translate", json=payload, headers={"X-Tenant-ID": "acme"})

        assert first.status_code == 200
        assert first.json() == {
            "original_text": "Hello",
            "translated_text": "libretranslate:hi:Hello",
            "source_lang": "en",
            "target_lang": "hi",
            "cached": False,
            "provider": "libretranslate",
        }
        assert second.status_code == 200
        assert second.json()["cached"] is True
        assert second.json()["translated_text"] == "libretranslate:hi:Hello"

    def test_request_id_is_echoed(self, client: TestClient):
        response = client.post(
            "/api/v1/translate",
            json={"text": "Hello", "target_lang": "es"},
            headers={"X-Request-ID": "req-123"},
        )

        assert response.headers["X-Request-ID"] == "req-123"

    def test_fallback_to_next_provider(self, client: TestClient, providers_under_test):
        providers_under_test[0].error = ProviderResponseError("libretranslate", "down", 500)

        response = client.post(
            "/api/v1/translate", json={"text": "Hello", "source_lang": "en", "target_lang": "fr"}
        )

        assert response.status_code == 200
        assert response.json()["provider"] == "google"

    def test_all_providers_failed(self, client: TestClient, providers_under_test):
        for provider in providers_under_test:
            provider.error = ProviderResponseError(provider.provider_name, "down", 500)

        response = client.post(
            "/api/v1/translate", json={"text": "Hello", "source_lang": "en", "target_lang": "fr"}
        )

        assert response.status_code == 502
        assert response.json()["detail"]["error"] == "TRANSLATION_FAILED"

    def test_attempt_trail_on_request(self, client: TestClient, providers_under_test):
        providers_under_test[0].error = ProviderResponseError("libretranslate", "down", 500)

        response = client.post(
            "/api/v1/translate",
            params={"include_attempts": "true"},
            json={"text": "Hello", "source_lang": "en", "target_lang": "fr"},
        )

        assert response.status_code == 200
        attempts = response.json()["attempts"]
        assert [(a["provider"], a["success"]) for a in attempts] == [
            ("libretranslate", False),
            ("google", True),
        ]
        assert "down" in attempts[0]["error"]

    def test_attempt_trail_on_failure(self, client: TestClient, providers_under_test):
        for provider in providers_under_test:
            provider.error = ProviderResponseError(provider.provider_name, "down", 500)

        response = client.post(
            "/api/v1/translate?include_attempts=true",
            json={"text": "Hello", "source_lang": "en", "target_lang": "fr"},
        )

        assert response.status_code == 502
        attempts = response.json()["detail"]["attempts"]
        assert [a["provider"] for a in attempts] == ["libretranslate", "google"]
        assert not any(a["success"] for a in attempts)

    @pytest.mark.parametrize("tenant_id", ["*", "acme:eu", "a" * 51, "tenant id"])
    def test_invalid_tenant_rejected(self, client: TestClient, tenant_id):
        response = client.post(
            "/api/v1/translate",
            json={"text": "Hello", "target_lang": "fr"},
            headers={"X-Tenant-ID": tenant_id},
        )

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "INVALID_TENANT_ID"

    def test_validation_error(self, client: TestClient):
        response = client.post("/api/v1/translate", json={"text": "", "target_lang": "fr"})

        assert response.status_code == 422


class TestBatchEndpoint:
    """POST /api/v1/translate/batch"""

    def test_batch(self, client: TestClient, drain):
        client.post(
            "/api/v1/translate", json={"text": "Hello", "source_lang": "en", "target_lang": "hi"}
        )
        drain()

        response = client.post(
            "/api/v1/translate/batch",
            json={
                "items": [
                    {"id": "a", "text": "Hello"},
                    {"id": "b", "text": "World"},
                    {"id": "c", "text": "Hola", "source_lang": "hi"},
                ],
                "source_lang": "en",
                "target_lang": "hi",
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert [item["id"] for item in data["items"]] == ["a", "b", "c"]
        assert data["total_count"] == 3
        assert data["cached_count"] == 1
        assert data["items"][1]["translated_text"] == "libretranslate:hi:World"
        assert data["items"][2]["provider"] == "none"

    def test_failed_item_reports_error(self, client: TestClient, providers_under_test):
        providers_under_test[0].fail_texts = {"bad"}

        response = client.post(
            "/api/v1/translate/batch",
            json={
                "items": [{"text": "good"}, {"text": "bad"}],
                "source_lang": "en",
                "target_lang": "hi",
            },
        )

        assert response.status_code == 200
        good, bad = response.json()["items"]
        assert good["error"] == ""
        assert bad["translated_text"] == "bad"
        assert "cannot translate" in bad["error"]

    def test_oversized_batch_rejected(self, client: TestClient):
        response = client.post(
            "/api/v1/translate/batch",
            json={"items": [{"text": str(i)} for i in range(51)], "target_lang": "hi"},
        )

        assert response.status_code == 422


class TestCacheEndpoints:
    """/api/v1/cache"""

    def test_stats_and_invalidation(self, client: TestClient, drain):
        headers = {"X-Tenant-ID": "acme"}
        for target in ("es", "fr"):
            client.post(
                "/api/v1/translate",
                json={"text": "Hello", "source_lang": "en", "target_lang": target},
                headers=headers,
            )
        drain()

        stats = client.get("/api/v1/cache/stats", headers=headers).json()
        assert stats == {
            "tenant_id": "acme",
            "total_entries": 2,
            "total_hits": 0,
            "language_pairs": ["en->es", "en->fr"],
        }

        pair = client.delete("/api/v1/cache/en/es", headers=headers)
        assert pair.status_code == 200
        assert pair.json()["fast_tier_deleted"] == 1
        assert pair.json()["durable_tier_deleted"] == 1

        tenant = client.delete("/api/v1/cache", headers=headers)
        assert tenant.json()["durable_tier_deleted"] == 1

        stats = client.get("/api/v1/cache/stats", headers=headers).json()
        assert stats["total_entries"] == 0

    def test_default_tenant(self, client: TestClient):
        response = client.get("/api/v1/cache/stats")

        assert response.json()["tenant_id"] == "default"

    def test_wildcard_tenant_cannot_invalidate_others(
        self, client: TestClient, drain, fake_redis
    ):
        client.post(
            "/api/v1/translate",
            json={"text": "Hello", "source_lang": "en", "target_lang": "es"},
            headers={"X-Tenant-ID": "acme"},
        )
        drain()

        response = client.delete("/api/v1/cache", headers={"X-Tenant-ID": "*"})

        assert response.status_code == 400
        assert len(fake_redis.store) == 1


class TestProvidersEndpoint:
    """GET /api/v1/providers"""

    def test_lists_providers_in_priority_order(self, client: TestClient):
        client.post(
            "/api/v1/translate", json={"text": "Hello", "source_lang": "en", "target_lang": "de"}
        )

        data = client.get("/api/v1/providers").json()

        assert [p["name"] for p in data["providers"]] == ["libretranslate", "google"]
        libre = data["providers"][0]
        assert libre["priority"] == 1
        assert libre["health"]["healthy"] is True
        assert libre["metrics"]["total_requests"] == 1
        assert libre["metrics"]["characters_count"] == 5


class TestHealthEndpoints:
    """/api/health"""

    def test_health_ok(self, client: TestClient):
        response = client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["services"]["database"] == "ok"
        assert data["services"]["redis"] == "ok"

    def test_health_degraded_when_redis_down(self, client: TestClient, fake_redis):
        fake_redis.fail = True

        assert client.get("/api/health").json()["status"] == "degraded"

    def test_ready(self, client: TestClient):
        response = client.get("/api/health/ready")

        assert response.status_code == 200
        names = [c["name"] for c in response.json()["components"]]
        assert names == ["database", "redis", "libretranslate", "google"]

    def test_not_ready_without_reachable_provider(self, client: TestClient, providers_under_test):
        for provider in providers_under_test:
            provider.configured = False

        response = client.get("/api/health/ready")

        assert response.status_code == 503
        assert response.json()["ready"] is False


class TestDetectEndpoint:
    """POST /api/v1/detect"""

    def test_no_detector_configured(self, client: TestClient):
        response = client.post("/api/v1/detect", json={"text": "Bonjour"})

        assert response.status_code == 503
        assert response.json()["detail"]["error"] == "NO_PROVIDERS"


class TestLanguagesEndpoint:
    """GET /api/v1/languages"""

    def test_lists_provider_languages(self, client: TestClient, providers_under_test):
        libre, google = providers_under_test
        libre.get_supported_languages = AsyncMock(return_value=["en", "es"])
        google.get_supported_languages = AsyncMock(return_value=["en", "sw"])

        response = client.get("/api/v1/languages")

        assert response.status_code == 200
        assert response.json() == {
            "languages": ["en", "es", "sw"],
            "count": 3,
            "providers": {"libretranslate": ["en", "es"], "google": ["en", "sw"]},
        }

    def test_providers_without_a_list(self, client: TestClient):
        data = client.get("/api/v1/languages").json()

        assert data["count"] == 0
        assert data["providers"] == {"libretranslate": [], "google": []}
