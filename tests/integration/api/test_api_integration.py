"""
Integration tests for FastAPI application.

These tests use TestClient against the real app. The orchestrator and
repository dependencies are rebuilt over httpx.MockTransport fakes, so
every layer below the routes runs unmodified.
"""

from unittest.mock import AsyncMock, patch

import httpx
import pytest
from fastapi import Depends
from fastapi.testclient import TestClient

from grounded_probe.api.dependencies import get_orchestrator, get_repository, get_settings
from grounded_probe.config import Settings
from grounded_probe.main import app
from grounded_probe.models.enums import SearchStrategyName
from grounded_probe.orchestrator import open_orchestrator
from grounded_probe.persistence.repository import ProbeRepository
from grounded_probe.persistence.rest_client import SupabaseRestClient
from tests.integration.fakes import gemini_text_body

PRIMARY = "test-primary-key"
BACKUP = "test-backup-key"


def ok_response(text: str = "grounded answer") -> httpx.Response:
    return httpx.Response(200, json=gemini_text_body(text, {"webSearchQueries": ["quadrate"]}))


@pytest.fixture
def settings_holder(integration_settings):
    """Mutable holder so a test can swap settings before making requests."""
    return {"settings": integration_settings}


@pytest.fixture
def client(settings_holder, fake_gemini, fake_store):
    def _settings() -> Settings:
        return settings_holder["settings"]

    async def _orchestrator(settings: Settings = Depends(get_settings)):
        async with open_orchestrator(
            settings,
            gemini_transport=httpx.MockTransport(fake_gemini),
            store_transport=httpx.MockTransport(fake_store),
        ) as orchestrator:
            yield orchestrator

    async def _repository(settings: Settings = Depends(get_settings)):
        url, key = settings.require_store()
        async with SupabaseRestClient(url, key, transport=httpx.MockTransport(fake_store)) as rest_client:
            yield ProbeRepository(rest_client)

    app.dependency_overrides[get_settings] = _settings
    app.dependency_overrides[get_orchestrator] = _orchestrator
    app.dependency_overrides[get_repository] = _repository
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.mark.integration
def test_root_endpoint(client):
    """Test root endpoint returns service info."""
    response = client.get("/")

    assert response.status_code == 200
    data = response.json()
    assert data["probe"] == "/probe"
    assert data["health"] == "/health"
    assert "docs" in data


@pytest.mark.integration
class TestProbeEndpoint:

    def test_success_stores_response_and_health_check(self, client, fake_gemini, fake_store):
        fake_gemini.add(PRIMARY, "model-a", ok_response("Quadrate builds software."))

        response = client.post("/probe")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "success"
        assert body["model_used"] == "model-a"
        assert body["credential_label"] == "primary"
        assert body["reply"] == 1
        assert "http_status" not in body

        saved = fake_store.tables["gemini_responses"]
        assert len(saved) == 1
        assert saved[0]["response"] == "Quadrate builds software."
        assert saved[0]["grounding_metadata"] == {"webSearchQueries": ["quadrate"]}
        assert saved[0]["prompt"] == body["prompt"]
        assert [row["is_successful"] for row in fake_store.tables["api_health_checks"]] == [True]

    def test_caller_prompt(self, client, fake_gemini):
        fake_gemini.add(PRIMARY, "model-a", ok_response())

        response = client.post("/probe", json={"prompt": "Who founded Quadrate?"})

        assert response.status_code == 200
        assert response.json()["prompt"] == "Who founded Quadrate?"
        _, _, sent = fake_gemini.calls[0]
        assert sent["contents"][0]["parts"][0]["text"] == "Who founded Quadrate?"

    def test_cors_and_request_id_headers(self, client, fake_gemini):
        fake_gemini.add(PRIMARY, "model-a", ok_response())

        response = client.post("/probe", headers={"X-Request-ID": "req-123"})

        assert response.headers["access-control-allow-origin"] == "*"
        assert "apikey" in response.headers["access-control-allow-headers"]
        assert response.headers["x-request-id"] == "req-123"

    def test_preflight(self, client):
        response = client.options("/probe")

        assert response.status_code == 200
        assert response.text == "ok"
        assert response.headers["access-control-allow-origin"] == "*"

    def test_rate_limit_sets_cooldown_and_next_call_is_skipped(self, client, fake_gemini, fake_store):
        fake_gemini.add(PRIMARY, "model-a", httpx.Response(429, json={"error": {"message": "quota"}}))

        first = client.post("/probe")
        second = client.post("/probe")

        assert first.status_code == 429
        assert first.json()["message"] == "Rate limit exceeded. API calls paused for 45 minutes."
        assert first.json()["cooldown_set"] is True
        assert second.status_code == 429
        assert second.json()["status"] == "skipped"
        assert second.json()["in_cooldown"] is True
        assert len(fake_gemini.calls) == 1
        assert len(fake_store.tables["gemini_rate_limit_cooldown"]) == 1
        assert [row["is_successful"] for row in fake_store.tables["api_health_checks"]] == [False, False]

    def test_invalid_primary_key_uses_backup(self, client, fake_gemini):
        fake_gemini.add(PRIMARY, "model-a", httpx.Response(403, json={"error": {"message": "denied"}}))
        fake_gemini.add(BACKUP, "model-a", ok_response())

        response = client.post("/probe")

        assert response.status_code == 200
        assert response.json()["credential_label"] == "backup"

    def test_exhausted_returns_500(self, client, fake_gemini, fake_store):
        fake_gemini.default = lambda: httpx.Response(500, json={"error": {"message": "internal"}})

        response = client.post("/probe")

        assert response.status_code == 500
        body = response.json()
        assert body["status"] == "error"
        assert body["message"] == "Gemini server error 500: internal"
        assert body["attempts"] == 12
        assert fake_store.tables["gemini_rate_limit_cooldown"] == []

    def test_store_outage_does_not_fail_probe(self, client, fake_gemini, fake_store):
        fake_store.fail = True
        fake_gemini.add(PRIMARY, "model-a", ok_response())

        response = client.post("/probe")

        assert response.status_code == 200
        body = response.json()
        assert "reply" not in body
        assert body["check_recorded"] is False

    def test_missing_api_key_is_configuration_error(self, client, settings_holder, fake_gemini):
        settings_holder["settings"] = settings_holder["settings"].model_copy(update={"GEMINI_API_KEY": None})

        response = client.post("/probe")

        assert response.status_code == 500
        body = response.json()
        assert body["status"] == "error"
        assert body["details"] == {"missing": ["GEMINI_API_KEY"]}
        assert response.headers["access-control-allow-origin"] == "*"
        assert fake_gemini.calls == []

    def test_prompt_too_long_is_bad_request(self, client):
        response = client.post("/probe", json={"prompt": "x" * 5000})

        assert response.status_code == 400
        assert response.json()["message"] == "Request validation failed"

    def test_priority_search(self, client, settings_holder, fake_gemini):
        settings_holder["settings"] = settings_holder["settings"].model_copy(
            update={"SEARCH_STRATEGY": SearchStrategyName.PRIORITY, "PRIORITY_DOMAIN": "quadrate.lk"}
        )
        fake_gemini.add(PRIMARY, "model-a", ok_response("domain"), ok_response("general"))

        response = client.post("/probe")

        assert response.status_code == 200
        summary = response.json()["search_strategy"]
        assert summary == {
            "domain_search_completed": True,
            "general_search_completed": True,
            "primary_source": "quadrate.lk",
            "aggregation_type": "prioritized",
        }
        domain_call, general_call = fake_gemini.calls
        assert domain_call[2]["systemInstruction"]["parts"][0]["text"].startswith("PRIORITY SEARCH")
        assert general_call[2]["systemInstruction"]["parts"][0]["text"].startswith("SUPPLEMENTARY SEARCH")


@pytest.mark.integration
class TestCooldownEndpoint:

    def test_clear(self, client):
        response = client.get("/cooldown")

        assert response.status_code == 200
        assert response.json() == {"state": "clear", "cooldown_until": None, "remaining_seconds": 0}

    def test_cooling_after_rate_limit(self, client, fake_gemini):
        fake_gemini.add(PRIMARY, "model-a", httpx.Response(429))
        client.post("/probe")

        response = client.get("/cooldown")

        data = response.json()
        assert data["state"] == "cooling"
        assert 44 * 60 < data["remaining_seconds"] <= 45 * 60
        assert data["cooldown_until"] is not None


@pytest.mark.integration
class TestHealthEndpoint:

    def test_healthy(self, client):
        with patch("grounded_probe.api.routes._check_store", AsyncMock(return_value="ok")), patch(
            "grounded_probe.api.routes.ping_redis", AsyncMock(return_value=True)
        ):
            response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["services"] == {"store": "ok", "gemini": "configured", "redis": "ok"}

    def test_degraded_without_redis(self, client):
        with patch("grounded_probe.api.routes._check_store", AsyncMock(return_value="ok")), patch(
            "grounded_probe.api.routes.ping_redis", AsyncMock(return_value=False)
        ):
            response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"

    def test_unhealthy_when_store_unreachable(self, client):
        with patch("grounded_probe.api.routes._check_store", AsyncMock(return_value="unreachable")), patch(
            "grounded_probe.api.routes.ping_redis", AsyncMock(return_value=True)
        ):
            response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"

    def test_unhealthy_without_credentials(self, client, settings_holder):
        settings_holder["settings"] = settings_holder["settings"].model_copy(update={"GEMINI_API_KEY": None})
        with patch("grounded_probe.api.routes._check_store", AsyncMock(return_value="ok")), patch(
            "grounded_probe.api.routes.ping_redis", AsyncMock(return_value=True)
        ):
            response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["services"]["gemini"] == "not_configured"
