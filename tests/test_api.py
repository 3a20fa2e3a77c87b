"""Tests for the FastAPI endpoints."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from src.api.dependencies import get_components, get_generation_graph
from src.api.errors import NoSourcesError
from src.api.main import create_app
from src.generation.composer import PromptComposer
from src.generation.models import GeneratedDraft
from src.llm.models import UsageEvent
from src.validation.models import AgentStatus, SwarmOutcome, ValidationAgentResult
from src.workflow.components import PipelineComponents
from src.workflow.graph import create_generation_graph

GENERATE_URL = "/api/v1/generate"

VALID_BODY = {
    "topic": "New vaccine guidance",
    "primaryKeyword": "vaccine guidance",
    "mode": "news",
    "userId": "user-1",
    "targetWordCount": 800,
}


@pytest.fixture
def mock_components(settings, evidence):
    """Pipeline collaborators with the network edges mocked out."""
    store = MagicMock()
    store.health_check.return_value = True

    resolver = MagicMock()
    resolver.resolve = AsyncMock(return_value=evidence)
    generator = MagicMock()
    generator.generate = AsyncMock(
        return_value=GeneratedDraft(
            body="Draft body",
            model="primary/model",
            usage=[UsageEvent(purpose="generate", model="primary/model", total_tokens=12)],
        )
    )
    rewriter = MagicMock()
    rewriter.should_rewrite = MagicMock(return_value=False)
    swarm = MagicMock()
    swarm.run = AsyncMock(
        return_value=SwarmOutcome(
            results={
                name: ValidationAgentResult(status=AgentStatus.PASS, confidence=0.9)
                for name in ("citation", "recency", "fact_check", "tone")
            },
            trust_score=100,
        )
    )
    recorder = MagicMock()
    recorder.record = AsyncMock(return_value="draft-7")

    return PipelineComponents(
        settings=settings,
        store=store,
        collector=MagicMock(),
        resolver=resolver,
        composer=PromptComposer(),
        generator=generator,
        rewriter=rewriter,
        swarm=swarm,
        recorder=recorder,
        verifier=MagicMock(),
        searcher=MagicMock(),
    )


@pytest.fixture
def app(mock_components):
    app = create_app()
    app.dependency_overrides[get_components] = lambda: mock_components
    app.dependency_overrides[get_generation_graph] = create_generation_graph
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    """Test client without lifespan, so no real collaborators are built."""
    return TestClient(app)


# =============================================================================
# Generation Endpoint
# =============================================================================


class TestGenerateEndpoint:
    """Tests for POST /api/v1/generate."""

    def test_generate_success(self, client, mock_components):
        response = client.post(GENERATE_URL, json=VALID_BODY)

        assert response.status_code == 200
        data = response.json()
        assert data["trust_score"] == 100
        assert data["blocked"] is False
        assert data["status"] == "draft"
        assert data["draft_id"] == "draft-7"
        assert data["content_source"] == "universe"
        assert data["body"].startswith("## Generation Notice")
        assert data["citations"][0]["url"] == "https://www.cdc.gov/vaccines/update"
        assert data["run_metrics"]["openrouter"]["total_tokens"] == 12
        assert "X-Request-ID" in response.headers

        request = mock_components.resolver.resolve.await_args.args[0]
        assert request.mode.value == "news"
        assert request.target_word_count == 800

    def test_accepts_keyword_alias_and_snake_case(self, client, mock_components):
        response = client.post(
            GENERATE_URL,
            json={"topic": "Flu", "keyword": "flu shots", "user_id": "u2", "content_type": "pr"},
        )

        assert response.status_code == 200
        request = mock_components.resolver.resolve.await_args.args[0]
        assert request.primary_keyword == "flu shots"
        assert request.content_type.value == "pr"

    def test_numeric_fields_are_coerced(self, client, mock_components):
        response = client.post(
            GENERATE_URL,
            json={"topic": 2026, "primaryKeyword": "flu", "userId": 42, "mode": "news"},
        )

        assert response.status_code == 200
        request = mock_components.resolver.resolve.await_args.args[0]
        assert request.topic == "2026"
        assert request.user_id == "42"

    def test_uses_provided_request_id(self, client):
        response = client.post(GENERATE_URL, json=VALID_BODY, headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"

    def test_missing_fields(self, client):
        response = client.post(GENERATE_URL, json={"topic": "Flu", "userId": "u"})

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "invalid_request"
        assert data["details"] == {"missing": ["keyword"]}
        assert "timestamp" in data

    @pytest.mark.parametrize("content", ["not json", "[1, 2]"])
    def test_malformed_body(self, client, content):
        response = client.post(
            GENERATE_URL, content=content, headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "invalid_request"
        assert data["message"] == "Invalid JSON body"
        assert isinstance(data["details"], list)

    def test_private_without_sources(self, client, mock_components):
        mock_components.resolver.resolve.side_effect = NoSourcesError(
            retrieval_error="cohere_unavailable"
        )

        response = client.post(GENERATE_URL, json={**VALID_BODY, "mode": "private"})

        assert response.status_code == 422
        data = response.json()
        assert data["error"] == "no_sources"
        assert data["retrieval_error"] == "cohere_unavailable"
        mock_components.generator.generate.assert_not_awaited()

    def test_missing_openrouter_key(self, client, mock_components):
        mock_components.settings = mock_components.settings.model_copy(
            update={"openrouter_api_key": None}
        )

        response = client.post(GENERATE_URL, json=VALID_BODY)

        assert response.status_code == 500
        assert response.json()["error"] == "missing_openrouter_key"

    def test_missing_validation_agents(self, client, mock_components):
        mock_components.settings = mock_components.settings.model_copy(
            update={"validation_swarm_agent_3": None}
        )

        response = client.post(GENERATE_URL, json=VALID_BODY)

        assert response.status_code == 500
        data = response.json()
        assert data["error"] == "missing_validation_swarm_agents"
        assert data["details"] == {"missing": ["VALIDATION_SWARM_AGENT_3"]}

    def test_unexpected_error(self, app, mock_components):
        mock_components.resolver.resolve.side_effect = RuntimeError("boom")
        client = TestClient(app, raise_server_exceptions=False)

        response = client.post(GENERATE_URL, json=VALID_BODY)

        assert response.status_code == 500
        data = response.json()
        assert data["error"] == "server_error"
        assert data["details"] == "boom"


# =============================================================================
# Metrics Endpoint
# =============================================================================


class TestMetricsEndpoint:
    """Tests for GET /api/v1/metrics."""

    def test_counts_generation_requests_only(self, client):
        client.post(GENERATE_URL, json=VALID_BODY)
        client.post(GENERATE_URL, json={"topic": "Flu"})
        client.get("/api/v1/ping")

        data = client.get("/api/v1/metrics").json()

        assert data["total_requests"] == 2
        assert data["successful_requests"] == 1
        assert data["failed_requests"] == 1
        assert data["errors_by_code"] == {"invalid_request": 1}
        assert data["success_rate_percent"] == 50.0
        assert data["generations"]["total"] == 1
        assert data["generations"]["avg_trust_score"] == 100.0

    def test_empty_metrics(self, client):
        data = client.get("/api/v1/metrics").json()

        assert data["total_requests"] == 0
        assert data["latency_ms"]["min"] is None
        assert data["generations"]["avg_trust_score"] is None


# =============================================================================
# Health Endpoints
# =============================================================================


class TestHealthEndpoints:
    """Tests for /api/v1/health, /api/v1/ping and /."""

    def test_healthy(self, client):
        response = client.get("/api/v1/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert {s["name"] for s in data["services"]} == {"openrouter", "supabase"}

    def test_degraded_when_store_down(self, client, mock_components):
        mock_components.store.health_check.return_value = False

        data = client.get("/api/v1/health").json()

        assert data["status"] == "degraded"
        store = next(s for s in data["services"] if s["name"] == "supabase")
        assert store["healthy"] is False

    def test_unhealthy(self, client, mock_components):
        mock_components.store.health_check.side_effect = RuntimeError("connection refused")
        mock_components.settings = mock_components.settings.model_copy(
            update={"openrouter_api_key": None}
        )

        data = client.get("/api/v1/health").json()

        assert data["status"] == "unhealthy"
        store = next(s for s in data["services"] if s["name"] == "supabase")
        assert store["error"] == "connection refused"

    def test_ping(self, client):
        response = client.get("/api/v1/ping")

        assert response.json() == {"status": "ok", "message": "pong"}

    def test_root(self, client):
        data = client.get("/").json()

        assert data["name"] == "Content Orchestrator API"
        assert data["health"] == "/api/v1/health"
