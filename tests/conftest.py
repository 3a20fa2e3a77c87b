"""Shared pytest fixtures for content orchestrator tests."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from config.settings import Settings
from src.generation.models import GenerationRequest
from src.llm.models import CompletionResult, UsageEvent
from src.observability.metrics import get_metrics_collector
from src.retrieval.models import Citation, EvidenceChunk, EvidenceSet


def completion(
    text: str,
    purpose: str = "generate",
    model: str = "test-model",
    tokens: int = 10,
    cost: float | None = None,
) -> CompletionResult:
    """A completion result as returned by ``CompletionClient.complete``."""
    return CompletionResult(
        text=text,
        usage=UsageEvent(
            purpose=purpose,
            model=model,
            prompt_tokens=tokens,
            completion_tokens=tokens,
            total_tokens=tokens * 2,
            cost_usd=cost,
        ),
    )


@pytest.fixture
def make_completion():
    """Factory for completion results."""
    return completion


# =============================================================================
# Settings
# =============================================================================


@pytest.fixture
def settings() -> Settings:
    """Fully configured settings, independent of the environment and .env."""
    return Settings(
        _env_file=None,
        env="development",
        openrouter_api_key="sk-or-test",
        ai_text_model="primary/model",
        ai_text_model_fallback="fallback/model",
        humanize_content_model=None,
        validation_swarm_agent_1="agent/citation",
        validation_swarm_agent_2="agent/recency",
        validation_swarm_agent_3="agent/fact-check",
        validation_swarm_agent_4="agent/tone",
        supabase_url="https://project.supabase.co",
        supabase_service_role_key="service-role",
        app_base_url="http://app.test",
    )


# =============================================================================
# Requests and Evidence
# =============================================================================


@pytest.fixture
def make_request():
    """Factory for normalized generation requests."""

    def _make(**overrides: Any) -> GenerationRequest:
        values: dict[str, Any] = {
            "topic": "New vaccine guidance",
            "primary_keyword": "vaccine guidance",
            "user_id": "user-1",
            "mode": "general",
        }
        values.update(overrides)
        return GenerationRequest.from_input(**values)

    return _make


@pytest.fixture
def sample_citations() -> list[Citation]:
    return [
        Citation(title="CDC update", url="https://www.cdc.gov/vaccines/update", source="cdc.gov"),
        Citation(title="FDA notice", url="https://www.fda.gov/news/notice", source="fda.gov"),
    ]


@pytest.fixture
def evidence(sample_citations: list[Citation]) -> EvidenceSet:
    """Universe evidence with two verified citations."""
    return EvidenceSet(
        context="CDC update\nVaccine guidance changed.\n\nFDA notice\nNew labeling.",
        citations=sample_citations,
        rag_chunks=[
            EvidenceChunk(
                content="Vaccine guidance changed.",
                metadata={"title": "CDC update", "url": sample_citations[0].url},
            )
        ],
    )


@pytest.fixture
def internet_evidence() -> EvidenceSet:
    """Evidence that came from the internet fallback."""
    return EvidenceSet(
        context="Blog post\nSomething about vaccines.",
        citations=[Citation(title="Blog post", url="https://blog.example.com/a", source="blog.example.com")],
        internet_fallback_used=True,
        warnings=["No universe sources found; used internet sources as fallback."],
    )


# =============================================================================
# Collaborator Mocks
# =============================================================================


@pytest.fixture
def mock_completion_client() -> MagicMock:
    """Completion client whose ``complete`` is an AsyncMock."""
    client = MagicMock()
    client.complete = AsyncMock(return_value=completion("Draft body."))
    return client


@pytest.fixture(autouse=True)
def reset_metrics():
    """Start every test with empty metrics."""
    get_metrics_collector().reset()
    yield
    get_metrics_collector().reset()
