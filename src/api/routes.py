"""API routes for the content orchestrator."""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone

from fastapi import APIRouter

from src.generation.models import GenerationRequest
from src.observability.context import query_id_var
from src.observability.logging import get_logger
from src.observability.metrics import get_metrics_collector
from src.workflow.graph import run_generation
from src.workflow.models import GenerationResult

from .dependencies import ComponentsDep, GenerationGraphDep, RequestIdDep
from .models import GenerateRequest, HealthResponse, MetricsResponse, ServiceHealth

logger = get_logger(__name__)

router = APIRouter()


# =============================================================================
# Generation Endpoint
# =============================================================================


@router.post(
    "/generate",
    response_model=GenerationResult,
    summary="Generate Validated Content",
    description="""
Generate a draft grounded in retrieved evidence and score it.

The pipeline performs:
1. **Evidence resolution** - private, public or internet sources, verified
2. **Prompt composition** - mode and content-type specific instructions
3. **Generation** - primary model with fallback candidates
4. **Rewrite** - optional humanizing passes within the time budget
5. **Validation swarm** - citation, recency, fact-check and tone agents
6. **Release decision** - trust score against the configured threshold

A draft scoring below the threshold is returned with `blocked: true`; its
text is then only in `review_body`.
    """,
    responses={
        400: {"description": "Missing topic, keyword or user id"},
        422: {"description": "Private mode resolved no sources"},
        500: {"description": "Configuration error or generation failure"},
        504: {"description": "Upstream timeout"},
    },
    tags=["Generation"],
)
async def generate(
    body: GenerateRequest,
    request_id: RequestIdDep,
    graph: GenerationGraphDep,
    components: ComponentsDep,
) -> GenerationResult:
    """Run one generation request through the workflow graph."""
    request = GenerationRequest.from_input(
        topic=body.topic,
        primary_keyword=body.primary_keyword,
        user_id=body.user_id,
        secondary_keyword=body.secondary_keyword,
        mode=body.mode,
        content_type=body.content_type,
        target_word_count=body.target_word_count,
        input_body=body.input_body,
        humanize_level=body.humanize_level,
    )

    start_time = time.perf_counter()
    logger.info(
        "generation_started",
        topic_preview=request.topic[:80],
        mode=request.mode.value,
        content_type=request.content_type.value,
    )

    result = await run_generation(
        graph, components, request, run_id=query_id_var.get("") or None
    )

    get_metrics_collector().record_generation(
        trust_score=result.trust_score,
        blocked=result.blocked,
        requires_review=result.requires_review,
        internet_fallback_used=result.internet_fallback_used,
    )
    logger.info(
        "generation_completed",
        request_id=request_id,
        trust_score=result.trust_score,
        status=result.status.value,
        blocked=result.blocked,
        draft_id=result.draft_id or None,
        processing_time_ms=int((time.perf_counter() - start_time) * 1000),
    )
    return result


# =============================================================================
# Metrics Endpoint
# =============================================================================


@router.get(
    "/metrics",
    response_model=MetricsResponse,
    summary="Get API Metrics",
    description="""
Get API performance metrics and generation outcomes.

Returns:
- **Request counts** - Total, successful, and failed generation requests
- **Latency stats** - Average, min, max response times
- **Error breakdown** - Counts by error code
- **Generations** - Blocked, held for review, internet fallback, average trust score
    """,
    tags=["Monitoring"],
)
async def get_metrics() -> MetricsResponse:
    """Get API metrics."""
    return MetricsResponse.from_stats(get_metrics_collector().get_stats())


# =============================================================================
# Health Endpoints
# =============================================================================


@router.get(
    "/ping",
    summary="Ping",
    description="Simple liveness check endpoint. Returns immediately without checking external services.",
    tags=["Monitoring"],
)
async def ping():
    """Simple ping endpoint for basic liveness check."""
    return {"status": "ok", "message": "pong"}


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="""
Check configuration and the persistence platform.

Status meanings:
- `healthy` - Completion key configured and store reachable
- `degraded` - One of the two is unavailable
- `unhealthy` - Neither is available
    """,
    tags=["Monitoring"],
)
async def health_check(components: ComponentsDep) -> HealthResponse:
    """Check health of the collaborators the pipeline depends on."""
    services = []
    settings = components.settings

    key = settings.openrouter_api_key
    key_configured = key is not None and bool(key.get_secret_value())
    services.append(
        ServiceHealth(
            name="openrouter",
            healthy=key_configured,
            error=None if key_configured else "OPENROUTER_API_KEY is not configured",
        )
    )

    store_start = time.perf_counter()
    try:
        store_healthy = await asyncio.to_thread(components.store.health_check)
        services.append(
            ServiceHealth(
                name="supabase",
                healthy=store_healthy,
                latency_ms=(time.perf_counter() - store_start) * 1000,
                error=None if store_healthy else "Health check returned False",
            )
        )
    except Exception as e:
        services.append(ServiceHealth(name="supabase", healthy=False, error=str(e)))

    if all(s.healthy for s in services):
        overall_status = "healthy"
    elif any(s.healthy for s in services):
        overall_status = "degraded"
    else:
        overall_status = "unhealthy"

    return HealthResponse(
        status=overall_status,
        services=services,
        timestamp=datetime.now(timezone.utc),
    )
