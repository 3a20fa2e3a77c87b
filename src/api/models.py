"""Pydantic models for FastAPI request/response handling."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

# =============================================================================
# Request Models
# =============================================================================


class GenerateRequest(BaseModel):
    """Request body for /generate.

    Fields are accepted in camelCase (as sent by the web app) or snake_case.
    Values are taken as sent. Required-field checks, scalar-to-text
    coercion and enum fallbacks happen when the body is normalized into a
    ``GenerationRequest``, so a body missing ``topic`` yields the
    ``invalid_request`` error rather than a schema error.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        json_schema_extra={
            "examples": [
                {
                    "topic": "New vaccine guidance",
                    "primaryKeyword": "vaccine guidance",
                    "mode": "news",
                    "userId": "user-123",
                    "contentType": "short_article",
                    "targetWordCount": 800,
                },
                {
                    "topic": "Cold storage SOP summary",
                    "keyword": "cold storage",
                    "mode": "private",
                    "userId": "user-123",
                    "humanizeLevel": "off",
                },
            ]
        },
    )

    topic: Any = Field(default=None, description="Subject of the content")
    primary_keyword: Any = Field(
        default=None,
        validation_alias=AliasChoices("primaryKeyword", "keyword", "primary_keyword"),
        description="Primary keyword (``keyword`` is accepted as an alias)",
    )
    secondary_keyword: Any = Field(
        default=None,
        validation_alias=AliasChoices("secondaryKeyword", "secondary_keyword"),
    )
    mode: Any = Field(default=None, description="news, private or general")
    user_id: Any = Field(
        default=None,
        validation_alias=AliasChoices("userId", "user_id"),
        description="Tenant user id, scopes private retrieval",
    )
    target_word_count: Any = Field(
        default=None,
        validation_alias=AliasChoices("targetWordCount", "target_word_count"),
        description="Requested length, clamped to 50..2000; non-numeric means no target",
    )
    content_type: Any = Field(
        default=None,
        validation_alias=AliasChoices("contentType", "content_type"),
    )
    input_body: Any = Field(
        default=None,
        validation_alias=AliasChoices("inputBody", "input_body"),
        description="Existing text for revision or summary content types",
    )
    humanize_level: Any = Field(
        default=None,
        validation_alias=AliasChoices("humanizeLevel", "humanize_level"),
        description="off, standard or strong",
    )


# =============================================================================
# Health/Status Models
# =============================================================================


class ServiceHealth(BaseModel):
    """Health status of a single collaborator."""

    name: str = Field(..., description="Service name")
    healthy: bool = Field(..., description="Whether service is healthy")
    latency_ms: float | None = Field(default=None, description="Health check latency in ms")
    error: str | None = Field(default=None, description="Error message if unhealthy")


class HealthResponse(BaseModel):
    """Response from /health endpoint."""

    status: str = Field(..., description="Overall status: healthy, degraded, unhealthy")
    services: list[ServiceHealth] = Field(
        default_factory=list, description="Individual service health"
    )
    timestamp: datetime = Field(..., description="Health check timestamp")


# =============================================================================
# Metrics Models
# =============================================================================


class LatencyStats(BaseModel):
    """Latency statistics for metrics."""

    avg: float = Field(..., description="Average latency in ms")
    min: float | None = Field(default=None, description="Minimum latency in ms")
    max: float | None = Field(default=None, description="Maximum latency in ms")


class GenerationStats(BaseModel):
    """Outcome counts for completed generations."""

    total: int = 0
    blocked: int = 0
    requires_review: int = 0
    internet_fallback: int = 0
    avg_trust_score: float | None = None


class MetricsResponse(BaseModel):
    """Response from /metrics endpoint."""

    total_requests: int = Field(..., description="Total generation requests")
    successful_requests: int = Field(..., description="Requests that returned a result")
    failed_requests: int = Field(..., description="Requests that returned an error")
    success_rate_percent: float = Field(..., description="Success rate percentage")
    latency_ms: LatencyStats = Field(..., description="Latency statistics")
    errors_by_code: dict[str, int] = Field(default_factory=dict, description="Error counts by code")
    generations: GenerationStats = Field(default_factory=GenerationStats)
    uptime_seconds: float = Field(..., description="Uptime in seconds")
    started_at: str = Field(..., description="Start time ISO format")

    @classmethod
    def from_stats(cls, stats: dict[str, Any]) -> MetricsResponse:
        return cls(
            total_requests=stats["total_requests"],
            successful_requests=stats["successful_requests"],
            failed_requests=stats["failed_requests"],
            success_rate_percent=stats["success_rate_percent"],
            latency_ms=LatencyStats(**stats["latency_ms"]),
            errors_by_code=stats["errors_by_code"],
            generations=GenerationStats(**stats["generations"]),
            uptime_seconds=stats["uptime_seconds"],
            started_at=stats["started_at"],
        )
