"""Result models for a generation run."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from src.llm.models import UsageTotals
from src.retrieval.models import Citation
from src.validation.models import ValidationAgentResult


class WorkflowStatus(str, Enum):
    """Editorial status of a generated draft."""

    DRAFT = "draft"
    REVIEW = "review"


class ContentSource(str, Enum):
    """Where the draft's evidence came from."""

    PRIVATE = "private"
    INTERNET = "internet"
    UNIVERSE = "universe"


class RunMetrics(BaseModel):
    """Cost and timing accounting for one run."""

    rewrite_level: str
    openrouter: UsageTotals = Field(default_factory=UsageTotals)
    stage_timings_ms: dict[str, int] = Field(default_factory=dict)


class GenerationResult(BaseModel):
    """Outcome of one generation request.

    ``body`` is empty when the draft is blocked; the full text is then in
    ``review_body`` and is always what gets persisted.
    """

    body: str = Field(default="", description="Client-visible body (empty when blocked)")
    review_body: str = Field(default="", description="Full body when blocked")
    citations: list[Citation] = Field(default_factory=list)
    validation_results: dict[str, ValidationAgentResult] = Field(default_factory=dict)
    trust_score: int = Field(..., ge=0, le=100)
    warnings: list[str] = Field(default_factory=list)
    blocked: bool
    status: WorkflowStatus
    requires_review: bool
    humanized: bool = False
    internet_fallback_used: bool = False
    content_source: ContentSource
    content_source_notice: str = ""
    run_metrics: RunMetrics
    draft_id: str = ""

    @property
    def full_body(self) -> str:
        return self.review_body if self.blocked else self.body

    def to_storage(self) -> dict[str, Any]:
        """Record stored in ``generated_content.output_json``: always the full body."""
        data = self.model_dump(mode="json", exclude={"review_body", "draft_id"})
        data["body"] = self.full_body
        return data
