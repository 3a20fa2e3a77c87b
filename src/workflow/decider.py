"""Workflow decision: block, review or release a validated draft."""

from __future__ import annotations

from dataclasses import dataclass

from src.validation.models import ValidationAgentResult
from src.validation.swarm import MANUAL_REVIEW_WARNING
from src.workflow.models import ContentSource, WorkflowStatus

CONTENT_SOURCE_LABELS = {
    ContentSource.PRIVATE: "Private SOP context",
    ContentSource.INTERNET: "Internet fallback",
    ContentSource.UNIVERSE: "Universe-based",
}


@dataclass(frozen=True)
class WorkflowDecision:
    """Pure function of the trust score, the verdicts and the threshold."""

    blocked: bool
    requires_review: bool
    status: WorkflowStatus


def decide(
    trust_score: int, results: dict[str, ValidationAgentResult], threshold: int
) -> WorkflowDecision:
    """Decide how a scored draft is released.

    A draft below the threshold is blocked; a blocked draft, or any
    failed agent, sends it to review.
    """
    blocked = trust_score < threshold
    requires_review = blocked or any(not r.passed for r in results.values())
    return WorkflowDecision(
        blocked=blocked,
        requires_review=requires_review,
        status=WorkflowStatus.REVIEW if requires_review else WorkflowStatus.DRAFT,
    )


def content_source(private_mode: bool, internet_fallback_used: bool) -> ContentSource:
    if private_mode:
        return ContentSource.PRIVATE
    if internet_fallback_used:
        return ContentSource.INTERNET
    return ContentSource.UNIVERSE


def build_generation_notice(body: str, source: ContentSource, requires_review: bool) -> str:
    """Prepend the ``## Generation Notice`` header to a draft body."""
    status = "Needs manual review" if requires_review else "Validated"
    header = (
        "## Generation Notice\n"
        f"Content source: {CONTENT_SOURCE_LABELS[source]}\n"
        f"Status: {status}\n\n"
    )
    return header + body.strip()


def merge_warnings(retrieval: list[str], validation: list[str], blocked: bool) -> list[str]:
    """Retrieval warnings then validation warnings; a blocked draft always warns."""
    warnings = [*retrieval, *validation]
    if blocked and not warnings:
        warnings.append(MANUAL_REVIEW_WARNING)
    return warnings
