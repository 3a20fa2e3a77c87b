"""Optional rewrite pass over a finalized draft."""

from __future__ import annotations

from collections.abc import Callable

import structlog

from config.prompts.generation import (
    REWRITE_STANDARD_PROMPT,
    REWRITE_STANDARD_USER_TEMPLATE,
    REWRITE_STRONG_PROMPT,
    REWRITE_STRONG_USER_TEMPLATE,
)
from config.settings import Settings
from src.generation.formatter import content_source_notice, finalize_body
from src.generation.models import ContentType, GenerationRequest, HumanizeLevel, RewriteOutcome
from src.llm.client import CompletionClient, usage_from_error
from src.retrieval.gateway import call_with_retry
from src.retrieval.models import EvidenceSet

logger = structlog.get_logger(__name__)

REWRITE_TIMEOUT_SECONDS = 20.0


class DraftRewriter:
    """Editorial rewrite in up to two passes (standard, then strong).

    A pass that fails or times out leaves the previous body in place; the
    rewrite never fails the request.
    """

    def __init__(self, client: CompletionClient, settings: Settings):
        self.client = client
        self.settings = settings

    def should_rewrite(self, request: GenerationRequest, remaining: Callable[[], float]) -> bool:
        """Whether the rewrite pass runs at all for this request."""
        return (
            bool(self.settings.humanize_content_model)
            and request.humanize_level != HumanizeLevel.OFF
            and request.content_type != ContentType.META_TAGS
            and remaining() > self.settings.rewrite_min_remaining_seconds
        )

    async def rewrite(
        self,
        body: str,
        request: GenerationRequest,
        evidence: EvidenceSet,
        remaining: Callable[[], float],
    ) -> RewriteOutcome:
        """Rewrite ``body`` when enabled and time allows.

        Args:
            body: Finalized draft body.
            request: Normalized request (level, content type, topic, mode).
            evidence: Evidence set; citations and notice are re-applied.
            remaining: Seconds left in the request budget.

        Returns:
            RewriteOutcome with the latest good body.
        """
        outcome = RewriteOutcome(body=body)
        if not self.should_rewrite(request, remaining):
            logger.info("rewrite_skipped", level=request.humanize_level.value)
            return outcome

        standard_user = REWRITE_STANDARD_USER_TEMPLATE.format(
            topic=request.topic,
            mode=request.mode.value,
            has_sources="yes" if evidence.has_sources else "no",
            body=outcome.body,
        )
        await self._run_pass(
            outcome, "rewrite_standard", REWRITE_STANDARD_PROMPT, standard_user, evidence
        )

        if (
            request.humanize_level == HumanizeLevel.STRONG
            and remaining() > self.settings.rewrite_min_remaining_seconds
        ):
            strong_user = REWRITE_STRONG_USER_TEMPLATE.format(body=outcome.body)
            await self._run_pass(
                outcome, "rewrite_strong", REWRITE_STRONG_PROMPT, strong_user, evidence
            )

        logger.info("rewrite_complete", humanized=outcome.humanized, passes=outcome.passes)
        return outcome

    async def _run_pass(
        self,
        outcome: RewriteOutcome,
        purpose: str,
        system: str,
        user: str,
        evidence: EvidenceSet,
    ) -> None:
        model = self.settings.humanize_content_model
        result = await call_with_retry(
            lambda: self.client.complete(model=model, system=system, user=user, purpose=purpose),
            label="openrouter",
            timeout=REWRITE_TIMEOUT_SECONDS,
            max_attempts=1,
        )
        if not result.ok or result.value is None:
            logger.warning("rewrite_pass_failed", purpose=purpose, error=result.error)
            billed = usage_from_error(result.exception)
            if billed is not None:
                outcome.usage.append(billed)
            return

        notice = content_source_notice(evidence.internet_fallback_used, evidence.has_sources)
        outcome.body = finalize_body(result.value.text, evidence.citations, notice)
        outcome.humanized = True
        outcome.passes.append(purpose)
        outcome.usage.append(result.value.usage)
