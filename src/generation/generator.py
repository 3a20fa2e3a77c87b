"""Multi-candidate draft generation."""

from __future__ import annotations

import time

import structlog

from config.settings import Settings
from src.api.errors import GenerationFailedError
from src.generation.formatter import content_source_notice, finalize_body
from src.generation.models import GeneratedDraft, GenerationRequest, PromptPair
from src.llm.client import CompletionClient, usage_from_error
from src.llm.models import UsageEvent
from src.retrieval.gateway import call_with_retry
from src.retrieval.models import EvidenceSet

logger = structlog.get_logger(__name__)

AUTO_ROUTER_MODEL = "openrouter/auto"
DEFAULT_MAX_ATTEMPTS = 2

LONG_FORM_TIMEOUT_SECONDS = 40.0
NEWS_TIMEOUT_SECONDS = 30.0
DEFAULT_TIMEOUT_SECONDS = 35.0


def candidate_models(settings: Settings) -> list[str]:
    """Models to try, in order: primary, fallback, auto-router.

    Duplicates and unset entries are dropped, then the list is cut to
    ``GENERATION_MAX_ATTEMPTS`` (default two, never more than available).
    """
    candidates: list[str] = []
    for model in (settings.ai_text_model, settings.ai_text_model_fallback, AUTO_ROUTER_MODEL):
        if model and model not in candidates:
            candidates.append(model)

    limit = settings.generation_max_attempts or min(DEFAULT_MAX_ATTEMPTS, len(candidates))
    return candidates[: min(limit, len(candidates))]


def attempt_timeout(settings: Settings, request: GenerationRequest) -> float:
    """Per-candidate timeout in seconds."""
    if settings.generation_attempt_timeout_ms:
        return settings.generation_attempt_timeout_ms / 1000
    if request.is_long_form:
        return LONG_FORM_TIMEOUT_SECONDS
    if request.is_news:
        return NEWS_TIMEOUT_SECONDS
    return DEFAULT_TIMEOUT_SECONDS


class DraftGenerator:
    """Generate a draft by trying candidate models in sequence.

    The first non-empty reply wins. Its body is then finalized: any
    model-written sources section is replaced by the canonical one and the
    content source notice is enforced.
    """

    def __init__(self, client: CompletionClient, settings: Settings):
        self.client = client
        self.settings = settings

    async def generate(
        self,
        prompts: PromptPair,
        request: GenerationRequest,
        evidence: EvidenceSet,
    ) -> GeneratedDraft:
        """Run the candidate loop.

        Raises:
            GenerationFailedError: Every candidate failed or returned nothing.
        """
        candidates = candidate_models(self.settings)
        timeout = attempt_timeout(self.settings, request)
        logger.info("generation_started", candidates=candidates, timeout_s=timeout)
        start_time = time.time()

        last_error = ""
        usage: list[UsageEvent] = []
        for attempt, model in enumerate(candidates, start=1):
            result = await call_with_retry(
                lambda model=model: self.client.complete(
                    model=model,
                    system=prompts.system,
                    user=prompts.user,
                    purpose="generate",
                ),
                label="openrouter",
                timeout=timeout,
                max_attempts=1,
            )
            if not result.ok or result.value is None:
                last_error = result.error or ""
                billed = usage_from_error(result.exception)
                if billed is not None:
                    usage.append(billed)
                logger.warning("generation_candidate_failed", model=model, error=last_error)
                continue

            notice = content_source_notice(evidence.internet_fallback_used, evidence.has_sources)
            body = finalize_body(result.value.text, evidence.citations, notice)
            logger.info(
                "generation_complete",
                model=model,
                attempts=attempt,
                body_chars=len(body),
                duration_ms=int((time.time() - start_time) * 1000),
            )
            return GeneratedDraft(
                body=body,
                model=model,
                attempts=attempt,
                usage=[*usage, result.value.usage],
            )

        logger.error("generation_failed", candidates=candidates, error=last_error)
        raise GenerationFailedError(
            "Generation failed for every candidate model",
            details=last_error or "No model succeeded",
        )
