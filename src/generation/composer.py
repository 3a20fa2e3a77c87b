"""Prompt assembly for draft generation.

System prompts are looked up by ``(mode, has_sources)`` and content-type
blocks by content type, so adding a mode or format is a table entry.
"""

from __future__ import annotations

import structlog

from config.prompts.generation import (
    CITATION_INSTRUCTION_WITH_SOURCES,
    CITATION_INSTRUCTION_WITHOUT_SOURCES,
    CONTENT_SOURCE_NOTICE_INSTRUCTION,
    GENERAL_WITH_SOURCES_PROMPT,
    GENERAL_WITHOUT_SOURCES_PROMPT,
    LONG_ARTICLE_INSTRUCTION,
    META_TAGS_INSTRUCTION,
    NEWS_WITH_SOURCES_PROMPT,
    NEWS_WITHOUT_SOURCES_PROMPT,
    PRESS_RELEASE_INSTRUCTION,
    PRIVATE_SOP_PROMPT,
    SHORT_ARTICLE_INSTRUCTION,
    WEB2_ARTICLE_INSTRUCTION,
    WEBPAGE_REVISION_INSTRUCTION,
    WEBPAGE_SUMMARY_INSTRUCTION,
)
from src.generation.formatter import content_source_notice, format_sources_list
from src.generation.models import ContentType, GenerationRequest, Mode, PromptPair
from src.retrieval.models import EvidenceSet

logger = structlog.get_logger(__name__)

SYSTEM_PROMPTS: dict[tuple[Mode, bool], str] = {
    (Mode.NEWS, True): NEWS_WITH_SOURCES_PROMPT,
    (Mode.NEWS, False): NEWS_WITHOUT_SOURCES_PROMPT,
    (Mode.PRIVATE, True): PRIVATE_SOP_PROMPT,
    (Mode.PRIVATE, False): PRIVATE_SOP_PROMPT,
    (Mode.GENERAL, True): GENERAL_WITH_SOURCES_PROMPT,
    (Mode.GENERAL, False): GENERAL_WITHOUT_SOURCES_PROMPT,
}

CONTENT_TYPE_INSTRUCTIONS: dict[ContentType, str] = {
    ContentType.LONG_ARTICLE: LONG_ARTICLE_INSTRUCTION,
    ContentType.SHORT_ARTICLE: SHORT_ARTICLE_INSTRUCTION,
    ContentType.WEB2_ARTICLE: WEB2_ARTICLE_INSTRUCTION,
    ContentType.PRESS_RELEASE: PRESS_RELEASE_INSTRUCTION,
    ContentType.WEBPAGE_REVISION: WEBPAGE_REVISION_INSTRUCTION,
    ContentType.META_TAGS: META_TAGS_INSTRUCTION,
    ContentType.WEBPAGE_SUMMARY: WEBPAGE_SUMMARY_INSTRUCTION,
}

INTERNET_SOURCE_LINE = "Content source: Internet fallback (universe sources unavailable)."
PRIVATE_CONTEXT_HEADING = "SOP Context (only source of truth):"
CONTEXT_HEADING = "Context:"


class PromptComposer:
    """Builds the system and user prompts for one request."""

    def compose(self, request: GenerationRequest, evidence: EvidenceSet) -> PromptPair:
        """Assemble prompts from the request and its resolved evidence.

        Args:
            request: Normalized generation request.
            evidence: Bounded evidence set.

        Returns:
            PromptPair ready for the generation attempter.
        """
        prompts = PromptPair(
            system=self.system_prompt(request, evidence),
            user=self.user_prompt(request, evidence),
        )
        logger.debug(
            "prompts_composed",
            mode=request.mode.value,
            content_type=request.content_type.value,
            has_sources=evidence.has_sources,
            system_chars=len(prompts.system),
            user_chars=len(prompts.user),
        )
        return prompts

    def system_prompt(self, request: GenerationRequest, evidence: EvidenceSet) -> str:
        parts = [SYSTEM_PROMPTS[(request.mode, evidence.has_sources)]]
        notice = content_source_notice(evidence.internet_fallback_used, evidence.has_sources)
        if notice:
            parts.append(CONTENT_SOURCE_NOTICE_INSTRUCTION.format(notice=notice))
        parts.append(CONTENT_TYPE_INSTRUCTIONS[request.content_type])
        return "\n\n".join(parts)

    def user_prompt(self, request: GenerationRequest, evidence: EvidenceSet) -> str:
        lines = [
            f"Topic: {request.topic}",
            f"Primary keyword: {request.primary_keyword}",
            f"Secondary keyword: {request.secondary_keyword or 'None'}",
            f"Content type: {request.content_type.value}",
        ]
        if evidence.internet_fallback_used:
            lines.append(INTERNET_SOURCE_LINE)
        if request.target_word_count:
            n = request.target_word_count
            lines.append(f"Target length: ~{n} words (do not exceed {n}).")
        if request.mode == Mode.GENERAL:
            lines.append(f"Mode: {request.mode.value}")
        lines.append("Sources:")
        lines.append(format_sources_list(evidence.citations))

        heading = PRIVATE_CONTEXT_HEADING if request.is_private else CONTEXT_HEADING
        sections = ["\n".join(lines), f"{heading}\n{evidence.context}"]
        if request.input_body:
            sections.append(f"Existing Content:\n{request.input_body}")
        sections.append(
            CITATION_INSTRUCTION_WITH_SOURCES
            if evidence.has_sources
            else CITATION_INSTRUCTION_WITHOUT_SOURCES
        )
        return "\n\n".join(sections)
