"""Centralized prompt management for the content orchestrator.

Prompts are organized by functional area:
- generation: Mode system prompts, content type blocks, source notices, rewrite
- validation: Scoring agent base prompt and responsibility blocks

Usage:
    from config.prompts import VALIDATION_BASE_PROMPT
    from config.prompts.generation import NEWS_WITH_SOURCES_PROMPT
"""

from __future__ import annotations

from .generation import (
    CONTENT_SOURCE_NOTICE_INSTRUCTION,
    INTERNET_SOURCES_NOTICE,
    NO_SOURCES_NOTICE,
    REWRITE_STANDARD_PROMPT,
    REWRITE_STRONG_PROMPT,
)
from .validation import (
    CITATION_AGENT_PROMPT,
    FACT_CHECK_AGENT_PROMPT,
    RECENCY_AGENT_PROMPT,
    TONE_AGENT_PROMPT,
    VALIDATION_BASE_PROMPT,
)

__all__ = [
    # Generation prompts
    "CONTENT_SOURCE_NOTICE_INSTRUCTION",
    "INTERNET_SOURCES_NOTICE",
    "NO_SOURCES_NOTICE",
    "REWRITE_STANDARD_PROMPT",
    "REWRITE_STRONG_PROMPT",
    # Validation prompts
    "VALIDATION_BASE_PROMPT",
    "CITATION_AGENT_PROMPT",
    "RECENCY_AGENT_PROMPT",
    "FACT_CHECK_AGENT_PROMPT",
    "TONE_AGENT_PROMPT",
]
