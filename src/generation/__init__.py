"""Draft generation layer.

This module provides:
- PromptComposer: Builds mode- and content-type-specific prompts
- DraftGenerator: Tries candidate models in sequence
- DraftRewriter: Optional editorial rewrite pass
- finalize_body: Canonical sources section and content source notice
- Request models: GenerationRequest, Mode, ContentType, HumanizeLevel
"""

from src.generation.composer import PromptComposer
from src.generation.formatter import content_source_notice, finalize_body
from src.generation.generator import DraftGenerator
from src.generation.models import (
    ContentType,
    GeneratedDraft,
    GenerationRequest,
    HumanizeLevel,
    Mode,
    PromptPair,
    RewriteOutcome,
)
from src.generation.rewriter import DraftRewriter

__all__ = [
    # Prompts
    "PromptComposer",
    # Generation
    "DraftGenerator",
    "DraftRewriter",
    "finalize_body",
    "content_source_notice",
    # Models
    "ContentType",
    "GeneratedDraft",
    "GenerationRequest",
    "HumanizeLevel",
    "Mode",
    "PromptPair",
    "RewriteOutcome",
]
