"""State definition for the generation workflow."""

from __future__ import annotations

from operator import add
from typing import Annotated, Optional, TypedDict

from src.generation.models import GeneratedDraft, GenerationRequest, PromptPair
from src.retrieval.models import EvidenceSet
from src.validation.models import SwarmOutcome
from src.workflow.decider import WorkflowDecision
from src.workflow.models import GenerationResult


class GenerationState(TypedDict, total=False):
    """State for the generation workflow.

    Uses TypedDict for LangGraph compatibility.
    Fields marked with Annotated[..., add] accumulate across nodes.
    """

    # Input
    request: GenerationRequest
    run_id: str

    # Retrieval
    evidence: EvidenceSet

    # Generation
    prompts: PromptPair
    draft: GeneratedDraft
    body: str  # Latest finalized body (after rewrite, if any)
    humanized: bool

    # Validation
    validation: SwarmOutcome

    # Decision and output
    decision: WorkflowDecision
    result: Optional[GenerationResult]

    # Accounting
    usage_events: Annotated[list, add]  # list[UsageEvent], one per completion call
