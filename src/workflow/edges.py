"""Routing logic for the generation graph."""

from __future__ import annotations

from typing import Literal

from langchain_core.runnables import RunnableConfig

from src.workflow.nodes import get_components, get_run_profiler
from src.workflow.state import GenerationState


def should_validate(
    state: GenerationState, config: RunnableConfig
) -> Literal["validate", "skip_validation"]:
    """Validate only while more than the validation reserve is left in the budget."""
    settings = get_components(config).settings
    remaining = get_run_profiler(config).remaining_seconds()
    if remaining > settings.validation_min_remaining_seconds:
        return "validate"
    return "skip_validation"


def should_humanize(
    state: GenerationState, config: RunnableConfig
) -> Literal["humanize", "validate", "skip_validation"]:
    """Route to the rewrite pass when it is enabled and time allows.

    Decision logic:
    1. Rewrite model set, level not off, not meta tags, budget left -> "humanize"
    2. Otherwise fall through to the validation routing
    """
    components = get_components(config)
    profiler = get_run_profiler(config)
    if components.rewriter.should_rewrite(state["request"], profiler.remaining_seconds):
        return "humanize"
    return should_validate(state, config)
