"""LangGraph definition for the generation workflow."""

from __future__ import annotations

import uuid

from langgraph.graph import END, StateGraph

from src.generation.models import GenerationRequest
from src.observability.profiler import profile_run
from src.workflow.components import PipelineComponents
from src.workflow.edges import should_humanize, should_validate
from src.workflow.models import GenerationResult
from src.workflow.nodes import (
    compose_prompts,
    decide_workflow,
    generate_draft,
    humanize_draft,
    persist_result,
    resolve_evidence,
    skip_validation,
    start_run,
    validate_draft,
)
from src.workflow.state import GenerationState


def create_generation_graph():
    """Create the generation LangGraph workflow.

    Graph Structure:
        START -> start_run -> resolve_evidence -> compose_prompts -> generate_draft
              -> [humanize_draft] -> [validate_draft | skip_validation]
              -> decide_workflow -> persist_result -> END

    Returns:
        Compiled StateGraph ready for execution
    """
    graph = StateGraph(GenerationState)

    graph.add_node("start_run", start_run)
    graph.add_node("resolve_evidence", resolve_evidence)
    graph.add_node("compose_prompts", compose_prompts)
    graph.add_node("generate_draft", generate_draft)
    graph.add_node("humanize_draft", humanize_draft)
    graph.add_node("validate_draft", validate_draft)
    graph.add_node("skip_validation", skip_validation)
    graph.add_node("decide_workflow", decide_workflow)
    graph.add_node("persist_result", persist_result)

    graph.set_entry_point("start_run")

    # Linear flow through retrieval and generation
    graph.add_edge("start_run", "resolve_evidence")
    graph.add_edge("resolve_evidence", "compose_prompts")
    graph.add_edge("compose_prompts", "generate_draft")

    graph.add_conditional_edges(
        "generate_draft",
        should_humanize,
        {
            "humanize": "humanize_draft",
            "validate": "validate_draft",
            "skip_validation": "skip_validation",
        },
    )
    graph.add_conditional_edges(
        "humanize_draft",
        should_validate,
        {
            "validate": "validate_draft",
            "skip_validation": "skip_validation",
        },
    )

    graph.add_edge("validate_draft", "decide_workflow")
    graph.add_edge("skip_validation", "decide_workflow")
    graph.add_edge("decide_workflow", "persist_result")
    graph.add_edge("persist_result", END)

    return graph.compile()


async def run_generation(
    graph,
    components: PipelineComponents,
    request: GenerationRequest,
    run_id: str | None = None,
) -> GenerationResult:
    """Execute one generation run under its time budget.

    Errors raised by nodes (configuration, no sources, generation failure)
    propagate unchanged.
    """
    run_id = run_id or str(uuid.uuid4())[:8]
    with profile_run(run_id, components.settings.request_budget_seconds) as profiler:
        final_state = await graph.ainvoke(
            {"request": request, "run_id": run_id},
            config={"configurable": {"components": components, "profiler": profiler}},
        )
    return final_state["result"]
