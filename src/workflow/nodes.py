"""Node functions for the generation graph."""

from __future__ import annotations

from typing import Any

import structlog
from langchain_core.runnables import RunnableConfig

from src.api.errors import MissingOpenRouterKeyError, MissingValidationAgentsError
from src.generation.formatter import content_source_notice
from src.llm.models import UsageTotals
from src.observability.context import bind_run_context
from src.observability.profiler import PipelineProfiler, get_profiler
from src.validation.swarm import skipped_outcome
from src.workflow.components import PipelineComponents
from src.workflow.decider import build_generation_notice, content_source, decide, merge_warnings
from src.workflow.models import GenerationResult, RunMetrics
from src.workflow.state import GenerationState

logger = structlog.get_logger(__name__)


def get_components(config: RunnableConfig) -> PipelineComponents:
    """Collaborators passed in ``config["configurable"]["components"]``."""
    return config["configurable"]["components"]


def get_run_profiler(config: RunnableConfig) -> PipelineProfiler:
    """Run profiler from the config, the current context, or a fresh one."""
    profiler = config.get("configurable", {}).get("profiler") or get_profiler()
    if profiler is None:
        budget = get_components(config).settings.request_budget_seconds
        profiler = PipelineProfiler("adhoc", budget_seconds=budget)
    return profiler


async def start_run(state: GenerationState, config: RunnableConfig) -> dict[str, Any]:
    """Check configuration and kick off background collection.

    Raises:
        MissingOpenRouterKeyError: The completion key is not set.
        MissingValidationAgentsError: A required validation model is not set.
    """
    components = get_components(config)
    settings = components.settings
    request = state["request"]
    bind_run_context(run_id=state.get("run_id", ""), user_id=request.user_id, mode=request.mode.value)
    logger.info("node_started", node="start_run", content_type=request.content_type.value)

    if settings.openrouter_api_key is None or not settings.openrouter_api_key.get_secret_value():
        raise MissingOpenRouterKeyError("OPENROUTER_API_KEY is not configured")

    missing = settings.missing_validation_agents(news_mode=request.is_news)
    if missing:
        raise MissingValidationAgentsError(
            "Validation swarm agent models are not configured",
            details={"missing": missing},
        )

    components.collector.notify(request.keyword)
    return {"usage_events": []}


async def resolve_evidence(state: GenerationState, config: RunnableConfig) -> dict[str, Any]:
    """Run the retrieval fallback chain.

    Raises:
        NoSourcesError: Private mode resolved no citations.
    """
    components = get_components(config)
    with get_run_profiler(config).stage("resolve_evidence"):
        evidence = await components.resolver.resolve(state["request"])

    logger.info(
        "node_completed",
        node="resolve_evidence",
        citations=len(evidence.citations),
        internet_fallback_used=evidence.internet_fallback_used,
    )
    return {"evidence": evidence}


async def compose_prompts(state: GenerationState, config: RunnableConfig) -> dict[str, Any]:
    """Build system and user prompts."""
    components = get_components(config)
    with get_run_profiler(config).stage("compose_prompts"):
        prompts = components.composer.compose(state["request"], state["evidence"])
    return {"prompts": prompts}


async def generate_draft(state: GenerationState, config: RunnableConfig) -> dict[str, Any]:
    """Try candidate models until one produces a draft.

    Raises:
        GenerationFailedError: Every candidate failed.
    """
    components = get_components(config)
    with get_run_profiler(config).stage("generate_draft"):
        draft = await components.generator.generate(
            state["prompts"], state["request"], state["evidence"]
        )

    logger.info("node_completed", node="generate_draft", model=draft.model, attempts=draft.attempts)
    return {
        "draft": draft,
        "body": draft.body,
        "humanized": False,
        "usage_events": draft.usage,
    }


async def humanize_draft(state: GenerationState, config: RunnableConfig) -> dict[str, Any]:
    """Run the rewrite pass; failures keep the current body."""
    components = get_components(config)
    profiler = get_run_profiler(config)
    with profiler.stage("humanize_draft"):
        outcome = await components.rewriter.rewrite(
            state["body"],
            state["request"],
            state["evidence"],
            remaining=profiler.remaining_seconds,
        )

    return {
        "body": outcome.body,
        "humanized": outcome.humanized,
        "usage_events": outcome.usage,
    }


async def validate_draft(state: GenerationState, config: RunnableConfig) -> dict[str, Any]:
    """Score the draft with the validation swarm."""
    components = get_components(config)
    with get_run_profiler(config).stage("validate_draft"):
        outcome = await components.swarm.run(state["body"], state["request"], state["evidence"])

    return {"validation": outcome, "usage_events": outcome.usage}


async def skip_validation(state: GenerationState, config: RunnableConfig) -> dict[str, Any]:
    """Record a zero score when the budget is too low to validate."""
    remaining = get_run_profiler(config).remaining_seconds()
    logger.warning("validation_skipped", reason="time_budget", remaining_s=round(remaining, 2))
    return {"validation": skipped_outcome()}


async def decide_workflow(state: GenerationState, config: RunnableConfig) -> dict[str, Any]:
    """Apply the release decision and assemble the client result."""
    components = get_components(config)
    settings = components.settings
    profiler = get_run_profiler(config)
    request = state["request"]
    evidence = state["evidence"]
    validation = state["validation"]

    with profiler.stage("decide_workflow"):
        decision = decide(validation.trust_score, validation.results, settings.trust_score_threshold)
        source = content_source(request.is_private, evidence.internet_fallback_used)
        full_body = build_generation_notice(state["body"], source, decision.requires_review)

    result = GenerationResult(
        body="" if decision.blocked else full_body,
        review_body=full_body if decision.blocked else "",
        citations=evidence.citations,
        validation_results=validation.results,
        trust_score=validation.trust_score,
        warnings=merge_warnings(evidence.warnings, validation.warnings, decision.blocked),
        blocked=decision.blocked,
        status=decision.status,
        requires_review=decision.requires_review,
        humanized=state.get("humanized", False),
        internet_fallback_used=evidence.internet_fallback_used,
        content_source=source,
        content_source_notice=content_source_notice(
            evidence.internet_fallback_used, evidence.has_sources
        ),
        run_metrics=RunMetrics(
            rewrite_level=request.humanize_level.value,
            openrouter=UsageTotals.from_events(state.get("usage_events", [])),
            stage_timings_ms=profiler.stage_timings_ms(),
        ),
    )

    logger.info(
        "node_completed",
        node="decide_workflow",
        trust_score=result.trust_score,
        blocked=result.blocked,
        status=result.status.value,
    )
    return {"decision": decision, "result": result}


async def persist_result(state: GenerationState, config: RunnableConfig) -> dict[str, Any]:
    """Save the draft and audit rows; attach the draft id when saved."""
    components = get_components(config)
    result = state["result"]
    with get_run_profiler(config).stage("persist_result"):
        draft_id = await components.recorder.record(
            state["request"], result, state["validation"].audit_rows
        )
    return {"result": result.model_copy(update={"draft_id": draft_id})}
