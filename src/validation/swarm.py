"""Validation swarm: independent scoring agents and the trust score.

Every agent is the same ``ScoringAgent`` driven by a ``ScoringAgentConfig``
(model, responsibility prompt, penalty, timeout, applicability). Agents
run concurrently; a failed, timed-out or unparsable agent counts as a
``fail`` verdict rather than an error.
"""

from __future__ import annotations

import asyncio
import json
import math
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from typing import Any

import structlog

from config.prompts.validation import (
    CITATION_AGENT_PROMPT,
    DOMAIN_POLICY_RELAXED,
    DOMAIN_POLICY_STRICT,
    FACT_CHECK_AGENT_PROMPT,
    RECENCY_AGENT_PROMPT,
    TONE_AGENT_PROMPT,
    VALIDATION_BASE_PROMPT,
)
from config.settings import Settings
from src.generation.models import GenerationRequest
from src.llm.client import CompletionClient, safe_json_parse, usage_from_error
from src.llm.models import UsageEvent
from src.retrieval.gateway import call_with_retry
from src.retrieval.models import EvidenceSet
from src.validation.models import (
    MAX_ISSUES,
    AgentStatus,
    AuditRow,
    SwarmOutcome,
    ValidationAgentResult,
)

logger = structlog.get_logger(__name__)

MANUAL_REVIEW_WARNING = "This content requires manual review."
SKIPPED_BUDGET_ISSUE = "validation_skipped_time_budget"
SKIPPED_NON_NEWS_ISSUE = "skipped_non_news_mode"

MAX_DRAFT_CHARS = 20000
MAX_CHUNKS = 8
MAX_CHUNK_CHARS = 1500
MAX_CITATIONS = 10

AGENT_ORDER = ("citation", "recency", "fact_check", "tone")

_HTTP_REASON = re.compile(r"openrouter_http_(\d{3})")


@dataclass(frozen=True)
class ScoringAgentConfig:
    """One validator: who runs it, what it checks, what a failure costs."""

    name: str
    model: str | None
    prompt: str
    penalty: int
    timeout: float
    applies: bool = True


@dataclass
class AgentRun:
    """Raw outcome of one agent call, before scoring."""

    result: ValidationAgentResult
    raw_text: str = ""
    usage: UsageEvent | None = None


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def normalize_agent_result(raw: Any, fallback_issue: str) -> ValidationAgentResult:
    """Coerce a parsed agent reply into a verdict.

    Status is ``pass`` only for the literal string "pass". Issues are
    stringified, blanks dropped, capped at 25. Confidence is clamped to
    [0, 1]; non-numeric values become 0.
    """
    if not isinstance(raw, dict):
        return ValidationAgentResult.failure(fallback_issue)

    status = AgentStatus.PASS if raw.get("status") == "pass" else AgentStatus.FAIL

    issues_raw = raw.get("issues")
    issues: list[str] = []
    if isinstance(issues_raw, list):
        issues = [str(i) for i in issues_raw if str(i).strip()][:MAX_ISSUES]

    confidence_raw = raw.get("confidence")
    try:
        confidence = float(confidence_raw) if not isinstance(confidence_raw, bool) else float("nan")
    except (TypeError, ValueError):
        confidence = float("nan")
    confidence = clamp(confidence, 0.0, 1.0) if math.isfinite(confidence) else 0.0

    return ValidationAgentResult(status=status, issues=issues, confidence=confidence)


def failure_reason(error: str | None) -> str:
    """Short reason for an agent call failure, used in ``{agent}_agent_{reason}``."""
    message = error or ""
    if message.endswith("_timeout") or message == "openrouter_timeout":
        return "timeout"
    match = _HTTP_REASON.search(message)
    if match:
        return f"http_{match.group(1)}"
    if "empty_response" in message:
        return "empty"
    return "error"


def compute_trust_score(results: dict[str, ValidationAgentResult], agents: list[ScoringAgentConfig]) -> int:
    """100 minus the penalty of every applicable failed agent, clamped to [0, 100]."""
    penalty = sum(
        agent.penalty
        for agent in agents
        if agent.applies and agent.name in results and not results[agent.name].passed
    )
    return int(clamp(100 - penalty, 0, 100))


def audit_row(name: str, result: ValidationAgentResult, raw_text: str = "") -> AuditRow:
    return AuditRow(
        agent_name=name,
        status=result.status,
        confidence=round(result.confidence, 2),
        details={**result.model_dump(mode="json"), "raw_text": raw_text},
    )


def skipped_outcome() -> SwarmOutcome:
    """Outcome used when too little budget is left to validate.

    Every agent fails with the budget-skip issue and the score is zero, so
    the draft is always held for review.
    """
    results = {name: ValidationAgentResult.failure(SKIPPED_BUDGET_ISSUE) for name in AGENT_ORDER}
    return SwarmOutcome(
        results=results,
        trust_score=0,
        warnings=[MANUAL_REVIEW_WARNING],
        audit_rows=[audit_row(name, result) for name, result in results.items()],
        skipped=True,
    )


def build_agent_configs(
    settings: Settings, request: GenerationRequest, evidence: EvidenceSet
) -> list[ScoringAgentConfig]:
    """The four scoring agents for this request, in reporting order."""
    domain_policy = DOMAIN_POLICY_RELAXED if evidence.internet_fallback_used else DOMAIN_POLICY_STRICT
    return [
        ScoringAgentConfig(
            name="citation",
            model=settings.validation_swarm_agent_1,
            prompt=CITATION_AGENT_PROMPT.format(domain_policy=domain_policy),
            penalty=25,
            timeout=7.0,
        ),
        ScoringAgentConfig(
            name="recency",
            model=settings.validation_swarm_agent_2 or settings.validation_swarm_agent_1,
            prompt=RECENCY_AGENT_PROMPT.format(recency_days=settings.recency_days),
            penalty=20,
            timeout=7.0,
            applies=request.is_news or evidence.internet_fallback_used,
        ),
        ScoringAgentConfig(
            name="fact_check",
            model=settings.validation_swarm_agent_3,
            prompt=FACT_CHECK_AGENT_PROMPT,
            penalty=40,
            timeout=9.0,
        ),
        ScoringAgentConfig(
            name="tone",
            model=settings.validation_swarm_agent_4,
            prompt=TONE_AGENT_PROMPT,
            penalty=15,
            timeout=7.0,
        ),
    ]


def build_payload(
    draft: str,
    request: GenerationRequest,
    evidence: EvidenceSet,
    settings: Settings,
    today: date | None = None,
) -> dict[str, Any]:
    """Shared user payload handed to every agent as JSON."""
    chunks = [
        {"content": chunk.content[:MAX_CHUNK_CHARS], "metadata": chunk.metadata}
        for chunk in evidence.rag_chunks[:MAX_CHUNKS]
    ]
    if not chunks:
        chunks = [{"content": evidence.context[:MAX_CHUNK_CHARS], "metadata": {}}]

    return {
        "topic": request.topic,
        "mode": request.mode.value,
        "keyword": request.keyword,
        "today": (today or date.today()).isoformat(),
        "recency_days": settings.recency_days,
        "allowed_domains": settings.allowed_domains,
        "internet_fallback_used": evidence.internet_fallback_used,
        "citations": [c.model_dump() for c in evidence.citations[:MAX_CITATIONS]],
        "rag_chunks": chunks,
        "draft": draft[:MAX_DRAFT_CHARS],
    }


class ScoringAgent:
    """Runs one validator config against the shared payload."""

    def __init__(self, config: ScoringAgentConfig, client: CompletionClient):
        self.config = config
        self.client = client

    async def run(self, user_payload: str) -> AgentRun:
        if not self.config.applies:
            return AgentRun(
                result=ValidationAgentResult(
                    status=AgentStatus.PASS, issues=[SKIPPED_NON_NEWS_ISSUE], confidence=1.0
                )
            )

        name = self.config.name
        system = f"{VALIDATION_BASE_PROMPT}\n\n{self.config.prompt}"
        result = await call_with_retry(
            lambda: self.client.complete(
                model=self.config.model or "",
                system=system,
                user=user_payload,
                purpose=f"validation_{name}",
                temperature=0,
            ),
            label=f"validation_{name}",
            timeout=self.config.timeout,
            max_attempts=1,
        )
        if not result.ok or result.value is None:
            issue = f"{name}_agent_{failure_reason(result.error)}"
            logger.warning("validation_agent_failed", agent=name, error=result.error)
            return AgentRun(
                result=ValidationAgentResult.failure(issue),
                usage=usage_from_error(result.exception),
            )

        completion = result.value
        parsed = safe_json_parse(completion.text)
        if parsed is None:
            logger.warning("validation_agent_invalid_json", agent=name)
            return AgentRun(
                result=ValidationAgentResult.failure(f"{name}_agent_invalid_json"),
                usage=completion.usage,
            )

        return AgentRun(
            result=normalize_agent_result(parsed, f"{name}_agent_failed"),
            raw_text=completion.text,
            usage=completion.usage,
        )


class ValidationSwarm:
    """Fans out the scoring agents and folds their verdicts into a score."""

    def __init__(
        self,
        client: CompletionClient,
        settings: Settings,
        today: Callable[[], date] = date.today,
    ):
        self.client = client
        self.settings = settings
        self.today = today

    async def run(
        self, draft: str, request: GenerationRequest, evidence: EvidenceSet
    ) -> SwarmOutcome:
        """Validate a draft.

        Args:
            draft: Finalized draft body.
            request: Normalized request.
            evidence: Evidence the draft was generated from.

        Returns:
            SwarmOutcome with per-agent verdicts, score, warnings and audit rows.
        """
        configs = build_agent_configs(self.settings, request, evidence)
        payload = json.dumps(
            build_payload(draft, request, evidence, self.settings, today=self.today()),
            ensure_ascii=False,
        )

        runs = await asyncio.gather(*(ScoringAgent(c, self.client).run(payload) for c in configs))

        results = {config.name: run.result for config, run in zip(configs, runs)}
        trust_score = compute_trust_score(results, configs)
        threshold = self.settings.trust_score_threshold
        warnings = [MANUAL_REVIEW_WARNING] if trust_score < threshold else []

        logger.info(
            "validation_complete",
            trust_score=trust_score,
            threshold=threshold,
            failed=[name for name, r in results.items() if not r.passed],
        )
        return SwarmOutcome(
            results=results,
            trust_score=trust_score,
            warnings=warnings,
            audit_rows=[
                audit_row(config.name, run.result, run.raw_text) for config, run in zip(configs, runs)
            ],
            usage=[run.usage for run in runs if run.usage is not None],
        )
