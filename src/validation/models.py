"""Pydantic models for the validation swarm."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from src.llm.models import UsageEvent

MAX_ISSUES = 25


class AgentStatus(str, Enum):
    """Verdict of one scoring agent."""

    PASS = "pass"
    FAIL = "fail"


class ValidationAgentResult(BaseModel):
    """Normalized verdict of one scoring agent."""

    status: AgentStatus = Field(..., description="pass or fail")
    issues: list[str] = Field(default_factory=list, max_length=MAX_ISSUES)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)

    @property
    def passed(self) -> bool:
        return self.status == AgentStatus.PASS

    @classmethod
    def failure(cls, issue: str) -> ValidationAgentResult:
        return cls(status=AgentStatus.FAIL, issues=[issue], confidence=0.0)


class AuditRow(BaseModel):
    """One ``agent_results`` row, before the draft id is attached."""

    agent_name: str
    status: AgentStatus
    confidence: float
    details: dict[str, Any] = Field(default_factory=dict)


class SwarmOutcome(BaseModel):
    """Aggregate result of a swarm run (or of a budget skip)."""

    results: dict[str, ValidationAgentResult] = Field(
        default_factory=dict, description="Agent name -> verdict"
    )
    trust_score: int = Field(..., ge=0, le=100)
    warnings: list[str] = Field(default_factory=list)
    audit_rows: list[AuditRow] = Field(default_factory=list)
    usage: list[UsageEvent] = Field(default_factory=list)
    skipped: bool = Field(default=False, description="True when the time budget skipped validation")
