"""Data models for completion calls and their accounting."""

from __future__ import annotations

from pydantic import BaseModel, Field


class UsageEvent(BaseModel):
    """Token and cost accounting for one completion call."""

    purpose: str = Field(..., description="Call site: generate, rewrite_standard, validate_citation, ...")
    model: str = Field(..., description="Model that served the call")
    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)
    cost_usd: float | None = Field(default=None, description="Reported cost, when the service returns one")


class CompletionResult(BaseModel):
    """Text and usage returned by a completion call."""

    text: str
    usage: UsageEvent


class UsageTotals(BaseModel):
    """Aggregate of the usage events recorded during one run."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    total_cost_usd: float | None = None
    calls: list[UsageEvent] = Field(default_factory=list)

    @classmethod
    def from_events(cls, events: list[UsageEvent]) -> UsageTotals:
        """Sum events; cost stays None unless at least one call reported one."""
        costs = [e.cost_usd for e in events if e.cost_usd is not None]
        return cls(
            prompt_tokens=sum(e.prompt_tokens for e in events),
            completion_tokens=sum(e.completion_tokens for e in events),
            total_tokens=sum(e.total_tokens for e in events),
            total_cost_usd=round(sum(costs), 6) if costs else None,
            calls=list(events),
        )
