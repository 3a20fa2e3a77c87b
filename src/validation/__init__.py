"""Validation swarm: concurrent scoring agents and trust scoring."""

from src.validation.models import AgentStatus, AuditRow, SwarmOutcome, ValidationAgentResult
from src.validation.swarm import (
    MANUAL_REVIEW_WARNING,
    ScoringAgent,
    ScoringAgentConfig,
    ValidationSwarm,
    build_agent_configs,
    compute_trust_score,
    normalize_agent_result,
    skipped_outcome,
)

__all__ = [
    "AgentStatus",
    "AuditRow",
    "SwarmOutcome",
    "ValidationAgentResult",
    "MANUAL_REVIEW_WARNING",
    "ScoringAgent",
    "ScoringAgentConfig",
    "ValidationSwarm",
    "build_agent_configs",
    "compute_trust_score",
    "normalize_agent_result",
    "skipped_outcome",
]
