"""Completion service client."""

from .client import (
    CompletionClient,
    CompletionError,
    safe_json_parse,
    usage_from_error,
    usage_from_response,
)
from .models import CompletionResult, UsageEvent, UsageTotals

__all__ = [
    "CompletionClient",
    "CompletionError",
    "CompletionResult",
    "UsageEvent",
    "UsageTotals",
    "safe_json_parse",
    "usage_from_error",
    "usage_from_response",
]
