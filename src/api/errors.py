"""Custom exception hierarchy for the content orchestrator API."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any


class OrchestratorError(Exception):
    """Base exception for all orchestrator errors.

    Attributes:
        error_code: Stable machine-readable error code for clients.
        status_code: HTTP status code to return.
        message: Human-readable error message.
        details: Additional error context.
    """

    error_code: str = "server_error"
    status_code: int = 500

    def __init__(
        self,
        message: str,
        details: Any = None,
        error_code: str | None = None,
        status_code: int | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error message.
            details: Additional context, a string or a mapping.
            error_code: Override the class error code.
            status_code: Override the class status code.
        """
        super().__init__(message)
        self.message = message
        self.details = details if details is not None else {}

        if error_code:
            self.error_code = error_code
        if status_code:
            self.status_code = status_code

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class InvalidRequestError(OrchestratorError):
    """Request is missing required fields or is malformed.

    Raised when:
    - topic, primary keyword or user id is empty
    - The body is not a JSON object
    """

    error_code = "invalid_request"
    status_code = 400


class ConfigurationError(OrchestratorError):
    """Required credentials or models are not configured.

    Raised before any external call is made, never retried.
    """

    error_code = "configuration_error"
    status_code = 500


class MissingOpenRouterKeyError(ConfigurationError):
    """The completion service API key is not set."""

    error_code = "missing_openrouter_key"


class MissingValidationAgentsError(ConfigurationError):
    """One or more validation swarm agent models are not set."""

    error_code = "missing_validation_swarm_agents"


class NoSourcesError(OrchestratorError):
    """Private mode resolved zero citations.

    Private requests never fall back to the public internet, so the
    request is rejected instead of generating unsupported content.
    """

    error_code = "no_sources"
    status_code = 422

    def __init__(
        self,
        message: str = "No valid sources found from retrieved RAG documents.",
        retrieval_error: str | None = None,
    ) -> None:
        super().__init__(message, details=message)
        self.retrieval_error = retrieval_error

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["retrieval_error"] = self.retrieval_error
        return data


class GenerationFailedError(OrchestratorError):
    """Every generation candidate failed or returned empty output."""

    error_code = "generation_failed"
    status_code = 500


class UpstreamTimeoutError(OrchestratorError):
    """An upstream call exceeded its timeout.

    The message carries the timeout label (e.g. ``query-docs_timeout``),
    which the retry classifier treats as retryable.
    """

    error_code = "upstream_timeout"
    status_code = 504


class RateLimitError(OrchestratorError):
    """API rate limit exceeded."""

    error_code = "rate_limit_exceeded"
    status_code = 429


def error_body(exc: OrchestratorError, request_id: str) -> dict[str, Any]:
    """JSON envelope returned to clients for any orchestrator error."""
    return {
        "request_id": request_id,
        **exc.to_dict(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
