"""FastAPI surface for the content orchestrator.

The application factory lives in ``src.api.main``; it is not re-exported
here so that pipeline modules can import the error hierarchy without
pulling in the web stack.
"""

from .errors import (
    GenerationFailedError,
    InvalidRequestError,
    MissingOpenRouterKeyError,
    MissingValidationAgentsError,
    NoSourcesError,
    OrchestratorError,
    RateLimitError,
    UpstreamTimeoutError,
)

__all__ = [
    "OrchestratorError",
    "InvalidRequestError",
    "MissingOpenRouterKeyError",
    "MissingValidationAgentsError",
    "NoSourcesError",
    "GenerationFailedError",
    "UpstreamTimeoutError",
    "RateLimitError",
]
