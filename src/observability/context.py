"""Request context propagation using contextvars."""

from __future__ import annotations

from contextvars import ContextVar

import structlog

# Context variables for request tracing
request_id_var: ContextVar[str] = ContextVar("request_id", default="")
query_id_var: ContextVar[str] = ContextVar("query_id", default="")


def get_context() -> dict[str, str]:
    """Get current request context for logging.

    Example:
        ctx = get_context()
        logger.info("run_started", **ctx, mode="news")
    """
    ctx = {}
    request_id = request_id_var.get("")
    query_id = query_id_var.get("")

    if request_id:
        ctx["request_id"] = request_id
    if query_id:
        ctx["query_id"] = query_id

    return ctx


def set_request_context(request_id: str, query_id: str | None = None) -> None:
    """Set request context for the current async context.

    The ids are also bound into structlog's contextvars so every log line
    emitted while handling the request carries them.

    Args:
        request_id: Unique request identifier (from header or generated)
        query_id: Short identifier for the generation run
    """
    request_id_var.set(request_id)
    if query_id:
        query_id_var.set(query_id)
    structlog.contextvars.bind_contextvars(**get_context())


def bind_run_context(**values: str) -> None:
    """Attach run attributes (user_id, mode) to subsequent log lines."""
    structlog.contextvars.bind_contextvars(**{k: v for k, v in values.items() if v})


def clear_request_context() -> None:
    """Clear request context after request completes."""
    request_id_var.set("")
    query_id_var.set("")
    structlog.contextvars.clear_contextvars()
