"""structlog setup shared by the API server and the CLI scripts."""

from __future__ import annotations

import logging
import sys
from typing import Any, Optional

import structlog

# Client libraries that log every request at INFO.
NOISY_LOGGERS = ("httpx", "httpcore", "openai", "hpack")

# Event keys whose values must never reach a log sink.
SECRET_KEYS = frozenset(
    {"api_key", "openrouter_api_key", "supabase_service_role_key", "authorization", "token"}
)
REDACTED = "***"


def redact_secrets(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Mask credential values passed as log keyword arguments."""
    for key in event_dict.keys() & SECRET_KEYS:
        if event_dict[key]:
            event_dict[key] = REDACTED
    return event_dict


def build_processors(json_output: bool, include_timestamp: bool = True) -> list:
    """Processor chain ending in a JSON or console renderer."""
    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.CallsiteParameterAdder(
            [
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.LINENO,
            ]
        ),
    ]
    if include_timestamp:
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso", utc=True))

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(colors=True, exception_formatter=structlog.dev.plain_traceback)
        )
    return processors


def configure_logging(
    json_output: bool = True,
    log_level: str = "INFO",
    include_timestamp: bool = True,
) -> None:
    """Configure structlog once per process.

    The API calls this from its lifespan with JSON output in production;
    ``scripts/generate.py`` uses console output.

    Args:
        json_output: Render JSON lines instead of colored console output.
        log_level: Minimum level (DEBUG, INFO, WARNING, ERROR).
        include_timestamp: Prefix each event with a UTC ISO timestamp.
    """
    level = getattr(logging, log_level.upper())
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, level))

    structlog.configure(
        processors=build_processors(json_output, include_timestamp),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Structured logger carrying the bound request context.

    Example:
        logger = get_logger(__name__)
        logger.info("draft_saved", draft_id=draft_id, trust_score=92)
    """
    return structlog.get_logger(name)
