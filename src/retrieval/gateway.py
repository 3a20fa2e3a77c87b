"""Bounded retry with per-attempt timeouts for unreliable upstreams.

One primitive serves retrieval, generation, rewriting and validation calls:
each attempt is raced against a timeout, classified-retryable failures are
retried after a linear backoff (250ms x attempt), and the outcome is
returned as a tagged ``GatewayResult`` instead of raised.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_incrementing,
)

from src.api.errors import UpstreamTimeoutError

logger = structlog.get_logger(__name__)

T = TypeVar("T")

BACKOFF_STEP_SECONDS = 0.25

# Cold-start marker from the embedding provider behind query-docs. Retrying
# inside one request cannot warm it up.
NON_RETRYABLE_MARKERS = ("cohere_unavailable",)

RETRYABLE_MARKERS = (
    "_timeout",
    "earlydrop",
    "shutdown",
    "fetch failed",
    "econnreset",
    "connection reset",
    "etimedout",
    "socket",
    "503",
    "504",
)


def error_message(err: BaseException | str | None) -> str:
    """Best-effort message text for an error value."""
    if err is None:
        return ""
    if isinstance(err, str):
        return err
    message = getattr(err, "message", None)
    if isinstance(message, str) and message:
        return message
    return str(err) or type(err).__name__


def is_retryable_error(err: BaseException | str | None) -> bool:
    """Classify an upstream failure as worth another attempt.

    The policy is a fixed table over the lower-cased message: timeouts,
    early drops, shutdowns, failed edge functions, connection resets,
    socket errors and 503/504 are retried; the named cold-start marker
    and everything else are not.
    """
    msg = error_message(err).lower()
    if not msg:
        return False
    if any(marker in msg for marker in NON_RETRYABLE_MARKERS):
        return False
    if any(marker in msg for marker in RETRYABLE_MARKERS):
        return True
    return "edge function" in msg and "failed" in msg


@dataclass
class GatewayResult(Generic[T]):
    """Tagged outcome of a gateway call."""

    ok: bool
    value: T | None = None
    error: str | None = None
    attempts: int = 0
    exception: BaseException | None = None


async def call_with_retry(
    call: Callable[[], Awaitable[T]],
    *,
    label: str,
    timeout: float,
    max_attempts: int = 1,
    retry_predicate: Callable[[BaseException], bool] = is_retryable_error,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> GatewayResult[T]:
    """Run ``call`` with bounded attempts and a timeout per attempt.

    Args:
        call: Zero-argument coroutine factory; invoked once per attempt.
        label: Upstream name, used for the ``{label}_timeout`` reason.
        timeout: Per-attempt timeout in seconds.
        max_attempts: Upper bound on attempts (at least 1).
        retry_predicate: Decides whether a failure is retried.
        sleep: Backoff sleeper, injectable for tests.

    Returns:
        GatewayResult with the value on success, or the last error message.
    """
    attempts = 0
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max(1, int(max_attempts))),
        wait=wait_incrementing(start=BACKOFF_STEP_SECONDS, increment=BACKOFF_STEP_SECONDS),
        retry=retry_if_exception(retry_predicate),
        sleep=sleep,
        reraise=True,
    )

    try:
        async for attempt in retrying:
            with attempt:
                attempts = attempt.retry_state.attempt_number
                try:
                    value = await asyncio.wait_for(call(), timeout=timeout)
                except asyncio.TimeoutError as e:
                    raise UpstreamTimeoutError(f"{label}_timeout") from e
    except Exception as e:
        reason = error_message(e)
        logger.warning("upstream_call_failed", upstream=label, attempts=attempts, error=reason)
        return GatewayResult(ok=False, error=reason, attempts=attempts, exception=e)

    if attempts > 1:
        logger.info("upstream_call_recovered", upstream=label, attempts=attempts)
    return GatewayResult(ok=True, value=value, attempts=attempts)
