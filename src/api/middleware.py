"""FastAPI middleware for logging, metrics, and rate limiting."""

from __future__ import annotations

import threading
import time
import uuid
from collections import defaultdict
from collections.abc import Callable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from src.observability.context import (
    clear_request_context,
    request_id_var,
    set_request_context,
)
from src.observability.metrics import get_metrics_collector

from .errors import RateLimitError, error_body

logger = structlog.get_logger(__name__)

# Only generation requests count toward the request metrics.
METERED_PATHS = {"/api/v1/generate"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for request logging and tracing.

    Features:
    - Generates/extracts request ID from X-Request-ID header
    - Generates short query ID used as the generation run id
    - Logs request start and completion with timing
    - Binds context vars for downstream logging
    - Records metrics for generation requests
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process the request with logging and tracing."""
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        query_id = str(uuid.uuid4())[:8]

        set_request_context(request_id, query_id)

        logger.info(
            "request_started",
            method=request.method,
            path=str(request.url.path),
            client_ip=request.client.host if request.client else None,
        )

        start_time = time.perf_counter()
        metered = request.url.path in METERED_PATHS

        try:
            response = await call_next(request)
            latency_ms = (time.perf_counter() - start_time) * 1000

            logger.info(
                "request_completed",
                status_code=response.status_code,
                latency_ms=round(latency_ms, 2),
            )

            if metered:
                get_metrics_collector().record_request(
                    latency_ms,
                    success=response.status_code < 400,
                    error_code=getattr(request.state, "error_code", None),
                )

            response.headers["X-Request-ID"] = request_id
            response.headers["X-Query-ID"] = query_id
            return response

        except Exception as e:
            latency_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                "request_failed",
                error_type=type(e).__name__,
                error_message=str(e),
                latency_ms=round(latency_ms, 2),
            )
            if metered:
                get_metrics_collector().record_request(
                    latency_ms, success=False, error_code="server_error"
                )
            raise

        finally:
            clear_request_context()


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Simple in-memory rate limiting middleware.

    Features:
    - Per-IP rate limiting with sliding window
    - Configurable requests per minute
    - Automatic cleanup of old entries
    - Excludes health and metrics endpoints

    Note: This is suitable for single-instance deployments.
    """

    EXCLUDED_PATHS = {
        "/",
        "/api/v1/health",
        "/api/v1/ping",
        "/api/v1/metrics",
        "/docs",
        "/redoc",
        "/openapi.json",
    }

    def __init__(
        self,
        app,
        requests_per_minute: int = 60,
        cleanup_interval: int = 100,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize rate limiter.

        Args:
            app: The FastAPI/Starlette app.
            requests_per_minute: Max requests per IP per minute.
            cleanup_interval: Clean old entries every N requests.
            clock: Wall clock, injectable for tests.
        """
        super().__init__(app)
        self.requests_per_minute = requests_per_minute
        self.cleanup_interval = cleanup_interval
        self.clock = clock
        self.requests: dict[str, list[float]] = defaultdict(list)
        self.request_count = 0
        self.lock = threading.Lock()

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Check rate limit before processing request."""
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        current_time = self.clock()

        with self.lock:
            self.request_count += 1
            if self.request_count % self.cleanup_interval == 0:
                self._cleanup_old_entries(current_time)

            self.requests[client_ip] = [
                t for t in self.requests[client_ip] if current_time - t < 60
            ]
            in_window = len(self.requests[client_ip])
            if in_window < self.requests_per_minute:
                self.requests[client_ip].append(current_time)

        if in_window >= self.requests_per_minute:
            logger.warning(
                "rate_limit_exceeded",
                client_ip=client_ip,
                requests_in_window=in_window,
                limit=self.requests_per_minute,
            )
            return self._reject(request)

        return await call_next(request)

    def _reject(self, request: Request) -> JSONResponse:
        """429 response in the standard error envelope.

        Raised exceptions escape BaseHTTPMiddleware without reaching the
        app's exception handlers, so the response is built here.
        """
        exc = RateLimitError(
            message=f"Rate limit exceeded: {self.requests_per_minute} requests per minute",
            details={
                "limit": self.requests_per_minute,
                "window_seconds": 60,
                "retry_after_seconds": 60,
            },
        )
        request.state.error_code = exc.error_code
        request_id = request_id_var.get("") or "unknown"
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc, request_id),
            headers={"Retry-After": str(exc.details["retry_after_seconds"])},
        )

    def _cleanup_old_entries(self, current_time: float) -> None:
        """Remove entries older than 1 minute."""
        cutoff = current_time - 60
        empty_ips = []

        for ip, timestamps in self.requests.items():
            self.requests[ip] = [t for t in timestamps if t > cutoff]
            if not self.requests[ip]:
                empty_ips.append(ip)

        for ip in empty_ips:
            del self.requests[ip]
