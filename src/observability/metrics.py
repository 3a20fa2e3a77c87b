"""Simple in-memory metrics collection for the API."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RequestMetrics:
    """Container for request and generation metrics."""

    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    total_latency_ms: float = 0.0
    min_latency_ms: float | None = None
    max_latency_ms: float | None = None
    errors_by_code: dict[str, int] = field(default_factory=dict)

    generations: int = 0
    blocked_generations: int = 0
    review_generations: int = 0
    internet_fallback_generations: int = 0
    total_trust_score: int = 0
    started_at: datetime = field(default_factory=_utcnow)


class MetricsCollector:
    """Thread-safe singleton metrics collector.

    Collects:
    - Request counts (total, success, failure) and latency statistics
    - Error breakdown by error code
    - Generation outcomes: blocked, held for review, internet fallback,
      average trust score

    Example:
        metrics = get_metrics_collector()
        metrics.record_request(latency_ms=1500.0, success=True)
        metrics.record_generation(trust_score=85, blocked=False, requires_review=False)
        stats = metrics.get_stats()
    """

    _instance: MetricsCollector | None = None
    _lock: threading.Lock = threading.Lock()

    def __new__(cls) -> MetricsCollector:
        """Ensure singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    instance = super().__new__(cls)
                    instance._metrics = RequestMetrics()
                    instance._metrics_lock = threading.Lock()
                    cls._instance = instance
        return cls._instance

    def record_request(
        self,
        latency_ms: float,
        success: bool,
        error_code: str | None = None,
    ) -> None:
        """Record metrics for a completed generation request.

        Args:
            latency_ms: Request latency in milliseconds.
            success: Whether the request produced a result.
            error_code: Client-facing error code if it failed.
        """
        with self._metrics_lock:
            m = self._metrics
            m.total_requests += 1
            m.total_latency_ms += latency_ms

            if m.min_latency_ms is None or latency_ms < m.min_latency_ms:
                m.min_latency_ms = latency_ms
            if m.max_latency_ms is None or latency_ms > m.max_latency_ms:
                m.max_latency_ms = latency_ms

            if success:
                m.successful_requests += 1
            else:
                m.failed_requests += 1
                if error_code:
                    m.errors_by_code[error_code] = m.errors_by_code.get(error_code, 0) + 1

    def record_generation(
        self,
        trust_score: int,
        blocked: bool,
        requires_review: bool,
        internet_fallback_used: bool = False,
    ) -> None:
        """Record the outcome of a completed generation."""
        with self._metrics_lock:
            m = self._metrics
            m.generations += 1
            m.total_trust_score += trust_score
            if blocked:
                m.blocked_generations += 1
            if requires_review:
                m.review_generations += 1
            if internet_fallback_used:
                m.internet_fallback_generations += 1

    def get_stats(self) -> dict:
        """Get current metrics as a dictionary suitable for JSON serialization."""
        with self._metrics_lock:
            m = self._metrics
            avg_latency = m.total_latency_ms / m.total_requests if m.total_requests > 0 else 0.0
            success_rate = (
                (m.successful_requests / m.total_requests * 100) if m.total_requests > 0 else 0.0
            )
            avg_trust = m.total_trust_score / m.generations if m.generations > 0 else None
            uptime_seconds = (_utcnow() - m.started_at).total_seconds()

            return {
                "total_requests": m.total_requests,
                "successful_requests": m.successful_requests,
                "failed_requests": m.failed_requests,
                "success_rate_percent": round(success_rate, 2),
                "latency_ms": {
                    "avg": round(avg_latency, 2),
                    "min": round(m.min_latency_ms, 2) if m.min_latency_ms is not None else None,
                    "max": round(m.max_latency_ms, 2) if m.max_latency_ms is not None else None,
                },
                "errors_by_code": dict(m.errors_by_code),
                "generations": {
                    "total": m.generations,
                    "blocked": m.blocked_generations,
                    "requires_review": m.review_generations,
                    "internet_fallback": m.internet_fallback_generations,
                    "avg_trust_score": round(avg_trust, 2) if avg_trust is not None else None,
                },
                "uptime_seconds": round(uptime_seconds, 0),
                "started_at": m.started_at.isoformat(),
            }

    def reset(self) -> None:
        """Reset all metrics. Useful for testing."""
        with self._metrics_lock:
            self._metrics = RequestMetrics()


def get_metrics_collector() -> MetricsCollector:
    """Get the singleton metrics collector instance."""
    return MetricsCollector()
