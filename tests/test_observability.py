"""Tests for the observability module."""

from __future__ import annotations

import json
import logging
import threading

import pytest
import structlog

from src.api.errors import (
    GenerationFailedError,
    InvalidRequestError,
    MissingOpenRouterKeyError,
    NoSourcesError,
    OrchestratorError,
    RateLimitError,
    UpstreamTimeoutError,
    error_body,
)
from src.observability.context import (
    bind_run_context,
    clear_request_context,
    get_context,
    query_id_var,
    request_id_var,
    set_request_context,
)
from src.observability.logging import build_processors, configure_logging
from src.observability.metrics import MetricsCollector, get_metrics_collector
from src.observability.profiler import (
    PipelineProfiler,
    get_profiler,
    profile_run,
)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# =============================================================================
# Context Tests
# =============================================================================


class TestRequestContext:
    """Tests for request context management."""

    def teardown_method(self):
        clear_request_context()

    def test_set_and_get_context(self):
        """Test setting and getting request context."""
        set_request_context("req-123", "qry-456")

        assert get_context() == {"request_id": "req-123", "query_id": "qry-456"}
        assert request_id_var.get() == "req-123"
        assert query_id_var.get() == "qry-456"

    def test_get_empty_context(self):
        """Test getting context when nothing is set."""
        clear_request_context()

        assert get_context() == {}

    def test_context_bound_for_logging(self):
        """Context ids and run attributes reach structlog's contextvars."""
        set_request_context("req-1", "q1")
        bind_run_context(run_id="q1", user_id="u1", mode="")

        bound = structlog.contextvars.get_contextvars()

        assert bound["request_id"] == "req-1"
        assert bound["user_id"] == "u1"
        assert "mode" not in bound

    def test_clear_context(self):
        """Test clearing request context."""
        set_request_context("req-123", "qry-456")
        clear_request_context()

        assert get_context() == {}
        assert structlog.contextvars.get_contextvars() == {}


# =============================================================================
# Metrics Tests
# =============================================================================


class TestMetricsCollector:
    """Tests for the metrics collector."""

    def test_singleton_pattern(self):
        """Test that MetricsCollector is a singleton."""
        assert MetricsCollector() is MetricsCollector()
        assert get_metrics_collector() is MetricsCollector()

    def test_record_successful_request(self):
        collector = get_metrics_collector()
        collector.record_request(latency_ms=120.0, success=True)

        stats = collector.get_stats()
        assert stats["total_requests"] == 1
        assert stats["successful_requests"] == 1
        assert stats["failed_requests"] == 0
        assert stats["errors_by_code"] == {}

    def test_record_failed_request(self):
        collector = get_metrics_collector()
        collector.record_request(latency_ms=50.0, success=False, error_code="no_sources")
        collector.record_request(latency_ms=60.0, success=False, error_code="no_sources")
        collector.record_request(latency_ms=70.0, success=False)

        stats = collector.get_stats()
        assert stats["failed_requests"] == 3
        assert stats["errors_by_code"] == {"no_sources": 2}

    def test_latency_statistics(self):
        collector = get_metrics_collector()
        for latency in (100.0, 200.0, 300.0):
            collector.record_request(latency_ms=latency, success=True)

        latency = collector.get_stats()["latency_ms"]
        assert latency == {"avg": 200.0, "min": 100.0, "max": 300.0}

    def test_success_rate_calculation(self):
        collector = get_metrics_collector()
        for success in (True, True, True, False):
            collector.record_request(latency_ms=10.0, success=success)

        assert collector.get_stats()["success_rate_percent"] == 75.0

    def test_generation_outcomes(self):
        collector = get_metrics_collector()
        collector.record_generation(trust_score=100, blocked=False, requires_review=False)
        collector.record_generation(
            trust_score=60, blocked=True, requires_review=True, internet_fallback_used=True
        )

        generations = collector.get_stats()["generations"]
        assert generations == {
            "total": 2,
            "blocked": 1,
            "requires_review": 1,
            "internet_fallback": 1,
            "avg_trust_score": 80.0,
        }

    def test_thread_safety(self):
        """Concurrent recording loses no updates."""
        collector = get_metrics_collector()

        def record():
            for _ in range(100):
                collector.record_request(latency_ms=1.0, success=True)

        threads = [threading.Thread(target=record) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert collector.get_stats()["total_requests"] == 1000

    def test_reset(self):
        collector = get_metrics_collector()
        collector.record_request(latency_ms=10.0, success=False, error_code="server_error")
        collector.record_generation(trust_score=0, blocked=True, requires_review=True)

        collector.reset()

        stats = collector.get_stats()
        assert stats["total_requests"] == 0
        assert stats["errors_by_code"] == {}
        assert stats["generations"]["total"] == 0
        assert stats["generations"]["avg_trust_score"] is None


# =============================================================================
# Profiler Tests
# =============================================================================


class TestPipelineProfiler:
    """Tests for stage timing and the run budget."""

    def test_stage_timings(self):
        clock = FakeClock()
        profiler = PipelineProfiler("run-1", budget_seconds=85, clock=clock)

        with profiler.stage("resolve_evidence"):
            clock.advance(1.5)
        with profiler.stage("generate_draft"):
            clock.advance(0.25)
        with profiler.stage("generate_draft"):
            clock.advance(0.25)

        assert profiler.stage_timings_ms() == {"resolve_evidence": 1500, "generate_draft": 500}
        assert profiler.get_summary().stage_order == ["resolve_evidence", "generate_draft"]

    def test_remaining_budget(self):
        clock = FakeClock()
        profiler = PipelineProfiler("run-1", budget_seconds=85, clock=clock)

        clock.advance(70)

        assert profiler.remaining_seconds() == pytest.approx(15)
        clock.advance(20)
        assert profiler.remaining_seconds() == pytest.approx(-5)

    def test_stage_timed_on_error(self):
        clock = FakeClock()
        profiler = PipelineProfiler("run-1", clock=clock)

        with pytest.raises(RuntimeError):
            with profiler.stage("validate_draft"):
                clock.advance(2)
                raise RuntimeError("agent crashed")

        assert profiler.stage_timings_ms() == {"validate_draft": 2000}

    def test_profile_run_sets_and_clears_context(self):
        with profile_run("run-9", budget_seconds=30) as profiler:
            assert get_profiler() is profiler
            assert profiler.budget_seconds == 30

        assert get_profiler() is None


# =============================================================================
# Exception Tests
# =============================================================================


class TestOrchestratorErrors:
    """Tests for the exception hierarchy and the error envelope."""

    @pytest.mark.parametrize(
        "exc,code,status",
        [
            (InvalidRequestError("bad"), "invalid_request", 400),
            (NoSourcesError(), "no_sources", 422),
            (MissingOpenRouterKeyError("no key"), "missing_openrouter_key", 500),
            (GenerationFailedError("failed"), "generation_failed", 500),
            (UpstreamTimeoutError("query-docs_timeout"), "upstream_timeout", 504),
            (RateLimitError("slow down"), "rate_limit_exceeded", 429),
        ],
    )
    def test_codes(self, exc, code, status):
        assert isinstance(exc, OrchestratorError)
        assert exc.error_code == code
        assert exc.status_code == status

    def test_to_dict(self):
        exc = OrchestratorError("Something failed", details={"step": "generate"})

        assert exc.to_dict() == {
            "error": "server_error",
            "message": "Something failed",
            "details": {"step": "generate"},
        }

    def test_override_error_code(self):
        exc = OrchestratorError("x", error_code="custom", status_code=503)

        assert exc.error_code == "custom"
        assert exc.status_code == 503
        assert OrchestratorError.error_code == "server_error"

    def test_no_sources_carries_retrieval_error(self):
        exc = NoSourcesError(retrieval_error="query-docs_timeout")

        data = exc.to_dict()

        assert data["retrieval_error"] == "query-docs_timeout"
        assert data["details"] == "No valid sources found from retrieved RAG documents."

    def test_error_body(self):
        body = error_body(InvalidRequestError("Missing required fields"), "req-1")

        assert body["request_id"] == "req-1"
        assert body["error"] == "invalid_request"
        assert body["timestamp"].endswith("+00:00")


# =============================================================================
# Logging Tests
# =============================================================================


class TestConfigureLogging:
    """Tests for configure_logging()."""

    def test_json_output(self, caplog):
        caplog.set_level(logging.INFO)
        configure_logging(json_output=True, log_level="INFO")
        try:
            structlog.get_logger("tests.logging").info("draft_saved", draft_id="d-1")
        finally:
            structlog.reset_defaults()

        payload = json.loads(caplog.records[-1].getMessage())
        assert payload["event"] == "draft_saved"
        assert payload["draft_id"] == "d-1"
        assert payload["level"] == "info"
        assert payload["logger"] == "tests.logging"
        assert "timestamp" in payload

    def test_quiets_client_libraries(self):
        configure_logging(json_output=False, log_level="DEBUG")
        structlog.reset_defaults()

        assert logging.getLogger("httpx").level == logging.WARNING

    def test_redacts_secrets(self, caplog):
        caplog.set_level(logging.INFO)
        configure_logging(json_output=True, log_level="INFO")
        try:
            structlog.get_logger("tests.logging").info(
                "client_built", api_key="sk-or-secret", authorization=None, model="m"
            )
        finally:
            structlog.reset_defaults()

        payload = json.loads(caplog.records[-1].getMessage())
        assert payload["api_key"] == "***"
        assert payload["authorization"] is None
        assert payload["model"] == "m"

    def test_console_renderer_when_not_json(self):
        processors = build_processors(json_output=False, include_timestamp=False)

        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)
        assert not any(isinstance(p, structlog.processors.TimeStamper) for p in processors)
