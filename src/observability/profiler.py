"""Per-run stage timing and wall-clock budget tracking."""

from __future__ import annotations

import time
from collections.abc import Callable, Generator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, Optional

from .logging import get_logger

logger = get_logger(__name__)

# Context variable to store profiler instance per request
_profiler_var: ContextVar[Optional["PipelineProfiler"]] = ContextVar(
    "pipeline_profiler", default=None
)


@dataclass
class StageMetrics:
    """Metrics for a single pipeline stage."""

    name: str
    start_time: float
    end_time: Optional[float] = None
    duration_ms: Optional[float] = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def complete(self, end_time: Optional[float] = None) -> None:
        """Mark stage as complete and calculate duration."""
        self.end_time = end_time or time.perf_counter()
        self.duration_ms = (self.end_time - self.start_time) * 1000


@dataclass
class ProfileSummary:
    """Summary of all profiled stages for a run."""

    run_id: str
    total_ms: float
    stages: dict[str, float]
    stage_order: list[str]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "run_id": self.run_id,
            "total_ms": round(self.total_ms, 2),
            "stages": {k: round(v, 2) for k, v in self.stages.items()},
            "stage_order": self.stage_order,
        }


class PipelineProfiler:
    """Times the stages of one generation run and tracks its budget.

    The same monotonic clock drives stage timings and the remaining-budget
    checks that gate the rewrite and validation stages.

    Example:
        profiler = PipelineProfiler("run-123", budget_seconds=85)
        set_profiler(profiler)

        with profiler.stage("resolve_evidence"):
            evidence = await resolver.resolve(request)

        if profiler.remaining_seconds() > 20:
            ...
    """

    def __init__(
        self,
        run_id: str,
        budget_seconds: float = 85.0,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        """Initialize profiler for a run.

        Args:
            run_id: Identifier used to correlate log lines.
            budget_seconds: Wall-clock budget for the whole run.
            clock: Monotonic clock, injectable for tests.
        """
        self.run_id = run_id
        self.budget_seconds = budget_seconds
        self._clock = clock
        self.start_time = clock()
        self._stages: list[StageMetrics] = []

    @contextmanager
    def stage(self, name: str, **metadata: Any) -> Generator[StageMetrics, None, None]:
        """Context manager to time a pipeline stage.

        Args:
            name: Stage name (e.g., "resolve_evidence", "generate_draft")
            **metadata: Additional metadata logged with the stage
        """
        stage_metrics = StageMetrics(name=name, start_time=self._clock(), metadata=metadata)
        self._stages.append(stage_metrics)

        try:
            yield stage_metrics
        finally:
            stage_metrics.complete(self._clock())
            logger.debug(
                "stage_completed",
                stage=name,
                duration_ms=round(stage_metrics.duration_ms or 0, 2),
                run_id=self.run_id,
                **metadata,
            )

    def elapsed_seconds(self) -> float:
        return self._clock() - self.start_time

    def remaining_seconds(self) -> float:
        """Seconds left in the run budget (negative once exceeded)."""
        return self.budget_seconds - self.elapsed_seconds()

    def get_summary(self) -> ProfileSummary:
        """Get summary of all profiled stages.

        Repeated stage names are summed.
        """
        stages: dict[str, float] = {}
        stage_order: list[str] = []

        for stage in self._stages:
            if stage.duration_ms is None:
                continue
            if stage.name in stages:
                stages[stage.name] += stage.duration_ms
            else:
                stages[stage.name] = stage.duration_ms
                stage_order.append(stage.name)

        return ProfileSummary(
            run_id=self.run_id,
            total_ms=self.elapsed_seconds() * 1000,
            stages=stages,
            stage_order=stage_order,
        )

    def stage_timings_ms(self) -> dict[str, int]:
        """Stage name to whole milliseconds, as reported in run metrics."""
        return {name: int(round(ms)) for name, ms in self.get_summary().stages.items()}


def set_profiler(profiler: PipelineProfiler) -> None:
    """Set the profiler for the current async context."""
    _profiler_var.set(profiler)


def get_profiler() -> Optional[PipelineProfiler]:
    """Get the profiler for the current async context, or None if not set."""
    return _profiler_var.get()


def clear_profiler() -> None:
    """Clear the profiler from the current async context."""
    _profiler_var.set(None)


@contextmanager
def profile_run(run_id: str, budget_seconds: float) -> Generator[PipelineProfiler, None, None]:
    """Set up profiling for one generation run.

    Example:
        with profile_run("run-123", 85.0) as profiler:
            result = await graph.ainvoke(state)
    """
    profiler = PipelineProfiler(run_id, budget_seconds=budget_seconds)
    set_profiler(profiler)
    try:
        yield profiler
    finally:
        summary = profiler.get_summary()
        logger.info(
            "run_profile",
            run_id=run_id,
            total_ms=round(summary.total_ms, 2),
            stages={k: round(v, 2) for k, v in summary.stages.items()},
        )
        clear_profiler()
