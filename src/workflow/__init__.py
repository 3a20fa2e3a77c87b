"""Generation workflow: LangGraph orchestration, decision and persistence."""

from .components import PipelineComponents, create_components
from .decider import WorkflowDecision, build_generation_notice, content_source, decide
from .graph import create_generation_graph, run_generation
from .models import ContentSource, GenerationResult, RunMetrics, WorkflowStatus
from .persistence import ResultRecorder
from .state import GenerationState

__all__ = [
    "create_generation_graph",
    "run_generation",
    "PipelineComponents",
    "create_components",
    "GenerationState",
    "WorkflowDecision",
    "decide",
    "build_generation_notice",
    "content_source",
    "ContentSource",
    "GenerationResult",
    "RunMetrics",
    "WorkflowStatus",
    "ResultRecorder",
]
