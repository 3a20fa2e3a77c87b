"""FastAPI dependency injection for the orchestrator API."""

from __future__ import annotations

import uuid
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Request

from config.settings import Settings, get_settings
from src.observability.context import request_id_var
from src.workflow.components import PipelineComponents, create_components
from src.workflow.graph import create_generation_graph

# =============================================================================
# Process Singletons
# =============================================================================


@lru_cache
def get_components() -> PipelineComponents:
    """Get the singleton pipeline collaborators.

    HTTP and persistence clients connect lazily, so building them here
    performs no network I/O.
    """
    return create_components(get_settings())


@lru_cache
def get_generation_graph():
    """Get singleton compiled generation graph.

    The compiled graph is stateless; collaborators and the run profiler
    are passed per invocation through the runnable config.
    """
    return create_generation_graph()


# =============================================================================
# Request-scoped Dependencies
# =============================================================================


async def get_request_id(request: Request) -> str:
    """Request ID set by the logging middleware, or the header, or a new one."""
    request_id = request_id_var.get("") or request.headers.get("X-Request-ID")
    if not request_id:
        request_id = str(uuid.uuid4())
        request_id_var.set(request_id)
    return request_id


# =============================================================================
# Typed Dependencies (for FastAPI injection)
# =============================================================================

SettingsDep = Annotated[Settings, Depends(get_settings)]
ComponentsDep = Annotated[PipelineComponents, Depends(get_components)]
GenerationGraphDep = Annotated[object, Depends(get_generation_graph)]  # CompiledStateGraph
RequestIdDep = Annotated[str, Depends(get_request_id)]


# =============================================================================
# Lifecycle Management
# =============================================================================


async def cleanup_clients() -> None:
    """Close collaborator clients on shutdown.

    Called from the lifespan context manager. Only components that were
    actually built are closed.
    """
    if get_components.cache_info().currsize:
        await get_components().aclose()
    get_components.cache_clear()
    get_generation_graph.cache_clear()
