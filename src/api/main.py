"""FastAPI application for the content orchestrator."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config.settings import get_settings
from src.observability.context import request_id_var
from src.observability.logging import configure_logging, get_logger

from .dependencies import cleanup_clients, get_components
from .errors import InvalidRequestError, OrchestratorError, error_body
from .middleware import RateLimitMiddleware, RequestLoggingMiddleware
from .routes import router

logger = get_logger(__name__)


# =============================================================================
# Lifespan Context Manager
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifecycle.

    Startup:
    - Configure structured logging
    - Build pipeline collaborators (clients connect lazily)

    Shutdown:
    - Wait for background collection tasks
    - Close HTTP clients
    """
    settings = get_settings()
    configure_logging(json_output=settings.is_production, log_level=settings.log_level)

    logger.info("api_startup_started", environment=settings.env)

    components = get_components()
    missing = components.settings.missing_validation_agents(news_mode=True)
    if components.settings.openrouter_api_key is None:
        logger.warning("openrouter_key_not_configured")
    if missing:
        logger.warning("validation_agents_not_configured", missing=missing)

    logger.info("api_startup_complete", status="ready")

    yield

    logger.info("api_shutdown_started")
    await cleanup_clients()
    logger.info("api_shutdown_complete")


# =============================================================================
# Application Factory
# =============================================================================


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Content Orchestrator API",
        description="Evidence-grounded content generation with a validation swarm",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # ==========================================================================
    # Middleware Stack (order matters - last added runs first)
    # ==========================================================================

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            settings.app_base_url.rstrip("/"),
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(RateLimitMiddleware, requests_per_minute=settings.rate_limit_per_minute)

    # Runs first: sets the request id used by every handler below
    app.add_middleware(RequestLoggingMiddleware)

    # ==========================================================================
    # Exception Handlers
    # ==========================================================================

    @app.exception_handler(OrchestratorError)
    async def handle_orchestrator_error(
        request: Request, exc: OrchestratorError
    ) -> JSONResponse:
        """Handle orchestrator exceptions."""
        log = logger.warning if exc.status_code < 500 else logger.error
        log(
            "orchestrator_error",
            error_code=exc.error_code,
            message=exc.message,
            details=exc.details,
            status_code=exc.status_code,
        )
        request.state.error_code = exc.error_code

        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc, request_id_var.get("") or "unknown"),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Malformed bodies are reported as ``invalid_request``."""
        errors = [
            {
                "message": error["msg"],
                "field": ".".join(str(loc) for loc in error["loc"]),
            }
            for error in exc.errors()
        ]
        logger.warning("validation_error", errors=errors)

        invalid = InvalidRequestError("Invalid JSON body", details=errors)
        request.state.error_code = invalid.error_code
        return JSONResponse(
            status_code=invalid.status_code,
            content=error_body(invalid, request_id_var.get("") or "unknown"),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
        )

        server_error = OrchestratorError("Unexpected error", details=str(exc))
        request.state.error_code = server_error.error_code
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body(server_error, request_id_var.get("") or "unknown"),
        )

    # ==========================================================================
    # Include Routers
    # ==========================================================================

    app.include_router(router, prefix="/api/v1")

    @app.get("/")
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Content Orchestrator API",
            "version": "0.1.0",
            "docs": "/docs",
            "health": "/api/v1/health",
        }

    return app


# Create app instance for uvicorn
app = create_app()
