"""FastAPI application for claude-max-proxy.

This module creates and configures the FastAPI application with:
- CORS middleware
- Request context middleware
- Error handlers
- Route mounting
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException

from .. import __version__
from ..core import (
    Settings,
    configure_structured_logging,
    get_metrics,
    get_metrics_content_type,
    init_app_info,
    settings as default_settings,
)
from ..models import ErrorType
from ..sdk import SESSION_HEADER, running_count, shutdown_runs
from .middleware import RequestContextMiddleware
from .routes import api_router

logger = logging.getLogger("maxproxy")

SERVICE_NAME = "claude-max-proxy"


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or default_settings
    runtime_config = settings.runtime_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        configure_structured_logging(
            log_level="DEBUG" if settings.debug else settings.log_level,
            json_format=settings.log_json,
        )
        init_app_info(version=__version__)

        logger.info(f"{SERVICE_NAME} starting on {settings.host}:{settings.port}")
        logger.info(f"   Working directory: {runtime_config.cwd}")
        logger.info(f"   Permission mode: {runtime_config.permission_mode.value}")
        logger.info(f"   Timeout: {runtime_config.timeout_ms}ms")
        logger.info(f"   Inactivity timeout: {runtime_config.inactivity_ms}ms")
        logger.info("   Metrics endpoint: /metrics")
        yield
        # Cleanup
        if running_count():
            logger.info("Shutting down, cancelling in-flight engine runs...")
        await shutdown_runs()
        logger.info(f"{SERVICE_NAME} stopped")

    app = FastAPI(
        title=SERVICE_NAME,
        description="Anthropic-compatible API gateway powered by the Claude Agent SDK",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.runtime_config = runtime_config

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins_list(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[SESSION_HEADER, "x-request-id"],
    )

    # Add request context middleware
    app.add_middleware(RequestContextMiddleware)

    # ============================================================================
    # Health & Info Endpoints (at root level)
    # ============================================================================

    @app.get("/")
    async def root():
        """Root endpoint with server info."""
        return {
            "status": "ok",
            "service": SERVICE_NAME,
            "version": __version__,
            "format": "anthropic",
            "endpoints": ["/v1/messages", "/messages"],
        }

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "engine_runs": running_count(),
        }

    @app.get("/metrics")
    async def metrics():
        """Prometheus metrics endpoint."""
        return Response(
            content=get_metrics(),
            media_type=get_metrics_content_type(),
        )

    app.include_router(api_router)

    # ============================================================================
    # Error Handlers
    # ============================================================================

    def get_error_type_for_status(status_code: int) -> str:
        """Map HTTP status code to Anthropic error type."""
        status_to_error = {
            400: ErrorType.INVALID_REQUEST.value,
            401: ErrorType.AUTHENTICATION.value,
            404: ErrorType.NOT_FOUND.value,
            422: ErrorType.INVALID_REQUEST.value,
            500: ErrorType.API.value,
        }
        return status_to_error.get(status_code, ErrorType.API.value)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Handle HTTP exceptions in Anthropic error format."""
        # If detail is already in our format, return it
        if isinstance(exc.detail, dict):
            return JSONResponse(status_code=exc.status_code, content=exc.detail)

        return JSONResponse(
            status_code=exc.status_code,
            content={
                "type": "error",
                "error": {
                    "type": get_error_type_for_status(exc.status_code),
                    "message": str(exc.detail),
                },
            },
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        """Handle malformed request bodies as invalid_request_error."""
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = first.get("msg", "Invalid request")
        return JSONResponse(
            status_code=ErrorType.INVALID_REQUEST.status_code,
            content={
                "type": "error",
                "error": {
                    "type": ErrorType.INVALID_REQUEST.value,
                    "message": f"{location}: {message}" if location else message,
                },
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions as api_error."""
        logger.exception("Unhandled exception")
        return JSONResponse(
            status_code=ErrorType.API.status_code,
            content={
                "type": "error",
                "error": {
                    "type": ErrorType.API.value,
                    "message": "Internal server error",
                },
            },
        )

    return app


# Create the application instance
app = create_app()
