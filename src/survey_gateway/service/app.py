"""FastAPI application factory for the Survey Gateway."""

from __future__ import annotations

from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import __version__
from ..persistence.errors import (
    CorruptDocument,
    InvalidInput,
    StoreFailure,
    SurveyStoreError,
)
from .config import GatewayConfig
from .core import InvalidRequest, SurveyService
from .executor import get_executor, shutdown_executor
from .logging import SERVICE_NAME, get_logger
from .metrics import MetricsMiddleware, add_metrics_endpoint
from .middleware import (
    CORRELATION_ID_HEADER,
    REQUEST_ID_HEADER,
    CorrelationIdMiddleware,
    PreflightMiddleware,
)
from .models import FailureResponse, HealthResponse
from .router import build_router

logger = get_logger(__name__)

_CORS_METHODS = ["GET", "POST", "OPTIONS"]
_CORS_HEADERS = ["Content-Type", CORRELATION_ID_HEADER]

_STATUS_BY_ERROR: tuple[tuple[type[SurveyStoreError], int], ...] = (
    (InvalidRequest, 400),
    (InvalidInput, 400),
    (CorruptDocument, 500),
    (StoreFailure, 500),
)


def status_for_error(exc: SurveyStoreError) -> int:
    """Map a domain error to its HTTP status code."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


def _failure(status_code: int, message: str, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=FailureResponse(message=message).model_dump(),
        headers=headers,
    )


async def _handle_store_error(request: Request, exc: SurveyStoreError) -> JSONResponse:
    status_code = status_for_error(exc)
    if status_code >= 500:
        logger.error("request_failed", error=type(exc).__name__, message=exc.message)
    else:
        logger.info("request_rejected", error=type(exc).__name__, message=exc.message)
    return _failure(status_code, exc.message)


async def _handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 405:
        allowed = (exc.headers or {}).get("Allow", "")
        method = "POST" if "POST" in allowed else "GET"
        return _failure(405, f"Only {method} method is allowed", headers=exc.headers)
    return _failure(exc.status_code, str(exc.detail), headers=exc.headers)


async def _handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("request_crashed", error=type(exc).__name__, exc_info=exc)
    return _failure(500, "Internal server error")


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan context manager for startup/shutdown."""
    logger.info("Starting Survey Gateway...", data_dir=app.state.config.data_dir)
    get_executor()

    yield

    logger.info("Shutting down Survey Gateway...")
    # Let in-flight writes finish before the process exits
    shutdown_executor(wait=True)


def create_gateway_app(
    config: GatewayConfig,
    **service_kwargs,
) -> FastAPI:
    """Create and configure the Survey Gateway FastAPI application.

    Args:
        config: GatewayConfig instance
        **service_kwargs: Additional kwargs passed to SurveyService

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="Survey Gateway",
        description="Persistence API for a survey schema and its results",
        version=__version__,
        lifespan=_lifespan,
    )

    # Open CORS: the editor and viewer may be served from any origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_methods=_CORS_METHODS,
        allow_headers=_CORS_HEADERS,
        expose_headers=[CORRELATION_ID_HEADER, REQUEST_ID_HEADER],
    )
    app.add_middleware(
        PreflightMiddleware,
        allow_origins=config.cors_origins,
        allow_methods=_CORS_METHODS,
        allow_headers=_CORS_HEADERS,
    )
    app.add_middleware(CorrelationIdMiddleware)
    app.add_middleware(MetricsMiddleware)
    add_metrics_endpoint(app)

    app.add_exception_handler(SurveyStoreError, _handle_store_error)
    app.add_exception_handler(StarletteHTTPException, _handle_http_error)
    app.add_exception_handler(Exception, _handle_unexpected_error)

    survey_service = SurveyService(config, **service_kwargs)
    app.include_router(build_router(survey_service))

    app.state.survey_service = survey_service
    app.state.config = config

    @app.get("/healthz", response_model=HealthResponse)
    def healthz() -> HealthResponse:
        """Health check endpoint with storage verification."""
        return survey_service.health()

    @app.get("/ready")
    def ready() -> dict:
        """Readiness probe - returns true when service can accept traffic."""
        return {
            "ready": True,
            "service": SERVICE_NAME,
        }

    return app


# Convenience: create app with config from environment
def create_app_from_env() -> FastAPI:
    """Create app using environment variable configuration."""
    return create_gateway_app(GatewayConfig.from_env())


__all__ = ["create_gateway_app", "create_app_from_env", "status_for_error"]
