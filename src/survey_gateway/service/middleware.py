"""Request middleware for the Survey Gateway.

Provides:
- Correlation ID propagation so editor/viewer calls can be traced in logs
- Request-scoped logging context, including the survey operation addressed
- Uniform answers to OPTIONS requests
"""

from __future__ import annotations

import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from .logging import bind_context, clear_context

CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"

API_PREFIX = "/api/"
LEGACY_SUFFIX = ".php"
PREFLIGHT_MAX_AGE = "600"


def operation_for_path(path: str) -> str | None:
    """Name the survey operation a request path addresses.

    ``/api/save_results`` and ``/api/save_results.php`` both map to
    ``save_results``; paths outside ``/api/`` map to None.
    """
    if not path.startswith(API_PREFIX):
        return None
    name = path[len(API_PREFIX):]
    if name.endswith(LEGACY_SUFFIX):
        name = name[: -len(LEGACY_SUFFIX)]
    return name or None


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Middleware to propagate or generate correlation IDs.

    - If incoming request has X-Correlation-ID, use it
    - Otherwise, generate a new UUID
    - Echo it (and a short per-request ID) in the response headers
    - Bind both, plus the survey operation, to the structured logging context
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get(CORRELATION_ID_HEADER)
        if not correlation_id:
            correlation_id = str(uuid.uuid4())

        request_id = str(uuid.uuid4())[:8]

        request.state.correlation_id = correlation_id
        request.state.request_id = request_id

        bind_context(
            correlation_id=correlation_id,
            request_id=request_id,
            path=request.url.path,
            method=request.method,
        )
        operation = operation_for_path(request.url.path)
        if operation:
            bind_context(survey_operation=operation)

        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = correlation_id
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            clear_context()


class PreflightMiddleware(BaseHTTPMiddleware):
    """Answer every OPTIONS request with an empty 200.

    Must sit outside CORSMiddleware: a preflight asking for headers beyond
    the allowed list still succeeds, and the grant below tells the browser
    which methods and headers it may actually use.
    """

    def __init__(
        self,
        app: ASGIApp,
        allow_origins: list[str],
        allow_methods: list[str],
        allow_headers: list[str],
    ) -> None:
        super().__init__(app)
        self._allow_any_origin = "*" in allow_origins
        self._allow_origins = set(allow_origins)
        self._allow_methods = ", ".join(allow_methods)
        self._allow_headers = ", ".join(allow_headers)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.method != "OPTIONS":
            return await call_next(request)

        headers: dict[str, str] = {}
        origin = request.headers.get("origin")
        if origin is not None:
            if self._allow_any_origin:
                headers["Access-Control-Allow-Origin"] = "*"
            elif origin in self._allow_origins:
                headers["Access-Control-Allow-Origin"] = origin
                headers["Vary"] = "Origin"
            headers["Access-Control-Allow-Methods"] = self._allow_methods
            headers["Access-Control-Allow-Headers"] = self._allow_headers
            headers["Access-Control-Max-Age"] = PREFLIGHT_MAX_AGE

        return Response(status_code=200, headers=headers)


__all__ = [
    "CorrelationIdMiddleware",
    "PreflightMiddleware",
    "CORRELATION_ID_HEADER",
    "REQUEST_ID_HEADER",
    "LEGACY_SUFFIX",
    "operation_for_path",
]
