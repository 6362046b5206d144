"""Middleware for claude-max-proxy.

Provides request context propagation and logging.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..core import (
    RequestContext,
    bind_context,
    clear_context,
    create_context,
    record_request,
    reset_context,
    set_context,
)
from ..sdk import SESSION_HEADER

logger = logging.getLogger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Middleware that creates and propagates request context.

    Sets up a RequestContext for each incoming request with:
    - Unique request ID (from x-request-id header or generated)
    - Resume session ID (from X-Claude-Session-ID header)
    - Request metadata (path, method, client IP, user agent)

    The context is available via get_context() throughout the request lifecycle.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        context = create_context(
            path=request.url.path,
            method=request.method,
            request_id=request.headers.get("x-request-id"),
            resume_session_id=request.headers.get(SESSION_HEADER),
            user_agent=request.headers.get("user-agent"),
            client_ip=request.client.host if request.client else None,
        )

        token = set_context(context)
        bind_context(request_id=context.request_id)
        response: Response | None = None

        try:
            response = await call_next(request)
            response.headers["x-request-id"] = context.request_id
            return response

        except Exception as e:
            context.set_error(e)
            raise

        finally:
            self._log_request(context, response)
            clear_context()
            reset_context(token)

    def _log_request(self, context: RequestContext, response: Response | None) -> None:
        """Log request completion."""
        status_code = response.status_code if response is not None else 500
        level = logging.INFO if status_code < 400 else logging.WARNING

        log_data = context.to_log_dict()
        log_data["status_code"] = status_code

        logger.log(
            level,
            "[%s] %s %s %d %.2fms",
            context.request_id,
            context.method,
            context.path,
            status_code,
            context.duration_ms,
            extra=log_data,
        )
        record_request(context.method, context.path, status_code, context.duration_seconds)
