"""Request context propagation for claude-max-proxy.

Provides correlation IDs and request metadata that follow async call chains.
Uses contextvars for automatic propagation across async boundaries.
"""

from __future__ import annotations

import contextvars
import time
from dataclasses import dataclass, field
from typing import Optional
from uuid import uuid4


@dataclass
class RequestContext:
    """Context for a single request.

    Mutable fields (outcome, error, resolved session) are filled in while
    the request is processed and read back when the request is logged.
    """

    request_id: str
    path: str
    method: str
    start_time: float = field(default_factory=time.monotonic)

    # Inbound metadata
    resume_session_id: Optional[str] = None
    user_agent: Optional[str] = None
    client_ip: Optional[str] = None

    # Filled in during processing
    session_id: Optional[str] = None
    model: Optional[str] = None
    stream: bool = False
    error: Optional[str] = None
    error_category: Optional[str] = None
    disconnect_reason: Optional[str] = None

    @property
    def duration_seconds(self) -> float:
        """Get elapsed time since request started."""
        return time.monotonic() - self.start_time

    @property
    def duration_ms(self) -> float:
        """Get elapsed time in milliseconds."""
        return self.duration_seconds * 1000

    def set_error(self, error: str | BaseException, category: str | None = None) -> None:
        """Record a failure on the context."""
        if isinstance(error, BaseException):
            self.error = f"{type(error).__name__}: {str(error)}"
        else:
            self.error = error
        if category is not None:
            self.error_category = category

    def to_log_dict(self) -> dict[str, object]:
        """Convert to dictionary for logging."""
        return {
            "request_id": self.request_id,
            "session_id": self.session_id,
            "resume_session_id": self.resume_session_id,
            "path": self.path,
            "method": self.method,
            "model": self.model,
            "duration_ms": round(self.duration_ms, 2),
            "stream": self.stream,
            "error": self.error,
            "error_category": self.error_category,
            "disconnect_reason": self.disconnect_reason,
        }


# Context variable for request context
_request_context: contextvars.ContextVar[RequestContext | None] = contextvars.ContextVar(
    "request_context", default=None
)


def set_context(ctx: RequestContext) -> contextvars.Token[RequestContext | None]:
    """Set the request context for the current async context.

    Returns:
        Token that can be used to reset the context
    """
    return _request_context.set(ctx)


def get_context() -> RequestContext | None:
    """Get the current request context, or None outside a request."""
    return _request_context.get()


def reset_context(token: contextvars.Token[RequestContext | None]) -> None:
    """Reset the request context to a previous state."""
    _request_context.reset(token)


def create_context(
    path: str,
    method: str,
    request_id: str | None = None,
    resume_session_id: str | None = None,
    user_agent: str | None = None,
    client_ip: str | None = None,
) -> RequestContext:
    """Create a new request context.

    Args:
        path: Request path
        method: HTTP method
        request_id: Optional request ID (generated if not provided)
        resume_session_id: Value of the inbound X-Claude-Session-ID header
        user_agent: Optional user agent
        client_ip: Optional client IP

    Returns:
        New RequestContext
    """
    if request_id is None:
        request_id = f"req_{uuid4().hex[:12]}"

    return RequestContext(
        request_id=request_id,
        path=path,
        method=method,
        resume_session_id=resume_session_id,
        user_agent=user_agent,
        client_ip=client_ip,
    )
