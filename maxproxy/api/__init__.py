"""HTTP/API layer for claude-max-proxy.

This package contains:
- middleware: Request context and logging middleware
- streaming: SSE encoding of translator frames
- app: FastAPI application (imported separately)
- routes: API route handlers (imported separately)
"""

from .middleware import RequestContextMiddleware
from .streaming import encode_stream, ping_comment

__all__ = [
    "RequestContextMiddleware",
    "encode_stream",
    "ping_comment",
]
