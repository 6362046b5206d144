"""claude-max-proxy - Anthropic-compatible API gateway powered by the Claude Agent SDK.

This package provides a FastAPI server that accepts Anthropic Messages API
requests, runs them through the Claude Agent SDK and answers in the
Messages API format (SSE or JSON).

Subpackages:
- api: HTTP/API layer (app, routes, middleware, SSE encoding)
- sdk: Claude Agent SDK integration (bridge, runner, translator, timers)
- models: Pydantic data models (requests, responses, streaming, errors)
- core: Shared infrastructure (config, context, logging, metrics)
"""

__version__ = "1.0.0"

# Re-export commonly used items for convenience
from .models import (
    MessagesRequest,
    MessagesResponse,
    ErrorType,
    ErrorResponse,
)

from .core import settings

from .sdk import (
    SESSION_HEADER,
    process_request,
    process_request_streaming,
)

__all__ = [
    "__version__",
    # Models
    "MessagesRequest",
    "MessagesResponse",
    "ErrorType",
    "ErrorResponse",
    # Core
    "settings",
    # SDK
    "SESSION_HEADER",
    "process_request",
    "process_request_streaming",
]
