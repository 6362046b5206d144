"""Pydantic models matching Anthropic's Messages API schema.

This module re-exports all models for convenient imports:
    from maxproxy.models import MessagesRequest, MessagesResponse
"""

from .errors import (
    ErrorType,
    ErrorDetail,
    ErrorResponse,
)

from .requests import (
    ContentBlockInput,
    Message,
    MessagesRequest,
)

from .responses import (
    Usage,
    TextBlock,
    StopReason,
    MessagesResponse,
)

from .streaming import (
    MessageStartEvent,
    ContentBlockStartEvent,
    ContentBlockDeltaText,
    ContentBlockDeltaEvent,
    ContentBlockStopEvent,
    MessageDeltaUsage,
    MessageDelta,
    MessageDeltaEvent,
    MessageStopEvent,
    ErrorEvent,
    StreamEvent,
)

__all__ = [
    # Errors
    "ErrorType",
    "ErrorDetail",
    "ErrorResponse",
    # Requests
    "ContentBlockInput",
    "Message",
    "MessagesRequest",
    # Responses
    "Usage",
    "TextBlock",
    "StopReason",
    "MessagesResponse",
    # Streaming
    "MessageStartEvent",
    "ContentBlockStartEvent",
    "ContentBlockDeltaText",
    "ContentBlockDeltaEvent",
    "ContentBlockStopEvent",
    "MessageDeltaUsage",
    "MessageDelta",
    "MessageDeltaEvent",
    "MessageStopEvent",
    "ErrorEvent",
    "StreamEvent",
]
