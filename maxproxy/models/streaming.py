"""Streaming event models for SSE format.

These models define the Server-Sent Events payloads the proxy emits,
matching Anthropic's streaming specification. Only text blocks are ever
streamed; tool activity stays inside the engine.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from .errors import ErrorDetail
from .responses import MessagesResponse, StopReason, TextBlock


class MessageStartEvent(BaseModel):
    """Event sent at the start of a message stream."""
    type: Literal["message_start"] = "message_start"
    message: MessagesResponse


class ContentBlockStartEvent(BaseModel):
    """Event sent at the start of a content block."""
    type: Literal["content_block_start"] = "content_block_start"
    index: int
    content_block: TextBlock = Field(default_factory=lambda: TextBlock(text=""))


class ContentBlockDeltaText(BaseModel):
    """Delta for text content blocks."""
    type: Literal["text_delta"] = "text_delta"
    text: str


class ContentBlockDeltaEvent(BaseModel):
    """Event sent for content block deltas (streaming text)."""
    type: Literal["content_block_delta"] = "content_block_delta"
    index: int
    delta: ContentBlockDeltaText


class ContentBlockStopEvent(BaseModel):
    """Event sent at the end of a content block."""
    type: Literal["content_block_stop"] = "content_block_stop"
    index: int


class MessageDeltaUsage(BaseModel):
    """Usage info in message delta."""
    output_tokens: int = 0


class MessageDelta(BaseModel):
    """Delta info for message."""
    stop_reason: StopReason | None = None


class MessageDeltaEvent(BaseModel):
    """Event sent with message delta (stop reason, final usage)."""
    type: Literal["message_delta"] = "message_delta"
    delta: MessageDelta
    usage: MessageDeltaUsage = Field(default_factory=MessageDeltaUsage)


class MessageStopEvent(BaseModel):
    """Event sent at the end of a message stream."""
    type: Literal["message_stop"] = "message_stop"


class ErrorEvent(BaseModel):
    """Error event in stream."""
    type: Literal["error"] = "error"
    error: ErrorDetail


StreamEvent = (
    MessageStartEvent
    | ContentBlockStartEvent
    | ContentBlockDeltaEvent
    | ContentBlockStopEvent
    | MessageDeltaEvent
    | MessageStopEvent
    | ErrorEvent
)
