"""Response models matching Anthropic's Messages API schema."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

StopReason = Literal["end_turn", "max_tokens", "stop_sequence", "tool_use"]


class Usage(BaseModel):
    """Token usage. The engine does not report per-request usage to the
    proxy, so both counters stay at zero."""
    input_tokens: int = 0
    output_tokens: int = 0


class TextBlock(BaseModel):
    """Text content block in a response."""
    type: Literal["text"] = "text"
    text: str


class MessagesResponse(BaseModel):
    """Response body for a non-streaming ``POST /v1/messages``."""
    id: str
    type: Literal["message"] = "message"
    role: Literal["assistant"] = "assistant"
    content: list[TextBlock] = Field(default_factory=list)
    model: str | None = None
    stop_reason: StopReason | None = None
    usage: Usage = Field(default_factory=Usage)
