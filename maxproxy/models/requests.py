"""Request models for the Anthropic Messages API surface we accept.

Only the fields the proxy reads are modelled; anything else a client sends
(max_tokens, system, tools, metadata...) is accepted and ignored.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ContentBlockInput(BaseModel):
    """A block inside a message's content list.

    Only ``text`` blocks contribute to the prompt; other block types
    (image, tool_use, tool_result...) are carried through unvalidated.
    """

    model_config = ConfigDict(extra="allow")

    type: str | None = None
    text: str | None = None


class Message(BaseModel):
    """A message in the conversation."""

    role: str = "user"
    content: str | list[ContentBlockInput] | Any = Field(default="", union_mode="left_to_right")


class MessagesRequest(BaseModel):
    """Request body for ``POST /v1/messages``."""

    model_config = ConfigDict(extra="allow")

    model: str | None = None
    messages: list[Message] = Field(default_factory=list)
    stream: bool | None = None
    max_tokens: int | None = None

    @property
    def wants_stream(self) -> bool:
        """Streaming is the default; only an explicit false disables it."""
        return self.stream is not False
