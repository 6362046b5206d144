"""Agent engine adapter.

Wraps ``claude_agent_sdk.query`` and normalizes the SDK's message classes
into a closed set of agent events, each tagged with a ``kind``:

- ``assistant``: a full assistant turn (content blocks)
- ``user``: user echoes, including tool execution results
- ``result``: terminal summary of the whole agent run
- ``stream_event``: a partial update for one content block
- ``system``: engine bookkeeping such as the session ``init`` message

The rest of the proxy only ever switches on ``event.kind``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Literal, Union

from claude_agent_sdk import (
    AssistantMessage,
    ClaudeAgentOptions,
    ResultMessage,
    SystemMessage,
    TextBlock,
    ThinkingBlock,
    ToolResultBlock,
    ToolUseBlock,
    UserMessage,
    query,
)
from claude_agent_sdk.types import StreamEvent as SdkStreamEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContentPart:
    """One content block of an assistant turn."""

    type: str
    text: str = ""


@dataclass(frozen=True)
class AssistantEvent:
    content: tuple[ContentPart, ...] = ()
    session_id: str | None = None
    kind: Literal["assistant"] = field(default="assistant", init=False)

    @property
    def text_parts(self) -> list[ContentPart]:
        return [part for part in self.content if part.type == "text"]


@dataclass(frozen=True)
class UserEvent:
    tool_result: dict[str, Any] | None = None
    session_id: str | None = None
    kind: Literal["user"] = field(default="user", init=False)


@dataclass(frozen=True)
class ResultEvent:
    subtype: str = "success"
    num_turns: int = 0
    duration_ms: int = 0
    is_error: bool = False
    session_id: str | None = None
    kind: Literal["result"] = field(default="result", init=False)


@dataclass(frozen=True)
class PartialEvent:
    """A partial-message update for a single content block.

    ``event_type`` is one of ``content_block_start``, ``content_block_delta``
    or ``content_block_stop`` (anything else is carried but never forwarded).
    """

    event_type: str
    index: int = 0
    block_type: str | None = None
    delta_type: str | None = None
    text: str = ""
    session_id: str | None = None
    kind: Literal["stream_event"] = field(default="stream_event", init=False)


@dataclass(frozen=True)
class SystemEvent:
    subtype: str = ""
    session_id: str | None = None
    kind: Literal["system"] = field(default="system", init=False)


AgentEvent = Union[AssistantEvent, UserEvent, ResultEvent, PartialEvent, SystemEvent]


def partial_from_payload(payload: dict[str, Any], session_id: str | None = None) -> PartialEvent:
    """Build a PartialEvent from a raw Anthropic streaming payload."""
    block = payload.get("content_block") or {}
    delta = payload.get("delta") or {}
    return PartialEvent(
        event_type=str(payload.get("type", "")),
        index=int(payload.get("index") or 0),
        block_type=block.get("type"),
        delta_type=delta.get("type"),
        text=delta.get("text") or "",
        session_id=session_id,
    )


def _tool_result_of(message: UserMessage) -> dict[str, Any] | None:
    result = getattr(message, "tool_use_result", None)
    if isinstance(result, dict):
        return result
    if result:
        return {"content": result}
    if isinstance(message.content, list):
        for block in message.content:
            if isinstance(block, ToolResultBlock):
                return {
                    "tool_use_id": block.tool_use_id,
                    "content": block.content,
                    "is_error": bool(block.is_error),
                }
    return None


def _content_part(block: Any) -> ContentPart:
    if isinstance(block, TextBlock):
        return ContentPart(type="text", text=block.text)
    if isinstance(block, ToolUseBlock):
        return ContentPart(type="tool_use")
    if isinstance(block, ToolResultBlock):
        return ContentPart(type="tool_result")
    if isinstance(block, ThinkingBlock):
        return ContentPart(type="thinking")
    return ContentPart(type=type(block).__name__)


def to_agent_event(message: Any) -> AgentEvent | None:
    """Normalize one SDK message. Returns None for message types we ignore."""
    if isinstance(message, SdkStreamEvent):
        return partial_from_payload(message.event, session_id=message.session_id)

    if isinstance(message, AssistantMessage):
        parts = tuple(_content_part(block) for block in message.content)
        return AssistantEvent(content=parts, session_id=getattr(message, "session_id", None))

    if isinstance(message, UserMessage):
        return UserEvent(tool_result=_tool_result_of(message))

    if isinstance(message, ResultMessage):
        return ResultEvent(
            subtype=message.subtype,
            num_turns=message.num_turns,
            duration_ms=message.duration_ms,
            is_error=message.is_error,
            session_id=message.session_id,
        )

    if isinstance(message, SystemMessage):
        return SystemEvent(subtype=message.subtype, session_id=message.data.get("session_id"))

    logger.debug("Ignoring unknown engine message type %s", type(message).__name__)
    return None


async def stream_agent_events(
    prompt: str,
    options: ClaudeAgentOptions,
) -> AsyncIterator[AgentEvent]:
    """Run one engine query and yield its messages as agent events."""
    async for message in query(prompt=prompt, options=options):
        event = to_agent_event(message)
        if event is not None:
            yield event
