"""Bridge between the Anthropic Messages API and the Claude Agent SDK.

This module turns an incoming Messages request into a single engine call
(prompt, model tier, options) and either assembles the engine's output
into one JSON response or hands the running call to the SSE translator.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable

from claude_agent_sdk import ClaudeAgentOptions

from ..core import RuntimeConfig, record_engine_call
from ..models import Message, MessagesRequest, MessagesResponse, TextBlock, Usage
from .errors import DiagnosticBuffer, EngineRequestError, classify_and_report
from .runner import EngineRun
from .session import SessionTracker
from .translator import EventTranslator, generate_message_id

logger = logging.getLogger(__name__)

MODEL_TIERS = ("opus", "haiku")
DEFAULT_MODEL_TIER = "sonnet"


def _role_label(role: str) -> str:
    return "Assistant" if role == "assistant" else "Human"


def _content_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        texts = []
        for block in content:
            block_type = getattr(block, "type", None)
            text = getattr(block, "text", None)
            if isinstance(block, dict):
                block_type, text = block.get("type"), block.get("text")
            if block_type == "text" and text:
                texts.append(text)
        return "".join(texts)
    return str(content)


def build_prompt_from_messages(messages: Iterable[Message] | None) -> str:
    """Flatten the conversation into the single transcript the engine takes.

    Each message becomes ``"Human: ..."`` or ``"Assistant: ..."``; messages
    are separated by a blank line.
    """
    if not messages:
        return ""
    return "\n\n".join(
        f"{_role_label(message.role)}: {_content_text(message.content)}" for message in messages
    )


def map_model(model: str | None) -> str:
    """Map a client model id to the engine's tier alias.

    >>> map_model("claude-3-opus-20240229")
    'opus'
    >>> map_model(None)
    'sonnet'
    """
    if model:
        for tier in MODEL_TIERS:
            if tier in model:
                return tier
    return DEFAULT_MODEL_TIER


def build_agent_options(
    tier: str,
    config: RuntimeConfig,
    diagnostics: DiagnosticBuffer,
    resume: str | None = None,
    streaming: bool = True,
) -> ClaudeAgentOptions:
    """Build ClaudeAgentOptions for one request."""
    options = ClaudeAgentOptions(
        model=tier,
        cwd=config.cwd,
        permission_mode=config.permission_mode.value,
        stderr=diagnostics,
        include_partial_messages=streaming,
    )
    if resume:
        options.resume = resume
    return options


def start_engine_run(
    request: MessagesRequest,
    config: RuntimeConfig,
    tracker: SessionTracker,
    *,
    streaming: bool,
    request_id: str = "-",
) -> EngineRun:
    """Compile the request and issue the engine call."""
    prompt = build_prompt_from_messages(request.messages)
    tier = map_model(request.model)
    diagnostics = DiagnosticBuffer(debug=config.debug, request_id=request_id)
    options = build_agent_options(
        tier, config, diagnostics, resume=tracker.resume_id, streaming=streaming
    )

    logger.info(
        "[%s] query_start model=%s tier=%s streaming=%s prompt_chars=%d resume=%s",
        request_id,
        request.model,
        tier,
        streaming,
        len(prompt),
        tracker.resume_id,
    )
    if config.debug:
        logger.debug("[%s] prompt=%r", request_id, prompt[:1000])

    record_engine_call(tier, streaming)
    run = EngineRun(prompt, options, config, tracker, diagnostics, request_id=request_id)
    run.start()
    return run


async def process_request(
    request: MessagesRequest,
    config: RuntimeConfig,
    tracker: SessionTracker,
    request_id: str = "-",
) -> MessagesResponse:
    """Process a non-streaming Messages API request.

    Raises:
        EngineRequestError: the engine failed or a lifecycle timer fired.
    """
    run = start_engine_run(request, config, tracker, streaming=False, request_id=request_id)
    full_text = ""
    turns = 0
    has_result = False

    try:
        while True:
            event = await run.next_event()
            if event is None:
                break
            if event.kind == "assistant":
                turns += 1
                full_text += "".join(part.text for part in event.text_parts)
            elif event.kind == "result":
                has_result = True
    except asyncio.CancelledError:
        run.detach()
        raise
    except Exception as exc:
        run.finish()
        classified = classify_and_report(
            exc,
            run.diagnostics,
            request_id=request_id,
            turn_count=turns,
            has_result=has_result,
            debug=config.debug,
        )
        raise EngineRequestError(classified) from exc

    run.finish()
    logger.info(
        "[%s] query_complete turns=%d chars=%d has_result=%s",
        request_id,
        turns,
        len(full_text),
        has_result,
    )

    return MessagesResponse(
        id=generate_message_id(),
        content=[TextBlock(text=full_text)],
        model=request.model,
        stop_reason="end_turn",
        usage=Usage(input_tokens=0, output_tokens=0),
    )


async def process_request_streaming(
    request: MessagesRequest,
    config: RuntimeConfig,
    tracker: SessionTracker,
    request_id: str = "-",
) -> EventTranslator:
    """Start a streaming request.

    Waits (bounded by ``session_header_wait_ms``) for the engine's first
    signal so the caller can put the engine's session id in the response
    headers, then returns the translator that produces the SSE payloads.
    """
    run = start_engine_run(request, config, tracker, streaming=True, request_id=request_id)
    try:
        signalled = await run.wait_for_first_signal(config.session_header_wait_seconds)
    except asyncio.CancelledError:
        run.detach()
        raise
    if not signalled:
        logger.info(
            "[%s] session_header_wait_elapsed wait_ms=%d",
            request_id,
            config.session_header_wait_ms,
        )
    return EventTranslator(run, model=request.model)
