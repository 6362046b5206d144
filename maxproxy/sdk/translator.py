"""Translate an engine run into an Anthropic SSE event sequence.

Frame order for a successful stream:

    message_start
    content_block_start (index 0)
    ... text frames from the engine ...
    content_block_stop (index 0)
    message_delta (stop_reason=end_turn)
    message_stop

On failure the closing triad is replaced by a single ``error`` frame. On
client disconnect nothing more is written.

Tool activity never reaches the client: tool_use block starts and
input_json deltas are dropped. Their content_block_stop frames are still
forwarded, so clients that track block indices see every stop the engine
produced.

Text comes from partial ``stream_event`` updates when the engine sends
them. Until the first one arrives, full ``assistant`` turns are replayed as
start/delta/stop triads; after that the full turns are ignored so no text
is sent twice.
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from enum import Enum
from typing import AsyncIterator, Iterator

from ..core import get_diagnostics_logger
from ..models import (
    ContentBlockDeltaEvent,
    ContentBlockDeltaText,
    ContentBlockStartEvent,
    ContentBlockStopEvent,
    ErrorEvent,
    MessageDelta,
    MessageDeltaEvent,
    MessageStartEvent,
    MessagesResponse,
    MessageStopEvent,
    StreamEvent,
)
from .engine import AgentEvent, AssistantEvent, PartialEvent, ResultEvent, UserEvent
from .errors import ClassifiedError, ErrorCategory, classify_and_report
from .runner import EngineRun

logger = logging.getLogger(__name__)

TOOL_RESULT_PREVIEW_CHARS = 500


class TranslatorState(str, Enum):
    PREAMBLE = "preamble"
    STREAMING_TEXT = "streaming_text"
    CLOSING = "closing"
    DONE = "done"
    ERROR = "error"


class StreamOutcome(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    TIMEOUT = "timeout"
    CLIENT_DISCONNECT = "client_disconnect"


def generate_message_id() -> str:
    """Generate a message ID in Anthropic format."""
    return f"msg_{uuid.uuid4().hex[:24]}"


class EventTranslator:
    """State machine turning one EngineRun into SSE payload models."""

    def __init__(
        self,
        run: EngineRun,
        model: str | None,
        message_id: str | None = None,
    ):
        self.run = run
        self.model = model
        self.message_id = message_id or generate_message_id()
        self.state = TranslatorState.PREAMBLE
        self.turn_count = 0
        self.has_result = False
        self.has_stream_events = False
        self.disconnected = False
        self.outcome: StreamOutcome | None = None
        self.error: ClassifiedError | None = None
        self._diag = get_diagnostics_logger()

    @property
    def request_id(self) -> str:
        return self.run.request_id

    def mark_disconnected(self) -> None:
        """Record that the client went away; the engine keeps running."""
        if self.disconnected:
            return
        self.disconnected = True
        if self.state not in (TranslatorState.DONE, TranslatorState.ERROR):
            self.state = TranslatorState.ERROR
            self.outcome = StreamOutcome.CLIENT_DISCONNECT
        self.run.detach()
        logger.warning("[%s] stream_client_disconnect turns=%d", self.request_id, self.turn_count)

    async def frames(self) -> AsyncIterator[StreamEvent]:
        """Yield the SSE payloads for this run, in order."""
        try:
            for frame in self._preamble():
                yield frame
            self.run.timers.reset_inactivity()
            self.state = TranslatorState.STREAMING_TEXT

            while True:
                if self.disconnected:
                    logger.info("[%s] stream_early_exit reason=client_disconnect", self.request_id)
                    return
                event = await self.run.next_event()
                if event is None:
                    break
                self.run.timers.reset_inactivity()
                for frame in self._translate(event):
                    yield frame

            self.state = TranslatorState.CLOSING
            for frame in self._closing():
                yield frame
            self.state = TranslatorState.DONE
            self.outcome = StreamOutcome.SUCCESS

        except (asyncio.CancelledError, GeneratorExit):
            self.mark_disconnected()
            raise

        except Exception as exc:
            self.run.finish()
            self.state = TranslatorState.ERROR
            if self.disconnected:
                logger.info("[%s] stream_client_disconnect_handled", self.request_id)
                return
            self.error = classify_and_report(
                exc,
                self.run.diagnostics,
                request_id=self.request_id,
                turn_count=self.turn_count,
                has_result=self.has_result,
                debug=self.run.config.debug,
            )
            self.outcome = (
                StreamOutcome.TIMEOUT
                if self.error.category is ErrorCategory.TIMEOUT
                else StreamOutcome.ERROR
            )
            yield ErrorEvent(error=self.error.to_detail())

    def _preamble(self) -> Iterator[StreamEvent]:
        yield MessageStartEvent(
            message=MessagesResponse(
                id=self.message_id,
                content=[],
                model=self.model,
                stop_reason=None,
            )
        )
        yield ContentBlockStartEvent(index=0)

    def _closing(self) -> Iterator[StreamEvent]:
        self.run.finish()
        logger.info(
            "[%s] stream_complete turns=%d has_result=%s has_stream_events=%s",
            self.request_id,
            self.turn_count,
            self.has_result,
            self.has_stream_events,
        )
        yield ContentBlockStopEvent(index=0)
        yield MessageDeltaEvent(delta=MessageDelta(stop_reason="end_turn"))
        yield MessageStopEvent()

    def _translate(self, event: AgentEvent) -> Iterator[StreamEvent]:
        if self.run.config.debug:
            logger.debug("[%s] engine_event kind=%s", self.request_id, event.kind)

        if event.kind == "stream_event":
            yield from self._on_partial(event)
        elif event.kind == "assistant":
            yield from self._on_assistant(event)
        elif event.kind == "user":
            self._on_user(event)
        elif event.kind == "result":
            self._on_result(event)

    def _on_assistant(self, event: AssistantEvent) -> Iterator[StreamEvent]:
        self.turn_count += 1
        logger.info(
            "[%s] turn=%d session_id=%s", self.request_id, self.turn_count, event.session_id
        )
        if self.run.config.debug:
            logger.debug(
                "[%s] assistant_content blocks=%d types=%s",
                self.request_id,
                len(event.content),
                [part.type for part in event.content],
            )
        if self.has_stream_events:
            return

        for index, part in enumerate(event.text_parts):
            yield ContentBlockStartEvent(index=index)
            yield ContentBlockDeltaEvent(index=index, delta=ContentBlockDeltaText(text=part.text))
            yield ContentBlockStopEvent(index=index)

    def _on_partial(self, event: PartialEvent) -> Iterator[StreamEvent]:
        self.has_stream_events = True

        if event.event_type == "content_block_start":
            if event.block_type in (None, "text"):
                yield ContentBlockStartEvent(index=event.index)
            else:
                logger.debug(
                    "[%s] suppressed_block_start index=%d type=%s",
                    self.request_id,
                    event.index,
                    event.block_type,
                )
        elif event.event_type == "content_block_delta":
            if event.delta_type == "text_delta":
                yield ContentBlockDeltaEvent(
                    index=event.index, delta=ContentBlockDeltaText(text=event.text)
                )
        elif event.event_type == "content_block_stop":
            yield ContentBlockStopEvent(index=event.index)

    def _on_user(self, event: UserEvent) -> None:
        if event.tool_result is None:
            return
        result = event.tool_result
        self._diag.info(
            "tool_result",
            request_id=self.request_id,
            is_error=bool(result.get("is_error")),
            content_preview=json.dumps(result, default=str)[:TOOL_RESULT_PREVIEW_CHARS],
        )

    def _on_result(self, event: ResultEvent) -> None:
        self.has_result = True
        logger.info(
            "[%s] engine_result subtype=%s num_turns=%d duration_ms=%d is_error=%s",
            self.request_id,
            event.subtype,
            event.num_turns,
            event.duration_ms,
            event.is_error,
        )
