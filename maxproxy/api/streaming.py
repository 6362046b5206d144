"""Streaming response utilities for claude-max-proxy.

Provides encode_stream, which turns the translator's payload models into
SSE events for EventSourceResponse and logs the stream's completion.
"""

from __future__ import annotations

import logging
import time
from contextlib import aclosing
from typing import AsyncIterator

from sse_starlette.sse import ServerSentEvent

from ..core import ACTIVE_STREAMS, RequestContext, get_context, record_stream_completion
from ..sdk import EventTranslator, StreamOutcome

logger = logging.getLogger(__name__)

# Frame lines end with a bare LF.
SSE_SEPARATOR = "\n"


def ping_comment() -> ServerSentEvent:
    """Keep-alive frame: an SSE comment line the client ignores."""
    return ServerSentEvent(comment="ping", sep=SSE_SEPARATOR)


async def encode_stream(
    translator: EventTranslator,
    context: RequestContext | None = None,
) -> AsyncIterator[ServerSentEvent]:
    """Wrap the translator's frames as SSE events, logging on completion.

    Usage:
        translator = await process_request_streaming(request, config, tracker)
        return EventSourceResponse(encode_stream(translator), ping=15)
    """
    if context is None:
        context = get_context()

    frames_sent = 0
    start_time = time.monotonic()
    ACTIVE_STREAMS.inc()

    try:
        async with aclosing(translator.frames()) as frames:
            async for frame in frames:
                frames_sent += 1
                yield ServerSentEvent(data=frame.model_dump_json(), event=frame.type, sep=SSE_SEPARATOR)

    finally:
        ACTIVE_STREAMS.dec()
        duration = time.monotonic() - start_time
        outcome = translator.outcome or StreamOutcome.CLIENT_DISCONNECT

        if context is not None:
            if outcome is StreamOutcome.CLIENT_DISCONNECT:
                context.disconnect_reason = "client_disconnect"
            elif translator.error is not None:
                context.error = translator.error.message
                context.error_category = translator.error.category.value

        level = logging.INFO if outcome is StreamOutcome.SUCCESS else logging.WARNING
        logger.log(
            level,
            "[%s] stream_completed status=%s frames=%d turns=%d duration=%.3fs",
            translator.request_id,
            outcome.value,
            frames_sent,
            translator.turn_count,
            duration,
        )
        record_stream_completion(outcome.value, frames_sent, duration)
