"""API route handlers for claude-max-proxy.

This module contains the Messages endpoints mounted on the router.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Header, Request
from fastapi.responses import JSONResponse
from sse_starlette.sse import EventSourceResponse

from ..core import RuntimeConfig, get_context
from ..models import MessagesRequest
from ..sdk import (
    SESSION_HEADER,
    EngineRequestError,
    SessionTracker,
    process_request,
    process_request_streaming,
)
from .streaming import encode_stream, ping_comment

logger = logging.getLogger(__name__)


# Create API router
api_router = APIRouter()


def _runtime_config(request: Request) -> RuntimeConfig:
    return request.app.state.runtime_config


@api_router.post("/v1/messages")
@api_router.post("/messages")
async def create_message(
    body: MessagesRequest,
    request: Request,
    session_id: Optional[str] = Header(None, alias=SESSION_HEADER),
):
    """Create a message (Anthropic Messages API compatible).

    Streams SSE unless the body carries ``"stream": false``. Send the
    ``X-Claude-Session-ID`` value from a previous response to resume that
    engine session.
    """
    config = _runtime_config(request)
    context = get_context()
    request_id = context.request_id if context else "-"
    tracker = SessionTracker(resume_id=session_id, request_id=request_id)

    if context is not None:
        context.model = body.model
        context.stream = body.wants_stream
        context.resume_session_id = tracker.resume_id

    logger.info(
        "[%s] messages_request model=%s stream=%s messages=%d",
        request_id,
        body.model,
        body.wants_stream,
        len(body.messages),
    )

    if body.wants_stream:
        return await handle_streaming_request(body, config, tracker, request_id)

    try:
        response = await process_request(body, config, tracker, request_id=request_id)
    except EngineRequestError as exc:
        classified = exc.classified
        if context is not None:
            context.session_id = tracker.resolve()
            context.set_error(classified.message, classified.category.value)
        return JSONResponse(
            status_code=classified.status_code,
            content=classified.to_response().model_dump(),
            headers=tracker.headers(),
        )

    if context is not None:
        context.session_id = tracker.resolve()
    return JSONResponse(content=response.model_dump(), headers=tracker.headers())


async def handle_streaming_request(
    body: MessagesRequest,
    config: RuntimeConfig,
    tracker: SessionTracker,
    request_id: str,
):
    """Handle a streaming request, returning SSE events."""
    translator = await process_request_streaming(body, config, tracker, request_id=request_id)

    headers = tracker.headers()
    headers["Cache-Control"] = "no-cache"
    headers["Connection"] = "keep-alive"

    context = get_context()
    if context is not None:
        context.session_id = headers[SESSION_HEADER]

    return EventSourceResponse(
        encode_stream(translator, context),
        headers=headers,
        ping=config.keepalive_seconds,
        ping_message_factory=ping_comment,
    )
