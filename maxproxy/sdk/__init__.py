"""Claude Agent SDK integration for claude-max-proxy.

This package contains:
- engine: Normalizes SDK messages into agent events
- bridge: Request compilation and the non-streaming response assembler
- runner: One engine call with its pump task, timers and cancellation
- translator: Agent events to Anthropic SSE payloads
- lifecycle: Total/inactivity timers and the cancellation token
- session: Session id propagation via X-Claude-Session-ID
- errors: Failure classification and engine diagnostics
"""

from .bridge import (
    build_agent_options,
    build_prompt_from_messages,
    map_model,
    process_request,
    process_request_streaming,
    start_engine_run,
)
from .engine import (
    AgentEvent,
    AssistantEvent,
    ContentPart,
    PartialEvent,
    ResultEvent,
    SystemEvent,
    UserEvent,
    stream_agent_events,
    to_agent_event,
)
from .errors import (
    ClassifiedError,
    DiagnosticBuffer,
    EngineRequestError,
    ErrorCategory,
    classify_and_report,
    classify_error,
)
from .lifecycle import CancellationToken, EngineTimeout, LifecycleTimers
from .runner import EngineRun, running_count, shutdown_runs
from .session import SESSION_HEADER, SessionTracker
from .translator import EventTranslator, StreamOutcome, TranslatorState, generate_message_id

__all__ = [
    # Bridge
    "build_agent_options",
    "build_prompt_from_messages",
    "map_model",
    "process_request",
    "process_request_streaming",
    "start_engine_run",
    # Engine
    "AgentEvent",
    "AssistantEvent",
    "ContentPart",
    "PartialEvent",
    "ResultEvent",
    "SystemEvent",
    "UserEvent",
    "stream_agent_events",
    "to_agent_event",
    # Errors
    "ClassifiedError",
    "DiagnosticBuffer",
    "EngineRequestError",
    "ErrorCategory",
    "classify_and_report",
    "classify_error",
    # Lifecycle
    "CancellationToken",
    "EngineTimeout",
    "LifecycleTimers",
    # Runner
    "EngineRun",
    "running_count",
    "shutdown_runs",
    # Session
    "SESSION_HEADER",
    "SessionTracker",
    # Translator
    "EventTranslator",
    "StreamOutcome",
    "TranslatorState",
    "generate_message_id",
]
