"""Engine failure classification and operator diagnostics.

Failures from the agent engine are mapped to a small taxonomy before they
reach the client:

    authentication  -> authentication_error (401)
    abort           -> api_error (500)
    timeout         -> api_error (500)
    connection      -> connection_error (500)
    generic         -> api_error (500)

Whatever the category, the engine's buffered stderr is written to the
diagnostics log so operators can see why the engine failed. Clients only
ever get the short user-facing message.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..core import get_diagnostics_logger, record_engine_error
from ..models import ErrorDetail, ErrorResponse, ErrorType
from .lifecycle import EngineTimeout

AUTHENTICATION_MESSAGE = (
    "Claude Code authentication failed. Please run 'claude login' and try again."
)
ABORT_MESSAGE = (
    "Claude SDK process exited unexpectedly. This may be due to resource constraints, "
    "network issues, API rate limiting or an internal SDK error. Check the proxy logs for details."
)

_AUTH_MARKERS = ("exited with code 1", "exit code 1")
_ABORT_MARKERS = ("process aborted", "aborted by user")
_RESET_MARKERS = ("reset", "ECONNRESET")

# Words in an engine stderr line that make it worth echoing outside debug mode.
_NOTABLE_STDERR = ("error", "failed", "abort")

_HINTS = {
    "authentication": [
        "Not logged in - run: claude login",
        "Invalid API key or session expired",
        "Claude Code CLI not installed - verify: claude --version",
    ],
    "abort": [
        "Engine process received a signal (SIGTERM, SIGINT)",
        "Resource constraints (memory, CPU)",
        "Network connectivity issues - check: curl https://api.anthropic.com",
        "API rate limiting or quota exceeded",
        "Raise the limits: CLAUDE_PROXY_TIMEOUT_MS / CLAUDE_PROXY_INACTIVITY_MS",
        "Enable debug logging: CLAUDE_PROXY_DEBUG=1",
    ],
    "timeout": [
        "Raise the limits: CLAUDE_PROXY_TIMEOUT_MS / CLAUDE_PROXY_INACTIVITY_MS",
    ],
}


class ErrorCategory(str, Enum):
    AUTHENTICATION = "authentication"
    ABORT = "abort"
    TIMEOUT = "timeout"
    CONNECTION = "connection"
    GENERIC = "generic"


@dataclass(frozen=True)
class ClassifiedError:
    """A failure mapped to the client-facing taxonomy."""

    category: ErrorCategory
    error_type: ErrorType
    message: str

    @property
    def status_code(self) -> int:
        return self.error_type.status_code

    def to_detail(self) -> ErrorDetail:
        return ErrorDetail(type=self.error_type.value, message=self.message)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(error=self.to_detail())


class EngineRequestError(Exception):
    """A classified engine failure on the non-streaming path."""

    def __init__(self, classified: ClassifiedError):
        self.classified = classified
        super().__init__(classified.message)


class DiagnosticBuffer:
    """Collects the engine's stderr for the lifetime of one request.

    Passed to the engine as its ``stderr`` callback.
    """

    def __init__(self, debug: bool = False, request_id: str = "-"):
        self.debug = debug
        self.request_id = request_id
        self.lines: list[str] = []
        self._log = get_diagnostics_logger()

    def __call__(self, line: str) -> None:
        self.lines.append(line)
        lowered = line.lower()
        if self.debug or any(word in lowered for word in _NOTABLE_STDERR):
            self._log.warning("engine_stderr", request_id=self.request_id, line=line)
        if "aborted" in lowered:
            self._log.warning("engine_abort_detected", request_id=self.request_id, line=line)

    def __len__(self) -> int:
        return len(self.lines)

    @property
    def text(self) -> str:
        return "\n".join(self.lines)


def _error_message(error: BaseException) -> str:
    return str(error) or type(error).__name__


def classify_error(error: BaseException) -> ClassifiedError:
    """Map a failure to (category, error type, user message). First match wins."""
    message = _error_message(error)

    if any(marker in message for marker in _AUTH_MARKERS):
        return ClassifiedError(
            ErrorCategory.AUTHENTICATION, ErrorType.AUTHENTICATION, AUTHENTICATION_MESSAGE
        )

    if any(marker in message for marker in _ABORT_MARKERS):
        return ClassifiedError(ErrorCategory.ABORT, ErrorType.API, ABORT_MESSAGE)

    if isinstance(error, EngineTimeout):
        return ClassifiedError(ErrorCategory.TIMEOUT, ErrorType.API, message)

    if isinstance(error, ConnectionError) or any(marker in message for marker in _RESET_MARKERS):
        return ClassifiedError(ErrorCategory.CONNECTION, ErrorType.CONNECTION, message)

    return ClassifiedError(ErrorCategory.GENERIC, ErrorType.API, message)


def report_engine_failure(
    classified: ClassifiedError,
    error: BaseException,
    diagnostics: DiagnosticBuffer | None = None,
    **context: Any,
) -> None:
    """Write the failure and the engine's stderr to the diagnostics log."""
    log = get_diagnostics_logger()
    log.error(
        "engine_failure",
        category=classified.category.value,
        error_type=classified.error_type.value,
        error=_error_message(error),
        exception_type=type(error).__name__,
        stderr=diagnostics.lines if diagnostics is not None else [],
        hints=_HINTS.get(classified.category.value, []),
        **context,
    )
    record_engine_error(classified.category.value)


def classify_and_report(
    error: BaseException,
    diagnostics: DiagnosticBuffer | None = None,
    **context: Any,
) -> ClassifiedError:
    """Classify ``error`` and log full diagnostics for it."""
    classified = classify_error(error)
    report_engine_failure(classified, error, diagnostics, **context)
    return classified
