"""Unit tests for engine failure classification and diagnostics."""

import pytest
from prometheus_client import REGISTRY
from structlog.testing import capture_logs

from maxproxy.models import ErrorType
from maxproxy.sdk.errors import (
    ABORT_MESSAGE,
    AUTHENTICATION_MESSAGE,
    DiagnosticBuffer,
    ErrorCategory,
    classify_and_report,
    classify_error,
)
from maxproxy.sdk.lifecycle import INACTIVITY, TOTAL, EngineTimeout


class TestClassifyError:
    """Test the failure taxonomy (first match wins)."""

    @pytest.mark.parametrize(
        "message",
        ["Claude Code process exited with code 1", "Command failed with exit code 1"],
    )
    def test_authentication(self, message: str) -> None:
        classified = classify_error(RuntimeError(message))
        assert classified.category is ErrorCategory.AUTHENTICATION
        assert classified.error_type is ErrorType.AUTHENTICATION
        assert classified.status_code == 401
        assert classified.message == AUTHENTICATION_MESSAGE
        assert "claude login" in classified.message

    @pytest.mark.parametrize("message", ["Claude Code process aborted", "Operation aborted by user"])
    def test_abort(self, message: str) -> None:
        classified = classify_error(RuntimeError(message))
        assert classified.category is ErrorCategory.ABORT
        assert classified.error_type is ErrorType.API
        assert classified.status_code == 500
        assert classified.message == ABORT_MESSAGE

    def test_auth_wins_over_abort(self) -> None:
        classified = classify_error(RuntimeError("process aborted: exited with code 1"))
        assert classified.category is ErrorCategory.AUTHENTICATION

    @pytest.mark.parametrize("timer", [TOTAL, INACTIVITY])
    def test_timeout(self, timer: str) -> None:
        classified = classify_error(EngineTimeout(timer, 100))
        assert classified.category is ErrorCategory.TIMEOUT
        assert classified.error_type is ErrorType.API
        assert "timeout" in classified.message

    @pytest.mark.parametrize(
        "error",
        [
            RuntimeError("socket hang up: ECONNRESET"),
            RuntimeError("connection reset by peer"),
            ConnectionAbortedError("client went away"),
            BrokenPipeError("broken pipe"),
        ],
    )
    def test_connection(self, error: Exception) -> None:
        classified = classify_error(error)
        assert classified.category is ErrorCategory.CONNECTION
        assert classified.error_type is ErrorType.CONNECTION
        assert classified.error_type.value == "connection_error"
        assert classified.status_code == 500
        assert classified.message == str(error)

    def test_generic(self) -> None:
        classified = classify_error(ValueError("something odd"))
        assert classified.category is ErrorCategory.GENERIC
        assert classified.error_type is ErrorType.API
        assert classified.message == "something odd"

    def test_empty_message_uses_type_name(self) -> None:
        classified = classify_error(KeyError())
        assert classified.message

    def test_to_response(self) -> None:
        body = classify_error(ValueError("boom")).to_response().model_dump()
        assert body == {"type": "error", "error": {"type": "api_error", "message": "boom"}}


class TestDiagnosticBuffer:
    """Test the engine stderr sink."""

    def test_collects_lines(self) -> None:
        buffer = DiagnosticBuffer()
        buffer("starting")
        buffer("ready")
        assert buffer.lines == ["starting", "ready"]
        assert buffer.text == "starting\nready"
        assert len(buffer) == 2

    def test_quiet_lines_not_logged_outside_debug(self) -> None:
        buffer = DiagnosticBuffer(request_id="req_1")
        with capture_logs() as logs:
            buffer("loading config")
        assert logs == []

    def test_notable_lines_logged(self) -> None:
        buffer = DiagnosticBuffer(request_id="req_1")
        with capture_logs() as logs:
            buffer("Request failed: 529")
            buffer("Process aborted")

        events = [entry["event"] for entry in logs]
        assert events == ["engine_stderr", "engine_stderr", "engine_abort_detected"]
        assert logs[0]["request_id"] == "req_1"

    def test_debug_logs_everything(self) -> None:
        buffer = DiagnosticBuffer(debug=True)
        with capture_logs() as logs:
            buffer("loading config")
        assert [entry["event"] for entry in logs] == ["engine_stderr"]


class TestClassifyAndReport:
    """Test failure reporting to the diagnostics channel."""

    def test_reports_stderr_and_hints(self) -> None:
        buffer = DiagnosticBuffer()
        buffer.lines.extend(["line one", "line two"])

        with capture_logs() as logs:
            classified = classify_and_report(
                RuntimeError("process aborted"), buffer, request_id="req_9", turn_count=3
            )

        assert classified.category is ErrorCategory.ABORT
        failure = next(entry for entry in logs if entry["event"] == "engine_failure")
        assert failure["log_level"] == "error"
        assert failure["category"] == "abort"
        assert failure["stderr"] == ["line one", "line two"]
        assert failure["hints"]
        assert failure["request_id"] == "req_9"
        assert failure["turn_count"] == 3

    def test_counts_errors_by_category(self) -> None:
        before = REGISTRY.get_sample_value(
            "claude_max_proxy_engine_errors_total", {"category": "generic"}
        ) or 0.0

        with capture_logs():
            classify_and_report(ValueError("boom"))

        after = REGISTRY.get_sample_value(
            "claude_max_proxy_engine_errors_total", {"category": "generic"}
        )
        assert after == before + 1
