"""Unit tests for the request bridge (prompt, model tier, assembler)."""

import pytest

from maxproxy.core import PermissionMode, RuntimeConfig
from maxproxy.models import Message, MessagesRequest
from maxproxy.sdk import (
    DiagnosticBuffer,
    EngineRequestError,
    ErrorCategory,
    SessionTracker,
    build_agent_options,
    build_prompt_from_messages,
    map_model,
    process_request,
    process_request_streaming,
)
from maxproxy.sdk.runner import shutdown_runs
from tests.fixtures.engine_messages import assistant, result, system_init, tool_result


class TestBuildPrompt:
    """Test flattening messages into a transcript."""

    def test_single_user_message(self) -> None:
        messages = [Message(role="user", content="Hello")]
        assert build_prompt_from_messages(messages) == "Human: Hello"

    def test_roles_and_separator(self) -> None:
        messages = [
            Message(role="user", content="Hi"),
            Message(role="assistant", content="Hello!"),
            Message(role="user", content="What's 2+2?"),
        ]
        assert build_prompt_from_messages(messages) == (
            "Human: Hi\n\nAssistant: Hello!\n\nHuman: What's 2+2?"
        )

    def test_unknown_role_is_human(self) -> None:
        messages = [Message(role="system", content="Be brief")]
        assert build_prompt_from_messages(messages) == "Human: Be brief"

    def test_text_blocks_concatenated_without_separator(self) -> None:
        request = MessagesRequest.model_validate({
            "messages": [{
                "role": "user",
                "content": [
                    {"type": "text", "text": "foo"},
                    {"type": "image", "source": {"type": "base64", "data": "..."}},
                    {"type": "text", "text": ""},
                    {"type": "text", "text": "bar"},
                ],
            }],
        })
        assert build_prompt_from_messages(request.messages) == "Human: foobar"

    def test_block_list_without_text(self) -> None:
        request = MessagesRequest.model_validate({
            "messages": [{"role": "user", "content": [{"type": "tool_result", "content": "x"}]}],
        })
        assert build_prompt_from_messages(request.messages) == "Human: "

    def test_other_content_is_stringified(self) -> None:
        message = Message(role="user", content=42)
        assert build_prompt_from_messages([message]) == "Human: 42"

    def test_empty_conversation(self) -> None:
        assert build_prompt_from_messages([]) == ""
        assert build_prompt_from_messages(None) == ""


class TestMapModel:
    """Test model id to engine tier mapping."""

    @pytest.mark.parametrize(
        ("model", "tier"),
        [
            ("claude-opus-4-5-20251101", "opus"),
            ("claude-3-5-haiku-latest", "haiku"),
            ("claude-sonnet-4-5-20250514", "sonnet"),
            ("gpt-4o", "sonnet"),
            ("", "sonnet"),
            (None, "sonnet"),
        ],
    )
    def test_tiers(self, model: str | None, tier: str) -> None:
        assert map_model(model) == tier

    def test_match_is_case_sensitive(self) -> None:
        assert map_model("Claude-OPUS") == "sonnet"

    def test_opus_checked_before_haiku(self) -> None:
        assert map_model("opus-haiku") == "opus"


class TestBuildAgentOptions:
    """Test ClaudeAgentOptions construction."""

    def test_streaming_options(self, runtime_config: RuntimeConfig) -> None:
        diagnostics = DiagnosticBuffer()
        options = build_agent_options("opus", runtime_config, diagnostics, streaming=True)

        assert options.model == "opus"
        assert str(options.cwd) == runtime_config.cwd
        assert options.permission_mode == "bypassPermissions"
        assert options.include_partial_messages is True
        assert options.stderr is diagnostics
        assert options.resume is None

    def test_non_streaming_with_resume(self) -> None:
        config = RuntimeConfig(cwd="/tmp", permission_mode=PermissionMode.ACCEPT_EDITS)
        options = build_agent_options(
            "sonnet", config, DiagnosticBuffer(), resume="sess-9", streaming=False
        )

        assert options.include_partial_messages is False
        assert options.permission_mode == "acceptEdits"
        assert options.resume == "sess-9"


class TestProcessRequest:
    """Test the non-streaming response assembler."""

    @pytest.mark.asyncio
    async def test_concatenates_assistant_text(self, engine, runtime_config) -> None:
        calls = engine([
            system_init("sess-1"),
            assistant("Let me look.", tool=True),
            tool_result(),
            assistant("Done", "!"),
            result("sess-1", num_turns=2),
        ])
        request = MessagesRequest(model="claude-opus-4", messages=[Message(content="hi")])
        tracker = SessionTracker()

        response = await process_request(request, runtime_config, tracker)

        assert [block.text for block in response.content] == ["Let me look.Done!"]
        assert response.model == "claude-opus-4"
        assert response.stop_reason == "end_turn"
        assert response.usage.input_tokens == 0
        assert response.usage.output_tokens == 0
        assert response.id.startswith("msg_")
        assert tracker.resolve() == "sess-1"
        assert calls[0]["prompt"] == "Human: hi"
        assert calls[0]["options"].model == "opus"

    @pytest.mark.asyncio
    async def test_engine_failure_is_classified(self, engine, runtime_config) -> None:
        engine([assistant("partial")], error=RuntimeError("Command failed: exited with code 1"))
        request = MessagesRequest(messages=[Message(content="hi")])

        with pytest.raises(EngineRequestError) as exc_info:
            await process_request(request, runtime_config, SessionTracker(resume_id="sess-old"))

        classified = exc_info.value.classified
        assert classified.category is ErrorCategory.AUTHENTICATION
        assert classified.status_code == 401

    @pytest.mark.asyncio
    async def test_inactivity_timeout(self, engine) -> None:
        engine([system_init("sess-1")], hang=True)
        config = RuntimeConfig(cwd="/tmp", timeout_ms=5_000, inactivity_ms=50)
        request = MessagesRequest(messages=[Message(content="hi")])

        with pytest.raises(EngineRequestError) as exc_info:
            await process_request(request, config, SessionTracker())

        classified = exc_info.value.classified
        assert classified.category is ErrorCategory.TIMEOUT
        assert classified.error_type.value == "api_error"
        assert "inactivity" in classified.message
        await shutdown_runs()


class TestProcessRequestStreaming:
    """Test starting a streaming request."""

    @pytest.mark.asyncio
    async def test_waits_for_session_before_returning(self, engine, runtime_config) -> None:
        engine([system_init("sess-early"), assistant("hi"), result("sess-early")])
        tracker = SessionTracker(resume_id="sess-old")
        request = MessagesRequest(model="claude-haiku", messages=[Message(content="hi")])

        translator = await process_request_streaming(request, runtime_config, tracker)

        assert tracker.resolve() == "sess-early"
        assert translator.model == "claude-haiku"
        async for _ in translator.frames():
            pass

    @pytest.mark.asyncio
    async def test_wait_is_bounded(self, engine) -> None:
        engine([], hang=True)
        config = RuntimeConfig(cwd="/tmp", session_header_wait_ms=20)
        tracker = SessionTracker(resume_id="sess-old", started_ms=1000)
        request = MessagesRequest(messages=[Message(content="hi")])

        translator = await process_request_streaming(request, config, tracker)

        assert not tracker.captured
        assert tracker.resolve() == "sess-old"
        translator.run.detach()
        await shutdown_runs()
