"""Unit tests for the Messages route handlers."""

from fastapi.testclient import TestClient

from tests.fixtures.engine_messages import assistant, parse_sse, result, system_init


class TestNonStreamingMessages:
    """Test POST /v1/messages with stream=false."""

    def test_hello(self, client: TestClient, hello_engine, sample_messages_request) -> None:
        response = client.post("/v1/messages", json=sample_messages_request)

        assert response.status_code == 200
        body = response.json()
        assert body["type"] == "message"
        assert body["role"] == "assistant"
        assert body["content"] == [{"type": "text", "text": "hello"}]
        assert body["model"] == "claude-sonnet-4-5-20250514"
        assert body["stop_reason"] == "end_turn"
        assert body["usage"] == {"input_tokens": 0, "output_tokens": 0}
        assert body["id"].startswith("msg_")
        assert response.headers["X-Claude-Session-ID"] == "sess-hello"

    def test_messages_alias(self, client: TestClient, hello_engine, sample_messages_request) -> None:
        response = client.post("/messages", json=sample_messages_request)
        assert response.status_code == 200
        assert response.json()["content"][0]["text"] == "hello"

    def test_prompt_and_resume_passed_to_engine(self, client: TestClient, engine) -> None:
        calls = engine([assistant("ok"), result("sess-2")])

        response = client.post(
            "/v1/messages",
            json={
                "model": "claude-3-opus",
                "stream": False,
                "messages": [
                    {"role": "user", "content": "Hi"},
                    {"role": "assistant", "content": "Hello"},
                    {"role": "user", "content": [{"type": "text", "text": "Again"}]},
                ],
            },
            headers={"x-claude-session-id": "sess-1"},
        )

        assert response.status_code == 200
        assert calls[0]["prompt"] == "Human: Hi\n\nAssistant: Hello\n\nHuman: Again"
        assert calls[0]["options"].model == "opus"
        assert calls[0]["options"].resume == "sess-1"
        assert calls[0]["options"].include_partial_messages is False
        assert response.headers["X-Claude-Session-ID"] == "sess-2"

    def test_unknown_fields_and_headers_ignored(self, client: TestClient, hello_engine) -> None:
        response = client.post(
            "/v1/messages",
            json={
                "stream": False,
                "messages": [{"role": "user", "content": "hi"}],
                "tools": [{"name": "x"}],
                "metadata": {"user_id": "u"},
            },
            headers={"anthropic-version": "2023-06-01", "anthropic-beta": "tools-2024-04-04"},
        )
        assert response.status_code == 200
        assert response.json()["model"] is None

    def test_authentication_failure(self, client: TestClient, engine) -> None:
        engine([], error=RuntimeError("Claude Code process exited with code 1"))

        response = client.post(
            "/v1/messages",
            json={"stream": False, "messages": [{"role": "user", "content": "hi"}]},
            headers={"X-Claude-Session-ID": "sess-keep"},
        )

        assert response.status_code == 401
        assert response.json()["type"] == "error"
        assert response.json()["error"]["type"] == "authentication_error"
        assert "claude login" in response.json()["error"]["message"]
        assert response.headers["X-Claude-Session-ID"] == "sess-keep"

    def test_generic_failure_gets_placeholder_session(self, client: TestClient, engine) -> None:
        engine([], error=RuntimeError("boom"))

        response = client.post(
            "/v1/messages",
            json={"stream": False, "messages": [{"role": "user", "content": "hi"}]},
        )

        assert response.status_code == 500
        assert response.json()["error"] == {"type": "api_error", "message": "boom"}
        assert response.headers["X-Claude-Session-ID"].startswith("session_")


class TestStreamingMessages:
    """Test POST /v1/messages streaming."""

    def test_stream_is_default(self, client: TestClient, engine, sample_streaming_request) -> None:
        calls = engine([system_init("sess-s"), assistant("Hi there"), result("sess-s")])

        with client.stream("POST", "/v1/messages", json=sample_streaming_request) as response:
            body = response.read().decode()

        assert response.status_code == 200
        assert "text/event-stream" in response.headers["content-type"]
        assert response.headers["cache-control"] == "no-cache"
        assert response.headers["X-Claude-Session-ID"] == "sess-s"
        assert calls[0]["options"].include_partial_messages is True

        events = [event for event, _ in parse_sse(body)]
        assert events[:2] == ["message_start", "content_block_start"]
        assert events[-3:] == ["content_block_stop", "message_delta", "message_stop"]
        assert "content_block_delta" in events

    def test_stream_true_explicit(self, client: TestClient, hello_engine) -> None:
        with client.stream(
            "POST",
            "/v1/messages",
            json={"stream": True, "messages": [{"role": "user", "content": "hi"}]},
        ) as response:
            body = response.read().decode()

        assert response.status_code == 200
        assert parse_sse(body)[-1][0] == "message_stop"
