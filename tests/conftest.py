"""Pytest configuration and fixtures."""

import logging
from collections.abc import Callable, Generator
from typing import Any
from unittest.mock import patch

import pytest
import structlog
import sse_starlette.sse as sse_module
from fastapi.testclient import TestClient

from maxproxy.core import RuntimeConfig, Settings
from tests.fixtures.engine_messages import assistant, fake_query, result, system_init


@pytest.fixture(autouse=True)
def reset_sse_app_status() -> Generator[None, None, None]:
    """sse-starlette keeps a process-wide exit event bound to the first loop."""
    status = getattr(sse_module, "AppStatus", None)
    if status is not None and hasattr(status, "should_exit_event"):
        status.should_exit_event = None
    yield
    if status is not None and hasattr(status, "should_exit_event"):
        status.should_exit_event = None


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Undo configure_structured_logging() calls made by a test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def runtime_config(tmp_path: Any) -> RuntimeConfig:
    """Config with short lifecycle limits suitable for tests."""
    return RuntimeConfig(
        cwd=str(tmp_path),
        timeout_ms=5_000,
        inactivity_ms=5_000,
        session_header_wait_ms=1_000,
    )


@pytest.fixture
def sample_messages_request() -> dict[str, Any]:
    """Sample non-streaming Anthropic Messages API request."""
    return {
        "model": "claude-sonnet-4-5-20250514",
        "max_tokens": 1024,
        "stream": False,
        "messages": [{"role": "user", "content": "Say hello"}],
    }


@pytest.fixture
def sample_streaming_request() -> dict[str, Any]:
    """Sample streaming request (stream omitted, so streaming is the default)."""
    return {
        "model": "claude-sonnet-4-5-20250514",
        "max_tokens": 1024,
        "messages": [{"role": "user", "content": "Tell me a story"}],
    }


@pytest.fixture
def engine() -> Generator[Callable[..., list[dict[str, Any]]], None, None]:
    """Install a fake engine for the duration of a test.

    Call it with the SDK messages the engine should yield; it returns the
    list the fake records each call's prompt and options into.
    """
    patchers = []

    def install(messages: Any = (), **kwargs: Any) -> list[dict[str, Any]]:
        calls: list[dict[str, Any]] = []
        patcher = patch("maxproxy.sdk.engine.query", fake_query(messages, calls=calls, **kwargs))
        patcher.start()
        patchers.append(patcher)
        return calls

    yield install
    for patcher in reversed(patchers):
        patcher.stop()


@pytest.fixture
def app_settings(tmp_path: Any) -> Settings:
    return Settings(
        cwd=str(tmp_path),
        timeout_ms=5_000,
        inactivity_ms=5_000,
        session_header_wait_ms=1_000,
    )


@pytest.fixture
def client(app_settings: Settings) -> TestClient:
    """FastAPI test client for an app built from test settings."""
    from maxproxy.api.app import create_app

    return TestClient(create_app(app_settings))


@pytest.fixture
def hello_engine(engine: Callable[..., list[dict[str, Any]]]) -> list[dict[str, Any]]:
    """Engine that says hello in one turn and reports session sess-hello."""
    return engine([system_init("sess-hello"), assistant("hello"), result("sess-hello")])
