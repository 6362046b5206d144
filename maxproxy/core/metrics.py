"""Prometheus metrics for claude-max-proxy.

Instrumentation for request volume, engine calls, stream outcomes and the
background drains left behind by disconnected clients.
"""

from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)

# Application info
APP_INFO = Info(
    "claude_max_proxy",
    "Information about the claude-max-proxy server"
)

# Request metrics
REQUESTS_TOTAL = Counter(
    "claude_max_proxy_requests_total",
    "Total number of requests processed",
    ["method", "endpoint", "status_code"]
)

REQUEST_DURATION = Histogram(
    "claude_max_proxy_request_duration_seconds",
    "Request duration in seconds (headers sent for streaming responses)",
    ["method", "endpoint"],
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, float("inf"))
)

# Engine metrics
ENGINE_CALLS_TOTAL = Counter(
    "claude_max_proxy_engine_calls_total",
    "Total number of agent engine calls",
    ["model", "streaming"]
)

ENGINE_ERRORS_TOTAL = Counter(
    "claude_max_proxy_engine_errors_total",
    "Engine failures by classified category",
    ["category"]
)

# Stream metrics
STREAM_COMPLETIONS_TOTAL = Counter(
    "claude_max_proxy_stream_completions_total",
    "Streaming responses by outcome",
    ["outcome"]  # success, error, timeout, client_disconnect
)

STREAM_FRAMES_TOTAL = Counter(
    "claude_max_proxy_stream_frames_total",
    "SSE frames written to clients"
)

STREAM_DURATION = Histogram(
    "claude_max_proxy_stream_duration_seconds",
    "Duration of streaming responses in seconds",
    buckets=(1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0, 600.0, 1800.0, 3600.0, float("inf"))
)

ACTIVE_STREAMS = Gauge(
    "claude_max_proxy_active_streams",
    "Streaming responses currently open"
)

BACKGROUND_DRAINS = Gauge(
    "claude_max_proxy_background_drains",
    "Engine runs still draining after their client disconnected"
)


def init_app_info(version: str) -> None:
    """Initialize application info metric."""
    APP_INFO.info({
        "version": version,
        "name": "claude-max-proxy",
    })


def record_request(method: str, endpoint: str, status_code: int, duration: float) -> None:
    """Record one completed HTTP request."""
    REQUESTS_TOTAL.labels(
        method=method,
        endpoint=endpoint,
        status_code=str(status_code),
    ).inc()
    REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(duration)


def record_engine_call(model: str, streaming: bool) -> None:
    """Record that an engine call was issued.

    Args:
        model: Engine model tier (opus, sonnet, haiku)
        streaming: Whether the call feeds an SSE response
    """
    ENGINE_CALLS_TOTAL.labels(model=model, streaming=str(streaming).lower()).inc()


def record_engine_error(category: str) -> None:
    """Record a classified engine failure."""
    ENGINE_ERRORS_TOTAL.labels(category=category).inc()


def record_stream_completion(outcome: str, frames_sent: int, duration: float) -> None:
    """Record metrics for a finished stream.

    Args:
        outcome: success, error, timeout or client_disconnect
        frames_sent: SSE frames written
        duration: Duration of the stream in seconds
    """
    STREAM_COMPLETIONS_TOTAL.labels(outcome=outcome).inc()
    STREAM_FRAMES_TOTAL.inc(frames_sent)
    STREAM_DURATION.observe(duration)


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest(REGISTRY)


def get_metrics_content_type() -> str:
    """Get the content type for Prometheus metrics."""
    return CONTENT_TYPE_LATEST
