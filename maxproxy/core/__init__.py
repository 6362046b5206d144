"""Core infrastructure for claude-max-proxy.

This package contains shared infrastructure components:
- config: Settings and the frozen per-request RuntimeConfig
- context: Request context propagation
- metrics: Prometheus metrics
- structured_logging: structlog configuration
"""

from .config import (
    PermissionMode,
    RuntimeConfig,
    Settings,
    get_settings,
    reload_settings,
    settings,
)
from .context import (
    RequestContext,
    create_context,
    get_context,
    reset_context,
    set_context,
)
from .metrics import (
    ACTIVE_STREAMS,
    BACKGROUND_DRAINS,
    ENGINE_ERRORS_TOTAL,
    REQUESTS_TOTAL,
    STREAM_COMPLETIONS_TOTAL,
    get_metrics,
    get_metrics_content_type,
    init_app_info,
    record_engine_call,
    record_engine_error,
    record_request,
    record_stream_completion,
)
from .structured_logging import (
    DIAGNOSTICS_LOGGER,
    bind_context,
    clear_context,
    configure_structured_logging,
    get_diagnostics_logger,
)

__all__ = [
    # Config
    "Settings",
    "settings",
    "get_settings",
    "reload_settings",
    "PermissionMode",
    "RuntimeConfig",
    # Context
    "RequestContext",
    "get_context",
    "set_context",
    "reset_context",
    "create_context",
    # Metrics
    "init_app_info",
    "get_metrics",
    "get_metrics_content_type",
    "record_request",
    "record_engine_call",
    "record_engine_error",
    "record_stream_completion",
    "REQUESTS_TOTAL",
    "ENGINE_ERRORS_TOTAL",
    "STREAM_COMPLETIONS_TOTAL",
    "ACTIVE_STREAMS",
    "BACKGROUND_DRAINS",
    # Logging
    "DIAGNOSTICS_LOGGER",
    "configure_structured_logging",
    "get_diagnostics_logger",
    "bind_context",
    "clear_context",
]
