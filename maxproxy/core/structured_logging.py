"""Structured logging setup.

Uses structlog for both native structlog loggers and stdlib ``logging``
records, rendering JSON (for Loki/Promtail scraping) or a console format
for local use.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

# Operator-facing channel for engine stderr and failure reports. Never
# surfaced to HTTP clients.
DIAGNOSTICS_LOGGER = "maxproxy.diagnostics"


def _shared_processors() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def configure_structured_logging(
    log_level: str = "INFO",
    json_format: bool = False,
) -> None:
    """Configure structured logging for the application.

    Should be called once at application startup.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_format: If True, output JSON logs. If False, human-readable.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    shared_processors = _shared_processors()

    if json_format:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(level)


def get_diagnostics_logger() -> Any:
    """Logger for the operator diagnostics channel."""
    return structlog.get_logger(DIAGNOSTICS_LOGGER)


def bind_context(**kwargs: Any) -> None:
    """Bind context variables to all subsequent log messages."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear bound context variables."""
    structlog.contextvars.clear_contextvars()
