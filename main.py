"""Main entry point for the claude-max-proxy server."""

from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path

import uvicorn

from settings import get_settings

logger = logging.getLogger(__name__)

RULE = "=" * 70


def print_banner(host: str, port: int, settings) -> None:  # type: ignore[no-untyped-def]
    """Print the startup banner with the effective configuration."""
    config = settings.runtime_config()
    print(f"""
{RULE}
Claude Max Proxy (Anthropic API)
{RULE}
Server: http://{host}:{port}

Working Directory: {config.cwd}
  File operations are restricted to this directory and subdirectories
  To change: export CLAUDE_PROXY_CWD=/path/to/your/project

Permission Mode: {config.permission_mode.value}
  {config.permission_mode.description}

Timeout Configuration:
  Total timeout:      {config.timeout_ms / 1000 / 60:g} minutes ({config.timeout_ms}ms)
  Inactivity timeout: {config.inactivity_ms / 1000 / 60:g} minutes ({config.inactivity_ms}ms)

To use with OpenCode:
  ANTHROPIC_API_KEY=dummy ANTHROPIC_BASE_URL=http://{host}:{port} opencode
{RULE}
    """)


def main() -> None:
    """Run the claude-max-proxy server."""
    settings = get_settings()

    parser = argparse.ArgumentParser(
        description="claude-max-proxy - Anthropic-compatible API powered by Claude Agent SDK",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  claude-max-proxy                     # Start with defaults (127.0.0.1:3456)
  claude-max-proxy --port 8080         # Custom port
  claude-max-proxy --debug             # Enable debug logging

Environment variables:
  CLAUDE_PROXY_HOST              Server host (default: 127.0.0.1)
  CLAUDE_PROXY_PORT              Server port (default: 3456)
  CLAUDE_PROXY_DEBUG             Enable debug mode (default: false)
  CLAUDE_PROXY_PERMISSION_MODE   default | acceptEdits | bypassPermissions
                                 (default: bypassPermissions)
  CLAUDE_PROXY_CWD               Working directory for the agent (default: current)
  CLAUDE_PROXY_TIMEOUT_MS        Total stream timeout (default: 3600000)
  CLAUDE_PROXY_INACTIVITY_MS     Inactivity timeout (default: 900000)
  CLAUDE_PROXY_LOG_JSON          Emit JSON logs (default: false)

Timeouts for large tasks:
  export CLAUDE_PROXY_TIMEOUT_MS=7200000      # 2 hours total
  export CLAUDE_PROXY_INACTIVITY_MS=1800000   # 30 minutes inactivity
        """,
    )

    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help=f"Host to bind to (default: {settings.host})",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help=f"Port to bind to (default: {settings.port})",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload (development only)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version="claude-max-proxy 1.0.0",
    )

    args = parser.parse_args()

    # Override settings from CLI args
    host = args.host or settings.host
    port = args.port or settings.port
    debug = args.debug or settings.debug
    if args.debug:
        # The app reads its settings when uvicorn imports it.
        os.environ["CLAUDE_PROXY_DEBUG"] = "true"

    # Validate cwd configuration
    if settings.cwd:
        cwd_path = Path(settings.cwd)
        if not cwd_path.is_absolute():
            cwd_path = cwd_path.resolve()
        if not cwd_path.exists():
            logging.basicConfig(level=logging.WARNING)
            logger.warning(f"Configured cwd does not exist: {cwd_path}")

    print_banner(host, port, settings)

    uvicorn.run(
        "maxproxy.api.app:app",
        host=host,
        port=port,
        reload=args.reload,
        log_level="debug" if debug else "info",
    )


if __name__ == "__main__":
    main()
