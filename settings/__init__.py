"""Settings loader for claude-max-proxy.

Loads configuration from environment variables (``CLAUDE_PROXY_*``) and
``.env``, falling back to settings/settings.toml for defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

# Path to settings.toml (relative to this file)
SETTINGS_DIR = Path(__file__).parent
SETTINGS_TOML_PATH = SETTINGS_DIR / "settings.toml"


class PermissionMode(str, Enum):
    """Permission modes understood by the agent engine."""

    DEFAULT = "default"  # Prompt for every file operation
    ACCEPT_EDITS = "acceptEdits"  # Auto-approve file edits
    BYPASS = "bypassPermissions"  # Auto-approve everything

    @property
    def description(self) -> str:
        return {
            PermissionMode.DEFAULT: "Will prompt for file operations",
            PermissionMode.ACCEPT_EDITS: "Auto-approving file edits (reads will still prompt)",
            PermissionMode.BYPASS: "Auto-approving all file operations (no prompts)",
        }[self]


@dataclass(frozen=True)
class RuntimeConfig:
    """Immutable per-process view of the settings a request needs.

    Captured once when the app is created and handed to every engine run,
    so a request never reads the environment mid-flight.
    """

    permission_mode: PermissionMode = PermissionMode.BYPASS
    cwd: str | None = None
    debug: bool = False
    timeout_ms: int = 3_600_000
    inactivity_ms: int = 900_000
    keepalive_seconds: float = 15.0
    session_header_wait_ms: int = 10_000

    @property
    def session_header_wait_seconds(self) -> float:
        return self.session_header_wait_ms / 1000


class Settings(BaseSettings):
    """Combined settings from the environment, .env and settings.toml.

    Environment variables win over TOML values:

        CLAUDE_PROXY_PORT=8080 CLAUDE_PROXY_TIMEOUT_MS=7200000 claude-max-proxy
    """

    model_config = SettingsConfigDict(
        env_prefix="CLAUDE_PROXY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        toml_file=SETTINGS_TOML_PATH,
    )

    # Server
    host: str = "127.0.0.1"
    port: int = 3456
    debug: bool = False
    log_level: str = "info"
    log_json: bool = False
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Agent engine
    permission_mode: PermissionMode = PermissionMode.BYPASS
    cwd: str | None = None

    # Lifecycle
    timeout_ms: int = Field(default=3_600_000, gt=0)
    inactivity_ms: int = Field(default=900_000, gt=0)
    keepalive_seconds: float = Field(default=15.0, gt=0)
    session_header_wait_ms: int = Field(default=10_000, ge=0)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )

    @property
    def working_directory(self) -> str:
        """Configured working directory, or the process cwd."""
        return self.cwd or os.getcwd()

    def runtime_config(self) -> RuntimeConfig:
        """Freeze the request-relevant settings into a RuntimeConfig."""
        return RuntimeConfig(
            permission_mode=self.permission_mode,
            cwd=self.working_directory,
            debug=self.debug,
            timeout_ms=self.timeout_ms,
            inactivity_ms=self.inactivity_ms,
            keepalive_seconds=self.keepalive_seconds,
            session_header_wait_ms=self.session_header_wait_ms,
        )

    def get_cors_origins_list(self) -> list[str]:
        """Get CORS origins."""
        return self.cors_origins


def get_settings() -> Settings:
    """Load and return the combined settings."""
    return Settings()


# Module-level singleton for convenience
_settings: Settings | None = None


def settings() -> Settings:
    """Get cached settings singleton."""
    global _settings
    if _settings is None:
        _settings = get_settings()
    return _settings


def reload_settings() -> Settings:
    """Reload settings from the environment and files.

    Returns:
        Fresh Settings object.
    """
    global _settings
    _settings = get_settings()
    return _settings
