"""Configuration settings for claude-max-proxy.

Thin re-export of the settings/ package so the rest of the server can use
``from ..core import settings``.
"""

from __future__ import annotations

from settings import (
    PermissionMode,
    RuntimeConfig,
    Settings,
    get_settings,
    reload_settings,
)
from settings import settings as get_settings_singleton

# Module-level settings singleton
settings = get_settings_singleton()

__all__ = [
    "Settings",
    "settings",
    "get_settings",
    "reload_settings",
    "PermissionMode",
    "RuntimeConfig",
]
