"""
MCP server configuration.

Extends base configuration with the workdir the server's tools act on.
"""

from __future__ import annotations

import pathlib

import pydantic

from wave_sessions.config.base import SessionStoreSettings, lazy_settings


class McpServerSettings(SessionStoreSettings):
    """MCP server-specific configuration."""

    # Workdir whose sessions the tools operate on (defaults to the server's cwd)
    WORKDIR: pathlib.Path = pydantic.Field(default_factory=pathlib.Path.cwd)


# Module-level singleton (lazy-loaded)
settings = lazy_settings(McpServerSettings)
