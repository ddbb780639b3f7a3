"""MCP server entry point for wave-sessions."""

from __future__ import annotations

from wave_sessions.mcp.server import main, server

__all__ = ['main', 'server']
