"""Tests for MCP server state and tool registration."""

from __future__ import annotations

from pathlib import Path

import attrs
import pytest

from wave_sessions.config.mcp import McpServerSettings
from wave_sessions.mcp.server import build_state, register_tools, server


@pytest.fixture
def mcp_settings(root: Path, tmp_path: Path) -> McpServerSettings:
    return McpServerSettings(_env_file=None, SESSION_ROOT=root, WORKDIR=tmp_path, RUNTIME_ENV='test')


def test_state_is_immutable(mcp_settings: McpServerSettings) -> None:
    state = build_state(mcp_settings)
    with pytest.raises(attrs.exceptions.FrozenInstanceError):
        state.workdir = Path('/elsewhere')  # type: ignore[misc]


def test_default_workdir(mcp_settings: McpServerSettings, tmp_path: Path) -> None:
    state = build_state(mcp_settings)
    assert state.workdir_for(None) == str(tmp_path)
    assert state.workdir_for('/work') == '/work'
    assert state.service.root == mcp_settings.SESSION_ROOT


@pytest.mark.asyncio
async def test_tools_registered(mcp_settings: McpServerSettings) -> None:
    register_tools(build_state(mcp_settings))

    names = {tool.name for tool in await server.list_tools()}

    assert names >= {
        'list_sessions',
        'load_session',
        'latest_session',
        'delete_session',
        'transcript_path',
        'check_session',
        'cleanup_expired_sessions',
    }
