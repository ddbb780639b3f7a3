"""
Wave Sessions MCP Server.

Exposes the session store to MCP clients: list, load and delete agent
session transcripts, check them for unparseable records, and run expiry
cleanup.

Setup:
    claude mcp add --scope user wave-sessions -- uvx --from wave-sessions wave-sessions-mcp

Configuration (environment or LOAD_ENV_FILE):
    SESSION_ROOT            Session root (default ~/.wave/projects)
    WORKDIR                 Default workdir for tools (default: server cwd)
    SESSION_RETENTION_DAYS  Expiry threshold for cleanup_expired_sessions

Example:
    # Sessions of the server's workdir, latest first
    list_sessions()

    # Every session under the root, subagents included
    list_sessions(include_all_workdirs=True, include_subagents=True)
"""

from __future__ import annotations

import contextlib
import sys
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

import attrs
from mcp.server.fastmcp import Context, FastMCP

from wave_sessions.config.mcp import McpServerSettings, settings
from wave_sessions.mcp.utils import DualLogger
from wave_sessions.schemas.session import SessionData, SessionSummary, TranscriptReport
from wave_sessions.services.sessions import SessionService
from wave_sessions.types import SessionType

# ==============================================================================
# Server State (immutable)
# ==============================================================================


@attrs.define(frozen=True)
class ServerState:
    """
    Immutable server state initialized at startup.

    Contains the session service and the default workdir for tool calls.
    """

    root: Path
    workdir: Path
    service: SessionService

    def workdir_for(self, workdir: str | None) -> str:
        return workdir or str(self.workdir)


def build_state(config: McpServerSettings) -> ServerState:
    """Create server state from settings."""
    return ServerState(
        root=config.SESSION_ROOT,
        workdir=config.WORKDIR,
        service=SessionService(config.SESSION_ROOT, config=config),
    )


# ==============================================================================
# Lifecycle
# ==============================================================================


@contextlib.asynccontextmanager
async def lifespan(mcp_server: FastMCP) -> AsyncIterator[None]:
    """
    Manage server lifecycle and state initialization.

    Creates the session root if needed and registers tools over the state.
    """
    state = build_state(settings)
    await state.service.ensure_root()

    # Register tools with closure over state
    register_tools(state)

    print(f'[MCP Server] Session root: {state.root}', file=sys.stderr)
    print(f'[MCP Server] Workdir: {state.workdir}', file=sys.stderr)

    yield  # Setup successful; application active


server = FastMCP('wave-sessions', lifespan=lifespan)


# ==============================================================================
# Tool Registration (Closure Pattern)
# ==============================================================================


def register_tools(state: ServerState) -> None:
    """
    Register MCP tools with closure over server state.

    Args:
        state: Server state containing the session service
    """

    @server.tool()
    async def list_sessions(
        workdir: str | None = None,
        include_subagents: bool = False,
        include_all_workdirs: bool = False,
    ) -> list[SessionSummary]:
        """
        List sessions, most recently active first.

        Only the first and last record of each transcript are read.

        Args:
            workdir: Workdir to list (default: server workdir)
            include_subagents: Include subagent sessions
            include_all_workdirs: List every workdir under the session root

        Returns:
            Session summaries (no message bodies)
        """
        return await state.service.list_sessions(
            state.workdir_for(workdir),
            include_subagents=include_subagents,
            include_all_workdirs=include_all_workdirs,
        )

    @server.tool()
    async def load_session(
        session_id: str,
        workdir: str | None = None,
        session_type: SessionType = 'main',
    ) -> SessionData | None:
        """
        Load a full session transcript.

        Args:
            session_id: Session ID
            workdir: Workdir of the session (default: server workdir)
            session_type: 'main' or 'subagent'

        Returns:
            Session with all messages, or None if missing or unreadable
        """
        return await state.service.load_session(session_id, state.workdir_for(workdir), session_type)

    @server.tool()
    async def latest_session(workdir: str | None = None) -> SessionData | None:
        """
        Load the most recently active main session of a workdir.

        Args:
            workdir: Workdir (default: server workdir)
        """
        return await state.service.get_latest_session(state.workdir_for(workdir))

    @server.tool()
    async def delete_session(
        session_id: str,
        workdir: str | None = None,
        session_type: SessionType = 'main',
        ctx: Context[Any, Any, Any] | None = None,
    ) -> bool:
        """
        Delete a session transcript.

        Args:
            session_id: Session ID
            workdir: Workdir of the session (default: server workdir)
            session_type: 'main' or 'subagent'

        Returns:
            True if deleted, False if there was no such session
        """
        deleted = await state.service.delete_session(session_id, state.workdir_for(workdir), session_type)
        if ctx is not None:
            logger = DualLogger(ctx)
            if deleted:
                await logger.info(f'Deleted session {session_id}')
            else:
                await logger.warning(f'No session {session_id} to delete')
        return deleted

    @server.tool()
    async def transcript_path(
        session_id: str,
        workdir: str | None = None,
        session_type: SessionType = 'main',
    ) -> str:
        """
        Transcript file path for a session (for hooks and external tools).

        The file itself may not exist yet.
        """
        path = await state.service.get_session_file_path(session_id, state.workdir_for(workdir), session_type)
        return str(path)

    @server.tool()
    async def check_session(
        session_id: str,
        workdir: str | None = None,
        session_type: SessionType = 'main',
    ) -> TranscriptReport | None:
        """
        Parse every record of a transcript and report lines that don't parse.

        Returns:
            Line numbers and reasons of invalid records plus record and size
            stats, or None if there is no such session
        """
        return await state.service.check_session(session_id, state.workdir_for(workdir), session_type)

    @server.tool()
    async def cleanup_expired_sessions(ctx: Context[Any, Any, Any] | None = None) -> int:
        """
        Delete sessions idle for longer than SESSION_RETENTION_DAYS, across all workdirs.

        Returns:
            Number of session files deleted
        """
        if ctx is None:
            raise RuntimeError('Context is required - must be called via FastMCP')
        logger = DualLogger(ctx)
        return await state.service.cleanup_expired_sessions(logger=logger)


# ==============================================================================
# Server Entry Point
# ==============================================================================


def main() -> None:
    """Run the MCP server."""
    server.run()


if __name__ == '__main__':
    main()
