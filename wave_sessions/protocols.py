"""
Logger protocol shared by the session services.

Services report operation progress (cleanup counts, skipped entries) through
an async logger supplied by the caller, so the same service code can talk to
a terminal, an MCP client, or nothing at all.
"""

from __future__ import annotations

from typing import Protocol


class LoggerProtocol(Protocol):
    """
    Async logger accepted by service operations.

    Implementations:
    - DualLogger (mcp/utils.py): stdout + MCP client notifications
    - CLILogger (cli/logger.py): stdout, info gated behind --verbose
    - NullLogger (below): discards everything
    """

    async def info(self, message: str) -> None: ...
    async def warning(self, message: str) -> None: ...
    async def error(self, message: str) -> None: ...


class NullLogger:
    """Logger that discards every message. Default when the caller passes none."""

    async def info(self, message: str) -> None:
        pass

    async def warning(self, message: str) -> None:
        pass

    async def error(self, message: str) -> None:
        pass
