"""
CLI logger adapter - implements LoggerProtocol for wave-sessions commands.

Info goes to stdout and only with --verbose. Warnings and errors always go
to stderr, so piped --json output stays clean.
"""

from __future__ import annotations

import typer


class CLILogger:
    """Terminal logger for CLI commands (implements LoggerProtocol)."""

    def __init__(self, verbose: bool = False) -> None:
        """
        Args:
            verbose: If True, show info messages. If False, only warnings/errors.
        """
        self.verbose = verbose

    async def info(self, message: str) -> None:
        if self.verbose:
            typer.echo(f'[INFO] {message}')

    async def warning(self, message: str) -> None:
        typer.secho(f'[WARNING] {message}', fg=typer.colors.YELLOW, err=True)

    async def error(self, message: str) -> None:
        typer.secho(f'[ERROR] {message}', fg=typer.colors.RED, err=True)
