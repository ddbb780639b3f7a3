#!/usr/bin/env python3
"""
Command-line interface for wave-sessions.

Inspect and manage agent session transcripts:

    wave-sessions list                      # sessions of the current directory
    wave-sessions list --all --subagents    # everything under the session root
    wave-sessions show <session-id> --tail 5
    wave-sessions path <session-id>         # transcript path for hooks
    wave-sessions check                     # find unparseable records
    wave-sessions cleanup -v                # delete expired sessions

--root overrides the SESSION_ROOT setting for every command.
"""

from __future__ import annotations

import asyncio
import traceback
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeVar

import pydantic
import typer

from wave_sessions.cli.logger import CLILogger
from wave_sessions.exceptions import SessionStoreError
from wave_sessions.schemas.messages import (
    CommandOutputBlock,
    CompressBlock,
    Message,
    TextBlock,
    ToolCallBlock,
    ToolResultBlock,
)
from wave_sessions.schemas.session import SessionSummary, TranscriptReport
from wave_sessions.services.sessions import SessionService, truncate_content
from wave_sessions.types import SessionType

app = typer.Typer(
    name='wave-sessions',
    help='Inspect and manage agent session transcripts',
    add_completion=False,
)

T = TypeVar('T')

SummaryListAdapter = pydantic.TypeAdapter(list[SessionSummary])
ReportListAdapter = pydantic.TypeAdapter(list[TranscriptReport])

# Width of block previews in `show`
BLOCK_PREVIEW_LENGTH = 200


@app.callback()
def _global_options(
    ctx: typer.Context,
    root: Path | None = typer.Option(None, '--root', help='Session root directory (default: SESSION_ROOT setting)'),
) -> None:
    """Inspect and manage agent session transcripts."""
    ctx.obj = root


def _service(ctx: typer.Context) -> SessionService:
    return SessionService(ctx.obj)


def _workdir(workdir: Path | None) -> str:
    return str(workdir or Path.cwd())


def _session_type(subagent: bool) -> SessionType:
    return 'subagent' if subagent else 'main'


def _run(operation: Callable[[CLILogger], Awaitable[T]], verbose: bool, failure: str) -> T:
    """Run an async command body with the shared error boundary."""
    logger = CLILogger(verbose=verbose)

    async def _wrapped() -> T:
        try:
            return await operation(logger)
        except typer.Exit:
            raise
        except (SessionStoreError, ValueError) as e:
            typer.secho(f'Error: {e}', fg=typer.colors.RED, err=True)
            raise typer.Exit(1)
        except Exception as e:
            await logger.error(f'{failure}: {e}')
            if verbose:
                traceback.print_exc()
            raise typer.Exit(1)

    return asyncio.run(_wrapped())


def _format_block(block: object) -> str:
    if isinstance(block, TextBlock):
        return block.content
    if isinstance(block, ToolCallBlock):
        return f'[tool_call {block.name}] {block.parameters or ""}'
    if isinstance(block, ToolResultBlock):
        label = 'tool_error' if block.is_error else 'tool_result'
        return f'[{label} {block.tool_call_id}] {block.content}'
    if isinstance(block, CommandOutputBlock):
        return f'$ {block.command}\n{block.output}'
    if isinstance(block, CompressBlock):
        return f'[compressed] {block.content}'
    return f'[{getattr(block, "type", "unknown")}]'


def _echo_message(message: Message) -> None:
    when = message.timestamp.isoformat() if message.timestamp else '-'
    typer.secho(f'{message.role} @ {when}', bold=True)
    for block in message.blocks:
        typer.echo(f'  {truncate_content(_format_block(block), BLOCK_PREVIEW_LENGTH)}')


def _echo_summary(summary: SessionSummary, show_workdir: bool) -> None:
    line = (
        f'{summary.id}  {summary.session_type:<8}  {summary.last_active_at:%Y-%m-%d %H:%M:%S}  '
        f'{summary.latest_total_tokens:>8,} tokens'
    )
    if show_workdir:
        line += f'  {summary.workdir}'
    typer.echo(line)


def _echo_report(report: TranscriptReport) -> None:
    if report.is_valid:
        typer.secho(f'✓ {report.file_path.name}', fg=typer.colors.GREEN)
    else:
        typer.secho(f'✗ {report.file_path.name}', fg=typer.colors.RED)
    roles = ', '.join(f'{role}={n}' for role, n in sorted(report.role_counts.items()))
    typer.echo(f'  Records: {report.record_count} of {report.line_count} lines ({roles or "no roles"})')
    typer.echo(f'  Size: {report.size_bytes:,} bytes, modified {report.modified_at.isoformat()}')
    for invalid in report.invalid_records:
        typer.echo(f'  Line {invalid.line_number}: {invalid.reason}')


# ==============================================================================
# Commands
# ==============================================================================


@app.command()
def new(
    ctx: typer.Context,
    workdir: Path | None = typer.Option(None, '--workdir', '-w', help='Workdir (default: current directory)'),
    subagent: bool = typer.Option(False, '--subagent', help='Register a subagent session'),
    verbose: bool = typer.Option(False, '--verbose', '-v', help='Verbose output'),
) -> None:
    """Register a new, empty session and print its ID."""

    async def _new(logger: CLILogger) -> None:
        service = _service(ctx)
        session_type = _session_type(subagent)
        session_id = await service.create_session(_workdir(workdir), session_type)
        transcript = await service.get_session_file_path(session_id, _workdir(workdir), session_type)
        await logger.info(f'Transcript: {transcript}')
        typer.echo(session_id)

    _run(_new, verbose, 'Failed to create session')


@app.command('list')
def list_(
    ctx: typer.Context,
    workdir: Path | None = typer.Option(None, '--workdir', '-w', help='Workdir (default: current directory)'),
    all_workdirs: bool = typer.Option(False, '--all', '-a', help='List sessions of every workdir'),
    subagents: bool = typer.Option(False, '--subagents', help='Include subagent sessions'),
    as_json: bool = typer.Option(False, '--json', help='Print JSON'),
    verbose: bool = typer.Option(False, '--verbose', '-v', help='Verbose output'),
) -> None:
    """List sessions, most recently active first."""

    async def _list(logger: CLILogger) -> None:
        summaries = await _service(ctx).list_sessions(
            _workdir(workdir), include_subagents=subagents, include_all_workdirs=all_workdirs
        )
        if as_json:
            typer.echo(SummaryListAdapter.dump_json(summaries, indent=2).decode())
            return
        if not summaries:
            typer.echo('No sessions found.')
            return
        for summary in summaries:
            _echo_summary(summary, show_workdir=all_workdirs)
        await logger.info(f'{len(summaries)} session(s)')

    _run(_list, verbose, 'Failed to list sessions')


@app.command()
def show(
    ctx: typer.Context,
    session_id: str = typer.Argument(..., help='Session ID'),
    workdir: Path | None = typer.Option(None, '--workdir', '-w', help='Workdir (default: current directory)'),
    tail: int | None = typer.Option(None, '--tail', '-n', min=1, help='Only show the last N messages'),
    subagent: bool = typer.Option(False, '--subagent', help='Session is a subagent session'),
    as_json: bool = typer.Option(False, '--json', help='Print records as JSON lines'),
    verbose: bool = typer.Option(False, '--verbose', '-v', help='Verbose output'),
) -> None:
    """Print a session transcript."""

    async def _show(logger: CLILogger) -> None:
        session = await _service(ctx).load_session(session_id, _workdir(workdir), _session_type(subagent))
        if session is None:
            typer.secho(f'Error: Session not found: {session_id}', fg=typer.colors.RED, err=True)
            raise typer.Exit(1)

        messages = session.messages[-tail:] if tail else session.messages
        if as_json:
            for message in messages:
                typer.echo(message.model_dump_json(exclude_none=True))
            return

        meta = session.metadata
        typer.secho(f'Session {session.id} ({session.session_type})', fg=typer.colors.CYAN, bold=True)
        typer.echo(f'  Workdir: {meta.workdir}')
        typer.echo(f'  Started: {meta.started_at.isoformat()}')
        typer.echo(f'  Last active: {meta.last_active_at.isoformat()}')
        typer.echo(f'  Tokens: {meta.latest_total_tokens:,}')
        typer.echo(f'  Messages: {len(session.messages)}')
        typer.echo()
        for message in messages:
            _echo_message(message)
        await logger.info(f'Showed {len(messages)} of {len(session.messages)} messages')

    _run(_show, verbose, 'Failed to load session')


@app.command()
def delete(
    ctx: typer.Context,
    session_id: str = typer.Argument(..., help='Session ID'),
    workdir: Path | None = typer.Option(None, '--workdir', '-w', help='Workdir (default: current directory)'),
    subagent: bool = typer.Option(False, '--subagent', help='Session is a subagent session'),
    verbose: bool = typer.Option(False, '--verbose', '-v', help='Verbose output'),
) -> None:
    """Delete a session transcript."""

    async def _delete(logger: CLILogger) -> None:
        deleted = await _service(ctx).delete_session(session_id, _workdir(workdir), _session_type(subagent))
        if not deleted:
            typer.secho(f'Error: Session not found: {session_id}', fg=typer.colors.RED, err=True)
            raise typer.Exit(1)
        typer.secho(f'✓ Deleted session {session_id}', fg=typer.colors.GREEN)

    _run(_delete, verbose, 'Failed to delete session')


@app.command()
def path(
    ctx: typer.Context,
    session_id: str = typer.Argument(..., help='Session ID'),
    workdir: Path | None = typer.Option(None, '--workdir', '-w', help='Workdir (default: current directory)'),
    subagent: bool = typer.Option(False, '--subagent', help='Session is a subagent session'),
    verbose: bool = typer.Option(False, '--verbose', '-v', help='Verbose output'),
) -> None:
    """Print the transcript path of a session."""

    async def _path(logger: CLILogger) -> None:
        transcript = await _service(ctx).get_session_file_path(session_id, _workdir(workdir), _session_type(subagent))
        typer.echo(str(transcript))

    _run(_path, verbose, 'Failed to resolve transcript path')


@app.command()
def latest(
    ctx: typer.Context,
    workdir: Path | None = typer.Option(None, '--workdir', '-w', help='Workdir (default: current directory)'),
    as_json: bool = typer.Option(False, '--json', help='Print the full session as JSON'),
    verbose: bool = typer.Option(False, '--verbose', '-v', help='Verbose output'),
) -> None:
    """Show the most recently active main session."""

    async def _latest(logger: CLILogger) -> None:
        service = _service(ctx)
        session = await service.get_latest_session(_workdir(workdir))
        if session is None:
            typer.echo('No sessions found.')
            raise typer.Exit(1)
        if as_json:
            typer.echo(session.model_dump_json(indent=2, exclude_none=True))
            return
        preview = await service.get_first_message_preview(session.id, _workdir(workdir))
        typer.echo(session.id)
        typer.echo(f'  Last active: {session.metadata.last_active_at.isoformat()}')
        typer.echo(f'  Messages: {len(session.messages)}')
        if preview:
            typer.echo(f'  First message: {preview}')

    _run(_latest, verbose, 'Failed to load latest session')


@app.command()
def check(
    ctx: typer.Context,
    session_id: str | None = typer.Argument(None, help='Session ID (default: every session of the workdir)'),
    workdir: Path | None = typer.Option(None, '--workdir', '-w', help='Workdir (default: current directory)'),
    subagent: bool = typer.Option(False, '--subagent', help='Session is a subagent session'),
    as_json: bool = typer.Option(False, '--json', help='Print reports as JSON'),
    verbose: bool = typer.Option(False, '--verbose', '-v', help='Verbose output'),
) -> None:
    """Parse every record of a transcript and report lines that don't parse. Exits 1 if any are found."""

    async def _check(logger: CLILogger) -> None:
        service = _service(ctx)
        if session_id is None:
            reports = await service.check_sessions(_workdir(workdir))
        else:
            report = await service.check_session(session_id, _workdir(workdir), _session_type(subagent))
            if report is None:
                typer.secho(f'Error: Session not found: {session_id}', fg=typer.colors.RED, err=True)
                raise typer.Exit(1)
            reports = [report]

        if as_json:
            typer.echo(ReportListAdapter.dump_json(reports, indent=2).decode())
        elif not reports:
            typer.echo('No sessions found.')
        else:
            for report in reports:
                _echo_report(report)

        invalid = sum(len(report.invalid_records) for report in reports)
        await logger.info(f'Checked {len(reports)} transcript(s), {invalid} invalid record(s)')
        if invalid:
            raise typer.Exit(1)

    _run(_check, verbose, 'Failed to check sessions')


@app.command()
def cleanup(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, '--verbose', '-v', help='Verbose output'),
) -> None:
    """Delete sessions idle for longer than SESSION_RETENTION_DAYS."""

    async def _cleanup(logger: CLILogger) -> None:
        deleted = await _service(ctx).cleanup_expired_sessions(logger=logger)
        typer.secho(f'✓ Deleted {deleted} expired session(s)', fg=typer.colors.GREEN)

    _run(_cleanup, verbose, 'Failed to clean up sessions')


def main() -> None:
    """Entry point for CLI."""
    app()


if __name__ == '__main__':
    main()
