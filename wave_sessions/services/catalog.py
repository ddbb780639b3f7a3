"""
Session catalog - listing, recency and expiry over session files.

There is no index file. Everything the catalog reports comes from:
1. the directory entry name (session ID + type via parse_filename, no IO)
2. one peek at the last record (last_active_at, latest_total_tokens)
3. one peek at the first record (started_at)
4. stat() as a fallback for files without records

Full transcript reads never happen here, so listing cost grows with the
number of sessions, not with their size.

Recency is always last_active_at (ties broken by ID). Session IDs are not
assumed to be time-ordered.
"""

from __future__ import annotations

import asyncio
import logging
import os
from datetime import UTC, datetime, timedelta
from pathlib import Path

from wave_sessions.exceptions import (
    InvalidArgumentError,
    SessionCorruptedError,
    SessionNotFoundError,
    SessionStoreIOError,
)
from wave_sessions.paths import WORKDIR_MARKER, PathEncoder
from wave_sessions.protocols import LoggerProtocol, NullLogger
from wave_sessions.schemas.session import SessionSummary
from wave_sessions.storage.jsonl import ParsedFilename, generate_filename, parse_filename
from wave_sessions.storage.protocol import TranscriptBackend

__all__ = ['SessionCatalog', 'sort_by_recency']

logger = logging.getLogger(__name__)


def sort_by_recency(summaries: list[SessionSummary]) -> list[SessionSummary]:
    """Latest first: last_active_at descending, then ID descending."""
    return sorted(summaries, key=lambda s: (s.last_active_at, s.id), reverse=True)


def _file_time(stat: os.stat_result, attribute: str) -> datetime:
    return datetime.fromtimestamp(getattr(stat, attribute), tz=UTC)


def _creation_time(stat: os.stat_result) -> datetime:
    # st_birthtime where the platform has it (macOS, BSD), inode change time otherwise
    if hasattr(stat, 'st_birthtime'):
        return _file_time(stat, 'st_birthtime')
    return _file_time(stat, 'st_ctime')


def _list_entries(directory: Path) -> list[str]:
    try:
        return os.listdir(directory)
    except FileNotFoundError:
        return []
    except OSError as e:
        raise SessionStoreIOError('list', directory, e) from e


def _list_project_dirs(root: Path) -> list[Path]:
    try:
        with os.scandir(root) as entries:
            return sorted(Path(entry.path) for entry in entries if entry.is_dir())
    except FileNotFoundError:
        return []
    except OSError as e:
        raise SessionStoreIOError('list', root, e) from e


def _is_effectively_empty(directory: Path) -> bool:
    """A project directory holding nothing but its workdir marker counts as empty."""
    try:
        return all(name == WORKDIR_MARKER for name in os.listdir(directory))
    except FileNotFoundError:
        return False


def _remove_project_dir(directory: Path) -> bool:
    (directory / WORKDIR_MARKER).unlink(missing_ok=True)
    directory.rmdir()
    return True


class SessionCatalog:
    """
    Derives session summaries for one session root.

    Args:
        root: Session root directory
        store: Transcript backend used for peeks and deletions
        encoder: Workdir <-> directory mapping
    """

    def __init__(self, root: Path, store: TranscriptBackend, encoder: PathEncoder) -> None:
        self.root = root
        self.store = store
        self.encoder = encoder

    # --------------------------------------------------------------------------
    # Listing
    # --------------------------------------------------------------------------

    async def list_sessions(
        self,
        workdir: str | None,
        include_subagents: bool = False,
        include_all_workdirs: bool = False,
    ) -> list[SessionSummary]:
        """
        List sessions, latest first.

        Args:
            workdir: Workdir to list (ignored when include_all_workdirs=True)
            include_subagents: Include subagent-<id>.jsonl sessions
            include_all_workdirs: Aggregate over every project directory under the root

        Returns:
            Summaries sorted by last_active_at descending (ties: ID descending)
        """
        targets: list[tuple[Path, str]] = []

        if include_all_workdirs:
            for project_dir in await asyncio.to_thread(_list_project_dirs, self.root):
                original = await self.encoder.original_path_for(project_dir)
                if original is None:
                    logger.warning(f'Skipping project directory with unknown workdir: {project_dir}')
                    continue
                targets.append((project_dir, original))
        else:
            if workdir is None:
                raise InvalidArgumentError('workdir is required unless include_all_workdirs=True')
            project = await self.encoder.resolve(workdir, self.root, create=False)
            targets.append((project.encoded_path, project.original_path))

        summaries: list[SessionSummary] = []
        for project_dir, original in targets:
            summaries.extend(await self._summarize_directory(project_dir, original, include_subagents))

        return sort_by_recency(summaries)

    async def find_latest(self, workdir: str) -> SessionSummary | None:
        """Most recently active main session for a workdir, or None."""
        summaries = await self.list_sessions(workdir)
        return summaries[0] if summaries else None

    async def session_files(self, project_dir: Path, include_subagents: bool) -> list[tuple[Path, ParsedFilename]]:
        """
        Session files of one project directory, sorted by name.

        Identity comes from the filename alone; nothing is opened.
        """
        files: list[tuple[Path, ParsedFilename]] = []
        for name in sorted(await asyncio.to_thread(_list_entries, project_dir)):
            parsed = parse_filename(name)
            if parsed is None:
                continue
            if parsed.session_type == 'subagent' and not include_subagents:
                continue
            files.append((project_dir / name, parsed))
        return files

    async def _summarize_directory(
        self,
        project_dir: Path,
        workdir: str,
        include_subagents: bool,
    ) -> list[SessionSummary]:
        summaries: list[SessionSummary] = []
        for path, parsed in await self.session_files(project_dir, include_subagents):
            summary = await self._summarize(path, parsed, workdir)
            if summary is not None:
                summaries.append(summary)
        return summaries

    async def _summarize(self, path: Path, parsed: ParsedFilename, workdir: str) -> SessionSummary | None:
        """Build one summary from two peeks. None if the entry must be skipped."""
        try:
            last = await self.store.peek_last_record(path)
        except SessionCorruptedError as e:
            logger.warning(f'Skipping session with corrupted last record: {e}')
            return None

        try:
            stat = await self.store.stat(path)
        except SessionNotFoundError:
            # Deleted between directory scan and peek
            return None

        if last is not None and last.timestamp is not None:
            last_active_at = last.timestamp
        else:
            last_active_at = _file_time(stat, 'st_mtime')
        latest_total_tokens = last.usage.total_tokens if last is not None and last.usage is not None else 0

        try:
            first = await self.store.peek_first_record(path)
        except SessionCorruptedError as e:
            logger.warning(f'Using file creation time for session with corrupted first record: {e}')
            first = None
        started_at = first.timestamp if first is not None and first.timestamp is not None else _creation_time(stat)

        return SessionSummary(
            id=parsed.session_id,
            session_type=parsed.session_type,
            workdir=workdir,
            started_at=started_at,
            last_active_at=last_active_at,
            latest_total_tokens=latest_total_tokens,
            file_path=path,
        )

    # --------------------------------------------------------------------------
    # Existence
    # --------------------------------------------------------------------------

    async def probe_exists(self, session_id: str, workdir: str) -> bool:
        """Check main naming first, then subagent naming."""
        project = await self.encoder.resolve(workdir, self.root, create=False)
        for session_type in ('main', 'subagent'):
            if await self.store.exists(project.encoded_path / generate_filename(session_id, session_type)):
                return True
        return False

    # --------------------------------------------------------------------------
    # Expiry
    # --------------------------------------------------------------------------

    async def cleanup_expired(
        self,
        retention: timedelta,
        now: datetime | None = None,
        log: LoggerProtocol | None = None,
    ) -> int:
        """
        Delete sessions (main and subagent, every workdir) idle for longer than `retention`.

        Best-effort: a file that can't be deleted is logged and skipped.
        Project directories left empty are removed.

        Returns:
            Number of session files actually deleted
        """
        log = log or NullLogger()
        cutoff = (now or datetime.now(UTC)) - retention

        summaries = await self.list_sessions(None, include_subagents=True, include_all_workdirs=True)
        expired = [s for s in summaries if s.last_active_at < cutoff]
        await log.info(f'Found {len(expired)} expired of {len(summaries)} sessions (cutoff {cutoff.isoformat()})')

        deleted = 0
        for summary in expired:
            try:
                removed = await self.store.delete(summary.file_path)
            except (SessionStoreIOError, OSError) as e:
                logger.warning(f'Failed to delete expired session {summary.id}: {e}')
                await log.warning(f'Could not delete {summary.file_path}: {e}')
                continue
            if removed:
                deleted += 1
                await log.info(f'Deleted expired session {summary.id} ({summary.workdir})')
                await self.remove_if_empty(summary.file_path.parent)

        await self.remove_empty_project_directories()
        return deleted

    async def remove_if_empty(self, project_dir: Path) -> bool:
        """
        Remove a project directory if no sessions are left in it.

        Failures are logged and reported as False.
        """
        try:
            if not await asyncio.to_thread(_is_effectively_empty, project_dir):
                return False
            return await asyncio.to_thread(_remove_project_dir, project_dir)
        except OSError as e:
            logger.warning(f'Could not remove project directory {project_dir}: {e}')
            return False

    async def remove_empty_project_directories(self) -> int:
        """
        Remove every empty project directory under the root.

        Returns:
            Number of directories removed
        """
        try:
            project_dirs = await asyncio.to_thread(_list_project_dirs, self.root)
        except SessionStoreIOError as e:
            logger.warning(f'Could not scan session root: {e}')
            return 0

        removed = 0
        for project_dir in project_dirs:
            if await self.remove_if_empty(project_dir):
                removed += 1
        return removed
