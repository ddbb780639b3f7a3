"""
Session lifecycle service - the entry point agents and tools talk to.

Each operation resolves the workdir to its project directory, then delegates
to the log store (single-file IO) or the catalog (multi-file views).

Error boundary:
- load-style operations return None for missing AND corrupted sessions; the
  caller can't tell them apart (both mean "no history available")
- IO and argument errors propagate unchanged with operation + path context

The session root is an explicit constructor argument. Settings only supply
the default, so several services with different roots can coexist.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
from pathlib import Path

from wave_sessions.config import SessionStoreSettings, settings
from wave_sessions.exceptions import (
    InvalidArgumentError,
    SessionCorruptedError,
    SessionNotFoundError,
    SessionStoreIOError,
)
from wave_sessions.ids import generate_session_id
from wave_sessions.paths import PathEncoder
from wave_sessions.protocols import LoggerProtocol
from wave_sessions.schemas.messages import CommandOutputBlock, CompressBlock, Message, TextBlock
from wave_sessions.schemas.session import SessionData, SessionMetadata, SessionSummary, TranscriptReport
from wave_sessions.services.catalog import SessionCatalog
from wave_sessions.storage.jsonl import SessionLogStore, generate_filename
from wave_sessions.storage.protocol import TranscriptBackend
from wave_sessions.types import SessionType

__all__ = ['SessionService', 'truncate_content']

logger = logging.getLogger(__name__)

DEFAULT_PREVIEW_LENGTH = 80


def truncate_content(text: str, max_length: int) -> str:
    """Cut text to max_length characters, marking the cut with '...'."""
    if len(text) <= max_length:
        return text
    return text[:max_length] + '...'


class SessionService:
    """
    Session lifecycle operations over one session root.

    Args:
        root: Session root directory (default: SESSION_ROOT setting)
        store: Transcript backend (default: SessionLogStore)
        encoder: Workdir mapping (default: PathEncoder)
        config: Settings for retention, runtime guard and version stamp
    """

    def __init__(
        self,
        root: Path | None = None,
        *,
        store: TranscriptBackend | None = None,
        encoder: PathEncoder | None = None,
        config: SessionStoreSettings | None = None,
    ) -> None:
        self.config = config if config is not None else settings
        self.root = root if root is not None else self.config.SESSION_ROOT
        self.store = store if store is not None else SessionLogStore()
        self.encoder = encoder if encoder is not None else PathEncoder()
        self.catalog = SessionCatalog(self.root, self.store, self.encoder)

    async def ensure_root(self) -> Path:
        """Create the session root if missing."""

        def _mkdir() -> None:
            try:
                self.root.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise SessionStoreIOError('create session root', self.root, e) from e

        await asyncio.to_thread(_mkdir)
        return self.root

    async def get_session_file_path(
        self,
        session_id: str,
        workdir: str,
        session_type: SessionType = 'main',
    ) -> Path:
        """
        Transcript path for a session (for hooks and external tools).

        Ensures the project directory exists; never creates the file itself.

        Raises:
            InvalidSessionIdError: If the ID is invalid (nothing is created on disk)
        """
        # Validate before resolve() creates the project directory
        filename = generate_filename(session_id, session_type)
        project = await self.encoder.resolve(workdir, self.root)
        return project.encoded_path / filename

    async def _session_path(self, session_id: str, workdir: str, session_type: SessionType) -> Path:
        # Read-only path lookup: never creates directories
        filename = generate_filename(session_id, session_type)
        project = await self.encoder.resolve(workdir, self.root, create=False)
        return project.encoded_path / filename

    # ==========================================================================
    # Write operations
    # ==========================================================================

    async def create_session(
        self,
        workdir: str,
        session_type: SessionType = 'main',
        session_id: str | None = None,
    ) -> str:
        """
        Register a new session as an empty transcript file.

        Args:
            workdir: Workdir the session belongs to
            session_type: 'main' or 'subagent'
            session_id: Use this ID instead of generating one

        Returns:
            The session ID
        """
        session_id = session_id or generate_session_id()
        path = await self.get_session_file_path(session_id, workdir, session_type)
        await self.store.touch(path)
        logger.info(f'Created {session_type} session {session_id} in {path.parent}')
        return session_id

    async def append_messages(
        self,
        session_id: str,
        messages: Sequence[Message],
        workdir: str,
        session_type: SessionType = 'main',
    ) -> list[Message]:
        """
        Append messages to a session, creating the file on first write.

        An empty message list returns immediately without touching disk.

        Returns:
            The records actually persisted (diff blocks removed, timestamps set)
        """
        if not messages:
            return []

        path = await self.get_session_file_path(session_id, workdir, session_type)
        return await self.store.append_records(path, messages)

    async def delete_session(self, session_id: str, workdir: str, session_type: SessionType = 'main') -> bool:
        """
        Delete a session file.

        Returns:
            True if the file was removed, False if there was nothing to delete
        """
        path = await self._session_path(session_id, workdir, session_type)
        deleted = await self.store.delete(path)
        if deleted:
            await self.catalog.remove_if_empty(path.parent)
        return deleted

    async def cleanup_expired_sessions(
        self,
        logger: LoggerProtocol | None = None,
        now: datetime | None = None,
    ) -> int:
        """
        Delete sessions idle for longer than SESSION_RETENTION_DAYS.

        No-op under RUNTIME_ENV=test.

        Returns:
            Number of session files deleted
        """
        if not self.config.cleanup_enabled:
            if logger:
                await logger.info('Skipping session cleanup (RUNTIME_ENV=test)')
            return 0

        retention = timedelta(days=self.config.SESSION_RETENTION_DAYS)
        return await self.catalog.cleanup_expired(retention, now=now, log=logger)

    # ==========================================================================
    # Read operations
    # ==========================================================================

    async def load_session(
        self,
        session_id: str,
        workdir: str,
        session_type: SessionType = 'main',
    ) -> SessionData | None:
        """
        Load a full transcript.

        Returns:
            SessionData, or None if the session doesn't exist or is corrupted
        """
        path = await self._session_path(session_id, workdir, session_type)
        try:
            messages = await self.store.read_all(path)
            started_at = messages[0].timestamp if messages else None
            last_active_at = messages[-1].timestamp if messages else None
            if started_at is None or last_active_at is None:
                # Registered but nothing appended yet, or records without timestamps
                stat = await self.store.stat(path)
                started_at = started_at or datetime.fromtimestamp(
                    getattr(stat, 'st_birthtime', stat.st_ctime), tz=UTC
                )
                last_active_at = last_active_at or datetime.fromtimestamp(stat.st_mtime, tz=UTC)
        except SessionNotFoundError:
            return None
        except SessionCorruptedError as e:
            logger.warning(f'Treating corrupted session {session_id} as missing: {e}')
            return None

        last_usage = messages[-1].usage if messages else None
        latest_total_tokens = last_usage.total_tokens if last_usage else 0

        project = await self.encoder.resolve(workdir, self.root, create=False)
        return SessionData(
            id=session_id,
            session_type=session_type,
            messages=messages,
            metadata=SessionMetadata(
                workdir=project.original_path,
                started_at=started_at,
                last_active_at=last_active_at,
                latest_total_tokens=latest_total_tokens,
                version=self.config.VERSION,
            ),
        )

    async def list_sessions(
        self,
        workdir: str | None,
        include_subagents: bool = False,
        include_all_workdirs: bool = False,
    ) -> list[SessionSummary]:
        """List session summaries, most recently active first. Never reads full transcripts."""
        return await self.catalog.list_sessions(workdir, include_subagents, include_all_workdirs)

    async def get_latest_session(self, workdir: str) -> SessionData | None:
        """Load the most recently active main session for a workdir."""
        latest = await self.catalog.find_latest(workdir)
        if latest is None:
            return None
        return await self.load_session(latest.id, workdir, latest.session_type)

    async def session_exists(
        self,
        session_id: str,
        workdir: str,
        session_type: SessionType | None = None,
    ) -> bool:
        """Check for a session file. Without a type, main naming is checked before subagent naming."""
        if session_type is None:
            return await self.catalog.probe_exists(session_id, workdir)
        return await self.store.exists(await self._session_path(session_id, workdir, session_type))

    async def get_first_message_preview(
        self,
        session_id: str,
        workdir: str,
        max_length: int = DEFAULT_PREVIEW_LENGTH,
        session_type: SessionType = 'main',
    ) -> str | None:
        """
        Short preview of a session's first message, for session pickers.

        Uses the first text block, else a command_output block's command, else a
        compress block's summary. Only the first record is read.

        Returns:
            Truncated preview, or None if there is nothing to show
        """
        path = await self._session_path(session_id, workdir, session_type)
        try:
            first = await self.store.peek_first_record(path)
        except SessionCorruptedError as e:
            logger.warning(f'Could not read first message of session {session_id}: {e}')
            return None
        if first is None:
            return None

        text = next((b.content for b in first.blocks if isinstance(b, TextBlock)), None)
        if text is None:
            text = next((b.command for b in first.blocks if isinstance(b, CommandOutputBlock)), None)
        if text is None:
            text = next((b.content for b in first.blocks if isinstance(b, CompressBlock)), None)
        return truncate_content(text, max_length) if text is not None else None

    # ==========================================================================
    # Integrity checks
    # ==========================================================================

    async def check_session(
        self,
        session_id: str,
        workdir: str,
        session_type: SessionType = 'main',
    ) -> TranscriptReport | None:
        """
        Parse every record of one session and report the lines that don't parse.

        Returns:
            Report, or None if the session doesn't exist
        """
        path = await self._session_path(session_id, workdir, session_type)
        try:
            report = await self.store.validate(path)
        except SessionNotFoundError:
            return None
        if not report.is_valid:
            logger.warning(f'Session {session_id} has {len(report.invalid_records)} invalid record(s)')
        return report

    async def check_sessions(self, workdir: str, include_subagents: bool = True) -> list[TranscriptReport]:
        """
        Check every session of a workdir.

        Returns:
            One report per session file, in filename order
        """
        project = await self.encoder.resolve(workdir, self.root, create=False)
        reports: list[TranscriptReport] = []
        for path, _ in await self.catalog.session_files(project.encoded_path, include_subagents):
            try:
                reports.append(await self.store.validate(path))
            except SessionNotFoundError:
                # Deleted between directory scan and check
                continue
        return reports

    async def resolve_session_for_restore(
        self,
        workdir: str,
        restore_session_id: str | None = None,
        continue_last: bool = False,
    ) -> SessionData | None:
        """
        Pick the session an agent should resume.

        Args:
            workdir: Workdir of the agent
            restore_session_id: Resume this session (main or subagent)
            continue_last: Resume the latest session when no ID is given

        Returns:
            Session to resume, or None for a fresh start

        Raises:
            InvalidArgumentError: If workdir is empty
            SessionNotFoundError: If restore_session_id doesn't name a loadable session
        """
        if not workdir:
            raise InvalidArgumentError('Working directory is required')

        if restore_session_id:
            for session_type in ('main', 'subagent'):
                session = await self.load_session(restore_session_id, workdir, session_type)
                if session is not None:
                    return session
            path = await self._session_path(restore_session_id, workdir, 'main')
            raise SessionNotFoundError(path, restore_session_id)

        if continue_last:
            return await self.get_latest_session(workdir)

        return None
