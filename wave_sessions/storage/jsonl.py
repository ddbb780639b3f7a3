"""
JSONL transcript storage - byte-level access to one session file.

Layout:
    <root>/<encoded-workdir>/<session_id>.jsonl            (main)
    <root>/<encoded-workdir>/subagent-<session_id>.jsonl   (subagent)

Files are append-only, one compact JSON record per line. A missing file means
the session was never registered; an empty file means it was created but has
no messages yet.

The filename codec (generate_filename / parse_filename / is_valid_filename)
is pure string work with no IO. The catalog calls it once per directory
entry, so it has to stay cheap.

Blocking file IO runs in worker threads (asyncio.to_thread). No contents are
cached between calls: every read reflects what is on disk now.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections import Counter, deque
from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import NamedTuple

import pydantic

from wave_sessions.exceptions import (
    InvalidArgumentError,
    InvalidSessionIdError,
    SessionCorruptedError,
    SessionNotFoundError,
    SessionStoreIOError,
)
from wave_sessions.ids import SUBAGENT_PREFIX, is_valid_session_id
from wave_sessions.schemas.messages import Message, strip_diff_blocks
from wave_sessions.schemas.session import InvalidRecord, TranscriptReport
from wave_sessions.types import SessionType

__all__ = [
    'SESSION_FILE_SUFFIX',
    'ParsedFilename',
    'SessionLogStore',
    'describe_validation_error',
    'generate_filename',
    'is_valid_filename',
    'parse_filename',
]

logger = logging.getLogger(__name__)

SESSION_FILE_SUFFIX = '.jsonl'

# Backwards read size for peek_last_record
TAIL_CHUNK_SIZE = 4096


# ==============================================================================
# Filename Codec (pure, no IO)
# ==============================================================================


class ParsedFilename(NamedTuple):
    """Session identity recovered from a filename."""

    session_id: str
    session_type: SessionType


def generate_filename(session_id: str, session_type: SessionType = 'main') -> str:
    """
    Build the filename for a session.

    Raises:
        InvalidSessionIdError: If the ID can't be represented in a filename
    """
    if not is_valid_session_id(session_id):
        raise InvalidSessionIdError(session_id)
    if session_type == 'subagent':
        return f'{SUBAGENT_PREFIX}{session_id}{SESSION_FILE_SUFFIX}'
    return f'{session_id}{SESSION_FILE_SUFFIX}'


def parse_filename(filename: str) -> ParsedFilename | None:
    """
    Recover (session_id, session_type) from a filename.

    Inverse of generate_filename. Returns None for anything that isn't a
    session file (other extensions, marker files, temp files, bad IDs).
    """
    if not filename.endswith(SESSION_FILE_SUFFIX):
        return None

    stem = filename[: -len(SESSION_FILE_SUFFIX)]
    session_type: SessionType = 'main'
    if stem.startswith(SUBAGENT_PREFIX):
        stem = stem[len(SUBAGENT_PREFIX) :]
        session_type = 'subagent'

    if not is_valid_session_id(stem):
        return None
    return ParsedFilename(stem, session_type)


def is_valid_filename(filename: str) -> bool:
    """Check whether a directory entry is a session file."""
    return parse_filename(filename) is not None


def describe_validation_error(error: pydantic.ValidationError) -> str:
    """One-line reason for a rejected record: location and message of the first problem."""
    first = error.errors()[0]
    location = '.'.join(str(part) for part in first['loc'])
    reason = f'{location}: {first["msg"]}' if location else first['msg']
    if error.error_count() > 1:
        reason += f' (+{error.error_count() - 1} more)'
    return reason


# ==============================================================================
# Session Log Store
# ==============================================================================


class SessionLogStore:
    """
    Append/read primitives for session JSONL files.

    Every method takes the full file path: resolving workdirs and session
    IDs to paths is the caller's job.

    Error mapping:
    - missing file on read -> SessionNotFoundError
    - unparseable line -> SessionCorruptedError
    - any other OSError -> SessionStoreIOError (fatal)
    """

    async def append_records(self, path: Path, messages: Sequence[Message]) -> list[Message]:
        """
        Append messages to a session file.

        Diff blocks are stripped first and messages left empty are dropped.
        Messages without a timestamp are stamped with the current UTC time.
        All lines are serialized before the file is opened and written with a
        single append; on a failed write the file is truncated back to its
        previous size so no partial lines are left behind.

        A call with no messages is a no-op: the file is not created.

        Args:
            path: Session file path
            messages: Messages in conversation order

        Returns:
            The records actually persisted, in input order
        """
        if not messages:
            return []

        now = datetime.now(UTC)
        records: list[Message] = []
        for message in messages:
            stripped = strip_diff_blocks(message)
            if stripped is None:
                continue
            if stripped.timestamp is None:
                stripped = stripped.model_copy(update={'timestamp': now})
            records.append(stripped)

        if not records:
            return []

        payload = ''.join(record.model_dump_json(exclude_none=True) + '\n' for record in records)
        await asyncio.to_thread(self._append_payload, path, payload.encode('utf-8'))
        return records

    async def read_all(self, path: Path, limit: int | None = None, from_end: bool = False) -> list[Message]:
        """
        Read persisted messages.

        Args:
            path: Session file path
            limit: Maximum number of records to return
            from_end: Take the last `limit` records instead of the first

        Returns:
            Messages in file order (also when from_end=True)

        Raises:
            SessionNotFoundError: If the file doesn't exist
            SessionCorruptedError: If a selected line can't be parsed
        """
        if limit is not None and limit < 1:
            raise InvalidArgumentError(f'limit must be at least 1, got {limit}')
        lines = await asyncio.to_thread(self._read_lines, path, limit, from_end)
        return [self._parse_line(path, line_number, line) for line_number, line in lines]

    async def peek_first_record(self, path: Path) -> Message | None:
        """
        Parse only the first record of a file.

        Returns:
            First message, or None if the file is absent or has no records

        Raises:
            SessionCorruptedError: If the first line can't be parsed
        """
        found = await asyncio.to_thread(self._read_first_line, path)
        if found is None:
            return None
        return self._parse_line(path, 1, found)

    async def peek_last_record(self, path: Path) -> Message | None:
        """
        Parse only the last record of a file.

        Reads backwards from the end, so cost doesn't grow with record count.

        Returns:
            Last message, or None if the file is absent or has no records

        Raises:
            SessionCorruptedError: If the last line can't be parsed
        """
        found = await asyncio.to_thread(self._read_last_line, path)
        if found is None:
            return None
        return self._parse_line(path, None, found)

    async def touch(self, path: Path) -> None:
        """Register a session: create an empty file (and parents) if missing. Existing content is kept."""
        await asyncio.to_thread(self._touch, path)

    async def exists(self, path: Path) -> bool:
        return await asyncio.to_thread(path.is_file)

    async def stat(self, path: Path) -> os.stat_result:
        """
        Stat a session file.

        Raises:
            SessionNotFoundError: If the file doesn't exist
        """
        try:
            return await asyncio.to_thread(path.stat)
        except FileNotFoundError as e:
            raise SessionNotFoundError(path) from e
        except OSError as e:
            raise SessionStoreIOError('stat', path, e) from e

    async def validate(self, path: Path) -> TranscriptReport:
        """
        Parse every line of a session file and report what doesn't parse.

        Unlike read_all, a bad line doesn't stop the scan: each one is
        recorded with its line number and the first validation problem.

        Raises:
            SessionNotFoundError: If the file doesn't exist
        """
        return await asyncio.to_thread(self._scan, path)

    async def count(self, path: Path) -> int:
        """
        Number of non-blank lines, without parsing them.

        Raises:
            SessionNotFoundError: If the file doesn't exist
        """
        return await asyncio.to_thread(self._count_lines, path)

    async def delete(self, path: Path) -> bool:
        """
        Delete a session file.

        Returns:
            True if a file was removed, False if it didn't exist
        """
        try:
            await asyncio.to_thread(path.unlink)
        except FileNotFoundError:
            return False
        except OSError as e:
            raise SessionStoreIOError('delete', path, e) from e
        logger.info(f'Deleted session file: {path}')
        return True

    # --------------------------------------------------------------------------
    # Blocking helpers (run in worker threads)
    # --------------------------------------------------------------------------

    @staticmethod
    def _parse_line(path: Path, line_number: int | None, line: bytes) -> Message:
        try:
            return Message.model_validate_json(line)
        except pydantic.ValidationError as e:
            raise SessionCorruptedError(path, line_number, describe_validation_error(e)) from e

    @staticmethod
    def _append_payload(path: Path, payload: bytes) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # Unbuffered: every byte that reached the file has been written by the time truncate runs
            with open(path, 'ab', buffering=0) as f:
                start = f.seek(0, os.SEEK_END)
                remaining = memoryview(payload)
                try:
                    while remaining:
                        written = f.write(remaining)
                        remaining = remaining[written:]
                except OSError:
                    # Roll back to the last complete line
                    f.truncate(start)
                    raise
        except OSError as e:
            raise SessionStoreIOError('append to', path, e) from e

    @staticmethod
    def _scan(path: Path) -> TranscriptReport:
        invalid: list[InvalidRecord] = []
        roles: Counter[str] = Counter()
        first_timestamp: datetime | None = None
        last_timestamp: datetime | None = None
        line_count = 0
        try:
            with open(path, 'rb') as f:
                stat = os.fstat(f.fileno())
                for line_number, raw in enumerate(f, 1):
                    line = raw.strip()
                    if not line:
                        continue
                    line_count += 1
                    try:
                        message = Message.model_validate_json(line)
                    except pydantic.ValidationError as e:
                        invalid.append(InvalidRecord(line_number=line_number, reason=describe_validation_error(e)))
                        continue
                    roles[message.role] += 1
                    if message.timestamp is not None:
                        first_timestamp = first_timestamp or message.timestamp
                        last_timestamp = message.timestamp
        except FileNotFoundError as e:
            raise SessionNotFoundError(path) from e
        except OSError as e:
            raise SessionStoreIOError('validate', path, e) from e

        return TranscriptReport(
            file_path=path,
            size_bytes=stat.st_size,
            line_count=line_count,
            record_count=line_count - len(invalid),
            invalid_records=invalid,
            role_counts=dict(roles),
            first_timestamp=first_timestamp,
            last_timestamp=last_timestamp,
            modified_at=datetime.fromtimestamp(stat.st_mtime, tz=UTC),
        )

    @staticmethod
    def _count_lines(path: Path) -> int:
        try:
            with open(path, 'rb') as f:
                return sum(1 for raw in f if raw.strip())
        except FileNotFoundError as e:
            raise SessionNotFoundError(path) from e
        except OSError as e:
            raise SessionStoreIOError('read', path, e) from e

    @staticmethod
    def _read_lines(path: Path, limit: int | None, from_end: bool) -> list[tuple[int, bytes]]:
        selected: list[tuple[int, bytes]] | deque[tuple[int, bytes]]
        selected = deque(maxlen=limit) if from_end and limit is not None else []
        try:
            with open(path, 'rb') as f:
                for line_number, raw in enumerate(f, 1):
                    line = raw.strip()
                    if not line:
                        continue
                    selected.append((line_number, line))
                    if not from_end and limit is not None and len(selected) >= limit:
                        break
        except FileNotFoundError as e:
            raise SessionNotFoundError(path) from e
        except OSError as e:
            raise SessionStoreIOError('read', path, e) from e
        return list(selected)

    @staticmethod
    def _read_first_line(path: Path) -> bytes | None:
        try:
            with open(path, 'rb') as f:
                for raw in f:
                    line = raw.strip()
                    if line:
                        return line
        except FileNotFoundError:
            return None
        except OSError as e:
            raise SessionStoreIOError('read', path, e) from e
        return None

    @staticmethod
    def _read_last_line(path: Path) -> bytes | None:
        try:
            with open(path, 'rb') as f:
                position = f.seek(0, os.SEEK_END)
                # Pieces of the last non-blank line, latest first
                chunks: list[bytes] = []
                while position > 0:
                    step = min(TAIL_CHUNK_SIZE, position)
                    position -= step
                    f.seek(position)
                    chunk = f.read(step)
                    if not chunks:
                        chunk = chunk.rstrip()
                        if not chunk:
                            continue
                    newline = chunk.rfind(b'\n')
                    if newline != -1:
                        chunks.append(chunk[newline + 1 :])
                        break
                    chunks.append(chunk)
                line = b''.join(reversed(chunks)).strip()
                return line or None
        except FileNotFoundError:
            return None
        except OSError as e:
            raise SessionStoreIOError('read', path, e) from e

    @staticmethod
    def _touch(path: Path) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # Append mode: creates if missing, leaves content and mtime of an existing file alone
            with open(path, 'ab'):
                pass
        except OSError as e:
            raise SessionStoreIOError('create', path, e) from e
