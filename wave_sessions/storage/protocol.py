"""
Storage backend protocol for session transcripts.

The catalog and façade depend on this interface rather than on
SessionLogStore directly, so tests can substitute instrumented stores
(e.g. to count full reads during listing).
"""

from __future__ import annotations

import os
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol, runtime_checkable

from wave_sessions.schemas.messages import Message
from wave_sessions.schemas.session import TranscriptReport


@runtime_checkable
class TranscriptBackend(Protocol):
    """Protocol for per-file transcript storage."""

    async def append_records(self, path: Path, messages: Sequence[Message]) -> list[Message]:
        """
        Append messages (diff blocks stripped, timestamps assigned).

        Returns:
            Records actually persisted
        """
        ...

    async def read_all(self, path: Path, limit: int | None = None, from_end: bool = False) -> list[Message]:
        """
        Read persisted messages.

        Raises:
            SessionNotFoundError: If the file doesn't exist
            SessionCorruptedError: If a record can't be parsed
        """
        ...

    async def peek_first_record(self, path: Path) -> Message | None:
        """Parse only the first record. None for an absent or empty file."""
        ...

    async def peek_last_record(self, path: Path) -> Message | None:
        """Parse only the last record. None for an absent or empty file."""
        ...

    async def touch(self, path: Path) -> None:
        """Create an empty session file if missing."""
        ...

    async def exists(self, path: Path) -> bool: ...

    async def stat(self, path: Path) -> os.stat_result: ...

    async def validate(self, path: Path) -> TranscriptReport:
        """
        Parse every line and report the ones that don't parse.

        Raises:
            SessionNotFoundError: If the file doesn't exist
        """
        ...

    async def count(self, path: Path) -> int:
        """Number of non-blank lines. Raises SessionNotFoundError for a missing file."""
        ...

    async def delete(self, path: Path) -> bool:
        """
        Delete a session file.

        Returns:
            True if removed, False if it didn't exist
        """
        ...
