"""
Session-level schemas.

SessionData is the fully materialized transcript returned by load operations.
SessionSummary is the catalog projection: everything listing needs, derived
from the filename plus first/last record peeks - never message bodies.
TranscriptReport is the result of a full integrity check of one file.
"""

from __future__ import annotations

from pathlib import Path

from wave_sessions.base_model import StrictModel
from wave_sessions.schemas.messages import Message
from wave_sessions.types import JsonDatetime, SessionType

__all__ = ['InvalidRecord', 'SessionData', 'SessionMetadata', 'SessionSummary', 'TranscriptReport']


class SessionMetadata(StrictModel):
    """Derived metadata for a loaded session."""

    workdir: str
    started_at: JsonDatetime  # First record timestamp (file birth time if empty)
    last_active_at: JsonDatetime  # Last record timestamp (file mtime if empty)
    latest_total_tokens: int  # usage.total_tokens of the last record, 0 if none
    version: str  # Package version that produced this view


class SessionData(StrictModel):
    """A fully loaded session transcript."""

    id: str
    session_type: SessionType
    messages: list[Message]
    metadata: SessionMetadata


class SessionSummary(StrictModel):
    """Catalog entry for one session file."""

    id: str
    session_type: SessionType
    workdir: str
    started_at: JsonDatetime
    last_active_at: JsonDatetime
    latest_total_tokens: int
    file_path: Path


class InvalidRecord(StrictModel):
    """One line of a transcript that doesn't parse as a record."""

    line_number: int
    reason: str


class TranscriptReport(StrictModel):
    """Integrity check of one transcript file. Every line is parsed; nothing is repaired."""

    file_path: Path
    size_bytes: int
    line_count: int  # Non-blank lines
    record_count: int  # Lines that parse as records
    invalid_records: list[InvalidRecord]
    role_counts: dict[str, int]
    first_timestamp: JsonDatetime | None
    last_timestamp: JsonDatetime | None
    modified_at: JsonDatetime

    @property
    def is_valid(self) -> bool:
        return not self.invalid_records
