"""Transcript storage: JSONL session files and the filename codec."""

from wave_sessions.storage.jsonl import (
    SESSION_FILE_SUFFIX,
    ParsedFilename,
    SessionLogStore,
    describe_validation_error,
    generate_filename,
    is_valid_filename,
    parse_filename,
)
from wave_sessions.storage.protocol import TranscriptBackend

__all__ = [
    'SESSION_FILE_SUFFIX',
    'ParsedFilename',
    'SessionLogStore',
    'TranscriptBackend',
    'describe_validation_error',
    'generate_filename',
    'is_valid_filename',
    'parse_filename',
]
