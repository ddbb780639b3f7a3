"""
Session identifier generation and validation.

New sessions get UUIDv7 identifiers. UUIDv7 embeds a millisecond timestamp,
so a plain `ls` of a project directory comes out roughly chronological, but
nothing in this package sorts by ID: recency is always taken from record
timestamps (or file mtime for empty sessions).

IDs supplied by callers only need to be filename-safe. Validation is strict
enough that the filename mapping stays invertible:
- lowercase letters, digits, '_' and '-'
- first character is a letter or digit
- never starts with the subagent filename prefix
"""

from __future__ import annotations

import re

import uuid6

__all__ = [
    'MAX_SESSION_ID_LENGTH',
    'SUBAGENT_PREFIX',
    'generate_session_id',
    'is_valid_session_id',
]

MAX_SESSION_ID_LENGTH = 128

# Filename prefix marking subagent transcripts (subagent-<id>.jsonl)
SUBAGENT_PREFIX = 'subagent-'

SESSION_ID_PATTERN = re.compile(rf'^[0-9a-z][0-9a-z_-]{{0,{MAX_SESSION_ID_LENGTH - 1}}}$')


def generate_session_id() -> str:
    """
    Generate a new session ID.

    Returns:
        36-character lowercase hyphenated UUIDv7 string

    Examples:
        >>> generate_session_id()  # doctest: +SKIP
        '019a3c52-7d1e-7b4a-9f0e-2c4d8a6b1e3f'
    """
    return str(uuid6.uuid7())


def is_valid_session_id(session_id: str) -> bool:
    """Check whether a session ID can be stored under the filename scheme."""
    return bool(SESSION_ID_PATTERN.match(session_id)) and not session_id.startswith(SUBAGENT_PREFIX)
