"""
wave-sessions - log-structured session store for coding agents.

One JSONL transcript per session, grouped by working directory:

    <root>/<encoded-workdir>/<session_id>.jsonl
    <root>/<encoded-workdir>/subagent-<session_id>.jsonl

Start with SessionService; the lower layers (SessionLogStore, PathEncoder,
SessionCatalog) are exported for tools that need direct access.
"""

from wave_sessions.exceptions import (
    InvalidArgumentError,
    InvalidSessionIdError,
    SessionCorruptedError,
    SessionNotFoundError,
    SessionStoreError,
    SessionStoreIOError,
)
from wave_sessions.ids import generate_session_id, is_valid_session_id
from wave_sessions.paths import PathEncoder, ProjectDirectory, decode_path, encode_path
from wave_sessions.schemas import Message, SessionData, SessionMetadata, SessionSummary
from wave_sessions.services import SessionCatalog, SessionService
from wave_sessions.storage import SessionLogStore, generate_filename, is_valid_filename, parse_filename

__version__ = '0.1.0'

__all__ = [
    'InvalidArgumentError',
    'InvalidSessionIdError',
    'Message',
    'PathEncoder',
    'ProjectDirectory',
    'SessionCatalog',
    'SessionCorruptedError',
    'SessionData',
    'SessionLogStore',
    'SessionMetadata',
    'SessionNotFoundError',
    'SessionService',
    'SessionStoreError',
    'SessionStoreIOError',
    'SessionSummary',
    'decode_path',
    'encode_path',
    'generate_filename',
    'generate_session_id',
    'is_valid_filename',
    'is_valid_session_id',
    'parse_filename',
]
