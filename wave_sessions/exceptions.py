"""
Shared exceptions for wave-sessions.

Exception Hierarchy:
    SessionStoreError (base)
    ├── SessionNotFoundError (session file absent)
    ├── SessionCorruptedError (unparseable record or invalid record shape)
    ├── SessionStoreIOError (permission/disk failures other than absence)
    └── InvalidArgumentError (malformed caller input, also a ValueError)
        └── InvalidSessionIdError (malformed id passed to filename functions)

NotFound and Corrupted are normalized to "no session" by load-style façade
operations. IO and argument errors are fatal and always propagate.
"""

from __future__ import annotations

from pathlib import Path


class SessionStoreError(Exception):
    """Base exception for all wave-sessions errors."""


class SessionNotFoundError(SessionStoreError):
    """Raised when a session file does not exist."""

    def __init__(self, path: Path | str, session_id: str | None = None) -> None:
        self.path = Path(path)
        self.session_id = session_id
        label = f'Session {session_id}' if session_id else 'Session file'
        super().__init__(f'{label} not found: {self.path}')


class SessionCorruptedError(SessionStoreError):
    """Raised when a session file contains a record that cannot be parsed."""

    def __init__(self, path: Path | str, line_number: int | None, reason: str) -> None:
        self.path = Path(path)
        self.line_number = line_number
        self.reason = reason
        location = f'{self.path}:{line_number}' if line_number is not None else str(self.path)
        super().__init__(f'Corrupted session record at {location}: {reason}')


class SessionStoreIOError(SessionStoreError):
    """Raised for filesystem failures other than a missing file (permissions, disk)."""

    def __init__(self, operation: str, path: Path | str, cause: OSError) -> None:
        self.operation = operation
        self.path = Path(path)
        self.cause = cause
        super().__init__(f'Failed to {operation} {self.path}: {cause.strerror or cause}')


class InvalidArgumentError(SessionStoreError, ValueError):
    """Raised for caller input the store can't act on, such as an empty workdir or a truncated directory name."""


class InvalidSessionIdError(InvalidArgumentError):
    """Raised when a session ID cannot be mapped to a session filename."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(
            f'Invalid session ID {session_id!r}: expected 1-128 characters of [0-9a-z_-], '
            f"starting with a letter or digit and not starting with 'subagent-'"
        )
