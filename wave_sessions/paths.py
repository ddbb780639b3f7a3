"""
Path encoding utilities for project-scoped session directories.

Every working directory gets one directory under the session root. The
directory name is an exact, reversible encoding of the (resolved) workdir:

- every character outside [A-Za-z0-9_.~/] is percent-escaped as UTF-8 `%XX`
  (this includes `%`, ` `, `-`, `+` and all non-ASCII characters)
- `/` then becomes `-`

Decoding maps `-` back to `/` and unescapes. Because literal hyphens are
escaped before slashes are mapped, the encoding is injective.

Names that would exceed MAX_ENCODED_LENGTH are truncated and suffixed with
`+<hash>` (SHA-256 of the full path). `+` never occurs in an untruncated name,
so truncated names are recognisable; since they can't be decoded textually,
their directories carry a `.workdir` marker holding the original path.

Examples:
    >>> encode_path('/Users/chris/project')
    '-Users-chris-project'

    >>> encode_path('/path with spaces')
    '-path%20with%20spaces'

    >>> encode_path('/srv/my-app')
    '-srv-my%2Dapp'
"""

from __future__ import annotations

import asyncio
import hashlib
import os
from pathlib import Path
from urllib.parse import quote, unquote

from wave_sessions.base_model import StrictModel
from wave_sessions.exceptions import InvalidArgumentError, SessionStoreIOError

__all__ = [
    'HASH_LENGTH',
    'MAX_ENCODED_LENGTH',
    'WORKDIR_MARKER',
    'PathEncoder',
    'ProjectDirectory',
    'decode_path',
    'encode_path',
    'is_truncated_name',
]

# Well below the common 255-byte NAME_MAX, leaving room for suffixes
MAX_ENCODED_LENGTH = 200
HASH_LENGTH = 8
TRUNCATION_SEPARATOR = '+'

# Holds the original workdir in directories whose names were truncated
WORKDIR_MARKER = '.workdir'


class ProjectDirectory(StrictModel):
    """The on-disk directory for one workdir."""

    original_path: str  # Resolved absolute workdir
    encoded_name: str
    encoded_path: Path
    collision_hash: str | None  # Set only when the name was truncated
    is_symbolic_link: bool  # True if the workdir as given was (or traversed) a symlink


def _path_hash(path: str) -> str:
    return hashlib.sha256(path.encode('utf-8')).hexdigest()[:HASH_LENGTH]


def encode_path(path: Path | str) -> str:
    """
    Encode a workdir as a directory name.

    Args:
        path: Absolute workdir (already resolved by the caller)

    Returns:
        Filesystem-safe directory name, at most MAX_ENCODED_LENGTH characters
    """
    original = str(path)
    encoded = quote(original, safe='/').replace('-', '%2D').replace('/', '-')

    if len(encoded) > MAX_ENCODED_LENGTH:
        keep = MAX_ENCODED_LENGTH - HASH_LENGTH - len(TRUNCATION_SEPARATOR)
        encoded = f'{encoded[:keep]}{TRUNCATION_SEPARATOR}{_path_hash(original)}'

    return encoded


def is_truncated_name(encoded_name: str) -> bool:
    """Check whether an encoded name was truncated (and therefore can't be decoded)."""
    return TRUNCATION_SEPARATOR in encoded_name


def decode_path(encoded_name: str) -> str:
    """
    Decode a directory name back to the workdir it was produced from.

    Raises:
        InvalidArgumentError: If the name was truncated (use PathEncoder.original_path_for instead)
    """
    if is_truncated_name(encoded_name):
        raise InvalidArgumentError(f'Cannot decode truncated project directory name: {encoded_name}')
    return unquote(encoded_name.replace('-', '/'), errors='strict')


class PathEncoder:
    """
    Maps working directories to project directories under a session root.

    Stateless: every call reflects the current filesystem, so one instance can
    serve any number of roots.
    """

    @staticmethod
    def normalize(workdir: str) -> tuple[str, bool]:
        """
        Expand `~`, make absolute and resolve symlinks.

        Returns:
            (resolved_path, is_symbolic_link)
        """
        absolute = os.path.abspath(os.path.expanduser(workdir))
        resolved = os.path.realpath(absolute)
        return resolved, resolved != absolute

    async def resolve(self, workdir: str, root: Path, create: bool = True) -> ProjectDirectory:
        """
        Map a workdir to its project directory.

        Idempotent: repeated calls return the same encoded name, and creation
        never fails because the directory already exists.

        Args:
            workdir: Working directory as given by the caller
            root: Session root directory
            create: Create the directory (and marker, if truncated) when missing

        Returns:
            ProjectDirectory describing the mapping

        Raises:
            InvalidArgumentError: If workdir is empty
            SessionStoreIOError: If the directory can't be created
        """
        if not workdir:
            raise InvalidArgumentError('Working directory is required')

        resolved, is_symlink = self.normalize(workdir)
        encoded_name = encode_path(resolved)
        encoded_path = root / encoded_name
        collision_hash = _path_hash(resolved) if is_truncated_name(encoded_name) else None

        if create:
            await asyncio.to_thread(self._ensure_directory, encoded_path, resolved, collision_hash is not None)

        return ProjectDirectory(
            original_path=resolved,
            encoded_name=encoded_name,
            encoded_path=encoded_path,
            collision_hash=collision_hash,
            is_symbolic_link=is_symlink,
        )

    def decode(self, encoded_name: str) -> str:
        """Decode a project directory name. Raises InvalidArgumentError for truncated names."""
        return decode_path(encoded_name)

    async def original_path_for(self, project_dir: Path) -> str | None:
        """
        Recover the workdir for an existing project directory.

        Decodes the name when possible, otherwise reads the marker file.

        Returns:
            Original workdir, or None if it can't be determined
        """
        if not is_truncated_name(project_dir.name):
            try:
                return decode_path(project_dir.name)
            except UnicodeDecodeError:
                return None

        marker = project_dir / WORKDIR_MARKER
        try:
            content = await asyncio.to_thread(marker.read_text, encoding='utf-8')
        except FileNotFoundError:
            return None
        return content.strip() or None

    @staticmethod
    def _ensure_directory(encoded_path: Path, original_path: str, write_marker: bool) -> None:
        try:
            encoded_path.mkdir(parents=True, exist_ok=True)
            marker = encoded_path / WORKDIR_MARKER
            if write_marker and not marker.exists():
                marker.write_text(original_path + '\n', encoding='utf-8')
        except OSError as e:
            raise SessionStoreIOError('create project directory', encoded_path, e) from e
