"""Shared fixtures: every test gets its own session root under tmp_path."""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from wave_sessions.config import SessionStoreSettings
from wave_sessions.schemas.messages import Message, TextBlock, Usage
from wave_sessions.services.sessions import SessionService
from wave_sessions.storage.jsonl import SessionLogStore

BASE_TIME = datetime(2026, 10, 1, 12, 0, tzinfo=UTC)


class CountingStore(SessionLogStore):
    """SessionLogStore that counts full reads and peeks, per file."""

    def __init__(self) -> None:
        self.calls: Counter[tuple[str, Path]] = Counter()

    def count(self, operation: str) -> int:
        return sum(n for (name, _), n in self.calls.items() if name == operation)

    async def read_all(self, path: Path, limit: int | None = None, from_end: bool = False) -> list[Message]:
        self.calls['read_all', path] += 1
        return await super().read_all(path, limit, from_end)

    async def peek_first_record(self, path: Path) -> Message | None:
        self.calls['peek_first_record', path] += 1
        return await super().peek_first_record(path)

    async def peek_last_record(self, path: Path) -> Message | None:
        self.calls['peek_last_record', path] += 1
        return await super().peek_last_record(path)


def text_message(
    content: str,
    role: str = 'user',
    timestamp: datetime | None = None,
    total_tokens: int | None = None,
) -> Message:
    return Message(
        role=role,
        blocks=[TextBlock(content=content)],
        timestamp=timestamp,
        usage=Usage(total_tokens=total_tokens) if total_tokens is not None else None,
    )


def at(minutes: int) -> datetime:
    return BASE_TIME + timedelta(minutes=minutes)


@pytest.fixture
def root(tmp_path: Path) -> Path:
    return tmp_path / 'sessions'


@pytest.fixture
def store_settings(root: Path) -> SessionStoreSettings:
    return SessionStoreSettings(_env_file=None, SESSION_ROOT=root, RUNTIME_ENV='production')


@pytest.fixture
def store() -> CountingStore:
    return CountingStore()


@pytest.fixture
def service(root: Path, store: CountingStore, store_settings: SessionStoreSettings) -> SessionService:
    return SessionService(root, store=store, config=store_settings)


def write_lines(path: Path, lines: Sequence[str]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(''.join(line + '\n' for line in lines), encoding='utf-8')
