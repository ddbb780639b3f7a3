"""Tests for session ID generation and validation."""

from __future__ import annotations

import uuid

import pytest

from wave_sessions.ids import MAX_SESSION_ID_LENGTH, generate_session_id, is_valid_session_id


def test_generated_ids_are_uuid7() -> None:
    session_id = generate_session_id()
    parsed = uuid.UUID(session_id)
    assert parsed.version == 7
    assert session_id == str(parsed)
    assert len(session_id) == 36


def test_generated_ids_are_unique_and_valid() -> None:
    ids = {generate_session_id() for _ in range(200)}
    assert len(ids) == 200
    assert all(is_valid_session_id(i) for i in ids)


@pytest.mark.parametrize('session_id', ['id-1', 'never-created', 'a', 'abc_123', 'x' * MAX_SESSION_ID_LENGTH])
def test_valid_ids(session_id: str) -> None:
    assert is_valid_session_id(session_id)


@pytest.mark.parametrize(
    'session_id',
    [
        '',
        'Upper',
        '-leading-dash',
        '_leading-underscore',
        'has space',
        'dot.ted',
        'slash/ed',
        'subagent-abc',
        'x' * (MAX_SESSION_ID_LENGTH + 1),
    ],
)
def test_invalid_ids(session_id: str) -> None:
    assert not is_valid_session_id(session_id)
