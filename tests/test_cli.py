"""Tests for the wave-sessions command line."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from wave_sessions.cli.main import app

runner = CliRunner()


@pytest.fixture
def workdir(tmp_path: Path) -> Path:
    path = tmp_path / 'project'
    path.mkdir()
    return path


def invoke(root: Path, *args: str):
    return runner.invoke(app, ['--root', str(root), *args])


def test_new_list_show_delete(root: Path, workdir: Path) -> None:
    created = invoke(root, 'new', '--workdir', str(workdir))
    assert created.exit_code == 0, created.output
    session_id = created.output.strip()

    listed = invoke(root, 'list', '--workdir', str(workdir))
    assert listed.exit_code == 0
    assert session_id in listed.output

    shown = invoke(root, 'show', session_id, '--workdir', str(workdir))
    assert shown.exit_code == 0
    assert 'Messages: 0' in shown.output

    deleted = invoke(root, 'delete', session_id, '--workdir', str(workdir))
    assert deleted.exit_code == 0
    assert 'Deleted' in deleted.output

    again = invoke(root, 'delete', session_id, '--workdir', str(workdir))
    assert again.exit_code == 1
    assert 'Session not found' in again.output


def test_list_json(root: Path, workdir: Path) -> None:
    session_id = invoke(root, 'new', '--workdir', str(workdir)).output.strip()
    invoke(root, 'new', '--workdir', str(workdir), '--subagent')

    listed = invoke(root, 'list', '--workdir', str(workdir), '--json')
    everything = invoke(root, 'list', '--all', '--subagents', '--json')

    assert [s['id'] for s in json.loads(listed.output)] == [session_id]
    assert len(json.loads(everything.output)) == 2


def test_list_empty(root: Path, workdir: Path) -> None:
    result = invoke(root, 'list', '--workdir', str(workdir))
    assert result.exit_code == 0
    assert 'No sessions found.' in result.output


def test_show_missing_session(root: Path, workdir: Path) -> None:
    result = invoke(root, 'show', 'missing', '--workdir', str(workdir))
    assert result.exit_code == 1
    assert 'Session not found: missing' in result.output


def test_invalid_session_id(root: Path, workdir: Path) -> None:
    result = invoke(root, 'path', 'Not/Valid', '--workdir', str(workdir))
    assert result.exit_code == 1
    assert 'Invalid session ID' in result.output


def test_path(root: Path, workdir: Path) -> None:
    result = invoke(root, 'path', 'abc', '--workdir', str(workdir), '--subagent')
    assert result.exit_code == 0
    transcript = Path(result.output.strip())
    assert transcript.name == 'subagent-abc.jsonl'
    assert transcript.parent.parent == root


def test_latest(root: Path, workdir: Path) -> None:
    assert invoke(root, 'latest', '--workdir', str(workdir)).exit_code == 1

    session_id = invoke(root, 'new', '--workdir', str(workdir)).output.strip()
    result = invoke(root, 'latest', '--workdir', str(workdir))

    assert result.exit_code == 0
    assert session_id in result.output


def test_cleanup(root: Path) -> None:
    result = invoke(root, 'cleanup')
    assert result.exit_code == 0
    assert 'expired session(s)' in result.output


def test_check(root: Path, workdir: Path) -> None:
    session_id = invoke(root, 'new', '--workdir', str(workdir)).output.strip()

    clean = invoke(root, 'check', session_id, '--workdir', str(workdir))
    assert clean.exit_code == 0, clean.output
    assert f'✓ {session_id}.jsonl' in clean.output

    transcript = Path(invoke(root, 'path', session_id, '--workdir', str(workdir)).output.strip())
    transcript.write_text('{"role": "user", "blocks": []}\n{"truncated\n', encoding='utf-8')

    broken = invoke(root, 'check', '--workdir', str(workdir))
    assert broken.exit_code == 1
    assert 'Records: 1 of 2 lines' in broken.output
    assert 'Line 2:' in broken.output

    as_json = invoke(root, 'check', session_id, '--workdir', str(workdir), '--json')
    [report] = json.loads(as_json.stdout)
    assert [r['line_number'] for r in report['invalid_records']] == [2]


def test_check_missing_session(root: Path, workdir: Path) -> None:
    result = invoke(root, 'check', 'missing', '--workdir', str(workdir))
    assert result.exit_code == 1
    assert 'Session not found: missing' in result.output
