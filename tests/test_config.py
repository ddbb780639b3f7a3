"""Tests for settings loading."""

from __future__ import annotations

from pathlib import Path

import pydantic
import pytest

from wave_sessions.config import SessionStoreSettings, get_settings, lazy_settings
from wave_sessions.config.mcp import McpServerSettings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ('LOAD_ENV_FILE', 'SESSION_ROOT', 'SESSION_RETENTION_DAYS', 'RUNTIME_ENV', 'WORKDIR'):
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    config = get_settings(SessionStoreSettings)
    assert config.SESSION_ROOT == Path.home() / '.wave' / 'projects'
    assert config.SESSION_RETENTION_DAYS == 30
    assert config.RUNTIME_ENV == 'production'
    assert config.cleanup_enabled


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv('SESSION_ROOT', str(tmp_path))
    monkeypatch.setenv('SESSION_RETENTION_DAYS', '7')
    monkeypatch.setenv('RUNTIME_ENV', 'test')

    config = get_settings(SessionStoreSettings)

    assert config.SESSION_ROOT == tmp_path
    assert config.SESSION_RETENTION_DAYS == 7
    assert not config.cleanup_enabled


def test_root_expands_home() -> None:
    config = SessionStoreSettings(_env_file=None, SESSION_ROOT=Path('~/sessions'))
    assert config.SESSION_ROOT == Path.home() / 'sessions'


def test_retention_must_be_positive(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv('SESSION_RETENTION_DAYS', '0')
    with pytest.raises(pydantic.ValidationError):
        get_settings(SessionStoreSettings)


def test_env_file(tmp_path: Path) -> None:
    env_file = tmp_path / 'test.env'
    env_file.write_text(f'SESSION_ROOT={tmp_path / "from-file"}\nRUNTIME_ENV=development\n', encoding='utf-8')

    config = get_settings(SessionStoreSettings, env_file=str(env_file))

    assert config.SESSION_ROOT == tmp_path / 'from-file'
    assert config.RUNTIME_ENV == 'development'


def test_env_file_from_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    env_file = tmp_path / 'test.env'
    env_file.write_text('SESSION_RETENTION_DAYS=3\n', encoding='utf-8')
    monkeypatch.setenv('LOAD_ENV_FILE', str(env_file))

    assert get_settings(SessionStoreSettings).SESSION_RETENTION_DAYS == 3


def test_missing_env_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        get_settings(SessionStoreSettings, env_file=str(tmp_path / 'nope.env'))


def test_lazy_settings_defer_loading(monkeypatch: pytest.MonkeyPatch) -> None:
    proxy = lazy_settings(SessionStoreSettings)
    # Not instantiated yet, so this still takes effect
    monkeypatch.setenv('SESSION_RETENTION_DAYS', '12')
    assert proxy.SESSION_RETENTION_DAYS == 12


def test_mcp_settings_default_workdir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    assert get_settings(McpServerSettings).WORKDIR == Path.cwd()
