"""
Base configuration for wave-sessions.

Settings only supply defaults: the session root is still passed explicitly
to SessionService, so tests and embedders can run independent catalogs in
one process.
"""

from __future__ import annotations

import os
import pathlib
from typing import Literal, TypeVar

import lazy_object_proxy
import pydantic
import pydantic_settings

T = TypeVar('T', bound='SessionStoreSettings')

DEFAULT_SESSION_ROOT = pathlib.Path.home() / '.wave' / 'projects'


class SessionStoreSettings(pydantic_settings.BaseSettings):
    """Shared configuration for the session store, CLI and MCP server."""

    model_config = pydantic_settings.SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=True,  # Fail fast on misconfiguration
        extra='forbid',  # Reject unknown keys in .env files
    )

    # Application metadata
    APP_NAME: str = 'wave-sessions'
    VERSION: str = '0.1.0'

    # Storage
    SESSION_ROOT: pathlib.Path = DEFAULT_SESSION_ROOT

    # Expiry cleanup
    SESSION_RETENTION_DAYS: int = 30
    RUNTIME_ENV: Literal['production', 'development', 'test'] = 'production'

    @pydantic.field_validator('SESSION_RETENTION_DAYS')
    @classmethod
    def validate_retention(cls, v: int) -> int:
        """Validate retention window is at least one day."""
        if v < 1:
            raise ValueError('SESSION_RETENTION_DAYS must be at least 1')
        return v

    @pydantic.field_validator('SESSION_ROOT')
    @classmethod
    def expand_root(cls, v: pathlib.Path) -> pathlib.Path:
        return v.expanduser()

    @property
    def cleanup_enabled(self) -> bool:
        """Expiry cleanup never runs under test runtimes."""
        return self.RUNTIME_ENV != 'test'


def get_settings(settings_class: type[T], env_file: str | None = None) -> T:
    """
    Build settings from the environment, optionally layered over a .env file.

    The file comes from `env_file` or, failing that, LOAD_ENV_FILE. With
    neither set no file is read, so a stray .env in the working directory
    can't change where sessions are stored.

    Raises:
        FileNotFoundError: If the requested .env file is missing
    """
    requested = env_file or os.getenv('LOAD_ENV_FILE')
    if not requested:
        return settings_class(_env_file=None)

    env_path = pathlib.Path(requested).expanduser().resolve()
    if not env_path.is_file():
        raise FileNotFoundError(f'Settings file not found: {env_path}')
    return settings_class(_env_file=env_path)


def lazy_settings(settings_class: type[T]) -> T:
    """Proxy that builds the settings on first attribute access, so importing stays side-effect free."""
    return lazy_object_proxy.Proxy(lambda: get_settings(settings_class))


# Read on first use, not at import time
settings = lazy_settings(SessionStoreSettings)
