"""Configuration for wave-sessions (pydantic-settings, lazily loaded)."""

from wave_sessions.config.base import SessionStoreSettings, get_settings, lazy_settings, settings

__all__ = ['SessionStoreSettings', 'get_settings', 'lazy_settings', 'settings']
