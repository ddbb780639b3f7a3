"""Service layer for session operations."""

from wave_sessions.services.catalog import SessionCatalog, sort_by_recency
from wave_sessions.services.sessions import SessionService, truncate_content

__all__ = [
    'SessionCatalog',
    'SessionService',
    'sort_by_recency',
    'truncate_content',
]
