"""
Schema definitions for wave-sessions.

- messages: transcript records (one JSONL line each) and their content blocks
- session: loaded sessions and catalog summaries
"""

from __future__ import annotations

from wave_sessions.schemas.messages import (
    Block,
    CommandOutputBlock,
    CompressBlock,
    DiffBlock,
    Message,
    TextBlock,
    ToolCallBlock,
    ToolResultBlock,
    UnknownBlock,
    Usage,
    is_diff_block,
    strip_diff_blocks,
)
from wave_sessions.schemas.session import (
    InvalidRecord,
    SessionData,
    SessionMetadata,
    SessionSummary,
    TranscriptReport,
)

__all__ = [
    'Block',
    'CommandOutputBlock',
    'CompressBlock',
    'DiffBlock',
    'InvalidRecord',
    'Message',
    'SessionData',
    'SessionMetadata',
    'SessionSummary',
    'TextBlock',
    'ToolCallBlock',
    'ToolResultBlock',
    'TranscriptReport',
    'UnknownBlock',
    'Usage',
    'is_diff_block',
    'strip_diff_blocks',
]
