"""
Transcript record models.

One Message is one line of a session JSONL file:

    {"role":"user","blocks":[{"type":"text","content":"hi"}],"timestamp":"2026-10-17T09:12:44.120931Z"}

Content blocks are a left-to-right union. Block types the agent runtime emits
today are modeled strictly; anything else falls through to UnknownBlock so
records written by newer runtimes still load and round-trip unchanged.

Diff blocks are UI-only (rendered file edits). They are stripped before a
record is persisted - see strip_diff_blocks().
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Annotated, Any, Literal

import pydantic

from wave_sessions.base_model import PermissiveModel, StrictModel
from wave_sessions.types import JsonDatetime, MessageRole

__all__ = [
    'Block',
    'CommandOutputBlock',
    'CompressBlock',
    'DiffBlock',
    'Message',
    'TextBlock',
    'ToolCallBlock',
    'ToolResultBlock',
    'UnknownBlock',
    'Usage',
    'is_diff_block',
    'strip_diff_blocks',
]

# ==============================================================================
# Content Blocks
# ==============================================================================


class TextBlock(StrictModel):
    """Plain text content."""

    type: Literal['text'] = 'text'
    content: str


class ToolCallBlock(StrictModel):
    """Tool invocation requested by the assistant."""

    type: Literal['tool_call'] = 'tool_call'
    id: str
    name: str
    parameters: str | None = None  # Raw JSON arguments as streamed by the model


class ToolResultBlock(StrictModel):
    """Result of a tool invocation, keyed by the originating call ID."""

    type: Literal['tool_result'] = 'tool_result'
    tool_call_id: str
    content: str
    is_error: bool = False


class DiffBlock(StrictModel):
    """Rendered file edit. Display-only: never persisted."""

    type: Literal['diff'] = 'diff'
    path: str
    original: str = ''
    modified: str = ''
    diff_result: list[dict[str, Any]] = pydantic.Field(default_factory=list)
    warning: str | None = None


class CommandOutputBlock(StrictModel):
    """Output of a user-issued shell command (`!ls`)."""

    type: Literal['command_output'] = 'command_output'
    command: str
    output: str = ''
    is_running: bool = False
    exit_code: int | None = None


class CompressBlock(StrictModel):
    """Summary that replaced a compressed range of earlier messages."""

    type: Literal['compress'] = 'compress'
    content: str
    session_id: str | None = None


class UnknownBlock(PermissiveModel):
    """Fallback for block types not modeled above. Extra fields are preserved."""

    type: str


Block = Annotated[
    TextBlock | ToolCallBlock | ToolResultBlock | DiffBlock | CommandOutputBlock | CompressBlock | UnknownBlock,
    pydantic.Field(union_mode='left_to_right'),
]


# ==============================================================================
# Message
# ==============================================================================


class Usage(PermissiveModel):
    """Token usage reported for a model response. Provider-specific counters are kept as extras."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class Message(StrictModel):
    """A single conversation turn."""

    role: MessageRole
    blocks: list[Block]
    usage: Usage | None = None
    timestamp: JsonDatetime | None = None  # Assigned by the store at append time if absent
    metadata: dict[str, Any] | None = None

    @pydantic.field_validator('timestamp')
    @classmethod
    def _assume_utc(cls, v: datetime | None) -> datetime | None:
        """Naive timestamps are treated as UTC so recency comparisons never mix naive and aware."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v


def is_diff_block(block: Block) -> bool:
    """Check by type tag, so a diff that fell through to UnknownBlock is still caught."""
    return block.type == 'diff'


def strip_diff_blocks(message: Message) -> Message | None:
    """
    Remove diff blocks from a message.

    Args:
        message: Message as held by the caller

    Returns:
        The message unchanged if it had no diff blocks, a copy without them
        otherwise, or None if nothing is left to persist.
    """
    kept: Sequence[Block] = [block for block in message.blocks if not is_diff_block(block)]
    if not kept:
        return None
    if len(kept) == len(message.blocks):
        return message
    return message.model_copy(update={'blocks': list(kept)})
