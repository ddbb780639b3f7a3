"""
Shared type definitions for the wave-sessions package.

Centralizes common type annotations used across multiple modules.
"""

from datetime import datetime
from typing import Annotated, Literal

import pydantic

# Pydantic-enhanced datetime for JSON serialization (allows string→datetime conversion)
JsonDatetime = Annotated[datetime, pydantic.Field(strict=False)]

# Main conversation vs. delegated sub-conversation
SessionType = Literal['main', 'subagent']

MessageRole = Literal['user', 'assistant', 'system', 'tool']
