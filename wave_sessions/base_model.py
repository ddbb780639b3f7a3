"""
Shared Pydantic base models.

Layering:
- StrictModel: extra='forbid' - every field must be modeled (fail-fast)
- PermissiveModel: extra='allow' - typed fallback, used last in unions

All Pydantic models in the package inherit from one of these.
"""

from __future__ import annotations

import pydantic

__all__ = ['PermissiveModel', 'StrictModel']


class StrictModel(pydantic.BaseModel):
    """Base model with strict validation settings."""

    model_config = pydantic.ConfigDict(
        extra='forbid',  # Raise error on unexpected fields
        strict=True,  # Strict type validation
        frozen=True,  # Immutable (cannot modify after creation)
    )


class PermissiveModel(pydantic.BaseModel):
    """
    Permissive model for typed fallbacks in unions.

    Use as the LAST type in a left-to-right union so shapes we don't model
    still round-trip through the store unchanged:

        Block = Annotated[
            TextBlock | DiffBlock | UnknownBlock,
            pydantic.Field(union_mode='left_to_right'),
        ]
    """

    model_config = pydantic.ConfigDict(
        extra='allow',  # Accept unknown fields (graceful fallback)
        strict=True,  # Strict type coercion for known fields
        frozen=True,  # Immutable after creation
    )

    def get_extra_fields(self) -> dict[str, object]:
        """Get extra fields captured by this permissive model."""
        return dict(self.__pydantic_extra__ or {})
