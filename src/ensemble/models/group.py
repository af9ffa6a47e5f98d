# src/ensemble/models/group.py
"""Data models for character groups."""

from __future__ import annotations

from pydantic import Field, field_validator

from .base_model import EnsembleBaseModel as BaseModel
from .mixins import IDMixin, TimestampsMixin
from .validators import validate_non_empty


class GroupCreate(BaseModel):
    """Payload for creating a group."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None

    @field_validator("name")
    @classmethod
    def _validate_name(cls, v: str) -> str:
        return validate_non_empty(v)


class GroupUpdate(BaseModel):
    """Partial update; fields left as ``None`` keep their stored value."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None

    @field_validator("name")
    @classmethod
    def _validate_name(cls, v: str | None) -> str | None:
        return None if v is None else validate_non_empty(v)


class Group(IDMixin, TimestampsMixin):
    """A named collection of characters."""

    name: str
    description: str | None = None


__all__ = ["Group", "GroupCreate", "GroupUpdate"]
