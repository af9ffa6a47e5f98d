# src/ensemble/models/character.py
"""Data models for characters."""

from __future__ import annotations

from pydantic import Field, field_validator

from .base_model import EnsembleBaseModel as BaseModel
from .label import Label
from .mixins import IDMixin, TimestampsMixin
from .validators import clean_links, validate_non_empty


class CharacterCreate(BaseModel):
    """Payload for creating a character.

    ``photo`` is an opaque storage path; it is stored and returned as-is.
    """

    group_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=255)
    photo: str | None = Field(default=None, max_length=500)
    information: str = ""
    related_links: list[str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def _validate_name(cls, v: str) -> str:
        return validate_non_empty(v)

    @field_validator("related_links")
    @classmethod
    def _validate_links(cls, v: list[str]) -> list[str]:
        return clean_links(v)


class CharacterUpdate(CharacterCreate):
    """Full replacement of a character's editable fields."""


class Character(IDMixin, TimestampsMixin):
    """A character together with its attached labels."""

    group_id: str
    name: str
    photo: str | None = None
    information: str = ""
    related_links: list[str] = Field(default_factory=list)
    labels: list[Label] = Field(default_factory=list)

    @field_validator("information", mode="before")
    @classmethod
    def _none_as_empty(cls, v: str | None) -> str:
        return v or ""

    @field_validator("related_links", mode="before")
    @classmethod
    def _links_from_store(cls, v: list[str] | None) -> list[str]:
        return clean_links(v)


__all__ = ["Character", "CharacterCreate", "CharacterUpdate"]
