# src/ensemble/models/relationship.py
"""Data models for undirected character relationships."""

from __future__ import annotations

from pydantic import Field, field_validator

from .base_model import EnsembleBaseModel as BaseModel
from .mixins import CreatedAtMixin, IDMixin
from .validators import validate_non_empty


class RelationshipCreate(BaseModel):
    """Payload for creating a relationship.

    The owning group is never part of the payload; it is derived from the
    two characters.
    """

    character1_id: str = Field(..., min_length=1)
    character2_id: str = Field(..., min_length=1)
    relationship_type: str = Field(..., min_length=1, max_length=100)
    description: str | None = None

    @field_validator("relationship_type")
    @classmethod
    def _validate_type(cls, v: str) -> str:
        return validate_non_empty(v)


class RelationshipUpdate(RelationshipCreate):
    """Full replacement of a relationship's pair, type and description."""


class Relationship(IDMixin, CreatedAtMixin):
    """Stored relationship; ``character1_id``/``character2_id`` are canonical."""

    group_id: str
    character1_id: str
    character2_id: str
    relationship_type: str
    description: str | None = None


__all__ = ["Relationship", "RelationshipCreate", "RelationshipUpdate"]
