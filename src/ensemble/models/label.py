# src/ensemble/models/label.py
"""Data models for labels attachable to characters."""

from __future__ import annotations

from pydantic import Field, field_validator

from .base_model import EnsembleBaseModel as BaseModel
from .mixins import CreatedAtMixin, IDMixin
from .validators import validate_hex_color, validate_non_empty


class LabelCreate(BaseModel):
    """Payload for creating or replacing a label."""

    name: str = Field(..., min_length=1, max_length=100)
    color: str

    @field_validator("name")
    @classmethod
    def _validate_name(cls, v: str) -> str:
        return validate_non_empty(v)

    @field_validator("color")
    @classmethod
    def _validate_color(cls, v: str) -> str:
        return validate_hex_color(v)


class LabelUpdate(LabelCreate):
    """Full replacement of a label's name and color."""


class Label(IDMixin, CreatedAtMixin):
    """A reusable, named, colored tag."""

    name: str
    color: str


__all__ = ["Label", "LabelCreate", "LabelUpdate"]
