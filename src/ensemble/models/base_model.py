# src/ensemble/models/base_model.py
"""Shared Pydantic base model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class EnsembleBaseModel(BaseModel):
    """Base model reading ORM rows and speaking camelCase on the wire.

    Field names stay snake_case in Python; ``groupId`` and ``group_id`` are
    both accepted as input and the camelCase alias is used when serializing
    by alias. Unknown keys are ignored, so a client cannot smuggle in fields
    the rules derive themselves (such as a relationship's ``groupId``).
    """

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
        validate_assignment=True,
    )


__all__ = ["EnsembleBaseModel"]
