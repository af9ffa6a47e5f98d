"""Pydantic models and ORM tables for groups, characters, labels and relationships."""

from .base import Base
from .base_model import EnsembleBaseModel
from .character import Character, CharacterCreate, CharacterUpdate
from .group import Group, GroupCreate, GroupUpdate
from .label import Label, LabelCreate, LabelUpdate
from .mixins import CreatedAtMixin, IDMixin, TimestampsMixin
from .relationship import Relationship, RelationshipCreate, RelationshipUpdate
from .sqlalchemy_models import (
    CharacterLabelSQL,
    CharacterSQL,
    GroupSQL,
    LabelSQL,
    RelationshipSQL,
)

__all__ = [
    "Base",
    "EnsembleBaseModel",
    "IDMixin",
    "CreatedAtMixin",
    "TimestampsMixin",
    "Group",
    "GroupCreate",
    "GroupUpdate",
    "Character",
    "CharacterCreate",
    "CharacterUpdate",
    "Label",
    "LabelCreate",
    "LabelUpdate",
    "Relationship",
    "RelationshipCreate",
    "RelationshipUpdate",
    "GroupSQL",
    "CharacterSQL",
    "CharacterLabelSQL",
    "LabelSQL",
    "RelationshipSQL",
]
