# src/ensemble/models/sqlalchemy_models.py
"""SQLAlchemy ORM models for the entity store."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, relationship

from .base import Base


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(UTC)


class GroupSQL(Base):
    """A named collection of characters.

    Deleting a group removes its characters; the store layer also removes
    the group's relationships and label associations explicitly so the
    cascade does not depend on the database enforcing foreign keys.
    """

    __tablename__ = "character_groups"
    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )


class CharacterLabelSQL(Base):
    """Association between a character and a label.

    The composite primary key is what makes a duplicate attachment
    impossible at the store level.
    """

    __tablename__ = "character_labels"
    character_id = Column(
        String(36), ForeignKey("characters.id", ondelete="CASCADE"), primary_key=True
    )
    label_id = Column(
        String(36), ForeignKey("labels.id", ondelete="CASCADE"), primary_key=True
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class LabelSQL(Base):
    """A named, colored tag. Names are unique across all labels."""

    __tablename__ = "labels"
    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(100), nullable=False, unique=True)
    color = Column(String(7), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class CharacterSQL(Base):
    """A character belonging to exactly one group."""

    __tablename__ = "characters"
    id = Column(String(36), primary_key=True, default=_new_id)
    group_id = Column(
        String(36),
        ForeignKey("character_groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(255), nullable=False)
    photo = Column(String(500))
    information = Column(Text, nullable=False, default="")
    related_links = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )
    # Association rows are written through CharacterLabelSQL directly.
    labels: Mapped[list[LabelSQL]] = relationship(
        "LabelSQL",
        secondary="character_labels",
        lazy="selectin",
        viewonly=True,
        order_by="LabelSQL.name",
    )


class RelationshipSQL(Base):
    """Undirected relationship between two characters of the same group.

    ``character1_id``/``character2_id`` always hold the canonical ordering of
    the pair, so the unique constraint covers both directions.
    """

    __tablename__ = "relationships"
    __table_args__ = (
        UniqueConstraint("character1_id", "character2_id", name="uq_relationship_pair"),
        CheckConstraint("character1_id <> character2_id", name="ck_relationship_distinct"),
        Index("ix_relationship_character2", "character2_id"),
    )
    id = Column(String(36), primary_key=True, default=_new_id)
    group_id = Column(
        String(36),
        ForeignKey("character_groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    character1_id = Column(
        String(36), ForeignKey("characters.id", ondelete="CASCADE"), nullable=False
    )
    character2_id = Column(
        String(36), ForeignKey("characters.id", ondelete="CASCADE"), nullable=False
    )
    relationship_type = Column(String(100), nullable=False)
    description = Column(Text)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


__all__ = [
    "GroupSQL",
    "CharacterSQL",
    "CharacterLabelSQL",
    "LabelSQL",
    "RelationshipSQL",
]
