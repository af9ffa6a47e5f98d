# src/ensemble/canon/crud.py
"""Entity store primitives for groups, characters, labels and relationships.

Every function takes the session first and only flushes; committing and
rolling back is left to the rule layer so a rule can validate, write and
commit as one unit. Reads use ``populate_existing`` so rows written through
bulk statements are never served stale from the identity map.
"""

from __future__ import annotations

import functools
import time
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any, ParamSpec, TypeVar

from sqlalchemy import DateTime, bindparam, delete, or_, select, update
from sqlalchemy import text as sa_text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ensemble.core.logs import EventType, Priority, get_event_logger
from ensemble.models import (
    Character,
    CharacterCreate,
    CharacterLabelSQL,
    CharacterSQL,
    CharacterUpdate,
    Group,
    GroupCreate,
    GroupSQL,
    GroupUpdate,
    Label,
    LabelCreate,
    LabelSQL,
    LabelUpdate,
    Relationship,
    RelationshipSQL,
)
from ensemble.services.pairing import CharacterPair, canonical_pair

P = ParamSpec("P")
R = TypeVar("R")

event_logger = get_event_logger()

_NO_SYNC = {"synchronize_session": False}


def _db_operation(
    operation: str, table: str
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Time a store call and record its outcome as a database event."""

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            start_time = time.time()
            try:
                result = await func(*args, **kwargs)
            except SQLAlchemyError as exc:
                event_logger.log_error_handling_start(
                    error_type=type(exc).__name__,
                    error_msg=str(exc),
                    context=f"{func.__name__}",
                    metadata={
                        "operation": operation,
                        "table": table,
                        "duration": time.time() - start_time,
                    },
                )
                raise
            event_logger.log(
                EventType.DATABASE_OPERATION,
                func.__name__,
                Priority.LOW,
                metadata={
                    "operation": operation,
                    "table": table,
                    "duration": time.time() - start_time,
                    "success": True,
                },
            )
            return result

        return wrapper

    return decorator


async def _count(session: AsyncSession, sql: str, params: dict[str, Any]) -> int:
    result = await session.execute(sa_text(sql), params)
    return int(result.scalar_one())


# --------- Groups ---------


@_db_operation("insert", "character_groups")
async def create_group(session: AsyncSession, data: GroupCreate) -> str:
    """Insert a group and return its generated id."""
    row = GroupSQL(name=data.name, description=data.description)
    session.add(row)
    await session.flush()
    return row.id


@_db_operation("select", "character_groups")
async def get_group(session: AsyncSession, group_id: str) -> Group | None:
    result = await session.execute(
        select(GroupSQL)
        .where(GroupSQL.id == group_id)
        .execution_options(populate_existing=True)
    )
    row = result.scalars().first()
    return Group.model_validate(row) if row is not None else None


@_db_operation("select", "character_groups")
async def get_all_groups(session: AsyncSession) -> list[Group]:
    result = await session.execute(
        select(GroupSQL)
        .order_by(GroupSQL.created_at, GroupSQL.id)
        .execution_options(populate_existing=True)
    )
    return [Group.model_validate(r) for r in result.scalars().all()]


@_db_operation("update", "character_groups")
async def update_group(session: AsyncSession, group_id: str, data: GroupUpdate) -> None:
    """Apply the fields of ``data`` that were provided."""
    values = data.model_dump(exclude_none=True)
    if not values:
        return
    await session.execute(
        update(GroupSQL)
        .where(GroupSQL.id == group_id)
        .values(**values)
        .execution_options(**_NO_SYNC)
    )


@_db_operation("delete", "character_groups")
async def delete_group(session: AsyncSession, group_id: str) -> None:
    """Delete a group together with its characters, labels links and relationships."""
    member_ids = select(CharacterSQL.id).where(CharacterSQL.group_id == group_id)
    await session.execute(
        delete(RelationshipSQL)
        .where(RelationshipSQL.group_id == group_id)
        .execution_options(**_NO_SYNC)
    )
    await session.execute(
        delete(CharacterLabelSQL)
        .where(CharacterLabelSQL.character_id.in_(member_ids))
        .execution_options(**_NO_SYNC)
    )
    await session.execute(
        delete(CharacterSQL)
        .where(CharacterSQL.group_id == group_id)
        .execution_options(**_NO_SYNC)
    )
    await session.execute(
        delete(GroupSQL).where(GroupSQL.id == group_id).execution_options(**_NO_SYNC)
    )


@_db_operation("count", "character_groups")
async def group_exists(session: AsyncSession, group_id: str) -> bool:
    return (
        await _count(
            session, "SELECT COUNT(*) FROM character_groups WHERE id = :id", {"id": group_id}
        )
        > 0
    )


# --------- Characters ---------


@_db_operation("insert", "characters")
async def create_character(session: AsyncSession, data: CharacterCreate) -> str:
    """Insert a character and return its generated id."""
    row = CharacterSQL(
        group_id=data.group_id,
        name=data.name,
        photo=data.photo,
        information=data.information,
        related_links=list(data.related_links),
    )
    session.add(row)
    await session.flush()
    return row.id


@_db_operation("select", "characters")
async def get_character(session: AsyncSession, character_id: str) -> Character | None:
    result = await session.execute(
        select(CharacterSQL)
        .where(CharacterSQL.id == character_id)
        .execution_options(populate_existing=True)
    )
    row = result.scalars().first()
    return Character.model_validate(row) if row is not None else None


@_db_operation("select", "characters")
async def get_all_characters(session: AsyncSession) -> list[Character]:
    result = await session.execute(
        select(CharacterSQL)
        .order_by(CharacterSQL.created_at, CharacterSQL.id)
        .execution_options(populate_existing=True)
    )
    return [Character.model_validate(r) for r in result.scalars().all()]


@_db_operation("select", "characters")
async def get_characters_by_group(
    session: AsyncSession, group_id: str
) -> list[Character]:
    result = await session.execute(
        select(CharacterSQL)
        .where(CharacterSQL.group_id == group_id)
        .order_by(CharacterSQL.created_at, CharacterSQL.id)
        .execution_options(populate_existing=True)
    )
    return [Character.model_validate(r) for r in result.scalars().all()]


@_db_operation("update", "characters")
async def update_character(
    session: AsyncSession, character_id: str, data: CharacterUpdate
) -> None:
    """Replace the editable fields; id and ``created_at`` are untouched."""
    await session.execute(
        update(CharacterSQL)
        .where(CharacterSQL.id == character_id)
        .values(
            group_id=data.group_id,
            name=data.name,
            photo=data.photo,
            information=data.information,
            related_links=list(data.related_links),
        )
        .execution_options(**_NO_SYNC)
    )


@_db_operation("delete", "characters")
async def delete_character(session: AsyncSession, character_id: str) -> None:
    """Delete a character, its label links and every relationship touching it."""
    await session.execute(
        delete(RelationshipSQL)
        .where(
            or_(
                RelationshipSQL.character1_id == character_id,
                RelationshipSQL.character2_id == character_id,
            )
        )
        .execution_options(**_NO_SYNC)
    )
    await session.execute(
        delete(CharacterLabelSQL)
        .where(CharacterLabelSQL.character_id == character_id)
        .execution_options(**_NO_SYNC)
    )
    await session.execute(
        delete(CharacterSQL)
        .where(CharacterSQL.id == character_id)
        .execution_options(**_NO_SYNC)
    )


@_db_operation("count", "characters")
async def character_exists(session: AsyncSession, character_id: str) -> bool:
    return (
        await _count(
            session, "SELECT COUNT(*) FROM characters WHERE id = :id", {"id": character_id}
        )
        > 0
    )


@_db_operation("select", "characters")
async def get_character_group_id(session: AsyncSession, character_id: str) -> str | None:
    result = await session.execute(
        select(CharacterSQL.group_id).where(CharacterSQL.id == character_id)
    )
    return result.scalar_one_or_none()


@_db_operation("count", "character_labels")
async def character_has_label(
    session: AsyncSession, character_id: str, label_id: str
) -> bool:
    return (
        await _count(
            session,
            "SELECT COUNT(*) FROM character_labels "
            "WHERE character_id = :cid AND label_id = :lid",
            {"cid": character_id, "lid": label_id},
        )
        > 0
    )


@_db_operation("count", "character_labels")
async def count_character_labels(session: AsyncSession, character_id: str) -> int:
    return await _count(
        session,
        "SELECT COUNT(*) FROM character_labels WHERE character_id = :cid",
        {"cid": character_id},
    )


_INSERT_LABEL_WITHIN_LIMIT = sa_text(
    "INSERT INTO character_labels (character_id, label_id, created_at) "
    "SELECT :cid, :lid, :now "
    "WHERE (SELECT COUNT(*) FROM character_labels WHERE character_id = :cid) < :limit"
).bindparams(bindparam("now", type_=DateTime(timezone=True)))


@_db_operation("insert", "character_labels")
async def add_label_association(
    session: AsyncSession, character_id: str, label_id: str, *, limit: int
) -> bool:
    """Attach the label unless the character already carries ``limit`` labels.

    The count and the insert are one statement, so the write lock taken for
    the insert also covers the count. Returns ``False`` when nothing was
    inserted because the character is at the limit.
    """
    result = await session.execute(
        _INSERT_LABEL_WITHIN_LIMIT,
        {"cid": character_id, "lid": label_id, "now": datetime.now(UTC), "limit": limit},
    )
    return bool(result.rowcount)


@_db_operation("delete", "character_labels")
async def remove_label_association(
    session: AsyncSession, character_id: str, label_id: str
) -> int:
    """Delete the association and return how many rows went away (0 or 1)."""
    result = await session.execute(
        delete(CharacterLabelSQL)
        .where(
            CharacterLabelSQL.character_id == character_id,
            CharacterLabelSQL.label_id == label_id,
        )
        .execution_options(**_NO_SYNC)
    )
    return result.rowcount or 0


@_db_operation("count", "relationships")
async def character_has_relationships(session: AsyncSession, character_id: str) -> bool:
    return (
        await _count(
            session,
            "SELECT COUNT(*) FROM relationships "
            "WHERE character1_id = :cid OR character2_id = :cid",
            {"cid": character_id},
        )
        > 0
    )


# --------- Labels ---------


@_db_operation("insert", "labels")
async def create_label(session: AsyncSession, data: LabelCreate) -> str:
    row = LabelSQL(name=data.name, color=data.color)
    session.add(row)
    await session.flush()
    return row.id


@_db_operation("select", "labels")
async def get_label(session: AsyncSession, label_id: str) -> Label | None:
    result = await session.execute(
        select(LabelSQL)
        .where(LabelSQL.id == label_id)
        .execution_options(populate_existing=True)
    )
    row = result.scalars().first()
    return Label.model_validate(row) if row is not None else None


@_db_operation("select", "labels")
async def get_all_labels(session: AsyncSession) -> list[Label]:
    result = await session.execute(
        select(LabelSQL)
        .order_by(LabelSQL.name)
        .execution_options(populate_existing=True)
    )
    return [Label.model_validate(r) for r in result.scalars().all()]


@_db_operation("update", "labels")
async def update_label(session: AsyncSession, label_id: str, data: LabelUpdate) -> None:
    await session.execute(
        update(LabelSQL)
        .where(LabelSQL.id == label_id)
        .values(name=data.name, color=data.color)
        .execution_options(**_NO_SYNC)
    )


@_db_operation("delete", "labels")
async def delete_label(session: AsyncSession, label_id: str) -> None:
    await session.execute(
        delete(CharacterLabelSQL)
        .where(CharacterLabelSQL.label_id == label_id)
        .execution_options(**_NO_SYNC)
    )
    await session.execute(
        delete(LabelSQL).where(LabelSQL.id == label_id).execution_options(**_NO_SYNC)
    )


@_db_operation("count", "labels")
async def label_exists(session: AsyncSession, label_id: str) -> bool:
    return (
        await _count(session, "SELECT COUNT(*) FROM labels WHERE id = :id", {"id": label_id})
        > 0
    )


@_db_operation("count", "labels")
async def label_name_exists(session: AsyncSession, name: str) -> bool:
    """Case-sensitive check for a label called ``name``."""
    return (
        await _count(
            session, "SELECT COUNT(*) FROM labels WHERE name = :name", {"name": name}
        )
        > 0
    )


# --------- Relationships ---------


@_db_operation("insert", "relationships")
async def create_relationship(
    session: AsyncSession,
    *,
    group_id: str,
    pair: CharacterPair,
    relationship_type: str,
    description: str | None,
) -> str:
    """Insert a relationship for an already canonical ``pair``."""
    row = RelationshipSQL(
        group_id=group_id,
        character1_id=pair.first,
        character2_id=pair.second,
        relationship_type=relationship_type,
        description=description,
    )
    session.add(row)
    await session.flush()
    return row.id


@_db_operation("select", "relationships")
async def get_relationship(
    session: AsyncSession, relationship_id: str
) -> Relationship | None:
    result = await session.execute(
        select(RelationshipSQL)
        .where(RelationshipSQL.id == relationship_id)
        .execution_options(populate_existing=True)
    )
    row = result.scalars().first()
    return Relationship.model_validate(row) if row is not None else None


@_db_operation("select", "relationships")
async def get_all_relationships(session: AsyncSession) -> list[Relationship]:
    result = await session.execute(
        select(RelationshipSQL)
        .order_by(RelationshipSQL.created_at, RelationshipSQL.id)
        .execution_options(populate_existing=True)
    )
    return [Relationship.model_validate(r) for r in result.scalars().all()]


@_db_operation("select", "relationships")
async def get_relationships_by_group(
    session: AsyncSession, group_id: str
) -> list[Relationship]:
    result = await session.execute(
        select(RelationshipSQL)
        .where(RelationshipSQL.group_id == group_id)
        .order_by(RelationshipSQL.created_at, RelationshipSQL.id)
        .execution_options(populate_existing=True)
    )
    return [Relationship.model_validate(r) for r in result.scalars().all()]


@_db_operation("select", "relationships")
async def get_relationships_by_character(
    session: AsyncSession, character_id: str
) -> list[Relationship]:
    """Relationships in which ``character_id`` holds either canonical position."""
    result = await session.execute(
        select(RelationshipSQL)
        .where(
            or_(
                RelationshipSQL.character1_id == character_id,
                RelationshipSQL.character2_id == character_id,
            )
        )
        .order_by(RelationshipSQL.created_at, RelationshipSQL.id)
        .execution_options(populate_existing=True)
    )
    return [Relationship.model_validate(r) for r in result.scalars().all()]


@_db_operation("update", "relationships")
async def update_relationship(
    session: AsyncSession,
    relationship_id: str,
    *,
    group_id: str,
    pair: CharacterPair,
    relationship_type: str,
    description: str | None,
) -> None:
    """Rewrite a relationship in place; id and ``created_at`` are untouched."""
    await session.execute(
        update(RelationshipSQL)
        .where(RelationshipSQL.id == relationship_id)
        .values(
            group_id=group_id,
            character1_id=pair.first,
            character2_id=pair.second,
            relationship_type=relationship_type,
            description=description,
        )
        .execution_options(**_NO_SYNC)
    )


@_db_operation("delete", "relationships")
async def delete_relationship(session: AsyncSession, relationship_id: str) -> None:
    await session.execute(
        delete(RelationshipSQL)
        .where(RelationshipSQL.id == relationship_id)
        .execution_options(**_NO_SYNC)
    )


@_db_operation("count", "relationships")
async def relationship_exists(session: AsyncSession, relationship_id: str) -> bool:
    return (
        await _count(
            session,
            "SELECT COUNT(*) FROM relationships WHERE id = :id",
            {"id": relationship_id},
        )
        > 0
    )


@_db_operation("count", "relationships")
async def relationship_exists_between(
    session: AsyncSession, character_a: str, character_b: str
) -> bool:
    """Whether a relationship links the two characters, in either direction."""
    pair = canonical_pair(character_a, character_b)
    return (
        await _count(
            session,
            "SELECT COUNT(*) FROM relationships "
            "WHERE character1_id = :first AND character2_id = :second",
            {"first": pair.first, "second": pair.second},
        )
        > 0
    )


__all__ = [
    "create_group",
    "get_group",
    "get_all_groups",
    "update_group",
    "delete_group",
    "group_exists",
    "create_character",
    "get_character",
    "get_all_characters",
    "get_characters_by_group",
    "update_character",
    "delete_character",
    "character_exists",
    "get_character_group_id",
    "character_has_label",
    "count_character_labels",
    "add_label_association",
    "remove_label_association",
    "character_has_relationships",
    "create_label",
    "get_label",
    "get_all_labels",
    "update_label",
    "delete_label",
    "label_exists",
    "label_name_exists",
    "create_relationship",
    "get_relationship",
    "get_all_relationships",
    "get_relationships_by_group",
    "get_relationships_by_character",
    "update_relationship",
    "delete_relationship",
    "relationship_exists",
    "relationship_exists_between",
]
