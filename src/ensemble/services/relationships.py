# src/ensemble/services/relationships.py
"""Consistency rules for relationships between characters.

The set of stored relationships must always satisfy three invariants:

* no character is related to itself;
* both characters belong to the same group, and the relationship's
  ``group_id`` is that group;
* at most one relationship exists per unordered pair of characters.

Every mutation below checks these before writing, canonicalizes the pair
(see :mod:`ensemble.services.pairing`) and commits as a single unit. The
duplicate-pair check is backed by the ``uq_relationship_pair`` constraint,
so two concurrent creators of the same pair cannot both succeed.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from ensemble.canon import crud
from ensemble.core.logs import EventType, Priority, get_event_logger
from ensemble.errors import (
    ConflictError,
    InvalidOperationError,
    NotFoundError,
    StoreFailureError,
)
from ensemble.models import Relationship, RelationshipCreate, RelationshipUpdate

from .pairing import CharacterPair, canonical_pair, same_pair
from .transaction import reading, unit_of_work

event_logger = get_event_logger()

DUPLICATE_PAIR_MESSAGE = "relationship already exists between these characters"


def _reject_self_relationship(pair: CharacterPair) -> None:
    if pair.is_self_pair:
        event_logger.log_rule_violation(
            "self_relationship",
            "cannot create relationship between the same character",
            metadata={"character_id": pair.first},
        )
        raise InvalidOperationError(
            "cannot create relationship between the same character",
            details={"character_id": pair.first},
        )


async def _shared_group_id(
    session: AsyncSession, character1_id: str, character2_id: str
) -> str:
    """Return the group both characters belong to.

    Raises :class:`NotFoundError` if either character is missing and
    :class:`InvalidOperationError` if they sit in different groups.
    """
    for character_id in (character1_id, character2_id):
        if not await crud.character_exists(session, character_id):
            raise NotFoundError("character", character_id)

    group1 = await crud.get_character_group_id(session, character1_id)
    group2 = await crud.get_character_group_id(session, character2_id)
    if group1 is None:
        raise NotFoundError("character", character1_id)
    if group2 is None:
        raise NotFoundError("character", character2_id)
    if group1 != group2:
        event_logger.log_rule_violation(
            "cross_group",
            "characters must be in the same group",
            metadata={"groups": [group1, group2]},
        )
        raise InvalidOperationError(
            "characters must be in the same group",
            details={
                "character1_group_id": group1,
                "character2_group_id": group2,
            },
        )
    return group1


async def _reject_duplicate_pair(session: AsyncSession, pair: CharacterPair) -> None:
    if await crud.relationship_exists_between(session, pair.first, pair.second):
        event_logger.log_rule_violation(
            "duplicate_pair", DUPLICATE_PAIR_MESSAGE, metadata={"pair": list(pair)}
        )
        raise ConflictError(
            DUPLICATE_PAIR_MESSAGE,
            details={"character1_id": pair.first, "character2_id": pair.second},
        )


async def _refetch(session: AsyncSession, relationship_id: str, context: str) -> Relationship:
    async with reading(session, context):
        stored = await crud.get_relationship(session, relationship_id)
    if stored is None:
        raise StoreFailureError(
            context, LookupError(f"relationship {relationship_id} missing after write")
        )
    return stored


async def create_relationship(
    session: AsyncSession, payload: RelationshipCreate
) -> Relationship:
    """Create a relationship between two characters of the same group."""
    context = "create relationship"
    pair = canonical_pair(payload.character1_id, payload.character2_id)
    _reject_self_relationship(pair)

    async with unit_of_work(session, context, conflict_message=DUPLICATE_PAIR_MESSAGE):
        group_id = await _shared_group_id(
            session, payload.character1_id, payload.character2_id
        )
        await _reject_duplicate_pair(session, pair)
        relationship_id = await crud.create_relationship(
            session,
            group_id=group_id,
            pair=pair,
            relationship_type=payload.relationship_type,
            description=payload.description,
        )

    event_logger.log(
        EventType.RULE_CHECK,
        f"Created relationship {relationship_id}",
        Priority.NORMAL,
        component="relationships",
        metadata={"group_id": group_id, "pair": list(pair)},
    )
    return await _refetch(session, relationship_id, context)


async def update_relationship(
    session: AsyncSession, relationship_id: str, payload: RelationshipUpdate
) -> Relationship:
    """Rewrite a relationship's pair, type and description.

    When the unordered pair is unchanged the stored ``group_id`` is kept
    as-is; it was validated at creation. A changed pair is validated like a
    new relationship and may not collide with another existing one.
    """
    context = "update relationship"

    async with unit_of_work(session, context, conflict_message=DUPLICATE_PAIR_MESSAGE):
        existing = await crud.get_relationship(session, relationship_id)
        if existing is None:
            raise NotFoundError("relationship", relationship_id)

        pair = canonical_pair(payload.character1_id, payload.character2_id)
        _reject_self_relationship(pair)

        if same_pair(pair, (existing.character1_id, existing.character2_id)):
            group_id = existing.group_id
        else:
            group_id = await _shared_group_id(
                session, payload.character1_id, payload.character2_id
            )
            await _reject_duplicate_pair(session, pair)

        await crud.update_relationship(
            session,
            existing.id,
            group_id=group_id,
            pair=pair,
            relationship_type=payload.relationship_type,
            description=payload.description,
        )

    return await _refetch(session, relationship_id, context)


async def delete_relationship(session: AsyncSession, relationship_id: str) -> None:
    async with unit_of_work(session, "delete relationship"):
        if not await crud.relationship_exists(session, relationship_id):
            raise NotFoundError("relationship", relationship_id)
        await crud.delete_relationship(session, relationship_id)


async def get_relationship(session: AsyncSession, relationship_id: str) -> Relationship:
    async with reading(session, "get relationship"):
        relationship = await crud.get_relationship(session, relationship_id)
    if relationship is None:
        raise NotFoundError("relationship", relationship_id)
    return relationship


async def list_relationships(session: AsyncSession) -> list[Relationship]:
    async with reading(session, "list relationships"):
        return await crud.get_all_relationships(session)


async def list_relationships_by_group(
    session: AsyncSession, group_id: str
) -> list[Relationship]:
    async with reading(session, "list relationships by group"):
        return await crud.get_relationships_by_group(session, group_id)


async def list_relationships_by_character(
    session: AsyncSession, character_id: str
) -> list[Relationship]:
    """Relationships touching ``character_id`` in either position.

    An unknown character raises :class:`NotFoundError`; a known character
    with no relationships yields an empty list.
    """
    async with reading(session, "list relationships by character"):
        if not await crud.character_exists(session, character_id):
            raise NotFoundError("character", character_id)
        return await crud.get_relationships_by_character(session, character_id)


__all__ = [
    "DUPLICATE_PAIR_MESSAGE",
    "create_relationship",
    "update_relationship",
    "delete_relationship",
    "get_relationship",
    "list_relationships",
    "list_relationships_by_group",
    "list_relationships_by_character",
]
