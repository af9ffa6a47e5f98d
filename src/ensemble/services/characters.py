# src/ensemble/services/characters.py
"""Character lifecycle.

Characters always reference an existing group. A character that takes part
in relationships cannot be moved to another group, since its relationships
would then span two groups.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from ensemble.canon import crud
from ensemble.core.logs import get_event_logger
from ensemble.errors import InvalidOperationError, NotFoundError, StoreFailureError
from ensemble.models import Character, CharacterCreate, CharacterUpdate

from .transaction import reading, unit_of_work

event_logger = get_event_logger()


async def _refetch(session: AsyncSession, character_id: str, context: str) -> Character:
    async with reading(session, context):
        character = await crud.get_character(session, character_id)
    if character is None:
        raise StoreFailureError(
            context, LookupError(f"character {character_id} missing after write")
        )
    return character


async def create_character(session: AsyncSession, payload: CharacterCreate) -> Character:
    async with unit_of_work(session, "create character"):
        if not await crud.group_exists(session, payload.group_id):
            raise NotFoundError("group", payload.group_id)
        character_id = await crud.create_character(session, payload)
    return await _refetch(session, character_id, "create character")


async def get_character(session: AsyncSession, character_id: str) -> Character:
    async with reading(session, "get character"):
        character = await crud.get_character(session, character_id)
    if character is None:
        raise NotFoundError("character", character_id)
    return character


async def list_characters(session: AsyncSession) -> list[Character]:
    async with reading(session, "list characters"):
        return await crud.get_all_characters(session)


async def list_characters_by_group(
    session: AsyncSession, group_id: str
) -> list[Character]:
    async with reading(session, "list characters by group"):
        if not await crud.group_exists(session, group_id):
            raise NotFoundError("group", group_id)
        return await crud.get_characters_by_group(session, group_id)


async def update_character(
    session: AsyncSession, character_id: str, payload: CharacterUpdate
) -> Character:
    """Replace a character's fields, keeping its id, timestamps and labels."""
    async with unit_of_work(session, "update character"):
        existing = await crud.get_character(session, character_id)
        if existing is None:
            raise NotFoundError("character", character_id)

        if payload.group_id != existing.group_id:
            if not await crud.group_exists(session, payload.group_id):
                raise NotFoundError("group", payload.group_id)
            if await crud.character_has_relationships(session, character_id):
                event_logger.log_rule_violation(
                    "cross_group",
                    "character with relationships cannot change group",
                    metadata={"character_id": character_id},
                )
                raise InvalidOperationError(
                    "character with relationships cannot change group",
                    details={
                        "character_id": character_id,
                        "group_id": existing.group_id,
                    },
                )

        await crud.update_character(session, character_id, payload)
    return await _refetch(session, character_id, "update character")


async def delete_character(session: AsyncSession, character_id: str) -> None:
    """Delete a character, its label links and every relationship touching it."""
    async with unit_of_work(session, "delete character"):
        if not await crud.character_exists(session, character_id):
            raise NotFoundError("character", character_id)
        await crud.delete_character(session, character_id)


__all__ = [
    "create_character",
    "get_character",
    "list_characters",
    "list_characters_by_group",
    "update_character",
    "delete_character",
]
