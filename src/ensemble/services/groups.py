# src/ensemble/services/groups.py
"""Group lifecycle."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from ensemble.canon import crud
from ensemble.errors import NotFoundError, StoreFailureError
from ensemble.models import Group, GroupCreate, GroupUpdate

from .transaction import reading, unit_of_work


async def _refetch(session: AsyncSession, group_id: str, context: str) -> Group:
    async with reading(session, context):
        group = await crud.get_group(session, group_id)
    if group is None:
        raise StoreFailureError(context, LookupError(f"group {group_id} missing after write"))
    return group


async def create_group(session: AsyncSession, payload: GroupCreate) -> Group:
    async with unit_of_work(session, "create group"):
        group_id = await crud.create_group(session, payload)
    return await _refetch(session, group_id, "create group")


async def get_group(session: AsyncSession, group_id: str) -> Group:
    async with reading(session, "get group"):
        group = await crud.get_group(session, group_id)
    if group is None:
        raise NotFoundError("group", group_id)
    return group


async def list_groups(session: AsyncSession) -> list[Group]:
    async with reading(session, "list groups"):
        return await crud.get_all_groups(session)


async def update_group(
    session: AsyncSession, group_id: str, payload: GroupUpdate
) -> Group:
    """Apply the provided fields; omitted fields keep their stored value."""
    async with unit_of_work(session, "update group"):
        if not await crud.group_exists(session, group_id):
            raise NotFoundError("group", group_id)
        await crud.update_group(session, group_id, payload)
    return await _refetch(session, group_id, "update group")


async def delete_group(session: AsyncSession, group_id: str) -> None:
    """Delete a group with its characters and their relationships."""
    async with unit_of_work(session, "delete group"):
        if not await crud.group_exists(session, group_id):
            raise NotFoundError("group", group_id)
        await crud.delete_group(session, group_id)


__all__ = ["create_group", "get_group", "list_groups", "update_group", "delete_group"]
