# src/ensemble/web/routes.py
"""HTTP routes for groups, characters, labels and relationships."""

from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ensemble.canon import get_pg
from ensemble.models import (
    Character,
    CharacterCreate,
    CharacterUpdate,
    Group,
    GroupCreate,
    GroupUpdate,
    Label,
    LabelCreate,
    LabelUpdate,
    Relationship,
    RelationshipCreate,
    RelationshipUpdate,
)
from ensemble.services import characters, groups, labels, relationships


router = APIRouter(prefix="/api/v1")


async def get_session() -> AsyncIterator[AsyncSession]:
    async with get_pg() as session:
        yield session


SessionDep = Annotated[AsyncSession, Depends(get_session)]


def _no_content() -> Response:
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --------- Groups ---------


@router.get("/groups", response_model=list[Group])
async def get_groups(session: SessionDep):
    return await groups.list_groups(session)


@router.post("/groups", response_model=Group, status_code=status.HTTP_201_CREATED)
async def create_group(payload: GroupCreate, session: SessionDep):
    return await groups.create_group(session, payload)


@router.get("/groups/{group_id}", response_model=Group)
async def get_group(group_id: str, session: SessionDep):
    return await groups.get_group(session, group_id)


@router.put("/groups/{group_id}", response_model=Group)
async def update_group(group_id: str, payload: GroupUpdate, session: SessionDep):
    return await groups.update_group(session, group_id, payload)


@router.delete("/groups/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_group(group_id: str, session: SessionDep):
    await groups.delete_group(session, group_id)
    return _no_content()


# --------- Characters ---------


@router.get("/characters", response_model=list[Character])
async def get_characters(
    session: SessionDep,
    group_id: Annotated[str | None, Query(alias="groupId")] = None,
):
    if group_id:
        return await characters.list_characters_by_group(session, group_id)
    return await characters.list_characters(session)


@router.post(
    "/characters", response_model=Character, status_code=status.HTTP_201_CREATED
)
async def create_character(payload: CharacterCreate, session: SessionDep):
    return await characters.create_character(session, payload)


@router.get("/characters/{character_id}", response_model=Character)
async def get_character(character_id: str, session: SessionDep):
    return await characters.get_character(session, character_id)


@router.put("/characters/{character_id}", response_model=Character)
async def update_character(
    character_id: str, payload: CharacterUpdate, session: SessionDep
):
    return await characters.update_character(session, character_id, payload)


@router.delete("/characters/{character_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_character(character_id: str, session: SessionDep):
    await characters.delete_character(session, character_id)
    return _no_content()


@router.post(
    "/characters/{character_id}/labels/{label_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def add_label_to_character(character_id: str, label_id: str, session: SessionDep):
    await labels.add_label(session, character_id, label_id)
    return _no_content()


@router.delete(
    "/characters/{character_id}/labels/{label_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def remove_label_from_character(
    character_id: str, label_id: str, session: SessionDep
):
    await labels.remove_label(session, character_id, label_id)
    return _no_content()


# --------- Labels ---------


@router.get("/labels", response_model=list[Label])
async def get_labels(session: SessionDep):
    return await labels.list_labels(session)


@router.post("/labels", response_model=Label, status_code=status.HTTP_201_CREATED)
async def create_label(payload: LabelCreate, session: SessionDep):
    return await labels.create_label(session, payload)


@router.get("/labels/{label_id}", response_model=Label)
async def get_label(label_id: str, session: SessionDep):
    return await labels.get_label(session, label_id)


@router.put("/labels/{label_id}", response_model=Label)
async def update_label(label_id: str, payload: LabelUpdate, session: SessionDep):
    return await labels.update_label(session, label_id, payload)


@router.delete("/labels/{label_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_label(label_id: str, session: SessionDep):
    await labels.delete_label(session, label_id)
    return _no_content()


# --------- Relationships ---------


@router.get("/relationships", response_model=list[Relationship])
async def get_relationships(
    session: SessionDep,
    group_id: Annotated[str | None, Query(alias="groupId")] = None,
    character_id: Annotated[str | None, Query(alias="characterId")] = None,
):
    """List relationships, filtered by character first, then by group."""
    if character_id:
        return await relationships.list_relationships_by_character(session, character_id)
    if group_id:
        return await relationships.list_relationships_by_group(session, group_id)
    return await relationships.list_relationships(session)


@router.post(
    "/relationships", response_model=Relationship, status_code=status.HTTP_201_CREATED
)
async def create_relationship(payload: RelationshipCreate, session: SessionDep):
    return await relationships.create_relationship(session, payload)


@router.get("/relationships/{relationship_id}", response_model=Relationship)
async def get_relationship(relationship_id: str, session: SessionDep):
    return await relationships.get_relationship(session, relationship_id)


@router.put("/relationships/{relationship_id}", response_model=Relationship)
async def update_relationship(
    relationship_id: str, payload: RelationshipUpdate, session: SessionDep
):
    return await relationships.update_relationship(session, relationship_id, payload)


@router.delete(
    "/relationships/{relationship_id}", status_code=status.HTTP_204_NO_CONTENT
)
async def delete_relationship(relationship_id: str, session: SessionDep):
    await relationships.delete_relationship(session, relationship_id)
    return _no_content()
