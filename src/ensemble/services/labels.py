# src/ensemble/services/labels.py
"""Label catalogue and the rules for attaching labels to characters.

A character carries at most :data:`MAX_LABELS_PER_CHARACTER` distinct
labels. Attaching is checked in a fixed order (character, label, already
attached, cap) so callers always see the first violated precondition.

The association row is written by a single conditional insert that only
adds the row while the character is below the cap, so two concurrent
attachers cannot both push a character past it. On PostgreSQL, where each
transaction counts from its own snapshot, the attach also runs under a
transaction-scoped advisory lock keyed by the character. Duplicate
attachment is refused by the association's primary key.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from ensemble.canon import crud
from ensemble.canon.db import advisory_xact_lock
from ensemble.core.logs import EventType, Priority, get_event_logger
from ensemble.errors import (
    ConflictError,
    LimitExceededError,
    NotFoundError,
    StoreFailureError,
)
from ensemble.models import Label, LabelCreate, LabelUpdate

from .transaction import reading, unit_of_work

event_logger = get_event_logger()

MAX_LABELS_PER_CHARACTER = 5

ALREADY_ATTACHED_MESSAGE = "character already has this label"
DUPLICATE_NAME_MESSAGE = "label with this name already exists"


def _limit_exceeded(character_id: str, count: int | None) -> LimitExceededError:
    message = f"character cannot have more than {MAX_LABELS_PER_CHARACTER} labels"
    event_logger.log_rule_violation(
        "label_limit", message, metadata={"character_id": character_id, "count": count}
    )
    return LimitExceededError(message, limit=MAX_LABELS_PER_CHARACTER)


async def add_label(session: AsyncSession, character_id: str, label_id: str) -> None:
    """Attach ``label_id`` to ``character_id``.

    Raises :class:`NotFoundError`, :class:`ConflictError` when the label is
    already attached (including on a repeated call) and
    :class:`LimitExceededError` when the character is at the cap.
    """
    async with unit_of_work(
        session, "add label", conflict_message=ALREADY_ATTACHED_MESSAGE
    ):
        if not await crud.character_exists(session, character_id):
            raise NotFoundError("character", character_id)
        if not await crud.label_exists(session, label_id):
            raise NotFoundError("label", label_id)

        await advisory_xact_lock(session, f"character-labels:{character_id}")

        if await crud.character_has_label(session, character_id, label_id):
            event_logger.log_rule_violation(
                "label_already_attached",
                ALREADY_ATTACHED_MESSAGE,
                metadata={"character_id": character_id, "label_id": label_id},
            )
            raise ConflictError(
                ALREADY_ATTACHED_MESSAGE,
                details={"character_id": character_id, "label_id": label_id},
            )

        count = await crud.count_character_labels(session, character_id)
        if count >= MAX_LABELS_PER_CHARACTER:
            raise _limit_exceeded(character_id, count)

        # A concurrent attacher may have filled the last slot since the count.
        if not await crud.add_label_association(
            session, character_id, label_id, limit=MAX_LABELS_PER_CHARACTER
        ):
            raise _limit_exceeded(character_id, None)

    event_logger.log(
        EventType.RULE_CHECK,
        f"Attached label {label_id} to character {character_id}",
        Priority.NORMAL,
        component="labels",
        metadata={"labels_before": count},
    )


async def remove_label(session: AsyncSession, character_id: str, label_id: str) -> None:
    """Detach ``label_id`` from ``character_id``.

    Both must exist. Detaching a label the character does not carry is a
    successful no-op.
    """
    async with unit_of_work(session, "remove label"):
        if not await crud.character_exists(session, character_id):
            raise NotFoundError("character", character_id)
        if not await crud.label_exists(session, label_id):
            raise NotFoundError("label", label_id)
        removed = await crud.remove_label_association(session, character_id, label_id)

    if not removed:
        event_logger.debug(
            f"Label {label_id} was not attached to character {character_id}",
            component="labels",
        )


async def _refetch(session: AsyncSession, label_id: str, context: str) -> Label:
    async with reading(session, context):
        label = await crud.get_label(session, label_id)
    if label is None:
        raise StoreFailureError(context, LookupError(f"label {label_id} missing after write"))
    return label


async def create_label(session: AsyncSession, payload: LabelCreate) -> Label:
    """Create a label; names are unique and compared case-sensitively."""
    async with unit_of_work(
        session, "create label", conflict_message=DUPLICATE_NAME_MESSAGE
    ):
        if await crud.label_name_exists(session, payload.name):
            raise ConflictError(DUPLICATE_NAME_MESSAGE, details={"name": payload.name})
        label_id = await crud.create_label(session, payload)
    return await _refetch(session, label_id, "create label")


async def get_label(session: AsyncSession, label_id: str) -> Label:
    async with reading(session, "get label"):
        label = await crud.get_label(session, label_id)
    if label is None:
        raise NotFoundError("label", label_id)
    return label


async def list_labels(session: AsyncSession) -> list[Label]:
    async with reading(session, "list labels"):
        return await crud.get_all_labels(session)


async def update_label(
    session: AsyncSession, label_id: str, payload: LabelUpdate
) -> Label:
    async with unit_of_work(
        session, "update label", conflict_message=DUPLICATE_NAME_MESSAGE
    ):
        existing = await crud.get_label(session, label_id)
        if existing is None:
            raise NotFoundError("label", label_id)
        if existing.name != payload.name and await crud.label_name_exists(
            session, payload.name
        ):
            raise ConflictError(DUPLICATE_NAME_MESSAGE, details={"name": payload.name})
        await crud.update_label(session, label_id, payload)
    return await _refetch(session, label_id, "update label")


async def delete_label(session: AsyncSession, label_id: str) -> None:
    """Delete a label and detach it from every character."""
    async with unit_of_work(session, "delete label"):
        if not await crud.label_exists(session, label_id):
            raise NotFoundError("label", label_id)
        await crud.delete_label(session, label_id)


__all__ = [
    "MAX_LABELS_PER_CHARACTER",
    "add_label",
    "remove_label",
    "create_label",
    "get_label",
    "list_labels",
    "update_label",
    "delete_label",
]
