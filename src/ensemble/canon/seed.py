# src/ensemble/canon/seed.py
"""Load labels, groups, characters and relationships from a YAML file.

Seed data goes through the same rules as any other caller, so a seed file
that violates an invariant (two relationships for one pair, six labels on a
character, ...) fails the same way an API call would. The file refers to
characters and labels by name::

    labels:
      - {name: Hero, color: "#FF0000"}
    groups:
      - name: Fellowship
        characters:
          - {name: Frodo, labels: [Hero]}
          - {name: Sam}
        relationships:
          - {between: [Frodo, Sam], type: friend}
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from sqlalchemy.ext.asyncio import AsyncSession

from ensemble.core.logs import EventType, Priority, get_event_logger
from ensemble.errors import NotFoundError
from ensemble.models import (
    CharacterCreate,
    GroupCreate,
    LabelCreate,
    RelationshipCreate,
)
from ensemble.services import characters, groups, labels, relationships

event_logger = get_event_logger()


@dataclass
class SeedResult:
    groups: int = 0
    characters: int = 0
    labels: int = 0
    label_assignments: int = 0
    relationships: int = 0


async def load_seed_data(session: AsyncSession, data: dict[str, Any]) -> SeedResult:
    """Create everything described by ``data``."""
    result = SeedResult()

    label_ids: dict[str, str] = {}
    for entry in data.get("labels") or []:
        label = await labels.create_label(session, LabelCreate.model_validate(entry))
        label_ids[label.name] = label.id
        result.labels += 1

    for group_entry in data.get("groups") or []:
        group = await groups.create_group(
            session,
            GroupCreate(
                name=group_entry["name"], description=group_entry.get("description")
            ),
        )
        result.groups += 1

        character_ids: dict[str, str] = {}
        for char_entry in group_entry.get("characters") or []:
            character = await characters.create_character(
                session,
                CharacterCreate.model_validate(
                    {
                        key: value
                        for key, value in char_entry.items()
                        if key != "labels"
                    }
                    | {"group_id": group.id}
                ),
            )
            character_ids[character.name] = character.id
            result.characters += 1

            for label_name in char_entry.get("labels") or []:
                if label_name not in label_ids:
                    raise NotFoundError("label", label_name)
                await labels.add_label(session, character.id, label_ids[label_name])
                result.label_assignments += 1

        for rel_entry in group_entry.get("relationships") or []:
            first, second = rel_entry["between"]
            for name in (first, second):
                if name not in character_ids:
                    raise NotFoundError("character", name)
            await relationships.create_relationship(
                session,
                RelationshipCreate(
                    character1_id=character_ids[first],
                    character2_id=character_ids[second],
                    relationship_type=rel_entry["type"],
                    description=rel_entry.get("description"),
                ),
            )
            result.relationships += 1

    event_logger.log(
        EventType.DATABASE_OPERATION,
        "Seed data loaded",
        Priority.HIGH,
        metadata={"operation": "seed", **result.__dict__},
    )
    return result


async def load_seed_file(session: AsyncSession, path: str | Path) -> SeedResult:
    """Load the YAML seed file at ``path``."""
    with open(path, encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    return await load_seed_data(session, data)


__all__ = ["SeedResult", "load_seed_data", "load_seed_file"]
