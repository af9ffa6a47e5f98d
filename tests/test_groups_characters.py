# tests/test_groups_characters.py
import pytest

from ensemble.errors import InvalidOperationError, NotFoundError
from ensemble.models import (
    CharacterCreate,
    CharacterUpdate,
    GroupUpdate,
    RelationshipCreate,
)
from ensemble.services import characters, groups, labels, relationships


@pytest.mark.asyncio
class TestGroups:
    async def test_partial_update_keeps_omitted_fields(self, session, make_group):
        group = await make_group("Fellowship", "Nine walkers")

        updated = await groups.update_group(session, group.id, GroupUpdate(name="Company"))

        assert updated.name == "Company"
        assert updated.description == "Nine walkers"
        assert updated.created_at == group.created_at

    async def test_missing_group(self, session):
        with pytest.raises(NotFoundError):
            await groups.get_group(session, "missing")
        with pytest.raises(NotFoundError):
            await groups.update_group(session, "missing", GroupUpdate(name="x"))
        with pytest.raises(NotFoundError):
            await groups.delete_group(session, "missing")

    async def test_delete_cascades_to_members(
        self, session, make_group, make_character, make_label
    ):
        doomed = await make_group("Doomed")
        kept = await make_group("Kept")
        a = await make_character(doomed.id, "A")
        b = await make_character(doomed.id, "B")
        survivor = await make_character(kept.id, "S")
        label = await make_label()
        await labels.add_label(session, a.id, label.id)
        await labels.add_label(session, survivor.id, label.id)
        await relationships.create_relationship(
            session,
            RelationshipCreate(character1_id=a.id, character2_id=b.id, relationship_type="kin"),
        )

        await groups.delete_group(session, doomed.id)

        assert [g.id for g in await groups.list_groups(session)] == [kept.id]
        assert [c.id for c in await characters.list_characters(session)] == [survivor.id]
        assert await relationships.list_relationships(session) == []
        # Labels themselves outlive the characters that carried them.
        assert await labels.get_label(session, label.id)
        stored = await characters.get_character(session, survivor.id)
        assert [lbl.id for lbl in stored.labels] == [label.id]


@pytest.mark.asyncio
class TestCharacters:
    async def test_create_requires_existing_group(self, session):
        with pytest.raises(NotFoundError) as excinfo:
            await characters.create_character(
                session, CharacterCreate(group_id="missing", name="Nobody")
            )
        assert excinfo.value.entity == "group"

    async def test_fields_round_trip(self, session, make_group, make_character):
        group = await make_group()
        created = await make_character(
            group.id,
            "Frodo",
            photo="uploads/frodo.png",
            information="Ring-bearer",
            related_links=[" https://example.org/frodo ", ""],
        )

        assert created.photo == "uploads/frodo.png"
        assert created.information == "Ring-bearer"
        assert created.related_links == ["https://example.org/frodo"]
        assert created.labels == []

    async def test_list_by_group(self, session, make_group, make_character):
        g1 = await make_group("G1")
        g2 = await make_group("G2")
        a = await make_character(g1.id, "A")
        await make_character(g2.id, "B")

        members = await characters.list_characters_by_group(session, g1.id)

        assert [c.id for c in members] == [a.id]
        with pytest.raises(NotFoundError):
            await characters.list_characters_by_group(session, "missing")

    async def test_move_without_relationships(self, session, make_group, make_character):
        g1 = await make_group("G1")
        g2 = await make_group("G2")
        a = await make_character(g1.id, "A")

        moved = await characters.update_character(
            session, a.id, CharacterUpdate(group_id=g2.id, name="A prime")
        )

        assert moved.group_id == g2.id
        assert moved.name == "A prime"
        assert moved.created_at == a.created_at

    async def test_move_with_relationships_is_invalid(
        self, session, make_group, make_character
    ):
        g1 = await make_group("G1")
        g2 = await make_group("G2")
        a = await make_character(g1.id, "A")
        b = await make_character(g1.id, "B")
        await relationships.create_relationship(
            session,
            RelationshipCreate(character1_id=a.id, character2_id=b.id, relationship_type="kin"),
        )

        with pytest.raises(InvalidOperationError):
            await characters.update_character(
                session, b.id, CharacterUpdate(group_id=g2.id, name="B")
            )

        stored = await characters.get_character(session, b.id)
        assert stored.group_id == g1.id

    async def test_move_to_missing_group(self, session, make_group, make_character):
        group = await make_group()
        a = await make_character(group.id, "A")

        with pytest.raises(NotFoundError):
            await characters.update_character(
                session, a.id, CharacterUpdate(group_id="missing", name="A")
            )

    async def test_update_keeps_labels(
        self, session, make_group, make_character, make_label
    ):
        group = await make_group()
        a = await make_character(group.id, "A")
        label = await make_label()
        await labels.add_label(session, a.id, label.id)

        updated = await characters.update_character(
            session, a.id, CharacterUpdate(group_id=group.id, name="A", information="new")
        )

        assert updated.information == "new"
        assert [lbl.name for lbl in updated.labels] == ["Hero"]

    async def test_delete_twice_is_not_found(self, session, make_group, make_character):
        group = await make_group()
        a = await make_character(group.id, "A")

        await characters.delete_character(session, a.id)
        with pytest.raises(NotFoundError):
            await characters.delete_character(session, a.id)
