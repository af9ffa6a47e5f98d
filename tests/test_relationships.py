# tests/test_relationships.py
import pytest
import pytest_asyncio

from ensemble.canon import crud
from ensemble.core.logs import EventType, get_event_logger
from ensemble.errors import (
    ConflictError,
    InvalidOperationError,
    NotFoundError,
)
from ensemble.models import RelationshipCreate, RelationshipUpdate
from ensemble.services import characters, relationships


@pytest_asyncio.fixture
async def cast(make_group, make_character):
    """Group G1 with characters A and B, group G2 with character C."""
    g1 = await make_group("G1")
    g2 = await make_group("G2")
    a = await make_character(g1.id, "A")
    b = await make_character(g1.id, "B")
    c = await make_character(g2.id, "C")
    return {"g1": g1, "g2": g2, "a": a, "b": b, "c": c}


def _payload(first: str, second: str, kind: str = "sibling", **extra) -> dict:
    return {
        "character1Id": first,
        "character2Id": second,
        "relationshipType": kind,
        **extra,
    }


@pytest.mark.asyncio
class TestCreateRelationship:
    """Creation rules: same group, no self pairs, one relationship per pair."""

    async def test_scenario_from_two_groups(self, session, cast):
        a, b, c = cast["a"], cast["b"], cast["c"]

        created = await relationships.create_relationship(
            session, RelationshipCreate.model_validate(_payload(a.id, b.id))
        )
        assert created.group_id == cast["g1"].id
        assert created.relationship_type == "sibling"

        with pytest.raises(InvalidOperationError):
            await relationships.create_relationship(
                session, RelationshipCreate.model_validate(_payload(a.id, c.id, "friend"))
            )

        with pytest.raises(ConflictError):
            await relationships.create_relationship(
                session, RelationshipCreate.model_validate(_payload(b.id, a.id))
            )

        with pytest.raises(InvalidOperationError):
            await relationships.create_relationship(
                session, RelationshipCreate.model_validate(_payload(a.id, a.id, "self"))
            )

        assert len(await relationships.list_relationships(session)) == 1

    async def test_pair_is_stored_in_canonical_order(self, session, cast):
        a, b = cast["a"], cast["b"]
        first, second = sorted([a.id, b.id])

        created = await relationships.create_relationship(
            session, RelationshipCreate.model_validate(_payload(second, first))
        )

        assert (created.character1_id, created.character2_id) == (first, second)

    async def test_lookup_by_either_character_returns_the_single_relationship(
        self, session, cast
    ):
        a, b = cast["a"], cast["b"]
        created = await relationships.create_relationship(
            session, RelationshipCreate.model_validate(_payload(b.id, a.id))
        )

        by_a = await relationships.list_relationships_by_character(session, a.id)
        by_b = await relationships.list_relationships_by_character(session, b.id)

        assert [r.id for r in by_a] == [created.id]
        assert [r.id for r in by_b] == [created.id]

    async def test_self_relationship_checked_before_existence(self, session):
        with pytest.raises(InvalidOperationError):
            await relationships.create_relationship(
                session, RelationshipCreate.model_validate(_payload("ghost", "ghost"))
            )

    async def test_missing_character_is_not_found(self, session, cast):
        with pytest.raises(NotFoundError) as excinfo:
            await relationships.create_relationship(
                session,
                RelationshipCreate.model_validate(_payload(cast["a"].id, "ghost")),
            )
        assert excinfo.value.entity == "character"
        assert excinfo.value.entity_id == "ghost"

    async def test_group_id_in_payload_is_ignored(self, session, cast):
        created = await relationships.create_relationship(
            session,
            RelationshipCreate.model_validate(
                _payload(cast["a"].id, cast["b"].id, groupId=cast["g2"].id)
            ),
        )
        assert created.group_id == cast["g1"].id

    async def test_store_constraint_surfaces_as_conflict(self, session, cast, monkeypatch):
        a, b = cast["a"], cast["b"]
        await relationships.create_relationship(
            session, RelationshipCreate.model_validate(_payload(a.id, b.id))
        )

        async def _never_exists(*_args, **_kwargs):
            return False

        # Simulates a concurrent creator that passed the pre-check first.
        monkeypatch.setattr(crud, "relationship_exists_between", _never_exists)

        with pytest.raises(ConflictError):
            await relationships.create_relationship(
                session, RelationshipCreate.model_validate(_payload(b.id, a.id))
            )

        assert len(await relationships.list_relationships(session)) == 1
        rollbacks = get_event_logger().get_events(EventType.ERROR_ROLLBACK)
        assert rollbacks


@pytest.mark.asyncio
class TestUpdateRelationship:
    """Updates keep id, creation time and, for an unchanged pair, the group."""

    async def test_unchanged_pair_keeps_group_id(self, session, cast):
        a, b = cast["a"], cast["b"]
        created = await relationships.create_relationship(
            session, RelationshipCreate.model_validate(_payload(a.id, b.id))
        )

        updated = await relationships.update_relationship(
            session,
            created.id,
            RelationshipUpdate.model_validate(
                _payload(b.id, a.id, "rival", groupId=cast["g2"].id, description="old feud")
            ),
        )

        assert updated.id == created.id
        assert updated.group_id == cast["g1"].id
        assert updated.relationship_type == "rival"
        assert updated.description == "old feud"
        assert updated.created_at == created.created_at

    async def test_changed_pair_is_revalidated(self, session, cast, make_character):
        a, b = cast["a"], cast["b"]
        d = await make_character(cast["g1"].id, "D")
        created = await relationships.create_relationship(
            session, RelationshipCreate.model_validate(_payload(a.id, b.id))
        )

        with pytest.raises(InvalidOperationError):
            await relationships.update_relationship(
                session,
                created.id,
                RelationshipUpdate.model_validate(_payload(a.id, cast["c"].id)),
            )

        updated = await relationships.update_relationship(
            session,
            created.id,
            RelationshipUpdate.model_validate(_payload(d.id, a.id, "mentor")),
        )
        assert (updated.character1_id, updated.character2_id) == tuple(sorted([a.id, d.id]))
        assert updated.group_id == cast["g1"].id

    async def test_changed_pair_colliding_with_another_is_conflict(
        self, session, cast, make_character
    ):
        a, b = cast["a"], cast["b"]
        d = await make_character(cast["g1"].id, "D")
        await relationships.create_relationship(
            session, RelationshipCreate.model_validate(_payload(a.id, b.id))
        )
        other = await relationships.create_relationship(
            session, RelationshipCreate.model_validate(_payload(a.id, d.id))
        )

        with pytest.raises(ConflictError):
            await relationships.update_relationship(
                session,
                other.id,
                RelationshipUpdate.model_validate(_payload(b.id, a.id)),
            )

    async def test_update_to_self_pair_is_invalid(self, session, cast):
        created = await relationships.create_relationship(
            session,
            RelationshipCreate.model_validate(_payload(cast["a"].id, cast["b"].id)),
        )
        with pytest.raises(InvalidOperationError):
            await relationships.update_relationship(
                session,
                created.id,
                RelationshipUpdate.model_validate(_payload(cast["a"].id, cast["a"].id)),
            )

    async def test_missing_relationship_is_not_found(self, session, cast):
        with pytest.raises(NotFoundError):
            await relationships.update_relationship(
                session,
                "missing",
                RelationshipUpdate.model_validate(_payload(cast["a"].id, cast["a"].id)),
            )


@pytest.mark.asyncio
class TestDeleteAndQueries:
    async def test_delete_twice_is_not_found(self, session, cast):
        created = await relationships.create_relationship(
            session,
            RelationshipCreate.model_validate(_payload(cast["a"].id, cast["b"].id)),
        )

        await relationships.delete_relationship(session, created.id)
        with pytest.raises(NotFoundError):
            await relationships.delete_relationship(session, created.id)
        with pytest.raises(NotFoundError):
            await relationships.get_relationship(session, created.id)

    async def test_unknown_character_differs_from_character_without_relationships(
        self, session, cast
    ):
        with pytest.raises(NotFoundError):
            await relationships.list_relationships_by_character(session, "ghost")

        assert await relationships.list_relationships_by_character(session, cast["c"].id) == []

    async def test_list_by_group(self, session, cast):
        created = await relationships.create_relationship(
            session,
            RelationshipCreate.model_validate(_payload(cast["a"].id, cast["b"].id)),
        )

        in_g1 = await relationships.list_relationships_by_group(session, cast["g1"].id)
        in_g2 = await relationships.list_relationships_by_group(session, cast["g2"].id)

        assert [r.id for r in in_g1] == [created.id]
        assert in_g2 == []

    async def test_deleting_a_character_removes_its_relationships(self, session, cast):
        await relationships.create_relationship(
            session,
            RelationshipCreate.model_validate(_payload(cast["a"].id, cast["b"].id)),
        )

        await characters.delete_character(session, cast["b"].id)

        assert await relationships.list_relationships(session) == []
        assert await relationships.list_relationships_by_character(session, cast["a"].id) == []
