# tests/test_labels.py
import asyncio

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ensemble.canon import crud
from ensemble.canon.db import ensure_schema
from ensemble.core.logs import EventType, get_event_logger
from ensemble.errors import ConflictError, LimitExceededError, NotFoundError
from ensemble.models import CharacterCreate, GroupCreate, LabelCreate, LabelUpdate
from ensemble.services import characters, groups, labels
from ensemble.services.labels import MAX_LABELS_PER_CHARACTER


@pytest_asyncio.fixture
async def hero(make_group, make_character):
    group = await make_group()
    return await make_character(group.id, "X")


@pytest_asyncio.fixture
async def six_labels(make_label):
    return [await make_label(f"L{i}", "#00FF00") for i in range(1, 7)]


@pytest.mark.asyncio
class TestAddLabel:
    """Attach rules: existence first, then duplicate, then the cap."""

    async def test_cap_then_remove_then_add(self, session, hero, six_labels):
        for label in six_labels[:MAX_LABELS_PER_CHARACTER]:
            await labels.add_label(session, hero.id, label.id)

        with pytest.raises(LimitExceededError) as excinfo:
            await labels.add_label(session, hero.id, six_labels[5].id)
        assert excinfo.value.limit == 5

        await labels.remove_label(session, hero.id, six_labels[0].id)
        await labels.add_label(session, hero.id, six_labels[5].id)

        stored = await characters.get_character(session, hero.id)
        assert {label.name for label in stored.labels} == {"L2", "L3", "L4", "L5", "L6"}

    async def test_fifth_label_is_accepted(self, session, hero, six_labels):
        for label in six_labels[:4]:
            await labels.add_label(session, hero.id, label.id)

        await labels.add_label(session, hero.id, six_labels[4].id)

        stored = await characters.get_character(session, hero.id)
        assert len(stored.labels) == 5

    async def test_repeat_attach_is_conflict(self, session, hero, make_label):
        label = await make_label()
        await labels.add_label(session, hero.id, label.id)

        with pytest.raises(ConflictError):
            await labels.add_label(session, hero.id, label.id)

        violations = get_event_logger().get_events(EventType.RULE_VIOLATION)
        assert violations[-1].metadata["rule"] == "label_already_attached"

    async def test_duplicate_checked_before_cap(self, session, hero, six_labels):
        for label in six_labels[:5]:
            await labels.add_label(session, hero.id, label.id)

        with pytest.raises(ConflictError):
            await labels.add_label(session, hero.id, six_labels[0].id)

    async def test_missing_character_checked_before_label(self, session):
        with pytest.raises(NotFoundError) as excinfo:
            await labels.add_label(session, "ghost", "also-ghost")
        assert excinfo.value.entity == "character"

    async def test_missing_label(self, session, hero):
        with pytest.raises(NotFoundError) as excinfo:
            await labels.add_label(session, hero.id, "ghost")
        assert excinfo.value.entity == "label"


@pytest.mark.asyncio
class TestRemoveLabel:
    async def test_removing_unattached_label_succeeds(self, session, hero, make_label):
        label = await make_label()
        await labels.remove_label(session, hero.id, label.id)
        await labels.remove_label(session, hero.id, label.id)

        stored = await characters.get_character(session, hero.id)
        assert stored.labels == []

    async def test_missing_entities_are_not_found(self, session, hero):
        with pytest.raises(NotFoundError):
            await labels.remove_label(session, "ghost", "ghost")
        with pytest.raises(NotFoundError):
            await labels.remove_label(session, hero.id, "ghost")


@pytest.mark.asyncio
class TestLabelCatalogue:
    """Label names are unique and compared case-sensitively."""

    async def test_duplicate_name_is_conflict(self, session, make_label):
        await make_label("Hero")
        with pytest.raises(ConflictError):
            await make_label("Hero")

    async def test_names_differing_in_case_are_distinct(self, session, make_label):
        await make_label("Hero")
        await make_label("hero")

        names = [label.name for label in await labels.list_labels(session)]
        assert sorted(names) == ["Hero", "hero"]

    async def test_rename_to_existing_name_is_conflict(self, session, make_label):
        await make_label("Hero")
        villain = await make_label("Villain", "#000000")

        with pytest.raises(ConflictError):
            await labels.update_label(
                session, villain.id, LabelUpdate(name="Hero", color="#000000")
            )

    async def test_update_keeps_own_name(self, session, make_label):
        label = await make_label("Hero")

        updated = await labels.update_label(
            session, label.id, LabelUpdate(name="Hero", color="#ABCDEF")
        )

        assert updated.color == "#ABCDEF"
        assert updated.created_at == label.created_at

    async def test_delete_detaches_from_characters(self, session, hero, make_label):
        label = await make_label()
        await labels.add_label(session, hero.id, label.id)

        await labels.delete_label(session, label.id)

        stored = await characters.get_character(session, hero.id)
        assert stored.labels == []
        with pytest.raises(NotFoundError):
            await labels.get_label(session, label.id)

    async def test_invalid_color_is_rejected(self):
        with pytest.raises(ValueError):
            LabelCreate(name="Hero", color="red")


@pytest.mark.asyncio
class TestStoreEnforcement:
    """The store refuses what the pre-checks would have refused."""

    async def test_duplicate_attachment_refused_by_primary_key(
        self, session, hero, make_label, monkeypatch
    ):
        label = await make_label()
        await labels.add_label(session, hero.id, label.id)

        async def _never_attached(*_args, **_kwargs):
            return False

        monkeypatch.setattr(crud, "character_has_label", _never_attached)

        with pytest.raises(ConflictError) as excinfo:
            await labels.add_label(session, hero.id, label.id)
        assert excinfo.value.message == labels.ALREADY_ATTACHED_MESSAGE

        stored = await characters.get_character(session, hero.id)
        assert [lbl.id for lbl in stored.labels] == [label.id]

    async def test_duplicate_name_refused_by_unique_index(
        self, session, make_label, monkeypatch
    ):
        await make_label("Hero")

        async def _name_free(*_args, **_kwargs):
            return False

        monkeypatch.setattr(crud, "label_name_exists", _name_free)

        with pytest.raises(ConflictError) as excinfo:
            await make_label("Hero")
        assert excinfo.value.message == labels.DUPLICATE_NAME_MESSAGE
        assert len(await labels.list_labels(session)) == 1

    async def test_conditional_insert_stops_at_limit(self, session, hero, six_labels):
        for label in six_labels[:MAX_LABELS_PER_CHARACTER]:
            assert await crud.add_label_association(
                session, hero.id, label.id, limit=MAX_LABELS_PER_CHARACTER
            )

        inserted = await crud.add_label_association(
            session, hero.id, six_labels[5].id, limit=MAX_LABELS_PER_CHARACTER
        )

        assert inserted is False
        assert await crud.count_character_labels(session, hero.id) == 5
        await session.rollback()

    async def test_cap_ignores_stale_count(self, session, hero, six_labels, monkeypatch):
        for label in six_labels[:MAX_LABELS_PER_CHARACTER]:
            await labels.add_label(session, hero.id, label.id)

        async def _stale_count(*_args, **_kwargs):
            return MAX_LABELS_PER_CHARACTER - 1

        monkeypatch.setattr(crud, "count_character_labels", _stale_count)

        with pytest.raises(LimitExceededError):
            await labels.add_label(session, hero.id, six_labels[5].id)

        stored = await characters.get_character(session, hero.id)
        assert len(stored.labels) == MAX_LABELS_PER_CHARACTER


@pytest.mark.asyncio
class TestConcurrentAttach:
    """Two writers racing for the last slot on a file-backed database."""

    async def test_only_one_writer_gets_the_last_slot(self, tmp_path, monkeypatch):
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'race.db'}")
        await ensure_schema(engine)
        factory = async_sessionmaker(
            bind=engine, class_=AsyncSession, expire_on_commit=False
        )
        try:
            async with factory() as setup:
                group = await groups.create_group(setup, GroupCreate(name="G"))
                hero = await characters.create_character(
                    setup, CharacterCreate(group_id=group.id, name="X")
                )
                label_ids = [
                    (
                        await labels.create_label(
                            setup, LabelCreate(name=f"L{i}", color="#00FF00")
                        )
                    ).id
                    for i in range(1, 7)
                ]
                for label_id in label_ids[:4]:
                    await labels.add_label(setup, hero.id, label_id)

            counted = crud.count_character_labels

            async def _slow_count(session, character_id):
                count = await counted(session, character_id)
                await asyncio.sleep(0.2)
                return count

            monkeypatch.setattr(crud, "count_character_labels", _slow_count)

            async def _attach(label_id):
                async with factory() as session:
                    await labels.add_label(session, hero.id, label_id)

            results = await asyncio.gather(
                _attach(label_ids[4]), _attach(label_ids[5]), return_exceptions=True
            )

            assert sum(r is None for r in results) == 1
            assert sum(isinstance(r, LimitExceededError) for r in results) == 1

            monkeypatch.setattr(crud, "count_character_labels", counted)
            async with factory() as check:
                assert await crud.count_character_labels(check, hero.id) == 5
        finally:
            await engine.dispose()
