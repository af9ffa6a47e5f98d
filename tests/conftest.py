# tests/conftest.py
from collections.abc import AsyncIterator, Awaitable, Callable

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from ensemble.canon.db import ensure_schema
from ensemble.core.logs import get_event_logger
from ensemble.models import (
    Character,
    CharacterCreate,
    Group,
    GroupCreate,
    Label,
    LabelCreate,
)
from ensemble.services import characters, groups, labels


@pytest_asyncio.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    """In-memory SQLite engine shared by every session of one test."""
    eng = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await ensure_schema(eng)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    async with session_factory() as s:
        yield s


@pytest.fixture(autouse=True)
def _clear_events():
    get_event_logger().clear()
    yield
    get_event_logger().clear()


@pytest.fixture
def make_group(session: AsyncSession) -> Callable[..., Awaitable[Group]]:
    async def _make(name: str = "Fellowship", description: str | None = None) -> Group:
        return await groups.create_group(
            session, GroupCreate(name=name, description=description)
        )

    return _make


@pytest.fixture
def make_character(session: AsyncSession) -> Callable[..., Awaitable[Character]]:
    async def _make(group_id: str, name: str = "Frodo", **fields) -> Character:
        return await characters.create_character(
            session, CharacterCreate(group_id=group_id, name=name, **fields)
        )

    return _make


@pytest.fixture
def make_label(session: AsyncSession) -> Callable[..., Awaitable[Label]]:
    async def _make(name: str = "Hero", color: str = "#FF0000") -> Label:
        return await labels.create_label(session, LabelCreate(name=name, color=color))

    return _make
