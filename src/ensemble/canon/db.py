# src/ensemble/canon/db.py
"""Database engine and session creation, schema setup, and locking helpers."""

from __future__ import annotations

import hashlib
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import BigInteger, bindparam
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncConnection,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.sql import func, select

from ensemble.config import config
from ensemble.core.logs import EventType, Priority, get_event_logger
from ensemble.models import Base

event_logger = get_event_logger()

# Stable lock id for schema creation, truncated to a signed 63-bit BIGINT.
_RAW_SCHEMA_LOCK_ID = 0x456E73656D626C655F534348454D41
SCHEMA_LOCK_ID = int(_RAW_SCHEMA_LOCK_ID & 0x7FFF_FFFF_FFFF_FFFF)

_ENGINE: AsyncEngine | None = None
_SESSION_FACTORY: async_sessionmaker[AsyncSession] | None = None


def configure_engine(url: str | None = None, **engine_kwargs: Any) -> AsyncEngine:
    """Create (or replace) the process engine and session factory."""
    global _ENGINE, _SESSION_FACTORY

    engine_kwargs.setdefault("echo", config.database.echo)
    _ENGINE = create_async_engine(url or config.database.url, **engine_kwargs)
    _SESSION_FACTORY = async_sessionmaker(
        bind=_ENGINE, class_=AsyncSession, expire_on_commit=False
    )
    return _ENGINE


def get_engine() -> AsyncEngine:
    """Return the process engine, creating it from configuration on first use."""
    if _ENGINE is None:
        return configure_engine()
    return _ENGINE


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    if _SESSION_FACTORY is None:
        configure_engine()
    assert _SESSION_FACTORY is not None
    return _SESSION_FACTORY


async def dispose_engine() -> None:
    """Close pooled connections and forget the engine."""
    global _ENGINE, _SESSION_FACTORY
    if _ENGINE is not None:
        await _ENGINE.dispose()
    _ENGINE = None
    _SESSION_FACTORY = None


@asynccontextmanager
async def get_pg() -> AsyncIterator[AsyncSession]:
    """Return a SQLAlchemy asynchronous session."""

    start_time = time.time()
    try:
        async with get_session_factory()() as session:
            yield session
        event_logger.log(
            EventType.DATABASE_OPERATION,
            "Database session completed",
            Priority.LOW,
            metadata={
                "operation": "session",
                "duration": time.time() - start_time,
            },
        )
    except SQLAlchemyError as exc:
        event_logger.log_error_handling_start(
            error_type=type(exc).__name__,
            error_msg=str(exc),
            context="database session",
            metadata={"operation": "session", "duration": time.time() - start_time},
        )
        raise


def dialect_name(session: AsyncSession) -> str:
    return session.get_bind().dialect.name


def advisory_lock_id(key: str) -> int:
    """Map ``key`` onto a signed 64-bit advisory lock id."""
    digest = hashlib.blake2b(key.encode("utf-8"), digest_size=8).digest()
    return int.from_bytes(digest, "big", signed=True)


async def advisory_xact_lock(session: AsyncSession, key: str) -> bool:
    """Serialize transactions touching ``key`` until the current one ends.

    Uses ``pg_advisory_xact_lock`` so the lock is released by commit or
    rollback. Other dialects are left alone and ``False`` is returned; callers
    must not rely on the lock there.
    """
    if dialect_name(session) != "postgresql":
        return False

    lock_id = advisory_lock_id(key)
    # Typed bindparam (BIGINT) to satisfy the function signature with psycopg3
    stmt = select(func.pg_advisory_xact_lock(bindparam("id", type_=BigInteger))).params(
        id=lock_id
    )
    await session.execute(stmt)
    event_logger.log(
        EventType.DATABASE_OPERATION,
        f"Acquired transaction advisory lock for {key}",
        Priority.LOW,
        metadata={"operation": "advisory_lock", "lock_id": lock_id},
    )
    return True


async def _create_all(conn: AsyncConnection) -> None:
    if conn.dialect.name == "postgresql":
        stmt = select(
            func.pg_advisory_xact_lock(bindparam("id", type_=BigInteger))
        ).params(id=SCHEMA_LOCK_ID)
        await conn.execute(stmt)
    await conn.run_sync(Base.metadata.create_all)


async def ensure_schema(engine: AsyncEngine | None = None) -> None:
    """Create any missing tables.

    On PostgreSQL the creation runs under an advisory lock so concurrent
    startups (multiple workers, reloaders) do not race each other.
    """
    start_time = time.time()
    engine = engine or get_engine()
    try:
        async with engine.begin() as conn:
            await _create_all(conn)
    except SQLAlchemyError as exc:
        event_logger.log_error_handling_start(
            error_type=type(exc).__name__,
            error_msg=str(exc),
            context="schema initialization",
            metadata={"operation": "schema_ensure", "lock_id": SCHEMA_LOCK_ID},
        )
        raise

    event_logger.log(
        EventType.DATABASE_OPERATION,
        "Database schema ensured",
        Priority.HIGH,
        metadata={
            "operation": "schema_ensure",
            "duration": time.time() - start_time,
            "tables": sorted(Base.metadata.tables),
            "success": True,
        },
    )


async def commit_session(session: AsyncSession) -> None:
    """Explicitly commit the transaction on a session."""

    start_time = time.time()
    await session.commit()
    event_logger.log(
        EventType.DATABASE_OPERATION,
        "Session committed",
        Priority.LOW,
        metadata={
            "operation": "session_commit",
            "duration": time.time() - start_time,
            "success": True,
        },
    )


__all__ = [
    "SCHEMA_LOCK_ID",
    "configure_engine",
    "get_engine",
    "get_session_factory",
    "dispose_engine",
    "get_pg",
    "dialect_name",
    "advisory_lock_id",
    "advisory_xact_lock",
    "ensure_schema",
    "commit_session",
]
