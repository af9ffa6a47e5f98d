# src/ensemble/services/transaction.py
"""Run a rule's store calls as one unit and translate store failures."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ensemble.canon.db import commit_session
from ensemble.core.logs import EventType, Priority, get_event_logger
from ensemble.errors import ConflictError, EnsembleError, StoreFailureError

event_logger = get_event_logger()


def is_unique_violation(exc: IntegrityError) -> bool:
    """Whether ``exc`` reports a unique or primary-key violation.

    Drivers that report a SQLSTATE (psycopg) are trusted on it alone; the
    message is only inspected for drivers without one (sqlite3).
    """
    sqlstate = getattr(exc.orig, "sqlstate", None)
    if sqlstate is not None:
        return sqlstate == "23505"
    return "unique" in str(exc.orig).lower()


async def _rollback(session: AsyncSession, context: str, reason: str) -> None:
    await session.rollback()
    event_logger.log(
        EventType.ERROR_ROLLBACK,
        f"Rolled back {context}: {reason}",
        Priority.NORMAL,
        metadata={"context": context},
    )


@asynccontextmanager
async def unit_of_work(
    session: AsyncSession,
    context: str,
    *,
    commit: bool = True,
    conflict_message: str | None = None,
) -> AsyncIterator[None]:
    """Validate-then-commit block.

    Rule errors raised inside the block roll the transaction back and
    propagate unchanged. A unique violation reported by the store becomes a
    :class:`ConflictError` when ``conflict_message`` is given; every other
    store error becomes a :class:`StoreFailureError` chained to the cause.
    """
    try:
        yield
        if commit:
            await commit_session(session)
    except EnsembleError as exc:
        await _rollback(session, context, exc.code)
        raise
    except IntegrityError as exc:
        await _rollback(session, context, type(exc).__name__)
        if conflict_message is not None and is_unique_violation(exc):
            event_logger.log_rule_violation(
                "store_uniqueness", conflict_message, metadata={"context": context}
            )
            raise ConflictError(conflict_message) from exc
        event_logger.log_error_handling_start(
            error_type=type(exc).__name__, error_msg=str(exc), context=context
        )
        raise StoreFailureError(context, exc) from exc
    except SQLAlchemyError as exc:
        await _rollback(session, context, type(exc).__name__)
        event_logger.log_error_handling_start(
            error_type=type(exc).__name__, error_msg=str(exc), context=context
        )
        raise StoreFailureError(context, exc) from exc


def reading(session: AsyncSession, context: str):
    """Read-only variant of :func:`unit_of_work`; nothing is committed."""
    return unit_of_work(session, context, commit=False)


__all__ = ["is_unique_violation", "unit_of_work", "reading"]
