# src/ensemble/bootstrap.py
"""Startup bootstrap: wait for the database, then ensure the schema.

Exposes readiness and status inspection for the health endpoint.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import asdict, dataclass, field
from typing import Any

from sqlalchemy import text as sa_text
from sqlalchemy.exc import SQLAlchemyError

from ensemble.canon.db import ensure_schema, get_pg
from ensemble.config import BootstrapConfig
from ensemble.core.env import load_env
from ensemble.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class _BootstrapStatus:
    started_at: float = 0.0
    finished_at: float | None = None
    db_ready: bool = False
    schema_ready: bool = False
    steps: list[dict[str, Any]] = field(default_factory=list)
    error: str | None = None


_IS_READY: bool = False
_STATUS = _BootstrapStatus()


class BootstrapError(RuntimeError):
    """Bootstrap failed unexpectedly."""


class BootstrapTimeout(TimeoutError):
    """Bootstrap step exceeded timeout."""


def is_ready() -> bool:
    """Return True if bootstrap completed successfully."""
    return _IS_READY


def bootstrap_status() -> dict[str, object]:
    """Return a copy of current bootstrap status."""
    return asdict(_STATUS)


def reset_bootstrap() -> None:
    global _IS_READY, _STATUS
    _IS_READY = False
    _STATUS = _BootstrapStatus()


async def _wait_for_database(
    *, timeout: float, backoff_initial: float, backoff_factor: float, max_attempts: int
) -> None:
    """Wait for the database by running SELECT 1 with exponential backoff."""
    attempt = 0
    delay = backoff_initial
    start = time.monotonic()
    while True:
        attempt += 1
        try:
            async with get_pg() as session:
                await session.execute(sa_text("SELECT 1"))
            _STATUS.db_ready = True
            logger.info("bootstrap.db.ready", extra={"attempt": attempt})
            return
        except (SQLAlchemyError, OSError) as exc:
            elapsed = time.monotonic() - start
            _STATUS.steps.append({"step": "db_wait", "attempt": attempt, "error": str(exc)})
            if elapsed > timeout or attempt >= max_attempts:
                raise BootstrapTimeout(
                    f"Database wait timed out after {elapsed:.1f}s; last error: {exc}"
                ) from exc
            logger.warning("bootstrap.db.retry", extra={"attempt": attempt, "delay": delay})
            await asyncio.sleep(delay)
            delay *= backoff_factor


async def bootstrap_all(settings: BootstrapConfig | None = None) -> None:
    """Run the bootstrap sequence, failing fast on irrecoverable errors.

    Steps:
      1) Load environment
      2) Wait for the database
      3) Create missing tables (when enabled)
      4) Mark ready
    """
    global _IS_READY
    if _IS_READY:
        logger.info("bootstrap.already_ready")
        return

    _STATUS.started_at = time.time()
    _STATUS.finished_at = None
    _STATUS.steps.clear()
    _STATUS.error = None

    settings = settings or load_env().bootstrap

    try:
        await _wait_for_database(
            timeout=settings.db_wait_timeout,
            backoff_initial=settings.backoff_initial,
            backoff_factor=settings.backoff_factor,
            max_attempts=settings.db_wait_attempts,
        )
        if settings.auto_create_schema:
            await ensure_schema()
            _STATUS.schema_ready = True
            logger.info("bootstrap.schema.ready")
    except BootstrapTimeout as exc:
        _STATUS.error = str(exc)
        raise
    except SQLAlchemyError as exc:
        _STATUS.error = str(exc)
        raise BootstrapError(f"Schema initialization failed: {exc}") from exc

    _IS_READY = True
    _STATUS.finished_at = time.time()
    logger.info("bootstrap.ready", extra={"status": bootstrap_status()})


__all__ = [
    "BootstrapError",
    "BootstrapTimeout",
    "bootstrap_all",
    "bootstrap_status",
    "is_ready",
    "reset_bootstrap",
]
