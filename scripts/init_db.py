# scripts/init_db.py
"""Create any missing tables in the configured database."""

from __future__ import annotations

from ensemble.canon.db import dispose_engine, ensure_schema
from ensemble.core.logging import get_logger, init_logging

logger = get_logger(__name__)


async def init_db() -> None:
    """Create the schema and release the engine."""
    logger.info("Creating database schema")
    try:
        await ensure_schema()
        logger.info("Database schema ready")
    except Exception as e:
        logger.exception("Failed to create database schema: %s", e)
        raise
    finally:
        await dispose_engine()


if __name__ == "__main__":  # pragma: no cover - CLI execution
    import asyncio

    init_logging()
    asyncio.run(init_db())
