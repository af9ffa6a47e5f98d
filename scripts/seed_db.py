# scripts/seed_db.py
"""Load a YAML seed file into the configured database."""

from __future__ import annotations

import argparse

from ensemble.canon import get_pg
from ensemble.canon.db import dispose_engine, ensure_schema
from ensemble.canon.seed import load_seed_file
from ensemble.core.logging import get_logger, init_logging

logger = get_logger(__name__)


async def seed_db(path: str) -> None:
    await ensure_schema()
    try:
        async with get_pg() as session:
            result = await load_seed_file(session, path)
        logger.info(
            "Seeded %d groups, %d characters, %d labels, %d relationships",
            result.groups,
            result.characters,
            result.labels,
            result.relationships,
        )
    finally:
        await dispose_engine()


if __name__ == "__main__":  # pragma: no cover - CLI execution
    import asyncio

    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("path", help="YAML file with labels and groups")
    args = parser.parse_args()

    init_logging()
    asyncio.run(seed_db(args.path))
