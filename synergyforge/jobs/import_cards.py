"""
Import a Scryfall card file into the catalog.

Run after downloading bulk card data, then run encode_cards.
"""

import argparse
import asyncio
import logging
from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from synergyforge.db.database import async_session_factory, init_db
from synergyforge.services.catalog import import_cards, load_cards_from_file

logger = logging.getLogger(__name__)


async def run_import(
    path: Path,
    session_factory: async_sessionmaker[AsyncSession] = async_session_factory,
) -> int:
    """
    Load cards from a JSON file and upsert them.

    Returns:
        Number of cards imported
    """
    logger.info("Loading cards from %s...", path)
    cards = load_cards_from_file(path)
    logger.info("Loaded %d cards", len(cards))

    async with session_factory() as session:
        ids = await import_cards(session, cards)
        await session.commit()

    logger.info("Imported %d cards into the catalog", len(ids))
    return len(ids)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Import Scryfall card data into the catalog")
    parser.add_argument("path", type=Path, help="Path to a Scryfall bulk JSON file")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    async def _run() -> None:
        await init_db()
        await run_import(args.path)

    asyncio.run(_run())


if __name__ == "__main__":
    main()
