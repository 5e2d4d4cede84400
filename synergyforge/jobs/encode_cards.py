"""
Encode the card catalog.

Computes the characteristic vector of every card that has none or has
one from an older schema version.
"""

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from synergyforge.db.database import async_session_factory, init_db
from synergyforge.services.catalog import EncodingReport, encode_catalog
from synergyforge.services.encoder import CharacteristicEncoder, get_encoder

logger = logging.getLogger(__name__)


async def run_encode(
    session_factory: async_sessionmaker[AsyncSession] = async_session_factory,
    encoder: CharacteristicEncoder | None = None,
) -> EncodingReport:
    """Encode every out-of-date card and commit."""
    encoder = encoder or get_encoder()
    logger.info("Encoding catalog with schema %s...", encoder.schema.version)

    async with session_factory() as session:
        report = await encode_catalog(session, encoder)
        await session.commit()

    logger.info("Encoded %d cards, skipped %d", report.encoded, report.skipped)
    return report


def main() -> None:
    """CLI entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    async def _run() -> None:
        await init_db()
        await run_encode()

    asyncio.run(_run())


if __name__ == "__main__":
    main()
