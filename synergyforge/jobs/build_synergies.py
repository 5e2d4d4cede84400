"""
Build the synergy graph.

Runs batch chunks until every catalog card has been compared against the
encoded catalog. Safe to interrupt: the next invocation resumes from the
latest checkpoint.
"""

import argparse
import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from synergyforge.config import settings
from synergyforge.db.database import async_session_factory, init_db
from synergyforge.models.checkpoint import BatchCheckpoint
from synergyforge.services.batch_builder import BatchBuilder
from synergyforge.services.scorer import get_scorer

logger = logging.getLogger(__name__)


async def run_build(
    start_cursor: int | None = None,
    batch_size: int = settings.default_batch_size,
    threshold: float = settings.batch_synergy_threshold,
    once: bool = False,
    session_factory: async_sessionmaker[AsyncSession] = async_session_factory,
) -> list[BatchCheckpoint]:
    """
    Run one chunk, or chunks until the catalog is done.

    Returns:
        Snapshot of every run performed
    """
    builder = BatchBuilder(session_factory, get_scorer())

    if once:
        snapshots = [await builder.run(start_cursor, batch_size, threshold)]
    else:
        snapshots = await builder.run_until_complete(start_cursor, batch_size, threshold)

    last = snapshots[-1]
    logger.info(
        "Synergy build finished %d run(s); cursor at %d, %d associations in last run",
        len(snapshots),
        last.cursor,
        last.associations_created,
    )
    return snapshots


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Build pairwise card synergies")
    parser.add_argument(
        "--start-cursor",
        type=int,
        default=None,
        help="Last processed card id (default: resume from the latest checkpoint)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=settings.default_batch_size,
        help="Cards per run",
    )
    parser.add_argument(
        "--threshold",
        type=float,
        default=settings.batch_synergy_threshold,
        help="Minimum synergy score to store",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single chunk instead of running to completion",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    async def _run() -> None:
        await init_db()
        await run_build(args.start_cursor, args.batch_size, args.threshold, args.once)

    asyncio.run(_run())


if __name__ == "__main__":
    main()
