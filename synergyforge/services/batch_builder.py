"""
Batch synergy builder.

Scores a chunk of catalog cards against every encoded card and stores
each pair that meets the run's threshold.

Execution model:
- A run claims the single processing slot before doing any work.
- Cards are processed in ascending id order, one transaction per card:
  that card's associations and the checkpoint advance commit together.
- Any failure after the claim, cancellation included, marks the run
  failed with its cursor at the last committed card, so the next run
  resumes from there.
"""

import asyncio
import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from synergyforge.config import MAX_BATCH_SIZE, PROGRESS_LOG_EVERY, settings
from synergyforge.db.operations import (
    advance_checkpoint,
    card_to_model,
    checkpoint_to_model,
    claim_run,
    clear_associations,
    clear_checkpoints,
    count_cards_after,
    expire_stale_runs,
    fail_run,
    finish_run,
    get_cards_in_chunk,
    get_encoded_cards,
    get_latest_checkpoint,
    list_checkpoints,
    upsert_association,
)
from synergyforge.models.card import Card
from synergyforge.models.checkpoint import BatchCheckpoint
from synergyforge.models.failure import SchemaMismatchError, StoreUnavailableError
from synergyforge.services.scorer import SynergyScorer

logger = logging.getLogger(__name__)


class BatchBuilder:
    """Runs resumable all-pairs scoring over the catalog."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        scorer: SynergyScorer,
        stale_after_seconds: int = settings.stale_run_seconds,
    ):
        self._session_factory = session_factory
        self._scorer = scorer
        self._stale_after = timedelta(seconds=stale_after_seconds)

    async def run(
        self,
        start_cursor: int | None = None,
        batch_size: int | None = None,
        threshold: float | None = None,
    ) -> BatchCheckpoint:
        """
        Process up to batch_size cards with id > start_cursor.

        Args:
            start_cursor: Last processed card id. None resumes from the
                latest checkpoint (0 if there is none).
            batch_size: Cards in this chunk (default from settings)
            threshold: Minimum score stored by this run (default from settings)

        Returns:
            The completed run's checkpoint snapshot

        Raises:
            ValueError: If batch_size or threshold is out of range
            SchemaMismatchError: If a stored vector is not from the scorer's schema
            ConflictingRunError: If another run is processing
            StoreUnavailableError: If the database fails mid-run
        """
        if batch_size is None:
            batch_size = settings.default_batch_size
        if threshold is None:
            threshold = settings.batch_synergy_threshold
        if not 1 <= batch_size <= MAX_BATCH_SIZE:
            msg = f"batch_size must be between 1 and {MAX_BATCH_SIZE}, got {batch_size}"
            raise ValueError(msg)
        if not 0.0 <= threshold <= 1.0:
            msg = f"threshold must be between 0 and 1, got {threshold}"
            raise ValueError(msg)
        if start_cursor is not None and start_cursor < 0:
            msg = f"start_cursor must not be negative, got {start_cursor}"
            raise ValueError(msg)

        try:
            catalog = await self._load_catalog()
            run_id, cursor, chunk = await self._claim(start_cursor, batch_size, threshold)
        except (SQLAlchemyError, OSError) as e:
            logger.error("Batch run could not start: %s", e)
            raise StoreUnavailableError(detail=str(e)) from e

        logger.info(
            "Batch run %d claimed: %d cards after cursor %d, threshold %.2f",
            run_id,
            len(chunk),
            cursor,
            threshold,
        )

        try:
            for processed, card in enumerate(chunk, start=1):
                await self._process_card(run_id, card, catalog, threshold)
                cursor = card.id if card.id is not None else cursor
                if processed % PROGRESS_LOG_EVERY == 0:
                    logger.info(
                        "Batch run %d: processed %d/%d cards", run_id, processed, len(chunk)
                    )

            async with self._session_factory() as session:
                row = await finish_run(session, run_id)
                snapshot = checkpoint_to_model(row)
                await session.commit()
        except SchemaMismatchError as e:
            await self._mark_failed(run_id, e.message)
            raise
        except (SQLAlchemyError, OSError) as e:
            logger.exception("Batch run %d failed at cursor %d", run_id, cursor)
            await self._mark_failed(run_id, str(e))
            raise StoreUnavailableError(detail=str(e), cursor=cursor) from e
        except BaseException as e:
            # A cancelled or crashed run must not keep the slot
            logger.warning("Batch run %d interrupted at cursor %d: %r", run_id, cursor, e)
            await asyncio.shield(self._mark_failed(run_id, f"Run interrupted: {type(e).__name__}"))
            raise

        logger.info(
            "Batch run %d completed: %d cards, %d comparisons, %d associations",
            run_id,
            snapshot.cards_processed,
            snapshot.comparisons_made,
            snapshot.associations_created,
        )
        return snapshot

    async def run_until_complete(
        self,
        start_cursor: int | None = None,
        batch_size: int | None = None,
        threshold: float | None = None,
    ) -> list[BatchCheckpoint]:
        """Run chunk after chunk until the cursor reaches the end of the catalog."""
        snapshots: list[BatchCheckpoint] = []
        cursor = start_cursor
        while True:
            snapshot = await self.run(
                start_cursor=cursor, batch_size=batch_size, threshold=threshold
            )
            snapshots.append(snapshot)
            cursor = None

            async with self._session_factory() as session:
                remaining = await count_cards_after(session, snapshot.cursor)
            if snapshot.cards_processed == 0 or remaining == 0:
                return snapshots

    async def status(self) -> BatchCheckpoint:
        """The latest run's snapshot, or not_started if none was recorded."""
        async with self._session_factory() as session:
            return checkpoint_to_model(await get_latest_checkpoint(session))

    async def history(self, limit: int = 20) -> list[BatchCheckpoint]:
        """Recent run snapshots, newest first."""
        async with self._session_factory() as session:
            return [checkpoint_to_model(row) for row in await list_checkpoints(session, limit)]

    async def reset(self) -> tuple[int, int]:
        """
        Clear every association and checkpoint.

        Holds the processing slot while clearing, so no run can start
        halfway through.

        Returns:
            (associations deleted, checkpoints deleted)

        Raises:
            ConflictingRunError: If a run is processing
        """
        async with self._session_factory() as session:
            await self._expire_stale(session)
            await claim_run(
                session,
                start_cursor=0,
                batch_size=0,
                threshold=0.0,
                schema_version=None,
                total_cards=0,
                action="reset",
            )
            associations = await clear_associations(session)
            # The claim row itself is deleted here too
            checkpoints = await clear_checkpoints(session) - 1
            await session.commit()

        logger.info("Reset: deleted %d associations and %d checkpoints", associations, checkpoints)
        return associations, checkpoints

    async def _load_catalog(self) -> list[Card]:
        async with self._session_factory() as session:
            catalog = [card_to_model(row) for row in await get_encoded_cards(session)]
        for card in catalog:
            if card.vector is not None:
                self._scorer.check_vector(card.vector)
        return catalog

    async def _claim(
        self, start_cursor: int | None, batch_size: int, threshold: float
    ) -> tuple[int, int, list[Card]]:
        async with self._session_factory() as session:
            await self._expire_stale(session)

            if start_cursor is None:
                latest = await get_latest_checkpoint(session)
                start_cursor = latest.cursor if latest else 0

            chunk = [
                card_to_model(row)
                for row in await get_cards_in_chunk(session, start_cursor, batch_size)
            ]
            row = await claim_run(
                session,
                start_cursor=start_cursor,
                batch_size=batch_size,
                threshold=threshold,
                schema_version=self._scorer.schema.version,
                total_cards=len(chunk),
            )
            run_id = row.id
            await session.commit()
        return run_id, start_cursor, chunk

    async def _expire_stale(self, session: AsyncSession) -> None:
        expired = await expire_stale_runs(session, datetime.now(UTC) - self._stale_after)
        if expired:
            logger.warning("Marked %d abandoned batch run(s) as failed", expired)
        await session.commit()

    async def _process_card(
        self, run_id: int, card: Card, catalog: list[Card], threshold: float
    ) -> None:
        comparisons = 0
        stored = 0
        async with self._session_factory() as session:
            if card.id is not None and card.vector is not None:
                for other in catalog:
                    if other.id == card.id or other.id is None or other.vector is None:
                        continue
                    result = self._scorer.score(card.vector, other.vector)
                    comparisons += 1
                    if result.score >= threshold:
                        await upsert_association(
                            session, card.id, other.id, result.score, result.synergy_type
                        )
                        stored += 1
            await advance_checkpoint(session, run_id, card.id or 0, comparisons, stored)
            await session.commit()

    async def _mark_failed(self, run_id: int, error: str) -> None:
        try:
            async with self._session_factory() as session:
                await fail_run(session, run_id, error)
                await session.commit()
        except (SQLAlchemyError, OSError):
            logger.exception("Could not mark batch run %d as failed", run_id)
