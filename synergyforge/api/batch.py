"""
Batch run API endpoints.

Starts resumable synergy runs and reports their progress.
"""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from synergyforge.config import MAX_BATCH_SIZE
from synergyforge.db.database import get_session_factory
from synergyforge.models.checkpoint import BatchCheckpoint
from synergyforge.services.batch_builder import BatchBuilder
from synergyforge.services.scorer import SynergyScorer, get_scorer

router = APIRouter(prefix="/batch", tags=["batch"])


class BatchRunRequest(BaseModel):
    """Request model for starting a batch run."""

    start_cursor: int | None = Field(
        default=None,
        ge=0,
        description="Last processed card id. Omit to resume from the latest checkpoint.",
    )
    batch_size: int | None = Field(
        default=None,
        ge=1,
        le=MAX_BATCH_SIZE,
        description="Cards to process in this run",
    )
    threshold: float | None = Field(
        default=None,
        ge=0.0,
        le=1.0,
        description="Minimum synergy score stored by this run",
    )


class CheckpointResponse(BaseModel):
    """Response model for a batch run snapshot."""

    run_id: int | None
    status: str
    start_cursor: int
    cursor: int
    batch_size: int
    threshold: float
    schema_version: str | None = None
    total_cards: int
    cards_processed: int
    comparisons_made: int
    associations_created: int
    progress_percentage: float
    estimated_time_remaining: float | None = None
    started_at: datetime | None = None
    updated_at: datetime | None = None
    finished_at: datetime | None = None
    error: str | None = None


class HistoryResponse(BaseModel):
    """Response model for recent batch runs."""

    runs: list[CheckpointResponse]
    count: int


class ResetResponse(BaseModel):
    """Response model for a reset."""

    associations_deleted: int
    checkpoints_deleted: int


def get_batch_builder(
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
    scorer: Annotated[SynergyScorer, Depends(get_scorer)],
) -> BatchBuilder:
    """Dependency that provides a batch builder."""
    return BatchBuilder(session_factory, scorer)


def checkpoint_response(snapshot: BatchCheckpoint) -> CheckpointResponse:
    """Convert a snapshot to its response model."""
    return CheckpointResponse(
        run_id=snapshot.run_id,
        status=snapshot.status.value,
        start_cursor=snapshot.start_cursor,
        cursor=snapshot.cursor,
        batch_size=snapshot.batch_size,
        threshold=snapshot.threshold,
        schema_version=snapshot.schema_version,
        total_cards=snapshot.total_cards,
        cards_processed=snapshot.cards_processed,
        comparisons_made=snapshot.comparisons_made,
        associations_created=snapshot.associations_created,
        progress_percentage=snapshot.progress_percentage,
        estimated_time_remaining=snapshot.estimated_time_remaining,
        started_at=snapshot.started_at,
        updated_at=snapshot.updated_at,
        finished_at=snapshot.finished_at,
        error=snapshot.error,
    )


@router.post("/runs", response_model=CheckpointResponse)
async def start_run(
    request: BatchRunRequest,
    builder: Annotated[BatchBuilder, Depends(get_batch_builder)],
) -> CheckpointResponse:
    """
    Run one chunk of the synergy build.

    Returns 409 if a run is already processing or stored vectors are from
    another schema, and 503 if the database fails mid-run.
    """
    try:
        snapshot = await builder.run(
            start_cursor=request.start_cursor,
            batch_size=request.batch_size,
            threshold=request.threshold,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return checkpoint_response(snapshot)


@router.get("/status", response_model=CheckpointResponse)
async def get_status(
    builder: Annotated[BatchBuilder, Depends(get_batch_builder)],
) -> CheckpointResponse:
    """Latest run snapshot, including progress and estimated time remaining."""
    return checkpoint_response(await builder.status())


@router.get("/history", response_model=HistoryResponse)
async def get_history(
    builder: Annotated[BatchBuilder, Depends(get_batch_builder)],
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> HistoryResponse:
    """Recent runs, newest first."""
    runs = [checkpoint_response(snapshot) for snapshot in await builder.history(limit)]
    return HistoryResponse(runs=runs, count=len(runs))


@router.post("/reset", response_model=ResetResponse)
async def reset(
    builder: Annotated[BatchBuilder, Depends(get_batch_builder)],
) -> ResetResponse:
    """
    Clear all associations and checkpoints.

    Returns 409 while a run is processing.
    """
    associations, checkpoints = await builder.reset()
    return ResetResponse(associations_deleted=associations, checkpoints_deleted=checkpoints)
