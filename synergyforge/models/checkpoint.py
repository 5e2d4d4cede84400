from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum


class BatchStatus(str, Enum):
    """Lifecycle of a batch run."""

    NOT_STARTED = "not_started"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class BatchCheckpoint:
    """
    Snapshot of one batch run.

    Attributes:
        run_id: Checkpoint row id (None if no run was ever recorded)
        status: Current lifecycle state
        start_cursor: Cursor the run started from
        cursor: Highest card id fully processed so far
        batch_size: Requested chunk size
        threshold: Minimum score persisted by this run
        schema_version: Vector schema the run compared
        total_cards: Cards selected for this run's chunk
        cards_processed: Cards whose comparison sweep has been committed
        comparisons_made: Pairs actually scored
        associations_created: Pairs at or above threshold that were stored
        started_at: Run start time
        updated_at: Last progress write
        finished_at: Completion/failure time
        error: Failure message, if the run failed
    """

    run_id: int | None
    status: BatchStatus
    start_cursor: int = 0
    cursor: int = 0
    batch_size: int = 0
    threshold: float = 0.0
    schema_version: str | None = None
    total_cards: int = 0
    cards_processed: int = 0
    comparisons_made: int = 0
    associations_created: int = 0
    started_at: datetime | None = None
    updated_at: datetime | None = None
    finished_at: datetime | None = None
    error: str | None = None

    @classmethod
    def not_started(cls) -> "BatchCheckpoint":
        """Snapshot reported when no run has ever been recorded."""
        return cls(run_id=None, status=BatchStatus.NOT_STARTED)

    @property
    def progress_percentage(self) -> float:
        """Processed / total, as a percentage."""
        if self.total_cards <= 0:
            return 100.0 if self.status == BatchStatus.COMPLETED else 0.0
        return round(self.cards_processed / self.total_cards * 100, 2)

    @property
    def elapsed_seconds(self) -> float | None:
        """Seconds between start and the last recorded progress."""
        if self.started_at is None:
            return None
        end = self.finished_at or self.updated_at or datetime.now(UTC)
        return max((_aware(end) - _aware(self.started_at)).total_seconds(), 0.0)

    @property
    def estimated_time_remaining(self) -> float | None:
        """
        Seconds left, from the average time per processed card.

        Only defined while the run is processing and has made progress.
        """
        if self.status != BatchStatus.PROCESSING or self.cards_processed <= 0:
            return None
        elapsed = self.elapsed_seconds
        if elapsed is None:
            return None
        per_card = elapsed / self.cards_processed
        remaining = max(self.total_cards - self.cards_processed, 0)
        return round(per_card * remaining, 1)


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
