"""
Failure classification for the synergy engine.

Every failure the engine surfaces to a caller is a KnownError subclass
carrying a stable kind, a user-appropriate message and the HTTP status
the API layer answers with. The API converts them to a FailureDetail
body in one place (see synergyforge.main).

Propagation:
- EncodingSkipError is recovered per card (skip and continue).
- SchemaMismatchError and ConflictingRunError are raised before any work.
- StoreUnavailableError aborts the whole run, which is marked failed.
"""

from enum import Enum

from pydantic import BaseModel, Field


class FailureKind(str, Enum):
    """Classification of failure types."""

    # Input validation failures
    INVALID_INPUT = "invalid_input"

    # Resource failures
    NOT_FOUND = "not_found"

    # Engine failures
    ENCODING_SKIPPED = "encoding_skipped"
    SCHEMA_MISMATCH = "schema_mismatch"
    CONFLICTING_RUN = "conflicting_run"

    # Service failures
    STORE_UNAVAILABLE = "store_unavailable"


class FailureDetail(BaseModel):
    """Detailed information about a failure."""

    kind: FailureKind = Field(
        ...,
        description="Classification of the failure",
    )
    message: str = Field(
        ...,
        description="User-appropriate explanation of what went wrong",
    )
    detail: str | None = Field(
        default=None,
        description="Additional technical detail (optional)",
    )
    suggestion: str | None = Field(
        default=None,
        description="Suggested action for the caller",
    )


class KnownError(Exception):
    """
    Base class for exceptions that represent known, explainable failures.

    Subclass this for errors where the system knows exactly what went wrong.
    """

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
        status_code: int = 400,
    ):
        self.kind = kind
        self.message = message
        self.detail = detail
        self.suggestion = suggestion
        self.status_code = status_code
        super().__init__(message)

    def to_detail(self) -> FailureDetail:
        """Convert to the response body model."""
        return FailureDetail(
            kind=self.kind,
            message=self.message,
            detail=self.detail,
            suggestion=self.suggestion,
        )


class EncodingSkipError(KnownError):
    """A card could not be encoded because it has no stable identity."""

    def __init__(self, name: str, detail: str | None = None):
        self.name = name
        super().__init__(
            kind=FailureKind.ENCODING_SKIPPED,
            message=f"Card '{name}' has no id and cannot be encoded.",
            detail=detail,
            suggestion="Import the card into the catalog before encoding it.",
            status_code=422,
        )


class SchemaMismatchError(KnownError):
    """
    Two vectors (or a vector and the scorer) disagree on schema.

    Schema drift is fixed by re-encoding the catalog, never by padding
    or truncating vectors.
    """

    def __init__(
        self,
        expected_version: str,
        actual_version: str,
        expected_length: int | None = None,
        actual_length: int | None = None,
    ):
        self.expected_version = expected_version
        self.actual_version = actual_version
        self.expected_length = expected_length
        self.actual_length = actual_length
        detail = None
        if expected_length is not None and actual_length is not None:
            detail = f"Expected {expected_length} predicates, got {actual_length}"
        super().__init__(
            kind=FailureKind.SCHEMA_MISMATCH,
            message=(
                f"Characteristic schema mismatch: expected '{expected_version}', "
                f"got '{actual_version}'."
            ),
            detail=detail,
            suggestion="Re-encode the catalog with the current schema.",
            status_code=409,
        )


class StoreUnavailableError(KnownError):
    """The persistence layer failed while a run was in progress."""

    def __init__(self, detail: str | None = None, cursor: int | None = None):
        self.cursor = cursor
        message = "The synergy store is unavailable."
        if cursor is not None:
            message += f" Progress was saved up to card {cursor}."
        super().__init__(
            kind=FailureKind.STORE_UNAVAILABLE,
            message=message,
            detail=detail,
            suggestion=(
                "Retry the run once the database is reachable; it resumes from the saved cursor."
            ),
            status_code=503,
        )


class ConflictingRunError(KnownError):
    """A run or reset was requested while another run is processing."""

    def __init__(self, active_run_id: int | None = None, action: str = "start a run"):
        self.active_run_id = active_run_id
        detail = f"Active run id: {active_run_id}" if active_run_id is not None else None
        super().__init__(
            kind=FailureKind.CONFLICTING_RUN,
            message=f"Cannot {action} while a batch run is processing.",
            detail=detail,
            suggestion="Wait for the current run to complete or fail, then try again.",
            status_code=409,
        )


class CardNotFoundError(KnownError):
    """A requested card id is not in the catalog."""

    def __init__(self, card_id: int):
        self.card_id = card_id
        super().__init__(
            kind=FailureKind.NOT_FOUND,
            message=f"Card {card_id} not found.",
            suggestion="Check the card id or import the card first.",
            status_code=404,
        )
