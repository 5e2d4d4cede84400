"""
Service status endpoints.

/health answers without touching the database. /ready reports whether the
catalog store answers, how much of the catalog is encoded under the
current schema, the size of the synergy graph and any batch run holding
the processing slot.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from synergyforge.db import count_associations, count_cards, get_active_run
from synergyforge.db.database import get_session
from synergyforge.models.schema import DEFAULT_SCHEMA

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class LivenessResponse(BaseModel):
    """Process status and the vector schema it encodes with."""

    status: str
    schema_version: str
    predicates: int


class CatalogStatus(BaseModel):
    """Size of the stored catalog and synergy graph."""

    cards: int
    encoded_current: int
    associations: int


class ReadinessResponse(BaseModel):
    """Store status; `catalog` is omitted when the store is unreachable."""

    status: str
    database: str
    catalog: CatalogStatus | None = None
    active_run_id: int | None = None


@router.get("/health", response_model=LivenessResponse)
async def health() -> LivenessResponse:
    return LivenessResponse(
        status="healthy",
        schema_version=DEFAULT_SCHEMA.version,
        predicates=len(DEFAULT_SCHEMA),
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={503: {"model": ReadinessResponse}},
)
async def ready(
    response: Response,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> ReadinessResponse:
    """
    Catalog readiness.

    Status is "empty" until cards are imported and "ready" afterwards.
    Returns 503 when the store cannot be queried.
    """
    try:
        cards = await count_cards(session)
        encoded = await count_cards(session, schema_version=DEFAULT_SCHEMA.version)
        associations = await count_associations(session)
        active = await get_active_run(session)
    except (SQLAlchemyError, OSError) as e:
        logger.warning("Readiness check failed: %s", e)
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return ReadinessResponse(status="not ready", database="disconnected")

    return ReadinessResponse(
        status="ready" if cards else "empty",
        database="connected",
        catalog=CatalogStatus(cards=cards, encoded_current=encoded, associations=associations),
        active_run_id=active.id if active is not None else None,
    )
