"""
Association API endpoints.

Read access to the stored synergy graph: single pairs, the best pairs
overall or per synergy category, and store statistics.
"""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from synergyforge.db import (
    association_to_model,
    get_association,
    get_association_stats,
    get_associations_by_type,
    get_cards,
    get_synergy_type_stats,
    get_top_associations,
)
from synergyforge.db.database import get_session
from synergyforge.models.association import SynergyTypeStats
from synergyforge.models.db import CardAssociationDB

router = APIRouter(prefix="/associations", tags=["associations"])


class AssociationResponse(BaseModel):
    """Response model for a stored pair."""

    card1_id: int
    card2_id: int
    card1_name: str | None = None
    card2_name: str | None = None
    synergy_score: float
    synergy_type: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AssociationListResponse(BaseModel):
    """Response model for a list of pairs."""

    associations: list[AssociationResponse]
    count: int


class AssociationStatsResponse(BaseModel):
    """Response model for store statistics."""

    total: int
    average_score: float
    high_synergy: int
    by_type: dict[str, int] = Field(default_factory=dict)


class SynergyTypeStatsResponse(BaseModel):
    """Count and scores of one synergy category."""

    synergy_type: str
    count: int
    average_score: float
    max_score: float


class SynergyTypeListResponse(BaseModel):
    """Response model for per-category statistics."""

    types: list[SynergyTypeStatsResponse]
    count: int


class SynergyTypeResponse(BaseModel):
    """Response model for the pairs of one synergy category."""

    stats: SynergyTypeStatsResponse
    associations: list[AssociationResponse]
    count: int


async def _association_responses(
    session: AsyncSession, rows: list[CardAssociationDB]
) -> list[AssociationResponse]:
    """Convert stored pairs to responses carrying both card names."""
    ids = {row.card1_id for row in rows} | {row.card2_id for row in rows}
    names = {card.id: card.name for card in await get_cards(session, ids)}

    responses = []
    for row in rows:
        model = association_to_model(row)
        responses.append(
            AssociationResponse(
                card1_id=model.card1_id,
                card2_id=model.card2_id,
                card1_name=names.get(model.card1_id),
                card2_name=names.get(model.card2_id),
                synergy_score=model.synergy_score,
                synergy_type=model.synergy_type,
                created_at=model.created_at,
                updated_at=model.updated_at,
            )
        )
    return responses


def _stats_response(stats: SynergyTypeStats) -> SynergyTypeStatsResponse:
    return SynergyTypeStatsResponse(
        synergy_type=stats.synergy_type,
        count=stats.count,
        average_score=stats.average_score,
        max_score=stats.max_score,
    )


@router.get("/top", response_model=AssociationListResponse)
async def top_associations(
    session: Annotated[AsyncSession, Depends(get_session)],
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> AssociationListResponse:
    """Highest scoring pairs in the store."""
    rows = await get_top_associations(session, limit=limit)
    associations = await _association_responses(session, rows)
    return AssociationListResponse(associations=associations, count=len(associations))


@router.get("/stats", response_model=AssociationStatsResponse)
async def association_stats(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> AssociationStatsResponse:
    """Count, average score, high-synergy count and per-type counts."""
    stats = await get_association_stats(session)
    return AssociationStatsResponse(
        total=stats.total,
        average_score=stats.average_score,
        high_synergy=stats.high_synergy,
        by_type=stats.by_type,
    )


@router.get("/types", response_model=SynergyTypeListResponse)
async def synergy_types(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> SynergyTypeListResponse:
    """Count, average and best score per synergy category, most common first."""
    stats = await get_synergy_type_stats(session)
    types = [_stats_response(item) for item in stats]
    return SynergyTypeListResponse(types=types, count=len(types))


@router.get("/by-type/{synergy_type}", response_model=SynergyTypeResponse)
async def associations_by_type(
    synergy_type: str,
    session: Annotated[AsyncSession, Depends(get_session)],
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
) -> SynergyTypeResponse:
    """
    Best pairs of one synergy category, with that category's statistics.

    An unknown category yields an empty list and zeroed statistics.
    """
    rows = await get_associations_by_type(session, synergy_type, limit=limit)
    associations = await _association_responses(session, rows)

    found = await get_synergy_type_stats(session, synergy_type)
    stats = found[0] if found else SynergyTypeStats(synergy_type, 0, 0.0, 0.0)
    return SynergyTypeResponse(
        stats=_stats_response(stats), associations=associations, count=len(associations)
    )


@router.get("/{card_a}/{card_b}", response_model=AssociationResponse)
async def get_pair(
    card_a: int,
    card_b: int,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> AssociationResponse:
    """
    Get the stored association for a pair, in either order.

    Returns 404 if the pair has no association.
    """
    if card_a == card_b:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A card cannot be paired with itself",
        )

    row = await get_association(session, card_a, card_b)
    if row is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No association between cards {card_a} and {card_b}",
        )

    (response,) = await _association_responses(session, [row])
    return response
