"""
Deck assembly API endpoints.

Builds a deck around a seed card from the stored synergy graph, and
reports the stored synergy inside an existing deck list.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from synergyforge.config import MAX_TARGET_SIZE, settings
from synergyforge.db.database import get_session
from synergyforge.models.deck import FORMAT_RULES
from synergyforge.services.deck_analysis import analyze_deck
from synergyforge.services.deck_assembler import AssemblyOptions, DeckAssembler, StoreSynergyGraph
from synergyforge.services.scorer import SynergyScorer, get_scorer

router = APIRouter(prefix="/decks", tags=["decks"])


class AssembleRequest(BaseModel):
    """Request model for a deck assembly."""

    seed_id: int = Field(..., ge=1, description="Card to build around")
    target_size: int | None = Field(
        default=None,
        ge=1,
        le=MAX_TARGET_SIZE,
        description="Total copies wanted; defaults to the format's deck size or 60",
    )
    format: str | None = Field(
        default=None,
        description=f"Format whose copy limit applies. One of: {sorted(FORMAT_RULES)}",
    )
    min_average_score: float = Field(
        default=settings.assembly_min_average_score,
        ge=0.0,
        le=1.0,
        description="Minimum average synergy for a candidate to be added",
    )
    max_copies: int = Field(default=4, ge=1, le=4)
    excluded_types: list[str] = Field(
        default_factory=lambda: ["basic land"],
        description="Type-line fragments that disqualify a candidate",
    )
    max_budget: float | None = Field(default=None, ge=0)


class DeckEntryResponse(BaseModel):
    """One card in the assembled deck."""

    card_id: int
    name: str
    quantity: int
    average_score: float | None = None
    round_added: int


class AssembleResponse(BaseModel):
    """Response model for an assembled deck."""

    seed_id: int
    target_size: int
    total_cards: int
    status: str
    rounds: int
    total_price: float
    cards: list[DeckEntryResponse]


class AnalyzeRequest(BaseModel):
    """Request model for a deck list analysis."""

    deck: list[str] = Field(
        ...,
        min_length=1,
        description='Deck list lines, e.g. "4 Goblin Guide" or "4 Goblin Guide (ZEN) 126"',
    )


class AnalyzedCardResponse(BaseModel):
    """One resolved deck list card."""

    card_id: int
    name: str
    quantity: int


class DeckSynergyResponse(BaseModel):
    """A stored association between two deck cards."""

    card1_id: int
    card2_id: int
    card1_name: str
    card2_name: str
    synergy_score: float
    synergy_type: str


class AnalyzeResponse(BaseModel):
    """Response model for a deck list analysis."""

    cards: list[AnalyzedCardResponse]
    total_cards: int
    not_found: list[str]
    synergies: list[DeckSynergyResponse]
    average_synergy: float
    by_type: dict[str, int]


@router.post("/assemble", response_model=AssembleResponse)
async def assemble_deck(
    request: AssembleRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
    scorer: Annotated[SynergyScorer, Depends(get_scorer)],
) -> AssembleResponse:
    """
    Grow a deck from a seed card.

    Status is "partial" when the synergy graph ran out of eligible
    candidates before the target size. Returns 404 for an unknown seed.
    """
    if request.format is not None and request.format.lower() not in FORMAT_RULES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid format: {request.format}. Valid: {sorted(FORMAT_RULES)}",
        )

    options = AssemblyOptions(
        min_average_score=request.min_average_score,
        max_copies=request.max_copies,
        format_name=request.format,
        excluded_types=frozenset(t.lower() for t in request.excluded_types),
        max_budget=request.max_budget,
    )
    assembler = DeckAssembler(StoreSynergyGraph(session, scorer, options))
    selection = await assembler.assemble(request.seed_id, request.target_size, options)

    return AssembleResponse(
        seed_id=selection.seed_id,
        target_size=selection.target_size,
        total_cards=selection.total_cards,
        status=selection.status.value,
        rounds=selection.rounds,
        total_price=selection.total_price,
        cards=[
            DeckEntryResponse(
                card_id=entry.card_id,
                name=entry.name,
                quantity=entry.quantity,
                average_score=entry.average_score,
                round_added=entry.round_added,
            )
            for entry in selection.entries.values()
        ],
    )


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze_deck_list(
    request: AnalyzeRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> AnalyzeResponse:
    """
    Stored synergy between the cards of a deck list.

    Names are matched exactly, ignoring case; unmatched names are listed in
    `not_found`. Synergies are ordered by score, best first. Returns 400 if
    the list holds no card lines.
    """
    try:
        analysis = await analyze_deck(session, request.deck)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    names = {card.card_id: card.name for card in analysis.cards}
    return AnalyzeResponse(
        cards=[
            AnalyzedCardResponse(card_id=card.card_id, name=card.name, quantity=card.quantity)
            for card in analysis.cards
        ],
        total_cards=analysis.total_cards,
        not_found=analysis.not_found,
        synergies=[
            DeckSynergyResponse(
                card1_id=a.card1_id,
                card2_id=a.card2_id,
                card1_name=names[a.card1_id],
                card2_name=names[a.card2_id],
                synergy_score=a.synergy_score,
                synergy_type=a.synergy_type,
            )
            for a in analysis.synergies
        ],
        average_synergy=analysis.average_synergy,
        by_type=analysis.by_type,
    )
