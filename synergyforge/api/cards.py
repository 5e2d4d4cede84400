"""
Card catalog API endpoints.

Imports, encodes and searches catalog cards, and lists each card's synergy
neighbors.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from synergyforge.config import MAX_NEIGHBOR_LIMIT, settings
from synergyforge.db import card_to_model, get_card, get_cards, get_neighbors, search_cards
from synergyforge.db.database import get_session
from synergyforge.models.card import Card
from synergyforge.models.db import CardDB
from synergyforge.models.failure import CardNotFoundError
from synergyforge.services.catalog import encode_catalog, import_cards
from synergyforge.services.encoder import CharacteristicEncoder, get_encoder

router = APIRouter(prefix="/cards", tags=["cards"])


class CardRequest(BaseModel):
    """Request model for one catalog card."""

    id: int | None = Field(default=None, ge=1, description="Catalog id; omit to assign one")
    name: str = Field(..., min_length=1)
    oracle_id: str | None = Field(default=None, description="Source identity across imports")
    oracle_text: str | None = None
    type_line: str | None = None
    mana_cost: str | None = None
    cmc: float | None = None
    colors: list[str] = Field(default_factory=list)
    color_identity: list[str] = Field(default_factory=list)
    price: float | None = Field(default=None, ge=0)


class CardImportRequest(BaseModel):
    """Request model for a bulk card import."""

    cards: list[CardRequest] = Field(..., min_length=1)


class CardImportResponse(BaseModel):
    """Response model for a bulk card import."""

    imported: int
    ids: list[int]


class CardResponse(BaseModel):
    """Response model for a catalog card."""

    id: int
    name: str
    type_line: str | None = None
    mana_cost: str | None = None
    colors: list[str] = Field(default_factory=list)
    price: float | None = None
    schema_version: str | None = None
    predicates: list[str] = Field(default_factory=list)


class CardSearchResponse(BaseModel):
    """Response model for a card search."""

    query: str
    color: str | None = None
    cards: list[CardResponse]
    count: int


class EncodeResponse(BaseModel):
    """Response model for a catalog encoding pass."""

    schema_version: str
    encoded: int
    skipped: int


class NeighborResponse(BaseModel):
    """One neighbor of a card."""

    card_id: int
    name: str | None = None
    score: float
    synergy_type: str


class NeighborListResponse(BaseModel):
    """Response model for a card's neighbors."""

    card_id: int
    name: str
    neighbors: list[NeighborResponse]
    count: int


def _card_response(row: CardDB, encoder: CharacteristicEncoder) -> CardResponse:
    card = card_to_model(row)
    predicates: list[str] = []
    if card.vector is not None and card.vector.schema_version == encoder.schema.version:
        predicates = card.vector.set_predicates(encoder.schema)

    return CardResponse(
        id=row.id,
        name=card.name,
        type_line=card.type_line,
        mana_cost=card.mana_cost,
        colors=list(card.colors),
        price=card.price,
        schema_version=row.schema_version,
        predicates=predicates,
    )


@router.post("", response_model=CardImportResponse)
async def import_card_list(
    request: CardImportRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> CardImportResponse:
    """
    Insert or update catalog cards.

    Cards whose attributes change lose their stored vector until the next
    encoding pass.
    """
    cards = [
        Card(
            id=item.id,
            name=item.name,
            oracle_id=item.oracle_id,
            oracle_text=item.oracle_text,
            type_line=item.type_line,
            mana_cost=item.mana_cost,
            cmc=item.cmc,
            colors=tuple(item.colors),
            color_identity=tuple(item.color_identity),
            price=item.price,
        )
        for item in request.cards
    ]
    ids = await import_cards(session, cards)
    return CardImportResponse(imported=len(ids), ids=ids)


@router.post("/encode", response_model=EncodeResponse)
async def encode_all(
    session: Annotated[AsyncSession, Depends(get_session)],
    encoder: Annotated[CharacteristicEncoder, Depends(get_encoder)],
) -> EncodeResponse:
    """Encode every card whose vector is missing or from an older schema."""
    report = await encode_catalog(session, encoder)
    return EncodeResponse(
        schema_version=encoder.schema.version,
        encoded=report.encoded,
        skipped=report.skipped,
    )


@router.get("/search", response_model=CardSearchResponse)
async def search_catalog(
    session: Annotated[AsyncSession, Depends(get_session)],
    encoder: Annotated[CharacteristicEncoder, Depends(get_encoder)],
    q: Annotated[str, Query(min_length=1, description="Text to find in name or oracle text")],
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
    color: Annotated[
        str | None,
        Query(pattern=r"^([WUBRGwubrg]+|colorless)$", description="e.g. RG, or colorless"),
    ] = None,
) -> CardSearchResponse:
    """
    Find cards by name or oracle text.

    With `color`, every listed color must be in the card's color identity.
    Ordered by name.
    """
    rows = await search_cards(session, q, limit=limit, color=color)
    cards = [_card_response(row, encoder) for row in rows]
    return CardSearchResponse(query=q, color=color, cards=cards, count=len(cards))


@router.get("/{card_id}", response_model=CardResponse)
async def get_card_detail(
    card_id: int,
    session: Annotated[AsyncSession, Depends(get_session)],
    encoder: Annotated[CharacteristicEncoder, Depends(get_encoder)],
) -> CardResponse:
    """Get a catalog card with the predicates its vector sets."""
    row = await get_card(session, card_id)
    if row is None:
        raise CardNotFoundError(card_id)

    return _card_response(row, encoder)


@router.get("/{card_id}/neighbors", response_model=NeighborListResponse)
async def get_card_neighbors(
    card_id: int,
    session: Annotated[AsyncSession, Depends(get_session)],
    min_score: Annotated[float, Query(ge=0.0, le=1.0)] = settings.neighbor_query_threshold,
    limit: Annotated[int, Query(ge=1, le=MAX_NEIGHBOR_LIMIT)] = 20,
) -> NeighborListResponse:
    """
    Stored neighbors of a card.

    Ordered by score descending, ties broken by ascending card id.
    """
    row = await get_card(session, card_id)
    if row is None:
        raise CardNotFoundError(card_id)

    neighbors = await get_neighbors(session, card_id, min_score=min_score, limit=limit)
    cards = await get_cards(session, [n.other_id for n in neighbors])
    names = {card.id: card.name for card in cards}

    items = [
        NeighborResponse(
            card_id=n.other_id,
            name=names.get(n.other_id),
            score=n.score,
            synergy_type=n.synergy_type,
        )
        for n in neighbors
    ]
    return NeighborListResponse(card_id=card_id, name=row.name, neighbors=items, count=len(items))
