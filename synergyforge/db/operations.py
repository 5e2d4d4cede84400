"""
Database CRUD operations.

Provides async functions for the card catalog, the association store
and batch run checkpoints.
"""

from collections.abc import Iterable
from datetime import UTC, datetime

from sqlalchemy import String, case, cast, delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from synergyforge.models.association import (
    Association,
    AssociationStats,
    Neighbor,
    SynergyTypeStats,
    canonical_pair,
)
from synergyforge.models.card import Card, CharacteristicVector
from synergyforge.models.checkpoint import BatchCheckpoint, BatchStatus
from synergyforge.models.db import BatchCheckpointDB, CardAssociationDB, CardDB
from synergyforge.models.failure import ConflictingRunError

HIGH_SYNERGY_SCORE = 0.9


def _now() -> datetime:
    return datetime.now(UTC)


# --- Card Operations ---


async def get_card(session: AsyncSession, card_id: int) -> CardDB | None:
    """Get a card by id. Returns None if it is not in the catalog."""
    return await session.get(CardDB, card_id)


async def get_cards(session: AsyncSession, card_ids: Iterable[int]) -> list[CardDB]:
    """Get the cards with the given ids, ordered by id. Unknown ids are ignored."""
    ids = list(card_ids)
    if not ids:
        return []
    result = await session.execute(select(CardDB).where(CardDB.id.in_(ids)).order_by(CardDB.id))
    return list(result.scalars().all())


async def get_card_by_oracle_id(session: AsyncSession, oracle_id: str) -> CardDB | None:
    """Get the catalog card carrying a source identity, if any."""
    result = await session.execute(select(CardDB).where(CardDB.oracle_id == oracle_id))
    return result.scalar_one_or_none()


def _is_same_card(db_card: CardDB, card: Card) -> bool:
    if db_card.oracle_id is not None and card.oracle_id is not None:
        return db_card.oracle_id == card.oracle_id
    return db_card.name == card.name


async def _next_card_id(session: AsyncSession) -> int:
    result = await session.execute(select(func.max(CardDB.id)))
    return int(result.scalar_one() or 0) + 1


async def upsert_card(session: AsyncSession, card: Card) -> CardDB:
    """
    Insert or update a catalog card.

    A card is matched by its oracle id first, then by catalog id. A catalog
    id already held by a different card is never rebound: the incoming card
    is inserted under a new id instead.

    When an existing card's attributes change, its stored vector and every
    association it is part of are cleared, so the next encoding pass and
    batch run recompute them.
    """
    existing = None
    if card.oracle_id is not None:
        existing = await get_card_by_oracle_id(session, card.oracle_id)

    new_id = card.id
    if existing is None and card.id is not None:
        held = await get_card(session, card.id)
        if held is not None and _is_same_card(held, card):
            existing = held
        elif held is not None:
            new_id = None

    if existing:
        changed = (
            existing.oracle_text != card.oracle_text
            or existing.type_line != card.type_line
            or existing.mana_cost != card.mana_cost
            or existing.cmc != card.cmc
            or list(existing.colors or []) != list(card.colors)
            or list(existing.color_identity or []) != list(card.color_identity)
        )
        existing.name = card.name
        if card.oracle_id is not None:
            existing.oracle_id = card.oracle_id
        existing.oracle_text = card.oracle_text
        existing.type_line = card.type_line
        existing.mana_cost = card.mana_cost
        existing.cmc = card.cmc
        existing.colors = list(card.colors)
        existing.color_identity = list(card.color_identity)
        existing.price = card.price
        if changed:
            existing.bit_pattern = None
            existing.schema_version = None
            existing.encoded_at = None
            await delete_card_associations(session, existing.id)
        await session.flush()
        return existing

    db_card = CardDB(
        id=new_id if new_id is not None else await _next_card_id(session),
        name=card.name,
        oracle_id=card.oracle_id,
        oracle_text=card.oracle_text,
        type_line=card.type_line,
        mana_cost=card.mana_cost,
        cmc=card.cmc,
        colors=list(card.colors),
        color_identity=list(card.color_identity),
        price=card.price,
    )
    session.add(db_card)
    await session.flush()
    return db_card


async def search_cards(
    session: AsyncSession,
    query: str,
    limit: int = 50,
    color: str | None = None,
) -> list[CardDB]:
    """
    Cards whose name or oracle text contains `query`, ignoring case.

    `color` is "colorless" or a string of color letters (e.g. "RG"); every
    letter must be in the card's color identity. Ordered by name, then id.
    """
    pattern = f"%{query}%"
    stmt = select(CardDB).where(
        or_(CardDB.name.ilike(pattern), CardDB.oracle_text.ilike(pattern))
    )

    identity = cast(CardDB.color_identity, String)
    if color and color.lower() == "colorless":
        stmt = stmt.where(or_(CardDB.color_identity.is_(None), identity.in_(("[]", "null"))))
    elif color:
        for letter in sorted(set(color.upper())):
            stmt = stmt.where(identity.like(f'%"{letter}"%'))

    result = await session.execute(stmt.order_by(CardDB.name, CardDB.id).limit(limit))
    return list(result.scalars().all())


async def get_cards_by_names(session: AsyncSession, names: Iterable[str]) -> dict[str, CardDB]:
    """
    Look up cards by exact name, ignoring case.

    Returns lowercase name -> card. When two catalog cards share a name the
    one with the lower id wins.
    """
    lowered = {name.lower() for name in names}
    if not lowered:
        return {}
    result = await session.execute(
        select(CardDB).where(func.lower(CardDB.name).in_(lowered)).order_by(CardDB.id)
    )
    found: dict[str, CardDB] = {}
    for row in result.scalars().all():
        found.setdefault(row.name.lower(), row)
    return found


async def get_cards_in_chunk(session: AsyncSession, cursor: int, limit: int) -> list[CardDB]:
    """The first `limit` cards with id > cursor, in ascending id order."""
    result = await session.execute(
        select(CardDB).where(CardDB.id > cursor).order_by(CardDB.id).limit(limit)
    )
    return list(result.scalars().all())


async def get_encoded_cards(
    session: AsyncSession, schema_version: str | None = None
) -> list[CardDB]:
    """All cards with a stored vector, optionally of one schema version."""
    query = select(CardDB).where(CardDB.bit_pattern.is_not(None))
    if schema_version is not None:
        query = query.where(CardDB.schema_version == schema_version)
    result = await session.execute(query.order_by(CardDB.id))
    return list(result.scalars().all())


async def get_cards_needing_encoding(
    session: AsyncSession, schema_version: str, after: int = 0, limit: int = 100
) -> list[CardDB]:
    """
    Cards with no vector, or a vector from another schema version.

    Ordered by id and paged by `after` so a caller can walk the catalog.
    """
    result = await session.execute(
        select(CardDB)
        .where(
            CardDB.id > after,
            or_(
                CardDB.bit_pattern.is_(None),
                CardDB.schema_version.is_(None),
                CardDB.schema_version != schema_version,
            ),
        )
        .order_by(CardDB.id)
        .limit(limit)
    )
    return list(result.scalars().all())


async def save_card_vector(
    session: AsyncSession, db_card: CardDB, vector: CharacteristicVector
) -> CardDB:
    """Store a card's vector and its schema version together."""
    db_card.bit_pattern = vector.to_bit_string()
    db_card.schema_version = vector.schema_version
    db_card.encoded_at = _now()
    await session.flush()
    return db_card


async def count_cards(
    session: AsyncSession, encoded_only: bool = False, schema_version: str | None = None
) -> int:
    """Number of cards in the catalog, optionally only those encoded (under one schema)."""
    query = select(func.count()).select_from(CardDB)
    if encoded_only or schema_version is not None:
        query = query.where(CardDB.bit_pattern.is_not(None))
    if schema_version is not None:
        query = query.where(CardDB.schema_version == schema_version)
    result = await session.execute(query)
    return int(result.scalar_one())


async def count_cards_after(session: AsyncSession, cursor: int) -> int:
    """Number of cards with id > cursor."""
    result = await session.execute(
        select(func.count()).select_from(CardDB).where(CardDB.id > cursor)
    )
    return int(result.scalar_one())


def card_to_model(db_card: CardDB) -> Card:
    """Convert a database card to a domain model."""
    vector = None
    if db_card.bit_pattern is not None and db_card.schema_version is not None:
        vector = CharacteristicVector.from_bit_string(db_card.schema_version, db_card.bit_pattern)
    return Card(
        id=db_card.id,
        name=db_card.name,
        oracle_id=db_card.oracle_id,
        oracle_text=db_card.oracle_text,
        type_line=db_card.type_line,
        mana_cost=db_card.mana_cost,
        cmc=db_card.cmc,
        colors=tuple(db_card.colors or ()),
        color_identity=tuple(db_card.color_identity or ()),
        price=db_card.price,
        vector=vector,
    )


# --- Association Operations ---


async def get_association(
    session: AsyncSession, card_a: int, card_b: int
) -> CardAssociationDB | None:
    """Get the association for a pair. Argument order does not matter."""
    card1_id, card2_id = canonical_pair(card_a, card_b)
    result = await session.execute(
        select(CardAssociationDB).where(
            CardAssociationDB.card1_id == card1_id,
            CardAssociationDB.card2_id == card2_id,
        )
    )
    return result.scalar_one_or_none()


async def upsert_association(
    session: AsyncSession,
    card_a: int,
    card_b: int,
    score: float,
    synergy_type: str,
) -> CardAssociationDB:
    """
    Insert or update the association for a pair.

    The pair is stored smaller id first. Upserting identical values leaves
    score and type as they were and only advances updated_at.
    """
    card1_id, card2_id = canonical_pair(card_a, card_b)
    existing = await get_association(session, card1_id, card2_id)
    now = _now()

    if existing:
        existing.synergy_score = score
        existing.synergy_type = synergy_type
        existing.updated_at = now
        await session.flush()
        return existing

    association = CardAssociationDB(
        card1_id=card1_id,
        card2_id=card2_id,
        synergy_score=score,
        synergy_type=synergy_type,
        created_at=now,
        updated_at=now,
    )
    session.add(association)
    await session.flush()
    return association


async def get_neighbors(
    session: AsyncSession,
    card_id: int,
    min_score: float = 0.0,
    limit: int | None = None,
) -> list[Neighbor]:
    """
    Stored neighbors of a card scoring at least min_score.

    Ordered by score descending, ties broken by ascending other id.
    """
    other_id = case(
        (CardAssociationDB.card1_id == card_id, CardAssociationDB.card2_id),
        else_=CardAssociationDB.card1_id,
    )
    query = (
        select(CardAssociationDB, other_id.label("other_id"))
        .where(
            or_(CardAssociationDB.card1_id == card_id, CardAssociationDB.card2_id == card_id),
            CardAssociationDB.synergy_score >= min_score,
        )
        .order_by(CardAssociationDB.synergy_score.desc(), other_id.asc())
    )
    if limit is not None:
        query = query.limit(limit)

    result = await session.execute(query)
    return [
        Neighbor(
            card_id=card_id,
            other_id=int(other),
            score=association.synergy_score,
            synergy_type=association.synergy_type,
        )
        for association, other in result.all()
    ]


async def get_top_associations(session: AsyncSession, limit: int = 20) -> list[CardAssociationDB]:
    """Highest scoring associations in the store."""
    result = await session.execute(
        select(CardAssociationDB)
        .order_by(
            CardAssociationDB.synergy_score.desc(),
            CardAssociationDB.card1_id,
            CardAssociationDB.card2_id,
        )
        .limit(limit)
    )
    return list(result.scalars().all())


async def count_associations(session: AsyncSession) -> int:
    """Number of stored associations."""
    result = await session.execute(select(func.count()).select_from(CardAssociationDB))
    return int(result.scalar_one())


async def get_association_stats(session: AsyncSession) -> AssociationStats:
    """Count, average score, high-synergy count and per-type counts."""
    totals = await session.execute(
        select(
            func.count(CardAssociationDB.id),
            func.avg(CardAssociationDB.synergy_score),
        )
    )
    total, average = totals.one()

    high = await session.execute(
        select(func.count())
        .select_from(CardAssociationDB)
        .where(CardAssociationDB.synergy_score >= HIGH_SYNERGY_SCORE)
    )

    by_type = await session.execute(
        select(CardAssociationDB.synergy_type, func.count())
        .group_by(CardAssociationDB.synergy_type)
        .order_by(func.count().desc(), CardAssociationDB.synergy_type)
    )

    return AssociationStats(
        total=int(total or 0),
        average_score=round(float(average), 4) if average is not None else 0.0,
        high_synergy=int(high.scalar_one()),
        by_type={synergy_type: int(count) for synergy_type, count in by_type.all()},
    )


async def delete_card_associations(session: AsyncSession, card_id: int) -> int:
    """
    Delete every association a card is part of.

    Returns the number of deleted records.
    """
    result = await session.execute(
        delete(CardAssociationDB).where(
            or_(CardAssociationDB.card1_id == card_id, CardAssociationDB.card2_id == card_id)
        )
    )
    return int(result.rowcount)  # type: ignore[attr-defined]


async def get_associations_by_type(
    session: AsyncSession, synergy_type: str, limit: int = 50
) -> list[CardAssociationDB]:
    """Associations of one synergy category, best first."""
    result = await session.execute(
        select(CardAssociationDB)
        .where(CardAssociationDB.synergy_type == synergy_type)
        .order_by(
            CardAssociationDB.synergy_score.desc(),
            CardAssociationDB.card1_id,
            CardAssociationDB.card2_id,
        )
        .limit(limit)
    )
    return list(result.scalars().all())


async def get_associations_among(
    session: AsyncSession, card_ids: Iterable[int]
) -> list[CardAssociationDB]:
    """Associations whose two cards are both in `card_ids`, best first."""
    ids = list(card_ids)
    if len(ids) < 2:
        return []
    result = await session.execute(
        select(CardAssociationDB)
        .where(CardAssociationDB.card1_id.in_(ids), CardAssociationDB.card2_id.in_(ids))
        .order_by(
            CardAssociationDB.synergy_score.desc(),
            CardAssociationDB.card1_id,
            CardAssociationDB.card2_id,
        )
    )
    return list(result.scalars().all())


async def get_synergy_type_stats(
    session: AsyncSession, synergy_type: str | None = None
) -> list[SynergyTypeStats]:
    """
    Count, average and best score per synergy category.

    Ordered by count descending, then category name. Pass `synergy_type`
    to get a single category (an empty list if it has no associations).
    """
    query = select(
        CardAssociationDB.synergy_type,
        func.count(CardAssociationDB.id),
        func.avg(CardAssociationDB.synergy_score),
        func.max(CardAssociationDB.synergy_score),
    ).group_by(CardAssociationDB.synergy_type)
    if synergy_type is not None:
        query = query.where(CardAssociationDB.synergy_type == synergy_type)

    result = await session.execute(
        query.order_by(func.count(CardAssociationDB.id).desc(), CardAssociationDB.synergy_type)
    )
    return [
        SynergyTypeStats(
            synergy_type=name,
            count=int(count),
            average_score=round(float(average), 4),
            max_score=float(best),
        )
        for name, count, average, best in result.all()
    ]


async def clear_associations(session: AsyncSession) -> int:
    """
    Delete every stored association.

    Returns the number of deleted records.
    """
    result = await session.execute(delete(CardAssociationDB))
    # rowcount is available on DELETE results; type stubs incomplete for async
    return int(result.rowcount)  # type: ignore[attr-defined]


def association_to_model(db_association: CardAssociationDB) -> Association:
    """Convert a database association to a domain model."""
    return Association(
        card1_id=db_association.card1_id,
        card2_id=db_association.card2_id,
        synergy_score=db_association.synergy_score,
        synergy_type=db_association.synergy_type,
        created_at=db_association.created_at,
        updated_at=db_association.updated_at,
    )


# --- Checkpoint Operations ---


async def get_checkpoint(session: AsyncSession, run_id: int) -> BatchCheckpointDB | None:
    """Get a run's checkpoint row by id."""
    return await session.get(BatchCheckpointDB, run_id)


async def get_latest_checkpoint(session: AsyncSession) -> BatchCheckpointDB | None:
    """The most recently claimed run, if any."""
    result = await session.execute(
        select(BatchCheckpointDB).order_by(BatchCheckpointDB.id.desc()).limit(1)
    )
    return result.scalar_one_or_none()


async def get_active_run(session: AsyncSession) -> BatchCheckpointDB | None:
    """The run currently holding the processing slot, if any."""
    result = await session.execute(
        select(BatchCheckpointDB).where(BatchCheckpointDB.active_slot.is_not(None))
    )
    return result.scalar_one_or_none()


async def list_checkpoints(session: AsyncSession, limit: int = 20) -> list[BatchCheckpointDB]:
    """Recent runs, newest first."""
    result = await session.execute(
        select(BatchCheckpointDB).order_by(BatchCheckpointDB.id.desc()).limit(limit)
    )
    return list(result.scalars().all())


async def claim_run(
    session: AsyncSession,
    start_cursor: int,
    batch_size: int,
    threshold: float,
    schema_version: str | None,
    total_cards: int,
    action: str = "start a run",
) -> BatchCheckpointDB:
    """
    Claim the processing slot for a new run.

    A single INSERT of a processing row holding the unique active slot.
    If another run holds the slot the insert violates the constraint and
    the claim is rejected, so two runs can never both start.

    Raises:
        ConflictingRunError: If another run is processing
    """
    now = _now()
    row = BatchCheckpointDB(
        status=BatchStatus.PROCESSING.value,
        active_slot=1,
        start_cursor=start_cursor,
        cursor=start_cursor,
        batch_size=batch_size,
        threshold=threshold,
        schema_version=schema_version,
        total_cards=total_cards,
        cards_processed=0,
        comparisons_made=0,
        associations_created=0,
        started_at=now,
        updated_at=now,
    )
    session.add(row)
    try:
        await session.flush()
    except IntegrityError as e:
        await session.rollback()
        active = await get_active_run(session)
        raise ConflictingRunError(active.id if active else None, action=action) from e
    return row


async def expire_stale_runs(session: AsyncSession, older_than: datetime) -> int:
    """
    Mark processing runs that stopped advancing before `older_than` as failed.

    Recovers the processing slot from a run whose process was terminated.
    Returns the number of runs expired.
    """
    now = _now()
    result = await session.execute(
        update(BatchCheckpointDB)
        .where(
            BatchCheckpointDB.status == BatchStatus.PROCESSING.value,
            BatchCheckpointDB.updated_at < older_than,
        )
        .values(
            status=BatchStatus.FAILED.value,
            active_slot=None,
            error_message="Run stopped reporting progress and was marked abandoned",
            finished_at=now,
            updated_at=now,
        )
    )
    return int(result.rowcount)  # type: ignore[attr-defined]


async def advance_checkpoint(
    session: AsyncSession,
    run_id: int,
    cursor: int,
    comparisons: int,
    associations: int,
) -> BatchCheckpointDB:
    """Record one more processed card and move the cursor to it."""
    row = await get_checkpoint(session, run_id)
    if row is None:
        msg = f"Batch run {run_id} not found"
        raise RuntimeError(msg)
    row.cursor = cursor
    row.cards_processed += 1
    row.comparisons_made += comparisons
    row.associations_created += associations
    row.updated_at = _now()
    await session.flush()
    return row


async def finish_run(session: AsyncSession, run_id: int) -> BatchCheckpointDB:
    """Mark a run completed and release the processing slot."""
    return await _close_run(session, run_id, BatchStatus.COMPLETED, None)


async def fail_run(session: AsyncSession, run_id: int, error: str) -> BatchCheckpointDB:
    """Mark a run failed, keeping its cursor, and release the processing slot."""
    return await _close_run(session, run_id, BatchStatus.FAILED, error)


async def _close_run(
    session: AsyncSession, run_id: int, status: BatchStatus, error: str | None
) -> BatchCheckpointDB:
    row = await get_checkpoint(session, run_id)
    if row is None:
        msg = f"Batch run {run_id} not found"
        raise RuntimeError(msg)
    now = _now()
    row.status = status.value
    row.active_slot = None
    row.error_message = error
    row.finished_at = now
    row.updated_at = now
    await session.flush()
    return row


async def clear_checkpoints(session: AsyncSession) -> int:
    """
    Delete every checkpoint row.

    Returns the number of deleted records.
    """
    result = await session.execute(delete(BatchCheckpointDB))
    return int(result.rowcount)  # type: ignore[attr-defined]


def checkpoint_to_model(row: BatchCheckpointDB | None) -> BatchCheckpoint:
    """Convert a checkpoint row to a snapshot. None becomes not_started."""
    if row is None:
        return BatchCheckpoint.not_started()
    return BatchCheckpoint(
        run_id=row.id,
        status=BatchStatus(row.status),
        start_cursor=row.start_cursor,
        cursor=row.cursor,
        batch_size=row.batch_size,
        threshold=row.threshold,
        schema_version=row.schema_version,
        total_cards=row.total_cards,
        cards_processed=row.cards_processed,
        comparisons_made=row.comparisons_made,
        associations_created=row.associations_created,
        started_at=row.started_at,
        updated_at=row.updated_at,
        finished_at=row.finished_at,
        error=row.error_message,
    )
