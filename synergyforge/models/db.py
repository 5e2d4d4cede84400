"""
SQLAlchemy ORM models for persistent storage.

Models mirror the dataclass models but add database persistence.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    Float,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class CardDB(Base):
    """
    A catalog card and its encoded characteristic vector.

    The vector is stored as a '0'/'1' string next to the schema version
    it was encoded with, and is always written together with that version.
    """

    __tablename__ = "cards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), index=True)
    # Source identity (Scryfall oracle id); stable across re-imports
    oracle_id: Mapped[str | None] = mapped_column(String(64), nullable=True, unique=True)
    oracle_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    type_line: Mapped[str | None] = mapped_column(String(255), nullable=True)
    mana_cost: Mapped[str | None] = mapped_column(String(100), nullable=True)
    cmc: Mapped[float | None] = mapped_column(Float, nullable=True)
    colors: Mapped[list[Any]] = mapped_column(JSON, default=list)
    color_identity: Mapped[list[Any]] = mapped_column(JSON, default=list)
    price: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Encoded characteristics
    bit_pattern: Mapped[str | None] = mapped_column(String(255), nullable=True)
    schema_version: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)
    encoded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<CardDB(id={self.id}, name={self.name})>"


class CardAssociationDB(Base):
    """
    A scored synergy edge between two cards.

    Pairs are stored smaller id first, so one unordered pair maps to
    exactly one row.
    """

    __tablename__ = "card_associations"
    __table_args__ = (
        UniqueConstraint("card1_id", "card2_id", name="uq_card_pair"),
        CheckConstraint("card1_id < card2_id", name="ck_card_pair_order"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    card1_id: Mapped[int] = mapped_column(Integer, index=True)
    card2_id: Mapped[int] = mapped_column(Integer, index=True)
    synergy_score: Mapped[float] = mapped_column(Float, index=True)
    synergy_type: Mapped[str] = mapped_column(String(50), index=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return (
            f"<CardAssociationDB(pair=({self.card1_id}, {self.card2_id}), "
            f"score={self.synergy_score})>"
        )


class BatchCheckpointDB(Base):
    """
    One batch run, appended when the run is claimed.

    active_slot is 1 while the run is processing and NULL otherwise.
    Its unique constraint lets at most one row hold the slot, so claiming
    a run is a single INSERT that fails if another run is active.
    """

    __tablename__ = "batch_checkpoints"
    __table_args__ = (UniqueConstraint("active_slot", name="uq_active_run"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    status: Mapped[str] = mapped_column(String(20), index=True)
    active_slot: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Run configuration
    start_cursor: Mapped[int] = mapped_column(Integer, default=0)
    batch_size: Mapped[int] = mapped_column(Integer)
    threshold: Mapped[float] = mapped_column(Float)
    schema_version: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Progress
    cursor: Mapped[int] = mapped_column(Integer, default=0)
    total_cards: Mapped[int] = mapped_column(Integer, default=0)
    cards_processed: Mapped[int] = mapped_column(Integer, default=0)
    comparisons_made: Mapped[int] = mapped_column(Integer, default=0)
    associations_created: Mapped[int] = mapped_column(Integer, default=0)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Timestamps
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    finished_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<BatchCheckpointDB(id={self.id}, status={self.status}, cursor={self.cursor})>"
