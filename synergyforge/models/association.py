from dataclasses import dataclass, field
from datetime import datetime

GENERAL_SYNERGY = "general"


def canonical_pair(card_a: int, card_b: int) -> tuple[int, int]:
    """
    Order a pair of card ids smaller-first.

    Raises:
        ValueError: If both ids are the same card
    """
    if card_a == card_b:
        msg = f"A card cannot be paired with itself (id={card_a})"
        raise ValueError(msg)
    return (card_a, card_b) if card_a < card_b else (card_b, card_a)


@dataclass(frozen=True, slots=True)
class SynergyScore:
    """Result of scoring one pair: a value in [0, 1] and why."""

    score: float
    synergy_type: str = GENERAL_SYNERGY


@dataclass
class Association:
    """
    A stored synergy edge between two cards.

    Attributes:
        card1_id: Smaller card id of the pair
        card2_id: Larger card id of the pair
        synergy_score: Score in [0, 1]
        synergy_type: Synergy category label
        created_at: When the pair was first stored
        updated_at: When the pair was last written
    """

    card1_id: int
    card2_id: int
    synergy_score: float
    synergy_type: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def other(self, card_id: int) -> int:
        """The id on the opposite side of the pair from card_id."""
        return self.card2_id if card_id == self.card1_id else self.card1_id


@dataclass(frozen=True, slots=True)
class Neighbor:
    """One synergistic neighbor of a card."""

    card_id: int
    other_id: int
    score: float
    synergy_type: str


@dataclass
class AssociationStats:
    """Summary of the association store."""

    total: int = 0
    average_score: float = 0.0
    high_synergy: int = 0
    by_type: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class SynergyTypeStats:
    """Stored associations of one synergy category."""

    synergy_type: str
    count: int
    average_score: float
    max_score: float
