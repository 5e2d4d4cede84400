from dataclasses import dataclass, field
from enum import Enum

from synergyforge.models.association import Association


@dataclass(frozen=True, slots=True)
class FormatRules:
    """Deck size and copy limits for a format."""

    name: str
    deck_size: int
    max_copies: int


FORMAT_RULES: dict[str, FormatRules] = {
    "standard": FormatRules("standard", deck_size=60, max_copies=4),
    "pauper": FormatRules("pauper", deck_size=60, max_copies=4),
    "modern": FormatRules("modern", deck_size=60, max_copies=4),
    "commander": FormatRules("commander", deck_size=100, max_copies=1),
    "brawl": FormatRules("brawl", deck_size=60, max_copies=1),
    "limited": FormatRules("limited", deck_size=40, max_copies=4),
}


class AssemblyStatus(str, Enum):
    """Whether the assembler reached the target size."""

    COMPLETE = "complete"
    PARTIAL = "partial"


@dataclass
class DeckEntry:
    """
    One card in an assembled deck.

    Attributes:
        card_id: Catalog id
        name: Card name
        quantity: Copies included
        average_score: Average synergy against the selection when added
            (None for the seed)
        round_added: Assembly round that added the card (0 for the seed)
    """

    card_id: int
    name: str
    quantity: int
    average_score: float | None = None
    round_added: int = 0


@dataclass
class DeckSelection:
    """
    A deck grown from a seed card.

    Entries keep insertion order. The total card count never exceeds
    target_size and no entry exceeds max_copies.
    """

    seed_id: int
    target_size: int
    max_copies: int
    entries: dict[int, DeckEntry] = field(default_factory=dict)
    status: AssemblyStatus = AssemblyStatus.PARTIAL
    rounds: int = 0
    total_price: float = 0.0

    def __contains__(self, card_id: object) -> bool:
        return card_id in self.entries

    @property
    def card_ids(self) -> list[int]:
        """Selected card ids in the order they were added."""
        return list(self.entries)

    @property
    def total_cards(self) -> int:
        """Total copies across all entries."""
        return sum(entry.quantity for entry in self.entries.values())

    @property
    def remaining(self) -> int:
        """Copies that still fit before target_size is reached."""
        return max(self.target_size - self.total_cards, 0)

    @property
    def is_complete(self) -> bool:
        return self.total_cards >= self.target_size

    def quantities(self) -> dict[int, int]:
        """Card id -> copies."""
        return {card_id: entry.quantity for card_id, entry in self.entries.items()}

    def add(
        self,
        card_id: int,
        name: str,
        quantity: int,
        average_score: float | None = None,
        round_added: int = 0,
    ) -> DeckEntry:
        """
        Add a card to the selection.

        Raises:
            ValueError: If the card is already selected, the quantity is
                outside 1..max_copies, or it would overflow target_size
        """
        if card_id in self.entries:
            msg = f"Card {card_id} is already in the selection"
            raise ValueError(msg)
        if quantity < 1 or quantity > self.max_copies:
            msg = f"Quantity {quantity} for card {card_id} outside 1..{self.max_copies}"
            raise ValueError(msg)
        if quantity > self.remaining:
            msg = (
                f"Adding {quantity} copies of card {card_id} would exceed "
                f"the target size of {self.target_size}"
            )
            raise ValueError(msg)

        entry = DeckEntry(
            card_id=card_id,
            name=name,
            quantity=quantity,
            average_score=average_score,
            round_added=round_added,
        )
        self.entries[card_id] = entry
        return entry


@dataclass(frozen=True, slots=True)
class AnalyzedCard:
    """A deck list card resolved against the catalog."""

    card_id: int
    name: str
    quantity: int


@dataclass
class DeckAnalysis:
    """
    Stored synergy inside a deck list.

    Attributes:
        cards: Resolved cards, in deck list order
        not_found: Deck list names with no catalog card
        synergies: Stored associations between deck cards, best first
        average_synergy: Mean score over those associations (0 if none)
        by_type: Synergy category -> association count
    """

    cards: list[AnalyzedCard] = field(default_factory=list)
    not_found: list[str] = field(default_factory=list)
    synergies: list[Association] = field(default_factory=list)
    average_synergy: float = 0.0
    by_type: dict[str, int] = field(default_factory=dict)

    @property
    def total_cards(self) -> int:
        return sum(card.quantity for card in self.cards)
