"""Tests for the greedy deck assembler."""

import pytest
from conftest import make_vector
from sqlalchemy.ext.asyncio import AsyncSession

from synergyforge.db.operations import save_card_vector, upsert_association, upsert_card
from synergyforge.models.card import Card
from synergyforge.models.deck import AssemblyStatus
from synergyforge.models.failure import CardNotFoundError
from synergyforge.services.deck_assembler import (
    AssemblyOptions,
    DeckAssembler,
    InMemorySynergyGraph,
    StoreSynergyGraph,
    select_pool,
)
from synergyforge.services.scorer import SynergyScorer

COMBO = ("infinite_combo_piece", "tribal:wizard", "strategy:combo")


def _card(
    card_id: int,
    *predicates: str,
    type_line: str = "Creature",
    price: float | None = None,
) -> Card:
    return Card(
        id=card_id,
        name=f"Card {card_id}",
        type_line=type_line,
        price=price,
        vector=make_vector(*predicates),
    )


def _assembler(cards: list[Card], **graph_options) -> DeckAssembler:
    return DeckAssembler(InMemorySynergyGraph(cards, SynergyScorer(), **graph_options))


@pytest.fixture
def goblin_pool() -> list[Card]:
    """A goblin seed, 19 more goblins and a goblin-typed basic land."""
    cards = [_card(i, "tribal:goblin") for i in range(1, 21)]
    cards.append(_card(21, "tribal:goblin", type_line="Basic Land — Mountain"))
    return cards


class TestAssemble:
    async def test_reaches_target(self, goblin_pool: list[Card]) -> None:
        """Ranked candidates fill the deck up to the target size."""
        selection = await _assembler(goblin_pool).assemble(1, target_size=10)

        assert selection.status == AssemblyStatus.COMPLETE
        assert selection.total_cards == 10
        assert selection.card_ids == list(range(1, 11))
        assert selection.rounds == 2
        assert selection.entries[1].round_added == 0
        assert selection.entries[2].average_score == 0.3

    async def test_basic_lands_excluded(self, goblin_pool: list[Card]) -> None:
        selection = await _assembler(goblin_pool).assemble(1, target_size=60)

        assert 21 not in selection
        assert selection.total_cards == 20
        assert selection.status == AssemblyStatus.PARTIAL

    async def test_deterministic(self, goblin_pool: list[Card]) -> None:
        """The same pool and options always produce the same deck."""
        first = await _assembler(goblin_pool).assemble(1, target_size=12)
        second = await _assembler(list(reversed(goblin_pool))).assemble(1, target_size=12)

        assert first.card_ids == second.card_ids
        assert first.quantities() == second.quantities()

    async def test_no_synergy_returns_seed_only(self) -> None:
        cards = [_card(1, "tribal:goblin"), _card(2, "tribal:elf"), _card(3, "tribal:elf")]

        selection = await _assembler(cards).assemble(1, target_size=10)

        assert selection.quantities() == {1: 1}
        assert selection.status == AssemblyStatus.PARTIAL
        assert selection.rounds == 1

    async def test_average_against_whole_selection(self) -> None:
        """A candidate must synergize with the selection on average, not with one card."""
        cards = [
            _card(1, "tribal:goblin"),
            _card(2, "tribal:goblin", "tribal:elf"),
            _card(3, "tribal:elf"),
        ]

        selection = await _assembler(cards).assemble(1, target_size=10)

        assert selection.card_ids == [1, 2]
        assert selection.rounds == 2

    async def test_copies_follow_score_bands(self) -> None:
        cards = [_card(1, *COMBO), _card(2, *COMBO), _card(3, *COMBO)]

        selection = await _assembler(cards).assemble(1, target_size=9)

        assert selection.quantities() == {1: 1, 2: 4, 3: 4}
        assert selection.status == AssemblyStatus.COMPLETE

    async def test_never_exceeds_target(self) -> None:
        cards = [_card(1, *COMBO), _card(2, *COMBO), _card(3, *COMBO)]

        selection = await _assembler(cards).assemble(1, target_size=3)

        assert selection.quantities() == {1: 1, 2: 2}
        assert selection.total_cards == 3

    async def test_copy_cap(self) -> None:
        cards = [_card(1, *COMBO), _card(2, *COMBO)]

        selection = await _assembler(cards).assemble(
            1, target_size=10, options=AssemblyOptions(max_copies=2)
        )

        assert selection.quantities() == {1: 1, 2: 2}

    async def test_singleton_format(self) -> None:
        """Commander decks default to 100 cards with one copy each."""
        cards = [_card(1, *COMBO), _card(2, *COMBO), _card(3, *COMBO)]

        selection = await _assembler(cards).assemble(
            1, options=AssemblyOptions(format_name="Commander")
        )

        assert selection.target_size == 100
        assert selection.quantities() == {1: 1, 2: 1, 3: 1}

    async def test_legendary_single_copy(self) -> None:
        cards = [
            _card(1, *COMBO),
            _card(2, *COMBO, type_line="Legendary Creature — Human Wizard"),
        ]

        selection = await _assembler(cards).assemble(1, target_size=10)

        assert selection.quantities() == {1: 1, 2: 1}

    async def test_budget_limits_copies(self) -> None:
        cards = [_card(1, *COMBO), _card(2, *COMBO, price=10.0), _card(3, *COMBO, price=10.0)]

        selection = await _assembler(cards).assemble(
            1, target_size=20, options=AssemblyOptions(max_budget=25.0)
        )

        assert selection.quantities() == {1: 1, 2: 2}
        assert selection.total_price == 20.0

    async def test_pool_limit(self) -> None:
        cards = [_card(i, "tribal:goblin") for i in range(1, 11)]

        selection = await _assembler(cards, pool_limit=3).assemble(1, target_size=10)

        assert selection.card_ids == [1, 2, 3]

    async def test_unknown_seed(self, goblin_pool: list[Card]) -> None:
        with pytest.raises(CardNotFoundError):
            await _assembler(goblin_pool).assemble(999)

    async def test_invalid_target(self, goblin_pool: list[Card]) -> None:
        with pytest.raises(ValueError, match="target_size"):
            await _assembler(goblin_pool).assemble(1, target_size=0)

    async def test_unknown_format(self, goblin_pool: list[Card]) -> None:
        with pytest.raises(ValueError, match="Unknown format"):
            await _assembler(goblin_pool).assemble(
                1, options=AssemblyOptions(format_name="vintage-cube")
            )


class TestSelectPool:
    def test_no_limit_sorts(self) -> None:
        assert select_pool([5, 1, 3], None, None) == [1, 3, 5]

    def test_unseeded_keeps_lowest_ids(self) -> None:
        assert select_pool(list(range(10, 0, -1)), 3, None) == [1, 2, 3]

    def test_seeded_sample_is_reproducible(self) -> None:
        ids = list(range(1, 101))
        sample = select_pool(ids, 10, seed=7)

        assert sample == select_pool(ids, 10, seed=7)
        assert sample == sorted(sample)
        assert len(set(sample)) == 10
        assert set(sample) <= set(ids)


class TestStoreSynergyGraph:
    async def test_uses_stored_associations(self, session: AsyncSession) -> None:
        """Stored scores drive ranking and copy counts."""
        for card_id in range(1, 5):
            await upsert_card(session, Card(id=card_id, name=f"Card {card_id}"))
        await upsert_association(session, 1, 2, 0.8, "token_swarm")
        await upsert_association(session, 1, 3, 0.7, "aristocrats")
        await upsert_association(session, 2, 3, 0.6, "aristocrats")
        await upsert_association(session, 3, 4, 0.2, "general")
        await session.commit()

        options = AssemblyOptions(min_average_score=0.5)
        assembler = DeckAssembler(StoreSynergyGraph(session, SynergyScorer(), options))
        selection = await assembler.assemble(1, target_size=20, options=options)

        assert selection.quantities() == {1: 1, 2: 4, 3: 3}
        assert selection.status == AssemblyStatus.PARTIAL

    async def test_scores_on_demand_without_associations(self, session: AsyncSession) -> None:
        for card_id in range(1, 4):
            row = await upsert_card(session, Card(id=card_id, name=f"Goblin {card_id}"))
            await save_card_vector(session, row, make_vector("tribal:goblin"))
        await upsert_card(session, Card(id=4, name="Unencoded Goblin"))
        await session.commit()

        options = AssemblyOptions()
        assembler = DeckAssembler(StoreSynergyGraph(session, SynergyScorer(), options))
        selection = await assembler.assemble(1, target_size=3, options=options)

        assert selection.card_ids == [1, 2, 3]
        assert selection.status == AssemblyStatus.COMPLETE

    async def test_unknown_seed(self, session: AsyncSession) -> None:
        options = AssemblyOptions()
        assembler = DeckAssembler(StoreSynergyGraph(session, SynergyScorer(), options))
        with pytest.raises(CardNotFoundError):
            await assembler.assemble(1, target_size=10, options=options)
