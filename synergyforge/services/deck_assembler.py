"""
Greedy deck assembler.

Grows a deck from a seed card. Each round gathers the top neighbors of
every selected card, ranks each new candidate by its AVERAGE synergy
against the whole current selection, and adds the best few. Assembly
stops at the target size or when a round adds nothing.

Ranking ties break on ascending card id, so the same synergy data and
options always produce the same deck.
"""

import logging
import math
import random
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from synergyforge.config import MAX_TARGET_SIZE, settings
from synergyforge.db.operations import (
    card_to_model,
    get_association,
    get_card,
    get_cards,
    get_encoded_cards,
    get_neighbors,
)
from synergyforge.models.association import Neighbor, SynergyScore, canonical_pair
from synergyforge.models.card import Card
from synergyforge.models.deck import FORMAT_RULES, AssemblyStatus, DeckSelection, FormatRules
from synergyforge.models.failure import CardNotFoundError
from synergyforge.services.scorer import SynergyScorer

logger = logging.getLogger(__name__)

DEFAULT_TARGET_SIZE = 60

# Average score floor -> copies, checked top down
DEFAULT_COPY_BANDS: tuple[tuple[float, int], ...] = ((0.75, 4), (0.60, 3), (0.45, 2))


@dataclass
class AssemblyOptions:
    """
    Tuning for one assembly.

    Attributes:
        min_average_score: Candidates below this average are never added
        max_copies: Per-card copy cap
        format_name: Optional format whose copy limit and deck size apply
        excluded_types: Type-line fragments (lowercase) that disqualify a candidate
        neighbors_per_card: Neighbors fetched for each selected card per round
        neighbor_min_score: Minimum pair score for a neighbor to be considered
        picks_per_round: Most cards added in a single round
        copy_bands: (average score floor, copies) pairs, highest floor first
        singleton_legendary: Legendary cards get one copy
        max_budget: Optional price ceiling for the whole deck
        candidate_pool_limit: Cap on cards scored on demand
        sample_seed: Seed for sampling the capped pool; None takes lowest ids
    """

    min_average_score: float = settings.assembly_min_average_score
    max_copies: int = 4
    format_name: str | None = None
    excluded_types: frozenset[str] = frozenset({"basic land"})
    neighbors_per_card: int = 20
    neighbor_min_score: float = 0.0
    picks_per_round: int = 5
    copy_bands: tuple[tuple[float, int], ...] = DEFAULT_COPY_BANDS
    singleton_legendary: bool = True
    max_budget: float | None = None
    candidate_pool_limit: int | None = None
    sample_seed: int | None = None

    @property
    def format_rules(self) -> FormatRules | None:
        if self.format_name is None:
            return None
        try:
            return FORMAT_RULES[self.format_name.lower()]
        except KeyError:
            msg = f"Unknown format '{self.format_name}'. Known formats: {sorted(FORMAT_RULES)}"
            raise ValueError(msg) from None

    @property
    def copy_cap(self) -> int:
        """Copy limit after applying the format's rules."""
        rules = self.format_rules
        if rules is None:
            return self.max_copies
        return min(self.max_copies, rules.max_copies)

    def copies_for(self, average_score: float) -> int:
        """Copies suggested by the score bands (before any cap)."""
        for floor, copies in self.copy_bands:
            if average_score >= floor:
                return copies
        return 1

    def is_excluded(self, card: Card) -> bool:
        type_line = (card.type_line or "").lower()
        return any(excluded in type_line for excluded in self.excluded_types)


def select_pool(card_ids: list[int], limit: int | None, seed: int | None) -> list[int]:
    """
    Cap a candidate pool.

    With a seed the pool is a reproducible random sample, otherwise the
    lowest ids are kept. The result is always sorted.
    """
    ids = sorted(card_ids)
    if limit is None or len(ids) <= limit:
        return ids
    if seed is None:
        return ids[:limit]
    return sorted(random.Random(seed).sample(ids, limit))


class SynergyGraph(Protocol):
    """Where the assembler reads cards, neighbors and pair scores from."""

    async def get_card(self, card_id: int) -> Card | None: ...

    async def get_cards(self, card_ids: set[int]) -> dict[int, Card]: ...

    async def neighbors(self, card_id: int, limit: int, min_score: float) -> list[Neighbor]: ...

    async def pair_score(self, card_a: int, card_b: int) -> float: ...


class InMemorySynergyGraph:
    """
    Scores a supplied card pool on demand.

    Cards without a vector are part of the pool but score 0 with everything.
    """

    def __init__(
        self,
        cards: list[Card],
        scorer: SynergyScorer,
        pool_limit: int | None = None,
        sample_seed: int | None = None,
    ):
        self._cards = {card.id: card for card in cards if card.id is not None}
        self._scorer = scorer
        self._pool = select_pool(list(self._cards), pool_limit, sample_seed)
        self._scores: dict[tuple[int, int], SynergyScore] = {}

    async def get_card(self, card_id: int) -> Card | None:
        return self._cards.get(card_id)

    async def get_cards(self, card_ids: set[int]) -> dict[int, Card]:
        return {cid: self._cards[cid] for cid in card_ids if cid in self._cards}

    async def neighbors(self, card_id: int, limit: int, min_score: float) -> list[Neighbor]:
        return await _score_neighbors(self, card_id, self._pool, limit, min_score)

    async def pair_score(self, card_a: int, card_b: int) -> float:
        return (await self.pair(card_a, card_b)).score

    async def pair(self, card_a: int, card_b: int) -> SynergyScore:
        key = canonical_pair(card_a, card_b)
        if key not in self._scores:
            left, right = self._cards.get(card_a), self._cards.get(card_b)
            result = self._scorer.score_cards(left, right) if left and right else None
            self._scores[key] = result or SynergyScore(0.0, self._scorer.rules.fallback_type)
        return self._scores[key]


class StoreSynergyGraph:
    """
    Reads the association store, scoring on demand where it is empty.

    A card with no stored neighbors is scored against the encoded catalog
    (capped by the options' pool limit). A pair missing from the store is
    scored directly; a pair involving an unencoded card scores 0.
    """

    def __init__(self, session: AsyncSession, scorer: SynergyScorer, options: AssemblyOptions):
        self._session = session
        self._scorer = scorer
        self._options = options
        self._cards: dict[int, Card] = {}
        self._scores: dict[tuple[int, int], SynergyScore] = {}
        self._pool: list[int] | None = None

    async def get_card(self, card_id: int) -> Card | None:
        if card_id not in self._cards:
            row = await get_card(self._session, card_id)
            if row is None:
                return None
            self._cards[card_id] = card_to_model(row)
        return self._cards[card_id]

    async def get_cards(self, card_ids: set[int]) -> dict[int, Card]:
        missing = [cid for cid in card_ids if cid not in self._cards]
        for row in await get_cards(self._session, missing):
            self._cards[row.id] = card_to_model(row)
        return {cid: self._cards[cid] for cid in card_ids if cid in self._cards}

    async def neighbors(self, card_id: int, limit: int, min_score: float) -> list[Neighbor]:
        stored = await get_neighbors(self._session, card_id, min_score=min_score, limit=limit)
        if stored:
            for neighbor in stored:
                self._scores[canonical_pair(card_id, neighbor.other_id)] = SynergyScore(
                    neighbor.score, neighbor.synergy_type
                )
            return stored

        pool = await self._candidate_pool()
        return await _score_neighbors(self, card_id, pool, limit, min_score)

    async def pair_score(self, card_a: int, card_b: int) -> float:
        return (await self.pair(card_a, card_b)).score

    async def pair(self, card_a: int, card_b: int) -> SynergyScore:
        key = canonical_pair(card_a, card_b)
        if key in self._scores:
            return self._scores[key]

        association = await get_association(self._session, card_a, card_b)
        if association is not None:
            result = SynergyScore(association.synergy_score, association.synergy_type)
        else:
            cards = await self.get_cards({card_a, card_b})
            left, right = cards.get(card_a), cards.get(card_b)
            scored = self._scorer.score_cards(left, right) if left and right else None
            result = scored or SynergyScore(0.0, self._scorer.rules.fallback_type)
        self._scores[key] = result
        return result

    async def _candidate_pool(self) -> list[int]:
        if self._pool is None:
            rows = await get_encoded_cards(self._session, self._scorer.schema.version)
            for row in rows:
                self._cards.setdefault(row.id, card_to_model(row))
            self._pool = select_pool(
                [row.id for row in rows],
                self._options.candidate_pool_limit,
                self._options.sample_seed,
            )
        return self._pool


async def _score_neighbors(
    graph: InMemorySynergyGraph | StoreSynergyGraph,
    card_id: int,
    pool: list[int],
    limit: int,
    min_score: float,
) -> list[Neighbor]:
    scored: list[Neighbor] = []
    for other_id in pool:
        if other_id == card_id:
            continue
        result = await graph.pair(card_id, other_id)
        if result.score > 0 and result.score >= min_score:
            scored.append(Neighbor(card_id, other_id, result.score, result.synergy_type))
    scored.sort(key=lambda n: (-n.score, n.other_id))
    return scored[:limit]


@dataclass
class _Candidate:
    card: Card
    average_score: float


class DeckAssembler:
    """Greedy, deterministic deck growth over a synergy graph."""

    def __init__(self, graph: SynergyGraph):
        self._graph = graph

    async def assemble(
        self,
        seed_id: int,
        target_size: int | None = None,
        options: AssemblyOptions | None = None,
    ) -> DeckSelection:
        """
        Build a deck around a seed card.

        Args:
            seed_id: Card the deck is built around (added with one copy)
            target_size: Total copies wanted. Defaults to the format's deck
                size, or 60.
            options: Assembly tuning

        Returns:
            The selection, with status complete if target_size was reached
            and partial if the graph ran out of eligible candidates first

        Raises:
            CardNotFoundError: If the seed card does not exist
            ValueError: If target_size or the format is invalid
        """
        options = options or AssemblyOptions()
        rules = options.format_rules
        if target_size is None:
            target_size = rules.deck_size if rules else DEFAULT_TARGET_SIZE
        if not 1 <= target_size <= MAX_TARGET_SIZE:
            msg = f"target_size must be between 1 and {MAX_TARGET_SIZE}, got {target_size}"
            raise ValueError(msg)

        seed = await self._graph.get_card(seed_id)
        if seed is None:
            raise CardNotFoundError(seed_id)

        selection = DeckSelection(
            seed_id=seed_id, target_size=target_size, max_copies=options.copy_cap
        )
        selection.add(seed_id, seed.name, 1)
        selection.total_price = seed.price or 0.0

        while selection.remaining > 0:
            round_number = selection.rounds + 1
            candidates = await self._rank_candidates(selection, options)
            added = self._add_round(selection, candidates, options, round_number)
            selection.rounds = round_number
            logger.debug("Assembly round %d added %d cards", round_number, added)
            if added == 0:
                break

        selection.status = (
            AssemblyStatus.COMPLETE if selection.is_complete else AssemblyStatus.PARTIAL
        )
        logger.info(
            "Assembled %d/%d cards around %d in %d rounds (%s)",
            selection.total_cards,
            target_size,
            seed_id,
            selection.rounds,
            selection.status.value,
        )
        return selection

    async def _rank_candidates(
        self, selection: DeckSelection, options: AssemblyOptions
    ) -> list[_Candidate]:
        selected = selection.card_ids

        touched: set[int] = set()
        for card_id in selected:
            neighbors = await self._graph.neighbors(
                card_id, options.neighbors_per_card, options.neighbor_min_score
            )
            touched.update(n.other_id for n in neighbors if n.other_id not in selection)

        cards = await self._graph.get_cards(touched)
        ranked: list[_Candidate] = []
        for card_id in sorted(touched):
            card = cards.get(card_id)
            if card is None or options.is_excluded(card):
                continue
            scores = [await self._graph.pair_score(card_id, other) for other in selected]
            average = round(sum(scores) / len(scores), 4)
            if average >= options.min_average_score:
                ranked.append(_Candidate(card=card, average_score=average))

        ranked.sort(key=lambda c: (-c.average_score, c.card.id))
        return ranked

    def _add_round(
        self,
        selection: DeckSelection,
        candidates: list[_Candidate],
        options: AssemblyOptions,
        round_number: int,
    ) -> int:
        added = 0
        for candidate in candidates:
            if added >= options.picks_per_round or selection.remaining == 0:
                break
            copies = self._copies(selection, candidate, options)
            if copies < 1:
                continue
            card = candidate.card
            selection.add(card.id, card.name, copies, candidate.average_score, round_number)
            if card.price:
                selection.total_price = round(selection.total_price + card.price * copies, 2)
            added += 1
        return added

    def _copies(
        self, selection: DeckSelection, candidate: _Candidate, options: AssemblyOptions
    ) -> int:
        copies = options.copies_for(candidate.average_score)
        if options.singleton_legendary and candidate.card.is_legendary:
            copies = 1
        copies = min(copies, selection.max_copies, selection.remaining)

        price = candidate.card.price
        if options.max_budget is not None and price:
            left = options.max_budget - selection.total_price
            copies = min(copies, max(math.floor(left / price + 1e-9), 0))
        return copies
