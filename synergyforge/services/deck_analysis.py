"""
Deck list analysis.

Resolves a pasted deck list against the catalog and reports the stored
synergy between its cards.

Accepted line formats:
    4 Lightning Bolt (LEB) 163
    4x Lightning Bolt
    Lightning Bolt          (one copy)

Section headers (Deck, Sideboard, Commander, Companion) and blank lines
are skipped.
"""

import logging
import re
from collections import Counter
from collections.abc import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from synergyforge.db.operations import (
    association_to_model,
    get_associations_among,
    get_cards_by_names,
)
from synergyforge.models.deck import AnalyzedCard, DeckAnalysis

logger = logging.getLogger(__name__)

# Groups: (quantity, card_name, set_code, collector_number)
DECK_LINE_FULL = re.compile(r"^(\d+)x?\s+(.+?)\s+\(([A-Z0-9]+)\)\s+(\S+)$")

# Groups: (quantity, card_name)
DECK_LINE_COUNTED = re.compile(r"^(\d+)x?\s+(.+)$")

SECTION_HEADERS = frozenset({"deck", "sideboard", "commander", "companion"})


def parse_deck_list(lines: Iterable[str]) -> list[tuple[str, int]]:
    """
    Parse deck list lines into (name, quantity) pairs.

    Repeated names (ignoring case) are merged under their first spelling.
    Lines with a zero quantity are dropped.
    """
    quantities: dict[str, int] = {}
    spelling: dict[str, str] = {}

    for raw in lines:
        for line in raw.splitlines():
            line = line.strip()
            if not line or line.lower() in SECTION_HEADERS:
                continue

            match = DECK_LINE_FULL.match(line) or DECK_LINE_COUNTED.match(line)
            if match:
                quantity, name = int(match.group(1)), match.group(2).strip()
            else:
                quantity, name = 1, line
            if quantity <= 0:
                continue

            key = name.lower()
            spelling.setdefault(key, name)
            quantities[key] = quantities.get(key, 0) + quantity

    return [(spelling[key], quantity) for key, quantity in quantities.items()]


async def analyze_deck(session: AsyncSession, lines: Iterable[str]) -> DeckAnalysis:
    """
    Report the stored synergy inside a deck list.

    Raises:
        ValueError: If the list holds no card lines
    """
    entries = parse_deck_list(lines)
    if not entries:
        raise ValueError("Deck list contains no cards")

    found = await get_cards_by_names(session, [name for name, _ in entries])

    analysis = DeckAnalysis()
    for name, quantity in entries:
        row = found.get(name.lower())
        if row is None:
            analysis.not_found.append(name)
            continue
        analysis.cards.append(AnalyzedCard(card_id=row.id, name=row.name, quantity=quantity))

    rows = await get_associations_among(session, {card.card_id for card in analysis.cards})
    analysis.synergies = [association_to_model(row) for row in rows]
    if analysis.synergies:
        total = sum(a.synergy_score for a in analysis.synergies)
        analysis.average_synergy = round(total / len(analysis.synergies), 4)

    counts = Counter(a.synergy_type for a in analysis.synergies)
    analysis.by_type = dict(sorted(counts.items(), key=lambda item: (-item[1], item[0])))

    logger.info(
        "Analyzed deck: %d cards resolved, %d not found, %d synergies (avg %.4f)",
        len(analysis.cards),
        len(analysis.not_found),
        len(analysis.synergies),
        analysis.average_synergy,
    )
    return analysis
