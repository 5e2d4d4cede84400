"""
Card catalog service.

Loads Scryfall-shaped card records, stores them in the catalog and
keeps every stored card encoded with the current characteristic schema.
"""

import dataclasses
import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from synergyforge.db.operations import (
    card_to_model,
    get_cards_needing_encoding,
    save_card_vector,
    upsert_card,
)
from synergyforge.models.card import Card
from synergyforge.models.failure import EncodingSkipError
from synergyforge.services.encoder import CharacteristicEncoder

logger = logging.getLogger(__name__)

ENCODE_PAGE_SIZE = 100

SCRYFALL_BULK_API = "https://api.scryfall.com/bulk-data"

# One record per distinct card, which is what the catalog wants
DEFAULT_BULK_TYPE = "oracle_cards"


@dataclass
class EncodingReport:
    """Outcome of an encoding pass."""

    encoded: int = 0
    skipped: int = 0
    skipped_names: list[str] = field(default_factory=list)


async def download_card_file(output_path: Path, bulk_type: str = DEFAULT_BULK_TYPE) -> Path:
    """
    Download a Scryfall bulk card file.

    Args:
        output_path: Where to save the file
        bulk_type: Scryfall bulk data type (e.g. "oracle_cards", "default_cards")

    Returns:
        Path to the downloaded file

    Raises:
        ValueError: If Scryfall lists no bulk file of that type
        httpx.HTTPError: If a request fails
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)

    async with httpx.AsyncClient(timeout=30.0) as client:
        response = await client.get(SCRYFALL_BULK_API)
        response.raise_for_status()

        download_url = None
        for item in response.json()["data"]:
            if item["type"] == bulk_type:
                download_url = item["download_uri"]
                break

        if not download_url:
            raise ValueError(f"Could not find {bulk_type} bulk data URL")

        # Stream download (the file is tens of MB)
        async with client.stream("GET", download_url, timeout=300.0) as response:
            response.raise_for_status()
            with open(output_path, "wb") as f:
                async for chunk in response.aiter_bytes(8192):
                    f.write(chunk)

    return output_path


def load_cards_from_file(path: Path) -> list[Card]:
    """
    Load cards from a Scryfall bulk JSON file.

    Records without an `id_number` get ids in file order, starting after
    the largest explicit id in the file. These ids are provisional: on
    import a card already in the catalog (same oracle id) keeps its id.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is not a JSON list of card objects
    """
    if not path.exists():
        raise FileNotFoundError(f"Card file not found at {path}")

    with open(path, encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, list):
        msg = f"Expected a JSON list of cards in {path}, got {type(data).__name__}"
        raise ValueError(msg)

    return parse_card_records(data)


def parse_card_records(records: Iterable[dict[str, Any]]) -> list[Card]:
    """Normalize raw card records into Card models with assigned ids."""
    records = list(records)
    explicit = [r["id_number"] for r in records if isinstance(r.get("id_number"), int)]
    next_id = max(explicit, default=0) + 1

    cards: list[Card] = []
    for record in records:
        if not record.get("name"):
            logger.warning("Skipping card record without a name")
            continue
        card_id = record.get("id_number")
        if not isinstance(card_id, int):
            card_id = next_id
            next_id += 1
        cards.append(Card.from_scryfall(record, card_id=card_id))
    return cards


async def import_cards(session: AsyncSession, cards: Iterable[Card]) -> list[int]:
    """
    Upsert cards into the catalog.

    Returns the catalog ids of the written cards, in input order.
    """
    ids: list[int] = []
    for card in cards:
        db_card = await upsert_card(session, card)
        ids.append(db_card.id)
    logger.info("Imported %d cards", len(ids))
    return ids


def encode_cards(
    encoder: CharacteristicEncoder, cards: Iterable[Card]
) -> tuple[list[Card], EncodingReport]:
    """
    Encode in-memory cards.

    Cards that cannot be encoded are left out of the result and counted
    as skipped.
    """
    report = EncodingReport()
    encoded: list[Card] = []
    for card in cards:
        try:
            vector = encoder.encode(card)
        except EncodingSkipError as e:
            logger.warning("Skipping card: %s", e.message)
            report.skipped += 1
            report.skipped_names.append(e.name)
            continue
        encoded.append(dataclasses.replace(card, vector=vector))
        report.encoded += 1
    return encoded, report


async def encode_catalog(
    session: AsyncSession,
    encoder: CharacteristicEncoder,
    page_size: int = ENCODE_PAGE_SIZE,
) -> EncodingReport:
    """
    Encode every catalog card whose vector is missing or out of date.

    Walks the catalog in ascending id order. Each card's vector and schema
    version are written together.
    """
    report = EncodingReport()
    version = encoder.schema.version
    after = 0

    while True:
        page = await get_cards_needing_encoding(session, version, after=after, limit=page_size)
        if not page:
            break

        for db_card in page:
            try:
                vector = encoder.encode(card_to_model(db_card))
            except EncodingSkipError as e:
                logger.warning("Skipping card: %s", e.message)
                report.skipped += 1
                report.skipped_names.append(e.name)
                continue
            await save_card_vector(session, db_card, vector)
            report.encoded += 1

        after = page[-1].id
        logger.info("Encoded %d cards so far (through id %d)", report.encoded, after)

    return report
