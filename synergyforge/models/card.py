from dataclasses import dataclass, field
from typing import Any

from synergyforge.models.schema import CharacteristicSchema


@dataclass(frozen=True, slots=True)
class CharacteristicVector:
    """
    A card's encoded characteristics.

    Attributes:
        schema_version: Version of the schema the bits were produced with
        bits: One boolean per schema predicate, in schema order
    """

    schema_version: str
    bits: tuple[bool, ...]

    def __len__(self) -> int:
        return len(self.bits)

    def is_set(self, index: int) -> bool:
        """True if the predicate at this bit position holds."""
        return self.bits[index]

    def to_bit_string(self) -> str:
        """Persisted form: one '0'/'1' character per predicate."""
        return "".join("1" if bit else "0" for bit in self.bits)

    @classmethod
    def from_bit_string(cls, schema_version: str, pattern: str) -> "CharacteristicVector":
        """Parse the persisted form back into a vector."""
        if any(ch not in "01" for ch in pattern):
            msg = f"Invalid bit pattern {pattern!r}"
            raise ValueError(msg)
        return cls(schema_version=schema_version, bits=tuple(ch == "1" for ch in pattern))

    def set_predicates(self, schema: CharacteristicSchema) -> list[str]:
        """Names of the predicates that hold, in schema order."""
        return [name for name, bit in zip(schema.predicates, self.bits, strict=True) if bit]


@dataclass(frozen=True, slots=True)
class Card:
    """
    A catalog card.

    Optional attributes are resolved once when the card is loaded; a missing
    value is None (or an empty tuple), never an absent key.

    Attributes:
        id: Stable catalog identity (None until assigned)
        name: Card name
        oracle_id: Source identity of the card (Scryfall oracle id), if known
        oracle_text: Rules text
        type_line: Full type line (e.g. "Creature — Goblin Warrior")
        mana_cost: Mana cost string (e.g. "{1}{R}")
        cmc: Converted mana cost
        colors: Color letters (W, U, B, R, G)
        color_identity: Color identity letters
        price: Price in USD, if known
        vector: Encoded characteristics, if the card has been encoded
    """

    id: int | None
    name: str
    oracle_id: str | None = None
    oracle_text: str | None = None
    type_line: str | None = None
    mana_cost: str | None = None
    cmc: float | None = None
    colors: tuple[str, ...] = field(default_factory=tuple)
    color_identity: tuple[str, ...] = field(default_factory=tuple)
    price: float | None = None
    vector: CharacteristicVector | None = None

    @property
    def subtypes(self) -> list[str]:
        """Lowercase subtypes from the type line (words after the dash)."""
        if not self.type_line:
            return []
        for dash in ("—", " - "):
            if dash in self.type_line:
                return self.type_line.split(dash, 1)[1].lower().split()
        return []

    @property
    def is_land(self) -> bool:
        return bool(self.type_line) and "land" in self.type_line.lower()

    @property
    def is_basic_land(self) -> bool:
        return bool(self.type_line) and "basic land" in self.type_line.lower()

    @property
    def is_legendary(self) -> bool:
        return bool(self.type_line) and "legendary" in self.type_line.lower()

    @classmethod
    def from_scryfall(cls, data: dict[str, Any], card_id: int | None = None) -> "Card":
        """
        Build a card from a Scryfall-shaped record.

        Double-faced cards without top-level oracle text use the joined
        text of their faces.
        """
        oracle = data.get("oracle_text")
        if oracle is None and data.get("card_faces"):
            faces = [face.get("oracle_text") or "" for face in data["card_faces"]]
            oracle = "\n".join(text for text in faces if text) or None

        price: float | None = None
        raw_price = (data.get("prices") or {}).get("usd")
        if raw_price is None:
            raw_price = data.get("price")
        if raw_price not in (None, ""):
            price = float(raw_price)

        cmc = data.get("cmc")
        return cls(
            id=card_id if card_id is not None else data.get("id_number"),
            name=data.get("name") or "",
            oracle_id=data.get("oracle_id"),
            oracle_text=oracle,
            type_line=data.get("type_line"),
            mana_cost=data.get("mana_cost"),
            cmc=float(cmc) if cmc is not None else None,
            colors=tuple(data.get("colors") or ()),
            color_identity=tuple(data.get("color_identity") or ()),
            price=price,
        )
