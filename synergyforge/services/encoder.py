"""
Characteristic encoder.

Turns a card's attributes into a fixed-width boolean vector over the
predicates of a CharacteristicSchema. Encoding is pure and deterministic:
the same attributes always produce the same vector for a schema version.

Missing text, type line or colors simply leave the dependent predicates
false. The only failure is a card without an id.
"""

import re
from dataclasses import dataclass, field
from functools import lru_cache

from synergyforge.models.card import Card, CharacteristicVector
from synergyforge.models.failure import EncodingSkipError
from synergyforge.models.schema import (
    DEFAULT_SCHEMA,
    TRIBAL_KINDS,
    CharacteristicSchema,
    color,
    strategy,
    tribal,
)

# Mechanic predicate -> regex patterns matched against lowercase oracle text
MECHANIC_PATTERNS: dict[str, tuple[str, ...]] = {
    "produces_mana": (
        r"\badd\b[^.]*\{[wubrgc]\}",
        r"\badd\b[^.]*\bmana\b",
        r"search your library for [^.]*\bland\b",
    ),
    "reduces_costs": (
        r"\bcosts? \{?\d*\}? ?less to cast\b",
        r"\bcost[s]? [^.]*\bless\b",
        r"\baffinity for\b",
        r"\bconvoke\b",
    ),
    "draws_cards": (
        r"\bdraws? (?:a|one|two|three|x|that many|\w+) cards?\b",
        r"\bdraw cards\b",
    ),
    "creates_tokens": (
        r"\bcreates? [^.]*\btokens?\b",
        r"\bpopulate\b",
    ),
    "anthem": (
        r"\b(?:other )?creatures you control get \+\d+/\+\d+",
        r"\b(?:other )?\w+s you control get \+\d+/\+\d+",
        r"\bcreature tokens you control get\b",
    ),
    "sacrifice_outlet": (
        r"\bsacrifice (?:a|an|another|one or more) (?:creature|permanent|artifact)\b[^.]*:",
        r"\bsacrifice (?:a|another) creature\b",
    ),
    "death_payoff": (
        r"\bwhenever [^.]*\bdies\b",
        r"\bwhenever you sacrifice\b",
        r"\bwhen [^.]*\bdies\b",
    ),
    "infinite_combo_piece": (
        r"\buntap (?:target|all|another|each)\b",
        r"\bcopy target (?:instant|sorcery|spell)\b",
        r"\bwhenever [^.]*\buntaps?\b",
        r"\binfinite\b",
        r"\btake an extra turn\b",
    ),
}

# Strategy archetype -> indicator keywords found in oracle text or type line.
# Keywords match whole words only ('flash' never matches 'flashback').
STRATEGY_INDICATORS: dict[str, tuple[str, ...]] = {
    "aggro": ("haste", "first strike", "menace", "prowess", "attacks each combat"),
    "control": ("counter target", "destroy target", "exile target", "destroy all"),
    "combo": ("untap", "copy target", "whenever you cast", "search your library for a card"),
    "midrange": ("enters the battlefield", "when this creature enters", "gain life"),
    "tempo": ("flash", "return target", "to its owner's hand", "tap target"),
    "ramp": ("search your library for a basic land", "additional land", "add {"),
    "aristocrats": ("sacrifice a creature", "whenever a creature you control dies", "dies,"),
    "spellslinger": ("instant or sorcery", "whenever you cast a noncreature", "magecraft"),
    "voltron": ("equipped creature", "enchanted creature gets", "equip {", "aura"),
    "stax": ("can't untap", "don't untap", "each player can't", "costs {1} more"),
    "group_hug": ("each player draws", "each player may", "each opponent draws"),
    "mill": ("mill", "mills", "into their graveyard from the top"),
}

COLOR_LETTERS: dict[str, str] = {
    "W": "white",
    "U": "blue",
    "B": "black",
    "R": "red",
    "G": "green",
}


def _keyword_pattern(keyword: str) -> re.Pattern[str]:
    """Compile an indicator keyword with word boundaries at its alphanumeric ends."""
    keyword = keyword.strip()
    start = r"\b" if keyword[0].isalnum() else ""
    end = r"\b" if keyword[-1].isalnum() else ""
    return re.compile(start + re.escape(keyword) + end)


def _plural(kind: str) -> str:
    if kind == "elf":
        return "elves"
    if kind == "merfolk":
        return "merfolk"
    return f"{kind}s"


@dataclass(frozen=True)
class EncoderRules:
    """
    Detection rules for an encoder.

    Attributes:
        mechanic_patterns: Predicate name -> regex patterns over oracle text
        strategy_indicators: Archetype -> indicator keywords
        tribal_kinds: Tribes tracked with one bit each
        color_letters: Color letter -> color tag
    """

    mechanic_patterns: dict[str, tuple[str, ...]] = field(
        default_factory=lambda: dict(MECHANIC_PATTERNS)
    )
    strategy_indicators: dict[str, tuple[str, ...]] = field(
        default_factory=lambda: dict(STRATEGY_INDICATORS)
    )
    tribal_kinds: tuple[str, ...] = TRIBAL_KINDS
    color_letters: dict[str, str] = field(default_factory=lambda: dict(COLOR_LETTERS))

    def predicate_names(self) -> list[str]:
        """Every predicate these rules can set."""
        names = list(self.mechanic_patterns)
        names.extend(tribal(kind) for kind in self.tribal_kinds)
        names.extend(strategy(archetype) for archetype in self.strategy_indicators)
        names.extend(color(tag) for tag in self.color_letters.values())
        names.extend((color("colorless"), color("multicolor")))
        return names


DEFAULT_ENCODER_RULES = EncoderRules()


class CharacteristicEncoder:
    """Encodes cards against one schema with one set of rules."""

    def __init__(
        self,
        schema: CharacteristicSchema = DEFAULT_SCHEMA,
        rules: EncoderRules = DEFAULT_ENCODER_RULES,
    ):
        missing = [name for name in rules.predicate_names() if name not in schema]
        if missing:
            msg = (
                f"Encoder rules reference predicates missing from schema {schema.version}: "
                f"{missing}"
            )
            raise ValueError(msg)

        self.schema = schema
        self.rules = rules
        self._mechanics = {
            name: [re.compile(pattern) for pattern in patterns]
            for name, patterns in rules.mechanic_patterns.items()
        }
        self._strategies = {
            archetype: [_keyword_pattern(keyword) for keyword in keywords]
            for archetype, keywords in rules.strategy_indicators.items()
        }

    def encode(self, card: Card) -> CharacteristicVector:
        """
        Encode a card.

        Raises:
            EncodingSkipError: If the card has no id
        """
        if card.id is None:
            raise EncodingSkipError(card.name or "<unnamed>")

        bits = [False] * len(self.schema)
        for name in self.predicates_for(card):
            bits[self.schema.index(name)] = True
        return CharacteristicVector(schema_version=self.schema.version, bits=tuple(bits))

    def predicates_for(self, card: Card) -> set[str]:
        """Names of the predicates that hold for a card."""
        oracle = (card.oracle_text or "").lower()
        type_line = (card.type_line or "").lower()

        found: set[str] = set()
        found.update(self._mechanics_in(oracle))
        found.update(self._tribes_of(card, oracle))
        found.update(self._strategies_in(oracle, type_line))
        found.update(self._colors_of(card))
        return found

    def _mechanics_in(self, oracle: str) -> set[str]:
        if not oracle:
            return set()
        return {
            name
            for name, patterns in self._mechanics.items()
            if any(pattern.search(oracle) for pattern in patterns)
        }

    def _tribes_of(self, card: Card, oracle: str) -> set[str]:
        subtypes = set(card.subtypes)
        tribes: set[str] = set()
        for kind in self.rules.tribal_kinds:
            if kind in subtypes:
                tribes.add(tribal(kind))
            elif oracle and re.search(rf"\b(?:{kind}|{_plural(kind)})\b", oracle):
                tribes.add(tribal(kind))
        return tribes

    def _strategies_in(self, oracle: str, type_line: str) -> set[str]:
        text = f"{oracle}\n{type_line}"
        if not text.strip():
            return set()
        return {
            strategy(archetype)
            for archetype, patterns in self._strategies.items()
            if any(pattern.search(text) for pattern in patterns)
        }

    def _colors_of(self, card: Card) -> set[str]:
        letters = card.color_identity or card.colors
        tags = {
            color(self.rules.color_letters[letter])
            for letter in letters
            if letter in self.rules.color_letters
        }
        if not letters:
            # Attribute-less records get no color bits
            if card.type_line or card.mana_cost or card.oracle_text:
                tags.add(color("colorless"))
        elif len(set(letters)) > 1:
            tags.add(color("multicolor"))
        return tags


@lru_cache(maxsize=1)
def get_encoder() -> CharacteristicEncoder:
    """Shared encoder for the default schema and rules."""
    return CharacteristicEncoder()
