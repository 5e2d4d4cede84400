"""
Characteristic schema: the fixed, versioned predicate layout.

Every card is encoded into one boolean per predicate, in schema order.
The predicate list is closed: adding or reordering a predicate means a new
version string and a full catalog re-encode. Vectors from different
versions are never compared.
"""

from dataclasses import dataclass, field

MECHANIC_PREDICATES: tuple[str, ...] = (
    "produces_mana",
    "reduces_costs",
    "draws_cards",
    "creates_tokens",
    "anthem",
    "sacrifice_outlet",
    "death_payoff",
    "infinite_combo_piece",
)

TRIBAL_KINDS: tuple[str, ...] = ("dragon", "wizard", "zombie", "elf", "goblin", "merfolk")

STRATEGY_ARCHETYPES: tuple[str, ...] = (
    "aggro",
    "control",
    "combo",
    "midrange",
    "tempo",
    "ramp",
    "aristocrats",
    "spellslinger",
    "voltron",
    "stax",
    "group_hug",
    "mill",
)

COLOR_TAGS: tuple[str, ...] = (
    "white",
    "blue",
    "black",
    "red",
    "green",
    "colorless",
    "multicolor",
)


def tribal(kind: str) -> str:
    """Predicate name for membership in a tracked tribe."""
    return f"tribal:{kind}"


def strategy(archetype: str) -> str:
    """Predicate name for membership in a strategy archetype."""
    return f"strategy:{archetype}"


def color(tag: str) -> str:
    """Predicate name for a color tag."""
    return f"color:{tag}"


@dataclass(frozen=True)
class CharacteristicSchema:
    """
    An ordered, versioned list of predicate names.

    Attributes:
        version: Schema version tag stored next to every encoded vector
        predicates: Predicate names in bit order
    """

    version: str
    predicates: tuple[str, ...]
    _positions: dict[str, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        positions: dict[str, int] = {}
        for i, name in enumerate(self.predicates):
            if name in positions:
                msg = f"Duplicate predicate '{name}' in schema {self.version}"
                raise ValueError(msg)
            positions[name] = i
        object.__setattr__(self, "_positions", positions)

    def __len__(self) -> int:
        return len(self.predicates)

    def __contains__(self, name: object) -> bool:
        return name in self._positions

    def index(self, name: str) -> int:
        """Bit position of a predicate. Raises KeyError if unknown."""
        try:
            return self._positions[name]
        except KeyError:
            msg = f"Predicate '{name}' is not part of schema {self.version}"
            raise KeyError(msg) from None


DEFAULT_SCHEMA = CharacteristicSchema(
    version="v1",
    predicates=(
        *MECHANIC_PREDICATES,
        *(tribal(kind) for kind in TRIBAL_KINDS),
        *(strategy(name) for name in STRATEGY_ARCHETYPES),
        *(color(tag) for tag in COLOR_TAGS),
    ),
)
