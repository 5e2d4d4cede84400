"""
Pairwise synergy scorer.

Scores two characteristic vectors with a fixed list of weighted rule
pairs and labels the pair with the first matching synergy category.

Every directional rule is checked A->B and B->A, so score(a, b) always
equals score(b, a).
"""

from dataclasses import dataclass, field
from functools import lru_cache

from synergyforge.models.association import GENERAL_SYNERGY, SynergyScore
from synergyforge.models.card import Card, CharacteristicVector
from synergyforge.models.failure import SchemaMismatchError
from synergyforge.models.schema import (
    COLOR_TAGS,
    DEFAULT_SCHEMA,
    STRATEGY_ARCHETYPES,
    TRIBAL_KINDS,
    CharacteristicSchema,
    color,
    strategy,
    tribal,
)

SCORE_PRECISION = 4


@dataclass(frozen=True, slots=True)
class RulePair:
    """
    A weighted predicate pairing.

    When left != right the rule is directional: it adds its weight once for
    each direction in which one card has `left` and the other has `right`.
    When left == right it adds its weight once if both cards share it.
    """

    left: str
    right: str
    weight: float


@dataclass(frozen=True, slots=True)
class SynergyCategory:
    """
    A named synergy type.

    The category matches a pair when any (left, right) condition holds in
    either direction.
    """

    label: str
    conditions: tuple[tuple[str, str], ...]


@dataclass(frozen=True)
class ScoringRules:
    """
    Rule set for a scorer.

    Categories are in priority order: the first match labels the pair.
    """

    rule_pairs: tuple[RulePair, ...]
    categories: tuple[SynergyCategory, ...]
    fallback_type: str = GENERAL_SYNERGY

    def predicate_names(self) -> set[str]:
        """Every predicate referenced by a rule or category."""
        names: set[str] = set()
        for rule in self.rule_pairs:
            names.update((rule.left, rule.right))
        for category in self.categories:
            for left, right in category.conditions:
                names.update((left, right))
        return names


def _default_rules() -> ScoringRules:
    rule_pairs = [
        RulePair("produces_mana", "reduces_costs", 0.25),
        RulePair("produces_mana", strategy("ramp"), 0.15),
        RulePair("draws_cards", strategy("spellslinger"), 0.20),
        RulePair("creates_tokens", "anthem", 0.30),
        RulePair("creates_tokens", "sacrifice_outlet", 0.25),
        RulePair("sacrifice_outlet", "death_payoff", 0.35),
        RulePair("infinite_combo_piece", "infinite_combo_piece", 0.50),
    ]
    rule_pairs.extend(RulePair(tribal(kind), tribal(kind), 0.30) for kind in TRIBAL_KINDS)
    rule_pairs.extend(
        RulePair(strategy(archetype), strategy(archetype), 0.10)
        for archetype in STRATEGY_ARCHETYPES
    )
    rule_pairs.extend(RulePair(color(tag), color(tag), 0.05) for tag in COLOR_TAGS)

    # Combo categories first, then tribal, archetype and color
    categories = [
        SynergyCategory("infinite_combo", (("infinite_combo_piece", "infinite_combo_piece"),)),
        SynergyCategory(
            "mana_acceleration",
            (("produces_mana", "reduces_costs"), ("produces_mana", strategy("ramp"))),
        ),
        SynergyCategory("card_advantage", (("draws_cards", strategy("spellslinger")),)),
        SynergyCategory("token_swarm", (("creates_tokens", "anthem"),)),
        SynergyCategory(
            "aristocrats",
            (("creates_tokens", "sacrifice_outlet"), ("sacrifice_outlet", "death_payoff")),
        ),
    ]
    categories.extend(
        SynergyCategory(f"tribal_{kind}", ((tribal(kind), tribal(kind)),)) for kind in TRIBAL_KINDS
    )
    categories.extend(
        SynergyCategory(f"strategy_{archetype}", ((strategy(archetype), strategy(archetype)),))
        for archetype in STRATEGY_ARCHETYPES
    )
    categories.extend(
        SynergyCategory(f"color_{tag}", ((color(tag), color(tag)),)) for tag in COLOR_TAGS
    )
    return ScoringRules(rule_pairs=tuple(rule_pairs), categories=tuple(categories))


DEFAULT_SCORING_RULES = _default_rules()


@dataclass
class _CompiledCategory:
    label: str
    conditions: list[tuple[int, int]] = field(default_factory=list)


class SynergyScorer:
    """Scores vector pairs of one schema with one rule set."""

    def __init__(
        self,
        schema: CharacteristicSchema = DEFAULT_SCHEMA,
        rules: ScoringRules = DEFAULT_SCORING_RULES,
    ):
        missing = sorted(name for name in rules.predicate_names() if name not in schema)
        if missing:
            msg = (
                f"Scoring rules reference predicates missing from schema {schema.version}: "
                f"{missing}"
            )
            raise ValueError(msg)
        for rule in rules.rule_pairs:
            if rule.weight <= 0:
                msg = f"Rule {rule.left}->{rule.right} must have a positive weight"
                raise ValueError(msg)

        self.schema = schema
        self.rules = rules
        self._rules = [
            (schema.index(rule.left), schema.index(rule.right), rule.weight)
            for rule in rules.rule_pairs
        ]
        self._categories = [
            _CompiledCategory(
                label=category.label,
                conditions=[
                    (schema.index(left), schema.index(right)) for left, right in category.conditions
                ],
            )
            for category in rules.categories
        ]

    def check_vector(self, vector: CharacteristicVector) -> None:
        """
        Ensure a vector belongs to this scorer's schema.

        Raises:
            SchemaMismatchError: On a different version or length
        """
        if vector.schema_version != self.schema.version or len(vector) != len(self.schema):
            raise SchemaMismatchError(
                expected_version=self.schema.version,
                actual_version=vector.schema_version,
                expected_length=len(self.schema),
                actual_length=len(vector),
            )

    def score(self, vec_a: CharacteristicVector, vec_b: CharacteristicVector) -> SynergyScore:
        """
        Score and classify a pair of vectors.

        Raises:
            SchemaMismatchError: If either vector is from another schema
        """
        self.check_vector(vec_a)
        self.check_vector(vec_b)
        a, b = vec_a.bits, vec_b.bits

        total = 0.0
        for left, right, weight in self._rules:
            if left == right:
                if a[left] and b[left]:
                    total += weight
                continue
            if a[left] and b[right]:
                total += weight
            if b[left] and a[right]:
                total += weight

        value = round(min(max(total, 0.0), 1.0), SCORE_PRECISION)
        return SynergyScore(score=value, synergy_type=self._classify(a, b))

    def _classify(self, a: tuple[bool, ...], b: tuple[bool, ...]) -> str:
        for category in self._categories:
            for left, right in category.conditions:
                if (a[left] and b[right]) or (b[left] and a[right]):
                    return category.label
        return self.rules.fallback_type

    def score_cards(self, card_a: Card, card_b: Card) -> SynergyScore | None:
        """Score two cards, or None if either has not been encoded."""
        if card_a.vector is None or card_b.vector is None:
            return None
        return self.score(card_a.vector, card_b.vector)


@lru_cache(maxsize=1)
def get_scorer() -> SynergyScorer:
    """Shared scorer for the default schema and rules."""
    return SynergyScorer()
