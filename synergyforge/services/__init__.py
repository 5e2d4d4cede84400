"""
SynergyForge services.

Encoding, pairwise scoring, batch synergy building and deck assembly.
"""

from synergyforge.services.batch_builder import BatchBuilder
from synergyforge.services.catalog import (
    EncodingReport,
    download_card_file,
    encode_cards,
    encode_catalog,
    import_cards,
    load_cards_from_file,
    parse_card_records,
)
from synergyforge.services.deck_analysis import analyze_deck, parse_deck_list
from synergyforge.services.deck_assembler import (
    AssemblyOptions,
    DeckAssembler,
    InMemorySynergyGraph,
    StoreSynergyGraph,
    SynergyGraph,
)
from synergyforge.services.encoder import (
    DEFAULT_ENCODER_RULES,
    CharacteristicEncoder,
    EncoderRules,
    get_encoder,
)
from synergyforge.services.scorer import (
    DEFAULT_SCORING_RULES,
    RulePair,
    ScoringRules,
    SynergyCategory,
    SynergyScorer,
    get_scorer,
)

__all__ = [
    "DEFAULT_ENCODER_RULES",
    "DEFAULT_SCORING_RULES",
    "AssemblyOptions",
    "BatchBuilder",
    "CharacteristicEncoder",
    "DeckAssembler",
    "EncoderRules",
    "EncodingReport",
    "InMemorySynergyGraph",
    "RulePair",
    "ScoringRules",
    "StoreSynergyGraph",
    "SynergyCategory",
    "SynergyGraph",
    "SynergyScorer",
    "analyze_deck",
    "download_card_file",
    "encode_cards",
    "encode_catalog",
    "get_encoder",
    "get_scorer",
    "import_cards",
    "load_cards_from_file",
    "parse_card_records",
    "parse_deck_list",
]
