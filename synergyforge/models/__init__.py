from synergyforge.models.association import (
    GENERAL_SYNERGY,
    Association,
    AssociationStats,
    Neighbor,
    SynergyScore,
    SynergyTypeStats,
    canonical_pair,
)
from synergyforge.models.card import Card, CharacteristicVector
from synergyforge.models.checkpoint import BatchCheckpoint, BatchStatus
from synergyforge.models.deck import (
    FORMAT_RULES,
    AnalyzedCard,
    AssemblyStatus,
    DeckAnalysis,
    DeckEntry,
    DeckSelection,
    FormatRules,
)
from synergyforge.models.failure import (
    CardNotFoundError,
    ConflictingRunError,
    EncodingSkipError,
    FailureDetail,
    FailureKind,
    KnownError,
    SchemaMismatchError,
    StoreUnavailableError,
)
from synergyforge.models.schema import DEFAULT_SCHEMA, CharacteristicSchema

__all__ = [
    "DEFAULT_SCHEMA",
    "FORMAT_RULES",
    "GENERAL_SYNERGY",
    "AnalyzedCard",
    "AssemblyStatus",
    "Association",
    "AssociationStats",
    "BatchCheckpoint",
    "BatchStatus",
    "Card",
    "CardNotFoundError",
    "CharacteristicSchema",
    "CharacteristicVector",
    "ConflictingRunError",
    "DeckAnalysis",
    "DeckEntry",
    "DeckSelection",
    "EncodingSkipError",
    "FailureDetail",
    "FailureKind",
    "FormatRules",
    "KnownError",
    "Neighbor",
    "SchemaMismatchError",
    "StoreUnavailableError",
    "SynergyScore",
    "SynergyTypeStats",
    "canonical_pair",
]
