from datetime import UTC, datetime, timedelta

import pytest

from synergyforge.models.association import Association, canonical_pair
from synergyforge.models.card import Card, CharacteristicVector
from synergyforge.models.checkpoint import BatchCheckpoint, BatchStatus
from synergyforge.models.deck import DeckSelection
from synergyforge.models.failure import (
    CardNotFoundError,
    ConflictingRunError,
    FailureKind,
    SchemaMismatchError,
    StoreUnavailableError,
)
from synergyforge.models.schema import DEFAULT_SCHEMA, CharacteristicSchema


class TestCharacteristicSchema:
    def test_default_schema_layout(self) -> None:
        assert DEFAULT_SCHEMA.version == "v1"
        assert len(DEFAULT_SCHEMA) == 33
        assert DEFAULT_SCHEMA.index("produces_mana") == 0
        assert "tribal:goblin" in DEFAULT_SCHEMA
        assert "color:multicolor" in DEFAULT_SCHEMA

    def test_duplicate_predicate_rejected(self) -> None:
        with pytest.raises(ValueError, match="Duplicate"):
            CharacteristicSchema(version="bad", predicates=("draws_cards", "draws_cards"))

    def test_unknown_predicate_index(self) -> None:
        with pytest.raises(KeyError):
            DEFAULT_SCHEMA.index("tribal:sliver")


class TestCharacteristicVector:
    def test_bit_string_round_trip(self) -> None:
        vector = CharacteristicVector(schema_version="v1", bits=(True, False, True))
        assert vector.to_bit_string() == "101"
        assert CharacteristicVector.from_bit_string("v1", "101") == vector

    def test_invalid_bit_string(self) -> None:
        with pytest.raises(ValueError):
            CharacteristicVector.from_bit_string("v1", "10x")

    def test_set_predicates(self) -> None:
        bits = tuple(name in ("draws_cards", "color:blue") for name in DEFAULT_SCHEMA.predicates)
        vector = CharacteristicVector(schema_version="v1", bits=bits)
        assert vector.set_predicates(DEFAULT_SCHEMA) == ["draws_cards", "color:blue"]


class TestCard:
    def test_card_immutable(self) -> None:
        card = Card(id=1, name="Goblin Guide")
        with pytest.raises(AttributeError):
            card.name = "Other"  # type: ignore[misc]

    def test_subtypes_from_type_line(self) -> None:
        card = Card(id=1, name="Goblin Guide", type_line="Creature — Goblin Scout")
        assert card.subtypes == ["goblin", "scout"]

    def test_subtypes_with_ascii_dash(self) -> None:
        card = Card(id=1, name="Goblin Guide", type_line="Creature - Goblin Scout")
        assert card.subtypes == ["goblin", "scout"]

    def test_type_flags(self) -> None:
        mountain = Card(id=1, name="Mountain", type_line="Basic Land — Mountain")
        krenko = Card(id=2, name="Krenko", type_line="Legendary Creature — Goblin Warrior")
        assert mountain.is_land and mountain.is_basic_land
        assert krenko.is_legendary and not krenko.is_land

    def test_missing_attributes_default(self) -> None:
        card = Card(id=1, name="Blank")
        assert card.subtypes == []
        assert card.colors == ()
        assert card.vector is None

    def test_from_scryfall(self) -> None:
        card = Card.from_scryfall(
            {
                "name": "Llanowar Elves",
                "oracle_text": "{T}: Add {G}.",
                "type_line": "Creature — Elf Druid",
                "mana_cost": "{G}",
                "cmc": 1,
                "colors": ["G"],
                "color_identity": ["G"],
                "prices": {"usd": "0.25"},
                "oracle_id": "68954295-54e3-4303-a6bc-fc4547a4e3a3",
            },
            card_id=7,
        )
        assert card.id == 7
        assert card.oracle_id == "68954295-54e3-4303-a6bc-fc4547a4e3a3"
        assert card.cmc == 1.0
        assert card.colors == ("G",)
        assert card.price == 0.25

    def test_from_scryfall_joins_faces(self) -> None:
        card = Card.from_scryfall(
            {
                "name": "Delver of Secrets // Insectile Aberration",
                "card_faces": [
                    {"oracle_text": "Look at the top card of your library."},
                    {"oracle_text": "Flying"},
                ],
            },
            card_id=1,
        )
        assert card.oracle_text == "Look at the top card of your library.\nFlying"
        assert card.price is None


class TestAssociation:
    def test_canonical_pair_orders_ids(self) -> None:
        assert canonical_pair(9, 3) == (3, 9)
        assert canonical_pair(3, 9) == (3, 9)

    def test_canonical_pair_rejects_self_pair(self) -> None:
        with pytest.raises(ValueError):
            canonical_pair(4, 4)

    def test_other_side(self) -> None:
        association = Association(card1_id=2, card2_id=5, synergy_score=0.6, synergy_type="general")
        assert association.other(2) == 5
        assert association.other(5) == 2


class TestBatchCheckpoint:
    def test_not_started(self) -> None:
        snapshot = BatchCheckpoint.not_started()
        assert snapshot.run_id is None
        assert snapshot.status == BatchStatus.NOT_STARTED
        assert snapshot.progress_percentage == 0.0
        assert snapshot.estimated_time_remaining is None

    def test_progress_percentage(self) -> None:
        snapshot = BatchCheckpoint(
            run_id=1, status=BatchStatus.PROCESSING, total_cards=3, cards_processed=1
        )
        assert snapshot.progress_percentage == 33.33

    def test_empty_completed_run_is_fully_done(self) -> None:
        snapshot = BatchCheckpoint(run_id=1, status=BatchStatus.COMPLETED, total_cards=0)
        assert snapshot.progress_percentage == 100.0

    def test_estimated_time_remaining(self) -> None:
        started = datetime(2026, 1, 1, tzinfo=UTC)
        snapshot = BatchCheckpoint(
            run_id=1,
            status=BatchStatus.PROCESSING,
            total_cards=10,
            cards_processed=4,
            started_at=started,
            updated_at=started + timedelta(seconds=8),
        )
        assert snapshot.elapsed_seconds == 8.0
        assert snapshot.estimated_time_remaining == 12.0

    def test_no_estimate_once_finished(self) -> None:
        started = datetime(2026, 1, 1)
        snapshot = BatchCheckpoint(
            run_id=1,
            status=BatchStatus.COMPLETED,
            total_cards=10,
            cards_processed=10,
            started_at=started,
            finished_at=started + timedelta(seconds=20),
        )
        assert snapshot.elapsed_seconds == 20.0
        assert snapshot.estimated_time_remaining is None


class TestDeckSelection:
    def test_add_and_totals(self) -> None:
        selection = DeckSelection(seed_id=1, target_size=10, max_copies=4)
        selection.add(1, "Seed", 1)
        selection.add(2, "Friend", 3, average_score=0.6, round_added=1)

        assert 2 in selection
        assert selection.card_ids == [1, 2]
        assert selection.total_cards == 4
        assert selection.remaining == 6
        assert selection.quantities() == {1: 1, 2: 3}

    def test_duplicate_rejected(self) -> None:
        selection = DeckSelection(seed_id=1, target_size=10, max_copies=4)
        selection.add(1, "Seed", 1)
        with pytest.raises(ValueError, match="already"):
            selection.add(1, "Seed", 1)

    def test_copy_cap_enforced(self) -> None:
        selection = DeckSelection(seed_id=1, target_size=10, max_copies=2)
        with pytest.raises(ValueError):
            selection.add(1, "Seed", 3)

    def test_target_overflow_rejected(self) -> None:
        selection = DeckSelection(seed_id=1, target_size=2, max_copies=4)
        selection.add(1, "Seed", 1)
        with pytest.raises(ValueError, match="target size"):
            selection.add(2, "Friend", 2)
        assert not selection.is_complete


class TestKnownErrors:
    def test_schema_mismatch_detail(self) -> None:
        error = SchemaMismatchError("v1", "v0", 33, 30)
        detail = error.to_detail()
        assert error.status_code == 409
        assert detail.kind == FailureKind.SCHEMA_MISMATCH
        assert detail.detail == "Expected 33 predicates, got 30"

    def test_conflicting_run_message(self) -> None:
        error = ConflictingRunError(active_run_id=3, action="reset")
        assert error.message == "Cannot reset while a batch run is processing."
        assert error.detail == "Active run id: 3"

    def test_store_unavailable_reports_cursor(self) -> None:
        error = StoreUnavailableError(detail="connection refused", cursor=41)
        assert "card 41" in error.message
        assert error.status_code == 503

    def test_card_not_found(self) -> None:
        error = CardNotFoundError(12)
        assert error.kind == FailureKind.NOT_FOUND
        assert error.status_code == 404
