"""Tests for deck API endpoints."""

import pytest
from httpx import AsyncClient


class TestAssembleDeck:
    async def test_assemble_around_seed(
        self, client: AsyncClient, built_graph: list[dict]
    ) -> None:
        response = await client.post("/decks/assemble", json={"seed_id": 1, "target_size": 2})

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "complete"
        assert data["total_cards"] == 2
        assert [card["name"] for card in data["cards"]] == ["Goblin Guide", "Goblin Piker"]
        assert data["cards"][1]["average_score"] == 0.35
        assert data["cards"][1]["round_added"] == 1
        assert data["total_price"] == 1.6

    async def test_partial_when_graph_exhausted(
        self, client: AsyncClient, built_graph: list[dict]
    ) -> None:
        """Basic lands are excluded by default, leaving the seed alone."""
        response = await client.post("/decks/assemble", json={"seed_id": 3, "target_size": 10})

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "partial"
        assert data["total_cards"] == 1

    async def test_basic_lands_allowed_on_request(
        self, client: AsyncClient, built_graph: list[dict]
    ) -> None:
        response = await client.post(
            "/decks/assemble",
            json={"seed_id": 3, "target_size": 10, "excluded_types": []},
        )

        data = response.json()
        assert [card["card_id"] for card in data["cards"]] == [3, 4]

    async def test_format_sets_target_size(
        self, client: AsyncClient, built_graph: list[dict]
    ) -> None:
        response = await client.post(
            "/decks/assemble", json={"seed_id": 1, "format": "commander"}
        )

        data = response.json()
        assert data["target_size"] == 100
        assert all(card["quantity"] == 1 for card in data["cards"])

    async def test_invalid_format(self, client: AsyncClient, built_graph: list[dict]) -> None:
        response = await client.post("/decks/assemble", json={"seed_id": 1, "format": "cube"})

        assert response.status_code == 400
        assert "Invalid format" in response.json()["detail"]

    async def test_unknown_seed(self, client: AsyncClient) -> None:
        response = await client.post("/decks/assemble", json={"seed_id": 99})

        assert response.status_code == 404
        assert response.json()["kind"] == "not_found"

    async def test_max_copies_validated(self, client: AsyncClient) -> None:
        response = await client.post("/decks/assemble", json={"seed_id": 1, "max_copies": 5})

        assert response.status_code == 422


class TestAnalyzeDeck:
    async def test_analyze(self, client: AsyncClient, built_graph: list[dict]) -> None:
        deck = [
            "Deck",
            "4 Goblin Guide",
            "4x goblin piker",
            "Llanowar Elves",
            "1 Mountain (ZEN) 230",
            "",
            "Sideboard",
            "2 Shock",
        ]
        response = await client.post("/decks/analyze", json={"deck": deck})

        assert response.status_code == 200
        data = response.json()
        assert [(c["name"], c["quantity"]) for c in data["cards"]] == [
            ("Goblin Guide", 4),
            ("Goblin Piker", 4),
            ("Llanowar Elves", 1),
            ("Mountain", 1),
        ]
        assert data["total_cards"] == 10
        assert data["not_found"] == ["Shock"]
        assert [(s["card1_id"], s["card2_id"]) for s in data["synergies"]] == [(3, 4), (1, 2)]
        assert data["synergies"][1]["card2_name"] == "Goblin Piker"
        assert data["average_synergy"] == pytest.approx(0.375)
        assert data["by_type"] == {"mana_acceleration": 1, "tribal_goblin": 1}

    async def test_deck_without_synergy(
        self, client: AsyncClient, built_graph: list[dict]
    ) -> None:
        response = await client.post(
            "/decks/analyze", json={"deck": ["4 Goblin Guide", "4 Llanowar Elves"]}
        )

        data = response.json()
        assert data["synergies"] == []
        assert data["average_synergy"] == 0.0

    async def test_no_card_lines(self, client: AsyncClient) -> None:
        response = await client.post("/decks/analyze", json={"deck": ["Deck", "  "]})

        assert response.status_code == 400

    async def test_empty_deck_rejected(self, client: AsyncClient) -> None:
        response = await client.post("/decks/analyze", json={"deck": []})

        assert response.status_code == 422
