"""Tests for card catalog API endpoints."""

from httpx import AsyncClient


class TestImportCards:
    async def test_import_cards(self, client: AsyncClient) -> None:
        response = await client.post(
            "/cards",
            json={"cards": [{"name": "Goblin Guide"}, {"id": 10, "name": "Goblin Piker"}]},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["imported"] == 2
        assert data["ids"][1] == 10

    async def test_empty_import_rejected(self, client: AsyncClient) -> None:
        response = await client.post("/cards", json={"cards": []})

        assert response.status_code == 422


class TestEncodeCards:
    async def test_encode_catalog(self, client: AsyncClient, sample_catalog: list[dict]) -> None:
        """Everything is already encoded once the sample catalog is loaded."""
        response = await client.post("/cards/encode")

        assert response.status_code == 200
        data = response.json()
        assert data["schema_version"] == "v1"
        assert data["encoded"] == 0
        assert data["skipped"] == 0


class TestGetCard:
    async def test_card_predicates(self, client: AsyncClient, sample_catalog: list[dict]) -> None:
        response = await client.get("/cards/3")

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Llanowar Elves"
        assert data["schema_version"] == "v1"
        assert data["predicates"] == [
            "produces_mana",
            "tribal:elf",
            "strategy:ramp",
            "color:green",
        ]

    async def test_card_not_found(self, client: AsyncClient) -> None:
        """Unknown cards answer 404 with a classified failure."""
        response = await client.get("/cards/99")

        assert response.status_code == 404
        data = response.json()
        assert data["kind"] == "not_found"
        assert data["message"] == "Card 99 not found."


class TestNeighbors:
    async def test_neighbors(self, client: AsyncClient, built_graph: list[dict]) -> None:
        response = await client.get("/cards/1/neighbors")

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Goblin Guide"
        assert data["count"] == 1
        neighbor = data["neighbors"][0]
        assert neighbor["card_id"] == 2
        assert neighbor["name"] == "Goblin Piker"
        assert neighbor["score"] == 0.35
        assert neighbor["synergy_type"] == "tribal_goblin"

    async def test_neighbors_min_score(self, client: AsyncClient, built_graph: list[dict]) -> None:
        response = await client.get("/cards/1/neighbors", params={"min_score": 0.5})

        assert response.status_code == 200
        assert response.json()["neighbors"] == []

    async def test_neighbors_unknown_card(self, client: AsyncClient) -> None:
        response = await client.get("/cards/99/neighbors")

        assert response.status_code == 404

    async def test_neighbors_limit_validated(self, client: AsyncClient) -> None:
        response = await client.get("/cards/1/neighbors", params={"limit": 0})

        assert response.status_code == 422


class TestSearchCards:
    async def test_search_name_and_text(
        self, client: AsyncClient, sample_catalog: list[dict]
    ) -> None:
        """Matches on name or oracle text, ordered by name."""
        response = await client.get("/cards/search", params={"q": "add"})

        assert response.status_code == 200
        data = response.json()
        assert data["query"] == "add"
        assert [card["name"] for card in data["cards"]] == ["Llanowar Elves", "Mountain"]
        assert data["count"] == 2

    async def test_search_ignores_case(
        self, client: AsyncClient, sample_catalog: list[dict]
    ) -> None:
        response = await client.get("/cards/search", params={"q": "GOBLIN", "limit": 1})

        data = response.json()
        assert [card["name"] for card in data["cards"]] == ["Goblin Guide"]
        assert "tribal:goblin" in data["cards"][0]["predicates"]

    async def test_color_filter(self, client: AsyncClient, sample_catalog: list[dict]) -> None:
        """Every requested color must be in the card's color identity."""
        red = await client.get("/cards/search", params={"q": "add", "color": "r"})
        gruul = await client.get("/cards/search", params={"q": "add", "color": "RG"})

        assert [card["name"] for card in red.json()["cards"]] == ["Mountain"]
        assert gruul.json()["count"] == 0

    async def test_colorless_filter(
        self, client: AsyncClient, sample_catalog: list[dict]
    ) -> None:
        await client.post(
            "/cards",
            json={"cards": [{"id": 5, "name": "Sol Ring", "oracle_text": "{T}: Add {C}{C}."}]},
        )

        response = await client.get("/cards/search", params={"q": "add", "color": "colorless"})

        assert [card["name"] for card in response.json()["cards"]] == ["Sol Ring"]

    async def test_invalid_color(self, client: AsyncClient) -> None:
        response = await client.get("/cards/search", params={"q": "add", "color": "X"})

        assert response.status_code == 422

    async def test_query_required(self, client: AsyncClient) -> None:
        response = await client.get("/cards/search", params={"q": ""})

        assert response.status_code == 422
