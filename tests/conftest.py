import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from synergyforge.db.database import get_session, get_session_factory
from synergyforge.main import app
from synergyforge.models.card import CharacteristicVector
from synergyforge.models.db import Base
from synergyforge.models.schema import DEFAULT_SCHEMA


def make_vector(*predicates: str, version: str = DEFAULT_SCHEMA.version) -> CharacteristicVector:
    """Build a vector of the default schema with the named predicates set."""
    unknown = [name for name in predicates if name not in DEFAULT_SCHEMA]
    assert not unknown, f"unknown predicates {unknown}"
    return CharacteristicVector(
        schema_version=version,
        bits=tuple(name in predicates for name in DEFAULT_SCHEMA.predicates),
    )


@pytest.fixture
async def async_engine(tmp_path):
    """
    Create a file-backed SQLite engine for testing.

    A file (rather than :memory:) lets every session of a batch run open
    its own connection to the same database.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'synergy.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory) -> AsyncSession:
    """Provide a database session for tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    """Provide an async test client with overridden database access."""

    async def override_get_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


SAMPLE_CARDS = [
    {
        "id": 1,
        "name": "Goblin Guide",
        "oracle_text": "Haste",
        "type_line": "Creature — Goblin Scout",
        "mana_cost": "{R}",
        "cmc": 1,
        "colors": ["R"],
        "color_identity": ["R"],
        "price": 1.5,
    },
    {
        "id": 2,
        "name": "Goblin Piker",
        "oracle_text": "Goblin Piker can't block.",
        "type_line": "Creature — Goblin Warrior",
        "mana_cost": "{1}{R}",
        "cmc": 2,
        "colors": ["R"],
        "color_identity": ["R"],
        "price": 0.1,
    },
    {
        "id": 3,
        "name": "Llanowar Elves",
        "oracle_text": "{T}: Add {G}.",
        "type_line": "Creature — Elf Druid",
        "mana_cost": "{G}",
        "cmc": 1,
        "colors": ["G"],
        "color_identity": ["G"],
        "price": 0.25,
    },
    {
        "id": 4,
        "name": "Mountain",
        "oracle_text": "({T}: Add {R}.)",
        "type_line": "Basic Land — Mountain",
        "color_identity": ["R"],
    },
]


@pytest.fixture
async def sample_catalog(client: AsyncClient) -> list[dict]:
    """Import and encode four sample cards through the API."""
    response = await client.post("/cards", json={"cards": SAMPLE_CARDS})
    assert response.status_code == 200
    response = await client.post("/cards/encode")
    assert response.status_code == 200
    return SAMPLE_CARDS


@pytest.fixture
async def built_graph(client: AsyncClient, sample_catalog: list[dict]) -> list[dict]:
    """
    Sample catalog with its synergy graph built at threshold 0.3.

    Stores (1, 2) at 0.35 tribal_goblin and (3, 4) at 0.4 mana_acceleration.
    """
    response = await client.post("/batch/runs", json={"start_cursor": 0, "threshold": 0.3})
    assert response.status_code == 200
    return sample_catalog
