"""Shared pytest fixtures for the APCMS API tests."""

import copy
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from typing import Any
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import Settings, get_settings
from app.core.database import Base, get_db
from app.features.upsert.entity import EntitySchema
from app.features.upsert.service import get_upsert_store
from app.main import app

TEST_API_KEY = "test-api-key"


class InMemoryUpsertStore:
    """UpsertStoreProtocol backed by dicts, with commit/rollback tracking.

    ``unit_of_work`` snapshots every table and restores the snapshot when
    the body raises, mirroring a transaction rollback.
    """

    def __init__(self) -> None:
        self.tables: dict[str, dict[int, dict[str, Any]]] = {}
        self._next_id: dict[str, int] = {}
        self.calls: list[tuple[str, str]] = []
        self.commits = 0
        self.rollbacks = 0

    def rows(self, entity: EntitySchema) -> list[dict[str, Any]]:
        return [dict(row) for row in self.tables.get(entity.name, {}).values()]

    def put(self, entity: EntitySchema, values: Mapping[str, Any]) -> int:
        """Store a row directly, bypassing the resolver."""
        table = self.tables.setdefault(entity.name, {})
        row_id = self._next_id.get(entity.name, 0) + 1
        self._next_id[entity.name] = row_id
        table[row_id] = {**values, "id": row_id}
        return row_id

    def _match(self, entity: EntitySchema, key: Mapping[str, Any]) -> int | None:
        for row_id, row in self.tables.get(entity.name, {}).items():
            if all(row.get(name) == value for name, value in key.items()):
                return row_id
        return None

    async def find_id(self, entity: EntitySchema, key: Mapping[str, Any]) -> int | None:
        self.calls.append(("find_id", entity.name))
        return self._match(entity, key)

    async def insert(self, entity: EntitySchema, values: Mapping[str, Any]) -> int | None:
        self.calls.append(("insert", entity.name))
        if self._match(entity, entity.key_of(values)) is not None:
            return None
        return self.put(entity, values)

    async def update(self, entity: EntitySchema, row_id: int, values: Mapping[str, Any]) -> None:
        self.calls.append(("update", entity.name))
        self.tables[entity.name][row_id].update(values)

    async def fetch(self, entity: EntitySchema, row_id: int) -> dict[str, Any] | None:
        self.calls.append(("fetch", entity.name))
        row = self.tables.get(entity.name, {}).get(row_id)
        return dict(row) if row is not None else None

    @asynccontextmanager
    async def unit_of_work(self) -> AsyncIterator[None]:
        tables = copy.deepcopy(self.tables)
        next_id = dict(self._next_id)
        try:
            yield
        except Exception:
            self.tables = tables
            self._next_id = next_id
            self.rollbacks += 1
            raise
        self.commits += 1


class RacingUpsertStore(InMemoryUpsertStore):
    """Store whose first lookup misses while a concurrent writer lands the key.

    Reproduces the window between "no row found" and the insert: the
    competitor's row appears right after the first ``find_id`` so the
    following insert conflicts.
    """

    def __init__(self, competitor: Mapping[str, Any]) -> None:
        super().__init__()
        self.competitor = dict(competitor)
        self._raced = False

    async def find_id(self, entity: EntitySchema, key: Mapping[str, Any]) -> int | None:
        if not self._raced:
            self._raced = True
            self.calls.append(("find_id", entity.name))
            self.put(entity, {**entity.defaults, **self.competitor})
            return None
        return await super().find_id(entity, key)


@pytest.fixture
def memory_store() -> InMemoryUpsertStore:
    """Empty in-memory store."""
    return InMemoryUpsertStore()


@pytest.fixture
def racing_store_factory():
    """Build a RacingUpsertStore whose competitor row has the given values."""
    return RacingUpsertStore


@pytest.fixture
def test_settings() -> Settings:
    """Settings with a known gateway key."""
    return Settings(app_env="testing", external_api_key=TEST_API_KEY)


@pytest.fixture
async def client():
    """Create async HTTP client for testing FastAPI endpoints."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def mock_db() -> AsyncMock:
    """Mock database session handed to routes by ``api_client``."""
    return AsyncMock()


@pytest.fixture
async def api_client(
    test_settings: Settings,
    memory_store: InMemoryUpsertStore,
    mock_db: AsyncMock,
):
    """Client carrying a valid API key, with writes going to ``memory_store``.

    Reads receive ``mock_db``; patch the feature service to shape results.
    """

    async def _session_override():
        yield mock_db

    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_upsert_store] = lambda: memory_store
    app.dependency_overrides[get_db] = _session_override
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
            headers={"x-api-key": TEST_API_KEY},
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
async def db_session():
    """Create async database session for integration tests.

    This fixture creates all tables, provides a session, and cleans up after.
    Requires PostgreSQL to be running (DATABASE_URL).
    """
    settings = get_settings()
    engine = create_async_engine(settings.database_url, echo=False)

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # Create session
    async_session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.rollback()

    # Cleanup: drop all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def db_client(db_session: AsyncSession, test_settings: Settings):
    """Authenticated client whose requests share ``db_session``."""

    async def _session_override():
        yield db_session

    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_db] = _session_override
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
            headers={"x-api-key": TEST_API_KEY},
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()
