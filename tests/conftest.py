"""
Pytest configuration and shared fixtures.

Tests that talk to PostgreSQL need `DATABASE_TEST_URL`; without it they are
skipped. Each such test runs inside one transaction that is rolled back at
the end, so tests never see each other's rows. Transactions opened by the
application become savepoints inside it.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import asyncpg
import httpx
import pytest

from core.config import Settings, sanitize_database_url
from core.db import Database, Executor
from core.migrations import migrate
from factories import TEST_DATABASE_URL
from main import create_app

MIGRATIONS_DIR = Path(__file__).resolve().parents[1] / "db" / "migrations"


class RollbackDatabase(Database):
    """
    A `Database` bound to one connection with an open outer transaction.
    """

    def __init__(self, conn: asyncpg.Connection):
        super().__init__(dsn="")
        self._conn = conn

    async def connect(self) -> None:
        return None

    async def close(self) -> None:
        return None

    @property
    def executor(self) -> Executor:
        return self._conn

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[asyncpg.Connection]:
        yield self._conn

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[asyncpg.Connection]:
        async with self._conn.transaction():
            yield self._conn


def make_settings(**overrides) -> Settings:
    values = {
        "ENVIRONMENT": "test",
        "DATABASE_URL": "postgresql://localhost/conduit",
        "DATABASE_TEST_URL": TEST_DATABASE_URL or "postgresql://localhost/conduit_test",
        "JWT_SECRET": "test-secret",
        "_env_file": None,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def settings() -> Settings:
    return make_settings()


_migrated = False


@pytest.fixture
async def conn() -> AsyncIterator[asyncpg.Connection]:
    global _migrated
    if not TEST_DATABASE_URL:
        pytest.skip("DATABASE_TEST_URL is not set")

    if not _migrated:
        await migrate(TEST_DATABASE_URL, MIGRATIONS_DIR)
        _migrated = True

    connection = await asyncpg.connect(dsn=sanitize_database_url(TEST_DATABASE_URL))
    tx = connection.transaction()
    await tx.start()
    try:
        yield connection
    finally:
        await tx.rollback()
        await connection.close()


@pytest.fixture
def database(conn: asyncpg.Connection) -> Database:
    return RollbackDatabase(conn)


@pytest.fixture
def app(settings: Settings, database: Database):
    return create_app(settings, database=database)


@pytest.fixture
async def client(app) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def offline_app(settings: Settings):
    """
    App whose database is never opened; for routes that fail or answer
    before touching storage.
    """
    return create_app(settings, database=Database(settings.current_database_url))


@pytest.fixture
async def offline_client(offline_app) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=offline_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
