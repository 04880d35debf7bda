"""Global pytest fixtures.

Redis is served by fakeredis and the record store by SQLite in memory, so
the whole stack runs in-process. Each test gets a fresh fake server and a
fresh database.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from fakeredis import FakeServer
from fakeredis import aioredis as fakeredis_aioredis
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from secretforge.api.app import create_app
from secretforge.api.deps import AppComponents, build_components
from secretforge.cache import CacheAside, CacheStore, InvalidationCoordinator
from secretforge.observability.telemetry import Telemetry
from secretforge.persistence import SqlRecordStore
from secretforge.persistence.db import create_engine, create_tables, session_factory


class FakeClock:
    """Controllable local clock."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now = self.now + timedelta(**delta)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 6, 1, 14, 30, tzinfo=timezone.utc))


@pytest.fixture
def redis_server() -> FakeServer:
    """Fake Redis server; set ``connected = False`` to simulate an outage."""
    return FakeServer()


@pytest_asyncio.fixture
async def redis_client(redis_server: FakeServer) -> AsyncIterator[fakeredis_aioredis.FakeRedis]:
    client = fakeredis_aioredis.FakeRedis(server=redis_server)
    yield client
    await client.aclose()


@pytest_asyncio.fixture
async def cache_store(redis_client: fakeredis_aioredis.FakeRedis) -> CacheStore:
    """A cache store that has seen the server once and is ready."""
    store = CacheStore(redis_client)
    await store.connect()
    return store


@pytest.fixture
def telemetry(cache_store: CacheStore, clock: FakeClock) -> Telemetry:
    return Telemetry(cache_store, clock=clock)


@pytest.fixture
def cache_aside(cache_store: CacheStore, telemetry: Telemetry) -> CacheAside:
    return CacheAside(cache_store, telemetry)


@pytest.fixture
def invalidation(cache_store: CacheStore, telemetry: Telemetry) -> InvalidationCoordinator:
    return InvalidationCoordinator(cache_store, telemetry)


@pytest_asyncio.fixture
async def record_store() -> AsyncIterator[SqlRecordStore]:
    """SQL record store over a private in-memory SQLite database."""
    engine = create_engine("sqlite+aiosqlite://")
    await create_tables(engine)
    yield SqlRecordStore(session_factory(engine))
    await engine.dispose()


@pytest_asyncio.fixture
async def components(
    redis_client: fakeredis_aioredis.FakeRedis,
    record_store: SqlRecordStore,
    clock: FakeClock,
) -> AsyncIterator[AppComponents]:
    built = build_components(redis_client, record_store, clock=clock)
    await built.store.connect()
    yield built
    await built.cache_aside.drain()


@pytest.fixture
def app(components: AppComponents) -> FastAPI:
    return create_app(components)


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
