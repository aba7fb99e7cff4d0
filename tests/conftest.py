"""
Pytest configuration and shared fixtures.
"""

import os
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone

# Settings are cached on first use, so configure the environment before any
# listqueue import reads them.
os.environ["STORE_BACKEND"] = "memory"
os.environ["LOCK_POLL_INTERVAL_SECONDS"] = "0.01"
os.environ["LOG_FORMAT"] = "console"

import pytest
import pytest_asyncio
from fakeredis import FakeAsyncRedis, FakeServer
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from listqueue.api.main import create_app
from listqueue.config import Settings, get_settings
from listqueue.lock import LockManager
from listqueue.producer import Producer
from listqueue.store import ListStore, MemoryListStore, RedisListStore, close_store, init_store


class FakeClock:
    """Controllable wall clock for claim timestamps and staleness checks."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def settings() -> Settings:
    """Settings shared by the components under test."""
    return get_settings()


@pytest.fixture
def pending_queue(settings: Settings) -> str:
    return settings.pending_queue


@pytest.fixture
def in_flight_queue(settings: Settings) -> str:
    return settings.in_flight_queue


@pytest.fixture
def clock() -> FakeClock:
    """A wall clock frozen at a fixed instant."""
    return FakeClock(datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def memory_store() -> MemoryListStore:
    return MemoryListStore()


@pytest.fixture
def fake_redis_server() -> FakeServer:
    """An isolated fake Redis server per test."""
    return FakeServer()


@pytest_asyncio.fixture
async def redis_store(fake_redis_server: FakeServer) -> AsyncGenerator[RedisListStore]:
    store = RedisListStore(
        FakeAsyncRedis(server=fake_redis_server, decode_responses=True)
    )
    yield store
    await store.close()


@pytest.fixture(params=["memory", "redis"])
def store(request: pytest.FixtureRequest) -> ListStore:
    """Each store backend in turn."""
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def locks(store: ListStore) -> LockManager:
    return LockManager(store, ttl_seconds=10, poll_interval=0.01)


@pytest.fixture
def producer(store: ListStore) -> Producer:
    return Producer(store)


@pytest_asyncio.fixture
async def app(memory_store: MemoryListStore) -> AsyncGenerator[FastAPI]:
    """Create a FastAPI app over an initialized in-memory store."""
    await init_store(memory_store)

    app = create_app()
    yield app

    await close_store()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Create an async HTTP client for testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
