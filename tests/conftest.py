"""Shared fixtures: a fakeredis-backed cache layer per test."""

import fakeredis
import fakeredis.aioredis
import pytest
import pytest_asyncio

from core.cache import CacheManager
from core.config import Settings
from core.store import StoreAdapter
from services.layer import CacheLayer


@pytest.fixture
def settings():
    """Settings with defaults only (no .env)."""
    return Settings(_env_file=None)


@pytest.fixture
def fake_server():
    """In-process Redis server; set ``connected = False`` to simulate an outage."""
    return fakeredis.FakeServer()


@pytest_asyncio.fixture
async def redis_client(fake_server):
    client = fakeredis.aioredis.FakeRedis(server=fake_server, decode_responses=True)
    yield client
    fake_server.connected = True
    await client.flushall()
    await client.aclose()


@pytest.fixture
def store(settings, redis_client):
    return StoreAdapter(settings, client=redis_client)


@pytest.fixture
def cache(store):
    return CacheManager(store)


@pytest.fixture
def layer(settings, store):
    return CacheLayer.create(settings, store=store)
