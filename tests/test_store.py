"""Tests for the store adapter: laziness, error translation, primitives."""

import asyncio
from unittest.mock import MagicMock

import pytest

from core.config import Settings
from core.exceptions import StoreError, StoreTimeout, StoreUnavailable
from core.store import StoreAdapter, escape_glob


class TestLazyConnection:

    @pytest.mark.asyncio
    async def test_no_client_until_first_use(self, settings):
        adapter = StoreAdapter(settings)
        assert adapter.is_connected is False

        client = adapter.client
        assert adapter.is_connected is True
        assert adapter.client is client

        await adapter.close()
        assert adapter.is_connected is False

    def test_client_built_from_settings(self):
        settings = Settings(_env_file=None, redis_host="cache.internal", redis_port=6380,
                            redis_db=2, redis_command_timeout=2.5)
        adapter = StoreAdapter(settings)
        kwargs = adapter.client.connection_pool.connection_kwargs

        assert kwargs["host"] == "cache.internal"
        assert kwargs["port"] == 6380
        assert kwargs["db"] == 2
        assert kwargs["socket_timeout"] == 2.5
        assert kwargs["socket_connect_timeout"] == settings.redis_connect_timeout
        assert kwargs["retry"] is not None

    @pytest.mark.asyncio
    async def test_injected_client_is_not_closed(self, store, redis_client):
        await store.close()
        assert await redis_client.ping()


class TestErrorTranslation:

    @pytest.mark.asyncio
    async def test_outage_raises_store_unavailable(self, store, fake_server):
        fake_server.connected = False
        with pytest.raises(StoreUnavailable):
            await store.get("anything")

    @pytest.mark.asyncio
    async def test_slow_command_raises_store_timeout(self):
        settings = Settings(_env_file=None, redis_command_timeout=0.05)

        async def slow_get(key):
            await asyncio.sleep(1)

        client = MagicMock()
        client.get = slow_get
        adapter = StoreAdapter(settings, client=client)

        with pytest.raises(StoreTimeout) as exc_info:
            await adapter.get("slow")
        assert exc_info.value.operation == "get"

    @pytest.mark.asyncio
    async def test_wrong_type_raises_store_error(self, store, redis_client):
        await redis_client.zadd("zset", {"member": 1})
        with pytest.raises(StoreError) as exc_info:
            await store.increment("zset")
        assert not isinstance(exc_info.value, StoreUnavailable)

    @pytest.mark.asyncio
    async def test_unusable_url_raises_store_unavailable(self, settings):
        # model_copy skips validation, as a URL changed after load would
        adapter = StoreAdapter(settings.model_copy(update={"redis_url": "http://localhost:6379"}))

        with pytest.raises(StoreUnavailable) as exc_info:
            await adapter.get("k")
        assert exc_info.value.operation == "get"
        assert "invalid connection settings" in str(exc_info.value)
        assert adapter.is_connected is False


class TestPrimitives:

    @pytest.mark.asyncio
    async def test_set_with_ttl_and_ttl(self, store):
        assert await store.set_with_ttl("k", "v", 30)
        assert await store.get("k") == "v"
        assert 0 < await store.ttl("k") <= 30

    @pytest.mark.asyncio
    async def test_ttl_sentinels(self, store):
        await store.set("persistent", "v")
        assert await store.ttl("persistent") == -1
        assert await store.ttl("missing") == -2

    @pytest.mark.asyncio
    async def test_set_only_if_exists(self, store):
        assert await store.set_with_ttl("absent", "v", 30, only_if_exists=True) is False
        assert await store.get("absent") is None

        await store.set_with_ttl("present", "old", 30)
        assert await store.set_with_ttl("present", "new", 60, only_if_exists=True) is True
        assert await store.get("present") == "new"

    @pytest.mark.asyncio
    async def test_increment_and_delete(self, store):
        assert await store.increment("counter") == 1
        assert await store.increment("counter") == 2
        assert await store.delete("counter") == 1
        assert await store.delete("counter") == 0
        assert await store.delete() == 0

    @pytest.mark.asyncio
    async def test_keys_by_prefix(self, store):
        for key in ("session:a", "session:b", "sessions_other", "ratelimit:a"):
            await store.set(key, "1")

        keys = await store.keys_by_prefix("session:")
        assert sorted(keys) == ["session:a", "session:b"]

    @pytest.mark.asyncio
    async def test_keys_by_prefix_treats_glob_chars_literally(self, store):
        await store.set("user[1]:x", "1")
        await store.set("user1:x", "1")

        assert await store.keys_by_prefix("user[1]:") == ["user[1]:x"]

    @pytest.mark.asyncio
    async def test_sorted_set_operations(self, store):
        assert await store.sorted_set_pop_max("empty") is None
        assert await store.sorted_set_cardinality("empty") == 0

        await store.sorted_set_add("z", "low", 1)
        await store.sorted_set_add("z", "high", 5)
        assert await store.sorted_set_cardinality("z") == 2
        assert await store.sorted_set_pop_max("z") == ("high", 5.0)
        assert await store.sorted_set_cardinality("z") == 1


def test_escape_glob():
    assert escape_glob("plain:") == "plain:"
    assert escape_glob("a*b?[c]\\") == "a\\*b\\?\\[c\\]\\\\"
