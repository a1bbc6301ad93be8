"""Tests for the facade, configuration and DI wiring."""

import pytest
from dependency_injector import providers
from pydantic import ValidationError

from core.config import Settings
from core.container import Container
from core.store import StoreAdapter
from services.layer import CacheLayer


class TestSettings:

    def test_store_url_from_parts(self):
        settings = Settings(_env_file=None, redis_host="10.0.0.5", redis_port=6380,
                            redis_auth_string="p@ss/word", redis_db=1)
        assert settings.store_url == "redis://:p%40ss%2Fword@10.0.0.5:6380/1"

    def test_redis_url_wins(self):
        settings = Settings(_env_file=None, redis_url="redis://cache:6379/3", redis_host="ignored")
        assert settings.store_url == "redis://cache:6379/3"

    def test_environment_variables(self, monkeypatch):
        monkeypatch.setenv("REDIS_HOST", "memorystore")
        monkeypatch.setenv("REDIS_AUTH_STRING", "secret")
        monkeypatch.setenv("RATE_LIMIT_REQUESTS", "5")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        settings = Settings(_env_file=None)

        assert settings.store_url == "redis://:secret@memorystore:6379/0"
        assert settings.rate_limit_requests == 5
        assert settings.log_level == "DEBUG"

    def test_redis_url_scheme_is_checked(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, redis_url="http://localhost:6379")
        assert Settings(_env_file=None, redis_url="rediss://cache:6380/0").store_url == "rediss://cache:6380/0"

    def test_defaults(self, settings):
        assert settings.redis_connect_timeout == 10.0
        assert settings.redis_command_timeout == 5.0
        assert settings.session_ttl == 86400
        assert settings.conversation_ttl == 7200
        assert settings.cache_ttl == 3600


class TestCacheLayer:

    @pytest.mark.asyncio
    async def test_components_share_one_store(self, layer, store):
        assert layer.cache.store is store
        assert layer.rate_limiter.store is store
        assert layer.queue.store is store
        assert layer.sessions.cache is layer.cache
        assert layer.conversations.cache is layer.cache
        assert layer.health.store is store

    @pytest.mark.asyncio
    async def test_cache_ttl_setting_is_the_default(self, store, redis_client):
        settings = Settings(_env_file=None, cache_ttl=120)
        layer = CacheLayer.create(settings, store=store)

        await layer.cache.set("k", {"v": 1})

        assert 0 < await redis_client.ttl("k") <= 120

    @pytest.mark.asyncio
    async def test_startup_survives_outage(self, layer, fake_server):
        fake_server.connected = False
        await layer.startup()

    @pytest.mark.asyncio
    async def test_all_patterns_end_to_end(self, layer):
        assert await layer.cache.set("k", {"v": 1})
        session = await layer.sessions.create_session("u1")
        assert (await layer.rate_limiter.check_limit("u1")).allowed
        assert await layer.messages.push({"body": "hi"})
        assert await layer.conversations.update_step("p1", 1, {"a": 1})

        assert await layer.cache.get("k") == {"v": 1}
        assert (await layer.sessions.get_session(session.session_id))["user_id"] == "u1"
        assert (await layer.messages.pop()).data == {"body": "hi"}
        assert (await layer.conversations.get_state("p1"))["context_data"] == {"a": 1}


class TestContainer:

    @pytest.mark.asyncio
    async def test_singletons_share_the_store(self, settings, store):
        container = Container()
        container.settings.override(providers.Object(settings))
        container.store.override(providers.Object(store))

        layer = container.layer()

        assert layer is container.layer()
        assert layer.store is store
        assert container.rate_limiter() is layer.rate_limiter
        assert layer.rate_limiter.max_requests == settings.rate_limit_requests
        assert layer.sessions.default_ttl == settings.session_ttl
        assert layer.cache.default_ttl == settings.cache_ttl

    def test_store_is_lazy(self, settings):
        container = Container()
        container.settings.override(providers.Object(settings))

        adapter = container.store()

        assert isinstance(adapter, StoreAdapter)
        assert adapter.is_connected is False


class TestLogging:

    def test_configure_logging_writes_json_to_file(self, tmp_path):
        import logging
        import structlog
        from core.logging import configure_logging, get_logger

        log_file = tmp_path / "logs" / "cache.log"
        settings = Settings(_env_file=None, log_file=str(log_file), log_format="json")
        try:
            configure_logging(settings)
            get_logger("tests").info("Cache layer ready", response_time_ms=0.3)
            for handler in logging.getLogger().handlers:
                handler.flush()

            content = log_file.read_text()
            assert '"event": "Cache layer ready"' in content
            assert '"response_time_ms": 0.3' in content
        finally:
            structlog.reset_defaults()
            for handler in list(logging.getLogger().handlers):
                logging.getLogger().removeHandler(handler)
                handler.close()
