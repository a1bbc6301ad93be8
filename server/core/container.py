"""Dependency injection container for the cache layer."""

from dependency_injector import containers, providers

from core.config import Settings
from core.store import StoreAdapter
from core.cache import CacheManager
from core.health import HealthMonitor
from services.conversation import ConversationStateCache
from services.layer import CacheLayer
from services.queue import PriorityQueue
from services.rate_limiter import RateLimiter
from services.sessions import SessionStore


class Container(containers.DeclarativeContainer):
    """Application dependency injection container."""

    settings = providers.Singleton(
        Settings,
    )

    # One adapter (and connection pool) per process, created lazily
    store = providers.Singleton(
        StoreAdapter,
        settings=settings
    )

    cache = providers.Singleton(
        CacheManager,
        store=store,
        default_ttl=settings.provided.cache_ttl
    )

    sessions = providers.Singleton(
        SessionStore,
        cache=cache,
        default_ttl=settings.provided.session_ttl
    )

    rate_limiter = providers.Singleton(
        RateLimiter,
        store=store,
        max_requests=settings.provided.rate_limit_requests,
        window_seconds=settings.provided.rate_limit_window
    )

    queue = providers.Singleton(
        PriorityQueue,
        store=store
    )

    conversations = providers.Singleton(
        ConversationStateCache,
        cache=cache,
        default_ttl=settings.provided.conversation_ttl
    )

    health = providers.Singleton(
        HealthMonitor,
        store=store,
        cache=cache
    )

    layer = providers.Singleton(
        CacheLayer,
        store=store,
        cache=cache,
        sessions=sessions,
        rate_limiter=rate_limiter,
        queue=queue,
        conversations=conversations,
        health=health
    )


# Global container instance
container = Container()
