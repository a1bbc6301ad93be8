"""Facade over the six access patterns that share one backing store."""

from typing import Optional

from constants import AUTOMATION_QUEUE, MESSAGE_QUEUE
from core.cache import CacheManager
from core.config import Settings
from core.health import HealthMonitor
from core.logging import get_logger
from core.store import StoreAdapter
from services.conversation import ConversationStateCache
from services.queue import NamedQueue, PriorityQueue
from services.rate_limiter import RateLimiter
from services.sessions import SessionStore

logger = get_logger(__name__)


class CacheLayer:
    """Cache, sessions, rate limiting, queues, conversation state and health.

    Every component holds a reference to the same StoreAdapter, so the whole
    layer shares one connection pool.
    """

    def __init__(self, store: StoreAdapter, cache: CacheManager, sessions: SessionStore,
                 rate_limiter: RateLimiter, queue: PriorityQueue,
                 conversations: ConversationStateCache, health: HealthMonitor):
        self.store = store
        self.cache = cache
        self.sessions = sessions
        self.rate_limiter = rate_limiter
        self.queue = queue
        self.conversations = conversations
        self.health = health
        self.messages = NamedQueue(queue, MESSAGE_QUEUE)
        self.automations = NamedQueue(queue, AUTOMATION_QUEUE)

    @classmethod
    def create(cls, settings: Settings, store: Optional[StoreAdapter] = None) -> "CacheLayer":
        """Build the whole layer around one store (a new adapter if none given)."""
        store = store or StoreAdapter(settings)
        cache = CacheManager(store, default_ttl=settings.cache_ttl)
        return cls(
            store=store,
            cache=cache,
            sessions=SessionStore(cache, default_ttl=settings.session_ttl),
            rate_limiter=RateLimiter(store, max_requests=settings.rate_limit_requests,
                                     window_seconds=settings.rate_limit_window),
            queue=PriorityQueue(store),
            conversations=ConversationStateCache(cache, default_ttl=settings.conversation_ttl),
            health=HealthMonitor(store, cache),
        )

    async def startup(self) -> None:
        """Log store reachability. Never fails: the connection is lazy and self-healing."""
        result = await self.health.check_health()
        if result["status"] == "healthy":
            logger.info("Cache layer ready", response_time_ms=result["response_time_ms"])
        else:
            logger.warning("Cache layer started without a reachable store", error=result.get("error"))

    async def shutdown(self) -> None:
        await self.store.close()
