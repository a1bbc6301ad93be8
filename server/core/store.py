"""Thin async adapter over the Redis backing store.

Every component of the cache layer talks to Redis through this class and
never touches the client directly. The adapter owns three concerns:

- Lazy connection: the client (and its pool) is created on the first command,
  never at construction time.
- Resilience: reconnects use exponential backoff with jitter capped at a
  maximum delay, and every command carries a deadline.
- Error translation: redis-py exceptions become ``StoreUnavailable``,
  ``StoreTimeout`` or ``StoreError``. Nothing is swallowed here; callers
  decide whether a failure is fatal or soft.
"""

import asyncio
import re
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import redis.asyncio as redis
from redis.asyncio.retry import Retry
from redis.backoff import EqualJitterBackoff
from redis.exceptions import (
    ConnectionError as RedisConnectionError,
    RedisError,
    TimeoutError as RedisTimeoutError,
)

from core.config import Settings
from core.exceptions import StoreError, StoreTimeout, StoreUnavailable
from core.logging import get_logger

logger = get_logger(__name__)

# Characters with meaning in Redis glob patterns
_GLOB_SPECIAL = re.compile(r"([\\*?\[\]])")


def escape_glob(value: str) -> str:
    """Escape Redis glob metacharacters so value matches literally."""
    return _GLOB_SPECIAL.sub(r"\\\1", value)


class StoreAdapter:
    """Async Redis adapter shared by every cache layer component.

    One instance is meant to live for the whole process; the underlying
    ``redis.asyncio`` connection pool is safe for concurrent use by any number
    of tasks. Tests pass a ``fakeredis`` client through ``client``.
    """

    def __init__(self, settings: Settings, client: Optional[redis.Redis] = None):
        self.settings = settings
        self.command_timeout = settings.redis_command_timeout
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> redis.Redis:
        """Return the Redis client, creating it on first use."""
        if self._client is None:
            self._client = self._create_client()
            self._owns_client = True
            logger.info("Redis client created", host=self.settings.redis_host,
                        port=self.settings.redis_port, db=self.settings.redis_db)
        return self._client

    @property
    def is_connected(self) -> bool:
        """Whether a client has been created (not whether Redis is reachable)."""
        return self._client is not None

    def _create_client(self) -> redis.Redis:
        settings = self.settings
        retry = Retry(
            EqualJitterBackoff(
                cap=settings.redis_retry_backoff_cap,
                base=settings.redis_retry_backoff_base,
            ),
            settings.redis_max_retries,
        )
        return redis.from_url(
            settings.store_url,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=settings.redis_command_timeout,
            socket_connect_timeout=settings.redis_connect_timeout,
            socket_keepalive=settings.redis_keepalive,
            health_check_interval=settings.redis_health_check_interval,
            retry=retry,
            retry_on_error=[RedisConnectionError, RedisTimeoutError],
        )

    async def close(self) -> None:
        """Close the connection pool if this adapter created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            logger.info("Redis connections closed")
        self._client = None

    async def _run(self, operation: str, command: Callable[[redis.Redis], Awaitable[Any]]) -> Any:
        """Issue command against the client under the command deadline, translating errors.

        The client is resolved here rather than by the caller so that a
        connection that cannot even be configured (a malformed URL) surfaces
        as ``StoreUnavailable`` like any other unreachable store.
        """
        try:
            client = self.client
        except ValueError as e:
            logger.error("Redis client could not be created", error=str(e))
            raise StoreUnavailable(operation, f"invalid connection settings: {e}") from e

        try:
            return await asyncio.wait_for(command(client), timeout=self.command_timeout)
        except (asyncio.TimeoutError, RedisTimeoutError) as e:
            raise StoreTimeout(operation, self.command_timeout) from e
        except RedisConnectionError as e:
            raise StoreUnavailable(operation, str(e) or "connection lost") from e
        except RedisError as e:
            raise StoreError(operation, str(e)) from e
        except OSError as e:
            raise StoreUnavailable(operation, str(e)) from e

    # =========================================================================
    # STRINGS
    # =========================================================================

    async def get(self, key: str) -> Optional[str]:
        return await self._run("get", lambda client: client.get(key))

    async def set(self, key: str, value: str) -> bool:
        """Store value without expiry."""
        return bool(await self._run("set", lambda client: client.set(key, value)))

    async def set_with_ttl(self, key: str, value: str, ttl_seconds: int,
                           only_if_exists: bool = False) -> bool:
        """Store value with an expiry.

        With ``only_if_exists`` the write is ``SET ... XX``: it does nothing
        (and returns False) when the key is absent.
        """
        result = await self._run(
            "set_with_ttl",
            lambda client: client.set(key, value, ex=ttl_seconds, xx=only_if_exists),
        )
        return bool(result)

    async def delete(self, *keys: str) -> int:
        """Delete keys, returning how many existed."""
        if not keys:
            return 0
        return int(await self._run("delete", lambda client: client.delete(*keys)))

    async def exists(self, key: str) -> bool:
        return bool(await self._run("exists", lambda client: client.exists(key)))

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        """Set a key's TTL. False when the key does not exist."""
        return bool(await self._run("expire", lambda client: client.expire(key, ttl_seconds)))

    async def ttl(self, key: str) -> int:
        """Remaining TTL in seconds: -1 without expiry, -2 when missing."""
        return int(await self._run("ttl", lambda client: client.ttl(key)))

    async def increment(self, key: str) -> int:
        """Atomically increment a counter, creating it at 1."""
        return int(await self._run("increment", lambda client: client.incr(key)))

    async def keys_by_prefix(self, prefix: str, batch_size: int = 500) -> List[str]:
        """Enumerate keys starting with prefix using SCAN.

        Enumeration order is whatever the store returns. The whole scan runs
        under a single command deadline.
        """
        pattern = f"{escape_glob(prefix)}*"

        async def _scan(client: redis.Redis) -> List[str]:
            return [key async for key in client.scan_iter(match=pattern, count=batch_size)]

        keys = await self._run("keys_by_prefix", _scan)
        # SCAN may return a key more than once while the keyspace is rehashing
        return list(dict.fromkeys(keys))

    # =========================================================================
    # SORTED SETS
    # =========================================================================

    async def sorted_set_add(self, key: str, member: str, score: float) -> int:
        """Add member with score, returning the number of new members."""
        return int(await self._run("sorted_set_add", lambda client: client.zadd(key, {member: score})))

    async def sorted_set_pop_max(self, key: str) -> Optional[Tuple[str, float]]:
        """Atomically remove and return the highest-scored member, or None."""
        result = await self._run("sorted_set_pop_max", lambda client: client.zpopmax(key))
        if not result:
            return None
        member, score = result[0]
        return member, float(score)

    async def sorted_set_cardinality(self, key: str) -> int:
        return int(await self._run("sorted_set_cardinality", lambda client: client.zcard(key)))

    # =========================================================================
    # DIAGNOSTICS
    # =========================================================================

    async def ping(self) -> bool:
        return bool(await self._run("ping", lambda client: client.ping()))

    async def info(self, section: str = "memory") -> Dict[str, Any]:
        """Server INFO for one section, already parsed into a dict."""
        return await self._run("info", lambda client: client.info(section))
