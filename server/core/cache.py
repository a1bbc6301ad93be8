"""JSON cache over the backing store.

The cache is a best-effort optimization, never a source of truth. It has two
surfaces:

- ``store_value`` / ``load_value`` raise ``CacheError`` subclasses so the failure cause
  stays visible to code that needs it.
- ``set`` / ``get`` / ``delete`` / ... collapse every failure to a miss
  (``None``) or ``False`` and log it, so a store outage degrades the cache to
  "always miss" instead of breaking request handling.
"""

import json
from typing import Any, Optional

from constants import DEFAULT_CACHE_TTL, MIN_TTL
from core.exceptions import CacheError, SerializationError
from core.logging import get_logger, log_cache_operation, log_store_failure
from core.store import StoreAdapter

logger = get_logger(__name__)

# Marks "use the manager's default TTL"; None already means "no expiry"
DEFAULT_TTL: Any = object()


def serialize(key: str, value: Any) -> str:
    """Encode a document for storage."""
    try:
        return json.dumps(value, default=str)
    except (TypeError, ValueError) as e:
        raise SerializationError(key, f"cannot encode value: {e}") from e


def deserialize(key: str, raw: str) -> Any:
    """Decode a stored document."""
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as e:
        raise SerializationError(key, f"corrupt payload: {e}") from e


class CacheManager:
    """Async JSON cache with TTL support."""

    def __init__(self, store: StoreAdapter, default_ttl: int = DEFAULT_CACHE_TTL):
        self.store = store
        self.default_ttl = default_ttl

    def _ttl(self, ttl_seconds: Optional[int]) -> Optional[int]:
        return self.default_ttl if ttl_seconds is DEFAULT_TTL else ttl_seconds

    # =========================================================================
    # STRICT API (raises CacheError)
    # =========================================================================

    async def store_value(self, key: str, value: Any, ttl_seconds: Optional[int] = DEFAULT_TTL,
                          only_if_exists: bool = False) -> bool:
        """Serialize and write value.

        Without ``ttl_seconds`` the manager's ``default_ttl`` applies;
        ``ttl_seconds=None`` keeps the key until it is deleted. A TTL below
        one second is refused to avoid writes that expire before they can be
        read.
        """
        ttl_seconds = self._ttl(ttl_seconds)
        if ttl_seconds is not None and ttl_seconds < MIN_TTL:
            raise ValueError(f"TTL must be at least {MIN_TTL}s, got {ttl_seconds}")

        serialized = serialize(key, value)
        if ttl_seconds is None:
            if only_if_exists:
                raise ValueError("only_if_exists requires a TTL")
            return await self.store.set(key, serialized)
        return await self.store.set_with_ttl(key, serialized, ttl_seconds,
                                             only_if_exists=only_if_exists)

    async def load_value(self, key: str) -> Optional[Any]:
        """Read and deserialize value; None when the key is absent."""
        raw = await self.store.get(key)
        if raw is None:
            return None
        return deserialize(key, raw)

    # =========================================================================
    # BEST-EFFORT API (never raises)
    # =========================================================================

    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache. Errors read as a miss."""
        try:
            value = await self.load_value(key)
        except CacheError as e:
            log_store_failure(logger, "get", key, e)
            return None

        log_cache_operation(logger, "get", key, hit=value is not None)
        return value

    async def set(self, key: str, value: Any, ttl_seconds: Optional[int] = DEFAULT_TTL) -> bool:
        """Set value in cache with optional TTL (the manager default when omitted)."""
        ttl_seconds = self._ttl(ttl_seconds)
        try:
            stored = await self.store_value(key, value, ttl_seconds)
        except ValueError as e:
            logger.warning("Cache set rejected", key=key, ttl=ttl_seconds, error=str(e))
            return False
        except CacheError as e:
            log_store_failure(logger, "set", key, e)
            return False

        log_cache_operation(logger, "set", key, ttl=ttl_seconds)
        return stored

    async def replace(self, key: str, value: Any, ttl_seconds: int = DEFAULT_TTL) -> bool:
        """Overwrite value only if the key still exists, re-arming its TTL."""
        ttl_seconds = self._ttl(ttl_seconds)
        try:
            stored = await self.store_value(key, value, ttl_seconds, only_if_exists=True)
        except ValueError as e:
            logger.warning("Cache replace rejected", key=key, ttl=ttl_seconds, error=str(e))
            return False
        except CacheError as e:
            log_store_failure(logger, "replace", key, e)
            return False

        log_cache_operation(logger, "replace", key, ttl=ttl_seconds, replaced=stored)
        return stored

    async def delete(self, key: str) -> bool:
        """Delete value from cache. True only if something was deleted."""
        try:
            deleted = await self.store.delete(key)
        except CacheError as e:
            log_store_failure(logger, "delete", key, e)
            return False

        log_cache_operation(logger, "delete", key, deleted=bool(deleted))
        return bool(deleted)

    async def exists(self, key: str) -> bool:
        """Check if key exists in cache."""
        try:
            return await self.store.exists(key)
        except CacheError as e:
            log_store_failure(logger, "exists", key, e)
            return False

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        """Set TTL for existing key."""
        if ttl_seconds < MIN_TTL:
            logger.warning("Cache expire rejected", key=key, ttl=ttl_seconds)
            return False
        try:
            return await self.store.expire(key, ttl_seconds)
        except CacheError as e:
            log_store_failure(logger, "expire", key, e)
            return False

    async def ttl(self, key: str) -> Optional[int]:
        """Remaining TTL in seconds (-1 no expiry, -2 missing), None on failure."""
        try:
            return await self.store.ttl(key)
        except CacheError as e:
            log_store_failure(logger, "ttl", key, e)
            return None

    async def clear_prefix(self, prefix: str) -> int:
        """Delete every key under prefix, returning how many were removed."""
        try:
            keys = await self.store.keys_by_prefix(prefix)
            deleted = await self.store.delete(*keys)
        except CacheError as e:
            log_store_failure(logger, "clear_prefix", prefix, e)
            return 0

        log_cache_operation(logger, "clear_prefix", prefix, deleted=deleted)
        return deleted
