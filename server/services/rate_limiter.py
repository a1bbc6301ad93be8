"""Fixed-window rate limiter backed by atomic counters.

Each identifier gets one counter at ``ratelimit:<identifier>``. The first
increment of a window arms the counter's TTL; later increments in the same
window leave it alone, so the window ends ``window_seconds`` after its first
request and the counter disappears with it.

Fixed windows allow up to twice ``max_requests`` in a burst straddling two
windows. That is the accepted price for one counter and one atomic INCR per
check.

Store failures fail open: an outage of the store must not turn into a denial
of service for legitimate traffic.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from constants import DEFAULT_RATE_LIMIT_REQUESTS, DEFAULT_RATE_LIMIT_WINDOW, RATE_LIMIT_PREFIX
from core.exceptions import CacheError
from core.logging import get_logger, log_store_failure
from core.store import StoreAdapter
from models.rate_limit import RateLimitResult

logger = get_logger(__name__)


def rate_limit_key(identifier: str) -> str:
    return f"{RATE_LIMIT_PREFIX}{identifier}"


class RateLimiter:
    """Fixed-window request counters keyed by identifier."""

    def __init__(self, store: StoreAdapter,
                 max_requests: int = DEFAULT_RATE_LIMIT_REQUESTS,
                 window_seconds: int = DEFAULT_RATE_LIMIT_WINDOW):
        self.store = store
        self.max_requests = max_requests
        self.window_seconds = window_seconds

    async def check_limit(self, identifier: str, max_requests: Optional[int] = None,
                          window_seconds: Optional[int] = None) -> RateLimitResult:
        """Count one request for identifier and decide whether to admit it.

        Store failures never raise: the request is admitted. Non-positive
        ``max_requests`` or ``window_seconds`` are programming errors and raise
        ``ValueError`` before the store is touched.
        """
        if max_requests is None:
            max_requests = self.max_requests
        if window_seconds is None:
            window_seconds = self.window_seconds
        if max_requests < 1 or window_seconds < 1:
            raise ValueError("max_requests and window_seconds must be positive")

        key = rate_limit_key(identifier)
        try:
            count = await self.store.increment(key)
        except CacheError as e:
            log_store_failure(logger, "check_limit", key, e)
            return RateLimitResult(
                allowed=True,
                count=0,
                remaining=max_requests,
                limit=max_requests,
            )

        if count == 1:
            # Concurrent first hits may both see 1; setting the same TTL twice is harmless
            try:
                await self.store.expire(key, window_seconds)
            except CacheError as e:
                # The count stands; the TTL lookup below re-arms a counter left without expiry
                log_store_failure(logger, "rate_limit_arm", key, e)

        reset_time = await self._reset_time(key, count, window_seconds)
        allowed = count <= max_requests
        if not allowed:
            logger.info("Rate limit exceeded", identifier=identifier, count=count,
                        limit=max_requests)

        return RateLimitResult(
            allowed=allowed,
            count=count,
            remaining=max(0, max_requests - count),
            limit=max_requests,
            reset_time=reset_time,
        )

    async def _reset_time(self, key: str, count: int, window_seconds: int) -> Optional[datetime]:
        """End of the current window from the counter's live TTL."""
        try:
            ttl = await self.store.ttl(key)
            if ttl == -1:
                # Arming write was lost (e.g. the process died after INCR); never let a counter live forever
                logger.warning("Rate limit counter without expiry, re-arming", cache_key=key,
                               count=count)
                await self.store.expire(key, window_seconds)
                ttl = window_seconds
        except CacheError as e:
            log_store_failure(logger, "rate_limit_ttl", key, e)
            return None

        if ttl <= 0:
            return None
        return datetime.now(timezone.utc) + timedelta(seconds=ttl)

    async def get_count(self, identifier: str) -> Optional[int]:
        """Current count in the window without counting a request."""
        key = rate_limit_key(identifier)
        try:
            raw = await self.store.get(key)
        except CacheError as e:
            log_store_failure(logger, "get_count", key, e)
            return None
        return int(raw) if raw is not None else 0

    async def reset_limit(self, identifier: str) -> bool:
        """Delete the counter so the next request opens a fresh window."""
        key = rate_limit_key(identifier)
        try:
            deleted = await self.store.delete(key)
        except CacheError as e:
            log_store_failure(logger, "reset_limit", key, e)
            return False
        return bool(deleted)
