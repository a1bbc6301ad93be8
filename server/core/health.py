"""Health check for the backing store.

Used by the operator-facing /health endpoint and external liveness probes.
This is the one place in the cache layer that hands raw store errors back to
its caller.
"""
import time
from typing import Any, Dict, Optional

import psutil

from constants import HEALTH_CHECK_KEY
from core.cache import CacheManager
from core.exceptions import CacheError
from core.logging import get_logger
from core.store import StoreAdapter

logger = get_logger(__name__)


def get_memory_mb() -> float:
    """Get current process memory usage in MB."""
    try:
        return psutil.Process().memory_info().rss / (1024 * 1024)
    except psutil.Error:
        return 0.0


def _parse_ratio(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class HealthMonitor:
    """Latency probe plus store memory snapshot."""

    def __init__(self, store: StoreAdapter, cache: Optional[CacheManager] = None):
        self.store = store
        self.cache = cache
        self.started_at = time.time()

    def get_uptime(self) -> float:
        """Seconds since this monitor (and so the process) started."""
        return time.time() - self.started_at

    async def check_cache(self) -> bool:
        """Write, read back and delete a probe key through the cache.

        Raises ``CacheError`` when the store fails; returns False when the
        value read back is not the one written.
        """
        if self.cache is None:
            return True
        await self.cache.store_value(HEALTH_CHECK_KEY, "ok", ttl_seconds=10)
        result = await self.cache.load_value(HEALTH_CHECK_KEY)
        await self.store.delete(HEALTH_CHECK_KEY)
        return result == "ok"

    async def check_health(self) -> Dict[str, Any]:
        """Probe the store.

        Returns:
            ``{"status": "healthy", "response_time_ms", "memory", ...}`` or
            ``{"status": "unhealthy", "error"}`` with the raw error message.
        """
        try:
            start = time.perf_counter()
            await self.store.ping()
            response_time_ms = (time.perf_counter() - start) * 1000

            info = await self.store.info("memory")
            cache_ok = await self.check_cache()
        except CacheError as e:
            logger.warning("Store health check failed", error=str(e))
            return {"status": "unhealthy", "error": str(e)}

        if not cache_ok:
            return {"status": "unhealthy", "error": "cache round-trip failed"}

        return {
            "status": "healthy",
            "response_time_ms": round(response_time_ms, 2),
            "memory": {
                "used": info.get("used_memory_human"),
                "peak": info.get("used_memory_peak_human"),
                "fragmentation": _parse_ratio(info.get("mem_fragmentation_ratio")),
            },
            "uptime_seconds": round(self.get_uptime(), 1),
            "process_memory_mb": round(get_memory_mb(), 1),
        }
