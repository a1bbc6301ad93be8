"""Rate limiter result model."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class RateLimitResult:
    """Outcome of one fixed-window admission check.

    ``reset_time`` is when the current window ends, derived from the
    counter's live TTL. It is None when the TTL could not be read or the
    limiter failed open.
    """
    allowed: bool
    count: int
    remaining: int
    limit: int
    reset_time: Optional[datetime] = None

    @property
    def retry_after(self) -> Optional[int]:
        """Seconds until the window resets, for Retry-After headers."""
        if self.allowed or self.reset_time is None:
            return None
        delta = self.reset_time - datetime.now(self.reset_time.tzinfo)
        return max(0, int(delta.total_seconds()))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "allowed": self.allowed,
            "count": self.count,
            "remaining": self.remaining,
            "limit": self.limit,
            "reset_time": self.reset_time.isoformat() if self.reset_time else None,
        }
