"""Queue job model.

Jobs are JSON-serializable so producers and consumers in different processes
can share them through the backing store.
"""

import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict

from constants import JOB_STATUS_PENDING


def generate_job_id() -> str:
    """Collision-resistant id: millisecond timestamp plus random suffix."""
    return f"job:{int(time.time() * 1000)}:{uuid.uuid4().hex[:8]}"


@dataclass
class QueueJob:
    """A unit of work waiting in a priority queue.

    The queue only ever holds pending jobs; once popped, status is tracked
    by the consumer.
    """
    id: str
    data: Any
    priority: float = 0
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    status: str = JOB_STATUS_PENDING

    @classmethod
    def create(cls, data: Any, priority: float = 0) -> "QueueJob":
        """Create a new pending job with a generated id."""
        return cls(id=generate_job_id(), data=data, priority=priority)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "id": self.id,
            "data": self.data,
            "priority": self.priority,
            "created_at": self.created_at,
            "status": self.status,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QueueJob":
        """Create from dict."""
        return cls(
            id=data["id"],
            data=data.get("data"),
            priority=data.get("priority", 0),
            created_at=data.get("created_at", ""),
            status=data.get("status", JOB_STATUS_PENDING),
        )
