"""Priority job queues on sorted sets.

Each queue is one sorted set at ``queue:<name>``; the job's priority is the
member's score and ZPOPMAX hands out the highest priority first. The pop is
atomic in the store, so two consumers can never receive the same job.

Ordering within one priority: Redis orders members with equal scores by their
bytes and ZPOPMAX takes the greatest. Every member is therefore prefixed with
a key that decreases with enqueue time, which makes older jobs compare
greater and pop first (FIFO within a priority).

Delivery: a popped job is gone from the queue whether or not the consumer
finishes it. Consumers that need durability track in-flight jobs and
re-submit on failure.
"""

import time
from typing import Any, Dict, Optional

from constants import QUEUE_PREFIX
from core.cache import deserialize, serialize
from core.exceptions import CacheError, SerializationError
from core.logging import get_logger, log_store_failure
from core.store import StoreAdapter
from models.queue import QueueJob

logger = get_logger(__name__)

# Upper bound for time.time_ns() well past any realistic clock value
_ORDER_CEILING = 10 ** 19
_ORDER_WIDTH = 19
MEMBER_SEPARATOR = "|"


def queue_key(queue_name: str) -> str:
    return f"{QUEUE_PREFIX}{queue_name}"


def encode_member(job: QueueJob, enqueued_ns: Optional[int] = None) -> str:
    """Sorted-set member for a job: descending time key, separator, job JSON."""
    enqueued_ns = time.time_ns() if enqueued_ns is None else enqueued_ns
    order_key = str(_ORDER_CEILING - enqueued_ns).zfill(_ORDER_WIDTH)
    return f"{order_key}{MEMBER_SEPARATOR}{serialize(job.id, job.to_dict())}"


def decode_member(member: str, key: str = QUEUE_PREFIX) -> QueueJob:
    _, _, payload = member.partition(MEMBER_SEPARATOR)
    document = deserialize(key, payload)
    if not isinstance(document, dict) or "id" not in document:
        raise SerializationError(key, "queue member is not a job record")
    return QueueJob.from_dict(document)


class PriorityQueue:
    """Generic priority queue; the queue name is a parameter of every call."""

    def __init__(self, store: StoreAdapter):
        self.store = store

    async def add_job(self, queue_name: str, job_data: Any, priority: float = 0) -> Optional[str]:
        """Enqueue job_data, returning the new job id or None on failure."""
        job = QueueJob.create(job_data, priority)
        key = queue_key(queue_name)
        try:
            await self.store.sorted_set_add(key, encode_member(job), priority)
        except CacheError as e:
            log_store_failure(logger, "add_job", key, e)
            return None

        logger.debug("Job queued", queue=queue_name, job_id=job.id, priority=priority)
        return job.id

    async def get_next_job(self, queue_name: str) -> Optional[QueueJob]:
        """Pop the highest-priority job, or None if the queue is empty."""
        key = queue_key(queue_name)
        try:
            popped = await self.store.sorted_set_pop_max(key)
            if popped is None:
                return None
            member, _ = popped
            job = decode_member(member, key)
        except CacheError as e:
            # A corrupt member is already removed by the pop and is dropped here
            log_store_failure(logger, "get_next_job", key, e)
            return None

        logger.debug("Job dequeued", queue=queue_name, job_id=job.id, priority=job.priority)
        return job

    async def get_queue_length(self, queue_name: str) -> Optional[int]:
        """Number of pending jobs, or None if the store could not be asked."""
        key = queue_key(queue_name)
        try:
            return await self.store.sorted_set_cardinality(key)
        except CacheError as e:
            log_store_failure(logger, "get_queue_length", key, e)
            return None


class NamedQueue:
    """A PriorityQueue bound to one queue name.

    Payloads may carry their own ``priority`` field, which becomes the job's
    score.
    """

    def __init__(self, queue: PriorityQueue, name: str):
        self.queue = queue
        self.name = name

    async def push(self, data: Dict[str, Any]) -> Optional[str]:
        return await self.queue.add_job(self.name, data, data.get("priority", 0) or 0)

    async def pop(self) -> Optional[QueueJob]:
        return await self.queue.get_next_job(self.name)

    async def length(self) -> Optional[int]:
        return await self.queue.get_queue_length(self.name)
