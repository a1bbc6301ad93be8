"""Short-lived conversation state for bot flows.

State documents live under ``conversation:<participant>`` and expire after a
period of inactivity. ``step`` is always overwritten; ``context_data`` is
always merged (shallowly), so earlier answers survive later steps.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from constants import CONVERSATION_PREFIX, DEFAULT_CONVERSATION_TTL
from core.cache import CacheManager
from core.exceptions import CacheError, SerializationError
from core.logging import get_logger, log_store_failure

logger = get_logger(__name__)

Step = Union[int, str]


def conversation_key(participant_id: str) -> str:
    return f"{CONVERSATION_PREFIX}{participant_id}"


class ConversationStateCache:
    """Mergeable, expiring state keyed by conversation participant."""

    def __init__(self, cache: CacheManager, default_ttl: int = DEFAULT_CONVERSATION_TTL):
        self.cache = cache
        self.default_ttl = default_ttl

    def _ttl(self, ttl_seconds: Optional[int]) -> int:
        return self.default_ttl if ttl_seconds is None else ttl_seconds

    async def set_state(self, participant_id: str, state_data: Dict[str, Any],
                        ttl_seconds: Optional[int] = None) -> bool:
        """Replace the whole state document (conversation start)."""
        return await self.cache.set(conversation_key(participant_id), state_data,
                                    self._ttl(ttl_seconds))

    async def get_state(self, participant_id: str) -> Optional[Dict[str, Any]]:
        return await self.cache.get(conversation_key(participant_id))

    async def update_step(self, participant_id: str, step: Step,
                          context_data: Optional[Dict[str, Any]] = None,
                          ttl_seconds: Optional[int] = None) -> bool:
        """Advance to step, merging context_data into the stored context.

        Creates the state when absent and refreshes its TTL either way. If the
        current state cannot be read nothing is written, so a transient failure
        never replaces the stored context with the new fragment alone.
        """
        key = conversation_key(participant_id)
        try:
            current = await self.cache.load_value(key)
        except SerializationError as e:
            # Unreadable state has no context to keep
            logger.warning("Discarding corrupt conversation state", cache_key=key, error=str(e))
            current = {}
        except CacheError as e:
            log_store_failure(logger, "update_step", key, e, step=step)
            return False

        if not isinstance(current, dict):
            current = {}

        previous_context = current.get("context_data")
        if not isinstance(previous_context, dict):
            previous_context = {}

        updated = {
            **current,
            "step": step,
            "context_data": {**previous_context, **(context_data or {})},
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        stored = await self.cache.set(key, updated, self._ttl(ttl_seconds))
        if stored:
            logger.debug("Conversation step updated", participant_id=participant_id, step=step)
        return stored

    async def clear_state(self, participant_id: str) -> bool:
        """End the conversation context now. Clearing twice is a no-op."""
        return await self.cache.delete(conversation_key(participant_id))
