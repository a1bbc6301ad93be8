"""Login session storage.

Sessions live under ``session:<id>`` with a TTL. A session is ACTIVE until
its TTL lapses (EXPIRED, seen as "not found") or it is deleted (REVOKED).
Lookups fail closed: any store failure reads as "no session", which the auth
middleware treats as not authenticated.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional, Union

from constants import DEFAULT_SESSION_TTL, SESSION_PREFIX
from core.cache import CacheManager
from core.exceptions import CacheError
from core.logging import get_logger, log_store_failure
from models.session import Session

logger = get_logger(__name__)

SessionData = Union[Session, Mapping[str, Any]]


def session_key(session_id: str) -> str:
    return f"{SESSION_PREFIX}{session_id}"


class SessionStore:
    """Per-user session records with TTL, enumeration and extension."""

    def __init__(self, cache: CacheManager, default_ttl: int = DEFAULT_SESSION_TTL):
        self.cache = cache
        self.default_ttl = default_ttl

    def _ttl(self, ttl_seconds: Optional[int]) -> int:
        return self.default_ttl if ttl_seconds is None else ttl_seconds

    async def create_session(self, user_id: str, user_agent: Optional[str] = None,
                             source_address: Optional[str] = None,
                             ttl_seconds: Optional[int] = None) -> Optional[Session]:
        """Open a new session after a successful login.

        Returns the stored Session, or None if it could not be written (the
        login should then be treated as failed).
        """
        ttl_seconds = self._ttl(ttl_seconds)
        session = Session.create(user_id, ttl_seconds, user_agent=user_agent,
                                 source_address=source_address)
        if not await self.set_session(session.session_id, session, ttl_seconds):
            return None
        logger.info("Session created", user_id=user_id, ttl=ttl_seconds)
        return session

    async def set_session(self, session_id: str, session_data: SessionData,
                          ttl_seconds: Optional[int] = None) -> bool:
        """Store a session record."""
        document = session_data.to_document() if isinstance(session_data, Session) else dict(session_data)
        return await self.cache.set(session_key(session_id), document, self._ttl(ttl_seconds))

    async def get_session(self, session_id: str) -> Optional[Dict[str, Any]]:
        """Get a session record, None when expired, revoked or unreadable."""
        return await self.cache.get(session_key(session_id))

    async def delete_session(self, session_id: str) -> bool:
        """Revoke a session. Deleting a missing session is a no-op."""
        deleted = await self.cache.delete(session_key(session_id))
        if deleted:
            logger.info("Session revoked", session_id=session_id)
        return deleted

    async def extend_session(self, session_id: str, ttl_seconds: Optional[int] = None) -> bool:
        """Push a live session's expiry forward.

        The record's ``expires_at`` is rewritten together with the TTL, and
        the write only lands if the key still exists, so a session revoked
        concurrently is never brought back.
        """
        ttl_seconds = self._ttl(ttl_seconds)
        key = session_key(session_id)
        try:
            document = await self.cache.load_value(key)
        except CacheError as e:
            log_store_failure(logger, "extend_session", key, e)
            return False

        if not isinstance(document, dict):
            return False

        document["expires_at"] = (datetime.now(timezone.utc) + timedelta(seconds=ttl_seconds)).isoformat()
        return await self.cache.replace(key, document, ttl_seconds)

    async def get_user_sessions(self, user_id: str) -> List[Dict[str, Any]]:
        """All live sessions belonging to user_id.

        This scans every session key in the store, so its cost grows with the
        total number of active sessions rather than the caller's own. Order is
        the store's enumeration order.
        """
        try:
            keys = await self.cache.store.keys_by_prefix(SESSION_PREFIX)
        except CacheError as e:
            log_store_failure(logger, "get_user_sessions", SESSION_PREFIX, e, user_id=user_id)
            return []

        sessions = []
        for key in keys:
            document = await self.cache.get(key)
            if isinstance(document, dict) and document.get("user_id") == user_id:
                sessions.append({**document, "session_id": key[len(SESSION_PREFIX):]})
        return sessions

    async def delete_user_sessions(self, user_id: str) -> int:
        """Revoke every session of a user (logout everywhere)."""
        sessions = await self.get_user_sessions(user_id)
        revoked = 0
        for session in sessions:
            if await self.delete_session(session["session_id"]):
                revoked += 1
        if revoked:
            logger.info("User sessions revoked", user_id=user_id, count=revoked)
        return revoked
