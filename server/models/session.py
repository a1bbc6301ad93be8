"""Pydantic v2 models for login sessions."""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional
from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DeviceInfo(BaseModel):
    """Client that opened the session."""
    user_agent: Optional[str] = None
    source_address: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)


class Session(BaseModel):
    """One login event. A user may hold many concurrent sessions."""
    session_id: str
    user_id: str
    device_info: DeviceInfo = Field(default_factory=DeviceInfo)
    expires_at: datetime

    @classmethod
    def create(cls, user_id: str, ttl_seconds: int, user_agent: Optional[str] = None,
               source_address: Optional[str] = None) -> "Session":
        """Factory method for a fresh session with a random id."""
        device = DeviceInfo(user_agent=user_agent, source_address=source_address)
        return cls(
            session_id=secrets.token_urlsafe(32),
            user_id=user_id,
            device_info=device,
            expires_at=device.created_at + timedelta(seconds=ttl_seconds),
        )

    def to_document(self) -> dict:
        """JSON-ready dict for the cache (datetimes as ISO strings)."""
        return self.model_dump(mode="json")
