"""Environment-driven configuration with Pydantic v2."""

from typing import Literal, Optional
from urllib.parse import quote

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from constants import (
    DEFAULT_CACHE_TTL,
    DEFAULT_CONVERSATION_TTL,
    DEFAULT_RATE_LIMIT_REQUESTS,
    DEFAULT_RATE_LIMIT_WINDOW,
    DEFAULT_SESSION_TTL,
    REDIS_URL_SCHEMES,
)


class Settings(BaseSettings):
    """Application settings driven entirely by environment variables."""

    # Server Configuration (operator /health endpoint)
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080, ge=1024, le=65535)
    debug: bool = Field(default=False)

    # Backing store connection
    redis_url: Optional[str] = Field(default=None)  # Overrides host/port/auth when set
    redis_host: str = Field(default="localhost")
    redis_port: int = Field(default=6379, ge=1, le=65535)
    redis_auth_string: Optional[str] = Field(default=None)
    redis_db: int = Field(default=0, ge=0, le=15)

    # Timeouts (seconds). Connect and command deadlines are independent.
    redis_connect_timeout: float = Field(default=10.0, gt=0, le=60)
    redis_command_timeout: float = Field(default=5.0, gt=0, le=60)
    redis_keepalive: bool = Field(default=True)
    redis_health_check_interval: int = Field(default=30, ge=0)

    # Reconnection: exponential backoff with jitter, capped
    redis_max_retries: int = Field(default=3, ge=0, le=10)
    redis_retry_backoff_base: float = Field(default=0.1, gt=0, le=5.0)
    redis_retry_backoff_cap: float = Field(default=10.0, gt=0, le=120.0)

    # Default TTLs
    cache_ttl: int = Field(default=DEFAULT_CACHE_TTL, ge=1)
    session_ttl: int = Field(default=DEFAULT_SESSION_TTL, ge=60)
    conversation_ttl: int = Field(default=DEFAULT_CONVERSATION_TTL, ge=60)

    # Rate Limiting
    rate_limit_requests: int = Field(default=DEFAULT_RATE_LIMIT_REQUESTS, ge=1)
    rate_limit_window: int = Field(default=DEFAULT_RATE_LIMIT_WINDOW, ge=1)

    # Logging
    log_level: str = Field(default="INFO")
    log_format: Literal["json", "console"] = Field(default="json")
    log_file: Optional[str] = Field(default=None)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Normalize and check the log level name."""
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("redis_url")
    @classmethod
    def validate_redis_url(cls, v):
        """Reject URLs redis-py cannot connect with."""
        if v and not v.startswith(REDIS_URL_SCHEMES):
            raise ValueError(f"REDIS_URL must start with one of {', '.join(REDIS_URL_SCHEMES)}")
        return v

    @property
    def store_url(self) -> str:
        """Connection URL for the backing store.

        REDIS_URL wins when present, otherwise the URL is assembled from the
        host/port/auth/db parts.
        """
        if self.redis_url:
            return self.redis_url
        auth = f":{quote(self.redis_auth_string, safe='')}@" if self.redis_auth_string else ""
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
        "env_parse_none_str": "none",
    }
