"""Centralized constants for key namespaces, queue names and default TTLs.

This module provides a single source of truth for the key schema shared by
every component of the cache layer, so that producers and consumers running
in different processes agree on where data lives.
"""

# =============================================================================
# KEY NAMESPACES
# =============================================================================

SESSION_PREFIX = "session:"
RATE_LIMIT_PREFIX = "ratelimit:"
QUEUE_PREFIX = "queue:"
CONVERSATION_PREFIX = "conversation:"

# Key written and removed by the cache round-trip probe
HEALTH_CHECK_KEY = "_health_check"

# URL schemes accepted by redis-py's from_url
REDIS_URL_SCHEMES = ("redis://", "rediss://", "unix://")

# =============================================================================
# NAMED QUEUES
# =============================================================================

MESSAGE_QUEUE = "whatsapp_messages"
AUTOMATION_QUEUE = "automation_rules"

# =============================================================================
# DEFAULT TTLS (seconds)
# =============================================================================

DEFAULT_CACHE_TTL = 3600          # 1 hour
DEFAULT_SESSION_TTL = 86400       # 24 hours
DEFAULT_CONVERSATION_TTL = 7200   # 2 hours
MIN_TTL = 1

# =============================================================================
# RATE LIMITING DEFAULTS
# =============================================================================

DEFAULT_RATE_LIMIT_REQUESTS = 100
DEFAULT_RATE_LIMIT_WINDOW = 3600

# Job status inside a queue; anything after a pop is owned by the consumer
JOB_STATUS_PENDING = "pending"
