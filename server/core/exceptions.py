"""Cache layer exception hierarchy."""


class CacheError(Exception):
    """Base exception for all cache layer errors."""


class StoreError(CacheError):
    """The backing store rejected or failed a command."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"[{operation}] {message}")


class StoreUnavailable(StoreError):
    """No usable connection to the backing store."""


class StoreTimeout(StoreError):
    """A store command exceeded its deadline."""

    def __init__(self, operation: str, timeout: float):
        self.timeout = timeout
        super().__init__(operation, f"command timed out after {timeout:.1f}s")


class SerializationError(CacheError):
    """Payload could not be encoded on write or decoded on read."""

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(f"{key}: {message}")
