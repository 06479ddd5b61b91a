"""Errors raised inside the cache layer.

None of these escape the public ``RedisCache`` operations; they exist so the
connector and codec can signal failures precisely and the sync operations can
log them with context before degrading to a safe default.
"""


class CacheError(Exception):
    """Base class for cache-layer failures"""


class CacheConnectionError(CacheError, ConnectionError):
    """The store could not be reached or the connect sequence failed"""


class StoreOperationError(CacheError):
    """A read, write, delete or enumeration failed on an established connection"""

    def __init__(self, operation: str, message: str):
        super().__init__(f"{operation}: {message}")
        self.operation = operation


class CodecError(StoreOperationError):
    """A stored document did not match the expected record shape"""

    def __init__(self, kind: str, message: str):
        super().__init__(f"decode {kind}", message)
        self.kind = kind
