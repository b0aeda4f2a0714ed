"""
Exception classes for the metastore client.

Every public operation either succeeds or raises exactly one of these. The
error code travels with the exception so callers can surface it directly.
"""

from typing import Any, Dict, Optional


class MetaStoreError(Exception):
    """Base exception for the metastore client"""

    def __init__(self, message: str, error_code: str = None, context: Dict[str, Any] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or "METASTORE_ERROR"
        self.context = context or {}

    def __str__(self):
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message


class InvalidArgumentError(MetaStoreError, ValueError):
    """Malformed configuration or caller input. Never retried."""

    def __init__(self, message: str, error_code: str = None, context: Dict[str, Any] = None):
        super().__init__(message, error_code or "INVALID_ARGUMENT", context)


class StoreIOError(MetaStoreError):
    """Transport or connectivity failure talking to a backing store.

    The connection is already marked unhealthy when this is raised; the next
    call reconnects lazily.
    """

    def __init__(self, message: str, error_code: str = None, context: Dict[str, Any] = None):
        super().__init__(message, error_code or "IO_ERROR", context)


class CorruptionError(MetaStoreError):
    """The store answered, but the answer breaks the protocol or a directory invariant"""

    def __init__(self, message: str, error_code: str = None, context: Dict[str, Any] = None):
        super().__init__(message, error_code or "CORRUPTION", context)


class ConfigurationError(MetaStoreError):
    """Configuration-related errors"""

    def __init__(self, message: str, error_code: str = None, context: Dict[str, Any] = None):
        super().__init__(message, error_code or "CONFIG_ERROR", context)


class LockCancelledError(MetaStoreError):
    """Lock acquisition was abandoned through its cancel event"""

    def __init__(self, message: str, error_code: str = None, context: Dict[str, Any] = None):
        super().__init__(message, error_code or "LOCK_CANCELLED", context)


def describe(error: Optional[BaseException]) -> str:
    """Render an operation outcome the way it is appended to error messages."""
    if error is None:
        return "OK"
    if isinstance(error, MetaStoreError):
        return str(error)
    return f"{type(error).__name__}: {error}"
