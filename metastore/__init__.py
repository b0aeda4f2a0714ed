"""
Metastore: metadata-store client for the object gateway.

Manages the object-user directory held in a shared Redis instance. Writers
coordinate through one cluster-wide, lease-bounded lock; connectivity
failures are detected per call and repaired lazily on the next operation.
"""

from metastore.client import MetaStore
from metastore.exceptions import (
    ConfigurationError,
    CorruptionError,
    InvalidArgumentError,
    LockCancelledError,
    MetaStoreError,
    StoreIOError,
)
from metastore.models import User

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "CorruptionError",
    "InvalidArgumentError",
    "LockCancelledError",
    "MetaStore",
    "MetaStoreError",
    "StoreIOError",
    "User",
]
