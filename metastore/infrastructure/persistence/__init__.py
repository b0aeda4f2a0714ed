"""Persistence Infrastructure

Purpose: Backing-store connection handling and the object-user directory

This package owns the key-value store connection, the typed requests sent
over it, the classification of their outcomes and the directory operations
built on top of them.
"""

from .commands import (
    CompareAndDelete,
    HashGetAll,
    HashSetFields,
    KeyDelete,
    KeyGet,
    KVRequest,
    ReplyShape,
    SetAdd,
    SetIfAbsent,
    SetMembers,
)
from .connection import ConnectionManager
from .directory_store import DirectoryStore
from .error_classifier import Outcome, classify_exception, classify_reply, should_release_lock

__all__ = [
    "CompareAndDelete",
    "ConnectionManager",
    "DirectoryStore",
    "HashGetAll",
    "HashSetFields",
    "KeyDelete",
    "KeyGet",
    "KVRequest",
    "Outcome",
    "ReplyShape",
    "SetAdd",
    "SetIfAbsent",
    "SetMembers",
    "classify_exception",
    "classify_reply",
    "should_release_lock",
]
