"""Configuration Package

Purpose: Centralized configuration management for the metastore client

This package contains the environment-based settings for the backing-store
addresses, the directory lock and logging.
"""

from .settings import (
    ClusterSettings,
    KVStoreSettings,
    LockSettings,
    LoggingSettings,
    MetaStoreSettings,
    get_settings,
    reset_settings,
)

__all__ = [
    "ClusterSettings",
    "KVStoreSettings",
    "LockSettings",
    "LoggingSettings",
    "MetaStoreSettings",
    "get_settings",
    "reset_settings",
]
