"""Concurrency Infrastructure

Purpose: Cluster-wide mutual exclusion for directory mutations

This package provides the single named, lease-bounded lock that serializes
writers across every metastore client sharing one key-value store.
"""

from .lock_coordinator import DEFAULT_LOCK_KEY, LockCoordinator

__all__ = ["DEFAULT_LOCK_KEY", "LockCoordinator"]
