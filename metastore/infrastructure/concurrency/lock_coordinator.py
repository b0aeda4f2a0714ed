"""Directory Lock Coordinator

Purpose: Cluster-wide locking so only one client mutates the directory at a time

The lock is a single Redis key holding the identity of its holder, written
with SET NX PX so it expires on its own when a holder dies. Release is a
compare-and-delete script: a client whose lease already ran out can never
delete the lock a newer holder took.

Key Features:
- Lease-bounded lock with identity-checked release
- Unbounded polling acquisition with a fixed interval
- Cancellation through an event checked on every attempt
- Context manager support for clean usage
"""

import asyncio
import time
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, Optional

from metastore.exceptions import LockCancelledError, MetaStoreError, StoreIOError
from metastore.infrastructure.logging import get_logger
from metastore.infrastructure.persistence.commands import (
    CompareAndDelete,
    KeyGet,
    SetIfAbsent,
)
from metastore.infrastructure.persistence.connection import ConnectionManager

DEFAULT_LOCK_KEY = "zgw_lock"
DEFAULT_RETRY_INTERVAL = 0.5


class LockCoordinator:
    """
    Acquires and releases the directory lock.

    Identity and lease come from the connection manager, which is shared with
    the directory store.
    """

    def __init__(
        self,
        connection: ConnectionManager,
        lock_key: str = DEFAULT_LOCK_KEY,
        retry_interval: float = DEFAULT_RETRY_INTERVAL,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the lock coordinator.

        Args:
            connection: Connection manager owning the Redis handle
            lock_key: Redis key of the lock
            retry_interval: Seconds between acquisition attempts
            sleep: Awaitable sleep, injectable for tests
        """
        self.connection = connection
        self.lock_key = lock_key
        self.retry_interval = retry_interval
        self._sleep = sleep
        self.logger = get_logger(__name__)

    @property
    def identity(self) -> str:
        return self.connection.lock_identity

    async def acquire(self, cancel_event: Optional[asyncio.Event] = None) -> None:
        """
        Block until this client holds the lock.

        There is no overall deadline. Callers that need one set
        ``cancel_event`` or cancel the surrounding task; the lease still
        expires the lock on the store side.

        Args:
            cancel_event: Checked before every attempt; when set, give up

        Raises:
            StoreIOError: Connection unusable or a transport failure
            CorruptionError: The store rejected the SET command
            LockCancelledError: ``cancel_event`` was set
        """
        request = SetIfAbsent(self.lock_key, self.identity, self.connection.lock_lease_ms)
        started = time.monotonic()
        attempts = 0

        while True:
            if cancel_event is not None and cancel_event.is_set():
                self.logger.info("lock.acquire_cancelled", identity=self.identity, attempts=attempts)
                raise LockCancelledError(f"Lock acquisition cancelled after {attempts} attempts")

            if not await self.connection.ensure_healthy():
                raise StoreIOError("Reconnect")

            attempts += 1
            acquired = await self.connection.execute(request, "Lock")
            if acquired:
                self.logger.info(
                    "lock.acquired",
                    identity=self.identity,
                    attempts=attempts,
                    waited_seconds=round(time.monotonic() - started, 3),
                )
                return

            self.logger.debug("lock.contended", identity=self.identity, attempts=attempts)
            await self._sleep(self.retry_interval)

    async def release(self) -> bool:
        """
        Release the lock if this client still holds it.

        Returns:
            True if the lock was deleted, False if it was absent or held by
            another identity (not an error: the lease already protected the
            directory)

        Raises:
            StoreIOError: Connection unusable or a transport failure
        """
        if not await self.connection.ensure_healthy():
            raise StoreIOError("Reconnect")

        deleted = await self.connection.execute(
            CompareAndDelete(self.lock_key, self.identity), "UnLock"
        )
        if deleted == 1:
            self.logger.debug("lock.released", identity=self.identity)
            return True

        self.logger.info("lock.not_held", identity=self.identity)
        return False

    async def holder(self) -> Optional[str]:
        """Identity currently holding the lock, if any."""
        if not await self.connection.ensure_healthy():
            raise StoreIOError("Reconnect")
        return await self.connection.execute(KeyGet(self.lock_key), "LockHolder")

    async def is_locked(self) -> bool:
        """
        Check if any client holds the lock.

        Returns:
            True if locked, False if available
        """
        return await self.holder() is not None

    @asynccontextmanager
    async def held(self, cancel_event: Optional[asyncio.Event] = None):
        """
        Context manager for acquiring and auto-releasing the lock.

        Usage:
            async with coordinator.held():
                # mutate the directory
                ...

        On an exception inside the block the lock is released only while the
        connection is still healthy; otherwise the lease expires it. A failed
        release is logged and the exception raised inside the block propagates.
        """
        await self.acquire(cancel_event)
        try:
            yield self
        except BaseException:
            if self.connection.is_healthy:
                try:
                    await self.release()
                except MetaStoreError as e:
                    self.logger.error("lock.release_failed", identity=self.identity, error=str(e))
            raise
        await self.release()
