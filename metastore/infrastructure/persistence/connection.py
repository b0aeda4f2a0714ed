"""
Backing-store connection management.

``ConnectionManager`` exclusively owns the data-cluster client and the Redis
handle for the lifetime of a metastore client. It tracks a single
healthy/errored flag and reconnects lazily: callers run ``ensure_healthy``
before every operation, and a transport failure anywhere flips the flag so the
next operation reconnects.

Not safe for concurrent use from several tasks; the flag and the handles are
replaced in place without locking.
"""

import asyncio
from typing import Any, Callable, List, Optional, Sequence

import redis.asyncio as redis
from redis.exceptions import RedisError

from metastore.exceptions import CorruptionError, InvalidArgumentError, StoreIOError
from metastore.infrastructure.cluster_client import ClusterClient, MetaClusterClient
from metastore.infrastructure.logging import get_logger
from metastore.infrastructure.persistence.commands import KVRequest
from metastore.infrastructure.persistence.error_classifier import (
    Outcome,
    classify_exception,
    classify_reply,
)
from metastore.infrastructure.redis_client import DEFAULT_CONNECT_TIMEOUT, RedisClientFactory
from metastore.utils import format_address, parse_host_port

logger = get_logger(__name__)

ClusterFactory = Callable[[List[tuple], float], ClusterClient]
RedisFactory = Callable[[str, int, float], redis.Redis]

_CALL_ERRORS = (RedisError, OSError, asyncio.TimeoutError)
# Undecodable stored bytes surface from the reply parser, not the transport
_EXECUTE_ERRORS = _CALL_ERRORS + (UnicodeDecodeError,)


class ConnectionManager:
    """Owns both backing-store handles and the connection-state flag."""

    def __init__(
        self,
        cluster: ClusterClient,
        redis_client: redis.Redis,
        kv_host: str,
        kv_port: int,
        lock_identity: str,
        lock_lease_ms: int,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        redis_factory: Optional[RedisFactory] = None,
    ):
        self.cluster = cluster
        self.redis: Optional[redis.Redis] = redis_client
        self.kv_host = kv_host
        self.kv_port = kv_port
        self.lock_identity = lock_identity
        self.lock_lease_ms = lock_lease_ms
        self.connect_timeout = connect_timeout
        self._redis_factory = redis_factory or RedisClientFactory.create_client
        self._healthy = True
        self._closed = False

    @classmethod
    async def open(
        cls,
        cluster_addresses: Sequence[str],
        kv_address: str,
        lock_identity: str,
        lock_lease_ms: int,
        *,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        cluster_factory: Optional[ClusterFactory] = None,
        redis_factory: Optional[RedisFactory] = None,
    ) -> "ConnectionManager":
        """
        Connect to the data cluster, then to the key-value store.

        Args:
            cluster_addresses: One or more ``host:port`` meta node addresses
            kv_address: ``host:port`` of the key-value store
            lock_identity: Token identifying this client as lock holder
            lock_lease_ms: Lock lease in milliseconds
            connect_timeout: Connect timeout for each store, in seconds
            cluster_factory: Builds the cluster client (defaults to MetaClusterClient)
            redis_factory: Builds the Redis handle (defaults to RedisClientFactory)

        Returns:
            A healthy ConnectionManager

        Raises:
            InvalidArgumentError: Missing or malformed addresses, or a non-positive lock lease
            StoreIOError: A store could not be reached
            CorruptionError: No Redis handle could be allocated at all
        """
        if not cluster_addresses:
            raise InvalidArgumentError("Invalid cluster addresses")
        if isinstance(lock_lease_ms, bool) or not isinstance(lock_lease_ms, int) or lock_lease_ms <= 0:
            raise InvalidArgumentError("Invalid lock lease", context={"lock_lease_ms": lock_lease_ms})
        meta_nodes = [parse_host_port(addr, "cluster address") for addr in cluster_addresses]

        cluster_factory = cluster_factory or MetaClusterClient
        redis_factory = redis_factory or RedisClientFactory.create_client

        cluster = cluster_factory(meta_nodes, connect_timeout)
        try:
            await cluster.connect()
        except (OSError, asyncio.TimeoutError, RedisError) as e:
            await cluster.close()
            logger.error("connection.cluster_failed", error=str(e))
            raise StoreIOError("Failed to connect to cluster", context={"error": str(e)}) from e

        try:
            kv_host, kv_port = parse_host_port(kv_address, "kv store address")
        except InvalidArgumentError:
            await cluster.close()
            raise

        try:
            redis_client = redis_factory(kv_host, kv_port, connect_timeout)
        except Exception as e:
            await cluster.close()
            logger.error("connection.kv_alloc_failed", error=str(e))
            raise CorruptionError(
                "Connection error: can't allocate kv store context",
                context={"error": str(e)},
            ) from e

        try:
            await asyncio.wait_for(RedisClientFactory.probe(redis_client), timeout=connect_timeout)
        except _CALL_ERRORS as e:
            await RedisClientFactory.dispose(redis_client)
            await cluster.close()
            logger.error("connection.kv_failed", address=kv_address, error=str(e))
            raise StoreIOError("Failed to connect to kv store", context={"error": str(e)}) from e

        logger.info(
            "connection.opened",
            kv_address=format_address(kv_host, kv_port),
            cluster_nodes=len(meta_nodes),
        )
        return cls(
            cluster,
            redis_client,
            kv_host,
            kv_port,
            lock_identity,
            lock_lease_ms,
            connect_timeout=connect_timeout,
            redis_factory=redis_factory,
        )

    @property
    def is_healthy(self) -> bool:
        return self._healthy

    async def ensure_healthy(self) -> bool:
        """
        Reconnect to the stored key-value address if the connection errored.

        Returns:
            True if the connection is usable
        """
        if self._healthy:
            return True
        if self._closed:
            return False

        logger.info("connection.reconnecting", kv_address=format_address(self.kv_host, self.kv_port))
        try:
            handle = self._redis_factory(self.kv_host, self.kv_port, self.connect_timeout)
        except Exception as e:
            logger.warning("connection.reconnect_failed", error=str(e))
            return False

        try:
            await asyncio.wait_for(RedisClientFactory.probe(handle), timeout=self.connect_timeout)
        except _CALL_ERRORS as e:
            await RedisClientFactory.dispose(handle)
            logger.warning("connection.reconnect_failed", error=str(e))
            return False

        self.redis = handle
        self._healthy = True
        logger.info("connection.reconnected")
        return True

    async def mark_unhealthy(self) -> None:
        """Drop the current Redis handle; the next ``ensure_healthy`` reconnects."""
        handle, self.redis = self.redis, None
        self._healthy = False
        logger.warning("connection.marked_unhealthy")
        await RedisClientFactory.dispose(handle)

    async def execute(self, request: KVRequest, operation: str) -> Any:
        """
        Send one request and classify its result.

        Args:
            request: Typed request to send
            operation: Name reported in error messages, e.g. ``AddUser::SADD``

        Returns:
            The reply, when the outcome is SUCCESS

        Raises:
            StoreIOError: TRANSIENT_IO outcome; the connection is marked unhealthy
            CorruptionError: LOGIC_OR_CORRUPTION outcome
        """
        if self.redis is None:
            raise StoreIOError("Reconnect", context={"operation": operation})

        try:
            reply = await self.redis.execute_command(*request.args())
        except _EXECUTE_ERRORS as e:
            outcome = classify_exception(e)
            if outcome is Outcome.TRANSIENT_IO:
                await self.mark_unhealthy()
                logger.error("store.io_error", operation=operation, error=str(e))
                raise StoreIOError(operation, context={"error": str(e)}) from e
            logger.error("store.logic_error", operation=operation, error=str(e))
            raise CorruptionError(f"{operation} ret: {e}") from e

        outcome = classify_reply(reply, request.expected)
        if outcome is Outcome.TRANSIENT_IO:
            await self.mark_unhealthy()
            logger.error("store.no_reply", operation=operation)
            raise StoreIOError(operation, context={"error": "no reply"})
        if outcome is Outcome.LOGIC_OR_CORRUPTION:
            logger.error("store.unexpected_reply", operation=operation, reply_type=type(reply).__name__)
            raise CorruptionError(f"{operation}: unexpected reply {reply!r}")
        return reply

    async def close(self) -> None:
        """Release both handles."""
        if self._closed:
            return
        self._closed = True
        self._healthy = False
        handle, self.redis = self.redis, None
        await RedisClientFactory.dispose(handle)
        await self.cluster.close()
        logger.info("connection.closed")

    async def __aenter__(self) -> "ConnectionManager":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
