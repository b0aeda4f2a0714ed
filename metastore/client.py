"""
Metastore client facade.

Bundles the connection manager, the directory lock and the directory store
behind one object:

    async with await MetaStore.open(["10.0.0.1:9221"], "10.0.0.2:6379", "gw-1", 10000) as store:
        await store.add_user(User(user_id="u1", display_name="alice"))
        users = await store.list_users()
"""

from typing import List, Optional, Sequence

from metastore.config.settings import MetaStoreSettings, get_settings
from metastore.infrastructure.concurrency import DEFAULT_LOCK_KEY, LockCoordinator
from metastore.infrastructure.logging import configure_logging, get_logger
from metastore.infrastructure.persistence import ConnectionManager, DirectoryStore
from metastore.infrastructure.redis_client import DEFAULT_CONNECT_TIMEOUT, RedisClientFactory
from metastore.models import User

logger = get_logger(__name__)


class MetaStore:
    """Metadata-store client for the object-user directory."""

    def __init__(self, connection: ConnectionManager, lock: LockCoordinator):
        self.connection = connection
        self.lock = lock
        self.directory = DirectoryStore(connection, lock)

    @classmethod
    async def open(
        cls,
        cluster_addresses: Sequence[str],
        kv_address: str,
        lock_identity: str,
        lock_lease_ms: int,
        *,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        retry_interval: float = 0.5,
        lock_key: str = DEFAULT_LOCK_KEY,
        cluster_factory=None,
        redis_factory=None,
        sleep=None,
    ) -> "MetaStore":
        """Connect both backing stores and wire up the directory components."""
        connection = await ConnectionManager.open(
            cluster_addresses,
            kv_address,
            lock_identity,
            lock_lease_ms,
            connect_timeout=connect_timeout,
            cluster_factory=cluster_factory,
            redis_factory=redis_factory,
        )
        lock_kwargs = {"lock_key": lock_key, "retry_interval": retry_interval}
        if sleep is not None:
            lock_kwargs["sleep"] = sleep
        logger.info("metastore.opened", lock_identity=lock_identity, lock_lease_ms=lock_lease_ms)
        return cls(connection, LockCoordinator(connection, **lock_kwargs))

    @classmethod
    async def from_settings(
        cls, settings: Optional[MetaStoreSettings] = None, **factories
    ) -> "MetaStore":
        """Open a client from ``MetaStoreSettings`` (environment by default)."""
        settings = settings or get_settings()
        configure_logging(settings.logging.log_level.value, settings.logging.log_json)

        kv = settings.kv
        if "redis_factory" not in factories:
            password = kv.kv_password.get_secret_value() if kv.kv_password else None

            def redis_factory(host, port, timeout):
                return RedisClientFactory.create_client(
                    host, port, connect_timeout=timeout, password=password, db=kv.kv_db
                )

            factories["redis_factory"] = redis_factory

        return await cls.open(
            settings.cluster.cluster_addresses,
            kv.kv_address,
            settings.lock.lock_identity,
            settings.lock.lock_lease_ms,
            connect_timeout=kv.kv_connect_timeout,
            retry_interval=settings.lock.lock_retry_ms / 1000.0,
            **factories,
        )

    async def add_user(self, user: User) -> None:
        await self.directory.add_user(user)

    async def list_users(self) -> List[User]:
        return await self.directory.list_users()

    async def close(self) -> None:
        await self.connection.close()

    async def __aenter__(self) -> "MetaStore":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
