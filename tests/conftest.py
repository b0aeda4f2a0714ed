"""Shared pytest fixtures for metastore tests."""

from typing import List, Tuple

import pytest
import pytest_asyncio

import fakeredis

from metastore.infrastructure.concurrency import LockCoordinator
from metastore.infrastructure.persistence import ConnectionManager, DirectoryStore


def _raw_reply(response, **options):
    return response


def make_fake_redis(server: "fakeredis.FakeServer"):
    """Fake Redis handle configured like RedisClientFactory.create_client."""
    client = fakeredis.aioredis.FakeRedis(server=server, decode_responses=True)
    client.set_response_callback("HGETALL", _raw_reply)
    return client


class FakeCluster:
    """Stand-in for the data-cluster client."""

    def __init__(self, meta_nodes: List[Tuple[str, int]], connect_timeout: float, fail: bool = False):
        self.meta_nodes = meta_nodes
        self.connect_timeout = connect_timeout
        self.fail = fail
        self.connected = False
        self.closed = False

    async def connect(self):
        if self.fail:
            raise ConnectionError("meta nodes unreachable")
        self.connected = True

    async def close(self):
        self.closed = True


class RecordingSleep:
    """Injectable sleep that records intervals and runs a hook per call."""

    def __init__(self, hook=None):
        self.calls = []
        self.hook = hook

    async def __call__(self, seconds):
        self.calls.append(seconds)
        if self.hook is not None:
            await self.hook(len(self.calls))


@pytest.fixture
def fake_server():
    return fakeredis.FakeServer()


@pytest.fixture
def clusters():
    """Every FakeCluster built by the cluster factory fixture."""
    return []


@pytest.fixture
def cluster_factory(clusters):
    def factory(meta_nodes, connect_timeout):
        cluster = FakeCluster(meta_nodes, connect_timeout)
        clusters.append(cluster)
        return cluster
    return factory


@pytest.fixture
def redis_factory(fake_server):
    def factory(host, port, timeout):
        return make_fake_redis(fake_server)
    return factory


@pytest.fixture
def fake_redis_maker(fake_server):
    """Builds extra handles onto the shared fake server."""
    return lambda: make_fake_redis(fake_server)


@pytest.fixture
def fake_cluster_class():
    return FakeCluster


@pytest_asyncio.fixture
async def connect(cluster_factory, redis_factory):
    """Opens ConnectionManagers against the shared fake server; closes them afterwards."""
    opened = []

    async def _connect(identity="client-a", lease_ms=10000):
        conn = await ConnectionManager.open(
            ["127.0.0.1:9221"],
            "127.0.0.1:6379",
            identity,
            lease_ms,
            cluster_factory=cluster_factory,
            redis_factory=redis_factory,
        )
        opened.append(conn)
        return conn

    yield _connect
    for conn in opened:
        await conn.close()


@pytest_asyncio.fixture
async def connection(connect):
    return await connect()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def lock(connection, sleep):
    return LockCoordinator(connection, sleep=sleep)


@pytest.fixture
def directory(connection, lock):
    return DirectoryStore(connection, lock)
