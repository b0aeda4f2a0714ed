"""Tests for LockCoordinator: lease lock acquisition, identity-checked release."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from metastore.exceptions import LockCancelledError, StoreIOError
from metastore.infrastructure.concurrency import DEFAULT_LOCK_KEY, LockCoordinator


class TestAcquireRelease:

    @pytest.mark.asyncio
    async def test_acquire_sets_identity_with_lease(self, lock, connection):
        await lock.acquire()

        assert await connection.redis.get(DEFAULT_LOCK_KEY) == "client-a"
        pttl = await connection.redis.pttl(DEFAULT_LOCK_KEY)
        assert 0 < pttl <= 10000

    @pytest.mark.asyncio
    async def test_release_after_acquire_succeeds(self, lock, connection):
        await lock.acquire()

        assert await lock.release() is True
        assert await connection.redis.exists(DEFAULT_LOCK_KEY) == 0

    @pytest.mark.asyncio
    async def test_release_without_acquire_is_noop_success(self, lock):
        assert await lock.release() is False

    @pytest.mark.asyncio
    async def test_release_by_other_identity_keeps_lock(self, lock, connect):
        await lock.acquire()
        other = LockCoordinator(await connect(identity="client-b"))

        assert await other.release() is False
        assert await lock.holder() == "client-a"

    @pytest.mark.asyncio
    async def test_is_locked(self, lock):
        assert await lock.is_locked() is False
        await lock.acquire()
        assert await lock.is_locked() is True


class TestContention:

    @pytest.mark.asyncio
    async def test_second_client_waits_for_release(self, lock, connect, sleep):
        await lock.acquire()
        holders_seen = []

        async def hook(call_number):
            holders_seen.append(await lock.holder())
            if call_number == 3:
                await lock.release()

        sleep_b = type(sleep)(hook)
        lock_b = LockCoordinator(await connect(identity="client-b"), sleep=sleep_b)

        await lock_b.acquire()

        assert sleep_b.calls == [0.5, 0.5, 0.5]
        # never both holders: client-a kept the lock until it released
        assert holders_seen == ["client-a", "client-a", "client-a"]
        assert await lock_b.holder() == "client-b"
        assert await lock.release() is False

    @pytest.mark.asyncio
    async def test_second_client_acquires_after_lease_expires(self, connect, sleep):
        lock_a = LockCoordinator(await connect(identity="client-a", lease_ms=100))
        await lock_a.acquire()

        async def hook(call_number):
            await asyncio.sleep(0.05)

        lock_b = LockCoordinator(await connect(identity="client-b"), sleep=type(sleep)(hook))
        await asyncio.wait_for(lock_b.acquire(), timeout=5)

        assert await lock_b.holder() == "client-b"
        # client-a's lease ran out; its late release must not remove client-b's lock
        assert await lock_a.release() is False
        assert await lock_b.holder() == "client-b"


class TestCancellation:

    @pytest.mark.asyncio
    async def test_preset_event_skips_attempt(self, lock):
        event = asyncio.Event()
        event.set()

        with pytest.raises(LockCancelledError):
            await lock.acquire(event)
        assert await lock.holder() is None

    @pytest.mark.asyncio
    async def test_event_set_while_waiting(self, lock, connect, sleep):
        await lock.acquire()
        event = asyncio.Event()

        async def hook(call_number):
            if call_number == 2:
                event.set()

        sleep_b = type(sleep)(hook)
        lock_b = LockCoordinator(await connect(identity="client-b"), sleep=sleep_b)

        with pytest.raises(LockCancelledError):
            await lock_b.acquire(event)
        assert len(sleep_b.calls) == 2
        assert await lock.holder() == "client-a"

    @pytest.mark.asyncio
    async def test_task_cancellation_interrupts_wait(self, lock, connect):
        await lock.acquire()
        lock_b = LockCoordinator(await connect(identity="client-b"), retry_interval=0.01)

        task = asyncio.create_task(lock_b.acquire())
        await asyncio.sleep(0.05)
        assert not task.done()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert await lock.holder() == "client-a"


class TestFailures:

    @pytest.mark.asyncio
    async def test_acquire_transport_failure(self, lock, connection, fake_server, sleep):
        fake_server.connected = False

        with pytest.raises(StoreIOError, match="Lock"):
            await lock.acquire()
        assert not connection.is_healthy
        assert sleep.calls == []

    @pytest.mark.asyncio
    async def test_acquire_while_unreachable_reports_reconnect(self, lock, connection, fake_server):
        fake_server.connected = False
        await connection.mark_unhealthy()

        with pytest.raises(StoreIOError, match="Reconnect"):
            await lock.acquire()

    @pytest.mark.asyncio
    async def test_acquire_reconnects_lazily(self, lock, connection):
        await connection.mark_unhealthy()

        await lock.acquire()
        assert connection.is_healthy
        assert await lock.holder() == "client-a"

    @pytest.mark.asyncio
    async def test_release_transport_failure(self, lock, connection, fake_server):
        await lock.acquire()
        fake_server.connected = False

        with pytest.raises(StoreIOError, match="UnLock"):
            await lock.release()
        assert not connection.is_healthy


class TestHeldContext:

    @pytest.mark.asyncio
    async def test_releases_on_exit(self, lock):
        async with lock.held():
            assert await lock.holder() == "client-a"
        assert await lock.holder() is None

    @pytest.mark.asyncio
    async def test_releases_on_error_while_healthy(self, lock):
        with pytest.raises(RuntimeError):
            async with lock.held():
                raise RuntimeError("boom")
        assert await lock.holder() is None

    @pytest.mark.asyncio
    async def test_failed_release_keeps_original_error(self, lock, connection, fake_server):
        with pytest.raises(RuntimeError, match="boom"):
            async with lock.held():
                fake_server.connected = False
                raise RuntimeError("boom")
        assert not connection.is_healthy

    @pytest.mark.asyncio
    async def test_release_error_does_not_replace_block_error(self, lock):
        lock.release = AsyncMock(side_effect=StoreIOError("UnLock"))
        with pytest.raises(ValueError, match="bad input"):
            async with lock.held():
                raise ValueError("bad input")
        lock.release.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_leaves_lock_to_lease_when_connection_broken(self, lock, connection):
        with pytest.raises(StoreIOError):
            async with lock.held():
                await connection.mark_unhealthy()
                raise StoreIOError("AddUser::DEL")
        # release was not attempted, so the lock is still there
        assert await lock.holder() == "client-a"
