"""Unit tests for AccountLockService."""

import asyncio

import pytest

from margin_engine.application.services import AccountLockService
from margin_engine.domain.exceptions import PessimisticLockException


class TestAccountLockService:
    """Test per-account locking."""

    @pytest.mark.asyncio
    async def test_lock_held_inside_block(self):
        service = AccountLockService()

        async with service.lock("user-1"):
            assert service.is_locked("user-1") is True

        assert service.is_locked("user-1") is False

    def test_unknown_account_is_not_locked(self):
        assert AccountLockService().is_locked("nobody") is False

    @pytest.mark.asyncio
    async def test_released_on_error(self):
        service = AccountLockService()

        with pytest.raises(RuntimeError):
            async with service.lock("user-1"):
                raise RuntimeError("boom")

        assert service.is_locked("user-1") is False

    @pytest.mark.asyncio
    async def test_timeout_raises(self):
        service = AccountLockService(timeout=0.01)

        async with service.lock("user-1"):
            with pytest.raises(PessimisticLockException) as exc_info:
                async with service.lock("user-1"):
                    pass

        assert exc_info.value.timeout == 0.01
        assert exc_info.value.entity_id == "user-1"

    @pytest.mark.asyncio
    async def test_per_call_timeout_overrides_default(self):
        service = AccountLockService(timeout=60)

        async with service.lock("user-1"):
            with pytest.raises(PessimisticLockException):
                async with service.lock("user-1", timeout=0.01):
                    pass

    @pytest.mark.asyncio
    async def test_accounts_do_not_block_each_other(self):
        service = AccountLockService(timeout=0.01)

        async with service.lock("user-1"):
            async with service.lock("user-2"):
                assert service.is_locked("user-2") is True

    @pytest.mark.asyncio
    async def test_serializes_same_account(self):
        service = AccountLockService()
        events = []

        async def worker(name):
            async with service.lock("user-1"):
                events.append(f"{name}-start")
                await asyncio.sleep(0.01)
                events.append(f"{name}-end")

        await asyncio.gather(worker("a"), worker("b"))

        assert events in (
            ["a-start", "a-end", "b-start", "b-end"],
            ["b-start", "b-end", "a-start", "a-end"],
        )

    @pytest.mark.asyncio
    async def test_idle_accounts_are_pruned(self):
        service = AccountLockService()

        for index in range(50):
            async with service.lock(f"user-{index}"):
                assert service.tracked_accounts == 1

        assert service.tracked_accounts == 0

    @pytest.mark.asyncio
    async def test_entry_kept_while_waiters_remain(self):
        service = AccountLockService()
        holder_in = asyncio.Event()
        release = asyncio.Event()

        async def holder():
            async with service.lock("user-1"):
                holder_in.set()
                await release.wait()

        async def waiter():
            async with service.lock("user-1"):
                assert service.is_locked("user-1") is True

        holder_task = asyncio.create_task(holder())
        await holder_in.wait()
        waiter_task = asyncio.create_task(waiter())
        await asyncio.sleep(0)
        release.set()
        await asyncio.gather(holder_task, waiter_task)

        assert service.tracked_accounts == 0

    @pytest.mark.asyncio
    async def test_timed_out_waiter_is_pruned(self):
        service = AccountLockService(timeout=0.01)

        async with service.lock("user-1"):
            with pytest.raises(PessimisticLockException):
                async with service.lock("user-1"):
                    pass
            assert service.tracked_accounts == 1

        assert service.tracked_accounts == 0
