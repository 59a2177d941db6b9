"""
AccountLockService - Per-account serialization of read-modify-write sequences

Every mutating engine call holds its account's lock for the whole unit of
work, so two orders for the same account never check funds against the same
stale balance. Locks are process-local; optimistic versioning in the
repositories covers writers in other processes.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from margin_engine.domain.exceptions import PessimisticLockException

logger = logging.getLogger(__name__)


class AccountLockService:
    """
    Application service handing out one asyncio lock per account.

    The registry itself is guarded so that concurrent first requests for
    an account end up sharing the same lock. An entry is dropped once the
    last holder or waiter leaves, so idle accounts cost nothing.
    """

    def __init__(self, timeout: float = 10.0) -> None:
        """Initialize the lock registry"""
        self.timeout = timeout
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}
        self._registry_lock = asyncio.Lock()

    async def _get_lock(self, user_id: str) -> asyncio.Lock:
        async with self._registry_lock:
            lock = self._locks.get(user_id)
            if lock is None:
                lock = asyncio.Lock()
                self._locks[user_id] = lock
            self._users[user_id] = self._users.get(user_id, 0) + 1
            return lock

    def _leave(self, user_id: str) -> None:
        # No await between read and write, so this cannot interleave with _get_lock
        remaining = self._users[user_id] - 1
        if remaining:
            self._users[user_id] = remaining
        else:
            del self._users[user_id]
            del self._locks[user_id]

    @asynccontextmanager
    async def lock(self, user_id: str, timeout: float | None = None) -> AsyncIterator[None]:
        """
        Hold the account's lock for the duration of the block.

        Args:
            user_id: Account owner
            timeout: Seconds to wait, defaults to the service timeout

        Raises:
            PessimisticLockException: If the lock is not acquired in time
        """
        wait = self.timeout if timeout is None else timeout
        account_lock = await self._get_lock(user_id)

        try:
            try:
                await asyncio.wait_for(account_lock.acquire(), timeout=wait)
            except TimeoutError as e:
                logger.warning(f"Timed out after {wait}s waiting for account lock {user_id}")
                raise PessimisticLockException("Account", user_id, wait) from e

            try:
                yield
            finally:
                account_lock.release()
        finally:
            self._leave(user_id)

    def is_locked(self, user_id: str) -> bool:
        lock = self._locks.get(user_id)
        return lock is not None and lock.locked()

    @property
    def tracked_accounts(self) -> int:
        """Number of accounts currently holding or waiting on a lock."""
        return len(self._locks)
