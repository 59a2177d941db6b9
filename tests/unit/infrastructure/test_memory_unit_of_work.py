"""Unit tests for the in-memory unit of work."""

from decimal import Decimal

import pytest

from margin_engine.application.interfaces.exceptions import (
    DuplicateEntityError,
    TransactionAlreadyActiveError,
    TransactionNotActiveError,
)
from margin_engine.domain.entities import Account, PortfolioPosition, TradeStatus
from margin_engine.domain.exceptions import ConcurrencyException, StaleDataException
from margin_engine.domain.exceptions_trading import OrderStateConflictException
from margin_engine.infrastructure.repositories import InMemoryStore, InMemoryUnitOfWork


def make_position(**overrides):
    fields = {
        "user_id": "user-1",
        "asset_symbol": "EURUSD",
        "units": Decimal("1000"),
        "average_price": Decimal("1.1"),
        "current_price": Decimal("1.1"),
    }
    fields.update(overrides)
    return PortfolioPosition(**fields)


class TestStore:
    """Test InMemoryStore provisioning."""

    def test_add_account_copies(self, store, account):
        store.add_account(account)
        account.balance = Decimal("1")

        assert store.accounts["user-1"].balance == Decimal("10000")

    def test_duplicate_account(self, store, account):
        store.add_account(account)

        with pytest.raises(DuplicateEntityError):
            store.add_account(account)


class TestTransactions:
    """Test staging, commit and rollback."""

    @pytest.mark.asyncio
    async def test_writes_invisible_until_commit(self, funded_store, open_trade):
        uow = InMemoryUnitOfWork(funded_store)
        await uow.begin_transaction()

        await uow.trades.save_trade(open_trade)

        assert await uow.trades.get_trade_by_id(open_trade.id) is not None
        assert open_trade.id not in funded_store.trades

        await uow.commit()

        assert open_trade.id in funded_store.trades
        assert await uow.is_active() is False

    @pytest.mark.asyncio
    async def test_rollback_discards(self, funded_store, open_trade):
        uow = InMemoryUnitOfWork(funded_store)
        await uow.begin_transaction()
        await uow.trades.save_trade(open_trade)
        await uow.portfolio.save_position(make_position())

        await uow.rollback()

        assert funded_store.trades == {}
        assert funded_store.positions == {}

    @pytest.mark.asyncio
    async def test_context_manager_rolls_back_on_error(self, funded_store, open_trade):
        with pytest.raises(RuntimeError):
            async with InMemoryUnitOfWork(funded_store) as uow:
                await uow.trades.save_trade(open_trade)
                raise RuntimeError("boom")

        assert funded_store.trades == {}

    @pytest.mark.asyncio
    async def test_context_manager_commits(self, funded_store, open_trade):
        async with InMemoryUnitOfWork(funded_store) as uow:
            await uow.trades.save_trade(open_trade)

        assert open_trade.id in funded_store.trades

    @pytest.mark.asyncio
    async def test_write_outside_transaction(self, funded_store, open_trade):
        uow = InMemoryUnitOfWork(funded_store)

        with pytest.raises(TransactionNotActiveError):
            await uow.trades.save_trade(open_trade)

    @pytest.mark.asyncio
    async def test_double_begin(self, store):
        uow = InMemoryUnitOfWork(store)
        await uow.begin_transaction()

        with pytest.raises(TransactionAlreadyActiveError):
            await uow.begin_transaction()

    @pytest.mark.asyncio
    async def test_rollback_without_transaction_is_noop(self, store):
        await InMemoryUnitOfWork(store).rollback()

    @pytest.mark.asyncio
    async def test_reads_return_copies(self, funded_store):
        uow = InMemoryUnitOfWork(funded_store)
        account = await uow.accounts.get_account("user-1")
        account.balance = Decimal("0")

        assert funded_store.accounts["user-1"].balance == Decimal("10000")


class TestAccounts:
    """Test account versioning."""

    @pytest.mark.asyncio
    async def test_update_bumps_version(self, funded_store):
        async with InMemoryUnitOfWork(funded_store) as uow:
            account = await uow.accounts.get_account_for_update("user-1")
            account.reserve_margin(Decimal("5"))
            await uow.accounts.update_account(account)

        stored = funded_store.accounts["user-1"]
        assert stored.version == 2
        assert stored.used_margin == Decimal("5")

    @pytest.mark.asyncio
    async def test_stale_update_rejected(self, funded_store):
        uow = InMemoryUnitOfWork(funded_store)
        await uow.begin_transaction()
        account = await uow.accounts.get_account_for_update("user-1")
        account.version = 7

        with pytest.raises(StaleDataException):
            await uow.accounts.update_account(account)

    @pytest.mark.asyncio
    async def test_concurrent_commit_detected(self, funded_store):
        first = InMemoryUnitOfWork(funded_store)
        second = InMemoryUnitOfWork(funded_store)
        await first.begin_transaction()
        await second.begin_transaction()

        for uow, amount in ((first, Decimal("5")), (second, Decimal("7"))):
            account = await uow.accounts.get_account_for_update("user-1")
            account.reserve_margin(amount)
            await uow.accounts.update_account(account)

        await first.commit()
        with pytest.raises(StaleDataException):
            await second.commit()

        assert funded_store.accounts["user-1"].used_margin == Decimal("5")
        assert await second.is_active() is False

    @pytest.mark.asyncio
    async def test_save_new_account(self, store):
        async with InMemoryUnitOfWork(store) as uow:
            await uow.accounts.save_account(Account(user_id="new", balance=Decimal("1")))

        assert store.accounts["new"].balance == Decimal("1")


class TestTrades:
    """Test conditional trade transitions."""

    @pytest.mark.asyncio
    async def test_cancel_twice_conflicts(self, funded_store, pending_trade):
        funded_store.trades[pending_trade.id] = pending_trade

        uow = InMemoryUnitOfWork(funded_store)
        await uow.begin_transaction()
        trade = await uow.trades.get_trade_by_id(pending_trade.id)
        trade.cancel()
        await uow.trades.update_trade(trade)

        again = await uow.trades.get_trade_by_id(pending_trade.id)
        again.status = TradeStatus.CANCELLED
        with pytest.raises(OrderStateConflictException):
            await uow.trades.update_trade(again)

    @pytest.mark.asyncio
    async def test_concurrent_status_change_detected(self, funded_store, open_trade):
        funded_store.trades[open_trade.id] = open_trade
        first = InMemoryUnitOfWork(funded_store)
        second = InMemoryUnitOfWork(funded_store)

        for uow in (first, second):
            await uow.begin_transaction()
            trade = await uow.trades.get_trade_by_id(open_trade.id)
            trade.close(Decimal("1.2"), Decimal("100"))
            await uow.trades.update_trade(trade)

        await first.commit()
        with pytest.raises(ConcurrencyException):
            await second.commit()

    @pytest.mark.asyncio
    async def test_listing(self, funded_store, open_trade, pending_trade):
        funded_store.trades[open_trade.id] = open_trade
        funded_store.trades[pending_trade.id] = pending_trade
        uow = InMemoryUnitOfWork(funded_store)

        assert [t.id for t in await uow.trades.get_open_trades("user-1")] == [open_trade.id]
        pending = await uow.trades.get_trades_by_user("user-1", TradeStatus.PENDING)
        assert [t.id for t in pending] == [pending_trade.id]
        assert len(await uow.trades.get_trades_by_user("user-1")) == 2
        assert await uow.trades.get_trades_by_user("someone-else") == []

    @pytest.mark.asyncio
    async def test_duplicate_trade(self, funded_store, open_trade):
        funded_store.trades[open_trade.id] = open_trade
        uow = InMemoryUnitOfWork(funded_store)
        await uow.begin_transaction()

        with pytest.raises(DuplicateEntityError):
            await uow.trades.save_trade(open_trade)


class TestPortfolio:
    """Test portfolio entry versioning."""

    @pytest.mark.asyncio
    async def test_save_and_delete(self, store):
        async with InMemoryUnitOfWork(store) as uow:
            await uow.portfolio.save_position(make_position())

        assert ("user-1", "EURUSD") in store.positions

        async with InMemoryUnitOfWork(store) as uow:
            assert await uow.portfolio.delete_position("user-1", "EURUSD") is True
            assert await uow.portfolio.get_position("user-1", "EURUSD") is None
            assert await uow.portfolio.delete_position("user-1", "EURUSD") is False

        assert store.positions == {}

    @pytest.mark.asyncio
    async def test_concurrent_first_open_detected(self, store):
        first = InMemoryUnitOfWork(store)
        second = InMemoryUnitOfWork(store)
        await first.begin_transaction()
        await second.begin_transaction()

        await first.portfolio.save_position(make_position())
        await second.portfolio.save_position(make_position())

        await first.commit()
        with pytest.raises(StaleDataException):
            await second.commit()

    @pytest.mark.asyncio
    async def test_stale_entry_rejected(self, store):
        async with InMemoryUnitOfWork(store) as uow:
            await uow.portfolio.save_position(make_position())

        uow = InMemoryUnitOfWork(store)
        await uow.begin_transaction()
        position = await uow.portfolio.get_position("user-1", "EURUSD")
        position.version = 5

        with pytest.raises(StaleDataException):
            await uow.portfolio.save_position(position)

    @pytest.mark.asyncio
    async def test_get_positions_sorted(self, store):
        async with InMemoryUnitOfWork(store) as uow:
            await uow.portfolio.save_position(make_position(asset_symbol="USDJPY"))
            await uow.portfolio.save_position(make_position(asset_symbol="AUDUSD"))

        uow = InMemoryUnitOfWork(store)
        symbols = [p.asset_symbol for p in await uow.portfolio.get_positions("user-1")]
        assert symbols == ["AUDUSD", "USDJPY"]
