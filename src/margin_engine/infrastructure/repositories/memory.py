"""
In-Memory Unit of Work

Transactional in-memory persistence for tests and embedded use. Entities are
copied in and out of a shared ``InMemoryStore``; writes are staged per unit
of work and applied together at commit after re-checking that nothing they
depend on changed in the meantime.
"""

# Standard library imports
import asyncio
import logging
from copy import deepcopy
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID

# Local imports
from margin_engine.application.interfaces.exceptions import (
    AccountNotFoundError,
    DuplicateEntityError,
    TradeNotFoundError,
    TransactionAlreadyActiveError,
    TransactionNotActiveError,
)
from margin_engine.application.interfaces.repositories import (
    IAccountRepository,
    IPortfolioRepository,
    ITradeRepository,
)
from margin_engine.application.interfaces.unit_of_work import IUnitOfWork, IUnitOfWorkFactory
from margin_engine.domain.entities import (
    TRANSITION_SOURCES,
    Account,
    PortfolioPosition,
    Trade,
    TradeStatus,
)
from margin_engine.domain.exceptions import ConcurrencyException, StaleDataException
from margin_engine.domain.exceptions_trading import OrderStateConflictException

logger = logging.getLogger(__name__)

PositionKey = tuple[str, str]

_EPOCH = datetime.min.replace(tzinfo=UTC)


class InMemoryStore:
    """Committed state shared by every unit of work created over it."""

    def __init__(self) -> None:
        self.accounts: dict[str, Account] = {}
        self.trades: dict[UUID, Trade] = {}
        self.positions: dict[PositionKey, PortfolioPosition] = {}
        self.commit_lock = asyncio.Lock()

    def add_account(self, account: Account) -> Account:
        """Provision an account directly, outside any transaction."""
        if account.user_id in self.accounts:
            raise DuplicateEntityError("Account", account.user_id)
        self.accounts[account.user_id] = deepcopy(account)
        return account

    def clear(self) -> None:
        self.accounts.clear()
        self.trades.clear()
        self.positions.clear()


@dataclass
class _Stage:
    """Writes made by one transaction, plus the versions they were based on."""

    accounts: dict[str, Account] = field(default_factory=dict)
    account_base: dict[str, int | None] = field(default_factory=dict)
    new_trades: dict[UUID, Trade] = field(default_factory=dict)
    updated_trades: dict[UUID, Trade] = field(default_factory=dict)
    positions: dict[PositionKey, PortfolioPosition | None] = field(default_factory=dict)
    position_base: dict[PositionKey, int | None] = field(default_factory=dict)


class InMemoryAccountRepository(IAccountRepository):
    def __init__(self, uow: "InMemoryUnitOfWork") -> None:
        self._uow = uow

    def _current(self, user_id: str) -> Account | None:
        stage = self._uow._stage
        if stage is not None and user_id in stage.accounts:
            return stage.accounts[user_id]
        return self._uow.store.accounts.get(user_id)

    async def get_account(self, user_id: str) -> Account | None:
        return deepcopy(self._current(user_id))

    async def get_account_for_update(self, user_id: str) -> Account | None:
        # Serialization is provided by the caller's account lock and the commit check
        return deepcopy(self._current(user_id))

    async def save_account(self, account: Account) -> Account:
        stage = self._uow._require_stage()
        if self._current(account.user_id) is not None:
            raise DuplicateEntityError("Account", account.user_id)
        stage.account_base.setdefault(account.user_id, None)
        stage.accounts[account.user_id] = deepcopy(account)
        return account

    async def update_account(self, account: Account) -> Account:
        stage = self._uow._require_stage()
        current = self._current(account.user_id)
        if current is None:
            raise AccountNotFoundError(account.user_id)
        if current.version != account.version:
            raise StaleDataException("Account", account.user_id, account.version, current.version)

        if account.user_id not in stage.account_base:
            stored = self._uow.store.accounts.get(account.user_id)
            stage.account_base[account.user_id] = stored.version if stored else None
        account.version += 1
        stage.accounts[account.user_id] = deepcopy(account)
        return account


class InMemoryTradeRepository(ITradeRepository):
    def __init__(self, uow: "InMemoryUnitOfWork") -> None:
        self._uow = uow

    def _current(self, trade_id: UUID) -> Trade | None:
        stage = self._uow._stage
        if stage is not None:
            if trade_id in stage.updated_trades:
                return stage.updated_trades[trade_id]
            if trade_id in stage.new_trades:
                return stage.new_trades[trade_id]
        return self._uow.store.trades.get(trade_id)

    def _visible(self) -> list[Trade]:
        trades = dict(self._uow.store.trades)
        stage = self._uow._stage
        if stage is not None:
            trades.update(stage.new_trades)
            trades.update(stage.updated_trades)
        return list(trades.values())

    async def save_trade(self, trade: Trade) -> Trade:
        stage = self._uow._require_stage()
        if self._current(trade.id) is not None:
            raise DuplicateEntityError("Trade", trade.id)
        stage.new_trades[trade.id] = deepcopy(trade)
        return trade

    async def get_trade_by_id(self, trade_id: UUID) -> Trade | None:
        return deepcopy(self._current(trade_id))

    async def update_trade(self, trade: Trade) -> Trade:
        stage = self._uow._require_stage()
        current = self._current(trade.id)
        if current is None:
            raise TradeNotFoundError(trade.id)
        source = TRANSITION_SOURCES.get(trade.status)
        if source is None or current.status != source:
            verb = "cancel" if trade.status == TradeStatus.CANCELLED else "close"
            raise OrderStateConflictException(trade.id, current.status.value, verb)

        if trade.id in stage.new_trades:
            stage.new_trades[trade.id] = deepcopy(trade)
        else:
            stage.updated_trades[trade.id] = deepcopy(trade)
        return trade

    async def get_trades_by_user(
        self, user_id: str, status: TradeStatus | None = None
    ) -> list[Trade]:
        trades = [
            deepcopy(t)
            for t in self._visible()
            if t.user_id == user_id and (status is None or t.status == status)
        ]
        trades.sort(key=lambda t: t.created_at, reverse=True)
        return trades

    async def get_open_trades(self, user_id: str) -> list[Trade]:
        trades = [
            deepcopy(t)
            for t in self._visible()
            if t.user_id == user_id and t.status == TradeStatus.OPEN
        ]
        trades.sort(key=lambda t: t.executed_at or _EPOCH)
        return trades


class InMemoryPortfolioRepository(IPortfolioRepository):
    def __init__(self, uow: "InMemoryUnitOfWork") -> None:
        self._uow = uow

    def _current(self, key: PositionKey) -> PortfolioPosition | None:
        stage = self._uow._stage
        if stage is not None and key in stage.positions:
            return stage.positions[key]
        return self._uow.store.positions.get(key)

    def _record_base(self, stage: _Stage, key: PositionKey) -> None:
        if key not in stage.position_base:
            stored = self._uow.store.positions.get(key)
            stage.position_base[key] = stored.version if stored else None

    async def get_position(self, user_id: str, asset_symbol: str) -> PortfolioPosition | None:
        return deepcopy(self._current((user_id, asset_symbol)))

    async def get_positions(self, user_id: str) -> list[PortfolioPosition]:
        positions = {k: v for k, v in self._uow.store.positions.items() if k[0] == user_id}
        stage = self._uow._stage
        if stage is not None:
            positions.update({k: v for k, v in stage.positions.items() if k[0] == user_id})
        return [deepcopy(p) for _, p in sorted(positions.items()) if p is not None]

    async def save_position(self, position: PortfolioPosition) -> PortfolioPosition:
        stage = self._uow._require_stage()
        key = position.key
        current = self._current(key)
        self._record_base(stage, key)

        if current is not None:
            if current.id != position.id or current.version != position.version:
                raise StaleDataException(
                    "PortfolioPosition", position.id, position.version, current.version
                )
            position.version += 1

        stage.positions[key] = deepcopy(position)
        return position

    async def delete_position(self, user_id: str, asset_symbol: str) -> bool:
        stage = self._uow._require_stage()
        key = (user_id, asset_symbol)
        if self._current(key) is None:
            return False
        self._record_base(stage, key)
        stage.positions[key] = None
        return True


class InMemoryUnitOfWork(IUnitOfWork):
    """
    Unit of work over an ``InMemoryStore``.

    Reads see this transaction's own staged writes. Commit fails with
    ``StaleDataException`` or ``ConcurrencyException`` if another unit of
    work committed a conflicting change first; nothing is applied then.
    """

    def __init__(self, store: InMemoryStore) -> None:
        self.store = store
        self._stage: _Stage | None = None
        self.accounts = InMemoryAccountRepository(self)
        self.trades = InMemoryTradeRepository(self)
        self.portfolio = InMemoryPortfolioRepository(self)

    def _require_stage(self) -> _Stage:
        if self._stage is None:
            raise TransactionNotActiveError()
        return self._stage

    async def begin_transaction(self) -> None:
        if self._stage is not None:
            raise TransactionAlreadyActiveError()
        self._stage = _Stage()
        logger.debug("In-memory transaction started")

    async def commit(self) -> None:
        stage = self._require_stage()
        try:
            async with self.store.commit_lock:
                self._verify(stage)
                self._apply(stage)
        finally:
            self._stage = None
        logger.debug("In-memory transaction committed")

    async def rollback(self) -> None:
        if self._stage is None:
            logger.warning("No active transaction to rollback")
            return
        self._stage = None
        logger.debug("In-memory transaction rolled back")

    async def is_active(self) -> bool:
        return self._stage is not None

    def _verify(self, stage: _Stage) -> None:
        store = self.store
        for user_id, base in stage.account_base.items():
            stored = store.accounts.get(user_id)
            actual = stored.version if stored else None
            if actual != base:
                raise StaleDataException("Account", user_id, base or 0, actual)

        for key, base in stage.position_base.items():
            stored = store.positions.get(key)
            actual = stored.version if stored else None
            if actual != base:
                raise StaleDataException("PortfolioPosition", "/".join(key), base or 0, actual)

        for trade_id, trade in stage.updated_trades.items():
            stored = store.trades.get(trade_id)
            if stored is None or stored.status != TRANSITION_SOURCES.get(trade.status):
                raise ConcurrencyException(
                    f"Trade {trade_id} changed status concurrently",
                    entity_type="Trade",
                    entity_id=trade_id,
                    operation="update",
                )

        for trade_id in stage.new_trades:
            if trade_id in store.trades:
                raise DuplicateEntityError("Trade", trade_id)

    def _apply(self, stage: _Stage) -> None:
        store = self.store
        store.accounts.update(stage.accounts)
        store.trades.update(stage.new_trades)
        store.trades.update(stage.updated_trades)
        for key, position in stage.positions.items():
            if position is None:
                store.positions.pop(key, None)
            else:
                store.positions[key] = position

    async def __aenter__(self) -> "InMemoryUnitOfWork":
        await self.begin_transaction()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._stage is None:
            return
        if exc_type is None:
            await self.commit()
        else:
            await self.rollback()


class InMemoryUnitOfWorkFactory(IUnitOfWorkFactory):
    """Creates units of work over one shared store."""

    def __init__(self, store: InMemoryStore | None = None) -> None:
        self.store = store or InMemoryStore()

    def create_unit_of_work(self) -> InMemoryUnitOfWork:
        return InMemoryUnitOfWork(self.store)
