"""
Repository Interfaces

Defines the persistence contracts the margin engine depends on. Implementations
live in the infrastructure layer; use cases only see these protocols.
"""

# Standard library imports
from abc import abstractmethod
from typing import Protocol
from uuid import UUID

from margin_engine.domain.entities import Account, PortfolioPosition, Trade, TradeStatus


class IAccountRepository(Protocol):
    """One margin account per user."""

    @abstractmethod
    async def get_account(self, user_id: str) -> Account | None:
        """Load the account for ``user_id``, or None if it has not been provisioned."""
        ...

    @abstractmethod
    async def get_account_for_update(self, user_id: str) -> Account | None:
        """
        Load the account and lock it for the rest of the transaction.

        Backends without row locks may fall back to a plain read; the version
        check on update still catches concurrent writers.
        """
        ...

    @abstractmethod
    async def save_account(self, account: Account) -> Account:
        """
        Insert a newly provisioned account.

        Raises:
            DuplicateEntityError: If the user already has an account
        """
        ...

    @abstractmethod
    async def update_account(self, account: Account) -> Account:
        """
        Persist account changes if its version is still current.

        The stored version is incremented and written back to ``account``.

        Raises:
            AccountNotFoundError: If the account does not exist
            StaleDataException: If another writer updated the account first
        """
        ...


class ITradeRepository(Protocol):
    """Append-only trade/order history."""

    @abstractmethod
    async def save_trade(self, trade: Trade) -> Trade:
        """
        Insert a new trade.

        Raises:
            DuplicateEntityError: If a trade with the same id exists
        """
        ...

    @abstractmethod
    async def get_trade_by_id(self, trade_id: UUID) -> Trade | None:
        ...

    @abstractmethod
    async def update_trade(self, trade: Trade) -> Trade:
        """
        Persist a status transition (close or cancel).

        Raises:
            TradeNotFoundError: If the trade does not exist
        """
        ...

    @abstractmethod
    async def get_trades_by_user(
        self, user_id: str, status: TradeStatus | None = None
    ) -> list[Trade]:
        """Trades for ``user_id``, newest first, optionally filtered by status."""
        ...

    @abstractmethod
    async def get_open_trades(self, user_id: str) -> list[Trade]:
        ...


class IPortfolioRepository(Protocol):
    """Weighted-average portfolio entries keyed by (user_id, asset_symbol)."""

    @abstractmethod
    async def get_position(self, user_id: str, asset_symbol: str) -> PortfolioPosition | None:
        ...

    @abstractmethod
    async def get_positions(self, user_id: str) -> list[PortfolioPosition]:
        ...

    @abstractmethod
    async def save_position(self, position: PortfolioPosition) -> PortfolioPosition:
        """
        Insert a new entry or update an existing one under version control.

        Raises:
            StaleDataException: If the stored version differs from ``position.version``
        """
        ...

    @abstractmethod
    async def delete_position(self, user_id: str, asset_symbol: str) -> bool:
        """Delete the entry; returns False if nothing was stored for the key."""
        ...
