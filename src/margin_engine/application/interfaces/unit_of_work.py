"""
Unit of Work Interface

Defines the contract for managing transactions across multiple repositories.
Every open, close and cancel runs inside one unit of work so the trade,
account and portfolio writes are applied together or not at all.
"""

# Standard library imports
from abc import abstractmethod
from typing import Protocol

from .repositories import IAccountRepository, IPortfolioRepository, ITradeRepository


class IUnitOfWork(Protocol):
    """
    Unit of Work interface for transaction management.

    Provides atomic operations across multiple repositories.
    """

    # Repository access
    accounts: IAccountRepository
    trades: ITradeRepository
    portfolio: IPortfolioRepository

    @abstractmethod
    async def begin_transaction(self) -> None:
        """
        Begin a new transaction.

        Raises:
            TransactionAlreadyActiveError: If a transaction is already active
        """
        ...

    @abstractmethod
    async def commit(self) -> None:
        """
        Commit the current transaction.

        Raises:
            TransactionNotActiveError: If no transaction is active
            TransactionCommitError: If commit fails
            StaleDataException: If a versioned row changed since it was read
        """
        ...

    @abstractmethod
    async def rollback(self) -> None:
        """
        Rollback the current transaction, discarding every write made in it.

        Raises:
            TransactionRollbackError: If rollback fails
        """
        ...

    @abstractmethod
    async def is_active(self) -> bool:
        """Check if a transaction is currently active."""
        ...

    @abstractmethod
    async def __aenter__(self) -> "IUnitOfWork":
        """Begin a transaction and return self."""
        ...

    @abstractmethod
    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Commit a transaction the body left open, or roll back on exception."""
        ...


class IUnitOfWorkFactory(Protocol):
    """
    Factory interface for creating Unit of Work instances.

    Allows for different implementations (e.g., for testing vs production).
    """

    @abstractmethod
    def create_unit_of_work(self) -> IUnitOfWork:
        """
        Create a new Unit of Work instance.

        Raises:
            FactoryError: If Unit of Work cannot be created
        """
        ...
