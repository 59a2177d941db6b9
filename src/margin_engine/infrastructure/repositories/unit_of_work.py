"""
PostgreSQL Unit of Work Implementation

Concrete implementation of IUnitOfWork using PostgreSQL database.
Manages transactions across multiple repositories ensuring data consistency.
"""

# Standard library imports
import logging

# Local imports
from margin_engine.application.interfaces.exceptions import (
    FactoryError,
    TransactionAlreadyActiveError,
    TransactionCommitError,
    TransactionError,
    TransactionNotActiveError,
    TransactionRollbackError,
)
from margin_engine.application.interfaces.unit_of_work import IUnitOfWork, IUnitOfWorkFactory
from margin_engine.infrastructure.database.adapter import PostgreSQLAdapter
from margin_engine.infrastructure.database.connection import DatabaseConnection

from .account_repository import PostgreSQLAccountRepository
from .portfolio_repository import PostgreSQLPortfolioRepository
from .trade_repository import PostgreSQLTradeRepository

logger = logging.getLogger(__name__)


class PostgreSQLUnitOfWork(IUnitOfWork):
    """
    PostgreSQL implementation of IUnitOfWork.

    All three repositories share one adapter, so inside a transaction every
    read and write goes through the same connection.
    """

    def __init__(self, adapter: PostgreSQLAdapter) -> None:
        self.adapter = adapter
        self.accounts = PostgreSQLAccountRepository(adapter)
        self.trades = PostgreSQLTradeRepository(adapter)
        self.portfolio = PostgreSQLPortfolioRepository(adapter)

    async def begin_transaction(self) -> None:
        """
        Begin a new database transaction.

        Raises:
            TransactionError: If transaction cannot be started
        """
        if self.adapter.has_active_transaction:
            raise TransactionAlreadyActiveError()

        try:
            await self.adapter.begin_transaction()
            logger.debug("Unit of Work transaction started")
        except TransactionError:
            raise
        except Exception as e:
            logger.error(f"Failed to begin transaction: {e}")
            raise TransactionError(f"Failed to begin transaction: {e}") from e

    async def commit(self) -> None:
        """
        Commit the current transaction.

        Raises:
            TransactionNotActiveError: If no transaction is active
            TransactionCommitError: If commit fails
        """
        if not self.adapter.has_active_transaction:
            raise TransactionNotActiveError()

        try:
            await self.adapter.commit_transaction()
            logger.debug("Unit of Work transaction committed")
        except Exception as e:
            logger.error(f"Failed to commit transaction: {e}")
            raise TransactionCommitError(e) from e

    async def rollback(self) -> None:
        """
        Rollback the current transaction.

        Raises:
            TransactionRollbackError: If rollback fails
        """
        if not self.adapter.has_active_transaction:
            logger.warning("No active transaction to rollback")
            return

        try:
            await self.adapter.rollback_transaction()
            logger.debug("Unit of Work transaction rolled back")
        except Exception as e:
            logger.error(f"Failed to rollback transaction: {e}")
            raise TransactionRollbackError(e) from e

    async def is_active(self) -> bool:
        return self.adapter.has_active_transaction

    async def __aenter__(self) -> "PostgreSQLUnitOfWork":
        await self.begin_transaction()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if not self.adapter.has_active_transaction:
            return

        if exc_type is None:
            try:
                await self.commit()
            except Exception as commit_error:
                logger.error(f"Failed to commit in context manager: {commit_error}")
                await self.rollback()
                raise
        else:
            try:
                await self.rollback()
            except TransactionRollbackError as rollback_error:
                # Don't mask the original exception
                logger.error(f"Failed to rollback in context manager: {rollback_error}")


class PostgreSQLUnitOfWorkFactory(IUnitOfWorkFactory):
    """Creates units of work over a connected pool."""

    def __init__(self, connection: DatabaseConnection) -> None:
        self._connection = connection

    def create_unit_of_work(self) -> IUnitOfWork:
        """
        Create a new Unit of Work instance.

        Raises:
            FactoryError: If the database pool is not connected
        """
        if not self._connection.is_connected:
            raise FactoryError("PostgreSQLUnitOfWorkFactory", "Database is not connected")

        uow = PostgreSQLUnitOfWork(PostgreSQLAdapter(self._connection.pool))
        logger.debug("Created new PostgreSQL Unit of Work")
        return uow
