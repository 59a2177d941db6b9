"""
PostgreSQL Database Adapter

Provides async database operations using psycopg3 for the margin engine.
Handles connection management, query execution, and error handling.
"""

# Standard library imports
import builtins
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

# Third-party imports
import psycopg
from psycopg import AsyncConnection
from psycopg.rows import Row, dict_row
from psycopg_pool import AsyncConnectionPool

# Local imports
from margin_engine.application.interfaces.exceptions import (
    ConnectionError,
    IntegrityError,
    RepositoryError,
    TransactionError,
)

logger = logging.getLogger(__name__)


class PostgreSQLAdapter:
    """
    PostgreSQL database adapter using psycopg3.

    Provides high-level database operations with error handling,
    connection management, and transaction support. While a transaction is
    active every query runs on the transaction's connection.
    """

    def __init__(self, pool: AsyncConnectionPool) -> None:
        """
        Initialize adapter with connection pool.

        Args:
            pool: psycopg3 async connection pool
        """
        self._pool = pool
        self._connection_cm: Any | None = None
        self._connection: AsyncConnection | None = None
        self._transaction: psycopg.AsyncTransaction | None = None

    @property
    def pool(self) -> AsyncConnectionPool:
        """Get the connection pool."""
        return self._pool

    @property
    def has_active_transaction(self) -> bool:
        """Check if there's an active transaction."""
        return self._transaction is not None

    @asynccontextmanager
    async def acquire_connection(self) -> AsyncGenerator[AsyncConnection, None]:
        """
        Acquire a database connection from the pool.

        Raises:
            ConnectionError: If connection cannot be acquired
        """
        if self._connection:
            # Use existing connection if in transaction
            yield self._connection
            return

        try:
            async with self._pool.connection() as connection:
                yield connection
        except psycopg.OperationalError as e:
            logger.error(f"Failed to acquire connection: {e}")
            raise ConnectionError(f"Failed to acquire database connection: {e}") from e
        except builtins.TimeoutError as e:
            logger.error(f"Connection acquisition timed out: {e}")
            raise ConnectionError("Timed out acquiring a database connection") from e

    async def execute_query(self, query: str, *args: Any) -> str:
        """
        Execute a SQL query that doesn't return data.

        Returns:
            Status string ``"EXECUTE <rowcount>"``

        Raises:
            IntegrityError: If a constraint is violated
            RepositoryError: If query execution fails
        """
        try:
            async with self.acquire_connection() as conn, conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(query, args)
                result = f"EXECUTE {cur.rowcount}"
                logger.debug(f"Query executed: {query[:100]}... | Result: {result}")
                return result
        except psycopg.IntegrityError as e:
            logger.error(f"Integrity constraint violated: {e} | Query: {query[:100]}...")
            constraint = getattr(getattr(e, "diag", None), "constraint_name", None) or "unknown"
            raise IntegrityError(constraint, str(e)) from e
        except psycopg.Error as e:
            logger.error(f"Query execution failed: {e} | Query: {query[:100]}...")
            raise RepositoryError(f"Query execution failed: {e}", e) from e

    async def fetch_one(self, query: str, *args: Any) -> Row | None:
        """
        Fetch a single record from the database.

        Raises:
            RepositoryError: If query execution fails
        """
        try:
            async with self.acquire_connection() as conn, conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(query, args)
                result = await cur.fetchone()
                logger.debug(f"Fetch one query: {query[:100]}... | Found: {result is not None}")
                return result
        except psycopg.Error as e:
            logger.error(f"Fetch one failed: {e} | Query: {query[:100]}...")
            raise RepositoryError(f"Fetch one query failed: {e}", e) from e

    async def fetch_all(self, query: str, *args: Any) -> list[Row]:
        """
        Fetch all records from the database.

        Raises:
            RepositoryError: If query execution fails
        """
        try:
            async with self.acquire_connection() as conn, conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(query, args)
                result = await cur.fetchall()
                logger.debug(f"Fetch all query: {query[:100]}... | Count: {len(result)}")
                return result
        except psycopg.Error as e:
            logger.error(f"Fetch all failed: {e} | Query: {query[:100]}...")
            raise RepositoryError(f"Fetch all query failed: {e}", e) from e

    async def begin_transaction(self) -> None:
        """
        Begin a database transaction.

        Raises:
            TransactionError: If transaction cannot be started
        """
        if self.has_active_transaction:
            raise TransactionError("Transaction is already active")

        try:
            if not self._connection:
                self._connection_cm = self._pool.connection()
                self._connection = await self._connection_cm.__aenter__()

            self._transaction = self._connection.transaction()
            await self._transaction.__aenter__()
            logger.debug("Transaction started")

        except psycopg.OperationalError as e:
            logger.error(f"Failed to start transaction: {e}")
            await self._cleanup_transaction()
            raise TransactionError(f"Failed to start transaction: {e}") from e

    async def commit_transaction(self) -> None:
        """
        Commit the current transaction.

        Raises:
            TransactionError: If commit fails or no active transaction
        """
        if self._transaction is None:
            raise TransactionError("No active transaction to commit")

        try:
            await self._transaction.__aexit__(None, None, None)
            logger.debug("Transaction committed")
        except psycopg.Error as e:
            logger.error(f"Failed to commit transaction: {e}")
            raise TransactionError(f"Failed to commit transaction: {e}") from e
        finally:
            await self._cleanup_transaction()

    async def rollback_transaction(self) -> None:
        """
        Rollback the current transaction.

        Raises:
            TransactionError: If rollback fails
        """
        if self._transaction is None:
            logger.warning("No active transaction to rollback")
            return

        try:
            # psycopg rolls back when the transaction block exits with an exception
            await self._transaction.__aexit__(psycopg.Rollback, psycopg.Rollback(), None)
            logger.debug("Transaction rolled back")
        except psycopg.Error as e:
            logger.error(f"Failed to rollback transaction: {e}")
            raise TransactionError(f"Failed to rollback transaction: {e}") from e
        finally:
            await self._cleanup_transaction()

    async def _cleanup_transaction(self) -> None:
        """Return the transaction's connection to the pool."""
        if self._connection_cm is not None:
            try:
                await self._connection_cm.__aexit__(None, None, None)
            except psycopg.Error as e:
                logger.warning(f"Failed to release connection: {e}")
            finally:
                self._connection_cm = None

        self._connection = None
        self._transaction = None

    def __str__(self) -> str:
        """String representation of the adapter."""
        pool_info = f"Pool(max_size={self._pool.max_size})"
        tx_info = "with active transaction" if self.has_active_transaction else "no transaction"
        return f"PostgreSQLAdapter({pool_info}, {tx_info})"
