"""
Database Connection Management

Owns the psycopg3 async connection pool built from ``DatabaseConfig``.
"""

# Standard library imports
import asyncio
import logging

# Third-party imports
import psycopg
from psycopg_pool import AsyncConnectionPool

# Local imports
from margin_engine.application.config import DatabaseConfig
from margin_engine.application.interfaces.exceptions import ConnectionError

logger = logging.getLogger(__name__)


class DatabaseConnection:
    """
    Database connection manager.

    Manages a single psycopg3 connection pool with retrying connect and
    orderly shutdown.
    """

    def __init__(
        self, config: DatabaseConfig, max_attempts: int = 3, retry_delay: float = 1.0
    ) -> None:
        self.config = config
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self._pool: AsyncConnectionPool | None = None

    @property
    def is_connected(self) -> bool:
        """Check if connection pool is active."""
        return self._pool is not None and not self._pool.closed

    @property
    def pool(self) -> AsyncConnectionPool:
        if self._pool is None:
            raise ConnectionError("Database pool is not connected")
        return self._pool

    async def connect(self) -> AsyncConnectionPool:
        """
        Open the connection pool, retrying with exponential backoff.

        Raises:
            ConnectionError: If connection fails after all attempts
        """
        if self.is_connected and self._pool is not None:
            return self._pool

        for attempt in range(self.max_attempts):
            try:
                logger.info(
                    f"Connecting to database (attempt {attempt + 1}/{self.max_attempts}): "
                    f"{self.config.host}:{self.config.port}/{self.config.database}"
                )
                self._pool = AsyncConnectionPool(
                    conninfo=self.config.dsn,
                    min_size=self.config.min_pool_size,
                    max_size=self.config.max_pool_size,
                    timeout=self.config.command_timeout,
                    open=False,
                )
                await self._pool.open(wait=True, timeout=self.config.command_timeout)
                logger.info(
                    f"Database connected. Pool size: "
                    f"{self.config.min_pool_size}-{self.config.max_pool_size}"
                )
                return self._pool

            except (TimeoutError, psycopg.OperationalError, OSError) as e:
                await self._close_pool()
                if attempt < self.max_attempts - 1:
                    delay = self.retry_delay * (2**attempt)
                    logger.warning(
                        f"Connection attempt {attempt + 1} failed: {e}. "
                        f"Retrying in {delay:.2f} seconds..."
                    )
                    await asyncio.sleep(delay)
                else:
                    logger.error(f"Failed to connect to database after {attempt + 1} attempts: {e}")
                    raise ConnectionError(
                        f"Failed to connect to database after {attempt + 1} attempts: {e}"
                    ) from e

        raise ConnectionError("Failed to establish database connection")

    async def disconnect(self) -> None:
        """Close database connection pool."""
        logger.info("Disconnecting from database...")
        await self._close_pool()

    async def _close_pool(self) -> None:
        if self._pool is not None and not self._pool.closed:
            await self._pool.close()
        self._pool = None

    def __str__(self) -> str:
        status = "connected" if self.is_connected else "disconnected"
        return (
            f"DatabaseConnection({self.config.host}:{self.config.port}/"
            f"{self.config.database}, {status})"
        )
