"""
PostgreSQL Portfolio Repository Implementation

Weighted-average portfolio entries keyed by (user_id, asset_symbol), with
optimistic locking on a version column.
"""

# Standard library imports
import logging
from typing import Any

# Local imports
from margin_engine.application.interfaces.exceptions import RepositoryError
from margin_engine.application.interfaces.repositories import IPortfolioRepository
from margin_engine.domain.entities import PortfolioPosition, TradeDirection
from margin_engine.domain.exceptions import StaleDataException
from margin_engine.infrastructure.database.adapter import PostgreSQLAdapter

from ._rows import affected_rows

logger = logging.getLogger(__name__)

_COLUMNS = """
    id, user_id, asset_symbol, asset_name, market_type, direction, units,
    average_price, current_price, pnl, pnl_percentage, version, created_at, updated_at
"""


class PostgreSQLPortfolioRepository(IPortfolioRepository):
    """
    PostgreSQL implementation of IPortfolioRepository.

    Implements optimistic locking with version numbers for concurrent safety.
    """

    def __init__(self, adapter: PostgreSQLAdapter) -> None:
        self.adapter = adapter

    async def get_position(self, user_id: str, asset_symbol: str) -> PortfolioPosition | None:
        record = await self.adapter.fetch_one(
            f"SELECT {_COLUMNS} FROM portfolio_positions "
            "WHERE user_id = %s AND asset_symbol = %s FOR UPDATE",
            user_id,
            asset_symbol,
        )
        return self._map_record_to_position(record) if record else None

    async def get_positions(self, user_id: str) -> list[PortfolioPosition]:
        records = await self.adapter.fetch_all(
            f"SELECT {_COLUMNS} FROM portfolio_positions WHERE user_id = %s ORDER BY asset_symbol",
            user_id,
        )
        return [self._map_record_to_position(r) for r in records]

    async def save_position(self, position: PortfolioPosition) -> PortfolioPosition:
        """Insert on first open; otherwise update if the version is still current."""
        exists = await self.adapter.fetch_one(
            "SELECT version FROM portfolio_positions WHERE id = %s", position.id
        )
        if exists is None:
            return await self._insert_position(position)

        expected_version = position.version
        result = await self.adapter.execute_query(
            """
            UPDATE portfolio_positions SET
                units = %s, average_price = %s, current_price = %s, total_value = %s,
                pnl = %s, pnl_percentage = %s, version = version + 1, updated_at = %s
            WHERE id = %s AND version = %s
            """,
            position.units,
            position.average_price,
            position.current_price,
            position.total_value,
            position.pnl,
            position.pnl_percentage,
            position.updated_at,
            position.id,
            expected_version,
        )
        if affected_rows(result) == 0:
            raise StaleDataException(
                "PortfolioPosition", position.id, expected_version, exists["version"]
            )

        position.version = expected_version + 1
        logger.debug(
            f"Updated portfolio entry {position.asset_symbol} for {position.user_id} "
            f"to version {position.version}"
        )
        return position

    async def delete_position(self, user_id: str, asset_symbol: str) -> bool:
        result = await self.adapter.execute_query(
            "DELETE FROM portfolio_positions WHERE user_id = %s AND asset_symbol = %s",
            user_id,
            asset_symbol,
        )
        deleted = affected_rows(result) > 0
        if deleted:
            logger.debug(f"Deleted portfolio entry {asset_symbol} for {user_id}")
        return deleted

    async def _insert_position(self, position: PortfolioPosition) -> PortfolioPosition:
        await self.adapter.execute_query(
            """
            INSERT INTO portfolio_positions (
                id, user_id, asset_symbol, asset_name, market_type, direction, units,
                average_price, current_price, total_value, pnl, pnl_percentage,
                version, created_at, updated_at
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            """,
            position.id,
            position.user_id,
            position.asset_symbol,
            position.asset_name,
            position.market_type,
            position.direction.value,
            position.units,
            position.average_price,
            position.current_price,
            position.total_value,
            position.pnl,
            position.pnl_percentage,
            position.version,
            position.created_at,
            position.updated_at,
        )
        logger.debug(f"Inserted portfolio entry {position.asset_symbol} for {position.user_id}")
        return position

    def _map_record_to_position(self, record: dict[str, Any]) -> PortfolioPosition:
        try:
            return PortfolioPosition(
                id=record["id"],
                user_id=record["user_id"],
                asset_symbol=record["asset_symbol"],
                asset_name=record["asset_name"],
                market_type=record["market_type"],
                direction=TradeDirection(record["direction"]),
                units=record["units"],
                average_price=record["average_price"],
                current_price=record["current_price"],
                pnl=record["pnl"],
                pnl_percentage=record["pnl_percentage"],
                version=record["version"],
                created_at=record["created_at"],
                updated_at=record["updated_at"],
            )
        except (KeyError, ValueError) as e:
            raise RepositoryError(f"Corrupt portfolio record: {e}", e) from e
