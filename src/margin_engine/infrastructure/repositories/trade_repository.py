"""
PostgreSQL Trade Repository Implementation

Append-only trade history. Status transitions are written conditionally on
the status the transition starts from, so a trade cannot be closed or
cancelled twice by concurrent writers.
"""

# Standard library imports
import logging
from typing import Any
from uuid import UUID

# Third-party imports
from psycopg.types.json import Jsonb

# Local imports
from margin_engine.application.interfaces.exceptions import (
    DuplicateEntityError,
    IntegrityError,
    RepositoryError,
    TradeNotFoundError,
)
from margin_engine.application.interfaces.repositories import ITradeRepository
from margin_engine.domain.entities import (
    TRANSITION_SOURCES,
    OrderType,
    Trade,
    TradeDirection,
    TradeStatus,
)
from margin_engine.domain.exceptions_trading import OrderStateConflictException
from margin_engine.infrastructure.database.adapter import PostgreSQLAdapter

from ._rows import affected_rows

logger = logging.getLogger(__name__)

_COLUMNS = """
    id, user_id, symbol, asset_name, asset_class, direction, units,
    price_per_unit, order_type, status, stop_loss, take_profit,
    expiration_date, margin_required, created_at, executed_at, closed_at,
    close_price, pnl, tags
"""


class PostgreSQLTradeRepository(ITradeRepository):
    """PostgreSQL implementation of ITradeRepository."""

    def __init__(self, adapter: PostgreSQLAdapter) -> None:
        self.adapter = adapter

    async def save_trade(self, trade: Trade) -> Trade:
        try:
            await self.adapter.execute_query(
                f"""
                INSERT INTO trades ({_COLUMNS})
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s,
                        %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                """,
                trade.id,
                trade.user_id,
                trade.symbol,
                trade.asset_name,
                trade.asset_class,
                trade.direction.value,
                trade.units,
                trade.price_per_unit,
                trade.order_type.value,
                trade.status.value,
                trade.stop_loss,
                trade.take_profit,
                trade.expiration_date,
                trade.margin_required,
                trade.created_at,
                trade.executed_at,
                trade.closed_at,
                trade.close_price,
                trade.pnl,
                Jsonb(trade.tags),
            )
        except IntegrityError as e:
            if "pkey" in e.constraint:
                raise DuplicateEntityError("Trade", trade.id) from e
            raise

        logger.debug(f"Inserted trade {trade.id}")
        return trade

    async def get_trade_by_id(self, trade_id: UUID) -> Trade | None:
        record = await self.adapter.fetch_one(
            f"SELECT {_COLUMNS} FROM trades WHERE id = %s", trade_id
        )
        return self._map_record_to_trade(record) if record else None

    async def update_trade(self, trade: Trade) -> Trade:
        source = TRANSITION_SOURCES.get(trade.status)
        if source is None:
            raise RepositoryError(
                f"Trade {trade.id} has no persistable transition into {trade.status.value}"
            )

        result = await self.adapter.execute_query(
            """
            UPDATE trades SET
                status = %s, closed_at = %s, close_price = %s, pnl = %s, tags = %s
            WHERE id = %s AND status = %s
            """,
            trade.status.value,
            trade.closed_at,
            trade.close_price,
            trade.pnl,
            Jsonb(trade.tags),
            trade.id,
            source.value,
        )

        if affected_rows(result) == 0:
            current = await self.adapter.fetch_one(
                "SELECT status FROM trades WHERE id = %s", trade.id
            )
            if current is None:
                raise TradeNotFoundError(trade.id)
            verb = "close" if trade.status == TradeStatus.CLOSED else "cancel"
            raise OrderStateConflictException(trade.id, current["status"], verb)

        logger.debug(f"Updated trade {trade.id} to {trade.status.value}")
        return trade

    async def get_trades_by_user(
        self, user_id: str, status: TradeStatus | None = None
    ) -> list[Trade]:
        if status is None:
            records = await self.adapter.fetch_all(
                f"SELECT {_COLUMNS} FROM trades WHERE user_id = %s ORDER BY created_at DESC",
                user_id,
            )
        else:
            records = await self.adapter.fetch_all(
                f"SELECT {_COLUMNS} FROM trades WHERE user_id = %s AND status = %s "
                "ORDER BY created_at DESC",
                user_id,
                status.value,
            )
        return [self._map_record_to_trade(r) for r in records]

    async def get_open_trades(self, user_id: str) -> list[Trade]:
        records = await self.adapter.fetch_all(
            f"SELECT {_COLUMNS} FROM trades WHERE user_id = %s AND status = %s "
            "ORDER BY executed_at",
            user_id,
            TradeStatus.OPEN.value,
        )
        return [self._map_record_to_trade(r) for r in records]

    def _map_record_to_trade(self, record: dict[str, Any]) -> Trade:
        try:
            return Trade(
                id=record["id"],
                user_id=record["user_id"],
                symbol=record["symbol"],
                asset_name=record["asset_name"],
                asset_class=record["asset_class"],
                direction=TradeDirection(record["direction"]),
                units=record["units"],
                price_per_unit=record["price_per_unit"],
                order_type=OrderType(record["order_type"]),
                status=TradeStatus(record["status"]),
                stop_loss=record["stop_loss"],
                take_profit=record["take_profit"],
                expiration_date=record["expiration_date"],
                margin_required=record["margin_required"],
                created_at=record["created_at"],
                executed_at=record["executed_at"],
                closed_at=record["closed_at"],
                close_price=record["close_price"],
                pnl=record["pnl"],
                tags=record["tags"] or {},
            )
        except (KeyError, ValueError) as e:
            raise RepositoryError(f"Corrupt trade record: {e}", e) from e
