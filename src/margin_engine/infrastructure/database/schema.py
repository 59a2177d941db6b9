"""
Database schema for the margin engine.

Monetary and unit columns are NUMERIC so values round-trip as Decimal.
"""

import logging

from .adapter import PostgreSQLAdapter

logger = logging.getLogger(__name__)

SCHEMA_STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS accounts (
        user_id TEXT PRIMARY KEY,
        balance NUMERIC(20, 8) NOT NULL DEFAULT 0,
        used_margin NUMERIC(20, 8) NOT NULL DEFAULT 0 CHECK (used_margin >= 0),
        available_funds NUMERIC(20, 8) NOT NULL DEFAULT 0,
        realized_pnl NUMERIC(20, 8) NOT NULL DEFAULT 0,
        margin_call_level NUMERIC(10, 4) NOT NULL DEFAULT 100,
        currency CHAR(3) NOT NULL DEFAULT 'USD',
        version INTEGER NOT NULL DEFAULT 1,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at TIMESTAMPTZ
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS trades (
        id UUID PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES accounts (user_id),
        symbol TEXT NOT NULL,
        asset_name TEXT NOT NULL,
        asset_class TEXT NOT NULL,
        direction TEXT NOT NULL CHECK (direction IN ('buy', 'sell')),
        units NUMERIC(24, 8) NOT NULL CHECK (units > 0),
        price_per_unit NUMERIC(24, 8) NOT NULL CHECK (price_per_unit > 0),
        order_type TEXT NOT NULL CHECK (order_type IN ('market', 'limit', 'stop')),
        status TEXT NOT NULL CHECK (status IN ('pending', 'open', 'closed', 'cancelled')),
        stop_loss NUMERIC(24, 8),
        take_profit NUMERIC(24, 8),
        expiration_date TIMESTAMPTZ,
        margin_required NUMERIC(20, 8) NOT NULL DEFAULT 0,
        created_at TIMESTAMPTZ NOT NULL,
        executed_at TIMESTAMPTZ,
        closed_at TIMESTAMPTZ,
        close_price NUMERIC(24, 8),
        pnl NUMERIC(20, 8),
        tags JSONB NOT NULL DEFAULT '{}'::jsonb
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_trades_user_status ON trades (user_id, status)",
    "CREATE INDEX IF NOT EXISTS idx_trades_user_created ON trades (user_id, created_at DESC)",
    """
    CREATE TABLE IF NOT EXISTS portfolio_positions (
        id UUID PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES accounts (user_id),
        asset_symbol TEXT NOT NULL,
        asset_name TEXT NOT NULL,
        market_type TEXT NOT NULL,
        direction TEXT NOT NULL,
        units NUMERIC(24, 8) NOT NULL CHECK (units > 0),
        average_price NUMERIC(24, 8) NOT NULL,
        current_price NUMERIC(24, 8) NOT NULL,
        total_value NUMERIC(24, 8) NOT NULL,
        pnl NUMERIC(20, 8) NOT NULL DEFAULT 0,
        pnl_percentage NUMERIC(12, 6) NOT NULL DEFAULT 0,
        version INTEGER NOT NULL DEFAULT 1,
        created_at TIMESTAMPTZ NOT NULL,
        updated_at TIMESTAMPTZ,
        UNIQUE (user_id, asset_symbol)
    )
    """,
)


async def apply_schema(adapter: PostgreSQLAdapter) -> None:
    """Create the tables and indexes if they do not exist."""
    for statement in SCHEMA_STATEMENTS:
        await adapter.execute_query(statement)
    logger.info(f"Applied {len(SCHEMA_STATEMENTS)} schema statements")
