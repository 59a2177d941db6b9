"""
PortfolioPosition Entity - Weighted-average ledger entry per (account, symbol)
"""

from __future__ import annotations

# Standard library imports
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from .trade import TradeDirection


@dataclass
class PortfolioPosition:
    """
    Portfolio ledger entry for one symbol held by one account.

    ``average_price`` is the cost basis of the currently open units. It moves
    only when units are added; marking to market or partially reducing the
    position leaves it untouched.
    """

    id: UUID = field(default_factory=uuid4)
    user_id: str = ""
    asset_symbol: str = ""
    asset_name: str = ""
    market_type: str = ""

    # Direction of the first trade that opened the entry
    direction: TradeDirection = TradeDirection.BUY

    units: Decimal = Decimal("0")
    average_price: Decimal = Decimal("0")
    current_price: Decimal = Decimal("0")
    pnl: Decimal = Decimal("0")
    pnl_percentage: Decimal = Decimal("0")

    # Optimistic locking
    version: int = 1

    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        self._validate()

    def _validate(self) -> None:
        if not self.user_id:
            raise ValueError("Portfolio position user_id cannot be empty")
        if not self.asset_symbol:
            raise ValueError("Portfolio position symbol cannot be empty")
        if self.units <= 0:
            raise ValueError(f"Portfolio position units must be positive, got {self.units}")
        if self.average_price <= 0:
            raise ValueError(f"Average price must be positive, got {self.average_price}")

    @property
    def key(self) -> tuple[str, str]:
        return (self.user_id, self.asset_symbol)

    @property
    def total_value(self) -> Decimal:
        """Market value, always ``units * current_price``."""
        return self.units * self.current_price

    def __str__(self) -> str:
        return (
            f"PortfolioPosition({self.asset_symbol}: {self.units} @ avg {self.average_price}, "
            f"current {self.current_price})"
        )
