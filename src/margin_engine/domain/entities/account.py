"""
Account Entity - Margin account ledger for one user
"""

from __future__ import annotations

# Standard library imports
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal

from ..constants import DEFAULT_CURRENCY, ZERO
from ..exceptions_trading import InsufficientFundsException


@dataclass
class Account:
    """
    Margin account entity.

    Tracks realized cash (``balance``), the running counter of margin reserved
    by open trades (``used_margin``) and the funds still available for new
    margin. At rest ``available_funds == balance - used_margin``; equity and
    free margin add the unrealized P&L of a live price snapshot on top.
    """

    user_id: str = ""
    balance: Decimal = ZERO
    used_margin: Decimal = ZERO
    # Derived from balance and used margin when omitted
    available_funds: Decimal = None  # type: ignore[assignment]
    realized_pnl: Decimal = ZERO
    margin_call_level: Decimal = Decimal("100")
    currency: str = DEFAULT_CURRENCY

    # Optimistic locking
    version: int = 1

    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.available_funds is None:
            self.available_funds = self.balance - self.used_margin
        self._validate()

    def _validate(self) -> None:
        if not self.user_id:
            raise ValueError("Account user_id cannot be empty")
        if self.used_margin < 0:
            raise ValueError(f"Used margin cannot be negative, got {self.used_margin}")
        if self.margin_call_level <= 0:
            raise ValueError(f"Margin call level must be positive, got {self.margin_call_level}")

    def equity(self, unrealized_pnl: Decimal = ZERO) -> Decimal:
        """Balance plus the unrealized P&L of open positions."""
        return self.balance + unrealized_pnl

    def free_margin(self, unrealized_pnl: Decimal = ZERO) -> Decimal:
        """Equity minus used margin."""
        return self.equity(unrealized_pnl) - self.used_margin

    def can_reserve(self, amount: Decimal) -> bool:
        return self.available_funds >= amount

    def reserve_margin(self, amount: Decimal, symbol: str | None = None) -> None:
        """Move ``amount`` from available funds into used margin.

        Raises:
            InsufficientFundsException: If available funds do not cover the amount
        """
        if amount <= 0:
            raise ValueError(f"Margin to reserve must be positive, got {amount}")
        if not self.can_reserve(amount):
            raise InsufficientFundsException(
                required_amount=amount,
                available_amount=self.available_funds,
                symbol=symbol,
            )

        self.used_margin += amount
        self.available_funds -= amount
        self._touch()

    def settle_close(self, released_margin: Decimal, pnl: Decimal) -> None:
        """Release margin reserved at open and book the realized P&L.

        A losing close may leave available funds negative; closing is never refused.
        """
        if released_margin < 0:
            raise ValueError(f"Released margin cannot be negative, got {released_margin}")
        if released_margin > self.used_margin:
            raise ValueError(
                f"Cannot release {released_margin}, only {self.used_margin} margin is in use"
            )

        self.used_margin -= released_margin
        self.available_funds += released_margin + pnl
        self.balance += pnl
        self.realized_pnl += pnl
        self._touch()

    def _touch(self) -> None:
        self.updated_at = datetime.now(UTC)

    def __str__(self) -> str:
        return (
            f"Account({self.user_id}: balance={self.balance}, "
            f"used_margin={self.used_margin}, available={self.available_funds})"
        )
