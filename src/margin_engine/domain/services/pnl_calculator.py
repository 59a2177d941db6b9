"""P&L Calculator - Realized and unrealized profit and loss."""

from dataclasses import dataclass
from decimal import Decimal

from ..constants import PERCENT, ZERO
from ..entities.trade import TradeDirection


@dataclass(frozen=True)
class PnlResult:
    pnl: Decimal
    pnl_percentage: Decimal


class PnlCalculator:
    """Direction-aware P&L for a position valued at an exit or live price."""

    @staticmethod
    def calculate_pnl(
        direction: TradeDirection | str,
        entry_price: Decimal,
        exit_price: Decimal,
        units: Decimal,
    ) -> Decimal:
        """Buy positions gain when price rises, sell positions when it falls."""
        if TradeDirection(direction) == TradeDirection.BUY:
            return (exit_price - entry_price) * units
        return (entry_price - exit_price) * units

    @staticmethod
    def calculate_pnl_percentage(pnl: Decimal, entry_price: Decimal, units: Decimal) -> Decimal:
        """P&L as a percentage of the entry notional; zero when there is no notional."""
        cost = units * entry_price
        if cost == 0:
            return ZERO
        return pnl / cost * PERCENT

    @classmethod
    def calculate(
        cls,
        direction: TradeDirection | str,
        entry_price: Decimal,
        exit_price: Decimal,
        units: Decimal,
    ) -> PnlResult:
        pnl = cls.calculate_pnl(direction, entry_price, exit_price, units)
        return PnlResult(pnl, cls.calculate_pnl_percentage(pnl, entry_price, units))
