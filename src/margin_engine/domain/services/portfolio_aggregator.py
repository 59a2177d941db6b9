"""Portfolio Aggregator - Weighted-average cost ledger per (account, symbol)."""

import logging
from datetime import UTC, datetime
from decimal import Decimal

from ..constants import POSITION_EPSILON
from ..entities.portfolio_position import PortfolioPosition
from ..entities.trade import Trade
from .pnl_calculator import PnlCalculator

logger = logging.getLogger(__name__)


class PortfolioAggregator:
    """Merges executed trades into portfolio entries and reduces them on close.

    Units are accumulated per symbol regardless of trade direction; the entry
    keeps the direction of the trade that created it.
    """

    def __init__(self, epsilon: Decimal = POSITION_EPSILON) -> None:
        self.epsilon = epsilon

    def create_position(self, trade: Trade) -> PortfolioPosition:
        return PortfolioPosition(
            user_id=trade.user_id,
            asset_symbol=trade.symbol,
            asset_name=trade.asset_name or trade.symbol,
            market_type=trade.asset_class,
            direction=trade.direction,
            units=trade.units,
            average_price=trade.price_per_unit,
            current_price=trade.price_per_unit,
        )

    def merge_open(
        self, position: PortfolioPosition, new_units: Decimal, new_price: Decimal
    ) -> PortfolioPosition:
        """Add units at ``new_price``, re-weighting the average price."""
        if new_units <= 0:
            raise ValueError(f"Units to merge must be positive, got {new_units}")

        total_units = position.units + new_units
        position.average_price = self.weighted_average_price(
            position.units, position.average_price, new_units, new_price
        )
        position.units = total_units
        self._mark(position, new_price)
        return position

    def apply_open(self, position: PortfolioPosition | None, trade: Trade) -> PortfolioPosition:
        """Merge an executed trade into the existing entry, creating it on first open."""
        if position is None:
            return self.create_position(trade)
        return self.merge_open(position, trade.units, trade.price_per_unit)

    def reduce_on_close(
        self, position: PortfolioPosition, closed_units: Decimal, current_price: Decimal
    ) -> PortfolioPosition | None:
        """Remove ``closed_units`` from the entry.

        Returns None when the residual is within epsilon of zero and the entry
        should be deleted. The average price is never recomputed here.
        """
        if closed_units <= 0:
            raise ValueError(f"Units to close must be positive, got {closed_units}")

        remaining = position.units - closed_units
        if abs(remaining) < self.epsilon:
            return None
        if remaining < 0:
            logger.warning(
                f"Closing {closed_units} {position.asset_symbol} exceeds the "
                f"{position.units} held in the portfolio, removing the entry",
                extra={"user_id": position.user_id, "symbol": position.asset_symbol},
            )
            return None

        position.units = remaining
        self._mark(position, current_price)
        return position

    def mark_to_market(self, position: PortfolioPosition, price: Decimal) -> PortfolioPosition:
        self._mark(position, price)
        return position

    @staticmethod
    def weighted_average_price(
        old_units: Decimal, old_price: Decimal, new_units: Decimal, new_price: Decimal
    ) -> Decimal:
        total_units = old_units + new_units
        return (old_price * old_units + new_price * new_units) / total_units

    @staticmethod
    def _mark(position: PortfolioPosition, price: Decimal) -> None:
        result = PnlCalculator.calculate(
            position.direction, position.average_price, price, position.units
        )
        position.current_price = price
        position.pnl = result.pnl
        position.pnl_percentage = result.pnl_percentage
        position.updated_at = datetime.now(UTC)
