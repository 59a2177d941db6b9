"""Account Metrics Aggregator - Equity, margin usage and margin-call state."""

from collections.abc import Iterable, Mapping
from decimal import Decimal

from ..constants import PERCENT, ZERO
from ..entities.account import Account
from ..entities.portfolio_position import PortfolioPosition
from ..entities.trade import Trade, TradeDirection
from ..value_objects.account_metrics import AccountMetrics
from .pnl_calculator import PnlCalculator

Exposure = Trade | PortfolioPosition


class AccountMetricsAggregator:
    """Derives account-level risk metrics from an account and its open exposure.

    Exposure items may be open trades (entry price = cost basis) or portfolio
    entries (average price = cost basis). Symbols missing from the price
    snapshot are valued at their cost basis and contribute no P&L.
    """

    def __init__(self, margin_warning_multiplier: Decimal = Decimal("1.5")) -> None:
        self.margin_warning_multiplier = margin_warning_multiplier

    def compute_metrics(
        self,
        account: Account,
        positions: Iterable[Exposure],
        live_prices: Mapping[str, Decimal],
    ) -> AccountMetrics:
        positions = list(positions)
        unrealized_pnl = self.compute_unrealized_pnl(positions, live_prices)
        equity = account.equity(unrealized_pnl)
        used_margin = account.used_margin
        margin_level = self.calculate_margin_level(equity, used_margin)

        return AccountMetrics(
            balance=account.balance,
            equity=equity,
            used_margin=used_margin,
            free_margin=equity - used_margin,
            margin_level=margin_level,
            unrealized_pnl=unrealized_pnl,
            realized_pnl=account.realized_pnl,
            total_positions=len(positions),
            margin_call_level=account.margin_call_level,
            is_margin_call=self.is_margin_call(
                used_margin, margin_level, account.margin_call_level
            ),
            margin_warning_multiplier=self.margin_warning_multiplier,
        )

    @classmethod
    def compute_unrealized_pnl(
        cls, positions: Iterable[Exposure], live_prices: Mapping[str, Decimal]
    ) -> Decimal:
        total = ZERO
        for item in positions:
            symbol, direction, units, cost_price = cls._exposure(item)
            price = live_prices.get(symbol, cost_price)
            total += PnlCalculator.calculate_pnl(direction, cost_price, price, units)
        return total

    @staticmethod
    def calculate_margin_level(equity: Decimal, used_margin: Decimal) -> Decimal | None:
        """Equity as a percentage of used margin; None (unbounded) when no margin is used."""
        if used_margin == 0:
            return None
        return equity / used_margin * PERCENT

    @staticmethod
    def is_margin_call(
        used_margin: Decimal, margin_level: Decimal | None, margin_call_level: Decimal
    ) -> bool:
        if used_margin <= 0 or margin_level is None:
            return False
        return margin_level <= margin_call_level

    @staticmethod
    def _exposure(item: Exposure) -> tuple[str, TradeDirection, Decimal, Decimal]:
        if isinstance(item, Trade):
            return item.symbol, item.direction, item.units, item.price_per_unit
        return item.asset_symbol, item.direction, item.units, item.average_price
