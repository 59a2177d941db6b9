"""Pure domain services for margin accounting."""

from .account_metrics_aggregator import AccountMetricsAggregator
from .leverage_table import LeverageRule, LeverageTable
from .margin_calculator import MarginCalculator
from .pnl_calculator import PnlCalculator, PnlResult
from .portfolio_aggregator import PortfolioAggregator

__all__ = [
    "AccountMetricsAggregator",
    "LeverageRule",
    "LeverageTable",
    "MarginCalculator",
    "PnlCalculator",
    "PnlResult",
    "PortfolioAggregator",
]
