"""Domain entities."""

from .account import Account
from .portfolio_position import PortfolioPosition
from .trade import (
    TRANSITION_SOURCES,
    OrderType,
    Trade,
    TradeDirection,
    TradeRequest,
    TradeStatus,
)

__all__ = [
    "Account",
    "OrderType",
    "PortfolioPosition",
    "Trade",
    "TradeDirection",
    "TradeRequest",
    "TradeStatus",
    "TRANSITION_SOURCES",
]
