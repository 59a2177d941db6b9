"""Application services."""

from .account_lock_service import AccountLockService
from .trading_engine import TradingEngine

__all__ = ["AccountLockService", "TradingEngine"]
