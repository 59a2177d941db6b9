"""
Trading-specific exceptions for order placement, settlement and margin checks.
"""

from decimal import Decimal
from typing import Any
from uuid import UUID

from .exceptions import DomainException


class TradingException(DomainException):
    """Base exception for all trading-related errors."""

    pass


class OrderException(TradingException):
    """Base exception for order-related errors."""

    def __init__(
        self,
        message: str,
        order_id: UUID | str | None = None,
        symbol: str | None = None,
        **kwargs: Any,
    ) -> None:
        details = {"order_id": str(order_id)} if order_id else {}
        if symbol:
            details["symbol"] = symbol
        details.update(kwargs)
        super().__init__(message, details)
        self.order_id = order_id
        self.symbol = symbol


class InsufficientFundsException(OrderException):
    """Raised when available funds do not cover the margin an order requires."""

    def __init__(
        self,
        required_amount: Decimal,
        available_amount: Decimal,
        order_id: UUID | str | None = None,
        symbol: str | None = None,
    ) -> None:
        message = (
            f"Insufficient funds: required margin {required_amount}, "
            f"available {available_amount}"
        )
        super().__init__(
            message,
            order_id=order_id,
            symbol=symbol,
            required_amount=str(required_amount),
            available_amount=str(available_amount),
        )
        self.required_amount = required_amount
        self.available_amount = available_amount


class OrderStateConflictException(OrderException):
    """Raised when a transition is attempted from a status that does not allow it."""

    def __init__(
        self,
        order_id: UUID | str,
        current_status: str,
        operation: str,
    ) -> None:
        message = f"Cannot {operation} order {order_id} with status {current_status}"
        super().__init__(
            message,
            order_id=order_id,
            current_status=current_status,
            operation=operation,
        )
        self.current_status = current_status
        self.operation = operation


class UnknownAssetClassWarning(TradingException):
    """Informational: an asset class is not in the leverage table and the fallback rule applies.

    Never raised to callers; carried in log records and response metadata.
    """

    def __init__(self, asset_class: str, fallback_margin_rate: Decimal) -> None:
        message = (
            f"Unknown asset class {asset_class!r}, "
            f"applying fallback margin rate {fallback_margin_rate}"
        )
        super().__init__(
            message,
            {"asset_class": asset_class, "fallback_margin_rate": str(fallback_margin_rate)},
        )
        self.asset_class = asset_class
        self.fallback_margin_rate = fallback_margin_rate
