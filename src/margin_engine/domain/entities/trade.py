"""
Trade Entity - An order and, once executed, the position it opened
"""

from __future__ import annotations

# Standard library imports
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from ..exceptions_trading import OrderStateConflictException


class TradeDirection(Enum):
    """Trade direction enumeration"""

    BUY = "buy"
    SELL = "sell"


class OrderType(Enum):
    """Order type enumeration"""

    MARKET = "market"
    LIMIT = "limit"
    STOP = "stop"

    @property
    def is_entry(self) -> bool:
        """Limit and stop orders wait for a trigger price."""
        return self is not OrderType.MARKET


class TradeStatus(Enum):
    """Trade status enumeration"""

    PENDING = "pending"
    OPEN = "open"
    CLOSED = "closed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (TradeStatus.CLOSED, TradeStatus.CANCELLED)


@dataclass
class TradeRequest:
    """Parameters for creating a trade."""

    user_id: str
    symbol: str
    asset_class: str
    direction: TradeDirection
    units: Decimal
    price: Decimal
    order_type: OrderType = OrderType.MARKET
    asset_name: str | None = None
    stop_loss: Decimal | None = None
    take_profit: Decimal | None = None
    expiration_date: datetime | None = None


@dataclass
class Trade:
    """
    Trade entity representing an order and the position it opens.

    Rows are append-only history: a trade is created at placement and only
    ever moves forward through its status (pending -> cancelled, or
    open -> closed). ``margin_required`` is recorded at execution so the
    close releases exactly what the open reserved.
    """

    # Identity
    id: UUID = field(default_factory=uuid4)
    user_id: str = ""

    # Instrument
    symbol: str = ""
    asset_name: str = ""
    asset_class: str = ""

    # Order
    direction: TradeDirection = TradeDirection.BUY
    units: Decimal = Decimal("0")
    price_per_unit: Decimal = Decimal("0")
    order_type: OrderType = OrderType.MARKET
    status: TradeStatus = TradeStatus.PENDING

    # Risk levels and entry order expiry, stored but not enforced here
    stop_loss: Decimal | None = None
    take_profit: Decimal | None = None
    expiration_date: datetime | None = None

    margin_required: Decimal = Decimal("0")

    # Timestamps
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    executed_at: datetime | None = None
    closed_at: datetime | None = None

    # Settlement
    close_price: Decimal | None = None
    pnl: Decimal | None = None

    # Metadata
    tags: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate trade after initialization"""
        self._validate()

    def _validate(self) -> None:
        """Validate trade attributes"""
        if not self.user_id:
            raise ValueError("Trade user_id cannot be empty")

        if not self.symbol or not self.symbol.strip():
            raise ValueError("Trade symbol cannot be empty")

        if self.units <= 0:
            raise ValueError(f"Trade units must be positive, got {self.units}")

        if self.price_per_unit <= 0:
            raise ValueError(f"Trade price must be positive, got {self.price_per_unit}")

        if self.stop_loss is not None and self.stop_loss <= 0:
            raise ValueError(f"Stop loss must be positive, got {self.stop_loss}")

        if self.take_profit is not None and self.take_profit <= 0:
            raise ValueError(f"Take profit must be positive, got {self.take_profit}")

        if self.margin_required < 0:
            raise ValueError("Margin required cannot be negative")

        if self.status == TradeStatus.OPEN and self.margin_required <= 0:
            raise ValueError("Open trade must carry the margin reserved for it")

    @classmethod
    def create_market_order(cls, request: TradeRequest, margin_required: Decimal) -> Trade:
        """Factory method for a market order executed immediately at ``request.price``."""
        now = datetime.now(UTC)
        return cls(
            user_id=request.user_id,
            symbol=request.symbol.strip(),
            asset_name=request.asset_name or request.symbol.strip(),
            asset_class=request.asset_class,
            direction=request.direction,
            units=request.units,
            price_per_unit=request.price,
            order_type=OrderType.MARKET,
            status=TradeStatus.OPEN,
            stop_loss=request.stop_loss,
            take_profit=request.take_profit,
            margin_required=margin_required,
            created_at=now,
            executed_at=now,
        )

    @classmethod
    def create_entry_order(cls, request: TradeRequest) -> Trade:
        """Factory method for a limit or stop order left pending at its trigger price.

        Raises:
            ValueError: If the request is a market order
        """
        if not request.order_type.is_entry:
            raise ValueError("Entry orders must be limit or stop orders")

        return cls(
            user_id=request.user_id,
            symbol=request.symbol.strip(),
            asset_name=request.asset_name or request.symbol.strip(),
            asset_class=request.asset_class,
            direction=request.direction,
            units=request.units,
            price_per_unit=request.price,
            order_type=request.order_type,
            status=TradeStatus.PENDING,
            stop_loss=request.stop_loss,
            take_profit=request.take_profit,
            expiration_date=request.expiration_date,
        )

    @property
    def total_amount(self) -> Decimal:
        """Notional value at entry, always ``units * price_per_unit``."""
        return self.units * self.price_per_unit

    @property
    def is_open(self) -> bool:
        return self.status == TradeStatus.OPEN

    @property
    def is_pending(self) -> bool:
        return self.status == TradeStatus.PENDING

    def cancel(self, reason: str | None = None) -> None:
        """Cancel a pending order.

        Raises:
            OrderStateConflictException: If the order is not pending
        """
        if self.status != TradeStatus.PENDING:
            raise OrderStateConflictException(self.id, self.status.value, "cancel")

        self.status = TradeStatus.CANCELLED
        self.closed_at = datetime.now(UTC)
        if reason:
            self.tags["cancel_reason"] = reason

    def close(self, exit_price: Decimal, pnl: Decimal, reason: str | None = None) -> None:
        """Settle an open trade at ``exit_price``.

        Raises:
            OrderStateConflictException: If the trade is not open
        """
        if self.status != TradeStatus.OPEN:
            raise OrderStateConflictException(self.id, self.status.value, "close")
        if exit_price <= 0:
            raise ValueError(f"Close price must be positive, got {exit_price}")

        self.status = TradeStatus.CLOSED
        self.close_price = exit_price
        self.pnl = pnl
        self.closed_at = datetime.now(UTC)
        if reason:
            self.tags["close_reason"] = reason

    def __str__(self) -> str:
        return (
            f"{self.direction.value.upper()} {self.units} {self.symbol} @ "
            f"{self.price_per_unit} ({self.order_type.value}, {self.status.value})"
        )


# Status a trade must currently hold for a transition into the key status
TRANSITION_SOURCES: dict[TradeStatus, TradeStatus] = {
    TradeStatus.CLOSED: TradeStatus.OPEN,
    TradeStatus.CANCELLED: TradeStatus.PENDING,
}
