"""
Trading Use Cases

Implements the order lifecycle: placing market and entry orders, cancelling
pending orders and closing open positions. Each use case runs in one unit of
work, so the trade, account and portfolio writes commit together.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from margin_engine.application.interfaces.unit_of_work import IUnitOfWork
from margin_engine.domain.entities import (
    OrderType,
    Trade,
    TradeDirection,
    TradeRequest,
)
from margin_engine.domain.exceptions_trading import OrderStateConflictException
from margin_engine.domain.services import MarginCalculator, PnlCalculator, PortfolioAggregator
from margin_engine.domain.value_objects import Money

from ._decimal import label_value, positive_decimal_error, to_decimal
from .base import ErrorCode, TransactionalUseCase, UseCaseResponse
from .base_request import BaseRequestDTO

VALID_DIRECTIONS = {d.value for d in TradeDirection}
VALID_ORDER_TYPES = {t.value for t in OrderType}


# Request/Response DTOs
@dataclass
class PlaceOrderRequest(BaseRequestDTO):
    """Request to place a new order."""

    user_id: str
    symbol: str
    asset_class: str
    order_type: str  # "market", "limit" or "stop"
    direction: str  # "buy" or "sell"
    units: Decimal
    price: Decimal  # execution price for market orders, trigger price otherwise
    stop_loss: Decimal | None = None
    take_profit: Decimal | None = None
    asset_name: str | None = None
    expiration_date: datetime | None = None


@dataclass
class PlaceOrderResponse(UseCaseResponse):
    """Response from placing an order."""

    order_id: UUID | None = None
    execution_price: Decimal | None = None
    margin_required: Decimal | None = None
    status: str | None = None
    warnings: list[str] = field(default_factory=list)


@dataclass
class CancelOrderRequest(BaseRequestDTO):
    """Request to cancel a pending order."""

    user_id: str
    trade_id: UUID
    reason: str | None = None


@dataclass
class CancelOrderResponse(UseCaseResponse):
    """Response from cancelling an order."""

    status: str | None = None


@dataclass
class ClosePositionRequest(BaseRequestDTO):
    """Request to close an open position at a caller-supplied price."""

    user_id: str
    trade_id: UUID
    price: Decimal
    reason: str | None = None


@dataclass
class ClosePositionResponse(UseCaseResponse):
    """Response from closing a position."""

    close_price: Decimal | None = None
    pnl: Decimal | None = None
    pnl_percentage: Decimal | None = None
    margin_released: Decimal | None = None
    status: str | None = None


# Use Case Implementations
class PlaceOrderUseCase(TransactionalUseCase[PlaceOrderRequest, PlaceOrderResponse]):
    """
    Use case for placing orders.

    Market orders are checked against available funds, opened immediately,
    reserve their margin and merge into the portfolio. Limit and stop orders
    are recorded as pending with no funds check and no reservation.
    """

    response_class = PlaceOrderResponse

    def __init__(
        self,
        unit_of_work: IUnitOfWork,
        margin_calculator: MarginCalculator | None = None,
        portfolio_aggregator: PortfolioAggregator | None = None,
    ):
        """Initialize place order use case."""
        super().__init__(unit_of_work, "PlaceOrderUseCase")
        self.margin_calculator = margin_calculator or MarginCalculator()
        self.portfolio_aggregator = portfolio_aggregator or PortfolioAggregator()

    async def validate(self, request: PlaceOrderRequest) -> str | None:
        """Validate the place order request."""
        if not request.user_id:
            return "User ID is required"

        if not label_value(request.symbol):
            return "Symbol is required"

        if not label_value(request.asset_class):
            return "Asset class is required"

        if (label_value(request.direction) or "").lower() not in VALID_DIRECTIONS:
            return f"Invalid direction: {request.direction!r}"

        if (label_value(request.order_type) or "").lower() not in VALID_ORDER_TYPES:
            return f"Invalid order type: {request.order_type!r}"

        for value, name, required in (
            (request.units, "Units", True),
            (request.price, "Price", True),
            (request.stop_loss, "Stop loss", False),
            (request.take_profit, "Take profit", False),
        ):
            error = positive_decimal_error(value, name, required)
            if error:
                return error

        return None

    async def process(self, request: PlaceOrderRequest) -> PlaceOrderResponse:
        """Process the place order request."""
        trade_request = TradeRequest(
            user_id=request.user_id,
            symbol=label_value(request.symbol),
            asset_class=label_value(request.asset_class),
            direction=TradeDirection(label_value(request.direction).lower()),
            units=to_decimal(request.units),
            price=to_decimal(request.price),
            order_type=OrderType(label_value(request.order_type).lower()),
            asset_name=request.asset_name,
            stop_loss=to_decimal(request.stop_loss),
            take_profit=to_decimal(request.take_profit),
            expiration_date=request.expiration_date,
        )

        requirement = self.margin_calculator.calculate_margin(
            trade_request.asset_class, trade_request.units, trade_request.price
        )
        trade_request.asset_class = requirement.asset_class
        warnings = [ErrorCode.UNKNOWN_ASSET_CLASS.value] if requirement.fallback_applied else []

        if trade_request.order_type.is_entry:
            return await self._place_entry_order(request, trade_request, warnings)

        accounts = self.unit_of_work.accounts
        account = await accounts.get_account_for_update(request.user_id)
        if account is None:
            return self._create_error_response(
                "Account not found", request.request_id, ErrorCode.NOT_FOUND
            )

        if not account.can_reserve(requirement.required_margin):
            message = (
                f"Insufficient funds: required margin "
                f"{Money(requirement.required_margin, account.currency).format()}, "
                f"available {Money(account.available_funds, account.currency).format()}"
            )
            self.logger.info(
                message,
                extra={"user_id": request.user_id, "symbol": trade_request.symbol},
            )
            return self._create_error_response(
                message, request.request_id, ErrorCode.INSUFFICIENT_FUNDS
            )

        trade = Trade.create_market_order(trade_request, requirement.required_margin)
        account.reserve_margin(requirement.required_margin, symbol=trade.symbol)

        await self.unit_of_work.trades.save_trade(trade)
        await accounts.update_account(account)

        portfolio = self.unit_of_work.portfolio
        position = await portfolio.get_position(trade.user_id, trade.symbol)
        position = self.portfolio_aggregator.apply_open(position, trade)
        await portfolio.save_position(position)

        self.logger.info(
            f"Opened {trade} reserving margin {requirement.required_margin}",
            extra={"user_id": trade.user_id, "trade_id": str(trade.id)},
        )

        return PlaceOrderResponse(
            success=True,
            order_id=trade.id,
            execution_price=trade.price_per_unit,
            margin_required=trade.margin_required,
            status=trade.status.value,
            message="Order executed successfully",
            warnings=warnings,
            request_id=request.request_id,
        )

    async def _place_entry_order(
        self,
        request: PlaceOrderRequest,
        trade_request: TradeRequest,
        warnings: list[str],
    ) -> PlaceOrderResponse:
        account = await self.unit_of_work.accounts.get_account(request.user_id)
        if account is None:
            return self._create_error_response(
                "Account not found", request.request_id, ErrorCode.NOT_FOUND
            )

        trade = Trade.create_entry_order(trade_request)
        await self.unit_of_work.trades.save_trade(trade)

        self.logger.info(
            f"Recorded pending {trade}",
            extra={"user_id": trade.user_id, "trade_id": str(trade.id)},
        )

        return PlaceOrderResponse(
            success=True,
            order_id=trade.id,
            execution_price=trade.price_per_unit,
            status=trade.status.value,
            message=f"{trade.order_type.value.capitalize()} order placed",
            warnings=warnings,
            request_id=request.request_id,
        )


class CancelOrderUseCase(TransactionalUseCase[CancelOrderRequest, CancelOrderResponse]):
    """
    Use case for cancelling pending orders.

    Only pending orders can be cancelled; a second cancel, or a cancel of an
    open or closed trade, is rejected as a state conflict.
    """

    response_class = CancelOrderResponse

    def __init__(self, unit_of_work: IUnitOfWork):
        """Initialize cancel order use case."""
        super().__init__(unit_of_work, "CancelOrderUseCase")

    async def validate(self, request: CancelOrderRequest) -> str | None:
        """Validate the cancel order request."""
        if not request.user_id:
            return "User ID is required"
        if not request.trade_id:
            return "Trade ID is required"
        return None

    async def process(self, request: CancelOrderRequest) -> CancelOrderResponse:
        """Process the cancel order request."""
        trades = self.unit_of_work.trades
        trade = await trades.get_trade_by_id(request.trade_id)

        if trade is None or trade.user_id != request.user_id:
            return self._create_error_response(
                "Order not found", request.request_id, ErrorCode.NOT_FOUND
            )

        trade.cancel(request.reason)
        await trades.update_trade(trade)

        return CancelOrderResponse(
            success=True,
            status=trade.status.value,
            message="Order cancelled successfully",
            request_id=request.request_id,
        )


class ClosePositionUseCase(TransactionalUseCase[ClosePositionRequest, ClosePositionResponse]):
    """
    Use case for closing an open position.

    Settles P&L at the supplied price, releases exactly the margin reserved
    when the trade was opened and reduces or removes the portfolio entry.
    """

    response_class = ClosePositionResponse

    def __init__(
        self,
        unit_of_work: IUnitOfWork,
        portfolio_aggregator: PortfolioAggregator | None = None,
    ):
        """Initialize close position use case."""
        super().__init__(unit_of_work, "ClosePositionUseCase")
        self.portfolio_aggregator = portfolio_aggregator or PortfolioAggregator()

    async def validate(self, request: ClosePositionRequest) -> str | None:
        """Validate the close position request."""
        if not request.user_id:
            return "User ID is required"
        if not request.trade_id:
            return "Trade ID is required"
        return positive_decimal_error(request.price, "Price")

    async def process(self, request: ClosePositionRequest) -> ClosePositionResponse:
        """Process the close position request."""
        exit_price = to_decimal(request.price)
        trades = self.unit_of_work.trades
        trade = await trades.get_trade_by_id(request.trade_id)

        if trade is None or trade.user_id != request.user_id:
            return self._create_error_response(
                "Position not found", request.request_id, ErrorCode.NOT_FOUND
            )

        if not trade.is_open:
            raise OrderStateConflictException(trade.id, trade.status.value, "close")

        account = await self.unit_of_work.accounts.get_account_for_update(request.user_id)
        if account is None:
            return self._create_error_response(
                "Account not found", request.request_id, ErrorCode.NOT_FOUND
            )

        result = PnlCalculator.calculate(
            trade.direction, trade.price_per_unit, exit_price, trade.units
        )
        released_margin = trade.margin_required

        trade.close(exit_price, result.pnl, reason=request.reason)
        account.settle_close(released_margin, result.pnl)

        await trades.update_trade(trade)
        await self.unit_of_work.accounts.update_account(account)
        await self._reduce_portfolio(trade, exit_price)

        self.logger.info(
            f"Closed {trade.symbol} trade {trade.id} at {exit_price}, pnl {result.pnl}, "
            f"released margin {released_margin}",
            extra={"user_id": trade.user_id, "trade_id": str(trade.id)},
        )

        return ClosePositionResponse(
            success=True,
            close_price=exit_price,
            pnl=result.pnl,
            pnl_percentage=result.pnl_percentage,
            margin_released=released_margin,
            status=trade.status.value,
            message=(
                f"Position closed with P&L {Money(result.pnl, account.currency).format()}"
            ),
            request_id=request.request_id,
        )

    async def _reduce_portfolio(self, trade: Trade, exit_price: Decimal) -> None:
        portfolio = self.unit_of_work.portfolio
        position = await portfolio.get_position(trade.user_id, trade.symbol)
        if position is None:
            self.logger.warning(
                f"No portfolio entry for {trade.symbol} while closing trade {trade.id}",
                extra={"user_id": trade.user_id, "trade_id": str(trade.id)},
            )
            return

        reduced = self.portfolio_aggregator.reduce_on_close(position, trade.units, exit_price)
        if reduced is None:
            await portfolio.delete_position(trade.user_id, trade.symbol)
        else:
            await portfolio.save_position(reduced)
