"""
Account Use Cases

Read models over a margin account: risk metrics, open positions and order
history, valued against a price snapshot.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from margin_engine.application.interfaces.market_data import IPriceOracle
from margin_engine.application.interfaces.unit_of_work import IUnitOfWork
from margin_engine.domain.constants import CURRENCY_CODE_LENGTH, DEFAULT_CURRENCY
from margin_engine.domain.entities import Account, Trade, TradeStatus
from margin_engine.domain.services import AccountMetricsAggregator, PnlCalculator
from margin_engine.domain.value_objects import AccountMetrics

from ._decimal import to_decimal
from .base import ErrorCode, TransactionalUseCase, UseCaseResponse
from .base_request import BaseRequestDTO
from .pricing import resolve_prices


@dataclass(frozen=True)
class PositionView:
    """An open trade valued at a live price."""

    trade_id: UUID
    symbol: str
    asset_class: str
    direction: str
    units: Decimal
    entry_price: Decimal
    current_price: Decimal
    position_value: Decimal
    margin_used: Decimal
    unrealized_pnl: Decimal
    pnl_percentage: Decimal
    stop_loss: Decimal | None
    take_profit: Decimal | None
    status: str
    opened_at: datetime | None

    @classmethod
    def from_trade(cls, trade: Trade, current_price: Decimal) -> "PositionView":
        result = PnlCalculator.calculate(
            trade.direction, trade.price_per_unit, current_price, trade.units
        )
        return cls(
            trade_id=trade.id,
            symbol=trade.symbol,
            asset_class=trade.asset_class,
            direction=trade.direction.value,
            units=trade.units,
            entry_price=trade.price_per_unit,
            current_price=current_price,
            position_value=trade.units * current_price,
            margin_used=trade.margin_required,
            unrealized_pnl=result.pnl,
            pnl_percentage=result.pnl_percentage,
            stop_loss=trade.stop_loss,
            take_profit=trade.take_profit,
            status=trade.status.value,
            opened_at=trade.executed_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.trade_id),
            "symbol": self.symbol,
            "assetClass": self.asset_class,
            "direction": self.direction,
            "units": self.units,
            "entryPrice": self.entry_price,
            "currentPrice": self.current_price,
            "positionValue": self.position_value,
            "marginUsed": self.margin_used,
            "unrealizedPnl": self.unrealized_pnl,
            "pnlPercentage": self.pnl_percentage,
            "stopLoss": self.stop_loss,
            "takeProfit": self.take_profit,
            "status": self.status,
            "openedAt": self.opened_at.isoformat() if self.opened_at else None,
        }


def trade_to_dict(trade: Trade) -> dict[str, Any]:
    """Order history row."""
    return {
        "id": str(trade.id),
        "symbol": trade.symbol,
        "assetName": trade.asset_name,
        "assetClass": trade.asset_class,
        "direction": trade.direction.value,
        "orderType": trade.order_type.value,
        "status": trade.status.value,
        "units": trade.units,
        "pricePerUnit": trade.price_per_unit,
        "totalAmount": trade.total_amount,
        "marginRequired": trade.margin_required,
        "stopLoss": trade.stop_loss,
        "takeProfit": trade.take_profit,
        "expirationDate": trade.expiration_date.isoformat() if trade.expiration_date else None,
        "createdAt": trade.created_at.isoformat(),
        "executedAt": trade.executed_at.isoformat() if trade.executed_at else None,
        "closedAt": trade.closed_at.isoformat() if trade.closed_at else None,
        "closePrice": trade.close_price,
        "pnl": trade.pnl,
        "closeReason": trade.tags.get("close_reason"),
    }


# Request/Response DTOs
@dataclass
class OpenAccountRequest(BaseRequestDTO):
    """Request to open a margin account with an initial cash balance."""

    user_id: str
    balance: Decimal
    margin_call_level: Decimal | None = None
    currency: str = DEFAULT_CURRENCY


@dataclass
class OpenAccountResponse(UseCaseResponse):
    account: Account | None = None


@dataclass
class GetAccountMetricsRequest(BaseRequestDTO):
    """Request account metrics valued at ``prices`` (symbol -> price)."""

    user_id: str
    prices: dict[str, Any] | None = None


@dataclass
class GetAccountMetricsResponse(UseCaseResponse):
    metrics: AccountMetrics | None = None


@dataclass
class GetPositionsRequest(BaseRequestDTO):
    """Request open positions valued at ``prices`` (symbol -> price)."""

    user_id: str
    prices: dict[str, Any] | None = None


@dataclass
class GetPositionsResponse(UseCaseResponse):
    positions: list[PositionView] = field(default_factory=list)


@dataclass
class GetOrdersRequest(BaseRequestDTO):
    """Request order history, optionally filtered by status."""

    user_id: str
    status: str | None = None


@dataclass
class GetOrdersResponse(UseCaseResponse):
    orders: list[Trade] = field(default_factory=list)


class OpenAccountUseCase(TransactionalUseCase[OpenAccountRequest, OpenAccountResponse]):
    """Use case for provisioning a new account; one account per user."""

    response_class = OpenAccountResponse

    def __init__(
        self, unit_of_work: IUnitOfWork, default_margin_call_level: Decimal = Decimal("100")
    ):
        super().__init__(unit_of_work, "OpenAccountUseCase")
        self.default_margin_call_level = default_margin_call_level

    async def validate(self, request: OpenAccountRequest) -> str | None:
        if not request.user_id:
            return "User ID is required"
        balance = to_decimal(request.balance)
        if balance is None:
            return f"Balance must be a number, got {request.balance!r}"
        if balance < 0:
            return "Balance cannot be negative"
        if request.margin_call_level is not None:
            level = to_decimal(request.margin_call_level)
            if level is None or level <= 0:
                return "Margin call level must be positive"
        if not request.currency or len(request.currency) != CURRENCY_CODE_LENGTH:
            return f"Invalid currency: {request.currency}"
        return None

    async def process(self, request: OpenAccountRequest) -> OpenAccountResponse:
        accounts = self.unit_of_work.accounts
        if await accounts.get_account(request.user_id) is not None:
            return self._create_error_response(
                f"Account already exists for user {request.user_id}",
                request.request_id,
                ErrorCode.VALIDATION_ERROR,
            )

        account = Account(
            user_id=request.user_id,
            balance=to_decimal(request.balance),
            margin_call_level=to_decimal(request.margin_call_level)
            or self.default_margin_call_level,
            currency=request.currency.upper(),
        )
        await accounts.save_account(account)
        self.logger.info(
            f"Opened account for {account.user_id} with balance {account.balance}",
            extra={"user_id": account.user_id},
        )

        return OpenAccountResponse(
            success=True,
            account=account,
            message="Account opened",
            request_id=request.request_id,
        )


class GetAccountMetricsUseCase(
    TransactionalUseCase[GetAccountMetricsRequest, GetAccountMetricsResponse]
):
    """
    Use case for computing account-level margin metrics.

    Equity and margin level are derived from the stored account counters plus
    the unrealized P&L of every open trade at the snapshot prices.
    """

    response_class = GetAccountMetricsResponse

    def __init__(
        self,
        unit_of_work: IUnitOfWork,
        metrics_aggregator: AccountMetricsAggregator | None = None,
        price_oracle: IPriceOracle | None = None,
    ):
        super().__init__(unit_of_work, "GetAccountMetricsUseCase")
        self.metrics_aggregator = metrics_aggregator or AccountMetricsAggregator()
        self.price_oracle = price_oracle

    async def validate(self, request: GetAccountMetricsRequest) -> str | None:
        if not request.user_id:
            return "User ID is required"
        return None

    async def process(self, request: GetAccountMetricsRequest) -> GetAccountMetricsResponse:
        account = await self.unit_of_work.accounts.get_account(request.user_id)
        if account is None:
            return self._create_error_response(
                "Account not found", request.request_id, ErrorCode.NOT_FOUND
            )

        open_trades = await self.unit_of_work.trades.get_open_trades(request.user_id)
        prices = await resolve_prices(
            (t.symbol for t in open_trades), request.prices, self.price_oracle
        )
        metrics = self.metrics_aggregator.compute_metrics(account, open_trades, prices)

        if metrics.is_margin_call:
            self.logger.warning(
                f"Account {account.user_id} is in margin call at level {metrics.margin_level}",
                extra={"user_id": account.user_id},
            )

        return GetAccountMetricsResponse(
            success=True, metrics=metrics, request_id=request.request_id
        )


class GetPositionsUseCase(TransactionalUseCase[GetPositionsRequest, GetPositionsResponse]):
    """Use case for listing open positions with live valuation."""

    response_class = GetPositionsResponse

    def __init__(self, unit_of_work: IUnitOfWork, price_oracle: IPriceOracle | None = None):
        super().__init__(unit_of_work, "GetPositionsUseCase")
        self.price_oracle = price_oracle

    async def validate(self, request: GetPositionsRequest) -> str | None:
        if not request.user_id:
            return "User ID is required"
        return None

    async def process(self, request: GetPositionsRequest) -> GetPositionsResponse:
        open_trades = await self.unit_of_work.trades.get_open_trades(request.user_id)
        prices = await resolve_prices(
            (t.symbol for t in open_trades), request.prices, self.price_oracle
        )
        positions = [
            PositionView.from_trade(trade, prices.get(trade.symbol, trade.price_per_unit))
            for trade in open_trades
        ]
        return GetPositionsResponse(
            success=True, positions=positions, request_id=request.request_id
        )


class GetOrdersUseCase(TransactionalUseCase[GetOrdersRequest, GetOrdersResponse]):
    """Use case for order history, newest first."""

    response_class = GetOrdersResponse

    def __init__(self, unit_of_work: IUnitOfWork):
        super().__init__(unit_of_work, "GetOrdersUseCase")

    async def validate(self, request: GetOrdersRequest) -> str | None:
        if not request.user_id:
            return "User ID is required"
        if request.status is not None and request.status.lower() not in {
            s.value for s in TradeStatus
        }:
            return f"Invalid status: {request.status}"
        return None

    async def process(self, request: GetOrdersRequest) -> GetOrdersResponse:
        status = TradeStatus(request.status.lower()) if request.status else None
        orders = await self.unit_of_work.trades.get_trades_by_user(request.user_id, status)
        return GetOrdersResponse(success=True, orders=orders, request_id=request.request_id)
