"""
Liquidation Use Case

Caller-invoked stop-out: when an account's margin level has fallen to the
liquidation level, open trades are closed at the snapshot price through the
normal close path. Nothing here is scheduled; the caller decides when to run it.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any
from uuid import UUID

from margin_engine.application.interfaces.market_data import IPriceOracle
from margin_engine.application.interfaces.unit_of_work import IUnitOfWork
from margin_engine.domain.entities import Trade, TradeDirection
from margin_engine.domain.services import (
    AccountMetricsAggregator,
    MarginCalculator,
    PnlCalculator,
    PortfolioAggregator,
)

from .base import ErrorCode, TransactionalUseCase, UseCaseResponse
from .base_request import BaseRequestDTO
from .pricing import resolve_prices
from .trading import ClosePositionRequest, ClosePositionUseCase

LIQUIDATION_REASON = "liquidation"


@dataclass
class CheckLiquidationRequest(BaseRequestDTO):
    """Check one account against a price snapshot (symbol -> price)."""

    user_id: str
    prices: dict[str, Any] | None = None


@dataclass
class CheckLiquidationResponse(UseCaseResponse):
    margin_level: Decimal | None = None
    forced: bool = False
    liquidated_trade_ids: list[UUID] = field(default_factory=list)
    realized_pnl: Decimal = Decimal("0")


class CheckLiquidationUseCase(
    TransactionalUseCase[CheckLiquidationRequest, CheckLiquidationResponse]
):
    """
    Use case for stopping out an under-margined account.

    At or below ``liquidation_level`` every trade whose snapshot price has
    crossed its liquidation price is closed; below ``forced_level`` every open
    trade with a price is closed. Trades without a price are left open. All
    closes commit together.
    """

    response_class = CheckLiquidationResponse

    def __init__(
        self,
        unit_of_work: IUnitOfWork,
        liquidation_level: Decimal = Decimal("20"),
        forced_level: Decimal = Decimal("10"),
        margin_calculator: MarginCalculator | None = None,
        metrics_aggregator: AccountMetricsAggregator | None = None,
        portfolio_aggregator: PortfolioAggregator | None = None,
        price_oracle: IPriceOracle | None = None,
    ):
        super().__init__(unit_of_work, "CheckLiquidationUseCase")
        self.liquidation_level = liquidation_level
        self.forced_level = forced_level
        self.margin_calculator = margin_calculator or MarginCalculator()
        self.metrics_aggregator = metrics_aggregator or AccountMetricsAggregator()
        self.price_oracle = price_oracle
        self.close_position = ClosePositionUseCase(
            unit_of_work, portfolio_aggregator or PortfolioAggregator()
        )

    async def validate(self, request: CheckLiquidationRequest) -> str | None:
        if not request.user_id:
            return "User ID is required"
        return None

    async def process(self, request: CheckLiquidationRequest) -> CheckLiquidationResponse:
        account = await self.unit_of_work.accounts.get_account_for_update(request.user_id)
        if account is None:
            return self._create_error_response(
                "Account not found", request.request_id, ErrorCode.NOT_FOUND
            )

        open_trades = await self.unit_of_work.trades.get_open_trades(request.user_id)
        prices = await resolve_prices(
            (t.symbol for t in open_trades), request.prices, self.price_oracle
        )
        metrics = self.metrics_aggregator.compute_metrics(account, open_trades, prices)

        if metrics.margin_level is None or metrics.margin_level > self.liquidation_level:
            return CheckLiquidationResponse(
                success=True,
                margin_level=metrics.margin_level,
                message="No liquidation required",
                request_id=request.request_id,
            )

        forced = metrics.margin_level < self.forced_level
        to_close = [
            trade
            for trade in open_trades
            if trade.symbol in prices and (forced or self._crossed(trade, prices[trade.symbol]))
        ]
        # Worst losers first
        to_close.sort(
            key=lambda t: PnlCalculator.calculate_pnl(
                t.direction, t.price_per_unit, prices[t.symbol], t.units
            )
        )

        self.logger.warning(
            f"Account {account.user_id} at margin level {metrics.margin_level:.2f}%, "
            f"liquidating {len(to_close)} of {len(open_trades)} open trades"
            + (" (forced)" if forced else ""),
            extra={"user_id": account.user_id},
        )

        liquidated: list[UUID] = []
        realized = Decimal("0")
        for trade in to_close:
            response = await self.close_position.process(
                ClosePositionRequest(
                    user_id=trade.user_id,
                    trade_id=trade.id,
                    price=prices[trade.symbol],
                    reason=LIQUIDATION_REASON,
                    correlation_id=request.request_id,
                )
            )
            if not response.success:
                return self._create_error_response(
                    f"Liquidation of trade {trade.id} failed: {response.error}",
                    request.request_id,
                    response.error_code or ErrorCode.TRADE_EXECUTION_FAILURE,
                )
            liquidated.append(trade.id)
            realized += response.pnl

        return CheckLiquidationResponse(
            success=True,
            margin_level=metrics.margin_level,
            forced=forced,
            liquidated_trade_ids=liquidated,
            realized_pnl=realized,
            message=f"Liquidated {len(liquidated)} positions",
            request_id=request.request_id,
        )

    def _crossed(self, trade: Trade, price: Decimal) -> bool:
        liquidation_price = self.margin_calculator.calculate_liquidation_price(
            trade.direction,
            trade.price_per_unit,
            trade.units,
            trade.asset_class,
            margin_level_ratio=self.liquidation_level / Decimal("100"),
        )
        if trade.direction == TradeDirection.BUY:
            return price <= liquidation_price
        return price >= liquidation_price
