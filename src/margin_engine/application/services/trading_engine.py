"""
TradingEngine - Request/response facade over the margin use cases

Each call builds a fresh unit of work and use case, serializes mutations per
account, retries version conflicts with backoff and translates the use case
response into the plain ``{"success": ..., "message": ...}`` dictionaries
callers consume. No call raises past this boundary.
"""

import asyncio
import logging
import random
from collections.abc import Callable, Mapping
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from margin_engine.application.config import ApplicationConfig, get_config
from margin_engine.application.interfaces.exceptions import RepositoryError
from margin_engine.application.interfaces.market_data import IPriceOracle
from margin_engine.application.interfaces.unit_of_work import IUnitOfWork, IUnitOfWorkFactory
from margin_engine.application.use_cases import (
    CalculateMarginRequest,
    CalculateMarginUseCase,
    CancelOrderRequest,
    CancelOrderUseCase,
    CheckLiquidationRequest,
    CheckLiquidationUseCase,
    ClosePositionRequest,
    ClosePositionUseCase,
    ErrorCode,
    GetAccountMetricsRequest,
    GetAccountMetricsUseCase,
    GetOrdersRequest,
    GetOrdersUseCase,
    GetPositionsRequest,
    GetPositionsUseCase,
    OpenAccountRequest,
    OpenAccountUseCase,
    PlaceOrderRequest,
    PlaceOrderUseCase,
    UseCase,
    UseCaseResponse,
    trade_to_dict,
)
from margin_engine.domain.exceptions import (
    ConcurrencyException,
    OptimisticLockException,
    PessimisticLockException,
    StaleDataException,
)
from margin_engine.domain.services import (
    AccountMetricsAggregator,
    LeverageTable,
    MarginCalculator,
    PortfolioAggregator,
)

from .account_lock_service import AccountLockService

logger = logging.getLogger(__name__)

UseCaseBuilder = Callable[[IUnitOfWork], UseCase]


class TradingEngine:
    """
    Entry point of the margin engine.

    Mutating calls (open account, place, cancel, close, liquidate) hold the
    account lock for the whole transaction. Read calls run in their own unit
    of work without the lock.
    """

    def __init__(
        self,
        unit_of_work_factory: IUnitOfWorkFactory,
        config: ApplicationConfig | None = None,
        price_oracle: IPriceOracle | None = None,
        leverage_table: LeverageTable | None = None,
        lock_service: AccountLockService | None = None,
    ) -> None:
        self.unit_of_work_factory = unit_of_work_factory
        self.config = config or get_config()
        self.price_oracle = price_oracle

        trading = self.config.trading
        self.leverage_table = leverage_table or LeverageTable(
            fallback_margin_rate=trading.fallback_margin_rate
        )
        self.margin_calculator = MarginCalculator(self.leverage_table)
        self.portfolio_aggregator = PortfolioAggregator(trading.position_epsilon)
        self.metrics_aggregator = AccountMetricsAggregator(trading.margin_warning_multiplier)
        self.locks = lock_service or AccountLockService(self.config.concurrency.lock_timeout)

    # Mutations

    async def open_account(
        self,
        user_id: str,
        balance: Decimal,
        margin_call_level: Decimal | None = None,
        currency: str = "USD",
    ) -> dict[str, Any]:
        """Provision an account with an initial cash balance."""
        request = OpenAccountRequest(
            user_id=user_id,
            balance=balance,
            margin_call_level=margin_call_level,
            currency=currency,
        )
        response = await self._run(
            lambda uow: OpenAccountUseCase(uow, self.config.trading.default_margin_call_level),
            request,
            lock_key=user_id,
        )
        if not response.success:
            return self._failure(response)
        account = response.account
        return {
            "success": True,
            "userId": account.user_id,
            "balance": account.balance,
            "availableFunds": account.available_funds,
            "marginCallLevel": account.margin_call_level,
            "currency": account.currency,
            "message": response.message,
        }

    async def place_order(
        self,
        user_id: str,
        symbol: str,
        asset_class: str,
        order_type: str,
        direction: str,
        units: Decimal,
        price: Decimal,
        stop_loss: Decimal | None = None,
        take_profit: Decimal | None = None,
        asset_name: str | None = None,
        expiration_date: datetime | None = None,
    ) -> dict[str, Any]:
        """Place a market order (executed now) or a limit/stop order (recorded as pending)."""
        request = PlaceOrderRequest(
            user_id=user_id,
            symbol=symbol,
            asset_class=asset_class,
            order_type=order_type,
            direction=direction,
            units=units,
            price=price,
            stop_loss=stop_loss,
            take_profit=take_profit,
            asset_name=asset_name,
            expiration_date=expiration_date,
        )
        response = await self._run(
            lambda uow: PlaceOrderUseCase(uow, self.margin_calculator, self.portfolio_aggregator),
            request,
            lock_key=user_id,
        )
        if not response.success:
            return self._failure(response)
        return {
            "success": True,
            "orderId": str(response.order_id),
            "executionPrice": response.execution_price,
            "marginRequired": response.margin_required,
            "status": response.status,
            "message": response.message,
            "warnings": list(response.warnings),
        }

    async def cancel_order(
        self, user_id: str, trade_id: UUID | str, reason: str | None = None
    ) -> dict[str, Any]:
        """Cancel a pending order."""
        parsed = self._parse_id(trade_id)
        if parsed is None:
            return self._invalid_id(trade_id)

        request = CancelOrderRequest(user_id=user_id, trade_id=parsed, reason=reason)
        response = await self._run(CancelOrderUseCase, request, lock_key=user_id)
        if not response.success:
            return self._failure(response)
        return {"success": True, "status": response.status, "message": response.message}

    async def close_position(
        self,
        user_id: str,
        trade_id: UUID | str,
        price: Decimal,
        reason: str | None = None,
    ) -> dict[str, Any]:
        """Close an open position at ``price`` and settle its P&L."""
        parsed = self._parse_id(trade_id)
        if parsed is None:
            return self._invalid_id(trade_id)

        request = ClosePositionRequest(user_id=user_id, trade_id=parsed, price=price, reason=reason)
        response = await self._run(
            lambda uow: ClosePositionUseCase(uow, self.portfolio_aggregator),
            request,
            lock_key=user_id,
        )
        if not response.success:
            return self._failure(response)
        return {
            "success": True,
            "closePrice": response.close_price,
            "pnl": response.pnl,
            "pnlPercentage": response.pnl_percentage,
            "marginReleased": response.margin_released,
            "status": response.status,
            "message": response.message,
        }

    async def check_liquidation(
        self, user_id: str, prices: Mapping[str, Any] | None = None
    ) -> dict[str, Any]:
        """Stop out the account if its margin level is at or below the liquidation level."""
        trading = self.config.trading
        request = CheckLiquidationRequest(user_id=user_id, prices=dict(prices or {}))
        response = await self._run(
            lambda uow: CheckLiquidationUseCase(
                uow,
                liquidation_level=trading.liquidation_margin_level,
                forced_level=trading.forced_liquidation_margin_level,
                margin_calculator=self.margin_calculator,
                metrics_aggregator=self.metrics_aggregator,
                portfolio_aggregator=self.portfolio_aggregator,
                price_oracle=self.price_oracle,
            ),
            request,
            lock_key=user_id,
        )
        if not response.success:
            return self._failure(response)
        return {
            "success": True,
            "marginLevel": response.margin_level,
            "forced": response.forced,
            "liquidatedTradeIds": [str(trade_id) for trade_id in response.liquidated_trade_ids],
            "realizedPnl": response.realized_pnl,
            "message": response.message,
        }

    # Queries

    async def calculate_margin(
        self,
        asset_class: str,
        units: Decimal,
        price: Decimal,
        direction: str | None = None,
    ) -> dict[str, Any]:
        """Quote the margin a trade would reserve."""
        request = CalculateMarginRequest(
            asset_class=asset_class, units=units, price=price, direction=direction
        )
        response = await CalculateMarginUseCase(self.margin_calculator).execute(request)
        if not response.success:
            return self._failure(response)
        return {
            "success": True,
            "positionValue": response.position_value,
            "requiredMargin": response.required_margin,
            "leverage": response.leverage,
            "marginRate": response.margin_rate,
            "leverageRatio": response.leverage_ratio,
            "liquidationPrice": response.liquidation_price,
            "warnings": list(response.warnings),
        }

    async def get_account_metrics(
        self, user_id: str, prices: Mapping[str, Any] | None = None
    ) -> dict[str, Any]:
        request = GetAccountMetricsRequest(user_id=user_id, prices=dict(prices or {}))
        response = await self._run(
            lambda uow: GetAccountMetricsUseCase(uow, self.metrics_aggregator, self.price_oracle),
            request,
        )
        if not response.success:
            return self._failure(response)
        return {"success": True, **response.metrics.to_dict()}

    async def get_positions(
        self, user_id: str, prices: Mapping[str, Any] | None = None
    ) -> dict[str, Any]:
        request = GetPositionsRequest(user_id=user_id, prices=dict(prices or {}))
        response = await self._run(lambda uow: GetPositionsUseCase(uow, self.price_oracle), request)
        if not response.success:
            return self._failure(response)
        return {"success": True, "positions": [p.to_dict() for p in response.positions]}

    async def get_orders(self, user_id: str, status: str | None = None) -> dict[str, Any]:
        request = GetOrdersRequest(user_id=user_id, status=status)
        response = await self._run(GetOrdersUseCase, request)
        if not response.success:
            return self._failure(response)
        return {"success": True, "orders": [trade_to_dict(t) for t in response.orders]}

    # Execution

    async def _run(
        self,
        build: UseCaseBuilder,
        request: Any,
        lock_key: str | None = None,
    ) -> Any:
        """
        Execute a transactional use case with locking and conflict retries.

        Every attempt gets a new unit of work, so a retry re-reads the
        account and portfolio rows instead of reusing the stale copies.
        """
        concurrency = self.config.concurrency
        attempts = concurrency.max_retries + 1
        operation = type(request).__name__
        last_error: Exception | None = None

        for attempt in range(attempts):
            try:
                use_case = build(self.unit_of_work_factory.create_unit_of_work())
                if lock_key is None:
                    return await use_case.execute(request)
                async with self.locks.lock(lock_key):
                    return await use_case.execute(request)

            except PessimisticLockException as e:
                return self._error(request, str(e), ErrorCode.CONCURRENCY_CONFLICT)

            except (StaleDataException, ConcurrencyException) as e:
                last_error = e
                if attempt + 1 >= attempts:
                    break
                delay = self._backoff_delay(attempt)
                logger.info(
                    f"{operation} hit a version conflict "
                    f"(attempt {attempt + 1}/{attempts}), retrying in {delay:.3f}s: {e}"
                )
                await asyncio.sleep(delay)

            except RepositoryError as e:
                logger.error(f"{operation} failed in persistence: {e}", exc_info=True)
                return self._error(
                    request, f"Trade execution failed: {e}", ErrorCode.TRADE_EXECUTION_FAILURE
                )

            except Exception as e:
                logger.exception(f"Unexpected error in {operation}: {e}")
                return self._error(
                    request, f"Trade execution failed: {e}", ErrorCode.TRADE_EXECUTION_FAILURE
                )

        exhausted = OptimisticLockException(
            getattr(last_error, "entity_type", None) or "Account",
            getattr(last_error, "entity_id", None) or lock_key or "unknown",
            concurrency.max_retries,
        )
        logger.warning(f"{operation} gave up: {exhausted} (last conflict: {last_error})")
        return self._error(request, str(exhausted), ErrorCode.CONCURRENCY_CONFLICT)

    def _backoff_delay(self, attempt: int) -> float:
        """Exponential backoff capped at ``max_delay`` with +/-10% jitter."""
        concurrency = self.config.concurrency
        delay = min(concurrency.base_delay * (2**attempt), concurrency.max_delay)
        jitter = delay * 0.1
        return max(0.0, delay + random.uniform(-jitter, jitter))

    @staticmethod
    def _error(request: Any, message: str, error_code: ErrorCode) -> UseCaseResponse:
        return UseCaseResponse.error_response(message, request.request_id, error_code)

    @staticmethod
    def _failure(response: UseCaseResponse) -> dict[str, Any]:
        error_code = response.error_code or ErrorCode.TRADE_EXECUTION_FAILURE
        return {
            "success": False,
            "message": response.message or response.error or "Request failed",
            "errorCode": error_code.value,
        }

    @staticmethod
    def _parse_id(trade_id: UUID | str) -> UUID | None:
        if isinstance(trade_id, UUID):
            return trade_id
        try:
            return UUID(str(trade_id))
        except ValueError:
            return None

    @staticmethod
    def _invalid_id(trade_id: Any) -> dict[str, Any]:
        return {
            "success": False,
            "message": f"Invalid trade id: {trade_id!r}",
            "errorCode": ErrorCode.VALIDATION_ERROR.value,
        }
