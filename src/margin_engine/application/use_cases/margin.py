"""
Margin Use Cases

Read-only margin quotes for a prospective trade.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from margin_engine.domain.entities import TradeDirection
from margin_engine.domain.services import MarginCalculator

from ._decimal import label_value, positive_decimal_error, to_decimal
from .base import ErrorCode, UseCase, UseCaseResponse
from .base_request import BaseRequestDTO


@dataclass
class CalculateMarginRequest(BaseRequestDTO):
    """Request a margin quote."""

    asset_class: str
    units: Decimal
    price: Decimal
    direction: str | None = None  # adds the liquidation price when given


@dataclass
class CalculateMarginResponse(UseCaseResponse):
    """Margin quote."""

    position_value: Decimal | None = None
    required_margin: Decimal | None = None
    leverage: Decimal | None = None
    margin_rate: Decimal | None = None
    leverage_ratio: str | None = None
    liquidation_price: Decimal | None = None
    warnings: list[str] = field(default_factory=list)


class CalculateMarginUseCase(UseCase[CalculateMarginRequest, CalculateMarginResponse]):
    """Quote the margin a trade would reserve, without touching any account."""

    response_class = CalculateMarginResponse

    def __init__(self, margin_calculator: MarginCalculator | None = None):
        super().__init__("CalculateMarginUseCase")
        self.margin_calculator = margin_calculator or MarginCalculator()

    async def validate(self, request: CalculateMarginRequest) -> str | None:
        if not label_value(request.asset_class):
            return "Asset class is required"
        if request.direction is not None and (label_value(request.direction) or "").lower() not in {
            d.value for d in TradeDirection
        }:
            return f"Invalid direction: {request.direction!r}"
        return positive_decimal_error(request.units, "Units") or positive_decimal_error(
            request.price, "Price"
        )

    async def process(self, request: CalculateMarginRequest) -> CalculateMarginResponse:
        units = to_decimal(request.units)
        price = to_decimal(request.price)
        asset_class = label_value(request.asset_class)
        requirement = self.margin_calculator.calculate_margin(asset_class, units, price)

        liquidation_price = None
        if request.direction is not None:
            liquidation_price = self.margin_calculator.calculate_liquidation_price(
                TradeDirection(label_value(request.direction).lower()), price, units, asset_class
            )

        return CalculateMarginResponse(
            success=True,
            position_value=requirement.position_value,
            required_margin=requirement.required_margin,
            leverage=requirement.leverage,
            margin_rate=requirement.margin_rate,
            leverage_ratio=MarginCalculator.format_leverage_ratio(requirement.leverage),
            liquidation_price=liquidation_price,
            warnings=[ErrorCode.UNKNOWN_ASSET_CLASS.value] if requirement.fallback_applied else [],
            request_id=request.request_id,
        )
