"""Unit tests for CalculateMarginUseCase."""

from decimal import Decimal

import pytest

from margin_engine.application.use_cases import (
    CalculateMarginRequest,
    CalculateMarginUseCase,
    ErrorCode,
)
from margin_engine.domain.entities import TradeDirection
from margin_engine.domain.value_objects import AssetClass


class TestCalculateMargin:
    """Test margin quotes."""

    @pytest.mark.asyncio
    async def test_forex_quote(self):
        response = await CalculateMarginUseCase().execute(
            CalculateMarginRequest(asset_class="FOREX", units=Decimal("1000"), price="1.1")
        )

        assert response.success is True
        assert response.position_value == Decimal("1100")
        assert response.required_margin == Decimal("2.2")
        assert response.margin_rate == Decimal("0.002")
        assert response.leverage == Decimal("500")
        assert response.leverage_ratio == "500:1"
        assert response.liquidation_price is None
        assert response.warnings == []

    @pytest.mark.asyncio
    async def test_asset_class_is_case_insensitive(self):
        response = await CalculateMarginUseCase().execute(
            CalculateMarginRequest(asset_class="stocks", units=Decimal("10"), price=Decimal("50"))
        )

        assert response.required_margin == Decimal("25")
        assert response.leverage_ratio == "20:1"

    @pytest.mark.asyncio
    async def test_liquidation_price_for_direction(self):
        buy = await CalculateMarginUseCase().execute(
            CalculateMarginRequest(
                asset_class="CRYPTO", units=Decimal("1"), price=Decimal("100"), direction="buy"
            )
        )
        sell = await CalculateMarginUseCase().execute(
            CalculateMarginRequest(
                asset_class="CRYPTO", units=Decimal("1"), price=Decimal("100"), direction="SELL"
            )
        )

        # 10 margin, 20% of it left at liquidation
        assert buy.liquidation_price == Decimal("98")
        assert sell.liquidation_price == Decimal("102")

    @pytest.mark.asyncio
    async def test_enum_members_accepted(self):
        response = await CalculateMarginUseCase().execute(
            CalculateMarginRequest(
                asset_class=AssetClass.CRYPTO,
                units=Decimal("1"),
                price=Decimal("100"),
                direction=TradeDirection.BUY,
            )
        )

        assert response.success is True
        assert response.required_margin == Decimal("10")
        assert response.liquidation_price == Decimal("98")

    @pytest.mark.asyncio
    async def test_unknown_asset_class_uses_fallback(self):
        response = await CalculateMarginUseCase().execute(
            CalculateMarginRequest(asset_class="BONDS", units=Decimal("10"), price=Decimal("10"))
        )

        assert response.success is True
        assert response.margin_rate == Decimal("0.10")
        assert response.required_margin == Decimal("10")
        assert response.leverage_ratio == "10:1"
        assert response.warnings == [ErrorCode.UNKNOWN_ASSET_CLASS.value]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "fields,message",
        [
            ({"asset_class": "", "units": 1, "price": 1}, "Asset class is required"),
            ({"asset_class": 7, "units": 1, "price": 1}, "Asset class is required"),
            ({"asset_class": "FOREX", "units": 0, "price": 1}, "Units must be positive"),
            ({"asset_class": "FOREX", "units": 1, "price": None}, "Price is required"),
            (
                {"asset_class": "FOREX", "units": 1, "price": 1, "direction": "up"},
                "Invalid direction",
            ),
        ],
    )
    async def test_validation(self, fields, message):
        response = await CalculateMarginUseCase().execute(CalculateMarginRequest(**fields))

        assert response.success is False
        assert response.error_code == ErrorCode.VALIDATION_ERROR
        assert message in response.error
