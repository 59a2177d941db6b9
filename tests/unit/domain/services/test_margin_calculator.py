"""Unit tests for MarginCalculator."""

from decimal import Decimal

import pytest

from margin_engine.domain.entities import TradeDirection
from margin_engine.domain.exceptions import ValidationError
from margin_engine.domain.services import LeverageTable, MarginCalculator
from margin_engine.domain.value_objects import AssetClass


@pytest.fixture
def calculator():
    return MarginCalculator()


class TestCalculateMargin:
    """Test required margin calculation."""

    def test_forex_example(self, calculator):
        requirement = calculator.calculate_margin("FOREX", Decimal("1000"), Decimal("1.1000"))

        assert requirement.position_value == Decimal("1100")
        assert requirement.required_margin == Decimal("2.2")
        assert requirement.leverage == Decimal("500")
        assert requirement.margin_rate == Decimal("0.002")
        assert requirement.fallback_applied is False

    @pytest.mark.parametrize("asset_class", list(AssetClass))
    @pytest.mark.parametrize(
        "units,price", [("1", "0.0001"), ("100", "150.25"), ("0.5", "43000")]
    )
    def test_required_margin_is_value_times_rate(self, calculator, asset_class, units, price):
        units, price = Decimal(units), Decimal(price)
        requirement = calculator.calculate_margin(asset_class, units, price)
        rate = LeverageTable.DEFAULT_MARGIN_RATES[asset_class]

        assert requirement.required_margin == units * price * rate
        assert requirement.required_margin > 0
        assert requirement.required_margin * requirement.leverage == requirement.position_value

    def test_unknown_asset_class_is_quoted_with_fallback(self, calculator):
        requirement = calculator.calculate_margin("bonds", Decimal("10"), Decimal("100"))

        assert requirement.fallback_applied is True
        assert requirement.required_margin == Decimal("100")
        assert requirement.asset_class == "BONDS"

    @pytest.mark.parametrize(
        "units,price,field",
        [("0", "1", "units"), ("-1", "1", "units"), ("1", "0", "price"), ("1", "-2", "price")],
    )
    def test_non_positive_inputs_rejected(self, calculator, units, price, field):
        with pytest.raises(ValidationError) as exc_info:
            calculator.calculate_margin("STOCKS", Decimal(units), Decimal(price))
        assert exc_info.value.field == field

    def test_to_dict_shape(self, calculator):
        data = calculator.calculate_margin("STOCKS", Decimal("10"), Decimal("100")).to_dict()

        assert data == {
            "positionValue": Decimal("1000"),
            "requiredMargin": Decimal("50"),
            "leverage": Decimal("20"),
            "marginRate": Decimal("0.05"),
        }


class TestLiquidationPrice:
    """Test liquidation price calculation."""

    def test_buy_liquidates_below_entry(self, calculator):
        # margin 50, 20% of it spread over 10 units = 1
        price = calculator.calculate_liquidation_price(
            TradeDirection.BUY, Decimal("100"), Decimal("10"), "STOCKS"
        )
        assert price == Decimal("99")

    def test_sell_liquidates_above_entry(self, calculator):
        price = calculator.calculate_liquidation_price(
            TradeDirection.SELL, Decimal("100"), Decimal("10"), "STOCKS"
        )
        assert price == Decimal("101")

    def test_buy_liquidation_price_floored_at_zero(self, calculator):
        price = calculator.calculate_liquidation_price(
            TradeDirection.BUY,
            Decimal("100"),
            Decimal("10"),
            "CRYPTO",
            margin_level_ratio=Decimal("20"),
        )
        assert price == Decimal("0")


class TestMaxPositionSize:
    """Test maximum position size."""

    def test_available_margin_times_leverage(self, calculator):
        assert calculator.calculate_max_position_size(Decimal("100"), "FOREX") == Decimal(
            "50000"
        )

    def test_no_margin_no_position(self, calculator):
        assert calculator.calculate_max_position_size(Decimal("-5"), "FOREX") == Decimal("0")


class TestFormatLeverageRatio:
    @pytest.mark.parametrize(
        "leverage,expected", [(Decimal("500"), "500:1"), (20, "20:1"), (Decimal("2.5"), "2.5:1")]
    )
    def test_format(self, leverage, expected):
        assert MarginCalculator.format_leverage_ratio(leverage) == expected
