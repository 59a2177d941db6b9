"""Margin Calculator - Collateral, liquidation and capacity calculations."""

from decimal import Decimal

from ..constants import ZERO
from ..entities.trade import TradeDirection
from ..exceptions import ValidationError
from ..value_objects.asset_class import AssetClass
from ..value_objects.margin_requirement import MarginRequirement
from .leverage_table import LeverageTable


class MarginCalculator:
    """Pure margin calculations backed by a leverage table."""

    DEFAULT_LIQUIDATION_RATIO = Decimal("0.2")

    def __init__(self, leverage_table: LeverageTable | None = None) -> None:
        self.leverage_table = leverage_table or LeverageTable()

    def calculate_margin(
        self, asset_class: AssetClass | str, units: Decimal, price: Decimal
    ) -> MarginRequirement:
        """Compute position value and required margin for a prospective trade.

        Raises:
            ValidationError: If units or price are not positive
        """
        self._require_positive(units, "units")
        self._require_positive(price, "price")

        rule, fallback_applied = self.leverage_table.resolve(asset_class)
        position_value = units * price
        return MarginRequirement(
            position_value=position_value,
            required_margin=position_value * rule.margin_rate,
            leverage=rule.leverage,
            margin_rate=rule.margin_rate,
            asset_class=rule.asset_class,
            fallback_applied=fallback_applied,
        )

    def calculate_liquidation_price(
        self,
        direction: TradeDirection,
        entry_price: Decimal,
        units: Decimal,
        asset_class: AssetClass | str,
        margin_level_ratio: Decimal = DEFAULT_LIQUIDATION_RATIO,
    ) -> Decimal:
        """Price at which only ``margin_level_ratio`` of the reserved margin is left.

        Buy positions liquidate below entry (floored at zero), sell positions above.
        """
        requirement = self.calculate_margin(asset_class, units, entry_price)
        offset = requirement.required_margin * margin_level_ratio / units
        if direction == TradeDirection.BUY:
            return max(ZERO, entry_price - offset)
        return entry_price + offset

    def calculate_max_position_size(
        self, available_margin: Decimal, asset_class: AssetClass | str
    ) -> Decimal:
        """Largest notional that ``available_margin`` can support."""
        if available_margin <= 0:
            return ZERO
        return available_margin * self.leverage_table.get_rule(asset_class).leverage

    @staticmethod
    def format_leverage_ratio(leverage: Decimal | int) -> str:
        """Render leverage as ``"500:1"``."""
        value = Decimal(leverage)
        if value == value.to_integral_value():
            return f"{int(value)}:1"
        return f"{value.normalize()}:1"

    @staticmethod
    def _require_positive(value: Decimal, field: str) -> None:
        if value is None or value <= 0:
            raise ValidationError(
                f"{field.capitalize()} must be positive, got {value}", field=field
            )
