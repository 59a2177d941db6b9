"""MarginRequirement value object: the fixed-shape result of a margin calculation."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any


@dataclass(frozen=True)
class MarginRequirement:
    """
    Collateral required to open a position.

    ``required_margin`` is always ``position_value * margin_rate``; ``leverage`` is
    carried for display and is derived from the rate, never configured on its own.
    """

    position_value: Decimal
    required_margin: Decimal
    leverage: Decimal
    margin_rate: Decimal
    asset_class: str
    fallback_applied: bool = False

    def __post_init__(self) -> None:
        if self.position_value <= 0:
            raise ValueError("Position value must be positive")
        if self.required_margin <= 0:
            raise ValueError("Required margin must be positive")
        if not (0 < self.margin_rate <= 1):
            raise ValueError(f"Margin rate must be in (0, 1], got {self.margin_rate}")

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the external calculate_margin shape."""
        return {
            "positionValue": self.position_value,
            "requiredMargin": self.required_margin,
            "leverage": self.leverage,
            "marginRate": self.margin_rate,
        }
