"""Leverage Table - Static per-asset-class margin rates."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal

from ..exceptions_trading import UnknownAssetClassWarning
from ..value_objects.asset_class import AssetClass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LeverageRule:
    """Margin rate for one asset class.

    The margin rate is the single configured number; leverage is always derived
    from it as ``1 / margin_rate``.
    """

    asset_class: str
    margin_rate: Decimal

    def __post_init__(self) -> None:
        if not (0 < self.margin_rate <= 1):
            raise ValueError(
                f"Margin rate for {self.asset_class} must be in (0, 1], got {self.margin_rate}"
            )

    @property
    def leverage(self) -> Decimal:
        leverage = Decimal(1) / self.margin_rate
        if leverage == leverage.to_integral_value():
            return leverage.quantize(Decimal(1))
        return leverage


class LeverageTable:
    """Lookup of leverage rules by asset class.

    Asset classes missing from the table get the fallback rate (0.10, i.e. 10x),
    matching the most conservative listed class. This is a policy choice, not a
    default of 1.0; every fallback is logged as a warning.
    """

    DEFAULT_MARGIN_RATES: Mapping[AssetClass, Decimal] = {
        AssetClass.FOREX: Decimal("0.002"),
        AssetClass.INDICES: Decimal("0.005"),
        AssetClass.STOCKS: Decimal("0.05"),
        AssetClass.COMMODITIES: Decimal("0.01"),
        AssetClass.CRYPTO: Decimal("0.10"),
    }
    FALLBACK_MARGIN_RATE = Decimal("0.10")

    def __init__(
        self,
        margin_rates: Mapping[AssetClass, Decimal] | None = None,
        fallback_margin_rate: Decimal = FALLBACK_MARGIN_RATE,
    ) -> None:
        rates = self.DEFAULT_MARGIN_RATES if margin_rates is None else margin_rates
        self._rules = {
            asset_class: LeverageRule(asset_class.value, Decimal(rate))
            for asset_class, rate in rates.items()
        }
        self._fallback_margin_rate = Decimal(fallback_margin_rate)
        # Validates the fallback rate up front
        LeverageRule("FALLBACK", self._fallback_margin_rate)

    def resolve(self, asset_class: AssetClass | str) -> tuple[LeverageRule, bool]:
        """Return the rule for ``asset_class`` and whether the fallback was applied."""
        parsed = AssetClass.parse(asset_class)
        if parsed is not None and parsed in self._rules:
            return self._rules[parsed], False

        label = asset_class.value if isinstance(asset_class, AssetClass) else str(asset_class)
        warning = UnknownAssetClassWarning(label, self._fallback_margin_rate)
        logger.warning(str(warning), extra={"asset_class": label})
        return LeverageRule(label.strip().upper(), self._fallback_margin_rate), True

    def get_rule(self, asset_class: AssetClass | str) -> LeverageRule:
        return self.resolve(asset_class)[0]

    def is_known(self, asset_class: AssetClass | str) -> bool:
        parsed = AssetClass.parse(asset_class)
        return parsed is not None and parsed in self._rules

    def rules(self) -> list[LeverageRule]:
        return list(self._rules.values())
