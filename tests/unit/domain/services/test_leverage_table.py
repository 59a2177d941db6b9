"""Unit tests for the leverage table."""

import logging
from decimal import Decimal

import pytest

from margin_engine.domain.services import LeverageRule, LeverageTable
from margin_engine.domain.value_objects import AssetClass


class TestLeverageRule:
    """Test LeverageRule."""

    @pytest.mark.parametrize(
        "rate,leverage",
        [
            ("0.002", 500),
            ("0.005", 200),
            ("0.05", 20),
            ("0.01", 100),
            ("0.10", 10),
        ],
    )
    def test_leverage_is_derived_from_margin_rate(self, rate, leverage):
        rule = LeverageRule("X", Decimal(rate))
        assert rule.leverage == Decimal(leverage)

    def test_non_integral_leverage_is_kept_exact(self):
        rule = LeverageRule("X", Decimal("0.3"))
        assert abs(rule.leverage * Decimal("0.3") - 1) < Decimal("1e-20")

    @pytest.mark.parametrize("rate", ["0", "-0.1", "1.5"])
    def test_rejects_out_of_range_rate(self, rate):
        with pytest.raises(ValueError, match="Margin rate"):
            LeverageRule("X", Decimal(rate))


class TestLeverageTable:
    """Test LeverageTable lookups and fallback."""

    def test_default_rates(self):
        table = LeverageTable()

        assert table.get_rule(AssetClass.FOREX).margin_rate == Decimal("0.002")
        assert table.get_rule(AssetClass.INDICES).margin_rate == Decimal("0.005")
        assert table.get_rule(AssetClass.STOCKS).margin_rate == Decimal("0.05")
        assert table.get_rule(AssetClass.COMMODITIES).margin_rate == Decimal("0.01")
        assert table.get_rule(AssetClass.CRYPTO).margin_rate == Decimal("0.10")

    @pytest.mark.parametrize("label", ["forex", "FX", " Forex ", "CURRENCY"])
    def test_labels_are_normalized(self, label):
        rule, fallback = LeverageTable().resolve(label)

        assert rule.asset_class == "FOREX"
        assert fallback is False

    def test_unknown_asset_class_uses_fallback_and_logs(self, caplog):
        table = LeverageTable()

        with caplog.at_level(logging.WARNING):
            rule, fallback = table.resolve("bonds")

        assert fallback is True
        assert rule.asset_class == "BONDS"
        assert rule.margin_rate == Decimal("0.10")
        assert rule.leverage == Decimal("10")
        assert "Unknown asset class 'bonds'" in caplog.text

    def test_custom_fallback_rate(self):
        table = LeverageTable(fallback_margin_rate=Decimal("0.25"))
        rule, fallback = table.resolve("OPTIONS")

        assert fallback is True
        assert rule.margin_rate == Decimal("0.25")

    def test_custom_table_without_stocks_falls_back(self):
        table = LeverageTable({AssetClass.FOREX: Decimal("0.01")})

        assert table.get_rule("FOREX").leverage == Decimal("100")
        assert not table.is_known("STOCKS")
        assert table.resolve("STOCKS")[1] is True

    def test_invalid_fallback_rate_rejected(self):
        with pytest.raises(ValueError):
            LeverageTable(fallback_margin_rate=Decimal("0"))

    def test_rules_lists_every_configured_class(self):
        classes = {rule.asset_class for rule in LeverageTable().rules()}
        assert classes == {a.value for a in AssetClass}


class TestAssetClassParse:
    """Test AssetClass.parse."""

    @pytest.mark.parametrize(
        "label,expected",
        [
            ("Stock", AssetClass.STOCKS),
            ("equities", AssetClass.STOCKS),
            ("Index", AssetClass.INDICES),
            ("Cryptocurrency", AssetClass.CRYPTO),
            ("commodity", AssetClass.COMMODITIES),
            (AssetClass.FOREX, AssetClass.FOREX),
        ],
    )
    def test_aliases(self, label, expected):
        assert AssetClass.parse(label) is expected

    def test_unknown_label(self):
        assert AssetClass.parse("real estate") is None
