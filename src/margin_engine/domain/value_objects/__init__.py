"""Immutable value objects for type safety."""

from .account_metrics import AccountMetrics, RiskSeverity
from .asset_class import AssetClass
from .margin_requirement import MarginRequirement
from .money import Money

__all__ = ["AccountMetrics", "AssetClass", "MarginRequirement", "Money", "RiskSeverity"]
