"""
AccountMetrics Value Object

Point-in-time risk snapshot of a margin account: equity, margin usage and the
margin-call state derived from them.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any


class RiskSeverity(Enum):
    """Margin risk bands shown to the account holder."""

    SAFE = "safe"
    WARNING = "warning"
    DANGER = "danger"


@dataclass(frozen=True)
class AccountMetrics:
    """
    Value object representing account-level margin metrics.

    ``margin_level`` is ``None`` when no margin is in use; the level is then
    unbounded and the account can never be in a margin call.
    """

    balance: Decimal
    equity: Decimal
    used_margin: Decimal
    free_margin: Decimal
    margin_level: Decimal | None
    unrealized_pnl: Decimal
    realized_pnl: Decimal
    total_positions: int
    margin_call_level: Decimal
    is_margin_call: bool
    margin_warning_multiplier: Decimal = Decimal("1.5")

    @property
    def is_unbounded(self) -> bool:
        return self.margin_level is None

    @property
    def warning_level(self) -> Decimal:
        return self.margin_call_level * self.margin_warning_multiplier

    @property
    def is_warning(self) -> bool:
        if self.margin_level is None:
            return False
        return self.margin_level <= self.warning_level

    @property
    def risk_severity(self) -> RiskSeverity:
        """Classify the margin level into safe / warning / danger."""
        if self.margin_level is None:
            return RiskSeverity.SAFE
        if self.margin_level <= self.margin_call_level:
            return RiskSeverity.DANGER
        if self.margin_level <= self.warning_level:
            return RiskSeverity.WARNING
        return RiskSeverity.SAFE

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the external get_account_metrics shape."""
        return {
            "balance": self.balance,
            "equity": self.equity,
            "usedMargin": self.used_margin,
            "freeMargin": self.free_margin,
            "marginLevel": self.margin_level,
            "unrealizedPnl": self.unrealized_pnl,
            "realizedPnl": self.realized_pnl,
            "totalPositions": self.total_positions,
            "marginCallLevel": self.margin_call_level,
            "isMarginCall": self.is_margin_call,
            "riskSeverity": self.risk_severity.value,
        }
