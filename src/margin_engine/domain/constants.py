"""Domain-wide constants."""

from decimal import Decimal

CURRENCY_CODE_LENGTH = 3
DEFAULT_CURRENCY = "USD"

# Residual units below this are treated as a fully closed portfolio entry
POSITION_EPSILON = Decimal("0.0001")

PERCENT = Decimal("100")
ZERO = Decimal("0")
