"""Money value object for representing monetary values with currency."""

# Standard library imports
from decimal import ROUND_HALF_UP, Decimal
from typing import Self

from ..constants import CURRENCY_CODE_LENGTH, DEFAULT_CURRENCY


class Money:
    """Immutable value object representing money with currency and precision."""

    __slots__ = ("_amount", "_currency")

    def __init__(
        self, amount: Decimal | float | int | str, currency: str = DEFAULT_CURRENCY
    ) -> None:
        """Initialize Money with amount and currency.

        Args:
            amount: The monetary amount (converted to Decimal)
            currency: ISO 4217 currency code (default: USD)

        Raises:
            ValueError: If currency is invalid
        """
        if not isinstance(amount, Decimal):
            amount = Decimal(str(amount))

        object.__setattr__(self, "_amount", amount)
        object.__setattr__(self, "_currency", currency.upper())

        if len(self._currency) != CURRENCY_CODE_LENGTH:
            raise ValueError(f"Invalid currency code: {currency}")

    def __setattr__(self, name: str, value: object) -> None:
        raise AttributeError(f"Cannot modify immutable Money attribute '{name}'")

    @property
    def amount(self) -> Decimal:
        """Get the decimal amount."""
        return self._amount

    @property
    def currency(self) -> str:
        """Get the currency code."""
        return self._currency

    def add(self, other: Self) -> Self:
        """Add two money values.

        Raises:
            ValueError: If currencies don't match
        """
        if not isinstance(other, Money):
            raise TypeError(f"Cannot add Money and {type(other)}")
        if self._currency != other._currency:
            raise ValueError(f"Cannot add {self._currency} and {other._currency}")

        return type(self)(self._amount + other._amount, self._currency)

    def subtract(self, other: Self) -> Self:
        """Subtract another money value.

        Raises:
            ValueError: If currencies don't match
        """
        if not isinstance(other, Money):
            raise TypeError(f"Cannot subtract {type(other)} from Money")
        if self._currency != other._currency:
            raise ValueError(f"Cannot subtract {other._currency} from {self._currency}")

        return type(self)(self._amount - other._amount, self._currency)

    def round(self, decimal_places: int = 2) -> Self:
        """Round half-up to the given number of decimal places."""
        quantizer = Decimal(10) ** -decimal_places
        rounded = self._amount.quantize(quantizer, rounding=ROUND_HALF_UP)
        return type(self)(rounded, self._currency)

    def is_negative(self) -> bool:
        """Check if amount is negative."""
        return self._amount < 0

    def format(self, include_currency: bool = True, decimal_places: int = 2) -> str:
        """Format money for display.

        Args:
            include_currency: Whether to include currency symbol
            decimal_places: Number of decimal places to show

        Returns:
            Formatted string representation, e.g. ``$1,100.00`` or ``-$5.00``
        """
        display_amount = self.round(decimal_places)._amount
        formatted = f"{abs(display_amount):,.{decimal_places}f}"
        sign = "-" if display_amount < 0 else ""

        if include_currency:
            if self._currency == "USD":
                return f"{sign}${formatted}"
            return f"{sign}{formatted} {self._currency}"

        return f"{sign}{formatted}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Money):
            return False
        return self._amount == other._amount and self._currency == other._currency

    def __hash__(self) -> int:
        return hash((self._amount, self._currency))

    def __repr__(self) -> str:
        return f"Money({self._amount}, '{self._currency}')"

    def __str__(self) -> str:
        return self.format()
