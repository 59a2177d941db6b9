"""
Price Oracle Interface

Live prices are supplied by an external, independently scheduled collaborator.
The engine only asks for point-in-time snapshots and never subscribes or polls.
"""

from abc import abstractmethod
from collections.abc import Iterable
from decimal import Decimal
from typing import Protocol


class IPriceOracle(Protocol):
    """Source of current prices keyed by symbol."""

    @abstractmethod
    async def get_prices(self, symbols: Iterable[str]) -> dict[str, Decimal]:
        """
        Return the latest known price for each symbol.

        Symbols without a price are simply absent from the result; no staleness
        contract is enforced by the engine.
        """
        ...
