"""Price snapshot resolution for valuation use cases."""

import logging
from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any

from margin_engine.application.interfaces.market_data import IPriceOracle

from ._decimal import to_decimal

logger = logging.getLogger(__name__)


async def resolve_prices(
    symbols: Iterable[str],
    explicit: Mapping[str, Any] | None,
    oracle: IPriceOracle | None,
) -> dict[str, Decimal]:
    """
    Build the price snapshot for ``symbols``.

    Explicit prices win; the oracle, when configured, is asked only for the
    symbols still missing. Symbols nobody can price are left out and callers
    value them at cost.
    """
    prices: dict[str, Decimal] = {}
    for symbol, value in (explicit or {}).items():
        price = to_decimal(value)
        if price is not None and price > 0:
            prices[symbol] = price

    missing = sorted({s for s in symbols if s not in prices})
    if missing and oracle is not None:
        try:
            fetched = await oracle.get_prices(missing)
        except Exception as e:
            logger.warning(
                f"Price oracle failed for {len(missing)} symbols, valuing them at cost: {e}",
                extra={"symbols": missing},
            )
            fetched = {}
        for symbol in missing:
            price = to_decimal(fetched.get(symbol))
            if price is not None and price > 0:
                prices[symbol] = price

    return prices
