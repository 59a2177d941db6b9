"""Asset class enumeration used to pick a leverage rule."""

from enum import Enum


class AssetClass(Enum):
    """Asset classes with a configured leverage rule."""

    FOREX = "FOREX"
    INDICES = "INDICES"
    STOCKS = "STOCKS"
    COMMODITIES = "COMMODITIES"
    CRYPTO = "CRYPTO"

    @classmethod
    def parse(cls, label: "str | AssetClass") -> "AssetClass | None":
        """Map a free-form market type label to an asset class.

        Accepts the canonical names case-insensitively plus the singular and long
        forms used by market data feeds ("Stock", "Cryptocurrency", "Index", ...).
        Returns None when the label is not recognised.
        """
        if isinstance(label, AssetClass):
            return label
        key = label.strip().upper()
        if key in cls.__members__:
            return cls[key]
        return _ALIASES.get(key)


_ALIASES = {
    "FX": AssetClass.FOREX,
    "CURRENCY": AssetClass.FOREX,
    "CURRENCIES": AssetClass.FOREX,
    "INDEX": AssetClass.INDICES,
    "STOCK": AssetClass.STOCKS,
    "EQUITY": AssetClass.STOCKS,
    "EQUITIES": AssetClass.STOCKS,
    "COMMODITY": AssetClass.COMMODITIES,
    "CRYPTOCURRENCY": AssetClass.CRYPTO,
    "CRYPTOCURRENCIES": AssetClass.CRYPTO,
}
