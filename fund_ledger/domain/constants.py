"""Domain constants for the liquidity ledger."""

from enum import Enum

from fund_ledger.domain.errors import UnknownCurrencyError


class Currency(str, Enum):
    """Currencies accepted by the ledger."""

    USD = "USD"
    USDT = "USDT"
    ARS = "ARS"

    @property
    def requires_conversion(self) -> bool:
        """Return True when amounts must be divided by an FX rate."""
        return CONVERSION_TABLE[self]

    @classmethod
    def parse(cls, raw: "str | Currency") -> "Currency":
        """Resolve a raw currency tag into a Currency member.

        Args:
            raw: Currency code such as ``"usd"`` or ``"ARS"``.

        Returns:
            Currency: Matching enum member.

        Raises:
            UnknownCurrencyError: If the tag is not a supported currency.
        """
        if isinstance(raw, Currency):
            return raw
        cleaned = str(raw or "").strip().upper()
        try:
            return cls(cleaned)
        except ValueError:
            raise UnknownCurrencyError(raw) from None


# True when the currency is quoted against USD through an FX rate.
CONVERSION_TABLE = {
    Currency.USD: False,
    Currency.USDT: False,
    Currency.ARS: True,
}

USD_EQUIVALENT_CURRENCIES = tuple(
    currency for currency, convert in CONVERSION_TABLE.items() if not convert
)


class CashMovementKind(str, Enum):
    """Client-level cash movement kinds."""

    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"


class AllocationKind(str, Enum):
    """Direction of a client-to-fund transfer."""

    ASSIGN = "assign"
    UNASSIGN = "unassign"


class AllocationOrigin(str, Enum):
    """Who produced an allocation record."""

    MANUAL = "manual"
    SYSTEM = "system"


class TradeSide(str, Enum):
    """Side of a fund trade."""

    BUY = "buy"
    SELL = "sell"


__all__ = [
    "Currency",
    "CONVERSION_TABLE",
    "USD_EQUIVALENT_CURRENCIES",
    "CashMovementKind",
    "AllocationKind",
    "AllocationOrigin",
    "TradeSide",
]
