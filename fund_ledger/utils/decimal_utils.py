"""Helpers for Decimal normalization."""

from decimal import ROUND_HALF_UP, Decimal

USD_QUANTUM = Decimal("0.01")


def coerce_decimal(value) -> Decimal:
    """Normalize numeric values to Decimal.

    Args:
        value: Raw numeric value from SQL or adapters.

    Returns:
        Decimal: Normalized numeric value.
    """
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def quantize_usd(value) -> Decimal:
    """Round a USD amount to cents for responses and display.

    Folds accumulate at full precision; this is only applied on the way out.

    Args:
        value: Amount to round.

    Returns:
        Decimal: Amount rounded half-up to two decimal places.
    """
    return coerce_decimal(value).quantize(USD_QUANTUM, rounding=ROUND_HALF_UP)


__all__ = ["USD_QUANTUM", "coerce_decimal", "quantize_usd"]
