"""Currency normalization into USD."""

from datetime import date
from decimal import Decimal

from fund_ledger.domain.constants import Currency
from fund_ledger.domain.errors import (
    InvalidAmountError,
    LedgerValidationError,
    MissingExchangeRateError,
)
from fund_ledger.domain.models import ExchangeRate
from fund_ledger.utils.decimal_utils import coerce_decimal


def to_usd(
    amount,
    currency: Currency | str,
    fx_rate=None,
) -> Decimal:
    """Convert an amount tagged with a currency into USD.

    Args:
        amount: Positive amount in ``currency``.
        currency: Currency enum member or raw tag.
        fx_rate: Units of ``currency`` per USD, required for convertible
            currencies and ignored otherwise.

    Returns:
        Decimal: Amount expressed in USD.

    Raises:
        InvalidAmountError: If ``amount`` is not a positive finite number.
        UnknownCurrencyError: If ``currency`` is not supported.
        MissingExchangeRateError: If a required rate is absent or unusable.
    """
    value = _finite("amount", amount)
    if value <= 0:
        raise InvalidAmountError("amount", value)
    resolved = Currency.parse(currency)
    if not resolved.requires_conversion:
        return value
    return value / _require_rate(resolved, fx_rate)


def to_native(
    amount_usd,
    currency: Currency | str,
    fx_rate=None,
) -> Decimal:
    """Convert a USD amount back into ``currency``.

    Args:
        amount_usd: Amount in USD.
        currency: Target currency.
        fx_rate: Units of ``currency`` per USD.

    Returns:
        Decimal: Amount expressed in ``currency``.
    """
    value = _finite("amount_usd", amount_usd)
    resolved = Currency.parse(currency)
    if not resolved.requires_conversion:
        return value
    return value * _require_rate(resolved, fx_rate)


def build_exchange_rate(
    currency: Currency | str,
    rate_date: date,
    rate,
) -> ExchangeRate:
    """Validate a daily quote before it is stored.

    Args:
        currency: Convertible currency being quoted.
        rate_date: Day the quote applies to.
        rate: Units of ``currency`` per USD.

    Returns:
        ExchangeRate: Normalized quote.

    Raises:
        UnknownCurrencyError: If ``currency`` is not supported.
        LedgerValidationError: If ``currency`` is pegged to USD.
        InvalidAmountError: If ``rate`` is not a positive finite number.
    """
    resolved = Currency.parse(currency)
    if not resolved.requires_conversion:
        raise LedgerValidationError(
            f"{resolved.value} is settled 1:1 with USD and takes no rate"
        )
    value = _finite("fx_rate", rate)
    if value <= 0:
        raise InvalidAmountError("fx_rate", value)
    return ExchangeRate(currency=resolved, date=rate_date, rate=value)


def _require_rate(currency: Currency, fx_rate) -> Decimal:
    if fx_rate is None:
        raise MissingExchangeRateError(currency.value)
    rate = _finite("fx_rate", fx_rate)
    if rate <= 0:
        raise MissingExchangeRateError(currency.value)
    return rate


def _finite(field: str, raw) -> Decimal:
    try:
        value = coerce_decimal(raw)
    except ArithmeticError as exc:
        raise InvalidAmountError(field, raw) from exc
    if not value.is_finite():
        raise InvalidAmountError(field, raw)
    return value


__all__ = ["to_usd", "to_native", "build_exchange_rate"]
