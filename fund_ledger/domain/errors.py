"""Errors raised by the ledger core.

Validation errors describe a request the ledger refuses; they carry a stable
``code`` and the numbers needed to explain the refusal. Store errors describe
a request the ledger could not evaluate and live in a separate hierarchy.
"""

from decimal import Decimal


class LedgerValidationError(Exception):
    """Base error for requests rejected by ledger rules."""

    code = "invalid_request"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class UnknownCurrencyError(LedgerValidationError):
    """Raised when a currency tag is not part of the supported set."""

    code = "unknown_currency"

    def __init__(self, currency) -> None:
        super().__init__(f"Unsupported currency: {currency!r}")
        self.currency = currency


class MissingExchangeRateError(LedgerValidationError):
    """Raised when a non-USD amount arrives without a usable FX rate."""

    code = "missing_exchange_rate"

    def __init__(self, currency: str) -> None:
        super().__init__(
            f"An exchange rate is required for {currency} amounts"
        )
        self.currency = currency


class InvalidAmountError(LedgerValidationError):
    """Raised when an amount or quantity is not a positive finite number."""

    code = "invalid_amount"

    def __init__(self, field: str, value) -> None:
        super().__init__(f"{field} must be greater than 0, got {value}")
        self.field = field
        self.value = value


class ClientNotFoundError(LedgerValidationError):
    """Raised when a client id does not exist."""

    code = "client_not_found"

    def __init__(self, client_id: int) -> None:
        super().__init__(f"Client not found: {client_id}")
        self.client_id = client_id


class FundNotFoundError(LedgerValidationError):
    """Raised when a fund id does not exist."""

    code = "fund_not_found"

    def __init__(self, fund_id: int) -> None:
        super().__init__(f"Fund not found: {fund_id}")
        self.fund_id = fund_id


class FundOwnershipMismatchError(LedgerValidationError):
    """Raised when a fund does not belong to the stated client."""

    code = "fund_ownership_mismatch"

    def __init__(self, fund_id: int, client_id: int) -> None:
        super().__init__(
            f"Fund {fund_id} does not belong to client {client_id}"
        )
        self.fund_id = fund_id
        self.client_id = client_id


class SecurityNotFoundError(LedgerValidationError):
    """Raised when a security id does not exist."""

    code = "security_not_found"

    def __init__(self, security_id: int) -> None:
        super().__init__(f"Security not found: {security_id}")
        self.security_id = security_id


class ConstraintViolationError(LedgerValidationError):
    """Raised when the store refuses a write that breaks its constraints."""

    code = "constraint_violation"

    def __init__(self, operation: str) -> None:
        super().__init__(
            f"The ledger store refused {operation}: a referenced record "
            "is missing or a value is out of range"
        )
        self.operation = operation


class ShortfallError(LedgerValidationError):
    """Base error for requests exceeding an available balance."""

    code = "shortfall"
    subject = "balance"

    def __init__(self, available: Decimal, requested: Decimal) -> None:
        self.available = available
        self.requested = requested
        self.shortfall = max(Decimal("0"), requested - available)
        super().__init__(
            f"Insufficient {self.subject}: requested {requested}, "
            f"available {available}, shortfall {self.shortfall}"
        )


class InsufficientLiquidityError(ShortfallError):
    """Raised when client-level available liquidity is too low."""

    code = "insufficient_liquidity"
    subject = "client liquidity"


class InsufficientFundBalanceError(ShortfallError):
    """Raised when a fund's available cash is too low."""

    code = "insufficient_fund_balance"
    subject = "fund balance"


class InsufficientPositionError(ShortfallError):
    """Raised when selling more units of a security than the fund holds."""

    code = "insufficient_position"
    subject = "position"


class StoreUnavailableError(Exception):
    """Raised when the event store cannot be reached or times out."""

    code = "store_unavailable"

    def __init__(self, reason: str) -> None:
        self.message = f"Ledger store unavailable: {reason}"
        super().__init__(self.message)
        self.reason = reason


__all__ = [
    "LedgerValidationError",
    "UnknownCurrencyError",
    "MissingExchangeRateError",
    "InvalidAmountError",
    "ClientNotFoundError",
    "FundNotFoundError",
    "FundOwnershipMismatchError",
    "SecurityNotFoundError",
    "ConstraintViolationError",
    "ShortfallError",
    "InsufficientLiquidityError",
    "InsufficientFundBalanceError",
    "InsufficientPositionError",
    "StoreUnavailableError",
]
