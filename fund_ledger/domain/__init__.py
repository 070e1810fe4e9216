"""Domain package for ledger rules and core models."""

from .constants import (
    AllocationKind,
    AllocationOrigin,
    CashMovementKind,
    Currency,
    TradeSide,
)
from .errors import (
    ClientNotFoundError,
    ConstraintViolationError,
    FundNotFoundError,
    FundOwnershipMismatchError,
    InsufficientFundBalanceError,
    InsufficientLiquidityError,
    InsufficientPositionError,
    InvalidAmountError,
    LedgerValidationError,
    MissingExchangeRateError,
    SecurityNotFoundError,
    StoreUnavailableError,
    UnknownCurrencyError,
)
from .models import (
    Allocation,
    CashMovement,
    Client,
    ClientLiquidity,
    Fund,
    FundBalance,
    Trade,
)

__all__ = [
    "Allocation",
    "AllocationKind",
    "AllocationOrigin",
    "CashMovement",
    "CashMovementKind",
    "Client",
    "ClientNotFoundError",
    "ClientLiquidity",
    "ConstraintViolationError",
    "Currency",
    "Fund",
    "FundBalance",
    "FundNotFoundError",
    "FundOwnershipMismatchError",
    "InsufficientFundBalanceError",
    "InsufficientLiquidityError",
    "InsufficientPositionError",
    "InvalidAmountError",
    "LedgerValidationError",
    "MissingExchangeRateError",
    "SecurityNotFoundError",
    "StoreUnavailableError",
    "Trade",
    "TradeSide",
    "UnknownCurrencyError",
]
