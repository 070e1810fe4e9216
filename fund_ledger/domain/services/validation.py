"""Domain checks guarding liquidity-consuming operations.

Each check raises a ``LedgerValidationError`` subclass and otherwise returns
nothing; the application layer turns errors into structured outcomes.
"""

from decimal import Decimal

from fund_ledger.domain.errors import (
    ClientNotFoundError,
    FundNotFoundError,
    FundOwnershipMismatchError,
    InsufficientFundBalanceError,
    InsufficientLiquidityError,
    InsufficientPositionError,
    InvalidAmountError,
    SecurityNotFoundError,
)
from fund_ledger.domain.models import (
    Client,
    ClientLiquidity,
    Fund,
    FundBalance,
    Security,
)
from fund_ledger.utils.decimal_utils import coerce_decimal


def ensure_positive(field: str, value) -> Decimal:
    """Reject missing, non-finite, zero or negative amounts and quantities.

    Returns:
        Decimal: The value as a Decimal.
    """
    if value is None:
        raise InvalidAmountError(field, value)
    try:
        amount = coerce_decimal(value)
    except ArithmeticError as exc:
        raise InvalidAmountError(field, value) from exc
    if not amount.is_finite() or amount <= 0:
        raise InvalidAmountError(field, value)
    return amount


def ensure_client_exists(client: Client | None, client_id: int) -> Client:
    """Verify that the client named by a request exists."""
    if client is None:
        raise ClientNotFoundError(client_id)
    return client


def ensure_security_exists(
    securities: list[Security],
    security_id: int,
) -> Security:
    """Return the security with ``security_id`` from a store lookup."""
    for security in securities:
        if security.id == security_id:
            return security
    raise SecurityNotFoundError(security_id)


def ensure_fund_owned(
    fund: Fund | None,
    fund_id: int,
    client_id: int,
) -> Fund:
    """Verify that ``fund`` exists and belongs to ``client_id``.

    Args:
        fund: Fund loaded from the store, or None if missing.
        fund_id: Fund id named by the request.
        client_id: Client id named by the request.

    Returns:
        Fund: The verified fund.
    """
    if fund is None:
        raise FundNotFoundError(fund_id)
    if fund.client_id != client_id:
        raise FundOwnershipMismatchError(fund_id, client_id)
    return fund


def ensure_client_liquidity(
    liquidity: ClientLiquidity,
    amount_usd: Decimal,
) -> None:
    """Require enough unallocated client cash for ``amount_usd``."""
    ensure_positive("amount_usd", amount_usd)
    if amount_usd > liquidity.available_usd:
        raise InsufficientLiquidityError(liquidity.available_usd, amount_usd)


def ensure_fund_balance(balance: FundBalance, amount_usd: Decimal) -> None:
    """Require enough fund cash for ``amount_usd``."""
    ensure_positive("amount_usd", amount_usd)
    if amount_usd > balance.available_usd:
        raise InsufficientFundBalanceError(balance.available_usd, amount_usd)


def ensure_position(held: int, quantity: int) -> None:
    """Require that a sale does not exceed the held quantity."""
    ensure_positive("quantity", quantity)
    if quantity > held:
        raise InsufficientPositionError(Decimal(held), Decimal(quantity))


__all__ = [
    "ensure_positive",
    "ensure_client_exists",
    "ensure_security_exists",
    "ensure_fund_owned",
    "ensure_client_liquidity",
    "ensure_fund_balance",
    "ensure_position",
]
