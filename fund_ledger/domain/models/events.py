"""Domain models for ledger entities and events.

Every record here is an immutable fact. Events carry an ``id`` once the store
has appended them; drafts built by the mutation appliers have ``id=None``.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from fund_ledger.domain.constants import (
    AllocationKind,
    AllocationOrigin,
    CashMovementKind,
    Currency,
    TradeSide,
)


@dataclass(frozen=True)
class Client:
    """Investor owning cash and funds."""

    id: int
    name: str


@dataclass(frozen=True)
class Fund:
    """Bucket of a client's capital following one strategy.

    Attributes:
        id: Fund identifier.
        client_id: Owning client.
        name: Display name of the fund.
        strategy: Strategy tag (retirement, goal, open-ended, ...).
        target_date: Optional strategy target date.
        target_amount: Optional strategy target amount.
        target_currency: Currency of ``target_amount``.
        opened_at: When the fund was opened.
    """

    id: int
    client_id: int
    name: str
    strategy: str | None = None
    target_date: date | None = None
    target_amount: Decimal | None = None
    target_currency: str | None = None
    opened_at: datetime | None = None


@dataclass(frozen=True)
class Security:
    """Named instrument traded inside funds."""

    id: int
    name: str


@dataclass(frozen=True)
class SecurityPrice:
    """Price observation for a security, in USD."""

    security_id: int
    date: date
    price_usd: Decimal


@dataclass(frozen=True)
class ExchangeRate:
    """Daily quote of a convertible currency, in units per USD."""

    currency: Currency
    date: date
    rate: Decimal


@dataclass(frozen=True)
class CashMovement:
    """Client-level deposit or withdrawal of external cash."""

    client_id: int
    timestamp: datetime
    kind: CashMovementKind
    amount: Decimal
    currency: Currency
    amount_usd: Decimal
    fx_rate: Decimal | None = None
    comment: str | None = None
    id: int | None = None

    @property
    def signed_amount_usd(self) -> Decimal:
        """Return the USD amount signed by movement kind."""
        if self.kind == CashMovementKind.WITHDRAWAL:
            return -self.amount_usd
        return self.amount_usd


@dataclass(frozen=True)
class Allocation:
    """Transfer of client cash into or out of a fund's float."""

    client_id: int
    fund_id: int
    timestamp: datetime
    kind: AllocationKind
    amount_usd: Decimal
    origin: AllocationOrigin = AllocationOrigin.MANUAL
    amount: Decimal | None = None
    currency: Currency = Currency.USD
    fx_rate: Decimal | None = None
    comment: str | None = None
    id: int | None = None

    @property
    def signed_amount_usd(self) -> Decimal:
        """Return the USD amount signed by allocation kind."""
        if self.kind == AllocationKind.UNASSIGN:
            return -self.amount_usd
        return self.amount_usd

    @property
    def is_manual(self) -> bool:
        """Return True for advisor-entered allocations."""
        return self.origin == AllocationOrigin.MANUAL


@dataclass(frozen=True)
class Trade:
    """Buy or sell of a security inside a fund."""

    client_id: int
    fund_id: int
    security_id: int
    timestamp: datetime
    side: TradeSide
    quantity: int
    unit_price: Decimal
    currency: Currency
    unit_price_usd: Decimal
    fx_rate: Decimal | None = None
    id: int | None = None

    @property
    def cost_usd(self) -> Decimal:
        """Return the trade notional in USD."""
        return self.unit_price_usd * self.quantity

    @property
    def signed_quantity(self) -> int:
        """Return the quantity signed by trade side."""
        if self.side == TradeSide.SELL:
            return -self.quantity
        return self.quantity


__all__ = [
    "Client",
    "Fund",
    "Security",
    "SecurityPrice",
    "ExchangeRate",
    "CashMovement",
    "Allocation",
    "Trade",
]
