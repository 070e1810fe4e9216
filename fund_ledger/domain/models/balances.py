"""Domain models for derived balances."""

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class ClientLiquidity:
    """Client-level cash position.

    Attributes:
        total_usd: Deposits minus withdrawals.
        allocated_usd: Net manual allocations into funds.
        available_usd: Cash not committed to any fund.
    """

    total_usd: Decimal
    allocated_usd: Decimal
    available_usd: Decimal

    @classmethod
    def zero(cls) -> "ClientLiquidity":
        """Return the liquidity of a client without history."""
        return cls(Decimal("0"), Decimal("0"), Decimal("0"))


@dataclass(frozen=True)
class FundBalance:
    """Cash position of a single fund.

    Attributes:
        allocated_usd: Net allocations into the fund.
        invested_usd: Cost of all purchases.
        recovered_usd: Proceeds of all sales.
        available_usd: Cash the fund can still spend.
    """

    allocated_usd: Decimal
    invested_usd: Decimal
    recovered_usd: Decimal
    available_usd: Decimal

    @classmethod
    def zero(cls) -> "FundBalance":
        """Return the balance of a fund without history."""
        return cls(Decimal("0"), Decimal("0"), Decimal("0"), Decimal("0"))

    @property
    def invested_ratio(self) -> Decimal:
        """Return invested cash as a percentage of allocated cash."""
        if self.allocated_usd <= 0:
            return Decimal("0")
        return self.invested_usd / self.allocated_usd * Decimal("100")


@dataclass(frozen=True)
class ClientNetWorth:
    """Client liquidity plus money placed in securities."""

    available_usd: Decimal
    allocated_usd: Decimal
    invested_usd: Decimal
    net_worth_usd: Decimal


@dataclass(frozen=True)
class Holding:
    """Open position of a security inside a fund."""

    security_id: int
    security_name: str | None
    quantity: int
    average_cost_usd: Decimal | None
    last_price_usd: Decimal | None
    market_value_usd: Decimal
    unrealized_usd: Decimal


__all__ = ["ClientLiquidity", "FundBalance", "ClientNetWorth", "Holding"]
