"""Domain models for fund performance reporting."""

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class NetFlow:
    """Manual cash flows into and out of a fund over a period."""

    deposits: Decimal
    withdrawals: Decimal
    net: Decimal

    @classmethod
    def zero(cls) -> "NetFlow":
        """Return an empty flow."""
        return cls(Decimal("0"), Decimal("0"), Decimal("0"))


@dataclass(frozen=True)
class FundReturn:
    """Performance of one fund over a period.

    Attributes:
        fund_id: Fund identifier.
        name: Fund display name.
        strategy: Strategy tag of the fund.
        value_start: Valuation at the start of the period.
        value_end: Valuation at the end of the period.
        securities_value: Market value of open positions at the end.
        cash_value: Fund cash at the end.
        flows: Manual flows during the period.
        twr: Time-weighted return in percent.
        computable: False when ``value_start`` was not positive.
        gain: ``value_end - value_start - flows.net``.
    """

    fund_id: int
    name: str
    strategy: str | None
    value_start: Decimal
    value_end: Decimal
    securities_value: Decimal
    cash_value: Decimal
    flows: NetFlow
    twr: Decimal
    computable: bool
    gain: Decimal


@dataclass(frozen=True)
class PortfolioReturns:
    """Aggregated performance across a client's funds."""

    active_funds: int
    total_value: Decimal
    net_flows: Decimal
    average_return: Decimal
    weighted_return: Decimal
    funds: list[FundReturn]


__all__ = ["NetFlow", "FundReturn", "PortfolioReturns"]
