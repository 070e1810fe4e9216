"""Return calculations for funds and portfolios."""

from collections.abc import Iterable, Sequence
from datetime import date, datetime
from decimal import Decimal

from fund_ledger.domain.constants import AllocationKind
from fund_ledger.domain.models import (
    Allocation,
    FundReturn,
    NetFlow,
    PortfolioReturns,
)
from fund_ledger.utils.decimal_utils import coerce_decimal

HUNDRED = Decimal("100")


def twr(value_start, value_end, net_flow) -> Decimal:
    """Return the period time-weighted return in percent.

    A zero or negative starting value has no meaningful rate of return and
    yields 0.

    Args:
        value_start: Valuation at the start of the period.
        value_end: Valuation at the end of the period.
        net_flow: Deposits minus withdrawals during the period.

    Returns:
        Decimal: ``(end - start - flow) / start * 100``.
    """
    start = coerce_decimal(value_start)
    if start <= 0:
        return Decimal("0")
    gain = coerce_decimal(value_end) - start - coerce_decimal(net_flow)
    return gain / start * HUNDRED


def cumulative_return(period_returns: Iterable) -> Decimal:
    """Chain-link period returns expressed in percent."""
    growth = Decimal("1")
    for period_return in period_returns:
        growth *= Decimal("1") + coerce_decimal(period_return) / HUNDRED
    return (growth - Decimal("1")) * HUNDRED


def weighted_average(values: Sequence, weights: Sequence) -> Decimal:
    """Return the weighted mean of ``values``.

    Entries with a non-positive weight are left out of the denominator.

    Raises:
        ValueError: If ``values`` and ``weights`` differ in length.
    """
    if len(values) != len(weights):
        raise ValueError("values and weights must have the same length")
    numerator = Decimal("0")
    denominator = Decimal("0")
    for value, weight in zip(values, weights):
        weight = coerce_decimal(weight)
        if weight <= 0:
            continue
        numerator += coerce_decimal(value) * weight
        denominator += weight
    if denominator == 0:
        return Decimal("0")
    return numerator / denominator


def compute_net_flow(
    allocations: Iterable[Allocation],
    start_date: date | None = None,
    end_date: date | None = None,
) -> NetFlow:
    """Sum manual allocations of a fund within an inclusive date range.

    Args:
        allocations: Allocations of a single fund.
        start_date: First day of the period, or None for unbounded.
        end_date: Last day of the period, or None for unbounded.

    Returns:
        NetFlow: Deposits, withdrawals, and their difference.
    """
    deposits = Decimal("0")
    withdrawals = Decimal("0")
    for allocation in allocations:
        if not allocation.is_manual:
            continue
        if not _within(allocation.timestamp, start_date, end_date):
            continue
        if allocation.kind == AllocationKind.ASSIGN:
            deposits += allocation.amount_usd
        else:
            withdrawals += allocation.amount_usd
    return NetFlow(
        deposits=deposits,
        withdrawals=withdrawals,
        net=deposits - withdrawals,
    )


def aggregate_fund_returns(funds: list[FundReturn]) -> PortfolioReturns:
    """Aggregate per-fund returns into portfolio figures.

    The average only includes funds whose return was computable; the
    weighted return weights those funds by starting value.
    """
    total_value = sum((fund.value_end for fund in funds), Decimal("0"))
    net_flows = sum((fund.flows.net for fund in funds), Decimal("0"))
    computable = [fund for fund in funds if fund.computable]
    average = Decimal("0")
    if computable:
        average = sum(
            (fund.twr for fund in computable),
            Decimal("0"),
        ) / len(computable)
    weighted = weighted_average(
        [fund.twr for fund in funds],
        [fund.value_start for fund in funds],
    )
    return PortfolioReturns(
        active_funds=len(funds),
        total_value=total_value,
        net_flows=net_flows,
        average_return=average,
        weighted_return=weighted,
        funds=funds,
    )


def _within(
    timestamp: datetime | date,
    start_date: date | None,
    end_date: date | None,
) -> bool:
    day = timestamp.date() if isinstance(timestamp, datetime) else timestamp
    if start_date and day < start_date:
        return False
    if end_date and day > end_date:
        return False
    return True


__all__ = [
    "twr",
    "cumulative_return",
    "weighted_average",
    "compute_net_flow",
    "aggregate_fund_returns",
]
