"""Pure folds turning event histories into balances.

Folds are plain sums, so the order in which events arrive does not change the
result. Amounts are accumulated at full precision; rounding belongs to the
presentation layer.
"""

from collections.abc import Iterable, Mapping
from decimal import Decimal
from logging import Logger

from fund_ledger.domain.constants import TradeSide
from fund_ledger.domain.models import (
    Allocation,
    CashMovement,
    ClientLiquidity,
    ClientNetWorth,
    FundBalance,
    Trade,
)


def compute_client_liquidity(
    cash_movements: Iterable[CashMovement],
    allocations: Iterable[Allocation],
) -> ClientLiquidity:
    """Fold a client's cash and allocation history.

    Only manual allocations draw on client cash; system allocations move
    sale proceeds inside a fund.

    Args:
        cash_movements: Full cash movement history of the client.
        allocations: Full allocation history of the client.

    Returns:
        ClientLiquidity: Total, allocated, and available USD.
    """
    total = sum(
        (movement.signed_amount_usd for movement in cash_movements),
        Decimal("0"),
    )
    allocated = sum(
        (
            allocation.signed_amount_usd
            for allocation in allocations
            if allocation.is_manual
        ),
        Decimal("0"),
    )
    return ClientLiquidity(
        total_usd=total,
        allocated_usd=allocated,
        available_usd=total - allocated,
    )


def compute_fund_balance(
    allocations: Iterable[Allocation],
    trades: Iterable[Trade],
) -> FundBalance:
    """Fold the allocation and trade history of a single fund.

    Args:
        allocations: Allocations scoped to the fund.
        trades: Trades scoped to the fund.

    Returns:
        FundBalance: Allocated, invested, recovered, and available USD.
    """
    allocated = sum(
        (allocation.signed_amount_usd for allocation in allocations),
        Decimal("0"),
    )
    invested = Decimal("0")
    recovered = Decimal("0")
    for trade in trades:
        if trade.side == TradeSide.BUY:
            invested += trade.cost_usd
        else:
            recovered += trade.cost_usd
    return FundBalance(
        allocated_usd=allocated,
        invested_usd=invested,
        recovered_usd=recovered,
        available_usd=allocated - invested + recovered,
    )


def compute_fund_balances(
    fund_ids: Iterable[int],
    allocations: Iterable[Allocation],
    trades: Iterable[Trade],
    logger: Logger | None = None,
) -> dict[int, FundBalance]:
    """Fold client-wide histories into one balance per fund.

    Each collection is traversed once and grouped by fund.

    Args:
        fund_ids: Funds owned by the client; each gets an entry.
        allocations: Full allocation history of the client.
        trades: Full trade history of the client.
        logger: Optional logger warning about events on unknown funds.

    Returns:
        dict[int, FundBalance]: Balance per fund id.
    """
    known = list(fund_ids)
    allocations_by_fund: dict[int, list[Allocation]] = {
        fund_id: [] for fund_id in known
    }
    trades_by_fund: dict[int, list[Trade]] = {fund_id: [] for fund_id in known}
    for allocation in allocations:
        allocations_by_fund.setdefault(allocation.fund_id, []).append(
            allocation
        )
    for trade in trades:
        trades_by_fund.setdefault(trade.fund_id, []).append(trade)

    orphans = (set(allocations_by_fund) | set(trades_by_fund)) - set(known)
    if orphans and logger is not None:
        logger.warning(
            f"Events reference funds outside the client: {sorted(orphans)}"
        )

    fund_keys = known + sorted(orphans)
    return {
        fund_id: compute_fund_balance(
            allocations_by_fund.get(fund_id, []),
            trades_by_fund.get(fund_id, []),
        )
        for fund_id in fund_keys
    }


def compute_client_net_worth(
    liquidity: ClientLiquidity,
    fund_balances: Mapping[int, FundBalance],
) -> ClientNetWorth:
    """Combine client liquidity with the money placed in securities.

    Args:
        liquidity: Client-level liquidity.
        fund_balances: Balances of every fund of the client.

    Returns:
        ClientNetWorth: Liquidity plus invested cost.
    """
    invested = sum(
        (balance.invested_usd for balance in fund_balances.values()),
        Decimal("0"),
    )
    return ClientNetWorth(
        available_usd=liquidity.available_usd,
        allocated_usd=liquidity.allocated_usd,
        invested_usd=invested,
        net_worth_usd=liquidity.total_usd + invested,
    )


__all__ = [
    "compute_client_liquidity",
    "compute_fund_balance",
    "compute_fund_balances",
    "compute_client_net_worth",
]
