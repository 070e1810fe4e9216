"""Tests for the balance folds."""

from datetime import datetime
from decimal import Decimal
import random
from unittest.mock import MagicMock

from fund_ledger.domain.constants import (
    AllocationKind,
    AllocationOrigin,
    CashMovementKind,
    Currency,
    TradeSide,
)
from fund_ledger.domain.models import (
    Allocation,
    CashMovement,
    ClientLiquidity,
    FundBalance,
    Trade,
)
from fund_ledger.domain.services.balances import (
    compute_client_liquidity,
    compute_client_net_worth,
    compute_fund_balance,
    compute_fund_balances,
)

TS = datetime(2024, 3, 1, 10, 0)


def _cash(kind: CashMovementKind, amount: str) -> CashMovement:
    return CashMovement(
        client_id=1,
        timestamp=TS,
        kind=kind,
        amount=Decimal(amount),
        currency=Currency.USD,
        amount_usd=Decimal(amount),
    )


def _allocation(
    fund_id: int,
    kind: AllocationKind,
    amount: str,
    origin: AllocationOrigin = AllocationOrigin.MANUAL,
) -> Allocation:
    return Allocation(
        client_id=1,
        fund_id=fund_id,
        timestamp=TS,
        kind=kind,
        amount_usd=Decimal(amount),
        origin=origin,
    )


def _trade(fund_id: int, side: TradeSide, quantity: int, price: str) -> Trade:
    return Trade(
        client_id=1,
        fund_id=fund_id,
        security_id=7,
        timestamp=TS,
        side=side,
        quantity=quantity,
        unit_price=Decimal(price),
        currency=Currency.USD,
        unit_price_usd=Decimal(price),
    )


def test_empty_history_is_all_zero() -> None:
    assert compute_client_liquidity([], []) == ClientLiquidity.zero()
    assert compute_fund_balance([], []) == FundBalance.zero()


def test_client_liquidity_ignores_system_allocations() -> None:
    """Sale proceeds stay inside the fund and do not reduce client cash."""
    movements = [
        _cash(CashMovementKind.DEPOSIT, "1000"),
        _cash(CashMovementKind.WITHDRAWAL, "100"),
    ]
    allocations = [
        _allocation(1, AllocationKind.ASSIGN, "400"),
        _allocation(1, AllocationKind.UNASSIGN, "50"),
        _allocation(1, AllocationKind.ASSIGN, "350", AllocationOrigin.SYSTEM),
    ]

    liquidity = compute_client_liquidity(movements, allocations)

    assert liquidity == ClientLiquidity(
        total_usd=Decimal("900"),
        allocated_usd=Decimal("350"),
        available_usd=Decimal("550"),
    )


def test_fund_balance_counts_every_origin_and_trade_side() -> None:
    allocations = [
        _allocation(1, AllocationKind.ASSIGN, "400"),
        _allocation(1, AllocationKind.ASSIGN, "350", AllocationOrigin.SYSTEM),
    ]
    trades = [
        _trade(1, TradeSide.BUY, 10, "30"),
        _trade(1, TradeSide.SELL, 10, "35"),
    ]

    balance = compute_fund_balance(allocations, trades)

    assert balance == FundBalance(
        allocated_usd=Decimal("750"),
        invested_usd=Decimal("300"),
        recovered_usd=Decimal("350"),
        available_usd=Decimal("800"),
    )
    assert balance.invested_ratio == Decimal("40")


def test_fund_balances_include_funds_without_events() -> None:
    logger = MagicMock()
    allocations = [_allocation(1, AllocationKind.ASSIGN, "100")]

    balances = compute_fund_balances([1, 2], allocations, [], logger=logger)

    assert list(balances) == [1, 2]
    assert balances[2] == FundBalance.zero()
    logger.warning.assert_not_called()


def test_fund_balances_warn_about_foreign_funds() -> None:
    logger = MagicMock()
    trades = [_trade(9, TradeSide.BUY, 1, "5")]

    balances = compute_fund_balances([1], [], trades, logger=logger)

    assert balances[9].invested_usd == Decimal("5")
    logger.warning.assert_called_once()


def test_net_worth_adds_invested_cost_to_total_cash() -> None:
    liquidity = ClientLiquidity(
        total_usd=Decimal("1000"),
        allocated_usd=Decimal("400"),
        available_usd=Decimal("600"),
    )
    balances = {
        1: FundBalance(
            Decimal("400"), Decimal("300"), Decimal("0"), Decimal("100")
        ),
        2: FundBalance.zero(),
    }

    worth = compute_client_net_worth(liquidity, balances)

    assert worth.invested_usd == Decimal("300")
    assert worth.net_worth_usd == Decimal("1300")
    assert worth.available_usd == Decimal("600")


def test_folds_do_not_depend_on_event_order() -> None:
    movements = [
        _cash(CashMovementKind.DEPOSIT, "1000"),
        _cash(CashMovementKind.WITHDRAWAL, "250.25"),
        _cash(CashMovementKind.DEPOSIT, "19.99"),
    ]
    allocations = [
        _allocation(1, AllocationKind.ASSIGN, "300"),
        _allocation(1, AllocationKind.UNASSIGN, "12.5"),
        _allocation(2, AllocationKind.ASSIGN, "100"),
    ]
    trades = [
        _trade(1, TradeSide.BUY, 3, "20"),
        _trade(1, TradeSide.SELL, 1, "22.5"),
    ]
    expected_liquidity = compute_client_liquidity(movements, allocations)
    expected_balance = compute_fund_balance(allocations[:2], trades)

    shuffler = random.Random(42)
    for _ in range(20):
        shuffler.shuffle(movements)
        shuffler.shuffle(allocations)
        shuffler.shuffle(trades)
        fund_one = [a for a in allocations if a.fund_id == 1]
        assert compute_client_liquidity(movements, allocations) == (
            expected_liquidity
        )
        assert compute_fund_balance(fund_one, trades) == expected_balance
