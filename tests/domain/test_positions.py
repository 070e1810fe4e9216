"""Tests for security positions and holdings."""

from datetime import datetime
from decimal import Decimal

from fund_ledger.domain.constants import Currency, TradeSide
from fund_ledger.domain.models import Trade
from fund_ledger.domain.services.positions import (
    compute_holdings,
    compute_positions,
    value_positions,
)


def _trade(security_id: int, side: TradeSide, quantity: int, price: str):
    return Trade(
        client_id=1,
        fund_id=1,
        security_id=security_id,
        timestamp=datetime(2024, 1, 2),
        side=side,
        quantity=quantity,
        unit_price=Decimal(price),
        currency=Currency.USD,
        unit_price_usd=Decimal(price),
    )


def test_positions_net_buys_and_sells() -> None:
    trades = [
        _trade(1, TradeSide.BUY, 10, "30"),
        _trade(1, TradeSide.SELL, 4, "35"),
        _trade(2, TradeSide.BUY, 5, "10"),
        _trade(2, TradeSide.SELL, 5, "11"),
    ]

    assert compute_positions(trades) == {1: 6, 2: 0}


def test_value_positions_skips_closed_and_unpriced() -> None:
    positions = {1: 6, 2: 0, 3: 4}
    prices = {1: Decimal("40"), 2: Decimal("99")}

    assert value_positions(positions, prices) == Decimal("240")


def test_holdings_report_average_cost_and_unrealized_gain() -> None:
    trades = [
        _trade(1, TradeSide.BUY, 10, "30"),
        _trade(1, TradeSide.BUY, 10, "40"),
        _trade(1, TradeSide.SELL, 5, "45"),
        _trade(2, TradeSide.BUY, 1, "1000"),
        _trade(3, TradeSide.BUY, 2, "5"),
        _trade(3, TradeSide.SELL, 2, "6"),
    ]
    prices = {1: Decimal("50"), 2: Decimal("900")}

    holdings = compute_holdings(trades, prices, names={1: "ACME"})

    assert [holding.security_id for holding in holdings] == [2, 1]
    acme = holdings[1]
    assert acme.security_name == "ACME"
    assert acme.quantity == 15
    assert acme.average_cost_usd == Decimal("35")
    assert acme.market_value_usd == Decimal("750")
    assert acme.unrealized_usd == Decimal("225")
    assert holdings[0].unrealized_usd == Decimal("-100")


def test_holdings_without_price_have_zero_market_value() -> None:
    holdings = compute_holdings([_trade(4, TradeSide.BUY, 3, "2")], {})

    assert holdings[0].last_price_usd is None
    assert holdings[0].market_value_usd == Decimal("0")
    assert holdings[0].unrealized_usd == Decimal("0")
