"""Security positions held by funds."""

from collections.abc import Iterable, Mapping
from decimal import Decimal

from fund_ledger.domain.constants import TradeSide
from fund_ledger.domain.models import Holding, Trade


def compute_positions(trades: Iterable[Trade]) -> dict[int, int]:
    """Return the net quantity held per security.

    Args:
        trades: Trades of a single fund.

    Returns:
        dict[int, int]: Quantity per security id, zero positions included.
    """
    positions: dict[int, int] = {}
    for trade in trades:
        positions[trade.security_id] = (
            positions.get(trade.security_id, 0) + trade.signed_quantity
        )
    return positions


def value_positions(
    positions: Mapping[int, int],
    prices: Mapping[int, Decimal],
) -> Decimal:
    """Value open positions at the given prices.

    Securities without a known price contribute nothing.
    """
    return sum(
        (
            prices.get(security_id, Decimal("0")) * quantity
            for security_id, quantity in positions.items()
            if quantity > 0
        ),
        Decimal("0"),
    )


def compute_holdings(
    trades: Iterable[Trade],
    prices: Mapping[int, Decimal],
    names: Mapping[int, str] | None = None,
) -> list[Holding]:
    """Build the valued holdings of a fund.

    Args:
        trades: Trades of a single fund.
        prices: Latest USD price per security id.
        names: Optional security names for display.

    Returns:
        list[Holding]: Open positions sorted by market value, largest first.
    """
    names = names or {}
    trade_list = list(trades)
    positions = compute_positions(trade_list)
    bought_qty: dict[int, int] = {}
    bought_cost: dict[int, Decimal] = {}
    for trade in trade_list:
        if trade.side != TradeSide.BUY:
            continue
        bought_qty[trade.security_id] = (
            bought_qty.get(trade.security_id, 0) + trade.quantity
        )
        bought_cost[trade.security_id] = (
            bought_cost.get(trade.security_id, Decimal("0")) + trade.cost_usd
        )

    holdings: list[Holding] = []
    for security_id, quantity in positions.items():
        if quantity <= 0:
            continue
        average_cost = None
        if bought_qty.get(security_id):
            average_cost = bought_cost[security_id] / bought_qty[security_id]
        last_price = prices.get(security_id)
        market_value = (
            last_price * quantity if last_price is not None else Decimal("0")
        )
        unrealized = Decimal("0")
        if last_price is not None and average_cost is not None:
            unrealized = (last_price - average_cost) * quantity
        holdings.append(
            Holding(
                security_id=security_id,
                security_name=names.get(security_id),
                quantity=quantity,
                average_cost_usd=average_cost,
                last_price_usd=last_price,
                market_value_usd=market_value,
                unrealized_usd=unrealized,
            )
        )
    return sorted(
        holdings,
        key=lambda holding: (-holding.market_value_usd, holding.security_id),
    )


__all__ = ["compute_positions", "value_positions", "compute_holdings"]
