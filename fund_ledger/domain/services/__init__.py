"""Domain services package."""

from .balances import (
    compute_client_liquidity,
    compute_client_net_worth,
    compute_fund_balance,
    compute_fund_balances,
)
from .currency import build_exchange_rate, to_native, to_usd
from .positions import compute_holdings, compute_positions, value_positions
from .returns import (
    aggregate_fund_returns,
    compute_net_flow,
    cumulative_return,
    twr,
    weighted_average,
)
from .validation import (
    ensure_client_exists,
    ensure_client_liquidity,
    ensure_fund_balance,
    ensure_fund_owned,
    ensure_position,
    ensure_positive,
    ensure_security_exists,
)

__all__ = [
    "aggregate_fund_returns",
    "build_exchange_rate",
    "compute_client_liquidity",
    "compute_client_net_worth",
    "compute_fund_balance",
    "compute_fund_balances",
    "compute_holdings",
    "compute_net_flow",
    "compute_positions",
    "cumulative_return",
    "ensure_client_exists",
    "ensure_client_liquidity",
    "ensure_fund_balance",
    "ensure_fund_owned",
    "ensure_position",
    "ensure_positive",
    "ensure_security_exists",
    "to_native",
    "to_usd",
    "twr",
    "value_positions",
    "weighted_average",
]
