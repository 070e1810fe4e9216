"""Domain models package."""

from .balances import ClientLiquidity, ClientNetWorth, FundBalance, Holding
from .events import (
    Allocation,
    CashMovement,
    Client,
    ExchangeRate,
    Fund,
    Security,
    SecurityPrice,
    Trade,
)
from .outcomes import MutationResult, OutcomeStatus, ValidationOutcome
from .returns import FundReturn, NetFlow, PortfolioReturns

__all__ = [
    "Allocation",
    "CashMovement",
    "Client",
    "ClientLiquidity",
    "ClientNetWorth",
    "ExchangeRate",
    "Fund",
    "FundBalance",
    "FundReturn",
    "Holding",
    "MutationResult",
    "NetFlow",
    "OutcomeStatus",
    "PortfolioReturns",
    "Security",
    "SecurityPrice",
    "Trade",
    "ValidationOutcome",
]
