"""Application use cases package."""

from .apply_mutations import MutationApplier
from .get_balances import BalanceCalculator
from .get_fund_returns import FundValuation, ReturnCalculator
from .validate_operations import ValidationGate

__all__ = [
    "BalanceCalculator",
    "FundValuation",
    "MutationApplier",
    "ReturnCalculator",
    "ValidationGate",
]
