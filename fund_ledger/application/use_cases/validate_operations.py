"""Validation gate for liquidity-consuming operations.

``validate_*`` methods return a ``ValidationOutcome`` and never raise for
domain or store failures. ``check_*`` methods raise instead; the mutation
appliers call them inside their transaction so a rejection aborts it.
"""

from decimal import Decimal
from typing import Callable

from fund_ledger.application.ports.ledger_repository import LedgerReaderPort
from fund_ledger.application.use_cases.get_balances import BalanceCalculator
from fund_ledger.domain.errors import (
    LedgerValidationError,
    StoreUnavailableError,
)
from fund_ledger.domain.models import (
    Client,
    Fund,
    Security,
    ValidationOutcome,
)
from fund_ledger.domain.services.positions import compute_positions
from fund_ledger.domain.services.validation import (
    ensure_client_exists,
    ensure_client_liquidity,
    ensure_fund_balance,
    ensure_fund_owned,
    ensure_position,
    ensure_positive,
    ensure_security_exists,
)
from fund_ledger.infrastructure.logging.logger import get_app_logger
from fund_ledger.utils.decimal_utils import coerce_decimal


class ValidationGate:
    """Check requests against freshly computed balances."""

    def __init__(self, repository: LedgerReaderPort, logger=None) -> None:
        """Initialize the gate.

        Args:
            repository: Port providing read access to the event collections.
            logger: Optional logger compatible with logging.Logger-like API.
        """
        self._repository = repository
        self._logger = logger or get_app_logger()
        self._balances = BalanceCalculator(repository, logger=self._logger)

    def validate_withdrawal(
        self,
        client_id: int,
        amount_usd,
    ) -> ValidationOutcome:
        """Check a withdrawal against client available liquidity."""
        requested = coerce_decimal(amount_usd)
        return self._evaluate(
            "withdrawal",
            requested,
            lambda: self.check_withdrawal(client_id, requested),
        )

    def validate_allocation(
        self,
        client_id: int,
        amount_usd,
        fund_id: int | None = None,
    ) -> ValidationOutcome:
        """Check an allocation into a fund against client liquidity.

        When ``fund_id`` is given, ownership is verified first.
        """
        requested = coerce_decimal(amount_usd)
        return self._evaluate(
            "allocation",
            requested,
            lambda: self.check_allocation(client_id, requested, fund_id),
        )

    def validate_unassignment(
        self,
        client_id: int,
        fund_id: int,
        amount_usd,
    ) -> ValidationOutcome:
        """Check that cash taken out of a fund does not exceed its float."""
        requested = coerce_decimal(amount_usd)
        return self._evaluate(
            "unassignment",
            requested,
            lambda: self.check_unassignment(client_id, fund_id, requested),
        )

    def validate_purchase(
        self,
        client_id: int,
        fund_id: int,
        cost_usd,
    ) -> ValidationOutcome:
        """Check a purchase against the fund's available cash."""
        requested = coerce_decimal(cost_usd)
        return self._evaluate(
            "purchase",
            requested,
            lambda: self.check_purchase(client_id, fund_id, requested),
        )

    def validate_sale(
        self,
        client_id: int,
        fund_id: int,
        security_id: int,
        quantity: int,
    ) -> ValidationOutcome:
        """Check a sale against the quantity held by the fund."""
        requested = coerce_decimal(quantity)
        return self._evaluate(
            "sale",
            requested,
            lambda: self.check_sale(client_id, fund_id, security_id, quantity),
        )

    def check_withdrawal(self, client_id: int, amount_usd: Decimal) -> Decimal:
        """Raise unless the withdrawal fits; return the available amount."""
        ensure_positive("amount_usd", amount_usd)
        liquidity = self._balances.client_liquidity(client_id)
        ensure_client_liquidity(liquidity, amount_usd)
        return liquidity.available_usd

    def check_allocation(
        self,
        client_id: int,
        amount_usd: Decimal,
        fund_id: int | None = None,
    ) -> Decimal:
        """Raise unless the allocation fits; return the available amount."""
        ensure_positive("amount_usd", amount_usd)
        if fund_id is not None:
            self.check_fund_owner(client_id, fund_id)
        liquidity = self._balances.client_liquidity(client_id)
        ensure_client_liquidity(liquidity, amount_usd)
        return liquidity.available_usd

    def check_unassignment(
        self,
        client_id: int,
        fund_id: int,
        amount_usd: Decimal,
    ) -> Decimal:
        """Raise unless the fund can release ``amount_usd``."""
        ensure_positive("amount_usd", amount_usd)
        self.check_fund_owner(client_id, fund_id)
        balance = self._balances.fund_balance(client_id, fund_id)
        ensure_fund_balance(balance, amount_usd)
        return balance.available_usd

    def check_purchase(
        self,
        client_id: int,
        fund_id: int,
        cost_usd: Decimal,
    ) -> Decimal:
        """Raise unless the purchase fits; ownership is checked first."""
        ensure_positive("cost_usd", cost_usd)
        self.check_fund_owner(client_id, fund_id)
        balance = self._balances.fund_balance(client_id, fund_id)
        ensure_fund_balance(balance, cost_usd)
        return balance.available_usd

    def check_sale(
        self,
        client_id: int,
        fund_id: int,
        security_id: int,
        quantity: int,
    ) -> Decimal:
        """Raise unless the fund holds ``quantity`` units of the security."""
        ensure_positive("quantity", quantity)
        self.check_fund_owner(client_id, fund_id)
        trades = self._repository.list_trades(
            client_id=client_id,
            fund_id=fund_id,
            security_id=security_id,
        )
        held = compute_positions(trades).get(security_id, 0)
        ensure_position(held, quantity)
        return Decimal(held)

    def check_fund_owner(self, client_id: int, fund_id: int) -> Fund:
        """Raise unless ``fund_id`` exists and belongs to ``client_id``."""
        fund = self._repository.fetch_fund(fund_id)
        return ensure_fund_owned(fund, fund_id, client_id)

    def check_client(self, client_id: int) -> Client:
        """Raise unless ``client_id`` names a registered client."""
        client = self._repository.fetch_client(client_id)
        return ensure_client_exists(client, client_id)

    def check_security(self, security_id: int) -> Security:
        """Raise unless ``security_id`` names a known security."""
        securities = self._repository.fetch_securities([security_id])
        return ensure_security_exists(securities, security_id)

    def _evaluate(
        self,
        operation: str,
        requested: Decimal,
        check: Callable[[], Decimal],
    ) -> ValidationOutcome:
        try:
            available = check()
        except StoreUnavailableError as error:
            self._logger.error(f"Could not validate {operation}: {error}")
            return ValidationOutcome.from_error(error, requested)
        except LedgerValidationError as error:
            self._logger.info(f"Rejected {operation}: {error}")
            return ValidationOutcome.from_error(error, requested)
        return ValidationOutcome.accepted(available, requested)


__all__ = ["ValidationGate"]
