"""Use cases appending new ledger events.

Each applier normalizes the amount to USD, then runs validation and appends
inside ``repository.locked(client_id)``: one transaction holding the
per-client serialization point, so two concurrent requests for the same
client cannot both spend the same balance. A sale writes its trade and the
system allocation of the proceeds in that same transaction.

Event times are stored as aware UTC datetimes; naive input is read as UTC.
Appliers are not idempotent; every accepted call appends new events.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable

from fund_ledger.application.ports.ledger_repository import (
    LedgerRepositoryPort,
)
from fund_ledger.application.use_cases.validate_operations import (
    ValidationGate,
)
from fund_ledger.domain.constants import (
    AllocationKind,
    AllocationOrigin,
    CashMovementKind,
    Currency,
    TradeSide,
)
from fund_ledger.domain.errors import (
    InvalidAmountError,
    LedgerValidationError,
    StoreUnavailableError,
)
from fund_ledger.domain.models import (
    Allocation,
    CashMovement,
    MutationResult,
    OutcomeStatus,
    Trade,
    ValidationOutcome,
)
from fund_ledger.domain.services.currency import to_usd
from fund_ledger.domain.services.validation import ensure_positive
from fund_ledger.infrastructure.logging.logger import (
    get_app_logger,
    get_audit_logger,
)
from fund_ledger.utils.decimal_utils import coerce_decimal


class MutationApplier:
    """Validate and append deposits, withdrawals, allocations and trades."""

    def __init__(
        self,
        repository: LedgerRepositoryPort,
        logger=None,
        audit_logger=None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the applier.

        Args:
            repository: Port providing reads, appends and client locks.
            logger: Optional logger compatible with logging.Logger-like API.
            audit_logger: Optional logger receiving one line per event.
            clock: Optional callable returning the current timestamp.
        """
        self._repository = repository
        self._logger = logger or get_app_logger()
        self._audit_logger = audit_logger or get_audit_logger()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def apply_deposit(
        self,
        client_id: int,
        amount,
        currency: Currency | str = Currency.USD,
        fx_rate=None,
        timestamp: datetime | None = None,
        comment: str | None = None,
    ) -> MutationResult:
        """Append a client deposit. Deposits are never gated."""
        return self._apply_cash_movement(
            CashMovementKind.DEPOSIT,
            client_id,
            amount,
            currency,
            fx_rate,
            timestamp,
            comment,
        )

    def apply_withdrawal(
        self,
        client_id: int,
        amount,
        currency: Currency | str = Currency.USD,
        fx_rate=None,
        timestamp: datetime | None = None,
        comment: str | None = None,
    ) -> MutationResult:
        """Append a client withdrawal if unallocated cash covers it."""
        return self._apply_cash_movement(
            CashMovementKind.WITHDRAWAL,
            client_id,
            amount,
            currency,
            fx_rate,
            timestamp,
            comment,
        )

    def apply_allocation(
        self,
        client_id: int,
        fund_id: int,
        amount,
        currency: Currency | str = Currency.USD,
        fx_rate=None,
        kind: AllocationKind | str = AllocationKind.ASSIGN,
        timestamp: datetime | None = None,
        comment: str | None = None,
    ) -> MutationResult:
        """Move client cash into a fund, or back out of it.

        Assignments consume client-level availability; unassignments
        consume the fund's available cash.
        """
        operation = f"allocation:{getattr(kind, 'value', kind)}"
        try:
            kind = AllocationKind(kind)
            resolved = Currency.parse(currency)
            amount_usd = to_usd(amount, resolved, fx_rate)
            rate = _optional_rate(fx_rate)
        except (LedgerValidationError, ValueError) as error:
            return self._rejected(operation, client_id, error, amount)

        draft = Allocation(
            client_id=client_id,
            fund_id=fund_id,
            timestamp=self._event_time(timestamp),
            kind=kind,
            amount_usd=amount_usd,
            origin=AllocationOrigin.MANUAL,
            amount=coerce_decimal(amount),
            currency=resolved,
            fx_rate=rate,
            comment=comment,
        )

        def append(repository: LedgerRepositoryPort) -> tuple:
            gate = ValidationGate(repository, logger=self._logger)
            if kind == AllocationKind.ASSIGN:
                gate.check_allocation(client_id, amount_usd, fund_id=fund_id)
            else:
                gate.check_unassignment(client_id, fund_id, amount_usd)
            return (repository.append_allocation(draft),)

        return self._apply(operation, client_id, amount_usd, append)

    def apply_trade(
        self,
        client_id: int,
        fund_id: int,
        side: TradeSide | str,
        quantity: int,
        unit_price,
        currency: Currency | str = Currency.USD,
        fx_rate=None,
        security_id: int | None = None,
        security_name: str | None = None,
        timestamp: datetime | None = None,
    ) -> MutationResult:
        """Append a buy or sell of a security inside a fund.

        Buys must fit the fund's available cash. Sells must not exceed the
        held quantity and also append a system allocation crediting the
        fund with the proceeds.

        Args:
            client_id: Owner of the fund.
            fund_id: Fund trading the security.
            side: ``buy`` or ``sell``.
            quantity: Positive number of units.
            unit_price: Positive price per unit in ``currency``.
            currency: Currency of ``unit_price``.
            fx_rate: Units of ``currency`` per USD when conversion applies.
            security_id: Known security id.
            security_name: Security name, created on first reference when
                ``security_id`` is not given.
            timestamp: Trade time; now when omitted.

        Returns:
            MutationResult: Trade first, then the system allocation on sells.
        """
        operation = f"trade:{getattr(side, 'value', side)}"
        try:
            side = TradeSide(side)
            if (
                isinstance(quantity, bool)
                or not isinstance(quantity, int)
                or quantity <= 0
            ):
                raise InvalidAmountError("quantity", quantity)
            resolved = Currency.parse(currency)
            unit_price_usd = to_usd(unit_price, resolved, fx_rate)
            rate = _optional_rate(fx_rate)
            if security_id is None and not (security_name or "").strip():
                raise LedgerValidationError(
                    "A security id or security name is required"
                )
        except (LedgerValidationError, ValueError) as error:
            return self._rejected(operation, client_id, error, quantity)

        cost_usd = unit_price_usd * quantity
        requested = cost_usd if side == TradeSide.BUY else Decimal(quantity)
        trade_time = self._event_time(timestamp)

        def append(repository: LedgerRepositoryPort) -> tuple:
            gate = ValidationGate(repository, logger=self._logger)
            resolved_security_id = security_id
            if resolved_security_id is not None:
                gate.check_security(resolved_security_id)
            else:
                gate.check_fund_owner(client_id, fund_id)
                resolved_security_id = repository.get_or_create_security(
                    security_name.strip()
                ).id
            if side == TradeSide.BUY:
                gate.check_purchase(client_id, fund_id, cost_usd)
            else:
                gate.check_sale(
                    client_id,
                    fund_id,
                    resolved_security_id,
                    quantity,
                )
            trade = repository.append_trade(
                Trade(
                    client_id=client_id,
                    fund_id=fund_id,
                    security_id=resolved_security_id,
                    timestamp=trade_time,
                    side=side,
                    quantity=quantity,
                    unit_price=coerce_decimal(unit_price),
                    currency=resolved,
                    unit_price_usd=unit_price_usd,
                    fx_rate=rate,
                )
            )
            if side == TradeSide.BUY:
                return (trade,)
            proceeds = repository.append_allocation(
                Allocation(
                    client_id=client_id,
                    fund_id=fund_id,
                    timestamp=trade_time,
                    kind=AllocationKind.ASSIGN,
                    amount_usd=trade.cost_usd,
                    origin=AllocationOrigin.SYSTEM,
                    amount=trade.cost_usd,
                    currency=Currency.USD,
                    comment=f"Proceeds of trade {trade.id}",
                )
            )
            return (trade, proceeds)

        return self._apply(operation, client_id, requested, append)

    def _apply_cash_movement(
        self,
        kind: CashMovementKind,
        client_id: int,
        amount,
        currency,
        fx_rate,
        timestamp: datetime | None,
        comment: str | None,
    ) -> MutationResult:
        operation = kind.value
        try:
            resolved = Currency.parse(currency)
            amount_usd = to_usd(amount, resolved, fx_rate)
            rate = _optional_rate(fx_rate)
        except LedgerValidationError as error:
            return self._rejected(operation, client_id, error, amount)

        draft = CashMovement(
            client_id=client_id,
            timestamp=self._event_time(timestamp),
            kind=kind,
            amount=coerce_decimal(amount),
            currency=resolved,
            amount_usd=amount_usd,
            fx_rate=rate,
            comment=comment,
        )

        def append(repository: LedgerRepositoryPort) -> tuple:
            if kind == CashMovementKind.WITHDRAWAL:
                gate = ValidationGate(repository, logger=self._logger)
                gate.check_withdrawal(client_id, amount_usd)
            return (repository.append_cash_movement(draft),)

        return self._apply(operation, client_id, amount_usd, append)

    def _apply(
        self,
        operation: str,
        client_id: int,
        requested: Decimal,
        append: Callable[[LedgerRepositoryPort], tuple],
    ) -> MutationResult:
        try:
            with self._repository.locked(client_id) as repository:
                ValidationGate(
                    repository,
                    logger=self._logger,
                ).check_client(client_id)
                events = append(repository)
        except StoreUnavailableError as error:
            self._logger.error(
                f"Store unavailable during {operation} for client "
                f"{client_id}: {error.reason}"
            )
            return MutationResult(
                status=OutcomeStatus.UNAVAILABLE,
                validation=ValidationOutcome.from_error(error, requested),
                error_code=error.code,
                message=error.message,
            )
        except LedgerValidationError as error:
            return self._rejected(operation, client_id, error, requested)

        for event in events:
            self._audit_logger.info(
                f"client={client_id} operation={operation} "
                f"appended {type(event).__name__} {event}"
            )
        return MutationResult(
            status=OutcomeStatus.ACCEPTED,
            events=events,
            validation=None,
        )

    def _event_time(self, timestamp: datetime | None) -> datetime:
        """Return the event time as an aware UTC datetime.

        Naive timestamps are read as UTC.
        """
        moment = timestamp or self._clock()
        if moment.tzinfo is None:
            return moment.replace(tzinfo=timezone.utc)
        return moment.astimezone(timezone.utc)

    def _rejected(
        self,
        operation: str,
        client_id: int,
        error: Exception,
        requested,
    ) -> MutationResult:
        try:
            requested_value = coerce_decimal(requested)
        except ArithmeticError:
            requested_value = Decimal("0")
        outcome = ValidationOutcome.from_error(error, requested_value)
        self._audit_logger.info(
            f"client={client_id} operation={operation} "
            f"rejected code={outcome.error_code} message={outcome.message}"
        )
        return MutationResult(
            status=OutcomeStatus.REJECTED,
            validation=outcome,
            error_code=outcome.error_code,
            message=outcome.message,
        )


def _optional_rate(value) -> Decimal | None:
    if value is None:
        return None
    return ensure_positive("fx_rate", value)


__all__ = ["MutationApplier"]
