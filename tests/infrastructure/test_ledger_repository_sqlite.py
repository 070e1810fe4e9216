"""Tests for SqlAlchemyLedgerRepository against an in-memory SQLite DB."""

from datetime import date, datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.pool import StaticPool

from fund_ledger.application.use_cases.apply_mutations import MutationApplier
from fund_ledger.application.use_cases.get_balances import BalanceCalculator
from fund_ledger.domain.constants import (
    AllocationKind,
    AllocationOrigin,
    CashMovementKind,
    Currency,
    TradeSide,
)
from fund_ledger.domain.errors import (
    ConstraintViolationError,
    InvalidAmountError,
    LedgerValidationError,
    StoreUnavailableError,
    UnknownCurrencyError,
)
from fund_ledger.domain.models import (
    Allocation,
    CashMovement,
    OutcomeStatus,
    Trade,
)
from fund_ledger.infrastructure.ledger_repository import (
    SqlAlchemyLedgerRepository,
)


class _FakeDbPort:
    def __init__(self, engine) -> None:
        self._engine = engine

    def get_ledger_engine(self):
        return self._engine


def _engine():
    return create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )


@pytest.fixture
def repository():
    repo = SqlAlchemyLedgerRepository(
        _FakeDbPort(_engine()),
        logger=MagicMock(),
    )
    repo.prepare_schema()
    return repo


def _deposit(client_id: int, amount: str, ts: datetime) -> CashMovement:
    return CashMovement(
        client_id=client_id,
        timestamp=ts,
        kind=CashMovementKind.DEPOSIT,
        amount=Decimal(amount),
        currency=Currency.USD,
        amount_usd=Decimal(amount),
    )


def test_prepare_schema_is_idempotent(repository) -> None:
    repository.prepare_schema()

    assert repository.list_funds(1) == []


def test_clients_and_funds_round_trip(repository) -> None:
    client = repository.create_client("Ana")
    fund = repository.create_fund(
        client.id,
        "Retiro",
        strategy="retirement",
        target_date=date(2040, 1, 1),
        target_amount=Decimal("250000"),
        target_currency="USD",
        opened_at=datetime(2024, 1, 2, 9, 30),
    )

    assert repository.fetch_client(client.id).name == "Ana"
    assert repository.fetch_client(999) is None
    assert repository.fetch_fund(999) is None
    stored = repository.fetch_fund(fund.id)
    assert stored == fund
    assert repository.list_funds(client.id) == [fund]


def test_cash_movements_are_ordered_and_paged(repository) -> None:
    client = repository.create_client("Ana")
    late = repository.append_cash_movement(
        _deposit(client.id, "300", datetime(2024, 3, 1, 10, 0))
    )
    early = repository.append_cash_movement(
        _deposit(client.id, "1000.50", datetime(2024, 1, 1, 10, 0))
    )

    movements = repository.list_cash_movements(client.id)

    assert [m.id for m in movements] == [early.id, late.id]
    assert movements[0].amount_usd == Decimal("1000.50")
    assert movements[0].kind is CashMovementKind.DEPOSIT
    assert movements[0].timestamp == datetime(2024, 1, 1, 10, 0)
    assert repository.list_cash_movements(client.id, limit=1, offset=1) == [
        late
    ]
    assert repository.list_cash_movements(client.id, offset=1) == [late]


def test_allocation_filters(repository) -> None:
    client = repository.create_client("Ana")
    fund_a = repository.create_fund(client.id, "A")
    fund_b = repository.create_fund(client.id, "B")
    manual = repository.append_allocation(
        Allocation(
            client_id=client.id,
            fund_id=fund_a.id,
            timestamp=datetime(2024, 1, 31, 23, 59),
            kind=AllocationKind.ASSIGN,
            amount_usd=Decimal("400"),
            amount=Decimal("400"),
            comment="initial",
        )
    )
    system = repository.append_allocation(
        Allocation(
            client_id=client.id,
            fund_id=fund_a.id,
            timestamp=datetime(2024, 2, 1, 0, 0),
            kind=AllocationKind.ASSIGN,
            amount_usd=Decimal("50"),
            origin=AllocationOrigin.SYSTEM,
        )
    )
    other = repository.append_allocation(
        Allocation(
            client_id=client.id,
            fund_id=fund_b.id,
            timestamp=datetime(2024, 1, 15, 12, 0),
            kind=AllocationKind.UNASSIGN,
            amount_usd=Decimal("20"),
        )
    )

    assert repository.list_allocations(client.id) == [other, manual, system]
    assert repository.list_allocations(client.id, fund_id=fund_a.id) == [
        manual,
        system,
    ]
    assert repository.list_allocations(
        client.id,
        origin=AllocationOrigin.MANUAL,
    ) == [other, manual]
    assert repository.list_allocations(
        client.id,
        start_date=date(2024, 1, 31),
        end_date=date(2024, 1, 31),
    ) == [manual]
    assert repository.list_allocations(
        client.id,
        start_date=date(2024, 2, 1),
    ) == [system]


def test_trades_securities_and_prices(repository) -> None:
    client = repository.create_client("Ana")
    fund = repository.create_fund(client.id, "Retiro")
    security = repository.get_or_create_security("ACME")
    trade = repository.append_trade(
        Trade(
            client_id=client.id,
            fund_id=fund.id,
            security_id=security.id,
            timestamp=datetime(2024, 1, 5, 11, 0),
            side=TradeSide.BUY,
            quantity=10,
            unit_price=Decimal("30"),
            currency=Currency.USD,
            unit_price_usd=Decimal("30"),
        )
    )
    repository.record_price(security.id, date(2024, 1, 31), Decimal("35"))
    repository.record_price(security.id, date(2024, 2, 29), Decimal("40"))
    repository.record_price(security.id, date(2024, 2, 29), Decimal("42"))

    assert repository.get_or_create_security(" acme ") == security
    assert repository.fetch_securities([security.id]) == [security]
    assert repository.fetch_securities([]) == []
    assert repository.list_trades(client_id=client.id) == [trade]
    assert repository.list_trades(security_id=security.id + 1) == []
    assert trade.side is TradeSide.BUY

    latest = repository.fetch_latest_prices([security.id])
    assert latest[0].date == date(2024, 2, 29)
    assert latest[0].price_usd == Decimal("42")
    as_of = repository.fetch_latest_prices(
        [security.id],
        as_of=date(2024, 2, 15),
    )
    assert as_of[0].price_usd == Decimal("35")
    assert (
        repository.fetch_latest_prices([security.id], as_of=date(2023, 1, 1))
        == []
    )


def test_blank_security_name_is_rejected(repository) -> None:
    with pytest.raises(LedgerValidationError):
        repository.get_or_create_security("   ")


def test_locked_block_rolls_back_on_error(repository) -> None:
    client = repository.create_client("Ana")

    with pytest.raises(RuntimeError):
        with repository.locked(client.id) as scoped:
            scoped.append_cash_movement(
                _deposit(client.id, "100", datetime(2024, 1, 1, 9, 0))
            )
            assert len(scoped.list_cash_movements(client.id)) == 1
            raise RuntimeError("abort")

    assert repository.list_cash_movements(client.id) == []

    with repository.locked(client.id) as scoped:
        with scoped.locked(client.id) as nested:
            assert nested is scoped
        scoped.append_cash_movement(
            _deposit(client.id, "100", datetime(2024, 1, 1, 9, 0))
        )

    assert len(repository.list_cash_movements(client.id)) == 1


def test_database_errors_become_store_unavailable() -> None:
    logger = MagicMock()
    repository = SqlAlchemyLedgerRepository(
        _FakeDbPort(_engine()),
        logger=logger,
    )

    with pytest.raises(StoreUnavailableError) as excinfo:
        repository.list_cash_movements(1)

    assert excinfo.value.code == "store_unavailable"
    assert "cash_movement" in excinfo.value.reason
    logger.error.assert_called_once()


def _engine_with_foreign_keys():
    engine = _engine()

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


@pytest.fixture
def strict_repository():
    repo = SqlAlchemyLedgerRepository(
        _FakeDbPort(_engine_with_foreign_keys()),
        logger=MagicMock(),
    )
    repo.prepare_schema()
    return repo


def test_missing_reference_is_a_rejection_not_an_outage(
    strict_repository,
) -> None:
    with pytest.raises(ConstraintViolationError) as excinfo:
        strict_repository.append_cash_movement(
            _deposit(424242, "50", datetime(2024, 1, 1, 9, 0))
        )

    assert excinfo.value.code == "constraint_violation"
    assert excinfo.value.operation == "append_cash_movement"
    assert strict_repository.list_cash_movements(424242) == []


def test_check_constraint_failure_inside_lock_rolls_back(repository) -> None:
    client = repository.create_client("Ana")

    with pytest.raises(ConstraintViolationError):
        with repository.locked(client.id) as scoped:
            scoped.append_cash_movement(
                _deposit(client.id, "10", datetime(2024, 1, 1, 9, 0))
            )
            scoped.append_cash_movement(
                _deposit(client.id, "-5", datetime(2024, 1, 1, 9, 5))
            )

    assert repository.list_cash_movements(client.id) == []


def test_applier_rejects_unknown_client_and_security(
    strict_repository,
) -> None:
    client = strict_repository.create_client("Ana")
    fund = strict_repository.create_fund(client.id, "Retiro")
    applier = MutationApplier(
        strict_repository,
        logger=MagicMock(),
        audit_logger=MagicMock(),
    )
    applier.apply_deposit(client.id, Decimal("100"))
    applier.apply_allocation(client.id, fund.id, Decimal("100"))

    deposit = applier.apply_deposit(424242, Decimal("50"))
    trade = applier.apply_trade(
        client.id,
        fund.id,
        TradeSide.BUY,
        1,
        Decimal("5"),
        security_id=999,
    )

    assert deposit.status == OutcomeStatus.REJECTED
    assert deposit.error_code == "client_not_found"
    assert trade.status == OutcomeStatus.REJECTED
    assert trade.error_code == "security_not_found"
    assert strict_repository.list_trades(client_id=client.id) == []


def test_applier_timestamps_round_trip_as_utc(repository) -> None:
    client = repository.create_client("Ana")
    applier = MutationApplier(
        repository,
        logger=MagicMock(),
        audit_logger=MagicMock(),
    )

    applier.apply_deposit(
        client.id,
        Decimal("100"),
        timestamp=datetime(2024, 1, 1, 9, 0),
    )
    applier.apply_deposit(client.id, Decimal("100"))

    movements = repository.list_cash_movements(client.id)
    assert movements[0].timestamp == datetime(
        2024, 1, 1, 9, 0, tzinfo=timezone.utc
    )
    assert all(m.timestamp.tzinfo is not None for m in movements)
    liquidity = BalanceCalculator(
        repository,
        logger=MagicMock(),
    ).client_liquidity(client.id)
    assert liquidity.total_usd == Decimal("200")


def test_exchange_rate_history(repository) -> None:
    repository.record_fx_rate(date(2024, 1, 2), "ARS", Decimal("810"))
    repository.record_fx_rate(date(2024, 2, 1), "ars", Decimal("820"))
    replaced = repository.record_fx_rate(
        date(2024, 2, 1),
        Currency.ARS,
        Decimal("830.5"),
    )

    latest = repository.fetch_fx_rate(Currency.ARS)
    january = repository.fetch_fx_rate("ARS", as_of=date(2024, 1, 31))

    assert latest == replaced
    assert latest.rate == Decimal("830.5")
    assert january.date == date(2024, 1, 2)
    assert january.rate == Decimal("810")
    assert repository.fetch_fx_rate("ARS", as_of=date(2023, 12, 31)) is None


def test_exchange_rate_validation(repository) -> None:
    with pytest.raises(LedgerValidationError):
        repository.record_fx_rate(date(2024, 1, 2), "USD", Decimal("1"))
    with pytest.raises(InvalidAmountError):
        repository.record_fx_rate(date(2024, 1, 2), "ARS", Decimal("0"))
    with pytest.raises(UnknownCurrencyError):
        repository.record_fx_rate(date(2024, 1, 2), "EUR", Decimal("1"))

    assert repository.fetch_fx_rate("ARS") is None
