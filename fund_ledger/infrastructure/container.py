"""Composition root for wiring infrastructure adapters."""

from fund_ledger.application.ports.database import DatabaseEnginePort
from fund_ledger.application.ports.ledger_repository import (
    LedgerRepositoryPort,
)
from fund_ledger.application.use_cases.apply_mutations import MutationApplier
from fund_ledger.application.use_cases.get_balances import BalanceCalculator
from fund_ledger.application.use_cases.get_fund_returns import (
    ReturnCalculator,
)
from fund_ledger.application.use_cases.validate_operations import (
    ValidationGate,
)
from fund_ledger.infrastructure.db import SqlAlchemyDatabaseEngineAdapter
from fund_ledger.infrastructure.ledger_repository import (
    SqlAlchemyLedgerRepository,
)
from fund_ledger.infrastructure.logging.logger import (
    get_app_logger,
    get_audit_logger,
)
from fund_ledger.infrastructure.memory_repository import (
    InMemoryLedgerRepository,
)
from fund_ledger.infrastructure.settings import LedgerSettings


_memory_store: InMemoryLedgerRepository | None = None


def build_database_adapter(
    settings: LedgerSettings | None = None,
) -> DatabaseEnginePort:
    """Return the database adapter instance."""
    resolved_settings = settings or LedgerSettings.from_env()
    return SqlAlchemyDatabaseEngineAdapter(
        statement_timeout_ms=resolved_settings.statement_timeout_ms,
    )


def build_ledger_repository(
    db_port: DatabaseEnginePort | None = None,
    settings: LedgerSettings | None = None,
) -> LedgerRepositoryPort:
    """Return the configured ledger store.

    The memory backend hands out one store per process, so every adapter
    call in that process sees the events recorded by earlier calls.
    """
    global _memory_store
    resolved_settings = settings or LedgerSettings.from_env()
    if resolved_settings.backend == "memory":
        if _memory_store is None:
            _memory_store = InMemoryLedgerRepository()
        return _memory_store
    resolved_db = db_port or build_database_adapter(resolved_settings)
    return SqlAlchemyLedgerRepository(resolved_db, logger=get_app_logger())


def build_balance_use_case(
    repository: LedgerRepositoryPort | None = None,
) -> BalanceCalculator:
    """Return the balance calculator."""
    return BalanceCalculator(
        repository or build_ledger_repository(),
        logger=get_app_logger(),
    )


def build_validation_use_case(
    repository: LedgerRepositoryPort | None = None,
) -> ValidationGate:
    """Return the validation gate."""
    return ValidationGate(
        repository or build_ledger_repository(),
        logger=get_app_logger(),
    )


def build_returns_use_case(
    repository: LedgerRepositoryPort | None = None,
) -> ReturnCalculator:
    """Return the return calculator."""
    return ReturnCalculator(
        repository or build_ledger_repository(),
        logger=get_app_logger(),
    )


def build_mutation_use_case(
    repository: LedgerRepositoryPort | None = None,
) -> MutationApplier:
    """Return the mutation applier."""
    return MutationApplier(
        repository or build_ledger_repository(),
        logger=get_app_logger(),
        audit_logger=get_audit_logger(),
    )


__all__ = [
    "build_database_adapter",
    "build_ledger_repository",
    "build_balance_use_case",
    "build_validation_use_case",
    "build_returns_use_case",
    "build_mutation_use_case",
]
