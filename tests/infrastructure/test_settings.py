"""Tests for infrastructure settings."""

from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from fund_ledger.domain.constants import Currency
from fund_ledger.infrastructure import settings as settings_module
from fund_ledger.infrastructure.memory_repository import (
    InMemoryLedgerRepository,
)
from fund_ledger.infrastructure.settings import LedgerSettings


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch):
    monkeypatch.setattr(settings_module.dotenv, "load_dotenv", lambda: None)
    monkeypatch.setattr(settings_module, "get_app_logger", MagicMock)
    for name in (
        "LEDGER_BACKEND",
        "LEDGER_STATEMENT_TIMEOUT_MS",
        "LEDGER_REPORT_CURRENCY",
        "LEDGER_REPORT_FX_RATE",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    settings = LedgerSettings.from_env()

    assert settings.backend == "sqlalchemy"
    assert settings.statement_timeout_ms == 5000
    assert settings.report_currency is Currency.USD
    assert settings.report_fx_rate is None


def test_values_are_read_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("LEDGER_BACKEND", " Memory ")
    monkeypatch.setenv("LEDGER_STATEMENT_TIMEOUT_MS", "750")
    monkeypatch.setenv("LEDGER_REPORT_CURRENCY", "ars")
    monkeypatch.setenv("LEDGER_REPORT_FX_RATE", "1050.5")

    settings = LedgerSettings.from_env()

    assert settings.backend == "memory"
    assert settings.statement_timeout_ms == 750
    assert settings.report_currency is Currency.ARS
    assert settings.report_fx_rate == Decimal("1050.5")


def test_convertible_report_currency_waits_for_stored_rate(
    monkeypatch,
) -> None:
    monkeypatch.setenv("LEDGER_REPORT_CURRENCY", "ARS")

    settings = LedgerSettings.from_env()

    assert settings.report_currency is Currency.ARS
    assert settings.report_fx_rate is None


def test_resolve_report_rate_reads_history_as_of_date() -> None:
    store = InMemoryLedgerRepository()
    store.record_fx_rate(date(2024, 1, 2), "ARS", Decimal("810"))
    store.record_fx_rate(date(2024, 2, 1), "ARS", Decimal("830"))
    settings = LedgerSettings(report_currency=Currency.ARS)

    january = settings.resolve_report_rate(store, date(2024, 1, 31))
    latest = settings.resolve_report_rate(store)

    assert january.report_fx_rate == Decimal("810")
    assert latest.report_fx_rate == Decimal("830")
    assert settings.report_fx_rate is None


def test_environment_rate_overrides_history() -> None:
    repository = MagicMock()
    settings = LedgerSettings(
        report_currency=Currency.ARS,
        report_fx_rate=Decimal("1000"),
    )

    assert settings.resolve_report_rate(repository) is settings
    repository.fetch_fx_rate.assert_not_called()


def test_missing_history_falls_back_to_usd() -> None:
    settings = LedgerSettings(report_currency=Currency.ARS)

    resolved = settings.resolve_report_rate(InMemoryLedgerRepository())

    assert resolved.report_currency is Currency.USD
    assert resolved.report_fx_rate is None


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("LEDGER_BACKEND", "mongo"),
        ("LEDGER_STATEMENT_TIMEOUT_MS", "-1"),
        ("LEDGER_STATEMENT_TIMEOUT_MS", "fast"),
        ("LEDGER_REPORT_FX_RATE", "zero"),
        ("LEDGER_REPORT_FX_RATE", "0"),
        ("LEDGER_REPORT_FX_RATE", "Infinity"),
    ],
)
def test_invalid_values_raise(monkeypatch, name, value) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(RuntimeError, match=name):
        LedgerSettings.from_env()
