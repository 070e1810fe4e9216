"""Settings helpers for infrastructure adapters."""

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal, InvalidOperation
import os
from typing import Optional

import dotenv

from fund_ledger.application.ports.ledger_repository import LedgerReaderPort
from fund_ledger.domain.constants import Currency
from fund_ledger.infrastructure.db import DEFAULT_STATEMENT_TIMEOUT_MS
from fund_ledger.infrastructure.logging.logger import get_app_logger

BACKENDS = ("sqlalchemy", "memory")


@dataclass(frozen=True)
class LedgerSettings:
    """Settings for selecting the ledger store and report currency.

    Attributes:
        backend: Store identifier (sqlalchemy or memory).
        statement_timeout_ms: Per-statement timeout for the SQL store.
        report_currency: Currency used by adapters to display amounts.
        report_fx_rate: Units of ``report_currency`` per USD. When unset for
            a convertible currency, adapters look it up in the stored rate
            history through ``resolve_report_rate``.
    """

    backend: str = "sqlalchemy"
    statement_timeout_ms: int = DEFAULT_STATEMENT_TIMEOUT_MS
    report_currency: Currency = Currency.USD
    report_fx_rate: Optional[Decimal] = None

    @classmethod
    def from_env(cls) -> "LedgerSettings":
        """Build settings from environment variables.

        Returns:
            LedgerSettings: Settings sourced from environment variables.

        Raises:
            RuntimeError: If a variable holds an unsupported value.
        """
        dotenv.load_dotenv()
        backend = os.getenv("LEDGER_BACKEND", "sqlalchemy").strip().lower()
        if backend not in BACKENDS:
            raise RuntimeError(f"Unsupported LEDGER_BACKEND: {backend}")
        timeout = cls._parse_timeout(
            os.getenv("LEDGER_STATEMENT_TIMEOUT_MS", "")
        )
        report_currency = Currency.parse(
            os.getenv("LEDGER_REPORT_CURRENCY", Currency.USD.value)
        )
        report_fx_rate = cls._parse_rate(os.getenv("LEDGER_REPORT_FX_RATE"))
        return cls(
            backend=backend,
            statement_timeout_ms=timeout,
            report_currency=report_currency,
            report_fx_rate=report_fx_rate,
        )

    def resolve_report_rate(
        self,
        repository: LedgerReaderPort,
        as_of: Optional[date] = None,
    ) -> "LedgerSettings":
        """Return settings carrying a usable report rate.

        ``LEDGER_REPORT_FX_RATE`` wins when set. Otherwise the latest stored
        quote on or before ``as_of`` is used; without one, reports fall back
        to USD.

        Args:
            repository: Store holding the exchange-rate history.
            as_of: Last day a quote may apply to; the newest when omitted.

        Returns:
            LedgerSettings: Settings ready for amount formatting.
        """
        if (
            not self.report_currency.requires_conversion
            or self.report_fx_rate is not None
        ):
            return self
        quote = repository.fetch_fx_rate(self.report_currency, as_of)
        if quote is None:
            get_app_logger().warning(
                f"No exchange rate stored for {self.report_currency.value}; "
                "reporting in USD"
            )
            return replace(self, report_currency=Currency.USD)
        return replace(self, report_fx_rate=quote.rate)

    @staticmethod
    def _parse_timeout(raw: str) -> int:
        raw = raw.strip()
        if not raw:
            return DEFAULT_STATEMENT_TIMEOUT_MS
        try:
            value = int(raw)
        except ValueError as exc:
            raise RuntimeError(
                f"Invalid LEDGER_STATEMENT_TIMEOUT_MS value: {raw}"
            ) from exc
        if value < 0:
            raise RuntimeError(
                f"Invalid LEDGER_STATEMENT_TIMEOUT_MS value: {raw}"
            )
        return value

    @staticmethod
    def _parse_rate(raw: Optional[str]) -> Optional[Decimal]:
        if raw is None or not raw.strip():
            return None
        try:
            rate = Decimal(raw.strip())
        except InvalidOperation as exc:
            raise RuntimeError(
                f"Invalid LEDGER_REPORT_FX_RATE value: {raw}"
            ) from exc
        if not rate.is_finite() or rate <= 0:
            raise RuntimeError(f"Invalid LEDGER_REPORT_FX_RATE value: {raw}")
        return rate


__all__ = ["BACKENDS", "LedgerSettings"]
