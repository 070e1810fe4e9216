"""Ports for reading and appending ledger events."""

from contextlib import AbstractContextManager
from datetime import date
from typing import Protocol

from fund_ledger.domain.constants import AllocationOrigin, Currency
from fund_ledger.domain.models import (
    Allocation,
    CashMovement,
    Client,
    ExchangeRate,
    Fund,
    Security,
    SecurityPrice,
    Trade,
)


class LedgerReaderPort(Protocol):
    """Port exposing read-only access to the event collections.

    Readers never compute derived values. ``limit`` and ``offset`` exist for
    listings; balance calculations always call without them.
    """

    def fetch_client(self, client_id: int) -> Client | None:
        """Return a client by id, or None."""

    def fetch_fund(self, fund_id: int) -> Fund | None:
        """Return a fund by id, or None."""

    def list_funds(self, client_id: int) -> list[Fund]:
        """Return every fund of a client ordered by id."""

    def list_cash_movements(
        self,
        client_id: int,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[CashMovement]:
        """Return a client's cash movements ordered by time."""

    def list_allocations(
        self,
        client_id: int,
        fund_id: int | None = None,
        origin: AllocationOrigin | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Allocation]:
        """Return a client's allocations, optionally scoped to one fund."""

    def list_trades(
        self,
        client_id: int | None = None,
        fund_id: int | None = None,
        security_id: int | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Trade]:
        """Return trades matching the given filters ordered by time."""

    def fetch_securities(self, security_ids: list[int]) -> list[Security]:
        """Return the securities with the given ids."""

    def fetch_latest_prices(
        self,
        security_ids: list[int],
        as_of: date | None = None,
    ) -> list[SecurityPrice]:
        """Return the latest price per security on or before ``as_of``."""

    def fetch_fx_rate(
        self,
        currency: Currency | str,
        as_of: date | None = None,
    ) -> ExchangeRate | None:
        """Return the latest quote of ``currency`` on or before ``as_of``."""


class LedgerRepositoryPort(LedgerReaderPort, Protocol):
    """Port adding appends and the per-client serialization point."""

    def get_or_create_security(self, name: str) -> Security:
        """Return the security named ``name``, creating it if unknown."""

    def record_fx_rate(
        self,
        rate_date: date,
        currency: Currency | str,
        rate,
    ) -> ExchangeRate:
        """Store a daily quote, replacing one for the same currency and day."""

    def append_cash_movement(self, movement: CashMovement) -> CashMovement:
        """Append a cash movement and return it with its id."""

    def append_allocation(self, allocation: Allocation) -> Allocation:
        """Append an allocation and return it with its id."""

    def append_trade(self, trade: Trade) -> Trade:
        """Append a trade and return it with its id."""

    def locked(
        self,
        client_id: int,
    ) -> AbstractContextManager["LedgerRepositoryPort"]:
        """Serialize writers of one client inside a single transaction.

        The yielded repository reads and appends within the transaction.
        Appends become visible only when the block exits without error.
        """


__all__ = ["LedgerReaderPort", "LedgerRepositoryPort"]
