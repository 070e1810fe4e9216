"""In-process event store used for demos and tests."""

from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime
import itertools
import threading
from typing import Iterator

from fund_ledger.application.ports.ledger_repository import (
    LedgerRepositoryPort,
)
from fund_ledger.domain.constants import AllocationOrigin, Currency
from fund_ledger.domain.errors import LedgerValidationError
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
from fund_ledger.domain.services.currency import build_exchange_rate
from fund_ledger.utils.decimal_utils import coerce_decimal


class InMemoryLedgerRepository(LedgerRepositoryPort):
    """Ledger store keeping every collection in process memory.

    Appends made inside ``locked`` are staged and published only when the
    block exits without error, mirroring a committed transaction.
    """

    def __init__(self) -> None:
        self._clients: dict[int, Client] = {}
        self._funds: dict[int, Fund] = {}
        self._securities: dict[int, Security] = {}
        self._prices: list[SecurityPrice] = []
        self._fx_rates: list[ExchangeRate] = []
        self._cash_movements: list[CashMovement] = []
        self._allocations: list[Allocation] = []
        self._trades: list[Trade] = []
        self._ids = itertools.count(1)
        self._guard = threading.Lock()
        self._client_locks: dict[int, threading.Lock] = {}

    def create_client(self, name: str) -> Client:
        """Register a client and return it with its id."""
        with self._guard:
            client = Client(id=next(self._ids), name=name)
            self._clients[client.id] = client
        return client

    def create_fund(
        self,
        client_id: int,
        name: str,
        strategy: str | None = None,
        target_date: date | None = None,
        target_amount=None,
        target_currency: str | None = None,
        opened_at: datetime | None = None,
    ) -> Fund:
        """Register a fund for a client and return it with its id."""
        with self._guard:
            fund = Fund(
                id=next(self._ids),
                client_id=client_id,
                name=name,
                strategy=strategy,
                target_date=target_date,
                target_amount=(
                    coerce_decimal(target_amount)
                    if target_amount is not None
                    else None
                ),
                target_currency=target_currency,
                opened_at=opened_at,
            )
            self._funds[fund.id] = fund
        return fund

    def record_price(
        self,
        security_id: int,
        price_date: date,
        price_usd,
    ) -> SecurityPrice:
        """Store a USD price observation, replacing one on the same day."""
        price = SecurityPrice(
            security_id=security_id,
            date=price_date,
            price_usd=coerce_decimal(price_usd),
        )
        with self._guard:
            self._prices = [
                existing
                for existing in self._prices
                if (existing.security_id, existing.date)
                != (security_id, price_date)
            ]
            self._prices.append(price)
        return price

    def record_fx_rate(
        self,
        rate_date: date,
        currency: Currency | str,
        rate,
    ) -> ExchangeRate:
        """Store a daily quote, replacing one for the same currency and day."""
        quote = build_exchange_rate(currency, rate_date, rate)
        with self._guard:
            self._fx_rates = [
                existing
                for existing in self._fx_rates
                if (existing.currency, existing.date)
                != (quote.currency, quote.date)
            ]
            self._fx_rates.append(quote)
        return quote

    @contextmanager
    def locked(self, client_id: int) -> Iterator["_StagedLedger"]:
        """Serialize writers of one client and stage their appends.

        Args:
            client_id: Client whose writers must be serialized.

        Yields:
            _StagedLedger: View reading committed plus staged events.
        """
        with self._guard:
            client_lock = self._client_locks.setdefault(
                client_id,
                threading.Lock(),
            )
        with client_lock:
            staged = _StagedLedger(self)
            yield staged
            staged.publish()

    def fetch_client(self, client_id: int) -> Client | None:
        return self._clients.get(client_id)

    def fetch_fund(self, fund_id: int) -> Fund | None:
        return self._funds.get(fund_id)

    def list_funds(self, client_id: int) -> list[Fund]:
        return sorted(
            (
                fund
                for fund in self._funds.values()
                if fund.client_id == client_id
            ),
            key=lambda fund: fund.id,
        )

    def list_cash_movements(
        self,
        client_id: int,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[CashMovement]:
        rows = [
            movement
            for movement in self._cash_movements
            if movement.client_id == client_id
        ]
        return _page(rows, limit, offset)

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
        rows = [
            allocation
            for allocation in self._allocations
            if allocation.client_id == client_id
            and (fund_id is None or allocation.fund_id == fund_id)
            and (origin is None or allocation.origin == origin)
            and _in_range(allocation.timestamp, start_date, end_date)
        ]
        return _page(rows, limit, offset)

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
        rows = [
            trade
            for trade in self._trades
            if (client_id is None or trade.client_id == client_id)
            and (fund_id is None or trade.fund_id == fund_id)
            and (security_id is None or trade.security_id == security_id)
            and _in_range(trade.timestamp, start_date, end_date)
        ]
        return _page(rows, limit, offset)

    def fetch_securities(self, security_ids: list[int]) -> list[Security]:
        return [
            self._securities[security_id]
            for security_id in sorted(set(security_ids))
            if security_id in self._securities
        ]

    def fetch_latest_prices(
        self,
        security_ids: list[int],
        as_of: date | None = None,
    ) -> list[SecurityPrice]:
        latest: dict[int, SecurityPrice] = {}
        wanted = set(security_ids)
        for price in self._prices:
            if price.security_id not in wanted:
                continue
            if as_of is not None and price.date > as_of:
                continue
            current = latest.get(price.security_id)
            if current is None or price.date > current.date:
                latest[price.security_id] = price
        return [latest[security_id] for security_id in sorted(latest)]

    def fetch_fx_rate(
        self,
        currency: Currency | str,
        as_of: date | None = None,
    ) -> ExchangeRate | None:
        resolved = Currency.parse(currency)
        candidates = [
            quote
            for quote in self._fx_rates
            if quote.currency == resolved
            and (as_of is None or quote.date <= as_of)
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda quote: quote.date)

    def get_or_create_security(self, name: str) -> Security:
        """Return the security named ``name``, creating it if unknown.

        Names are matched case-insensitively.

        Raises:
            LedgerValidationError: If the name is blank.
        """
        cleaned = (name or "").strip()
        if not cleaned:
            raise LedgerValidationError("Security name must not be empty")
        with self._guard:
            for security in self._securities.values():
                if security.name.lower() == cleaned.lower():
                    return security
            security = Security(id=next(self._ids), name=cleaned)
            self._securities[security.id] = security
        return security

    def append_cash_movement(self, movement: CashMovement) -> CashMovement:
        stored = replace(movement, id=self._next_id())
        with self._guard:
            self._cash_movements.append(stored)
        return stored

    def append_allocation(self, allocation: Allocation) -> Allocation:
        stored = replace(allocation, id=self._next_id())
        with self._guard:
            self._allocations.append(stored)
        return stored

    def append_trade(self, trade: Trade) -> Trade:
        stored = replace(trade, id=self._next_id())
        with self._guard:
            self._trades.append(stored)
        return stored

    def _next_id(self) -> int:
        with self._guard:
            return next(self._ids)


class _StagedLedger:
    """Transaction-like view over an in-memory store.

    Reads see committed events plus the ones staged so far; appends stay
    private until ``publish``.
    """

    def __init__(self, store: InMemoryLedgerRepository) -> None:
        self._store = store
        self._cash_movements: list[CashMovement] = []
        self._allocations: list[Allocation] = []
        self._trades: list[Trade] = []

    def __getattr__(self, name: str):
        return getattr(self._store, name)

    @contextmanager
    def locked(self, client_id: int) -> Iterator["_StagedLedger"]:
        yield self

    def list_cash_movements(
        self,
        client_id: int,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[CashMovement]:
        rows = self._store.list_cash_movements(client_id) + [
            movement
            for movement in self._cash_movements
            if movement.client_id == client_id
        ]
        return _page(rows, limit, offset)

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
        rows = self._store.list_allocations(
            client_id,
            fund_id=fund_id,
            origin=origin,
            start_date=start_date,
            end_date=end_date,
        ) + [
            allocation
            for allocation in self._allocations
            if allocation.client_id == client_id
            and (fund_id is None or allocation.fund_id == fund_id)
            and (origin is None or allocation.origin == origin)
            and _in_range(allocation.timestamp, start_date, end_date)
        ]
        return _page(rows, limit, offset)

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
        rows = self._store.list_trades(
            client_id=client_id,
            fund_id=fund_id,
            security_id=security_id,
            start_date=start_date,
            end_date=end_date,
        ) + [
            trade
            for trade in self._trades
            if (client_id is None or trade.client_id == client_id)
            and (fund_id is None or trade.fund_id == fund_id)
            and (security_id is None or trade.security_id == security_id)
            and _in_range(trade.timestamp, start_date, end_date)
        ]
        return _page(rows, limit, offset)

    def append_cash_movement(self, movement: CashMovement) -> CashMovement:
        stored = replace(movement, id=self._store._next_id())
        self._cash_movements.append(stored)
        return stored

    def append_allocation(self, allocation: Allocation) -> Allocation:
        stored = replace(allocation, id=self._store._next_id())
        self._allocations.append(stored)
        return stored

    def append_trade(self, trade: Trade) -> Trade:
        stored = replace(trade, id=self._store._next_id())
        self._trades.append(stored)
        return stored

    def publish(self) -> None:
        """Make staged events visible in the underlying store."""
        store = self._store
        with store._guard:
            store._cash_movements.extend(self._cash_movements)
            store._allocations.extend(self._allocations)
            store._trades.extend(self._trades)
        self._cash_movements = []
        self._allocations = []
        self._trades = []


def _in_range(
    timestamp: datetime,
    start_date: date | None,
    end_date: date | None,
) -> bool:
    day = timestamp.date()
    if start_date is not None and day < start_date:
        return False
    if end_date is not None and day > end_date:
        return False
    return True


def _page(rows: list, limit: int | None, offset: int) -> list:
    ordered = sorted(rows, key=lambda row: (row.timestamp, row.id or 0))
    if limit is None:
        return ordered[offset:]
    return ordered[offset:offset + limit]


__all__ = ["InMemoryLedgerRepository"]
