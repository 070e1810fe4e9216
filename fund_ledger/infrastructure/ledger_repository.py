"""SQLAlchemy-backed event store for the liquidity ledger."""

from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime, time, timedelta
from typing import Iterator, Optional

from sqlalchemy import bindparam, text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from fund_ledger.application.ports.database import DatabaseEnginePort
from fund_ledger.application.ports.ledger_repository import (
    LedgerRepositoryPort,
)
from fund_ledger.domain.constants import (
    AllocationKind,
    AllocationOrigin,
    CashMovementKind,
    Currency,
    TradeSide,
)
from fund_ledger.domain.errors import (
    ConstraintViolationError,
    LedgerValidationError,
    StoreUnavailableError,
)
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
from fund_ledger.infrastructure.logging.logger import get_app_logger
from fund_ledger.utils.decimal_utils import coerce_decimal

ID_COLUMNS = {
    "postgresql": "BIGSERIAL PRIMARY KEY",
}
DEFAULT_ID_COLUMN = "INTEGER PRIMARY KEY AUTOINCREMENT"

SCHEMA_DDL = (
    """
    CREATE TABLE IF NOT EXISTS client (
        id {id_column},
        name TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS fund (
        id {id_column},
        client_id INTEGER NOT NULL REFERENCES client (id),
        name TEXT NOT NULL,
        strategy TEXT,
        target_date DATE,
        target_amount NUMERIC(20, 8),
        target_currency TEXT,
        opened_at TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS security (
        id {id_column},
        name TEXT NOT NULL UNIQUE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS security_price (
        security_id INTEGER NOT NULL REFERENCES security (id),
        price_date DATE NOT NULL,
        price_usd NUMERIC(20, 8) NOT NULL CHECK (price_usd > 0),
        PRIMARY KEY (security_id, price_date)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS exchange_rate (
        currency TEXT NOT NULL,
        rate_date DATE NOT NULL,
        rate NUMERIC(20, 8) NOT NULL CHECK (rate > 0),
        PRIMARY KEY (currency, rate_date)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS cash_movement (
        id {id_column},
        client_id INTEGER NOT NULL REFERENCES client (id),
        ts TIMESTAMP NOT NULL,
        kind TEXT NOT NULL CHECK (kind IN ('deposit', 'withdrawal')),
        amount NUMERIC(20, 8) NOT NULL CHECK (amount > 0),
        currency TEXT NOT NULL,
        fx_rate NUMERIC(20, 8),
        amount_usd NUMERIC(20, 8) NOT NULL CHECK (amount_usd > 0),
        comment TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS allocation (
        id {id_column},
        client_id INTEGER NOT NULL REFERENCES client (id),
        fund_id INTEGER NOT NULL REFERENCES fund (id),
        ts TIMESTAMP NOT NULL,
        kind TEXT NOT NULL CHECK (kind IN ('assign', 'unassign')),
        amount NUMERIC(20, 8) CHECK (amount > 0),
        currency TEXT NOT NULL,
        fx_rate NUMERIC(20, 8),
        amount_usd NUMERIC(20, 8) NOT NULL CHECK (amount_usd > 0),
        origin TEXT NOT NULL CHECK (origin IN ('manual', 'system')),
        comment TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS trade (
        id {id_column},
        client_id INTEGER NOT NULL REFERENCES client (id),
        fund_id INTEGER NOT NULL REFERENCES fund (id),
        security_id INTEGER NOT NULL REFERENCES security (id),
        ts TIMESTAMP NOT NULL,
        side TEXT NOT NULL CHECK (side IN ('buy', 'sell')),
        quantity INTEGER NOT NULL CHECK (quantity > 0),
        unit_price NUMERIC(20, 8) NOT NULL CHECK (unit_price > 0),
        currency TEXT NOT NULL,
        fx_rate NUMERIC(20, 8),
        unit_price_usd NUMERIC(20, 8) NOT NULL CHECK (unit_price_usd > 0)
    )
    """,
    "CREATE INDEX IF NOT EXISTS ix_cash_movement_client "
    "ON cash_movement (client_id, ts)",
    "CREATE INDEX IF NOT EXISTS ix_allocation_client_fund "
    "ON allocation (client_id, fund_id, ts)",
    "CREATE INDEX IF NOT EXISTS ix_trade_fund ON trade (fund_id, ts)",
)

ADVISORY_LOCK_SQL = text("SELECT pg_advisory_xact_lock(:client_id)")

SELECT_CLIENT_SQL = text("SELECT id, name FROM client WHERE id = :client_id")

INSERT_CLIENT_SQL = text(
    "INSERT INTO client (name) VALUES (:name) RETURNING id"
)

FUND_COLUMNS = """
    id, client_id, name, strategy, target_date, target_amount,
    target_currency, opened_at
"""

SELECT_FUND_SQL = text(
    f"SELECT {FUND_COLUMNS} FROM fund WHERE id = :fund_id"
)

SELECT_FUNDS_SQL = text(
    f"SELECT {FUND_COLUMNS} FROM fund WHERE client_id = :client_id ORDER BY id"
)

INSERT_FUND_SQL = text(
    """
    INSERT INTO fund (
        client_id,
        name,
        strategy,
        target_date,
        target_amount,
        target_currency,
        opened_at
    )
    VALUES (
        :client_id,
        :name,
        :strategy,
        :target_date,
        :target_amount,
        :target_currency,
        :opened_at
    )
    RETURNING id
    """
)

SELECT_SECURITY_BY_NAME_SQL = text(
    "SELECT id, name FROM security WHERE lower(name) = lower(:name)"
)

SELECT_SECURITIES_SQL = text(
    "SELECT id, name FROM security WHERE id IN :security_ids ORDER BY id"
).bindparams(bindparam("security_ids", expanding=True))

INSERT_SECURITY_SQL = text(
    "INSERT INTO security (name) VALUES (:name) RETURNING id"
)

INSERT_PRICE_SQL = text(
    """
    INSERT INTO security_price (security_id, price_date, price_usd)
    VALUES (:security_id, :price_date, :price_usd)
    ON CONFLICT (security_id, price_date)
    DO UPDATE SET price_usd = excluded.price_usd
    """
)

INSERT_FX_RATE_SQL = text(
    """
    INSERT INTO exchange_rate (currency, rate_date, rate)
    VALUES (:currency, :rate_date, :rate)
    ON CONFLICT (currency, rate_date)
    DO UPDATE SET rate = excluded.rate
    """
)

INSERT_CASH_MOVEMENT_SQL = text(
    """
    INSERT INTO cash_movement (
        client_id,
        ts,
        kind,
        amount,
        currency,
        fx_rate,
        amount_usd,
        comment
    )
    VALUES (
        :client_id,
        :ts,
        :kind,
        :amount,
        :currency,
        :fx_rate,
        :amount_usd,
        :comment
    )
    RETURNING id
    """
)

INSERT_ALLOCATION_SQL = text(
    """
    INSERT INTO allocation (
        client_id,
        fund_id,
        ts,
        kind,
        amount,
        currency,
        fx_rate,
        amount_usd,
        origin,
        comment
    )
    VALUES (
        :client_id,
        :fund_id,
        :ts,
        :kind,
        :amount,
        :currency,
        :fx_rate,
        :amount_usd,
        :origin,
        :comment
    )
    RETURNING id
    """
)

INSERT_TRADE_SQL = text(
    """
    INSERT INTO trade (
        client_id,
        fund_id,
        security_id,
        ts,
        side,
        quantity,
        unit_price,
        currency,
        fx_rate,
        unit_price_usd
    )
    VALUES (
        :client_id,
        :fund_id,
        :security_id,
        :ts,
        :side,
        :quantity,
        :unit_price,
        :currency,
        :fx_rate,
        :unit_price_usd
    )
    RETURNING id
    """
)


class SqlAlchemyLedgerRepository(LedgerRepositoryPort):
    """Ledger store backed by SQLAlchemy Core queries.

    Instances built with an explicit ``connection`` run every read and append
    on it; this is how ``locked`` hands out a transaction-bound repository.
    """

    def __init__(
        self,
        db_port: DatabaseEnginePort,
        connection: Optional[Connection] = None,
        logger=None,
    ) -> None:
        """Initialize the repository.

        Args:
            db_port: Port providing access to the ledger engine.
            connection: Optional open connection to reuse for all statements.
            logger: Optional logger compatible with logging.Logger-like API.
        """
        self._db_port = db_port
        self._connection = connection
        self._logger = logger or get_app_logger()

    def prepare_schema(self) -> None:
        """Create the ledger tables when missing."""
        with self._store_errors("prepare_schema"):
            with self._scope(write=True) as conn:
                id_column = ID_COLUMNS.get(
                    conn.dialect.name,
                    DEFAULT_ID_COLUMN,
                )
                for statement in SCHEMA_DDL:
                    conn.exec_driver_sql(
                        statement.format(id_column=id_column)
                    )

    @contextmanager
    def locked(self, client_id: int) -> Iterator["SqlAlchemyLedgerRepository"]:
        """Serialize writers of one client inside a single transaction.

        On PostgreSQL a transaction-scoped advisory lock keyed by the client
        id is taken; it is released at commit or rollback. Other dialects
        get the transaction only, so concurrent writers of one client are
        not serialized there. SQLite in tests is the intended case; run
        concurrent writers against PostgreSQL.

        Args:
            client_id: Client whose writers must be serialized.

        Yields:
            SqlAlchemyLedgerRepository: Repository bound to the transaction.
        """
        if self._connection is not None:
            yield self
            return
        with self._store_errors("locked"):
            engine = self._db_port.get_ledger_engine()
            with engine.begin() as conn:
                if conn.dialect.name == "postgresql":
                    conn.execute(ADVISORY_LOCK_SQL, {"client_id": client_id})
                yield SqlAlchemyLedgerRepository(
                    self._db_port,
                    connection=conn,
                    logger=self._logger,
                )

    def fetch_client(self, client_id: int) -> Client | None:
        """Return a client by id, or None."""
        row = self._fetch_one(
            "fetch_client",
            SELECT_CLIENT_SQL,
            {"client_id": client_id},
        )
        if row is None:
            return None
        return Client(id=row.id, name=row.name)

    def create_client(self, name: str) -> Client:
        """Insert a client and return it with its id."""
        client_id = self._insert(
            "create_client",
            INSERT_CLIENT_SQL,
            {"name": name},
        )
        return Client(id=client_id, name=name)

    def fetch_fund(self, fund_id: int) -> Fund | None:
        """Return a fund by id, or None."""
        row = self._fetch_one(
            "fetch_fund",
            SELECT_FUND_SQL,
            {"fund_id": fund_id},
        )
        if row is None:
            return None
        return _fund_from_row(row)

    def list_funds(self, client_id: int) -> list[Fund]:
        """Return every fund of a client ordered by id."""
        rows = self._fetch_all(
            "list_funds",
            SELECT_FUNDS_SQL,
            {"client_id": client_id},
        )
        return [_fund_from_row(row) for row in rows]

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
        """Insert a fund for a client and return it with its id."""
        params = {
            "client_id": client_id,
            "name": name,
            "strategy": strategy,
            "target_date": _date_param(target_date),
            "target_amount": _decimal_param(target_amount),
            "target_currency": target_currency,
            "opened_at": _timestamp_param(opened_at),
        }
        fund_id = self._insert("create_fund", INSERT_FUND_SQL, params)
        return Fund(
            id=fund_id,
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

    def list_cash_movements(
        self,
        client_id: int,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[CashMovement]:
        """Return a client's cash movements ordered by time."""
        sql = (
            "SELECT id, client_id, ts, kind, amount, currency, fx_rate, "
            "amount_usd, comment FROM cash_movement "
            "WHERE client_id = :client_id"
        )
        rows = self._fetch_page(
            "list_cash_movements",
            sql,
            {"client_id": client_id},
            limit,
            offset,
        )
        return [
            CashMovement(
                id=row.id,
                client_id=row.client_id,
                timestamp=_as_datetime(row.ts),
                kind=CashMovementKind(row.kind),
                amount=coerce_decimal(row.amount),
                currency=Currency.parse(row.currency),
                fx_rate=_optional_decimal(row.fx_rate),
                amount_usd=coerce_decimal(row.amount_usd),
                comment=row.comment,
            )
            for row in rows
        ]

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
        clauses = ["client_id = :client_id"]
        params: dict = {"client_id": client_id}
        if fund_id is not None:
            clauses.append("fund_id = :fund_id")
            params["fund_id"] = fund_id
        if origin is not None:
            clauses.append("origin = :origin")
            params["origin"] = AllocationOrigin(origin).value
        _add_date_range(clauses, params, start_date, end_date)
        sql = (
            "SELECT id, client_id, fund_id, ts, kind, amount, currency, "
            "fx_rate, amount_usd, origin, comment FROM allocation WHERE "
            + " AND ".join(clauses)
        )
        rows = self._fetch_page("list_allocations", sql, params, limit, offset)
        return [
            Allocation(
                id=row.id,
                client_id=row.client_id,
                fund_id=row.fund_id,
                timestamp=_as_datetime(row.ts),
                kind=AllocationKind(row.kind),
                amount=_optional_decimal(row.amount),
                currency=Currency.parse(row.currency),
                fx_rate=_optional_decimal(row.fx_rate),
                amount_usd=coerce_decimal(row.amount_usd),
                origin=AllocationOrigin(row.origin),
                comment=row.comment,
            )
            for row in rows
        ]

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
        clauses = []
        params: dict = {}
        for column, value in (
            ("client_id", client_id),
            ("fund_id", fund_id),
            ("security_id", security_id),
        ):
            if value is not None:
                clauses.append(f"{column} = :{column}")
                params[column] = value
        _add_date_range(clauses, params, start_date, end_date)
        sql = (
            "SELECT id, client_id, fund_id, security_id, ts, side, quantity, "
            "unit_price, currency, fx_rate, unit_price_usd FROM trade"
        )
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        rows = self._fetch_page("list_trades", sql, params, limit, offset)
        return [
            Trade(
                id=row.id,
                client_id=row.client_id,
                fund_id=row.fund_id,
                security_id=row.security_id,
                timestamp=_as_datetime(row.ts),
                side=TradeSide(row.side),
                quantity=int(row.quantity),
                unit_price=coerce_decimal(row.unit_price),
                currency=Currency.parse(row.currency),
                fx_rate=_optional_decimal(row.fx_rate),
                unit_price_usd=coerce_decimal(row.unit_price_usd),
            )
            for row in rows
        ]

    def fetch_securities(self, security_ids: list[int]) -> list[Security]:
        """Return the securities with the given ids."""
        if not security_ids:
            return []
        rows = self._fetch_all(
            "fetch_securities",
            SELECT_SECURITIES_SQL,
            {"security_ids": list(security_ids)},
        )
        return [Security(id=row.id, name=row.name) for row in rows]

    def get_or_create_security(self, name: str) -> Security:
        """Return the security named ``name``, creating it if unknown.

        Names are matched case-insensitively.

        Raises:
            LedgerValidationError: If the name is blank.
        """
        cleaned = (name or "").strip()
        if not cleaned:
            raise LedgerValidationError("Security name must not be empty")
        row = self._fetch_one(
            "get_or_create_security",
            SELECT_SECURITY_BY_NAME_SQL,
            {"name": cleaned},
        )
        if row is not None:
            return Security(id=row.id, name=row.name)
        security_id = self._insert(
            "get_or_create_security",
            INSERT_SECURITY_SQL,
            {"name": cleaned},
        )
        self._logger.info(f"Created security {cleaned} with id {security_id}")
        return Security(id=security_id, name=cleaned)

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
        with self._store_errors("record_price"):
            with self._scope(write=True) as conn:
                conn.execute(
                    INSERT_PRICE_SQL,
                    {
                        "security_id": security_id,
                        "price_date": _date_param(price_date),
                        "price_usd": _decimal_param(price.price_usd),
                    },
                )
        return price

    def fetch_latest_prices(
        self,
        security_ids: list[int],
        as_of: date | None = None,
    ) -> list[SecurityPrice]:
        """Return the latest price per security on or before ``as_of``."""
        if not security_ids:
            return []
        cutoff = ""
        params: dict = {"security_ids": list(security_ids)}
        if as_of is not None:
            cutoff = "AND latest.price_date <= :as_of"
            params["as_of"] = _date_param(as_of)
        sql = text(
            f"""
            SELECT p.security_id, p.price_date, p.price_usd
            FROM security_price p
            WHERE p.security_id IN :security_ids
              AND p.price_date = (
                SELECT MAX(latest.price_date)
                FROM security_price latest
                WHERE latest.security_id = p.security_id
                {cutoff}
              )
            ORDER BY p.security_id
            """
        ).bindparams(bindparam("security_ids", expanding=True))
        rows = self._fetch_all("fetch_latest_prices", sql, params)
        return [
            SecurityPrice(
                security_id=row.security_id,
                date=_as_date(row.price_date),
                price_usd=coerce_decimal(row.price_usd),
            )
            for row in rows
        ]

    def record_fx_rate(
        self,
        rate_date: date,
        currency: Currency | str,
        rate,
    ) -> ExchangeRate:
        """Store a daily quote, replacing one for the same currency and day."""
        quote = build_exchange_rate(currency, rate_date, rate)
        with self._store_errors("record_fx_rate"):
            with self._scope(write=True) as conn:
                conn.execute(
                    INSERT_FX_RATE_SQL,
                    {
                        "currency": quote.currency.value,
                        "rate_date": _date_param(quote.date),
                        "rate": _decimal_param(quote.rate),
                    },
                )
        return quote

    def fetch_fx_rate(
        self,
        currency: Currency | str,
        as_of: date | None = None,
    ) -> ExchangeRate | None:
        """Return the latest quote of ``currency`` on or before ``as_of``."""
        resolved = Currency.parse(currency)
        cutoff = ""
        params: dict = {"currency": resolved.value}
        if as_of is not None:
            cutoff = "AND rate_date <= :as_of"
            params["as_of"] = _date_param(as_of)
        sql = text(
            f"""
            SELECT currency, rate_date, rate
            FROM exchange_rate
            WHERE currency = :currency {cutoff}
            ORDER BY rate_date DESC
            LIMIT 1
            """
        )
        row = self._fetch_one("fetch_fx_rate", sql, params)
        if row is None:
            return None
        return ExchangeRate(
            currency=Currency.parse(row.currency),
            date=_as_date(row.rate_date),
            rate=coerce_decimal(row.rate),
        )

    def append_cash_movement(self, movement: CashMovement) -> CashMovement:
        """Append a cash movement and return it with its id."""
        movement_id = self._insert(
            "append_cash_movement",
            INSERT_CASH_MOVEMENT_SQL,
            {
                "client_id": movement.client_id,
                "ts": _timestamp_param(movement.timestamp),
                "kind": movement.kind.value,
                "amount": _decimal_param(movement.amount),
                "currency": movement.currency.value,
                "fx_rate": _decimal_param(movement.fx_rate),
                "amount_usd": _decimal_param(movement.amount_usd),
                "comment": movement.comment,
            },
        )
        return _with_id(movement, movement_id)

    def append_allocation(self, allocation: Allocation) -> Allocation:
        """Append an allocation and return it with its id."""
        allocation_id = self._insert(
            "append_allocation",
            INSERT_ALLOCATION_SQL,
            {
                "client_id": allocation.client_id,
                "fund_id": allocation.fund_id,
                "ts": _timestamp_param(allocation.timestamp),
                "kind": allocation.kind.value,
                "amount": _decimal_param(allocation.amount),
                "currency": allocation.currency.value,
                "fx_rate": _decimal_param(allocation.fx_rate),
                "amount_usd": _decimal_param(allocation.amount_usd),
                "origin": allocation.origin.value,
                "comment": allocation.comment,
            },
        )
        return _with_id(allocation, allocation_id)

    def append_trade(self, trade: Trade) -> Trade:
        """Append a trade and return it with its id."""
        trade_id = self._insert(
            "append_trade",
            INSERT_TRADE_SQL,
            {
                "client_id": trade.client_id,
                "fund_id": trade.fund_id,
                "security_id": trade.security_id,
                "ts": _timestamp_param(trade.timestamp),
                "side": trade.side.value,
                "quantity": trade.quantity,
                "unit_price": _decimal_param(trade.unit_price),
                "currency": trade.currency.value,
                "fx_rate": _decimal_param(trade.fx_rate),
                "unit_price_usd": _decimal_param(trade.unit_price_usd),
            },
        )
        return _with_id(trade, trade_id)

    @contextmanager
    def _scope(self, write: bool = False) -> Iterator[Connection]:
        if self._connection is not None:
            yield self._connection
            return
        engine = self._db_port.get_ledger_engine()
        factory = engine.begin if write else engine.connect
        with factory() as conn:
            yield conn

    @contextmanager
    def _store_errors(self, operation: str) -> Iterator[None]:
        try:
            yield
        except IntegrityError as exc:
            self._logger.warning(
                f"Ledger store refused {operation}: {exc.orig}"
            )
            raise ConstraintViolationError(operation) from exc
        except SQLAlchemyError as exc:
            self._logger.error(
                f"Ledger store failed during {operation}: {exc}"
            )
            raise StoreUnavailableError(str(exc)) from exc

    def _fetch_one(self, operation: str, sql, params: dict):
        with self._store_errors(operation):
            with self._scope() as conn:
                return conn.execute(sql, params).first()

    def _fetch_all(self, operation: str, sql, params: dict) -> list:
        with self._store_errors(operation):
            with self._scope() as conn:
                return conn.execute(sql, params).all()

    def _fetch_page(
        self,
        operation: str,
        sql: str,
        params: dict,
        limit: int | None,
        offset: int,
    ) -> list:
        sql += " ORDER BY ts, id"
        if limit is not None:
            sql += " LIMIT :limit OFFSET :offset"
            params = {**params, "limit": limit, "offset": offset}
        rows = self._fetch_all(operation, text(sql), params)
        if limit is None and offset:
            return rows[offset:]
        return rows

    def _insert(self, operation: str, sql, params: dict) -> int:
        with self._store_errors(operation):
            with self._scope(write=True) as conn:
                return conn.execute(sql, params).scalar_one()


def _fund_from_row(row) -> Fund:
    return Fund(
        id=row.id,
        client_id=row.client_id,
        name=row.name,
        strategy=row.strategy,
        target_date=_as_date(row.target_date) if row.target_date else None,
        target_amount=_optional_decimal(row.target_amount),
        target_currency=row.target_currency,
        opened_at=_as_datetime(row.opened_at) if row.opened_at else None,
    )


def _add_date_range(
    clauses: list[str],
    params: dict,
    start_date: date | None,
    end_date: date | None,
) -> None:
    if start_date is not None:
        clauses.append("ts >= :start_ts")
        params["start_ts"] = _timestamp_param(
            datetime.combine(start_date, time.min)
        )
    if end_date is not None:
        clauses.append("ts < :end_ts")
        params["end_ts"] = _timestamp_param(
            datetime.combine(end_date + timedelta(days=1), time.min)
        )


def _with_id(event, event_id: int):
    return replace(event, id=event_id)


# Values are bound as ISO text and decimal strings so the same statements
# run on drivers without native Decimal or datetime adaptation.
def _decimal_param(value) -> Optional[str]:
    if value is None:
        return None
    return str(coerce_decimal(value))


def _timestamp_param(value: datetime | None) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat(sep=" ")


def _date_param(value: date | None) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


def _optional_decimal(value):
    if value is None:
        return None
    return coerce_decimal(value)


def _as_datetime(value) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


__all__ = [
    "SqlAlchemyLedgerRepository",
    "SCHEMA_DDL",
    "ADVISORY_LOCK_SQL",
]
