"""Database infrastructure for the liquidity ledger.

This module exposes concrete helpers to create and reuse the SQLAlchemy
engine connected to the ledger database. It belongs to the infrastructure
layer because it deals with external systems (PostgreSQL).
"""

import os
from typing import Optional

import dotenv
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import QueuePool

from fund_ledger.application.ports.database import DatabaseEnginePort

DEFAULT_STATEMENT_TIMEOUT_MS = 5000


def _get_env_var(name: str) -> str:
    """Read an environment variable or raise a descriptive error.

    Values from a local ``.env`` file are loaded first.

    Args:
        name: Name of the environment variable to read.

    Returns:
        str: The raw value of the environment variable.

    Raises:
        RuntimeError: If the environment variable is missing or empty.
    """
    dotenv.load_dotenv()
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Missing environment variable: {name}")
    return value


def _create_engine(
    db_url: str,
    statement_timeout_ms: Optional[int] = None,
) -> Engine:
    """Create a configured SQLAlchemy engine for the ledger database.

    Args:
        db_url: Fully qualified database URL (including driver and credentials)
        statement_timeout_ms: Optional per-statement timeout, only applied to
            PostgreSQL URLs.

    Returns:
        Engine: A SQLAlchemy engine instance with a small connection pool and
        health checks enabled.

    Raises:
        RuntimeError: If ``statement_timeout_ms`` is negative.
    """
    if statement_timeout_ms is not None and statement_timeout_ms < 0:
        raise RuntimeError(
            f"Invalid statement timeout: {statement_timeout_ms}"
        )
    kwargs = {}
    if statement_timeout_ms and db_url.startswith("postgresql"):
        kwargs["connect_args"] = {
            "options": f"-c statement_timeout={statement_timeout_ms}"
        }
    return create_engine(
        db_url,
        poolclass=QueuePool,
        pool_size=5,
        max_overflow=5,
        pool_pre_ping=True,
        future=True,
        **kwargs,
    )


_ledger_engine: Optional[Engine] = None


def get_ledger_engine(
    statement_timeout_ms: int = DEFAULT_STATEMENT_TIMEOUT_MS,
) -> Engine:
    """Get a singleton SQLAlchemy engine for the ledger database.

    Args:
        statement_timeout_ms: Per-statement timeout used when the engine is
            first created; later calls return the cached engine.

    Returns:
        Engine: Lazily initialized engine connected to the ledger store.
    """
    global _ledger_engine
    if _ledger_engine is None:
        db_url = _get_env_var("LEDGER_DB_URL")
        _ledger_engine = _create_engine(db_url, statement_timeout_ms)
    return _ledger_engine


class SqlAlchemyDatabaseEngineAdapter(DatabaseEnginePort):
    """DatabaseEnginePort implementation backed by a SQLAlchemy engine.

    The adapter hides configuration details (environment variables, pooling)
    behind the port so application use cases can depend only on the protocol.
    """

    def __init__(
        self,
        statement_timeout_ms: int = DEFAULT_STATEMENT_TIMEOUT_MS,
    ) -> None:
        self._statement_timeout_ms = statement_timeout_ms

    def get_ledger_engine(self) -> Engine:
        """Get the engine for the ledger database.

        Returns:
            Engine: SQLAlchemy engine connected to the ledger store.
        """
        return get_ledger_engine(self._statement_timeout_ms)


__all__ = [
    "DEFAULT_STATEMENT_TIMEOUT_MS",
    "get_ledger_engine",
    "SqlAlchemyDatabaseEngineAdapter",
]
