"""Application ports package."""

from .database import DatabaseEnginePort
from .ledger_repository import LedgerReaderPort, LedgerRepositoryPort

__all__ = [
    "DatabaseEnginePort",
    "LedgerReaderPort",
    "LedgerRepositoryPort",
]
