"""Store adapters for the ledger core."""

from .interface import LedgerStore, UnitOfWork
from .memory import InMemoryStore
from .mongo import MongoStore

__all__ = [
    "LedgerStore",
    "UnitOfWork",
    "InMemoryStore",
    "MongoStore",
]
