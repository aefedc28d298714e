"""
Process-wide ledger context.

The store handle is created once by init_ledger at app start and handed
to every service explicitly. Request code reaches it through the Flask
app (get_ledger), never through a module global.
"""
from dataclasses import dataclass
from decimal import Decimal

from flask import current_app
import structlog

from whoowes.core import (
    LedgerQueries, LedgerWriter, MerchantRegistry, PurchaseService,
    SettlementEvaluator, TransactionRunner,
)
from whoowes.store import InMemoryStore, LedgerStore, MongoStore

logger = structlog.get_logger(__name__)

EXTENSION_KEY = "whoowes"


@dataclass
class Ledger:
    store: LedgerStore
    runner: TransactionRunner
    merchants: MerchantRegistry
    writer: LedgerWriter
    settlement: SettlementEvaluator
    purchases: PurchaseService
    queries: LedgerQueries


def build_ledger(store: LedgerStore, max_attempts: int = 5, max_wait: float = 0.05,
                 tolerance: Decimal = Decimal("0.00")) -> Ledger:
    runner = TransactionRunner(store, max_attempts=max_attempts, max_wait=max_wait)
    merchants = MerchantRegistry(runner)
    writer = LedgerWriter(runner, merchants)
    settlement = SettlementEvaluator(runner, tolerance=tolerance)
    return Ledger(
        store=store,
        runner=runner,
        merchants=merchants,
        writer=writer,
        settlement=settlement,
        purchases=PurchaseService(writer, settlement),
        queries=LedgerQueries(store),
    )


def create_store(config) -> LedgerStore:
    backend = config.get("STORE_BACKEND", "mongo")
    if backend == "memory":
        return InMemoryStore()
    if backend == "mongo":
        mongo_uri = config.get("MONGO_URI")
        if not mongo_uri:
            raise RuntimeError("MONGO_URI is not set")
        store = MongoStore.from_uri(
            mongo_uri,
            db_name=config.get("MONGO_DB_NAME", "whoowes"),
            timeout_ms=config.get("MONGO_TIMEOUT_MS", 5000),
        )
        store.ensure_indexes()
        return store
    raise RuntimeError(f"Unknown STORE_BACKEND: {backend}")


def init_ledger(app, store: LedgerStore = None) -> Ledger:
    if store is None:
        store = create_store(app.config)
    ledger = build_ledger(
        store,
        max_attempts=app.config.get("TRANSACTION_MAX_ATTEMPTS", 5),
        max_wait=app.config.get("TRANSACTION_RETRY_MAX_WAIT", 0.05),
        tolerance=Decimal(str(app.config.get("SETTLEMENT_TOLERANCE", "0.00"))),
    )
    app.extensions[EXTENSION_KEY] = ledger
    logger.info("ledger_initialized", store=type(store).__name__)
    return ledger


def get_ledger() -> Ledger:
    """Get the ledger context of the current app. Must be called after init_ledger."""
    try:
        return current_app.extensions[EXTENSION_KEY]
    except KeyError:
        raise RuntimeError("Ledger not initialized. Call init_ledger first.") from None
