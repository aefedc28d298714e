"""Core ledger services: merchant registry, writer, settlement."""

from .transactions import TransactionRunner
from .merchant_registry import MerchantRegistry
from .ledger_writer import LedgerWriter
from .settlement import SettlementEvaluator, SettlementResult
from .purchase_service import PurchaseOutcome, PurchaseService
from .queries import LedgerQueries

__all__ = [
    "TransactionRunner",
    "MerchantRegistry",
    "LedgerWriter",
    "SettlementEvaluator",
    "SettlementResult",
    "PurchaseOutcome",
    "PurchaseService",
    "LedgerQueries",
]
