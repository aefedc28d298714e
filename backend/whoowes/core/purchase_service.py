"""
Purchase Service - the "record purchase" use case.

Gate check, append, then a settlement pass in a separate transaction.
"""
from dataclasses import dataclass
from typing import Any, Optional

import structlog

from whoowes.auth.gate import Caller, require_authorized
from whoowes.core.settlement import SettlementResult
from whoowes.errors import ConflictError, LedgerError, StoreUnavailableError, error_body
from whoowes.transactions.models import Transaction

logger = structlog.get_logger(__name__)


@dataclass
class PurchaseOutcome:
    transaction: Transaction
    settlement: Optional[SettlementResult] = None
    settlement_error: Optional[LedgerError] = None

    def to_dict(self):
        if self.settlement is not None:
            settlement = self.settlement.to_dict()
        else:
            settlement = error_body(self.settlement_error)
        return {"transaction": self.transaction.to_dict(), "settlement": settlement}


class PurchaseService:
    """Coordinates the Ledger Writer and the Settlement Evaluator."""

    def __init__(self, writer, evaluator):
        self._writer = writer
        self._evaluator = evaluator

    def record_purchase(self, caller: Caller, card_id: Any, merchant_name: Any, amount: Any) -> PurchaseOutcome:
        """
        Append a purchase and evaluate settlement.

        If the append commits but the settlement pass cannot, the purchase
        stands and the outcome carries the settlement error instead of a
        result; POST /settlements/evaluate can re-run the pass.
        """
        require_authorized(caller)
        record = self._writer.append(card_id, merchant_name, amount)
        try:
            settlement = self._evaluator.evaluate()
        except (ConflictError, StoreUnavailableError) as err:
            logger.warning(
                "settlement_deferred",
                transaction_id=record.id,
                reason=type(err).__name__,
                caller=caller.identity,
            )
            return PurchaseOutcome(transaction=record, settlement_error=err)
        return PurchaseOutcome(transaction=record, settlement=settlement)

    def settle(self, caller: Caller) -> SettlementResult:
        require_authorized(caller)
        return self._evaluator.evaluate()
