"""
Ledger Writer - appends one purchase to a card's transaction log.

Responsibilities:
- Validate merchant name, amount and card id before any store access
- Re-read the card inside the transaction and reject unknown/inactive cards
- Ensure the merchant exists in the same transaction
- Append the purchase (archived = False, entered now)

Either the purchase and its (possibly new) merchant commit together, or
nothing is written.
"""
from typing import Any

import structlog

from whoowes.errors import NotFoundError, ValidationError
from whoowes.transactions.models import Transaction, utcnow
from whoowes.utils.validators import validate_purchase

logger = structlog.get_logger(__name__)

CARD_NOT_FOUND = "card does not exist"


class LedgerWriter:
    """Validated, transactional append of purchases."""

    def __init__(self, runner, registry):
        self._runner = runner
        self._registry = registry

    def append(self, card_id: Any, merchant_name: Any, amount: Any) -> Transaction:
        """
        Append a purchase.

        Args:
            card_id: id of an existing active card
            merchant_name: free-text merchant name
            amount: positive number, rounded half away from zero to cents

        Returns:
            The committed Transaction

        Raises:
            ValidationError: bad input, nothing read or written
            NotFoundError: card missing or inactive, nothing written
            ConflictError: retry budget exhausted, nothing written
        """
        outcome = validate_purchase(card_id, merchant_name, amount)
        if not outcome.ok:
            raise ValidationError(outcome.reason)

        def body(txn):
            card = txn.get_card(outcome.card_id)
            if card is None or not card.active:
                raise NotFoundError(CARD_NOT_FOUND)
            merchant = self._registry.ensure(txn, outcome.merchant_name)
            record = txn.insert_transaction(Transaction(
                card_id=card.id,
                merchant_name=merchant.name,
                amount=outcome.amount,
                entered_date=utcnow(),
            ))
            txn.touch_card(card.id)
            return record

        record = self._runner.run(body, name="append_transaction")
        logger.info(
            "transaction_appended",
            transaction_id=record.id,
            card_id=record.card_id,
            merchant=record.merchant_name,
            amount=str(record.amount),
        )
        return record
