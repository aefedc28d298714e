"""Read-only projections over the store. No transactions needed."""
from datetime import datetime
from typing import Any, Dict, List, Optional

from whoowes.core.ledger_writer import CARD_NOT_FOUND
from whoowes.errors import NotFoundError


class LedgerQueries:

    def __init__(self, store):
        self._store = store

    def cards(self) -> List[Dict[str, Any]]:
        return [card.to_dict() for card in self._store.list_cards(active_only=True)]

    def merchants(self) -> List[Dict[str, Any]]:
        return [merchant.to_dict() for merchant in self._store.list_merchants()]

    def card_transactions(
        self,
        card_id: str,
        open_only: bool = False,
        since: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        card = self._store.get_card(card_id)
        if card is None:
            raise NotFoundError(CARD_NOT_FOUND)
        records = self._store.list_transactions(card_id=card.id, open_only=open_only, since=since)
        return {
            "cardId": card.id,
            "cardholder": card.cardholder,
            "transactions": [_entry(record) for record in records],
        }

    def transactions(self, open_only: bool = False, since: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """Transactions grouped under each active card."""
        by_card: Dict[str, list] = {}
        for record in self._store.list_transactions(open_only=open_only, since=since):
            by_card.setdefault(record.card_id, []).append(_entry(record))
        return [
            {"cardId": card.id, "cardholder": card.cardholder, "transactions": by_card.get(card.id, [])}
            for card in self._store.list_cards(active_only=True)
        ]


def _entry(record) -> Dict[str, Any]:
    entry = record.to_dict()
    entry.pop("cardId")
    return entry
