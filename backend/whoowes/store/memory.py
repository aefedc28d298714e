"""
In-process document store with optimistic, snapshot-isolated transactions.

Used by the test suite and for local development (STORE_BACKEND=memory).
Every transaction attempt works on a private copy of the data taken at
begin time and records the keys it read and wrote. Commit validates that
none of those keys changed since the snapshot (serializable OCC); if one
did, the attempt raises TransactionConflict and nothing is applied.

Keys are logical, not physical: reading the active card list reads the
("cards",) key, looking up a merchant by name reads ("merchant-name", name),
scanning a card's open entries reads ("card-log", card_id). Writers touch
the same keys, which is what turns a lost race into a conflict.
"""
import copy
import threading
import uuid
from datetime import datetime
from typing import Callable, Dict, Optional, Set, Tuple

from whoowes.cards.models import Card
from whoowes.errors import StoreUnavailableError, TransactionConflict
from whoowes.merchants.models import Merchant
from whoowes.store.interface import LedgerStore, T, UnitOfWork
from whoowes.transactions.models import Transaction

Key = Tuple[str, ...]


def _new_id() -> str:
    return uuid.uuid4().hex


class _State:
    def __init__(self):
        self.cards: Dict[str, Card] = {}
        self.merchants: Dict[str, Merchant] = {}
        self.merchant_names: Dict[str, str] = {}
        self.transactions: Dict[str, Transaction] = {}


class MemoryUnitOfWork(UnitOfWork):

    def __init__(self, state: _State, started_at: int):
        self.state = state
        self.started_at = started_at
        self.reads: Set[Key] = set()
        self.writes: Set[Key] = set()

    def get_card(self, card_id):
        self.reads.add(("card", card_id))
        card = self.state.cards.get(card_id)
        return copy.copy(card) if card else None

    def active_cards(self):
        self.reads.add(("cards",))
        cards = []
        for card_id in sorted(self.state.cards):
            card = self.state.cards[card_id]
            if card.active:
                self.reads.add(("card", card_id))
                cards.append(copy.copy(card))
        return cards

    def touch_card(self, card_id):
        self.writes.add(("card", card_id))

    def find_merchant(self, name):
        self.reads.add(("merchant-name", name))
        merchant_id = self.state.merchant_names.get(name)
        return copy.copy(self.state.merchants[merchant_id]) if merchant_id else None

    def insert_merchant(self, name):
        merchant = Merchant(id=_new_id(), name=name)
        self.state.merchants[merchant.id] = merchant
        self.state.merchant_names[name] = merchant.id
        self.writes.update({("merchant", merchant.id), ("merchant-name", name)})
        return copy.copy(merchant)

    def insert_transaction(self, transaction):
        record = copy.copy(transaction)
        record.id = _new_id()
        self.state.transactions[record.id] = record
        self.writes.update({("txn", record.id), ("card-log", record.card_id)})
        return copy.copy(record)

    def open_transactions(self, card_id):
        self.reads.add(("card-log", card_id))
        records = [
            copy.copy(t) for t in self.state.transactions.values()
            if t.card_id == card_id and not t.archived
        ]
        records.sort(key=lambda t: t.entered_date)
        return records

    def archive_transactions(self, transaction_ids):
        changed = 0
        for transaction_id in transaction_ids:
            record = self.state.transactions.get(transaction_id)
            if record is None or record.archived:
                continue
            record.archived = True
            self.writes.update({("txn", record.id), ("card-log", record.card_id)})
            changed += 1
        return changed


class InMemoryStore(LedgerStore):
    """Thread-safe in-memory LedgerStore."""

    def __init__(self):
        self._state = _State()
        self._lock = threading.Lock()
        self._clock = 0
        self._modified: Dict[Key, int] = {}
        self._forced_conflicts = 0
        self.available = True
        self.commits = 0
        self.conflicts = 0

    # ---- fault injection -------------------------------------------------

    def fail_next_commits(self, count: int = 1) -> None:
        """Make the next `count` commit attempts fail with a conflict."""
        with self._lock:
            self._forced_conflicts += count

    # ---- transactions ----------------------------------------------------

    def run_transaction(self, body: Callable[[UnitOfWork], T]) -> T:
        self._check_available()
        with self._lock:
            uow = MemoryUnitOfWork(copy.deepcopy(self._state), self._clock)

        result = body(uow)

        with self._lock:
            if self._forced_conflicts:
                self._forced_conflicts -= 1
                self.conflicts += 1
                raise TransactionConflict("commit rejected")
            stale = [
                key for key in uow.reads | uow.writes
                if self._modified.get(key, 0) > uow.started_at
            ]
            if stale:
                self.conflicts += 1
                raise TransactionConflict(f"concurrent modification of {sorted(stale)[0]}")
            self._apply(uow)
        return result

    def _apply(self, uow: MemoryUnitOfWork) -> None:
        self._clock += 1
        for key in uow.writes:
            kind = key[0]
            if kind == "merchant":
                self._state.merchants[key[1]] = uow.state.merchants[key[1]]
            elif kind == "merchant-name":
                self._state.merchant_names[key[1]] = uow.state.merchant_names[key[1]]
            elif kind == "txn":
                self._state.transactions[key[1]] = uow.state.transactions[key[1]]
            self._modified[key] = self._clock
        self.commits += 1

    # ---- plain reads -----------------------------------------------------

    def list_cards(self, active_only=True):
        self._check_available()
        with self._lock:
            cards = [copy.copy(c) for _, c in sorted(self._state.cards.items())]
        return [c for c in cards if c.active or not active_only]

    def get_card(self, card_id):
        self._check_available()
        with self._lock:
            card = self._state.cards.get(card_id)
            return copy.copy(card) if card else None

    def save_card(self, card):
        self._check_available()
        with self._lock:
            self._clock += 1
            self._state.cards[card.id] = copy.copy(card)
            for key in (("cards",), ("card", card.id)):
                self._modified[key] = self._clock
        return card

    def list_merchants(self):
        self._check_available()
        with self._lock:
            merchants = [copy.copy(m) for m in self._state.merchants.values()]
        return sorted(merchants, key=lambda m: m.name)

    def list_transactions(self, card_id=None, open_only=False, since: Optional[datetime] = None):
        self._check_available()
        with self._lock:
            records = [copy.copy(t) for t in self._state.transactions.values()]
        if card_id is not None:
            records = [t for t in records if t.card_id == card_id]
        if open_only:
            records = [t for t in records if not t.archived]
        if since is not None:
            records = [t for t in records if t.entered_date >= since]
        return sorted(records, key=lambda t: t.entered_date)

    def ping(self):
        self._check_available()

    def _check_available(self):
        if not self.available:
            raise StoreUnavailableError("in-memory store marked unavailable")

    def snapshot_counts(self) -> Dict[str, int]:
        with self._lock:
            return {
                "cards": len(self._state.cards),
                "merchants": len(self._state.merchants),
                "transactions": len(self._state.transactions),
            }
