"""
Store adapter interface.

The ledger core never talks to a database driver directly. It receives a
LedgerStore and does all of its mutating work through run_transaction,
which hands the body a UnitOfWork bound to one consistent snapshot.

run_transaction performs exactly ONE attempt:
- returns the body's result if the writes committed
- raises TransactionConflict if a concurrent writer invalidated the
  snapshot (nothing was written; the caller may re-run the body)
- raises StoreUnavailableError if the store could not be reached
- re-raises anything the body raised, after discarding its writes

Retrying is the caller's business (see core.transactions).
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, List, Optional, TypeVar

from whoowes.cards.models import Card
from whoowes.merchants.models import Merchant
from whoowes.transactions.models import Transaction

T = TypeVar("T")


class UnitOfWork(ABC):
    """Reads and writes scoped to one optimistic transaction attempt."""

    @abstractmethod
    def get_card(self, card_id: str) -> Optional[Card]:
        pass

    @abstractmethod
    def active_cards(self) -> List[Card]:
        """All active cards, ordered by id."""
        pass

    @abstractmethod
    def touch_card(self, card_id: str) -> None:
        """
        Record a write against the card document.

        Ledger writes on a card touch it so that two transactions changing
        the same card's ledger always conflict with each other.
        """
        pass

    @abstractmethod
    def find_merchant(self, name: str) -> Optional[Merchant]:
        """Look up a merchant by normalized name."""
        pass

    @abstractmethod
    def insert_merchant(self, name: str) -> Merchant:
        pass

    @abstractmethod
    def insert_transaction(self, transaction: Transaction) -> Transaction:
        """Append a purchase; returns it with its id assigned."""
        pass

    @abstractmethod
    def open_transactions(self, card_id: str) -> List[Transaction]:
        """Non-archived transactions on one card, oldest first."""
        pass

    @abstractmethod
    def archive_transactions(self, transaction_ids: List[str]) -> int:
        """Mark the given transactions archived; returns how many changed."""
        pass


class LedgerStore(ABC):
    """Durable owner of cards, merchants and per-card transaction logs."""

    @abstractmethod
    def run_transaction(self, body: Callable[[UnitOfWork], T]) -> T:
        pass

    @abstractmethod
    def list_cards(self, active_only: bool = True) -> List[Card]:
        pass

    @abstractmethod
    def get_card(self, card_id: str) -> Optional[Card]:
        pass

    @abstractmethod
    def save_card(self, card: Card) -> Card:
        """Create or replace a card. Provisioning only, not used by the core."""
        pass

    @abstractmethod
    def list_merchants(self) -> List[Merchant]:
        pass

    @abstractmethod
    def list_transactions(
        self,
        card_id: Optional[str] = None,
        open_only: bool = False,
        since: Optional[datetime] = None,
    ) -> List[Transaction]:
        """
        Plain (non-transactional) read of transactions.

        Args:
            card_id: restrict to one card
            open_only: only non-archived entries
            since: only entries entered on/after this instant
        """
        pass

    @abstractmethod
    def ping(self) -> None:
        """Raise StoreUnavailableError if the store cannot be reached."""
        pass

    def close(self) -> None:
        pass
