"""
Bounded retry loop for optimistic store transactions.

A transaction body is re-run from scratch (fresh snapshot, fresh reads)
each time the store reports a conflict, up to max_attempts in total.
"""
from typing import Callable, TypeVar

import structlog
from tenacity import RetryError, Retrying, retry_if_exception_type, stop_after_attempt, wait_random

from whoowes.errors import ConflictError, TransactionConflict
from whoowes.store.interface import LedgerStore, UnitOfWork

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class TransactionRunner:
    """Runs transaction bodies against one store with a fixed retry budget."""

    def __init__(self, store: LedgerStore, max_attempts: int = 5, max_wait: float = 0.05):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.store = store
        self.max_attempts = max_attempts
        self.max_wait = max_wait

    def run(self, body: Callable[[UnitOfWork], T], name: str = "transaction") -> T:
        """
        Execute body in a transaction, retrying on conflict.

        Args:
            body: callable receiving the UnitOfWork; must not keep state
                  between calls since it may run several times
            name: label used in logs

        Raises:
            ConflictError: every attempt lost to a concurrent writer
        """
        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_random(0, self.max_wait),
            retry=retry_if_exception_type(TransactionConflict),
            before_sleep=lambda state: logger.info(
                "transaction_retry", transaction=name, attempt=state.attempt_number
            ),
        )
        try:
            return retrying(self.store.run_transaction, body)
        except RetryError as err:
            logger.warning("transaction_conflict_exhausted", transaction=name, attempts=self.max_attempts)
            raise ConflictError(f"{name} could not commit after {self.max_attempts} attempts") from err
