"""
Settlement Evaluator - archive everything once all balances match.

Algorithm (one transaction, one snapshot):
1. Group active cards by cardholder.
2. Sum each cardholder's non-archived transactions.
3. If every total equals the first (within tolerance), the group is
   settled: re-enumerate the open transactions of every active card and
   archive all of them in the same transaction.
4. Otherwise write nothing.

Runs in its own transaction, separate from the append, so a settlement
failure never undoes a committed purchase.
"""
from collections import OrderedDict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Tuple

import structlog

from whoowes.store.interface import UnitOfWork

logger = structlog.get_logger(__name__)

ZERO = Decimal("0.00")


@dataclass
class CardholderTally:
    card_ids: List[str] = field(default_factory=list)
    total: Decimal = ZERO


@dataclass
class SettlementResult:
    settled: bool
    archived_count: int = 0
    balances: Dict[str, Decimal] = field(default_factory=OrderedDict)

    def to_dict(self):
        return {
            "settled": self.settled,
            "archived": self.archived_count,
            "balances": {name: float(total) for name, total in self.balances.items()},
        }


class SettlementEvaluator:
    """Decides whether the group is settled and archives if so."""

    def __init__(self, runner, tolerance: Decimal = ZERO):
        if tolerance < 0:
            raise ValueError("tolerance must not be negative")
        self._runner = runner
        self.tolerance = tolerance

    def evaluate(self) -> SettlementResult:
        result = self._runner.run(self._evaluate, name="settle")
        logger.info(
            "settlement_evaluated",
            settled=result.settled,
            archived=result.archived_count,
            cardholders=len(result.balances),
        )
        return result

    @staticmethod
    def tally(txn: UnitOfWork) -> Tuple["OrderedDict[str, CardholderTally]", int]:
        """
        Sum open balances per cardholder.

        Returns:
            Tuple of (cardholder -> tally in first-seen order, open transaction count)
        """
        tallies: "OrderedDict[str, CardholderTally]" = OrderedDict()
        for card in txn.active_cards():
            tallies.setdefault(card.cardholder, CardholderTally()).card_ids.append(card.id)

        open_count = 0
        for entry in tallies.values():
            for card_id in entry.card_ids:
                for record in txn.open_transactions(card_id):
                    entry.total += record.amount
                    open_count += 1
        return tallies, open_count

    def balances_match(self, totals: List[Decimal]) -> bool:
        if not totals:
            return False
        first = totals[0]
        return all(abs(total - first) <= self.tolerance for total in totals)

    def _evaluate(self, txn: UnitOfWork) -> SettlementResult:
        tallies, open_count = self.tally(txn)
        balances = OrderedDict((name, entry.total) for name, entry in tallies.items())

        # Nothing outstanding means nothing to settle.
        if open_count == 0 or not self.balances_match(list(balances.values())):
            return SettlementResult(settled=False, balances=balances)

        archived = 0
        for entry in tallies.values():
            for card_id in entry.card_ids:
                open_ids = [record.id for record in txn.open_transactions(card_id)]
                if open_ids:
                    archived += txn.archive_transactions(open_ids)
                txn.touch_card(card_id)
        return SettlementResult(settled=True, archived_count=archived, balances=balances)
