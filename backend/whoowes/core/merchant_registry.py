"""
Merchant Registry - canonical, deduplicated merchant records.

The lookup and the insert happen in the same transaction, so two
concurrent writers submitting the same name cannot both insert: one of
them loses the commit, retries, and finds the other's record.
"""
import structlog

from whoowes.errors import ValidationError
from whoowes.merchants.models import Merchant
from whoowes.store.interface import UnitOfWork
from whoowes.utils.validators import MISSING_MERCHANT, normalize_merchant_name

logger = structlog.get_logger(__name__)


class MerchantRegistry:
    """Ensures one Merchant per normalized name."""

    def __init__(self, runner):
        self._runner = runner

    def ensure(self, txn: UnitOfWork, name: str) -> Merchant:
        """
        Find or create the merchant inside the caller's transaction.

        Args:
            txn: unit of work of the enclosing transaction
            name: free-text merchant name

        Returns:
            The existing or newly staged Merchant
        """
        normalized = normalize_merchant_name(name)
        if not normalized:
            raise ValidationError(MISSING_MERCHANT)
        merchant = txn.find_merchant(normalized)
        if merchant is None:
            merchant = txn.insert_merchant(normalized)
        return merchant

    def ensure_standalone(self, name: str) -> Merchant:
        """Find or create a merchant in a transaction of its own."""
        if not normalize_merchant_name(name):
            raise ValidationError(MISSING_MERCHANT)
        merchant = self._runner.run(lambda txn: self.ensure(txn, name), name="ensure_merchant")
        logger.info("merchant_ensured", merchant_id=merchant.id, merchant=merchant.name)
        return merchant
