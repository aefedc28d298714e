"""Transaction (purchase) models."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Transaction:
    """One purchase charged to one card."""
    card_id: str
    merchant_name: str
    amount: Decimal  # quantized to 0.01
    entered_date: datetime = field(default_factory=utcnow)
    archived: bool = False
    id: Optional[str] = None

    def to_dict(self):
        return {
            "id": self.id,
            "cardId": self.card_id,
            "merchantName": self.merchant_name,
            "amount": float(self.amount),
            "enteredDate": self.entered_date.isoformat(),
            "archived": self.archived,
        }
