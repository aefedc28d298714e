"""
Request validators for purchases and listing filters.

Validation never touches the store and never raises: it returns a
ValidationOutcome and the caller decides to stop.
"""
import re
from dataclasses import dataclass
from datetime import datetime, time, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from typing import Any, Optional, Tuple

CENT = Decimal("0.01")
# Significant digits a Decimal128 can hold
MAX_AMOUNT_DIGITS = 34

MISSING_MERCHANT = "missing merchant"
MISSING_AMOUNT = "missing amount"
AMOUNT_NOT_A_NUMBER = "amount not a number"
AMOUNT_NOT_POSITIVE = "amount must exceed zero"
AMOUNT_TOO_LARGE = "amount too large"
MISSING_CARD_ID = "missing card id"

_WHITESPACE = re.compile(r"\s+")


def normalize_merchant_name(name: Any) -> str:
    """Collapse whitespace runs to one space and trim."""
    if name is None:
        return ""
    return _WHITESPACE.sub(" ", str(name)).strip()


def round_amount(value: Decimal) -> Decimal:
    """Two decimal places, half away from zero."""
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() + 4)
        return value.quantize(CENT, rounding=ROUND_HALF_UP)


def parse_amount(value: Any) -> Tuple[Optional[Decimal], Optional[str]]:
    """
    Parse and round a purchase amount.

    Floats go through their string form so 19.995 rounds to 20.00 rather
    than to the binary value just below it.

    Returns:
        Tuple of (amount, error reason)
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return None, MISSING_AMOUNT
    if isinstance(value, bool):
        return None, AMOUNT_NOT_A_NUMBER
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None, AMOUNT_NOT_A_NUMBER
    if not amount.is_finite():
        return None, AMOUNT_NOT_A_NUMBER
    if amount <= 0:
        return None, AMOUNT_NOT_POSITIVE
    if amount.adjusted() >= MAX_AMOUNT_DIGITS:
        return None, AMOUNT_TOO_LARGE
    amount = round_amount(amount)
    if amount <= 0:
        return None, AMOUNT_NOT_POSITIVE
    if len(amount.as_tuple().digits) > MAX_AMOUNT_DIGITS:
        return None, AMOUNT_TOO_LARGE
    return amount, None


@dataclass(frozen=True)
class ValidationOutcome:
    ok: bool
    reason: Optional[str] = None
    card_id: str = ""
    merchant_name: str = ""
    amount: Optional[Decimal] = None

    @classmethod
    def failure(cls, reason: str) -> "ValidationOutcome":
        return cls(ok=False, reason=reason)


def validate_purchase(card_id: Any, merchant_name: Any, amount: Any) -> ValidationOutcome:
    """
    Validate a purchase, reporting the first failing field.

    Order: merchant name, amount, card id.
    """
    merchant = normalize_merchant_name(merchant_name)
    if not merchant:
        return ValidationOutcome.failure(MISSING_MERCHANT)

    rounded, reason = parse_amount(amount)
    if reason:
        return ValidationOutcome.failure(reason)

    card = str(card_id).strip() if card_id is not None else ""
    if not card:
        return ValidationOutcome.failure(MISSING_CARD_ID)

    return ValidationOutcome(ok=True, card_id=card, merchant_name=merchant, amount=rounded)


def parse_flag(value: Optional[str]) -> bool:
    if value is None:
        return False
    return value.strip().lower() in ("1", "true", "yes", "on")


def parse_since(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a reference date (YYYY-MM-DD or ISO timestamp) as UTC.

    Returns None for an empty value; raises ValueError for garbage.
    """
    if value is None or not value.strip():
        return None
    parsed = datetime.fromisoformat(value.strip())
    if len(value.strip()) == 10:
        parsed = datetime.combine(parsed.date(), time.min)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
