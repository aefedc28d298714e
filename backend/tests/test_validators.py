from datetime import datetime, timezone
from decimal import Decimal

import pytest

from whoowes.utils.validators import (
    AMOUNT_NOT_A_NUMBER,
    AMOUNT_NOT_POSITIVE,
    AMOUNT_TOO_LARGE,
    MISSING_AMOUNT,
    MISSING_CARD_ID,
    MISSING_MERCHANT,
    normalize_merchant_name,
    parse_amount,
    parse_flag,
    parse_since,
    validate_purchase,
)


class TestMerchantNormalization:

    def test_collapses_and_trims_whitespace(self):
        assert normalize_merchant_name("  Coffee   Shop ") == "Coffee Shop"
        assert normalize_merchant_name("Coffee\t\nShop") == "Coffee Shop"

    def test_blank_names_normalize_to_empty(self):
        assert normalize_merchant_name("   ") == ""
        assert normalize_merchant_name(None) == ""


class TestAmountParsing:

    def test_rounds_half_away_from_zero(self):
        assert parse_amount(19.995) == (Decimal("20.00"), None)
        assert parse_amount("10.005") == (Decimal("10.01"), None)
        assert parse_amount(10.004) == (Decimal("10.00"), None)

    def test_accepts_integers_and_strings(self):
        assert parse_amount(10) == (Decimal("10.00"), None)
        assert parse_amount(" 7.5 ") == (Decimal("7.50"), None)

    @pytest.mark.parametrize("value", [0, -5, "-0.01", 0.004])
    def test_rejects_non_positive_after_rounding(self, value):
        assert parse_amount(value) == (None, AMOUNT_NOT_POSITIVE)

    @pytest.mark.parametrize("value", [None, "", "  "])
    def test_missing_amount(self, value):
        assert parse_amount(value) == (None, MISSING_AMOUNT)

    @pytest.mark.parametrize("value", ["abc", True, float("nan"), float("inf"), [1]])
    def test_not_a_number(self, value):
        assert parse_amount(value) == (None, AMOUNT_NOT_A_NUMBER)

    def test_large_amounts_keep_their_cents(self):
        assert parse_amount("1e30") == (Decimal("1000000000000000000000000000000.00"), None)

    @pytest.mark.parametrize("value", ["1e40", "9" * 33, "1e999999999"])
    def test_too_large_for_storage(self, value):
        assert parse_amount(value) == (None, AMOUNT_TOO_LARGE)


class TestValidatePurchase:

    def test_valid_purchase_is_cleaned(self):
        outcome = validate_purchase(" c1 ", "  Grocery  Store", "12.345")
        assert outcome.ok
        assert outcome.card_id == "c1"
        assert outcome.merchant_name == "Grocery Store"
        assert outcome.amount == Decimal("12.35")

    def test_merchant_is_checked_first(self):
        outcome = validate_purchase("", " ", -1)
        assert not outcome.ok
        assert outcome.reason == MISSING_MERCHANT

    def test_amount_is_checked_before_card(self):
        assert validate_purchase("", "Grocery", None).reason == MISSING_AMOUNT

    def test_card_id_is_checked_last(self):
        assert validate_purchase("   ", "Grocery", 5).reason == MISSING_CARD_ID
        assert validate_purchase(None, "Grocery", 5).reason == MISSING_CARD_ID


class TestFilters:

    def test_parse_since_date_is_utc_midnight(self):
        assert parse_since("2024-03-01") == datetime(2024, 3, 1, tzinfo=timezone.utc)

    def test_parse_since_empty(self):
        assert parse_since(None) is None
        assert parse_since("") is None

    def test_parse_since_rejects_garbage(self):
        with pytest.raises(ValueError):
            parse_since("yesterday")

    def test_parse_flag(self):
        assert parse_flag("true")
        assert parse_flag("1")
        assert not parse_flag("false")
        assert not parse_flag(None)
