"""Tests for input validation."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from card_ledger.exceptions import ValidationError
from card_ledger.models import CardNetwork, ExpenseCategory, RecurringFrequency
from card_ledger.validation import (
    normalize_card_number,
    parse_enum,
    to_amount,
    to_datetime,
    validate_card_fields,
    validate_card_update,
    validate_expense_fields,
    validate_expense_update,
    validate_payment_amount,
)


def _fields(errors: ValidationError) -> set[str]:
    return {e["field"] for e in errors.errors}


class TestDates:
    """Tests for date coercion."""

    def test_datetime_passthrough(self) -> None:
        value = datetime(2024, 5, 1, 9, 30)
        assert to_datetime(value) == value

    def test_date_becomes_midnight(self) -> None:
        assert to_datetime(date(2024, 5, 1)) == datetime(2024, 5, 1)

    def test_iso_strings(self) -> None:
        assert to_datetime("2024-05-01") == datetime(2024, 5, 1)
        assert to_datetime(" 2024-05-01T09:30:00 ") == datetime(2024, 5, 1, 9, 30)

    def test_utc_suffix_converted_to_naive_local(self) -> None:
        expected = datetime(2024, 5, 1, 12, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)
        result = to_datetime("2024-05-01T12:00:00Z")
        assert result == expected
        assert result.tzinfo is None

    @pytest.mark.parametrize("value", ["not-a-date", "2024-13-01", "", 20240501, 1.5, True, ["2024-05-01"]])
    def test_rejects_malformed(self, value) -> None:
        with pytest.raises(ValidationError) as exc_info:
            to_datetime(value)
        assert _fields(exc_info.value) == {"date"}


class TestAmounts:
    """Tests for amount coercion."""

    def test_rounds_to_cents(self) -> None:
        assert to_amount("10.005") == Decimal("10.01")
        assert to_amount(7) == Decimal("7.00")

    @pytest.mark.parametrize("value", ["abc", None, True, "NaN", "Infinity"])
    def test_rejects_non_numbers(self, value) -> None:
        with pytest.raises(ValidationError):
            to_amount(value)

    def test_payment_must_be_positive(self) -> None:
        assert validate_payment_amount("20") == Decimal("20.00")
        with pytest.raises(ValidationError):
            validate_payment_amount(0)
        with pytest.raises(ValidationError):
            validate_payment_amount(-5)


class TestEnumsAndNumbers:
    def test_parse_enum_by_value(self) -> None:
        assert parse_enum(ExpenseCategory, "Bills & Utilities", "category") == ExpenseCategory.BILLS_UTILITIES

    def test_parse_enum_member_passthrough(self) -> None:
        assert parse_enum(CardNetwork, CardNetwork.DISCOVER, "card_network") is CardNetwork.DISCOVER

    def test_parse_enum_invalid(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            parse_enum(ExpenseCategory, "Gambling", "category")
        assert _fields(exc_info.value) == {"category"}

    def test_normalize_card_number(self) -> None:
        assert normalize_card_number("4111 1111 1111 1111") == "4111111111111111"


class TestCardFields:
    """Tests for card validation."""

    def _valid(self, **overrides) -> dict:
        fields = {
            "card_name": "Travel Card",
            "card_number": "5555 5555 5555 4444",
            "card_network": "Mastercard",
            "expiry_month": 6,
            "expiry_year": date.today().year + 1,
            "credit_limit": "2500",
        }
        fields.update(overrides)
        return fields

    def test_normalizes_values(self) -> None:
        result = validate_card_fields(**self._valid(interest_rate="21.9", color="#ff0000"))
        assert result["card_number"] == "5555555555554444"
        assert result["card_network"] == CardNetwork.MASTERCARD
        assert result["credit_limit"] == Decimal("2500.00")
        assert result["current_balance"] == Decimal("0.00")
        assert result["interest_rate"] == Decimal("21.90")

    def test_collects_all_errors(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_card_fields(
                **self._valid(
                    card_name="X",
                    card_number="1234",
                    card_network="Diners",
                    expiry_month=13,
                    expiry_year=2000,
                    credit_limit="abc",
                )
            )
        assert _fields(exc_info.value) == {
            "card_name",
            "card_number",
            "card_network",
            "expiry_month",
            "expiry_year",
            "credit_limit",
        }

    def test_opening_balance_cannot_exceed_limit(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_card_fields(**self._valid(current_balance="3000"))
        assert _fields(exc_info.value) == {"current_balance"}

    def test_interest_rate_range(self) -> None:
        with pytest.raises(ValidationError):
            validate_card_fields(**self._valid(interest_rate="150"))

    def test_bad_color(self) -> None:
        with pytest.raises(ValidationError):
            validate_card_fields(**self._valid(color="blue"))

    def test_update_only_supplied_fields(self) -> None:
        assert validate_card_update(credit_limit="500") == {"credit_limit": Decimal("500.00")}
        assert validate_card_update() == {}

    def test_update_rejects_short_name(self) -> None:
        with pytest.raises(ValidationError):
            validate_card_update(card_name=" a ")


class TestExpenseFields:
    """Tests for expense validation."""

    def test_valid(self) -> None:
        result = validate_expense_fields("45.5", "  Groceries run ", "Groceries")
        assert result["amount"] == Decimal("45.50")
        assert result["description"] == "Groceries run"
        assert result["category"] == ExpenseCategory.GROCERIES
        assert result["recurring_frequency"] is None

    def test_zero_amount_rejected(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_expense_fields(0, "Coffee", "Food & Dining")
        assert _fields(exc_info.value) == {"amount"}

    def test_description_length(self) -> None:
        with pytest.raises(ValidationError):
            validate_expense_fields(5, "", "Other")
        with pytest.raises(ValidationError):
            validate_expense_fields(5, "x" * 201, "Other")

    def test_notes_length(self) -> None:
        with pytest.raises(ValidationError):
            validate_expense_fields(5, "Note", "Other", notes="n" * 501)

    def test_recurring_requires_frequency(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_expense_fields(15, "Streaming", "Entertainment", is_recurring=True)
        assert _fields(exc_info.value) == {"recurring_frequency"}

    def test_recurring_with_frequency(self) -> None:
        result = validate_expense_fields(15, "Streaming", "Entertainment", is_recurring=True, recurring_frequency="monthly")
        assert result["recurring_frequency"] == RecurringFrequency.MONTHLY

    def test_update_skips_none(self) -> None:
        assert validate_expense_update({"amount": None, "merchant": "Cafe"}) == {"merchant": "Cafe"}

    def test_new_expense_optional_fields(self) -> None:
        result = validate_expense_fields(
            9, "Bus pass", "Transportation", date="2024-05-01", tags=[" commute "], is_essential=True, merchant=" Metro "
        )
        assert result["date"] == datetime(2024, 5, 1)
        assert result["tags"] == ["commute"]
        assert result["is_essential"] is True
        assert result["merchant"] == "Metro"

    def test_new_expense_collects_type_errors(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_expense_fields(9, "Bus pass", "Transportation", date="soon", tags="commute", is_essential="no")
        assert _fields(exc_info.value) == {"date", "tags", "is_essential"}

    def test_update_rejects_malformed_types(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_expense_update({"date": "not-a-date", "is_essential": "no", "is_recurring": 0, "tags": [1]})
        assert _fields(exc_info.value) == {"date", "is_essential", "is_recurring", "tags"}

    def test_update_parses_date(self) -> None:
        assert validate_expense_update({"date": "2024-05-01T08:00:00"}) == {"date": datetime(2024, 5, 1, 8)}

    def test_update_validates_amount_and_category(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_expense_update({"amount": "-3", "category": "Nope"})
        assert _fields(exc_info.value) == {"amount", "category"}
