"""Tests for shared serialization utilities."""

import json
from datetime import date, datetime
from decimal import Decimal

from card_ledger.models import CardSummary, ExpenseCategory
from card_ledger.sinks.serialization import serialize_value, to_dict, to_json, to_records


class TestSerializeValue:
    def test_decimal_stays_exact(self) -> None:
        assert serialize_value(Decimal("0.10")) == "0.10"

    def test_enum(self) -> None:
        assert serialize_value(ExpenseCategory.FOOD_DINING) == "Food & Dining"

    def test_dates(self) -> None:
        assert serialize_value(datetime(2024, 1, 15, 10, 0)) == "2024-01-15T10:00:00"
        assert serialize_value(date(2024, 1, 15)) == "2024-01-15"

    def test_nested(self) -> None:
        value = {"totals": [Decimal("1.50"), (Decimal("2.00"),)], "inner": {"d": Decimal("3")}}
        assert serialize_value(value) == {"totals": ["1.50", ["2.00"]], "inner": {"d": "3"}}

    def test_passthrough(self) -> None:
        assert serialize_value(None) is None
        assert serialize_value(5) == 5


class TestToDict:
    def test_dataclass(self) -> None:
        summary = CardSummary(card_id="c1", card_name="Card", masked_card_number="****-****-****-1111", color="#fff")
        assert to_dict(summary)["masked_card_number"] == "****-****-****-1111"

    def test_dict(self) -> None:
        assert to_dict({"amount": Decimal("1.00")}) == {"amount": "1.00"}

    def test_other(self) -> None:
        assert to_dict(12345) == {"value": "12345"}

    def test_records_and_json(self) -> None:
        records = to_records([{"a": Decimal("1")}, {"a": Decimal("2")}])
        assert records == [{"a": "1"}, {"a": "2"}]
        assert json.loads(to_json([{"a": Decimal("1")}])) == [{"a": "1"}]
        assert "\n" in to_json({"a": 1}, pretty=True)
