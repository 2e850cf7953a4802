"""Tests for custom exception hierarchy."""

from decimal import Decimal

from card_ledger.exceptions import (
    CardLedgerError,
    ConcurrencyConflictError,
    ConfigurationError,
    InsufficientCreditError,
    InvalidPaymentError,
    NotFoundError,
    PersistenceError,
    SinkError,
    ValidationError,
    status_for,
)


class TestExceptionHierarchy:
    """Test exception inheritance chain."""

    def test_card_ledger_error_is_exception(self) -> None:
        assert isinstance(CardLedgerError("test"), Exception)

    def test_domain_errors_are_card_ledger_errors(self) -> None:
        for err in (
            ValidationError("test"),
            NotFoundError("test"),
            InsufficientCreditError("test", available_credit=Decimal("0")),
            InvalidPaymentError("test"),
            PersistenceError("test"),
            ConfigurationError("test"),
            SinkError("test"),
        ):
            assert isinstance(err, CardLedgerError)

    def test_concurrency_conflict_is_persistence_error(self) -> None:
        err = ConcurrencyConflictError("test")
        assert isinstance(err, PersistenceError)
        assert err.kind == "concurrency_conflict"

    def test_exception_message(self) -> None:
        err = NotFoundError("Credit card not found")
        assert str(err) == "Credit card not found"
        assert err.message == "Credit card not found"


class TestStructuredErrors:
    """Test machine-readable error payloads."""

    def test_to_dict_includes_kind_and_context(self) -> None:
        err = NotFoundError("Expense not found", expense_id="exp-1")
        assert err.to_dict() == {"kind": "not_found", "message": "Expense not found", "expense_id": "exp-1"}

    def test_insufficient_credit_carries_available_credit(self) -> None:
        err = InsufficientCreditError("Insufficient credit limit", available_credit=Decimal("250.00"))
        assert err.available_credit == Decimal("250.00")
        assert err.to_dict()["available_credit"] == Decimal("250.00")
        assert err.kind == "insufficient_credit"

    def test_validation_error_lists_fields(self) -> None:
        err = ValidationError("Validation failed", errors=[{"field": "amount", "message": "must be greater than 0"}])
        assert err.to_dict()["errors"] == [{"field": "amount", "message": "must be greater than 0"}]

    def test_validation_error_without_field_errors(self) -> None:
        assert "errors" not in ValidationError("bad").to_dict()

    def test_status_hints(self) -> None:
        assert status_for(ValidationError("x")) == 400
        assert status_for(InsufficientCreditError("x", available_credit=0)) == 400
        assert status_for(InvalidPaymentError("x")) == 400
        assert status_for(NotFoundError("x")) == 404
        assert status_for(ConcurrencyConflictError("x")) == 409
        assert status_for(PersistenceError("x")) == 500
        assert status_for(SinkError("x")) == 500
