"""Custom exception hierarchy for card-ledger."""

from typing import Any


class CardLedgerError(Exception):
    """Base exception for all card-ledger errors.

    Every error carries a machine-readable ``kind`` and optional context
    (e.g. ``available_credit``) so callers can build structured results.
    """

    kind = "internal_error"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        """Structured representation for the calling layer."""
        return {"kind": self.kind, "message": self.message, **self.context}


class ValidationError(CardLedgerError):
    """Raised when input is malformed or out of range."""

    kind = "validation_error"

    def __init__(self, message: str, errors: list[dict[str, str]] | None = None, **context: Any) -> None:
        super().__init__(message, **context)
        self.errors = errors or []

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.errors:
            result["errors"] = self.errors
        return result


class NotFoundError(CardLedgerError):
    """Raised when an entity does not exist or belongs to another owner."""

    kind = "not_found"


class InsufficientCreditError(CardLedgerError):
    """Raised when a charge would exceed the card's available credit."""

    kind = "insufficient_credit"

    def __init__(self, message: str, available_credit: Any, **context: Any) -> None:
        super().__init__(message, available_credit=available_credit, **context)
        self.available_credit = available_credit


class InvalidPaymentError(CardLedgerError):
    """Raised when a payment exceeds the current balance or is not positive."""

    kind = "invalid_payment"


class PersistenceError(CardLedgerError):
    """Raised when the underlying store could not complete a write."""

    kind = "persistence_failure"


class ConcurrencyConflictError(PersistenceError):
    """Raised when a record changed between load and write."""

    kind = "concurrency_conflict"


class ConfigurationError(CardLedgerError):
    """Raised when configuration is invalid or missing."""

    kind = "configuration_error"


class SinkError(CardLedgerError):
    """Raised when a sink operation fails."""

    kind = "sink_error"


# HTTP-style status hints for the request-handling layer
STATUS_HINTS: dict[str, int] = {
    ValidationError.kind: 400,
    InsufficientCreditError.kind: 400,
    InvalidPaymentError.kind: 400,
    NotFoundError.kind: 404,
    ConcurrencyConflictError.kind: 409,
    PersistenceError.kind: 500,
    CardLedgerError.kind: 500,
}


def status_for(error: CardLedgerError) -> int:
    """Return the HTTP-style status hint for an error."""
    return STATUS_HINTS.get(error.kind, 500)
