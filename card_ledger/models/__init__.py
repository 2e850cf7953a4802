"""Domain models for cards, expenses and ledger entries."""

from card_ledger.models.base import Event, Page
from card_ledger.models.credit_card import CardSummary, CreditCard
from card_ledger.models.enums import (
    CardNetwork,
    ExpenseCategory,
    LedgerEntryType,
    RecurringFrequency,
    SortOrder,
    UtilizationTier,
)
from card_ledger.models.expense import MUTABLE_EXPENSE_FIELDS, Expense
from card_ledger.models.ledger import LedgerEntry

__all__ = [
    "CardNetwork",
    "CardSummary",
    "CreditCard",
    "Event",
    "Expense",
    "ExpenseCategory",
    "LedgerEntry",
    "LedgerEntryType",
    "MUTABLE_EXPENSE_FIELDS",
    "Page",
    "RecurringFrequency",
    "SortOrder",
    "UtilizationTier",
]
