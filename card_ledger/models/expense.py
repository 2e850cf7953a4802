"""Expense model."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from card_ledger.models.enums import ExpenseCategory, RecurringFrequency


@dataclass
class Expense:
    """Purchase logged against a credit card.

    While the record exists its ``amount`` is included in the card's
    ``current_balance``.
    """

    expense_id: str
    owner_id: str
    card_id: str
    amount: Decimal
    description: str  # 1-200 chars
    category: ExpenseCategory
    date: datetime = field(default_factory=datetime.now)
    subcategory: str | None = None
    merchant: str | None = None
    location: str | None = None
    tags: list[str] = field(default_factory=list)
    notes: str | None = None  # up to 500 chars
    receipt_url: str | None = None
    is_essential: bool = False
    is_recurring: bool = False
    recurring_frequency: RecurringFrequency | None = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime | None = None

    @property
    def formatted_amount(self) -> str:
        return f"${self.amount:.2f}"


# Fields a caller may change through a partial update
MUTABLE_EXPENSE_FIELDS = (
    "amount",
    "description",
    "category",
    "subcategory",
    "merchant",
    "location",
    "date",
    "tags",
    "notes",
    "receipt_url",
    "is_essential",
    "is_recurring",
    "recurring_frequency",
)
