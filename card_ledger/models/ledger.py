"""Ledger entry model."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from card_ledger.models.enums import LedgerEntryType


@dataclass
class LedgerEntry:
    """Append-only record of one balance movement on a card.

    ``amount`` is the signed delta actually applied to ``current_balance``
    (charges positive, payments and refunds negative), so a card's balance
    is always its opening balance plus the sum of its entries.
    """

    entry_id: str
    card_id: str
    owner_id: str
    entry_type: LedgerEntryType
    amount: Decimal
    balance_after: Decimal
    expense_id: str | None = None
    note: str | None = None
    created_at: datetime = field(default_factory=datetime.now)
