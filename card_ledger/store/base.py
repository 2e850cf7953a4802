"""Storage interface shared by the in-memory and PostgreSQL stores."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from dataclasses import dataclass
from datetime import datetime

from card_ledger.exceptions import ValidationError
from card_ledger.models import CreditCard, Expense, ExpenseCategory, LedgerEntry, SortOrder

SORT_FIELDS = ("date", "amount", "category", "description", "created_at")


@dataclass
class ExpenseQuery:
    """Owner-scoped expense filter with pagination and sorting."""

    owner_id: str
    category: ExpenseCategory | None = None
    card_id: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    is_essential: bool | None = None
    sort_by: str = "date"
    sort_order: SortOrder = SortOrder.DESC
    page: int = 1
    limit: int | None = 20  # None returns every match

    def __post_init__(self) -> None:
        if self.sort_by not in SORT_FIELDS:
            raise ValidationError(
                "Invalid sort field",
                errors=[{"field": "sort_by", "message": f"must be one of: {', '.join(SORT_FIELDS)}"}],
            )
        if self.page < 1:
            raise ValidationError("Invalid page", errors=[{"field": "page", "message": "must be 1 or greater"}])
        if self.limit is not None and self.limit < 1:
            raise ValidationError("Invalid limit", errors=[{"field": "limit", "message": "must be 1 or greater"}])
        self.sort_order = SortOrder(self.sort_order)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit if self.limit else 0


class LedgerStore(ABC):
    """Persistence for cards, expenses and ledger entries.

    Reads are owner-scoped: a record owned by another identity is reported
    as absent (``None``). Writes inside ``transaction()`` commit together
    or not at all.
    """

    @abstractmethod
    def transaction(self) -> AbstractContextManager[None]:
        """Context manager grouping writes into one atomic unit."""

    # Cards
    @abstractmethod
    def insert_card(self, card: CreditCard) -> None: ...

    @abstractmethod
    def get_card(self, owner_id: str, card_id: str) -> CreditCard | None: ...

    @abstractmethod
    def find_card_by_number(self, owner_id: str, card_number: str) -> CreditCard | None: ...

    @abstractmethod
    def list_cards(self, owner_id: str, active_only: bool = True) -> list[CreditCard]: ...

    @abstractmethod
    def update_card(self, card: CreditCard, expected_version: int) -> None:
        """Persist ``card`` if the stored version still equals ``expected_version``.

        Bumps ``card.version`` on success; raises ``ConcurrencyConflictError``
        otherwise.
        """

    # Expenses
    @abstractmethod
    def insert_expense(self, expense: Expense) -> None: ...

    @abstractmethod
    def get_expense(self, owner_id: str, expense_id: str) -> Expense | None: ...

    @abstractmethod
    def update_expense(self, expense: Expense) -> None: ...

    @abstractmethod
    def delete_expense(self, owner_id: str, expense_id: str) -> bool: ...

    @abstractmethod
    def query_expenses(self, query: ExpenseQuery) -> tuple[list[Expense], int]:
        """Return one page of matching expenses and the total match count."""

    # Ledger entries
    @abstractmethod
    def append_entry(self, entry: LedgerEntry) -> None: ...

    @abstractmethod
    def list_entries(self, owner_id: str, card_id: str) -> list[LedgerEntry]: ...

    def close(self) -> None:
        """Release resources held by the store."""
