"""Expense record store: owner-scoped CRUD and queries over expenses."""

import calendar
import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

from card_ledger.config import LedgerConfig
from card_ledger.exceptions import NotFoundError, ValidationError
from card_ledger.models import MUTABLE_EXPENSE_FIELDS, Expense, ExpenseCategory, Page, SortOrder
from card_ledger.store.base import ExpenseQuery, LedgerStore
from card_ledger.validation import parse_enum, validate_expense_fields, validate_expense_update

logger = logging.getLogger(__name__)


class ExpenseRecordStore:
    """Create, read, update, delete and list expense records.

    This component enforces field rules only; keeping card balances in step
    with expense amounts is the job of ``BalanceSynchronizer``.
    """

    def __init__(self, store: LedgerStore, config: LedgerConfig | None = None) -> None:
        self.store = store
        self.config = config or LedgerConfig()

    def build(
        self,
        owner_id: str,
        card_id: str,
        amount: Any,
        description: str,
        category: Any,
        date: Any = None,
        subcategory: str | None = None,
        merchant: str | None = None,
        location: str | None = None,
        tags: Any = None,
        notes: str | None = None,
        receipt_url: str | None = None,
        is_essential: bool = False,
        is_recurring: bool = False,
        recurring_frequency: Any = None,
    ) -> Expense:
        """Validate input and return an unsaved expense.

        ``date`` may be a ``datetime``, a ``date`` or an ISO-8601 string and
        defaults to the creation time.
        """
        fields = validate_expense_fields(
            amount=amount,
            description=description,
            category=category,
            notes=notes,
            is_recurring=is_recurring,
            recurring_frequency=recurring_frequency,
            date=date,
            tags=tags,
            is_essential=is_essential,
            subcategory=subcategory,
            merchant=merchant,
            location=location,
            receipt_url=receipt_url,
        )
        now = datetime.now()
        fields["date"] = fields["date"] or now
        return Expense(
            expense_id=uuid.uuid4().hex,
            owner_id=owner_id,
            card_id=card_id,
            created_at=now,
            **fields,
        )

    def create(self, expense: Expense) -> Expense:
        self.store.insert_expense(expense)
        logger.debug("Expense %s created for owner %s", expense.expense_id, expense.owner_id)
        return expense

    def get(self, owner_id: str, expense_id: str) -> Expense:
        """Get an owned expense.

        Raises
        ------
        NotFoundError
            If the expense is missing or owned by someone else.
        """
        expense = self.store.get_expense(owner_id, expense_id)
        if expense is None:
            raise NotFoundError("Expense not found", expense_id=expense_id)
        return expense

    def apply_changes(self, expense: Expense, **changes: Any) -> dict[str, Any]:
        """Merge supplied fields into ``expense`` in place.

        ``None`` means "not supplied". Returns the normalized changes that
        were applied.
        """
        unknown = set(changes) - set(MUTABLE_EXPENSE_FIELDS)
        if unknown:
            raise ValidationError(
                "Unknown expense fields",
                errors=[{"field": name, "message": "cannot be updated"} for name in sorted(unknown)],
            )

        applied = validate_expense_update(changes)
        for key, value in applied.items():
            setattr(expense, key, value)

        if expense.is_recurring and expense.recurring_frequency is None:
            raise ValidationError(
                "Validation failed",
                errors=[{"field": "recurring_frequency", "message": "is required for recurring expenses"}],
            )
        return applied

    def update(self, expense: Expense) -> Expense:
        self.store.update_expense(expense)
        return expense

    def delete(self, owner_id: str, expense_id: str) -> None:
        if not self.store.delete_expense(owner_id, expense_id):
            raise NotFoundError("Expense not found", expense_id=expense_id)

    def list_expenses(
        self,
        owner_id: str,
        page: int = 1,
        limit: int | None = None,
        category: Any = None,
        card_id: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        sort_by: str = "date",
        sort_order: SortOrder | str = SortOrder.DESC,
        is_essential: bool | None = None,
    ) -> Page[Expense]:
        """List owned expenses with filters, sorting and pagination.

        The page carries a ``CardSummary`` for every card its expenses were
        charged to, keyed by card id. A card that no longer exists has no
        entry.
        """
        if is_essential is not None and not isinstance(is_essential, bool):
            raise ValidationError(
                "Invalid is_essential filter",
                errors=[{"field": "is_essential", "message": "must be true or false"}],
            )
        limit = min(limit or self.config.default_page_size, self.config.max_page_size)
        query = ExpenseQuery(
            owner_id=owner_id,
            category=parse_enum(ExpenseCategory, category, "category") if category else None,
            card_id=card_id,
            start_date=start_date,
            end_date=end_date,
            sort_by=sort_by,
            sort_order=sort_order,
            is_essential=is_essential,
            page=page,
            limit=limit,
        )
        items, total = self.store.query_expenses(query)
        cards = {}
        for referenced in dict.fromkeys(e.card_id for e in items):
            card = self.store.get_card(owner_id, referenced)
            if card is not None:
                cards[referenced] = card.summary()
        return Page(items=items, page=page, limit=limit, total=total, cards=cards)

    def between(self, owner_id: str, start_date: datetime, end_date: datetime) -> list[Expense]:
        """All owned expenses in ``[start_date, end_date]``, newest first."""
        items, _ = self.store.query_expenses(
            ExpenseQuery(owner_id=owner_id, start_date=start_date, end_date=end_date, limit=None)
        )
        return items

    def by_category(
        self,
        owner_id: str,
        category: Any,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> dict[str, Any]:
        """Expenses of one category with their total and count."""
        cat = parse_enum(ExpenseCategory, category, "category")
        items, _ = self.store.query_expenses(
            ExpenseQuery(
                owner_id=owner_id,
                category=cat,
                start_date=start_date,
                end_date=end_date,
                limit=None,
            )
        )
        return {
            "category": cat,
            "expenses": items,
            "total_amount": sum((e.amount for e in items), Decimal("0.00")),
            "count": len(items),
        }

    def recent(self, owner_id: str, limit: int = 10) -> list[Expense]:
        items, _ = self.store.query_expenses(ExpenseQuery(owner_id=owner_id, limit=limit))
        return items

    def monthly(self, owner_id: str, year: int, month: int) -> list[Expense]:
        """All owned expenses dated within the given calendar month."""
        start, end = month_bounds(year, month)
        return self.between(owner_id, start, end)


def month_bounds(year: int, month: int) -> tuple[datetime, datetime]:
    """First and last instant of a calendar month."""
    if not 1 <= month <= 12:
        raise ValidationError("Invalid month", errors=[{"field": "month", "message": "must be between 1 and 12"}])
    last_day = calendar.monthrange(year, month)[1]
    return datetime(year, month, 1), datetime(year, month, last_day, 23, 59, 59, 999999)
