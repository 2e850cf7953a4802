"""In-memory store with relationship indexes and snapshot transactions."""

import copy
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterator

from card_ledger.exceptions import ConcurrencyConflictError, PersistenceError
from card_ledger.models import CreditCard, Expense, LedgerEntry, SortOrder
from card_ledger.store.base import ExpenseQuery, LedgerStore


@dataclass
class InMemoryLedgerStore(LedgerStore):
    """Dict-backed store.

    Records are copied on the way in and out, so a loaded card is a
    detached object until it is written back (document-store semantics).
    Reads and writes share one re-entrant lock that a transaction holds
    until it commits or rolls back, so readers never observe a half-applied
    flow.
    """

    # Primary entities
    cards: dict[str, CreditCard] = field(default_factory=dict)
    expenses: dict[str, Expense] = field(default_factory=dict)
    entries: list[LedgerEntry] = field(default_factory=list)

    # Relationship indexes
    _owner_cards: dict[str, list[str]] = field(default_factory=dict)
    _card_expenses: dict[str, list[str]] = field(default_factory=dict)
    _card_entries: dict[str, list[int]] = field(default_factory=dict)

    _lock: Any = field(default_factory=threading.RLock, repr=False)
    _depth: int = 0

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Snapshot state on entry; restore it if the block raises."""
        with self._lock:
            snapshot = self._snapshot() if self._depth == 0 else None
            self._depth += 1
            try:
                yield
            except BaseException:
                if snapshot is not None:
                    self._restore(snapshot)
                raise
            finally:
                self._depth -= 1

    def _snapshot(self) -> dict[str, Any]:
        return copy.deepcopy(
            {
                "cards": self.cards,
                "expenses": self.expenses,
                "entries": self.entries,
                "_owner_cards": self._owner_cards,
                "_card_expenses": self._card_expenses,
                "_card_entries": self._card_entries,
            }
        )

    def _restore(self, snapshot: dict[str, Any]) -> None:
        for name, value in snapshot.items():
            setattr(self, name, value)

    # Cards
    def insert_card(self, card: CreditCard) -> None:
        with self._lock:
            if card.card_id in self.cards:
                raise PersistenceError(f"Credit card {card.card_id} already exists")
            self.cards[card.card_id] = copy.deepcopy(card)
            self._owner_cards.setdefault(card.owner_id, []).append(card.card_id)
            self._card_expenses[card.card_id] = []
            self._card_entries[card.card_id] = []

    def get_card(self, owner_id: str, card_id: str) -> CreditCard | None:
        with self._lock:
            card = self.cards.get(card_id)
            if card is None or card.owner_id != owner_id:
                return None
            return copy.deepcopy(card)

    def find_card_by_number(self, owner_id: str, card_number: str) -> CreditCard | None:
        with self._lock:
            for card_id in self._owner_cards.get(owner_id, []):
                card = self.cards[card_id]
                if card.card_number == card_number:
                    return copy.deepcopy(card)
            return None

    def list_cards(self, owner_id: str, active_only: bool = True) -> list[CreditCard]:
        with self._lock:
            cards = [self.cards[cid] for cid in self._owner_cards.get(owner_id, [])]
            return [copy.deepcopy(c) for c in cards if c.is_active or not active_only]

    def update_card(self, card: CreditCard, expected_version: int) -> None:
        with self._lock:
            stored = self.cards.get(card.card_id)
            if stored is None or stored.owner_id != card.owner_id:
                raise PersistenceError(f"Credit card {card.card_id} not found")
            if stored.version != expected_version:
                raise ConcurrencyConflictError(
                    f"Credit card {card.card_id} was modified concurrently",
                    expected_version=expected_version,
                    actual_version=stored.version,
                )
            card.recompute_available_credit()
            card.version = expected_version + 1
            card.updated_at = datetime.now()
            self.cards[card.card_id] = copy.deepcopy(card)

    # Expenses
    def insert_expense(self, expense: Expense) -> None:
        with self._lock:
            if expense.card_id not in self.cards:
                raise PersistenceError(f"Credit card {expense.card_id} not found")
            self.expenses[expense.expense_id] = copy.deepcopy(expense)
            self._card_expenses[expense.card_id].append(expense.expense_id)

    def get_expense(self, owner_id: str, expense_id: str) -> Expense | None:
        with self._lock:
            expense = self.expenses.get(expense_id)
            if expense is None or expense.owner_id != owner_id:
                return None
            return copy.deepcopy(expense)

    def update_expense(self, expense: Expense) -> None:
        with self._lock:
            stored = self.expenses.get(expense.expense_id)
            if stored is None or stored.owner_id != expense.owner_id:
                raise PersistenceError(f"Expense {expense.expense_id} not found")
            expense.updated_at = datetime.now()
            self.expenses[expense.expense_id] = copy.deepcopy(expense)

    def delete_expense(self, owner_id: str, expense_id: str) -> bool:
        with self._lock:
            expense = self.expenses.get(expense_id)
            if expense is None or expense.owner_id != owner_id:
                return False
            del self.expenses[expense_id]
            self._card_expenses[expense.card_id].remove(expense_id)
            return True

    def query_expenses(self, query: ExpenseQuery) -> tuple[list[Expense], int]:
        with self._lock:
            matches = [e for e in self.expenses.values() if self._matches(e, query)]
            matches.sort(
                key=lambda e: getattr(e, query.sort_by),
                reverse=query.sort_order == SortOrder.DESC,
            )
            total = len(matches)
            if query.limit is not None:
                matches = matches[query.offset : query.offset + query.limit]
            return [copy.deepcopy(e) for e in matches], total

    @staticmethod
    def _matches(expense: Expense, query: ExpenseQuery) -> bool:
        if expense.owner_id != query.owner_id:
            return False
        if query.category is not None and expense.category != query.category:
            return False
        if query.card_id is not None and expense.card_id != query.card_id:
            return False
        if query.start_date is not None and expense.date < query.start_date:
            return False
        if query.end_date is not None and expense.date > query.end_date:
            return False
        if query.is_essential is not None and expense.is_essential != query.is_essential:
            return False
        return True

    # Ledger entries
    def append_entry(self, entry: LedgerEntry) -> None:
        with self._lock:
            if entry.card_id not in self.cards:
                raise PersistenceError(f"Credit card {entry.card_id} not found")
            idx = len(self.entries)
            self.entries.append(copy.deepcopy(entry))
            self._card_entries[entry.card_id].append(idx)

    def list_entries(self, owner_id: str, card_id: str) -> list[LedgerEntry]:
        with self._lock:
            card = self.cards.get(card_id)
            if card is None or card.owner_id != owner_id:
                return []
            return [copy.deepcopy(self.entries[i]) for i in self._card_entries.get(card_id, [])]

    def card_expenses(self, card_id: str) -> list[Expense]:
        """Get all expenses recorded against a card."""
        with self._lock:
            return [copy.deepcopy(self.expenses[eid]) for eid in self._card_expenses.get(card_id, [])]

    def summary(self) -> dict[str, int]:
        """Return summary counts of all entities."""
        with self._lock:
            return {
                "credit_cards": len(self.cards),
                "expenses": len(self.expenses),
                "ledger_entries": len(self.entries),
            }
