"""Balance synchronizer: keeps card balances consistent with expense records.

Every flow (create, amount edit, delete) runs under the card's lock and
inside one store transaction, so the expense write, the card write and the
ledger entry either all commit or none do. If the transaction fails after
the card was mutated in memory, the card object is restored to its
pre-flow values before the error propagates.
"""

import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterator, Protocol

from card_ledger.config import LedgerConfig
from card_ledger.exceptions import CardLedgerError, InsufficientCreditError, NotFoundError, PersistenceError
from card_ledger.expenses import ExpenseRecordStore
from card_ledger.ledger import CardLedger
from card_ledger.locks import CardLocks
from card_ledger.models import CardSummary, CreditCard, Event, Expense, LedgerEntry, LedgerEntryType
from card_ledger.sinks.serialization import to_dict
from card_ledger.store.base import LedgerStore

logger = logging.getLogger(__name__)

EVENT_SOURCE = "card-ledger"


class EventSink(Protocol):
    def send(self, topic: str, record: Any, key: str | None = None) -> None: ...


@dataclass
class ExpenseResult:
    """Outcome of a synchronized expense flow."""

    expense: Expense | None
    card: CardSummary | None
    current_balance: Decimal | None
    available_credit: Decimal | None
    entry: LedgerEntry | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "expense": to_dict(self.expense) if self.expense else None,
            "card": to_dict(self.card) if self.card else None,
            "updated_card": {
                "current_balance": str(self.current_balance) if self.current_balance is not None else None,
                "available_credit": str(self.available_credit) if self.available_credit is not None else None,
            },
        }


@dataclass
class _CardState:
    current_balance: Decimal
    available_credit: Decimal
    last_used: Any
    updated_at: Any
    version: int

    @classmethod
    def of(cls, card: CreditCard) -> "_CardState":
        return cls(card.current_balance, card.available_credit, card.last_used, card.updated_at, card.version)

    def restore(self, card: CreditCard) -> None:
        card.current_balance = self.current_balance
        card.available_credit = self.available_credit
        card.last_used = self.last_used
        card.updated_at = self.updated_at
        card.version = self.version


class BalanceSynchronizer:
    """Coordinate expense writes with card balance updates."""

    def __init__(
        self,
        store: LedgerStore,
        ledger: CardLedger | None = None,
        locks: CardLocks | None = None,
        event_sink: EventSink | None = None,
        config: LedgerConfig | None = None,
    ) -> None:
        self.store = store
        self.ledger = ledger or CardLedger()
        self.locks = locks or CardLocks()
        self.event_sink = event_sink
        self.config = config or LedgerConfig()
        self.expenses = ExpenseRecordStore(store, self.config)

    def create_expense(
        self,
        owner_id: str,
        card_id: str,
        amount: Any,
        description: str,
        category: Any,
        **extra: Any,
    ) -> ExpenseResult:
        """Log a purchase and charge it to the card.

        Raises
        ------
        ValidationError
            If the expense fields are invalid.
        NotFoundError
            If the card is missing, inactive or owned by someone else.
        InsufficientCreditError
            If the amount exceeds available credit; nothing is written.
        PersistenceError
            If any write fails; the card balance is left as it was.
        """
        expense = self.expenses.build(owner_id, card_id, amount, description, category, **extra)

        with self.locks.hold(card_id):
            card = self.store.get_card(owner_id, card_id)
            if card is None or not card.is_active:
                raise NotFoundError("Credit card not found or inactive", card_id=card_id)
            if not self.ledger.can_charge(card, expense.amount):
                raise InsufficientCreditError(
                    "Insufficient credit limit",
                    available_credit=card.available_credit,
                )

            with self._atomic(card, "create"):
                version = card.version
                self.expenses.create(expense)
                entry = self.ledger.apply_charge(card, expense.amount, expense_id=expense.expense_id)
                self.store.update_card(card, expected_version=version)
                self.store.append_entry(entry)

        logger.info(
            "Expense %s charged %s to card %s (balance %s)",
            expense.expense_id,
            expense.amount,
            card_id,
            card.current_balance,
            extra={"owner_id": owner_id, "card_id": card_id, "expense_id": expense.expense_id, "flow": "create"},
        )
        self._publish(entry)
        return self._result(expense, card, entry)

    def update_expense(self, owner_id: str, expense_id: str, **changes: Any) -> ExpenseResult:
        """Apply a partial update; an amount change moves the balance by the delta."""
        card_id = self.expenses.get(owner_id, expense_id).card_id

        with self.locks.hold(card_id):
            # Re-read under the lock so the delta is computed from the committed amount
            expense = self.expenses.get(owner_id, expense_id)
            old_amount = expense.amount
            self.expenses.apply_changes(expense, **changes)
            delta = expense.amount - old_amount

            card = self.store.get_card(owner_id, card_id)
            if delta == 0 or card is None:
                if card is None and delta != 0:
                    logger.warning("Expense %s references missing card %s; balance not adjusted", expense_id, card_id)
                with self.store.transaction():
                    self.expenses.update(expense)
                return self._result(expense, card, None)

            with self._atomic(card, "update"):
                version = card.version
                entry = self.ledger.adjust_balance(
                    card,
                    delta,
                    entry_type=LedgerEntryType.ADJUSTMENT,
                    expense_id=expense_id,
                    enforce_limit=True,
                )
                self.expenses.update(expense)
                self.store.update_card(card, expected_version=version)
                self.store.append_entry(entry)

        logger.info(
            "Expense %s amount %s -> %s, card %s adjusted by %s",
            expense_id,
            old_amount,
            expense.amount,
            card_id,
            delta,
            extra={"owner_id": owner_id, "card_id": card_id, "expense_id": expense_id, "flow": "update"},
        )
        self._publish(entry)
        return self._result(expense, card, entry)

    def delete_expense(self, owner_id: str, expense_id: str) -> ExpenseResult:
        """Delete an expense and refund its amount to the card.

        A second delete of the same id raises ``NotFoundError`` and never
        refunds twice.
        """
        card_id = self.expenses.get(owner_id, expense_id).card_id

        with self.locks.hold(card_id):
            expense = self.expenses.get(owner_id, expense_id)
            card = self.store.get_card(owner_id, card_id)
            if card is None:
                logger.warning("Expense %s references missing card %s; deleting without refund", expense_id, card_id)
                with self.store.transaction():
                    self.expenses.delete(owner_id, expense_id)
                return self._result(None, None, None)

            with self._atomic(card, "delete"):
                version = card.version
                entry = self.ledger.adjust_balance(
                    card,
                    -expense.amount,
                    entry_type=LedgerEntryType.REFUND,
                    expense_id=expense_id,
                )
                self.store.update_card(card, expected_version=version)
                self.store.append_entry(entry)
                self.expenses.delete(owner_id, expense_id)

        logger.info(
            "Expense %s deleted, refunded %s to card %s",
            expense_id,
            -entry.amount,
            card_id,
            extra={"owner_id": owner_id, "card_id": card_id, "expense_id": expense_id, "flow": "delete"},
        )
        self._publish(entry)
        return self._result(None, card, entry)

    @contextmanager
    def _atomic(self, card: CreditCard, flow: str) -> Iterator[None]:
        before = _CardState.of(card)
        try:
            with self.store.transaction():
                yield
        except CardLedgerError as e:
            if _CardState.of(card) != before:
                before.restore(card)
                logger.warning("%s flow on card %s rolled back: %s", flow, card.card_id, e.message)
            raise
        except Exception as e:
            before.restore(card)
            logger.exception("Unexpected failure in %s flow on card %s", flow, card.card_id)
            raise PersistenceError(f"Expense {flow} failed", card_id=card.card_id) from e

    def _result(self, expense: Expense | None, card: CreditCard | None, entry: LedgerEntry | None) -> ExpenseResult:
        return ExpenseResult(
            expense=expense,
            card=card.summary() if card else None,
            current_balance=card.current_balance if card else None,
            available_credit=card.available_credit if card else None,
            entry=entry,
        )

    def _publish(self, entry: LedgerEntry) -> None:
        if self.event_sink is None:
            return
        event = Event(
            event_id=uuid.uuid4().hex,
            event_type=f"ledger.{entry.entry_type.value.lower()}",
            event_time=entry.created_at,
            source=EVENT_SOURCE,
            subject=entry.card_id,
            data=to_dict(entry),
        )
        try:
            self.event_sink.send(self.config.ledger_topic, event, key=entry.card_id)
        except Exception:
            # The ledger is already committed; the entry can be re-published from the store
            logger.exception("Failed to publish ledger entry %s", entry.entry_id)
