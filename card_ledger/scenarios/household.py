"""Household scenario: cards, months of spending and payments for a few owners."""

import logging
import random
import uuid
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any

from card_ledger.cards import CardRegistry
from card_ledger.config import LedgerConfig
from card_ledger.exceptions import InsufficientCreditError
from card_ledger.generators import CreditCardGenerator, ExpenseGenerator
from card_ledger.ledger import CardLedger
from card_ledger.locks import CardLocks
from card_ledger.store.base import LedgerStore
from card_ledger.store.memory import InMemoryLedgerStore
from card_ledger.synchronizer import BalanceSynchronizer, EventSink

logger = logging.getLogger(__name__)


class HouseholdScenario:
    """Drive realistic activity through the card and expense services.

    Every write goes through ``CardRegistry`` and ``BalanceSynchronizer``,
    so the generated data obeys the same balance rules as live traffic:
    charges that would exceed a limit are rejected, and a share of
    expenses is later edited or deleted.
    """

    def __init__(
        self,
        num_owners: int = 3,
        cards_per_owner: tuple[int, int] = (1, 3),
        expenses_per_card: int = 25,
        months: int = 3,
        payment_rate: float = 0.5,
        edit_rate: float = 0.05,
        delete_rate: float = 0.05,
        store: LedgerStore | None = None,
        event_sink: EventSink | None = None,
        config: LedgerConfig | None = None,
        seed: int | None = None,
        today: date | None = None,
    ) -> None:
        """Initialize household scenario.

        Parameters
        ----------
        num_owners : int
            Number of owner identities to generate.
        cards_per_owner : tuple[int, int]
            Min and max cards per owner.
        expenses_per_card : int
            Expenses attempted per card.
        months : int
            How many months back expense dates may reach.
        payment_rate : float
            Share of cards that receive a payment after spending.
        edit_rate : float
            Share of expenses whose amount is edited afterwards.
        delete_rate : float
            Share of expenses deleted afterwards.
        store : LedgerStore | None
            Target store; an in-memory store by default.
        event_sink : EventSink | None
            Optional sink for ledger events.
        seed : int | None
            Random seed for reproducibility.
        today : date | None
            Reference date that expense dates count back from.
        """
        self.num_owners = num_owners
        self.cards_per_owner = cards_per_owner
        self.expenses_per_card = expenses_per_card
        self.months = months
        self.payment_rate = payment_rate
        self.edit_rate = edit_rate
        self.delete_rate = delete_rate
        self.today = today or date.today()
        self.rng = random.Random(seed)

        self.store = store or InMemoryLedgerStore()
        config = config or LedgerConfig()
        ledger = CardLedger()
        locks = CardLocks()
        self.registry = CardRegistry(self.store, ledger=ledger, locks=locks, config=config)
        self.synchronizer = BalanceSynchronizer(
            self.store,
            ledger=ledger,
            locks=locks,
            event_sink=event_sink,
            config=config,
        )
        self._card_gen = CreditCardGenerator(seed=seed)
        self._expense_gen = ExpenseGenerator(seed=seed)

        self.owner_ids: list[str] = []
        self.stats = {
            "cards": 0,
            "expenses": 0,
            "rejected": 0,
            "edited": 0,
            "deleted": 0,
            "payments": 0,
        }

    def generate(self) -> LedgerStore:
        """Run the scenario.

        Returns
        -------
        LedgerStore
            Store containing all generated data.
        """
        logger.info("Starting household scenario: %d owners", self.num_owners)

        end = datetime.combine(self.today, datetime.min.time())
        start = end - timedelta(days=30 * self.months)

        for _ in range(self.num_owners):
            owner_id = f"owner-{uuid.UUID(int=self.rng.getrandbits(128)).hex[:12]}"
            self.owner_ids.append(owner_id)
            for _ in range(self.rng.randint(*self.cards_per_owner)):
                card = self.registry.register(owner_id, **self._card_gen.generate())
                self.stats["cards"] += 1
                self._spend(owner_id, card.card_id, start, end)

        logger.info(
            "Household scenario done: %d cards, %d expenses (%d rejected), "
            "%d edited, %d deleted, %d payments",
            self.stats["cards"],
            self.stats["expenses"],
            self.stats["rejected"],
            self.stats["edited"],
            self.stats["deleted"],
            self.stats["payments"],
        )
        return self.store

    def _spend(self, owner_id: str, card_id: str, start: datetime, end: datetime) -> None:
        expense_ids = []
        for fields in self._expense_gen.generate_batch(self.expenses_per_card, start, end):
            try:
                result = self.synchronizer.create_expense(owner_id, card_id, **fields)
            except InsufficientCreditError:
                self.stats["rejected"] += 1
                continue
            expense_ids.append(result.expense.expense_id)
            self.stats["expenses"] += 1

        for expense_id in expense_ids:
            roll = self.rng.random()
            if roll < self.delete_rate:
                self.synchronizer.delete_expense(owner_id, expense_id)
                self.stats["deleted"] += 1
            elif roll < self.delete_rate + self.edit_rate:
                # Edits only ever lower the amount so they cannot breach the limit
                expense = self.synchronizer.expenses.get(owner_id, expense_id)
                new_amount = max(
                    (expense.amount * Decimal("0.8")).quantize(Decimal("0.01")),
                    Decimal("0.01"),
                )
                self.synchronizer.update_expense(owner_id, expense_id, amount=new_amount)
                self.stats["edited"] += 1

        card = self.registry.get(owner_id, card_id)
        if card.current_balance > 0 and self.rng.random() < self.payment_rate:
            amount = (card.current_balance * Decimal(str(self.rng.uniform(0.1, 1.0)))).quantize(Decimal("0.01"))
            if amount > 0:
                self.registry.make_payment(owner_id, card_id, amount)
                self.stats["payments"] += 1

    def get_summary(self) -> dict[str, Any]:
        """Per-owner balances and the reconciliation result for every card."""
        owners = {}
        for owner_id in self.owner_ids:
            cards = self.store.list_cards(owner_id, active_only=False)
            owners[owner_id] = {
                "cards": len(cards),
                "total_balance": sum((c.current_balance for c in cards), Decimal("0.00")),
                "total_limit": sum((c.credit_limit for c in cards), Decimal("0.00")),
                "reconciled": all(self.registry.reconcile(owner_id, c.card_id) for c in cards),
            }
        return {"owners": owners, **self.stats}
