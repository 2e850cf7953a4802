"""Tests for scenarios."""

from decimal import Decimal
from unittest.mock import MagicMock

from card_ledger.scenarios import HouseholdScenario
from card_ledger.store import InMemoryLedgerStore


class TestHouseholdScenario:
    """Tests for HouseholdScenario."""

    def test_generate_scenario(self, seed: int) -> None:
        scenario = HouseholdScenario(num_owners=3, expenses_per_card=10, seed=seed)
        store = scenario.generate()

        assert isinstance(store, InMemoryLedgerStore)
        assert len(scenario.owner_ids) == 3
        assert len(store.cards) == scenario.stats["cards"]
        assert len(store.expenses) == scenario.stats["expenses"] - scenario.stats["deleted"]

    def test_balances_reconcile(self, seed: int) -> None:
        scenario = HouseholdScenario(
            num_owners=2,
            expenses_per_card=30,
            edit_rate=0.2,
            delete_rate=0.2,
            payment_rate=1.0,
            seed=seed,
        )
        scenario.generate()
        summary = scenario.get_summary()

        for owner in summary["owners"].values():
            assert owner["reconciled"]
            assert owner["total_balance"] <= owner["total_limit"]
        for card in scenario.store.cards.values():
            assert card.available_credit == card.credit_limit - card.current_balance
            assert card.current_balance >= Decimal("0.00")

    def test_expense_total_matches_balance_without_payments(self, seed: int) -> None:
        scenario = HouseholdScenario(num_owners=2, expenses_per_card=15, payment_rate=0.0, seed=seed)
        store = scenario.generate()

        for card in store.cards.values():
            total = sum((e.amount for e in store.card_expenses(card.card_id)), Decimal("0.00"))
            assert total == card.current_balance

    def test_events_published(self, seed: int) -> None:
        sink = MagicMock()
        scenario = HouseholdScenario(
            num_owners=1,
            cards_per_owner=(1, 1),
            expenses_per_card=5,
            payment_rate=0.0,
            seed=seed,
            event_sink=sink,
        )
        scenario.generate()

        assert sink.send.call_count == len(scenario.store.entries)
