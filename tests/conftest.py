"""Pytest configuration and fixtures."""

from datetime import date
from decimal import Decimal

import pytest

from card_ledger.cards import CardRegistry
from card_ledger.ledger import CardLedger
from card_ledger.locks import CardLocks
from card_ledger.models import CardNetwork, CreditCard
from card_ledger.store import InMemoryLedgerStore
from card_ledger.synchronizer import BalanceSynchronizer


@pytest.fixture
def seed() -> int:
    """Fixed seed for reproducible tests."""
    return 42


@pytest.fixture
def owner_id() -> str:
    """Sample owner ID."""
    return "owner-test-001"


@pytest.fixture
def other_owner_id() -> str:
    """A second owner used for isolation checks."""
    return "owner-test-002"


@pytest.fixture
def store() -> InMemoryLedgerStore:
    return InMemoryLedgerStore()


@pytest.fixture
def locks() -> CardLocks:
    return CardLocks()


@pytest.fixture
def registry(store: InMemoryLedgerStore, locks: CardLocks) -> CardRegistry:
    return CardRegistry(store, ledger=CardLedger(), locks=locks)


@pytest.fixture
def synchronizer(store: InMemoryLedgerStore, locks: CardLocks) -> BalanceSynchronizer:
    return BalanceSynchronizer(store, ledger=CardLedger(), locks=locks)


@pytest.fixture
def card_fields() -> dict:
    """Valid registration fields for a card with a 1000.00 limit."""
    return {
        "card_name": "Everyday Visa",
        "card_number": "4111 1111 1111 1111",
        "card_network": "Visa",
        "expiry_month": 12,
        "expiry_year": date.today().year + 2,
        "credit_limit": "1000",
    }


@pytest.fixture
def card(registry: CardRegistry, owner_id: str, card_fields: dict) -> CreditCard:
    """A registered card with limit 1000.00 and balance 0.00."""
    return registry.register(owner_id, **card_fields)


@pytest.fixture
def make_card():
    """Build an unsaved card model directly."""

    def _make(
        balance: str = "0.00",
        limit: str = "1000.00",
        card_id: str = "card-test-001",
        owner_id: str = "owner-test-001",
        is_active: bool = True,
    ) -> CreditCard:
        return CreditCard(
            card_id=card_id,
            owner_id=owner_id,
            card_name="Test Card",
            card_number="4111111111111111",
            card_network=CardNetwork.VISA,
            expiry_month=12,
            expiry_year=date.today().year + 2,
            credit_limit=Decimal(limit),
            current_balance=Decimal(balance),
            is_active=is_active,
        )

    return _make
