"""Sample credit card and expense generators."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterator

from card_ledger.generators.base import BaseGenerator
from card_ledger.models.enums import CardNetwork, ExpenseCategory, RecurringFrequency

# Leading digits per network; the rest of the 16 digits are random
NETWORK_PREFIXES = {
    CardNetwork.VISA: "4",
    CardNetwork.MASTERCARD: "5",
    CardNetwork.AMERICAN_EXPRESS: "37",
    CardNetwork.DISCOVER: "6011",
    CardNetwork.OTHER: "9",
}

CARD_COLORS = ["#1976d2", "#388e3c", "#d32f2f", "#7b1fa2", "#f57c00", "#455a64"]


class CreditCardGenerator(BaseGenerator):
    """Generate registration fields for sample credit cards."""

    NETWORKS = list(CardNetwork)
    NETWORK_WEIGHTS = [0.45, 0.35, 0.1, 0.08, 0.02]

    def generate(self, today: date | None = None) -> dict[str, Any]:
        """Return keyword arguments accepted by ``CardRegistry.register``."""
        today = today or date.today()
        network = self.weighted(self.NETWORKS, self.NETWORK_WEIGHTS)
        prefix = NETWORK_PREFIXES[network]
        number = prefix + self.digits(16 - len(prefix))
        credit_limit = self.rng.randint(10, 100) * 100

        return {
            "card_name": f"{self.fake.company()} {network.value}",
            "card_number": number,
            "card_network": network,
            "expiry_month": self.rng.randint(1, 12),
            "expiry_year": today.year + self.rng.randint(1, 5),
            "credit_limit": Decimal(credit_limit),
            "current_balance": Decimal("0.00"),
            "interest_rate": self.money(12, 29.99),
            "color": self.rng.choice(CARD_COLORS),
        }


class ExpenseGenerator(BaseGenerator):
    """Generate expense fields spread over a date range."""

    # Category -> (amount range, essential)
    CATEGORY_PROFILES: dict[ExpenseCategory, tuple[tuple[int, int], bool]] = {
        ExpenseCategory.FOOD_DINING: ((8, 120), False),
        ExpenseCategory.SHOPPING: ((15, 400), False),
        ExpenseCategory.TRANSPORTATION: ((5, 80), True),
        ExpenseCategory.ENTERTAINMENT: ((10, 150), False),
        ExpenseCategory.BILLS_UTILITIES: ((40, 250), True),
        ExpenseCategory.HEALTHCARE: ((20, 500), True),
        ExpenseCategory.TRAVEL: ((80, 1200), False),
        ExpenseCategory.EDUCATION: ((25, 600), True),
        ExpenseCategory.GROCERIES: ((20, 220), True),
        ExpenseCategory.GAS: ((25, 90), True),
        ExpenseCategory.INSURANCE: ((60, 300), True),
        ExpenseCategory.INVESTMENT: ((50, 1000), False),
        ExpenseCategory.OTHER: ((5, 200), False),
    }
    RECURRING_CATEGORIES = {ExpenseCategory.BILLS_UTILITIES, ExpenseCategory.INSURANCE}

    def generate(self, start: datetime, end: datetime) -> dict[str, Any]:
        """Return keyword arguments accepted by ``BalanceSynchronizer.create_expense``
        (apart from owner and card)."""
        category = self.rng.choice(list(self.CATEGORY_PROFILES))
        (low, high), essential = self.CATEGORY_PROFILES[category]
        amount = self.money(low, high)
        when = self.moment_between(start, end)

        merchant = self.fake.company()
        recurring = category in self.RECURRING_CATEGORIES
        return {
            "amount": amount,
            "description": f"{category.value} at {merchant}"[:200],
            "category": category,
            "merchant": merchant,
            "location": self.fake.city(),
            "date": when,
            "is_essential": essential,
            "is_recurring": recurring,
            "recurring_frequency": RecurringFrequency.MONTHLY if recurring else None,
            "tags": [category.value.split()[0].lower()],
        }

    def generate_batch(self, count: int, start: datetime, end: datetime) -> Iterator[dict[str, Any]]:
        for _ in range(count):
            yield self.generate(start, end)
