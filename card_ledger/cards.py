"""Card registration, maintenance, payments and statistics."""

import logging
import uuid
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from card_ledger.config import LedgerConfig
from card_ledger.exceptions import NotFoundError, ValidationError
from card_ledger.ledger import CardLedger
from card_ledger.locks import CardLocks
from card_ledger.models import CreditCard, LedgerEntry
from card_ledger.store.base import LedgerStore
from card_ledger.validation import validate_card_fields, validate_card_update, validate_payment_amount

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


class CardRegistry:
    """Owner-scoped operations on credit cards."""

    def __init__(
        self,
        store: LedgerStore,
        ledger: CardLedger | None = None,
        locks: CardLocks | None = None,
        config: LedgerConfig | None = None,
    ) -> None:
        self.store = store
        self.ledger = ledger or CardLedger()
        self.locks = locks or CardLocks()
        self.config = config or LedgerConfig()

    def register(
        self,
        owner_id: str,
        card_name: str,
        card_number: str,
        card_network: Any,
        expiry_month: int,
        expiry_year: int,
        credit_limit: Any,
        current_balance: Any = 0,
        interest_rate: Any = None,
        color: str | None = None,
    ) -> CreditCard:
        """Register a new card for ``owner_id``.

        A non-zero opening balance is written to the ledger as an
        ADJUSTMENT entry so the card's entries always fold to its balance.
        """
        fields = validate_card_fields(
            card_name=card_name,
            card_number=card_number,
            card_network=card_network,
            expiry_month=expiry_month,
            expiry_year=expiry_year,
            credit_limit=credit_limit,
            current_balance=current_balance,
            interest_rate=interest_rate,
            color=color,
        )
        if self.store.find_card_by_number(owner_id, fields["card_number"]) is not None:
            raise ValidationError(
                "A card with this number already exists",
                errors=[{"field": "card_number", "message": "already registered"}],
            )

        now = datetime.now()
        card = CreditCard(
            card_id=uuid.uuid4().hex,
            owner_id=owner_id,
            card_name=fields["card_name"],
            card_number=fields["card_number"],
            card_network=fields["card_network"],
            expiry_month=fields["expiry_month"],
            expiry_year=fields["expiry_year"],
            credit_limit=fields["credit_limit"],
            current_balance=Decimal("0.00"),
            interest_rate=_default(fields["interest_rate"], self.config.default_interest_rate),
            color=fields["color"] or self.config.default_card_color,
            last_used=now,
            created_at=now,
        )

        with self.store.transaction():
            opening = None
            if fields["current_balance"] > 0:
                opening = self.ledger.adjust_balance(card, fields["current_balance"])
                opening.note = "opening balance"
            self.store.insert_card(card)
            if opening is not None:
                self.store.append_entry(opening)

        logger.info("Card %s registered for owner %s", card.card_id, owner_id)
        return card

    def get(self, owner_id: str, card_id: str) -> CreditCard:
        card = self.store.get_card(owner_id, card_id)
        if card is None:
            raise NotFoundError("Credit card not found", card_id=card_id)
        return card

    def list_active(self, owner_id: str) -> list[CreditCard]:
        """Active cards, most recently used first."""
        cards = self.store.list_cards(owner_id, active_only=True)
        return sorted(cards, key=lambda c: c.last_used, reverse=True)

    def update(
        self,
        owner_id: str,
        card_id: str,
        card_name: str | None = None,
        credit_limit: Any = None,
        interest_rate: Any = None,
        color: str | None = None,
    ) -> CreditCard:
        """Change display fields, limit or interest rate."""
        changes = validate_card_update(
            card_name=card_name,
            credit_limit=credit_limit,
            interest_rate=interest_rate,
            color=color,
        )
        with self.locks.hold(card_id), self.store.transaction():
            card = self.get(owner_id, card_id)
            version = card.version
            for key, value in changes.items():
                setattr(card, key, value)
            card.recompute_available_credit()
            if card.is_over_limit:
                logger.warning(
                    "Card %s is over limit after update: balance=%s limit=%s",
                    card_id,
                    card.current_balance,
                    card.credit_limit,
                )
            self.store.update_card(card, expected_version=version)
        return card

    def deactivate(self, owner_id: str, card_id: str) -> CreditCard:
        """Soft delete; historical expenses stay attributable."""
        with self.locks.hold(card_id), self.store.transaction():
            card = self.get(owner_id, card_id)
            version = card.version
            self.ledger.deactivate(card)
            self.store.update_card(card, expected_version=version)
        logger.info("Card %s deactivated", card_id)
        return card

    def make_payment(self, owner_id: str, card_id: str, amount: Any) -> CreditCard:
        """Pay down the balance; overpayments raise ``InvalidPaymentError``."""
        value = validate_payment_amount(amount)
        with self.locks.hold(card_id), self.store.transaction():
            card = self.get(owner_id, card_id)
            version = card.version
            entry = self.ledger.apply_payment(card, value)
            self.store.update_card(card, expected_version=version)
            self.store.append_entry(entry)
        logger.info("Payment of %s applied to card %s, balance now %s", value, card_id, card.current_balance)
        return card

    def history(self, owner_id: str, card_id: str) -> list[LedgerEntry]:
        """Ledger entries for an owned card, oldest first."""
        self.get(owner_id, card_id)
        return self.store.list_entries(owner_id, card_id)

    def reconcile(self, owner_id: str, card_id: str) -> bool:
        """Check that the card's balance equals the fold of its ledger entries."""
        card = self.get(owner_id, card_id)
        return self.ledger.reconcile(card, self.store.list_entries(owner_id, card_id))

    def stats(self, owner_id: str, card_id: str, today: date | None = None) -> dict[str, Any]:
        """Utilization, interest and expiry figures for one card."""
        card = self.get(owner_id, card_id)
        today = today or date.today()
        monthly_interest = card.current_balance * card.interest_rate / 100 / 12
        expiry = date(card.expiry_year, card.expiry_month, 1)
        return {
            "utilization_rate": card.utilization,
            "utilization_tier": card.utilization_tier,
            "available_credit": card.available_credit,
            "monthly_interest": monthly_interest.quantize(CENTS, rounding=ROUND_HALF_UP),
            "credit_limit": card.credit_limit,
            "current_balance": card.current_balance,
            "is_over_limit": card.is_over_limit,
            "days_until_expiry": (expiry - today).days,
        }


def _default(value: Any, fallback: Any) -> Any:
    return fallback if value is None else value
