"""Card ledger: balance and limit rules for a single credit card."""

import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Iterable

from card_ledger.exceptions import InsufficientCreditError, InvalidPaymentError
from card_ledger.models import CreditCard, LedgerEntry, LedgerEntryType

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


class CardLedger:
    """Apply charges, payments and adjustments to a card.

    Each mutating operation updates the card in memory, recomputes
    ``available_credit`` and returns the ``LedgerEntry`` describing the
    movement. Persisting the card and the entry is the caller's job.
    """

    def can_charge(self, card: CreditCard, amount: Decimal) -> bool:
        """Return True iff the card is active and has enough credit left."""
        return card.is_active and card.credit_limit - card.current_balance >= amount

    def apply_charge(
        self,
        card: CreditCard,
        amount: Decimal,
        expense_id: str | None = None,
    ) -> LedgerEntry:
        """Increase the balance by ``amount``.

        Raises
        ------
        InsufficientCreditError
            If the card is inactive or the charge exceeds available credit.
            The card is left untouched.
        """
        if not self.can_charge(card, amount):
            available = card.credit_limit - card.current_balance
            raise InsufficientCreditError(
                "Insufficient credit limit",
                available_credit=available,
            )

        card.current_balance += amount
        card.recompute_available_credit()
        card.last_used = datetime.now()
        return self._entry(card, LedgerEntryType.CHARGE, amount, expense_id)

    def apply_payment(self, card: CreditCard, amount: Decimal) -> LedgerEntry:
        """Decrease the balance by ``amount``; overpayments are rejected."""
        if amount <= 0:
            raise InvalidPaymentError("Payment amount must be greater than 0")
        if amount > card.current_balance:
            raise InvalidPaymentError(
                "Payment amount cannot exceed current balance",
                current_balance=card.current_balance,
            )

        card.current_balance -= amount
        card.recompute_available_credit()
        return self._entry(card, LedgerEntryType.PAYMENT, -amount, None)

    def adjust_balance(
        self,
        card: CreditCard,
        delta: Decimal,
        entry_type: LedgerEntryType = LedgerEntryType.ADJUSTMENT,
        expense_id: str | None = None,
        enforce_limit: bool = False,
    ) -> LedgerEntry:
        """Apply a signed delta (edits and refunds).

        A result below zero is clamped at zero; the returned entry carries
        the delta actually applied. With ``enforce_limit`` a positive delta
        must fit in the available credit.
        """
        if enforce_limit and delta > 0 and card.current_balance + delta > card.credit_limit:
            raise InsufficientCreditError(
                "Insufficient credit limit",
                available_credit=card.credit_limit - card.current_balance,
            )

        applied = delta
        if card.current_balance + delta < 0:
            applied = -card.current_balance
            logger.warning(
                "Clamped balance adjustment on card %s: requested %s, applied %s",
                card.card_id,
                delta,
                applied,
            )

        card.current_balance += applied
        card.recompute_available_credit()
        return self._entry(card, entry_type, applied, expense_id)

    def deactivate(self, card: CreditCard) -> None:
        """Soft delete: balance and limit are kept."""
        card.is_active = False

    def replay(self, entries: Iterable[LedgerEntry], opening_balance: Decimal = ZERO) -> Decimal:
        """Fold a ledger-entry log into a balance."""
        balance = opening_balance
        for entry in entries:
            balance += entry.amount
        return balance

    def reconcile(
        self,
        card: CreditCard,
        entries: Iterable[LedgerEntry],
        opening_balance: Decimal = ZERO,
    ) -> bool:
        """Check the stored balance against the fold of its entries."""
        expected = self.replay(entries, opening_balance)
        if expected != card.current_balance:
            logger.error(
                "Ledger divergence on card %s: stored=%s, replayed=%s",
                card.card_id,
                card.current_balance,
                expected,
            )
            return False
        return True

    def _entry(
        self,
        card: CreditCard,
        entry_type: LedgerEntryType,
        amount: Decimal,
        expense_id: str | None,
    ) -> LedgerEntry:
        return LedgerEntry(
            entry_id=uuid.uuid4().hex,
            card_id=card.card_id,
            owner_id=card.owner_id,
            entry_type=entry_type,
            amount=amount,
            balance_after=card.current_balance,
            expense_id=expense_id,
        )
