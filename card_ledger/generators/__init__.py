"""Faker-backed generators for sample cards and expenses."""

from card_ledger.generators.cards import CreditCardGenerator, ExpenseGenerator

__all__ = ["CreditCardGenerator", "ExpenseGenerator"]
