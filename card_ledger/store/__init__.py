"""Persistence layer for cards, expenses and ledger entries."""

from card_ledger.store.base import ExpenseQuery, LedgerStore
from card_ledger.store.memory import InMemoryLedgerStore

__all__ = ["ExpenseQuery", "InMemoryLedgerStore", "LedgerStore"]
