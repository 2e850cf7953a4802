"""Credit card and expense ledger.

Cards carry a limit and a running balance; expenses logged against a card
move that balance. ``BalanceSynchronizer`` keeps the two consistent and
records every movement as an append-only ``LedgerEntry``.
"""

__version__ = "0.1.0"
