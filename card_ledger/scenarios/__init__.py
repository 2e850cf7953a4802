"""Scenarios that drive realistic activity through the ledger services."""

from card_ledger.scenarios.household import HouseholdScenario

__all__ = ["HouseholdScenario"]
