"""Enumeration types for card and expense entities."""

from enum import Enum


class CardNetwork(str, Enum):
    VISA = "Visa"
    MASTERCARD = "Mastercard"
    AMERICAN_EXPRESS = "American Express"
    DISCOVER = "Discover"
    OTHER = "Other"


class ExpenseCategory(str, Enum):
    FOOD_DINING = "Food & Dining"
    SHOPPING = "Shopping"
    TRANSPORTATION = "Transportation"
    ENTERTAINMENT = "Entertainment"
    BILLS_UTILITIES = "Bills & Utilities"
    HEALTHCARE = "Healthcare"
    TRAVEL = "Travel"
    EDUCATION = "Education"
    GROCERIES = "Groceries"
    GAS = "Gas"
    INSURANCE = "Insurance"
    INVESTMENT = "Investment"
    OTHER = "Other"


class RecurringFrequency(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class LedgerEntryType(str, Enum):
    CHARGE = "CHARGE"
    PAYMENT = "PAYMENT"
    ADJUSTMENT = "ADJUSTMENT"
    REFUND = "REFUND"


class UtilizationTier(str, Enum):
    GOOD = "good"
    FAIR = "fair"
    HIGH = "high"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"
