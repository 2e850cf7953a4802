"""Spending analytics: dashboards, monthly reports, insights and comparisons.

All figures are arithmetic aggregations over owner-scoped expense and card
queries. Amounts stay ``Decimal``; percentages are rounded to 2 places.
"""

import logging
from collections import defaultdict
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from card_ledger.config import LedgerConfig
from card_ledger.expenses import ExpenseRecordStore, month_bounds
from card_ledger.models import Expense
from card_ledger.store.base import LedgerStore

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
CENTS = Decimal("0.01")

TREND_MONTHS = 6
INSIGHT_MONTHS = 3
TOP_CATEGORIES = 5
HIGH_SPENDING_CATEGORIES = 3
REPORT_EXPENSE_LIMIT = 20
BUDGET_RATIO = Decimal("0.8")
NON_ESSENTIAL_SAVINGS_RATIO = Decimal("0.3")


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def _total(expenses: list[Expense]) -> Decimal:
    return sum((e.amount for e in expenses), ZERO)


def _shift_month(year: int, month: int, offset: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def _month_label(year: int, month: int) -> str:
    return date(year, month, 1).strftime("%b %Y")


class SpendingAnalytics:
    """Aggregate an owner's expenses and cards into reports."""

    def __init__(self, store: LedgerStore, config: LedgerConfig | None = None) -> None:
        self.store = store
        self.config = config or LedgerConfig()
        self.expenses = ExpenseRecordStore(store, self.config)

    def dashboard(self, owner_id: str, today: date | None = None) -> dict[str, Any]:
        """Current month totals, card totals, 6-month trend and top categories."""
        today = today or date.today()
        month_expenses = self.expenses.monthly(owner_id, today.year, today.month)

        category_totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
        for expense in month_expenses:
            category_totals[expense.category.value] += expense.amount

        cards = self.store.list_cards(owner_id, active_only=True)
        total_limit = sum((c.credit_limit for c in cards), ZERO)
        total_balance = sum((c.current_balance for c in cards), ZERO)
        utilization = _money(total_balance / total_limit * 100) if total_limit > 0 else ZERO

        trend = []
        for offset in range(TREND_MONTHS - 1, -1, -1):
            year, month = _shift_month(today.year, today.month, -offset)
            trend.append({
                "month": _month_label(year, month),
                "amount": _total(self.expenses.monthly(owner_id, year, month)),
            })

        top = sorted(category_totals.items(), key=lambda kv: kv[1], reverse=True)[:TOP_CATEGORIES]

        return {
            "current_month": {
                "total_spending": _total(month_expenses),
                "expense_count": len(month_expenses),
                "category_breakdown": dict(category_totals),
            },
            "credit_cards": {
                "total_cards": len(cards),
                "total_credit_limit": total_limit,
                "total_current_balance": total_balance,
                "total_available_credit": total_limit - total_balance,
                "overall_utilization": utilization,
            },
            "monthly_trend": trend,
            "top_categories": [{"category": c, "amount": a} for c, a in top],
        }

    def monthly_report(self, owner_id: str, year: int, month: int) -> dict[str, Any]:
        """Category, card and daily breakdowns for one calendar month."""
        expenses = self.expenses.monthly(owner_id, year, month)

        category_analysis: dict[str, dict[str, Any]] = {}
        for expense in expenses:
            entry = category_analysis.setdefault(
                expense.category.value, {"total": ZERO, "count": 0, "expenses": []}
            )
            entry["total"] += expense.amount
            entry["count"] += 1
            entry["expenses"].append(expense)

        cards = {c.card_id: c for c in self.store.list_cards(owner_id, active_only=False)}
        card_analysis: dict[str, dict[str, Any]] = {}
        for expense in expenses:
            card = cards.get(expense.card_id)
            entry = card_analysis.setdefault(expense.card_id, {
                "card_name": card.card_name if card else None,
                "color": card.color if card else None,
                "total": ZERO,
                "count": 0,
            })
            entry["total"] += expense.amount
            entry["count"] += 1

        daily_spending: dict[int, Decimal] = defaultdict(lambda: ZERO)
        for expense in expenses:
            daily_spending[expense.date.day] += expense.amount

        total = _total(expenses)
        return {
            "period": f"{year}-{month:02d}",
            "total_spending": total,
            "total_transactions": len(expenses),
            "average_transaction": _money(total / len(expenses)) if expenses else ZERO,
            "category_analysis": category_analysis,
            "card_analysis": card_analysis,
            "daily_spending": dict(daily_spending),
            "expenses": expenses[:REPORT_EXPENSE_LIMIT],
        }

    def insights(self, owner_id: str, today: date | None = None) -> dict[str, Any]:
        """High-spending categories, high-utilization cards and savings suggestions."""
        today = today or date.today()
        start_year, start_month = _shift_month(today.year, today.month, -(INSIGHT_MONTHS - 1))
        start, _ = month_bounds(start_year, start_month)
        _, end = month_bounds(today.year, today.month)
        expenses = self.expenses.between(owner_id, start, end)

        # month -> category -> total
        monthly: dict[tuple[int, int], dict[str, Decimal]] = defaultdict(lambda: defaultdict(lambda: ZERO))
        for expense in expenses:
            monthly[(expense.date.year, expense.date.month)][expense.category.value] += expense.amount

        per_category: dict[str, list[Decimal]] = defaultdict(list)
        for totals in monthly.values():
            for category, amount in totals.items():
                per_category[category].append(amount)

        averages = sorted(
            ((c, _money(sum(a, ZERO) / len(a))) for c, a in per_category.items()),
            key=lambda item: item[1],
            reverse=True,
        )[:HIGH_SPENDING_CATEGORIES]

        insights: list[dict[str, Any]] = []
        suggestions: list[dict[str, Any]] = []

        for category, average in averages:
            insights.append({
                "type": "high_spending",
                "title": f"High {category} Spending",
                "description": f"You spend an average of ${average:.2f} per month on {category}",
                "category": category,
                "amount": average,
            })
            if average > self.config.savings_threshold:
                budget = _money(average * BUDGET_RATIO)
                savings = average - budget
                suggestions.append({
                    "category": category,
                    "suggestion": (
                        f"Consider setting a monthly budget of ${budget:.2f} for {category} "
                        f"to save ${savings:.2f} per month"
                    ),
                    "potential_savings": savings,
                })

        for card in self.store.list_cards(owner_id, active_only=True):
            if card.utilization > self.config.high_utilization_threshold:
                insights.append({
                    "type": "high_utilization",
                    "title": "High Credit Utilization",
                    "description": (
                        f"{card.card_name} is {card.utilization:.1f}% utilized. "
                        "Consider paying down the balance."
                    ),
                    "card_id": card.card_id,
                    "utilization": card.utilization,
                })

        non_essential = _total([e for e in expenses if not e.is_essential])
        if non_essential > 0:
            insights.append({
                "type": "non_essential",
                "title": "Non-Essential Spending",
                "description": (
                    f"You've spent ${non_essential:.2f} on non-essential items "
                    f"in the last {INSIGHT_MONTHS} months"
                ),
                "amount": non_essential,
            })
            savings = _money(non_essential * NON_ESSENTIAL_SAVINGS_RATIO)
            suggestions.append({
                "category": "Non-Essential",
                "suggestion": (
                    f"Reducing non-essential spending by 30% could save you ${savings:.2f} "
                    f"over {INSIGHT_MONTHS} months"
                ),
                "potential_savings": savings,
            })

        return {
            "insights": insights,
            "savings_suggestions": suggestions,
            "summary": {
                "total_expenses_analyzed": len(expenses),
                "analysis_period": f"{INSIGHT_MONTHS} months",
                "top_spending_category": averages[0][0] if averages else "N/A",
            },
        }

    def category_comparison(self, owner_id: str, months: int = 6, today: date | None = None) -> dict[str, Any]:
        """Month x category totals over the last ``months`` months."""
        today = today or date.today()
        year, month = _shift_month(today.year, today.month, -months)
        day = min(today.day, month_bounds(year, month)[1].day)
        expenses = self.expenses.between(owner_id, datetime(year, month, day), datetime.max)

        monthly_data: dict[str, dict[str, Decimal]] = {}
        categories: list[str] = []
        for expense in sorted(expenses, key=lambda e: e.date):
            label = _month_label(expense.date.year, expense.date.month)
            bucket = monthly_data.setdefault(label, {})
            bucket[expense.category.value] = bucket.get(expense.category.value, ZERO) + expense.amount
            if expense.category.value not in categories:
                categories.append(expense.category.value)

        return {
            "monthly_data": monthly_data,
            "categories": categories,
            "period": f"{months} months",
        }
