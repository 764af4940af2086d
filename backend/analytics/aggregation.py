"""
Module: aggregation.py
Description: Category breakdowns, headline financial metrics and month-over-month
expense trends.

All functions are pure: they read the given collections and return new
records. Ratios with a zero denominator evaluate to 0 instead of NaN.
"""

from collections import defaultdict

import pandas as pd

from schemas import (
    CategoryBreakdown, Expense, ExpenseCategory, ExpenseTrend,
    FinancialMetrics, MonthlyExpense, Revenue,
)
from .observability import timed


def percent_change(current: float, previous: float) -> float:
    """Percent change from previous to current; 0 when previous is 0."""
    if previous == 0:
        return 0.0
    return (current - previous) * 100 / previous


@timed("category_breakdown")
def category_breakdown(expenses: list[Expense]) -> list[CategoryBreakdown]:
    """
    Sum expenses per category and express each as a share of the total.

    Categories with no spend are left out. Sorted by amount, largest first.
    """
    totals: dict[ExpenseCategory, float] = {category: 0.0 for category in ExpenseCategory}
    for expense in expenses:
        totals[ExpenseCategory(expense.category)] += expense.amount

    grand_total = sum(totals.values())

    breakdown = [
        CategoryBreakdown(
            category=category,
            amount=amount,
            percentage=(amount / grand_total) * 100 if grand_total > 0 else 0.0,
        )
        for category, amount in totals.items()
        if amount > 0
    ]
    breakdown.sort(key=lambda item: item.amount, reverse=True)
    return breakdown


@timed("financial_metrics")
def financial_metrics(expenses: list[Expense], revenue: list[Revenue]) -> FinancialMetrics:
    """
    Headline totals for the dashboard cards.

    Revenue growth compares the last two revenue entries, which are assumed
    to be in chronological order.
    """
    total_revenue = sum(r.amount for r in revenue)
    total_expenses = sum(e.amount for e in expenses)
    profit = total_revenue - total_expenses
    profit_margin = (profit / total_revenue) * 100 if total_revenue != 0 else 0.0

    current = revenue[-1].amount if len(revenue) >= 1 else 0.0
    previous = revenue[-2].amount if len(revenue) >= 2 else 0.0
    revenue_growth = percent_change(current, previous) if previous > 0 else 0.0

    return FinancialMetrics(
        total_revenue=round(total_revenue, 2),
        total_expenses=round(total_expenses, 2),
        profit=round(profit, 2),
        profit_margin=round(profit_margin, 2),
        revenue_growth=round(revenue_growth, 2),
    )


@timed("monthly_expense_trend")
def monthly_expense_trend(expenses: list[Expense]) -> ExpenseTrend:
    """
    Total spend per calendar month with the change against the prior month.

    The first month has no prior month, so its change is None.
    """
    if not expenses:
        return ExpenseTrend()

    df = pd.DataFrame(
        [{"month": e.date.isoformat()[:7], "amount": e.amount} for e in expenses]
    )
    monthly = df.groupby("month")["amount"].sum().sort_index()

    months = []
    previous = None
    for month, amount in monthly.items():
        amount = float(amount)
        change = percent_change(amount, previous) if previous is not None else None
        months.append(MonthlyExpense(month=str(month), amount=round(amount, 2), change_percent=change))
        previous = amount

    return ExpenseTrend(
        months=months,
        average=round(float(monthly.mean()), 2),
        highest=max(months, key=lambda m: m.amount),
        lowest=min(months, key=lambda m: m.amount),
    )


def category_totals(expenses: list[Expense]) -> dict[ExpenseCategory, float]:
    """Spend per category, only for categories that appear."""
    totals: dict[ExpenseCategory, float] = defaultdict(float)
    for expense in expenses:
        totals[ExpenseCategory(expense.category)] += expense.amount
    return dict(totals)
