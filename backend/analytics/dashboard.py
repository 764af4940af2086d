"""
Module: dashboard.py
Description: Full-recompute dashboard snapshot and copy-on-write expense edits.

Every derived value (breakdown, metrics, trend, recommendations, insights,
anomalies) is rebuilt from the complete expense and revenue lists whenever
either changes. Inputs are copied into tuples first, so later edits to the
caller's lists cannot leak into a snapshot.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from schemas import (
    AnomalyReport, CategoryBreakdown, Expense, ExpenseTrend,
    FinancialMetrics, OptimizationRecommendation, Revenue,
)
from .aggregation import category_breakdown, financial_metrics, monthly_expense_trend
from .anomaly_detector import AnomalyDetector
from .insight_generator import trend_insights_from_revenue
from .observability import log_snapshot_built, timed_block
from .optimizer import OptimizationRecommender, total_potential_savings


class ExpenseNotFoundError(KeyError):
    """Raised when an edit targets an expense id that is not in the list."""

    def __init__(self, expense_id: str):
        super().__init__(expense_id)
        self.expense_id = expense_id

    def __str__(self) -> str:
        return f"Expense '{self.expense_id}' not found"


@dataclass(frozen=True)
class DashboardSnapshot:
    expenses: tuple
    revenue: tuple
    category_breakdown: List[CategoryBreakdown]
    metrics: FinancialMetrics
    expense_trend: ExpenseTrend
    recommendations: List[OptimizationRecommendation]
    total_potential_savings: float
    insights: List[str]
    anomaly_report: AnomalyReport = field(default_factory=AnomalyReport)


def build_snapshot(
    expenses: Sequence[Expense],
    revenue: Sequence[Revenue],
    detector: Optional[AnomalyDetector] = None,
    recommender: Optional[OptimizationRecommender] = None,
) -> DashboardSnapshot:
    """Recompute every dashboard figure from the given records."""
    expenses = tuple(expenses)
    revenue = tuple(revenue)
    detector = detector or AnomalyDetector()
    recommender = recommender or OptimizationRecommender(detector=detector)

    with timed_block("dashboard_snapshot"):
        expense_list = list(expenses)
        recommendations = recommender.recommend(expense_list)
        anomaly_report = detector.detect(expense_list)

        snapshot = DashboardSnapshot(
            expenses=expenses,
            revenue=revenue,
            category_breakdown=category_breakdown(expense_list),
            metrics=financial_metrics(expense_list, list(revenue)),
            expense_trend=monthly_expense_trend(expense_list),
            recommendations=recommendations,
            total_potential_savings=total_potential_savings(recommendations),
            insights=trend_insights_from_revenue(list(revenue)),
            anomaly_report=anomaly_report,
        )

    log_snapshot_built(
        expense_count=len(expenses),
        revenue_count=len(revenue),
        anomalies=anomaly_report.summary.total_anomalies,
        recommendations=len(recommendations),
    )
    return snapshot


# =============================================================================
# Copy-on-write Expense Edits
# =============================================================================

def add_expense(expenses: Sequence[Expense], expense: Expense) -> List[Expense]:
    """New list with `expense` first, matching the dashboard's newest-first table."""
    return [expense, *expenses]


def replace_expense(expenses: Sequence[Expense], updated: Expense) -> List[Expense]:
    """New list with the expense of the same id replaced."""
    if not any(e.id == updated.id for e in expenses):
        raise ExpenseNotFoundError(updated.id)
    return [updated if e.id == updated.id else e for e in expenses]


def remove_expense(expenses: Sequence[Expense], expense_id: str) -> List[Expense]:
    """New list without the expense; unknown ids raise ExpenseNotFoundError."""
    remaining = [e for e in expenses if e.id != expense_id]
    if len(remaining) == len(expenses):
        raise ExpenseNotFoundError(expense_id)
    return remaining


def next_expense_id(expenses: Sequence[Expense]) -> str:
    """First unused `exp-N` id."""
    used = {e.id for e in expenses}
    n = len(expenses) + 1
    while f"exp-{n}" in used:
        n += 1
    return f"exp-{n}"
