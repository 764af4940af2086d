"""Analytics for the business finance dashboard."""

from .categorizer import Categorizer
from .aggregation import (
    category_breakdown, category_totals, financial_metrics,
    monthly_expense_trend, percent_change,
)
from .anomaly_detector import AnomalyDetector
from .insight_generator import trend_insights_from_forecast, trend_insights_from_revenue
from .optimizer import OptimizationRecommender, total_potential_savings
from .dashboard import (
    DashboardSnapshot, ExpenseNotFoundError, build_snapshot,
    add_expense, replace_expense, remove_expense, next_expense_id,
)
from .storage import DatasetStore, SQLStorage, StorageError
from .csv_processor import CSVProcessor, DataValidationError

__all__ = [
    "Categorizer",
    "category_breakdown",
    "category_totals",
    "financial_metrics",
    "monthly_expense_trend",
    "percent_change",
    "AnomalyDetector",
    "trend_insights_from_forecast",
    "trend_insights_from_revenue",
    "OptimizationRecommender",
    "total_potential_savings",
    "DashboardSnapshot",
    "ExpenseNotFoundError",
    "build_snapshot",
    "add_expense",
    "replace_expense",
    "remove_expense",
    "next_expense_id",
    "DatasetStore",
    "SQLStorage",
    "StorageError",
    "CSVProcessor",
    "DataValidationError",
]
