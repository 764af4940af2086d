"""
Module: anomaly_detector.py
Description: Per-category outlier detection and near-duplicate payment detection.

Detection Methods:
    1. Z-score outliers: within each category with at least 3 expenses, flag
       amounts more than 2 population standard deviations from the mean.
    2. Duplicates: expenses on the same date with the same vendor whose
       amounts differ by less than 1% of the larger one.

The savings figure in the summary is the sum of the second expense of every
duplicate pair. It counts a detected duplicate as recoverable money, which is
a simplification kept for compatibility with the dashboard.
"""

from collections import defaultdict
from itertools import combinations
from typing import Dict, List, Tuple

import numpy as np

from schemas import (
    AnomalyItem, AnomalyReport, AnomalySummary, DuplicatePair,
    Expense, ExpenseCategory,
)
from .observability import log_anomaly_detected, logger, timed


# =============================================================================
# Detection Constants
# =============================================================================

ZSCORE_THRESHOLD = 2.0
MIN_CATEGORY_SIZE = 3
DUPLICATE_TOLERANCE = 0.01


class AnomalyDetector:
    """Statistical anomaly and duplicate detector over an expense snapshot."""

    def __init__(
        self,
        threshold: float = ZSCORE_THRESHOLD,
        min_category_size: int = MIN_CATEGORY_SIZE,
        duplicate_tolerance: float = DUPLICATE_TOLERANCE,
    ):
        self.threshold = threshold
        self.min_category_size = min_category_size
        self.duplicate_tolerance = duplicate_tolerance

    @timed("anomaly_detection")
    def detect(self, expenses: List[Expense]) -> AnomalyReport:
        """
        Run outlier and duplicate detection.

        Returns:
            AnomalyReport with flagged expenses, duplicate pairs and counts.
        """
        anomalies = self.find_outliers(expenses)
        duplicates = self.find_duplicates(expenses)

        summary = AnomalySummary(
            total_anomalies=len(anomalies),
            high_significance=sum(1 for a in anomalies if a.significance == "high"),
            potential_duplicates=len(duplicates),
            potential_savings=round(sum(pair.expense2.amount for pair in duplicates), 2),
        )

        logger.info(
            "Anomaly scan finished",
            expenses=len(expenses),
            anomalies=summary.total_anomalies,
            duplicates=summary.potential_duplicates,
        )
        return AnomalyReport(anomalies=anomalies, potential_duplicates=duplicates, summary=summary)

    def find_outliers(self, expenses: List[Expense]) -> List[AnomalyItem]:
        """Flag expenses far from their category mean."""
        by_category: Dict[ExpenseCategory, List[Expense]] = defaultdict(list)
        for expense in expenses:
            by_category[ExpenseCategory(expense.category)].append(expense)

        anomalies = []
        for category, members in by_category.items():
            if len(members) < self.min_category_size:
                continue

            amounts = np.array([e.amount for e in members], dtype=float)
            mean = float(np.mean(amounts))
            std = float(np.std(amounts))  # population (ddof=0)

            for expense in members:
                diff = expense.amount - mean
                if abs(diff) <= self.threshold * std:
                    continue

                significance = "high" if diff > 0 else "low"
                anomalies.append(AnomalyItem(
                    expense=expense,
                    mean_amount=round(mean, 2),
                    deviation=diff / std,
                    significance=significance,
                ))
                log_anomaly_detected(category.value, significance, expense.amount)

        return anomalies

    def find_duplicates(self, expenses: List[Expense]) -> List[DuplicatePair]:
        """
        Pair up likely double payments.

        Expenses are bucketed by (date, vendor) first so only candidates that
        could match are compared. Pairs come back in the same order as a
        nested scan over the input would produce them.
        """
        buckets: Dict[Tuple, List[Tuple[int, Expense]]] = defaultdict(list)
        for index, expense in enumerate(expenses):
            buckets[(expense.date, expense.vendor)].append((index, expense))

        matches = []
        for members in buckets.values():
            if len(members) < 2:
                continue
            for (i, first), (j, second) in combinations(members, 2):
                if self._amounts_match(first.amount, second.amount):
                    matches.append((i, j, first, second))

        matches.sort(key=lambda m: (m[0], m[1]))
        return [DuplicatePair(expense1=first, expense2=second) for _, _, first, second in matches]

    def _amounts_match(self, a: float, b: float) -> bool:
        larger = max(a, b)
        if larger <= 0:
            return a == b
        return abs(a - b) / larger < self.duplicate_tolerance
