"""
Module: optimizer.py
Description: Cost-optimization recommendations from an expense snapshot.

Recommendation Sources:
    1. Category rules: a fixed savings fraction of a category's spend once the
       category makes up a large enough share of total spend.
    2. Duplicate payments found by the anomaly detector.
    3. Vendor consolidation: one vendor billed across several categories.
    4. Uncategorized spend that cannot be budgeted until it is categorized.

Recommendations are always rebuilt from the full expense list.

Usage:
    recommender = OptimizationRecommender()
    recommendations = recommender.recommend(expenses)
    total = total_potential_savings(recommendations)
"""

import re
from collections import Counter, defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional

from schemas import Expense, ExpenseCategory, OptimizationRecommendation
from .aggregation import category_totals
from .anomaly_detector import AnomalyDetector
from .observability import logger, timed


MIN_SAVINGS = 10.0
VENDOR_MIN_EXPENSES = 3
VENDOR_MIN_CATEGORIES = 2
VENDOR_DISCOUNT = 0.08
UNCATEGORIZED_SAVINGS = 0.05


@dataclass(frozen=True)
class CategoryRule:
    category: ExpenseCategory
    min_share: float  # share of total spend, 0..1
    savings_rate: float
    difficulty: str
    confidence: float
    title: str
    description: str


CATEGORY_RULES: List[CategoryRule] = [
    CategoryRule(
        ExpenseCategory.SOFTWARE, 0.0, 0.15, "easy", 0.85,
        "Consolidate software subscriptions",
        "Audit active licenses and cancel unused seats or overlapping tools. "
        "Software spend is {share:.1f}% of expenses.",
    ),
    CategoryRule(
        ExpenseCategory.MARKETING, 0.10, 0.20, "medium", 0.75,
        "Focus marketing on best-performing channels",
        "Marketing is {share:.1f}% of expenses. Shift budget away from "
        "campaigns with low return.",
    ),
    CategoryRule(
        ExpenseCategory.TRAVEL, 0.0, 0.25, "easy", 0.80,
        "Replace non-essential travel with virtual meetings",
        "Travel accounts for {share:.1f}% of expenses. Book ahead and move "
        "routine meetings online.",
    ),
    CategoryRule(
        ExpenseCategory.SUPPLIES, 0.0, 0.15, "easy", 0.80,
        "Buy office supplies in bulk",
        "Supplies are {share:.1f}% of expenses. Consolidate orders with a "
        "single supplier for volume pricing.",
    ),
    CategoryRule(
        ExpenseCategory.UTILITIES, 0.0, 0.12, "easy", 0.70,
        "Reduce utility costs",
        "Utilities are {share:.1f}% of expenses. Review phone and internet "
        "plans and energy usage.",
    ),
    CategoryRule(
        ExpenseCategory.EQUIPMENT, 0.05, 0.20, "medium", 0.65,
        "Lease equipment instead of buying",
        "Equipment purchases are {share:.1f}% of expenses. Leasing or buying "
        "refurbished spreads the cost.",
    ),
    CategoryRule(
        ExpenseCategory.INSURANCE, 0.0, 0.10, "medium", 0.70,
        "Review insurance policies",
        "Insurance is {share:.1f}% of expenses. Compare quotes and remove "
        "overlapping coverage.",
    ),
    CategoryRule(
        ExpenseCategory.RENT, 0.25, 0.10, "hard", 0.60,
        "Renegotiate lease or reduce office space",
        "Rent takes {share:.1f}% of expenses. Consider a smaller space, "
        "coworking or renegotiating the lease.",
    ),
    CategoryRule(
        ExpenseCategory.PAYROLL, 0.40, 0.05, "hard", 0.50,
        "Automate repetitive work",
        "Payroll is {share:.1f}% of expenses. Automating routine tasks can "
        "reduce overtime and contractor hours.",
    ),
]


def _slug(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-") or "unknown"


class OptimizationRecommender:
    """Heuristic cost-saving recommendations."""

    def __init__(self, rules: Optional[List[CategoryRule]] = None,
                 detector: Optional[AnomalyDetector] = None):
        self.rules = rules if rules is not None else CATEGORY_RULES
        self.detector = detector or AnomalyDetector()

    @timed("optimization_recommendations")
    def recommend(self, expenses: List[Expense]) -> List[OptimizationRecommendation]:
        """
        Build every applicable recommendation for the expense list.

        Returns:
            Recommendations sorted by potential savings, largest first.
        """
        if not expenses:
            return []

        totals = category_totals(expenses)
        grand_total = sum(totals.values())

        recommendations = []
        recommendations.extend(self._category_recommendations(totals, grand_total))
        recommendations.extend(self._duplicate_recommendations(expenses))
        recommendations.extend(self._vendor_recommendations(expenses))
        recommendations.extend(self._uncategorized_recommendations(totals))

        recommendations.sort(key=lambda r: r.potential_savings, reverse=True)
        logger.info("Recommendations generated", count=len(recommendations))
        return recommendations

    def _category_recommendations(
        self, totals: Dict[ExpenseCategory, float], grand_total: float
    ) -> List[OptimizationRecommendation]:
        recommendations = []
        for rule in self.rules:
            amount = totals.get(rule.category, 0.0)
            if amount <= 0 or grand_total <= 0:
                continue

            share = amount / grand_total
            if share < rule.min_share:
                continue

            savings = round(amount * rule.savings_rate, 2)
            if savings < MIN_SAVINGS:
                continue

            recommendations.append(OptimizationRecommendation(
                id=f"opt-{_slug(rule.category.value)}",
                title=rule.title,
                description=rule.description.format(share=share * 100),
                category=rule.category,
                potential_savings=savings,
                implementation_difficulty=rule.difficulty,
                confidence=rule.confidence,
            ))
        return recommendations

    def _duplicate_recommendations(self, expenses: List[Expense]) -> List[OptimizationRecommendation]:
        duplicates = self.detector.find_duplicates(expenses)
        if not duplicates:
            return []

        savings = round(sum(pair.expense2.amount for pair in duplicates), 2)
        categories = Counter(ExpenseCategory(pair.expense2.category) for pair in duplicates)
        category = categories.most_common(1)[0][0]

        return [OptimizationRecommendation(
            id="opt-duplicates",
            title="Eliminate duplicate payments",
            description=(
                f"Found {len(duplicates)} possible duplicate payment(s) with the same vendor "
                f"on the same day. Request refunds and add an approval step for repeat invoices."
            ),
            category=category,
            potential_savings=savings,
            implementation_difficulty="easy",
            confidence=0.9,
        )]

    def _vendor_recommendations(self, expenses: List[Expense]) -> List[OptimizationRecommendation]:
        by_vendor: Dict[str, List[Expense]] = defaultdict(list)
        for expense in expenses:
            if expense.vendor:
                by_vendor[expense.vendor].append(expense)

        recommendations = []
        for vendor, vendor_expenses in by_vendor.items():
            categories = Counter(ExpenseCategory(e.category) for e in vendor_expenses)
            if len(vendor_expenses) < VENDOR_MIN_EXPENSES or len(categories) < VENDOR_MIN_CATEGORIES:
                continue

            spend = sum(e.amount for e in vendor_expenses)
            savings = round(spend * VENDOR_DISCOUNT, 2)
            if savings < MIN_SAVINGS:
                continue

            recommendations.append(OptimizationRecommendation(
                id=f"opt-vendor-{_slug(vendor)}",
                title=f"Negotiate a volume discount with {vendor}",
                description=(
                    f"{vendor} billed {len(vendor_expenses)} expenses across "
                    f"{len(categories)} categories. Consolidating purchases under one "
                    f"contract usually earns a discount."
                ),
                category=categories.most_common(1)[0][0],
                potential_savings=savings,
                implementation_difficulty="medium",
                confidence=0.6,
            ))
        return recommendations

    def _uncategorized_recommendations(
        self, totals: Dict[ExpenseCategory, float]
    ) -> List[OptimizationRecommendation]:
        amount = totals.get(ExpenseCategory.UNCATEGORIZED, 0.0)
        savings = round(amount * UNCATEGORIZED_SAVINGS, 2)
        if amount <= 0 or savings < MIN_SAVINGS:
            return []

        return [OptimizationRecommendation(
            id="opt-uncategorized",
            title="Categorize uncategorized expenses",
            description=(
                "Some spend has no category, which hides it from budgets. "
                "Tagging it makes overspending visible."
            ),
            category=ExpenseCategory.UNCATEGORIZED,
            potential_savings=savings,
            implementation_difficulty="easy",
            confidence=0.9,
        )]


def total_potential_savings(recommendations: List[OptimizationRecommendation]) -> float:
    """Sum of potential savings over all recommendations."""
    return round(sum(r.potential_savings for r in recommendations), 2)
