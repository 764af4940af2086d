"""
Test Module: test_optimizer.py
Description: Unit tests for cost-optimization recommendations.

Tests:
    - Category share thresholds and savings rates
    - Duplicate, vendor consolidation and uncategorized recommendations
    - Ordering and total savings
"""

from datetime import date, timedelta

import pytest

from analytics.optimizer import (
    CATEGORY_RULES,
    MIN_SAVINGS,
    OptimizationRecommender,
    total_potential_savings,
)
from schemas import ExpenseCategory
from conftest import assert_valid_confidence, make_expense


@pytest.fixture
def recommender():
    return OptimizationRecommender()


def by_id(recommendations):
    return {r.id: r for r in recommendations}


# =============================================================================
# Category Rule Tests
# =============================================================================

class TestCategoryRules:
    """Tests for share-gated category recommendations."""

    def test_empty_input(self, recommender):
        assert recommender.recommend([]) == []

    def test_mixed_expenses(self, recommender, mixed_expenses):
        recommendations = recommender.recommend(mixed_expenses)

        assert [r.id for r in recommendations] == ["opt-rent", "opt-marketing", "opt-software"]
        assert [r.potential_savings for r in recommendations] == [220.0, 100.0, 45.0]

    def test_rent_below_share_threshold_skipped(self, recommender):
        expenses = [
            make_expense("exp-1", 200.0, ExpenseCategory.RENT, vendor="A"),
            make_expense("exp-2", 800.0, ExpenseCategory.TRAVEL, vendor="B"),
        ]

        ids = [r.id for r in recommender.recommend(expenses)]

        assert "opt-rent" not in ids
        assert "opt-travel" in ids

    def test_payroll_needs_forty_percent(self, recommender):
        below = [
            make_expense("exp-1", 390.0, ExpenseCategory.PAYROLL, vendor="A"),
            make_expense("exp-2", 610.0, ExpenseCategory.TRAVEL, vendor="B"),
        ]
        at = [
            make_expense("exp-1", 400.0, ExpenseCategory.PAYROLL, vendor="A"),
            make_expense("exp-2", 600.0, ExpenseCategory.TRAVEL, vendor="B"),
        ]

        assert "opt-payroll" not in by_id(recommender.recommend(below))
        assert by_id(recommender.recommend(at))["opt-payroll"].potential_savings == 20.0

    def test_tiny_savings_dropped(self, recommender):
        expenses = [make_expense(amount=40.0, category=ExpenseCategory.SOFTWARE)]

        # 15% of 40 is below the minimum worth reporting
        assert 40.0 * 0.15 < MIN_SAVINGS
        assert recommender.recommend(expenses) == []

    def test_rule_fields(self, recommender):
        recommendation = recommender.recommend(
            [make_expense(amount=1000.0, category=ExpenseCategory.TRAVEL)]
        )[0]

        assert recommendation.category == ExpenseCategory.TRAVEL
        assert recommendation.implementation_difficulty == "easy"
        assert recommendation.potential_savings == 250.0
        assert "100.0%" in recommendation.description
        assert_valid_confidence(recommendation.confidence)

    def test_every_rule_is_valid(self):
        for rule in CATEGORY_RULES:
            assert rule.difficulty in ("easy", "medium", "hard")
            assert 0 < rule.savings_rate < 1
            assert_valid_confidence(rule.confidence)


# =============================================================================
# Derived Recommendation Tests
# =============================================================================

class TestDerivedRecommendations:
    """Tests for duplicate, vendor and uncategorized recommendations."""

    def test_duplicates(self, recommender):
        expenses = [
            make_expense("exp-1", 120.0, ExpenseCategory.SUPPLIES, vendor="Staples"),
            make_expense("exp-2", 120.0, ExpenseCategory.SUPPLIES, vendor="Staples"),
        ]

        recommendation = by_id(recommender.recommend(expenses))["opt-duplicates"]

        assert recommendation.potential_savings == 120.0
        assert recommendation.category == ExpenseCategory.SUPPLIES
        assert recommendation.implementation_difficulty == "easy"

    def test_vendor_consolidation(self, recommender):
        base = date(2024, 5, 1)
        expenses = [
            make_expense("exp-1", 500.0, ExpenseCategory.EQUIPMENT, base, vendor="Amazon"),
            make_expense("exp-2", 300.0, ExpenseCategory.SUPPLIES, base + timedelta(days=1), vendor="Amazon"),
            make_expense("exp-3", 200.0, ExpenseCategory.SUPPLIES, base + timedelta(days=2), vendor="Amazon"),
        ]

        recommendation = by_id(recommender.recommend(expenses))["opt-vendor-amazon"]

        assert recommendation.potential_savings == 80.0
        assert recommendation.category == ExpenseCategory.SUPPLIES
        assert "Amazon" in recommendation.title

    def test_single_category_vendor_not_consolidated(self, recommender):
        base = date(2024, 5, 1)
        expenses = [
            make_expense(f"exp-{i}", 300.0, ExpenseCategory.SOFTWARE,
                         base + timedelta(days=i), vendor="Adobe")
            for i in range(4)
        ]

        assert "opt-vendor-adobe" not in by_id(recommender.recommend(expenses))

    def test_uncategorized(self, recommender):
        expenses = [make_expense(amount=1000.0)]

        recommendation = by_id(recommender.recommend(expenses))["opt-uncategorized"]

        assert recommendation.potential_savings == 50.0
        assert recommendation.category == ExpenseCategory.UNCATEGORIZED


# =============================================================================
# Ordering and Totals
# =============================================================================

class TestOrderingAndTotals:

    def test_sorted_by_savings(self, recommender, generator):
        recommendations = recommender.recommend(generator.generate_expenses(60))
        savings = [r.potential_savings for r in recommendations]

        assert savings == sorted(savings, reverse=True)

    def test_ids_unique(self, recommender, generator):
        recommendations = recommender.recommend(generator.generate_expenses(60))

        assert len({r.id for r in recommendations}) == len(recommendations)

    def test_total_potential_savings(self, recommender, mixed_expenses):
        recommendations = recommender.recommend(mixed_expenses)

        assert total_potential_savings(recommendations) == 365.0

    def test_total_of_nothing(self):
        assert total_potential_savings([]) == 0
