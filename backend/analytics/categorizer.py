"""Keyword rule-based expense categorization with heuristic confidence scores."""

import random
from typing import Optional

from schemas import Expense, ExpenseCategory


class Categorizer:
    """
    Assigns categories from an expense's description and vendor.

    Rules are evaluated in order and the first category with any keyword
    contained in the combined lower-cased text wins. Uncategorized has no
    keywords and is the fallback.
    """

    KEYWORD_RULES: list[tuple[ExpenseCategory, tuple[str, ...]]] = [
        (ExpenseCategory.RENT, ("rent", "lease", "office space", "coworking", "wework", "regus")),
        (ExpenseCategory.PAYROLL, ("salary", "payroll", "wage", "compensation", "bonus", "commission")),
        (ExpenseCategory.MARKETING, ("ads", "advertising", "promotion", "campaign", "social media", "seo")),
        (ExpenseCategory.SUPPLIES, ("supplies", "paper", "ink", "pens", "office depot", "staples")),
        (ExpenseCategory.UTILITIES, ("utility", "electric", "water", "gas", "internet", "phone", "verizon")),
        (ExpenseCategory.TRAVEL, ("travel", "flight", "hotel", "uber", "lyft", "taxi", "airfare")),
        (ExpenseCategory.SOFTWARE, ("software", "subscription", "saas", "license", "adobe", "salesforce")),
        (ExpenseCategory.EQUIPMENT, ("equipment", "hardware", "computer", "laptop", "printer", "device")),
        (ExpenseCategory.INSURANCE, ("insurance", "coverage", "policy", "health", "liability")),
        (ExpenseCategory.UNCATEGORIZED, ()),
    ]

    BASE_WEIGHT = 0.7
    JITTER = 0.3
    MAX_CONFIDENCE = 0.98

    def __init__(self, rng: Optional[random.Random] = None):
        """
        Args:
            rng: Random source for confidence jitter. Classification itself
                never uses it.
        """
        self.rng = rng if rng is not None else random.Random()
        self._keywords = dict(self.KEYWORD_RULES)

    @staticmethod
    def _combined_text(description: str, vendor: str) -> str:
        return f"{(description or '').lower()} {(vendor or '').lower()}"

    def classify(self, description: str, vendor: str) -> ExpenseCategory:
        """Return the first matching category, or Uncategorized."""
        text = self._combined_text(description, vendor)

        for category, keywords in self.KEYWORD_RULES:
            if any(keyword in text for keyword in keywords):
                return category

        return ExpenseCategory.UNCATEGORIZED

    def confidence_score(self, description: str, vendor: str, category: ExpenseCategory) -> float:
        """
        Heuristic confidence for a category assignment.

        Share of the category's keywords found, weighted by 0.7, plus up to
        0.3 of random jitter, capped at 0.98. Not a calibrated probability.
        """
        keywords = self._keywords.get(ExpenseCategory(category), ())
        if not keywords:
            return 0.0

        text = self._combined_text(description, vendor)
        matched = sum(1 for keyword in keywords if keyword in text)
        base = (matched / len(keywords)) * self.BASE_WEIGHT

        return min(base + self.rng.random() * self.JITTER, self.MAX_CONFIDENCE)

    def classify_expense(self, expense: Expense) -> Expense:
        """Fill in the category of an Uncategorized expense; others pass through."""
        if expense.category != ExpenseCategory.UNCATEGORIZED:
            return expense

        category = self.classify(expense.description, expense.vendor)
        if category == ExpenseCategory.UNCATEGORIZED:
            return expense
        return expense.model_copy(update={"category": category})

    def reclassify_batch(self, expenses: list[Expense]) -> list[Expense]:
        """
        Categorize every Uncategorized expense in the batch.

        Already categorized expenses are returned unchanged. Returns a new
        list in the input order.
        """
        return [self.classify_expense(expense) for expense in expenses]
