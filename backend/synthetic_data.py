"""
Module: synthetic_data.py
Description: Synthetic expense, revenue and forecast generator for the demo dashboard.

Generates:
    - Business expenses with category-consistent amount ranges
    - Monthly revenue trending upward with +/-20% noise
    - Revenue forecasts compounding at 3-7% per step with widening bands

All randomness comes from an injected random.Random and all dates are derived
from an injected reference date, so a fixed seed and date reproduce the same
dataset exactly.

Usage:
    from synthetic_data import SyntheticDataGenerator
    generator = SyntheticDataGenerator(reference_date=date(2024, 6, 30), seed=42)
    dataset = generator.generate_dataset()
"""

import random
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import List, Optional

import pandas as pd

from schemas import Expense, ExpenseCategory, ForecastData, Revenue


VENDORS = [
    "Amazon", "Office Depot", "WeWork", "Salesforce", "Adobe",
    "Verizon", "American Airlines", "Dell", "Staples", "Uber",
]

DESCRIPTIONS = [
    "Monthly subscription", "Office supplies", "Team lunch", "Conference tickets",
    "New equipment", "Software license", "Utility bill", "Marketing campaign",
    "Travel expenses", "Consulting services",
]

# (low, high) per category; anything not listed uses DEFAULT_AMOUNT_RANGE
AMOUNT_RANGES = {
    ExpenseCategory.RENT: (1500, 5000),
    ExpenseCategory.PAYROLL: (3000, 10000),
    ExpenseCategory.MARKETING: (500, 3000),
}
DEFAULT_AMOUNT_RANGE = (50, 1000)

EXPENSE_WINDOW_DAYS = 90
REVENUE_BASE = 15000
REVENUE_STEP = 500
REVENUE_NOISE = 0.2
FORECAST_MIN_GROWTH = 0.03
FORECAST_GROWTH_SPREAD = 0.04
FORECAST_BASE_UNCERTAINTY = 0.10
FORECAST_UNCERTAINTY_STEP = 0.02

FORECAST_PERIODS = {
    "3months": 3,
    "6months": 6,
    "12months": 12,
    "24months": 24,
}
DEFAULT_FORECAST_MONTHS = 6

# Display labels only; every label runs the same generator
FORECAST_MODELS = ["arima", "lstm", "prophet", "ensemble"]


def forecast_months_for(period: str) -> int:
    """Map a forecast period label such as '12months' to a month count."""
    return FORECAST_PERIODS.get(period, DEFAULT_FORECAST_MONTHS)


@dataclass
class SyntheticDataset:
    """One consistent set of generated records."""
    expenses: List[Expense] = field(default_factory=list)
    revenue: List[Revenue] = field(default_factory=list)
    forecast: List[ForecastData] = field(default_factory=list)


class SyntheticDataGenerator:
    """Seedable generator for demo business data."""

    def __init__(
        self,
        reference_date: date,
        seed: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ):
        """
        Args:
            reference_date: "Today" for the generated data.
            seed: Seed for a private random.Random (ignored when rng is given).
            rng: Random source to draw from.
        """
        self.reference_date = reference_date
        self.rng = rng if rng is not None else random.Random(seed)
        self._reference_month = pd.Period(reference_date.isoformat(), freq="M")

    def _month_label(self, offset: int) -> str:
        """YYYY-MM label `offset` months from the reference month."""
        return (self._reference_month + offset).strftime("%Y-%m")

    def generate_expenses(self, count: int) -> List[Expense]:
        """
        Generate `count` expenses dated within the last 90 days.

        Returns:
            Expenses sorted most recent first.
        """
        if count <= 0:
            return []

        categories = list(ExpenseCategory)
        expenses = []
        for i in range(count):
            days_ago = self.rng.randrange(EXPENSE_WINDOW_DAYS)
            category = self.rng.choice(categories)
            low, high = AMOUNT_RANGES.get(category, DEFAULT_AMOUNT_RANGE)
            amount = low + self.rng.random() * (high - low)

            expenses.append(Expense(
                id=f"exp-{i + 1}",
                date=self.reference_date - timedelta(days=days_ago),
                amount=round(amount, 2),
                description=self.rng.choice(DESCRIPTIONS),
                category=category,
                vendor=self.rng.choice(VENDORS),
            ))

        expenses.sort(key=lambda e: e.date, reverse=True)
        return expenses

    def generate_revenue(self, months: int) -> List[Revenue]:
        """
        Generate one revenue record per month ending at the reference month.

        Returns:
            Revenue in chronological order (oldest first).
        """
        if months <= 0:
            return []

        revenue = []
        for i in range(months):
            base = REVENUE_BASE + (months - i) * REVENUE_STEP
            variance = base * REVENUE_NOISE
            amount = base + (self.rng.random() * variance * 2 - variance)
            revenue.append(Revenue(date=self._month_label(-i), amount=round(amount, 2)))

        revenue.reverse()
        return revenue

    def generate_forecast(self, months: int, anchor: Optional[float] = None) -> List[ForecastData]:
        """
        Project revenue forward from `anchor`.

        Step i predicts anchor * (1 + g) ** (i + 1) with g drawn fresh from
        [3%, 7%) and a band of +/-(10% + 2% * i).

        Args:
            months: Number of months to forecast.
            anchor: Latest known revenue. Defaults to a freshly generated
                single-month revenue value.
        """
        if months <= 0:
            return []

        if anchor is None:
            anchor = self.generate_revenue(1)[0].amount

        forecast = []
        for i in range(months):
            growth = FORECAST_MIN_GROWTH + self.rng.random() * FORECAST_GROWTH_SPREAD
            predicted = anchor * (1 + growth) ** (i + 1)
            uncertainty = FORECAST_BASE_UNCERTAINTY + i * FORECAST_UNCERTAINTY_STEP
            # min/max keeps the band ordered for a negative anchor
            low, high = sorted((predicted * (1 - uncertainty), predicted * (1 + uncertainty)))

            forecast.append(ForecastData(
                date=self._month_label(i + 1),
                predicted=round(predicted, 2),
                lower_bound=round(low, 2),
                upper_bound=round(high, 2),
            ))

        return forecast

    def generate_dataset(
        self,
        expense_count: int = 50,
        revenue_months: int = 12,
        forecast_months: int = DEFAULT_FORECAST_MONTHS,
    ) -> SyntheticDataset:
        """Generate expenses, revenue and a forecast anchored at the latest revenue."""
        expenses = self.generate_expenses(expense_count)
        revenue = self.generate_revenue(revenue_months)
        anchor = revenue[-1].amount if revenue else None
        forecast = self.generate_forecast(forecast_months, anchor=anchor)
        return SyntheticDataset(expenses=expenses, revenue=revenue, forecast=forecast)
