"""Pydantic record shapes and request/response schemas."""

from datetime import date
from enum import Enum
from typing import Optional, Literal

from pydantic import BaseModel, Field, model_validator


# =============================================================================
# Core Records
# =============================================================================

class ExpenseCategory(str, Enum):
    """Closed set of expense categories, in classification priority order."""
    RENT = "Rent"
    PAYROLL = "Payroll"
    MARKETING = "Marketing"
    SUPPLIES = "Supplies"
    UTILITIES = "Utilities"
    TRAVEL = "Travel"
    SOFTWARE = "Software"
    EQUIPMENT = "Equipment"
    INSURANCE = "Insurance"
    UNCATEGORIZED = "Uncategorized"


Difficulty = Literal["easy", "medium", "hard"]
Significance = Literal["high", "low"]


class Expense(BaseModel):
    id: str
    date: date
    amount: float = Field(gt=0)
    description: str = ""
    category: ExpenseCategory = ExpenseCategory.UNCATEGORIZED
    vendor: str = ""

    class Config:
        frozen = True


class Revenue(BaseModel):
    date: str = Field(pattern=r"^\d{4}-\d{2}$")
    amount: float

    class Config:
        frozen = True


class ForecastData(BaseModel):
    date: str = Field(pattern=r"^\d{4}-\d{2}$")
    predicted: float
    lower_bound: float = Field(alias="lowerBound")
    upper_bound: float = Field(alias="upperBound")

    class Config:
        frozen = True
        populate_by_name = True

    @model_validator(mode="after")
    def _check_band(self):
        if not self.lower_bound <= self.predicted <= self.upper_bound:
            raise ValueError(
                f"Forecast band for {self.date} must satisfy lowerBound <= predicted <= upperBound"
            )
        return self


# =============================================================================
# Derived Records
# =============================================================================

class CategoryBreakdown(BaseModel):
    category: ExpenseCategory
    amount: float
    percentage: float


class FinancialMetrics(BaseModel):
    total_revenue: float = Field(alias="totalRevenue")
    total_expenses: float = Field(alias="totalExpenses")
    profit: float
    profit_margin: float = Field(alias="profitMargin")
    revenue_growth: float = Field(alias="revenueGrowth")

    class Config:
        populate_by_name = True


class MonthlyExpense(BaseModel):
    month: str
    amount: float
    change_percent: Optional[float] = Field(None, alias="changePercent")

    class Config:
        populate_by_name = True


class ExpenseTrend(BaseModel):
    months: list[MonthlyExpense] = []
    average: float = 0.0
    highest: Optional[MonthlyExpense] = None
    lowest: Optional[MonthlyExpense] = None


class AnomalyItem(BaseModel):
    expense: Expense
    mean_amount: float = Field(alias="meanAmount")
    deviation: float
    significance: Significance

    class Config:
        populate_by_name = True


class DuplicatePair(BaseModel):
    expense1: Expense
    expense2: Expense


class AnomalySummary(BaseModel):
    total_anomalies: int = Field(0, alias="totalAnomalies")
    high_significance: int = Field(0, alias="highSignificance")
    potential_duplicates: int = Field(0, alias="potentialDuplicates")
    potential_savings: float = Field(0.0, alias="potentialSavings")

    class Config:
        populate_by_name = True


class AnomalyReport(BaseModel):
    anomalies: list[AnomalyItem] = []
    potential_duplicates: list[DuplicatePair] = Field([], alias="potentialDuplicates")
    summary: AnomalySummary = AnomalySummary()

    class Config:
        populate_by_name = True


class OptimizationRecommendation(BaseModel):
    id: str
    title: str
    description: str
    category: ExpenseCategory
    potential_savings: float = Field(alias="potentialSavings")
    implementation_difficulty: Difficulty = Field(alias="implementationDifficulty")
    confidence: float = Field(ge=0, le=1)

    class Config:
        populate_by_name = True


# =============================================================================
# Request Schemas
# =============================================================================

class ExpenseIn(BaseModel):
    """Expense payload for create/replace; id is assigned on create."""
    date: date
    amount: float = Field(gt=0)
    description: str = ""
    category: ExpenseCategory = ExpenseCategory.UNCATEGORIZED
    vendor: str = ""


class ForecastRequest(BaseModel):
    period: str = Field("6months", description="One of 3months, 6months, 12months, 24months")
    model: str = Field("arima", description="Model label shown alongside the forecast")


# =============================================================================
# Response Schemas
# =============================================================================

class HealthResponse(BaseModel):
    status: str
    database: str


class RecommendationsResponse(BaseModel):
    recommendations: list[OptimizationRecommendation]
    total_potential_savings: float = Field(alias="totalPotentialSavings")

    class Config:
        populate_by_name = True


class ForecastResponse(BaseModel):
    model: str
    months: int
    forecast: list[ForecastData]
    insights: list[str]
    storage_warning: Optional[str] = Field(None, alias="storageWarning")

    class Config:
        populate_by_name = True


class DashboardResponse(BaseModel):
    expenses: list[Expense]
    revenue: list[Revenue]
    forecast: list[ForecastData]
    category_breakdown: list[CategoryBreakdown] = Field(alias="categoryBreakdown")
    metrics: FinancialMetrics
    expense_trend: ExpenseTrend = Field(alias="expenseTrend")
    recommendations: list[OptimizationRecommendation]
    total_potential_savings: float = Field(alias="totalPotentialSavings")
    insights: list[str]
    forecast_insights: list[str] = Field(alias="forecastInsights")
    anomaly_report: AnomalyReport = Field(alias="anomalyReport")
    storage_warning: Optional[str] = Field(None, alias="storageWarning")

    class Config:
        populate_by_name = True


class ImportResponse(BaseModel):
    kind: str
    row_count: int = Field(alias="rowCount")
    warnings: list[str] = []
    storage_warning: Optional[str] = Field(None, alias="storageWarning")

    class Config:
        populate_by_name = True
