"""
Module: main.py
Description: FastAPI application entry point for the business finance dashboard.

This module provides REST API endpoints for:
    - Dashboard snapshot (breakdown, metrics, trend, recommendations, insights, anomalies)
    - Expense create / replace / delete with full recompute
    - Revenue forecast generation
    - CSV import of expense, revenue and forecast datasets

Datasets live in key/value storage. When nothing is stored yet, a demo
dataset is generated and stored on first access.

Usage:
    uvicorn main:app --reload --host 0.0.0.0 --port 8000
"""

import os
from contextlib import asynccontextmanager
from datetime import date
from typing import List, Optional, Tuple

from fastapi import FastAPI, UploadFile, File, Depends, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as DBSession

from analytics import (
    Categorizer, CSVProcessor, DataValidationError, DatasetStore, SQLStorage,
    StorageError, ExpenseNotFoundError, DashboardSnapshot, build_snapshot,
    add_expense, replace_expense, remove_expense, next_expense_id,
    trend_insights_from_forecast,
)
from analytics.observability import logger, metrics
from database import get_db, init_db
from schemas import (
    AnomalyReport, DashboardResponse, Expense, ExpenseIn, ForecastData,
    ForecastRequest, ForecastResponse, HealthResponse, ImportResponse,
    RecommendationsResponse, Revenue,
)
from synthetic_data import (
    FORECAST_MODELS, FORECAST_PERIODS, SyntheticDataGenerator, forecast_months_for,
)


# =============================================================================
# Configuration
# =============================================================================

DEFAULT_CORS_ORIGINS = "http://localhost:5173,http://localhost:3000,http://127.0.0.1:5173"


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return int(value)


def demo_generator() -> SyntheticDataGenerator:
    """Generator for demo data; reference date is today, seed from DEMO_SEED."""
    return SyntheticDataGenerator(date.today(), seed=_env_int("DEMO_SEED", None))


# =============================================================================
# Application Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create storage tables on startup."""
    logger.info("Starting finance dashboard API")
    init_db()
    yield
    logger.info("Shutting down finance dashboard API")


app = FastAPI(
    title="Business Finance Dashboard API",
    description="""
    Expense and revenue analytics for a small business dashboard.

    ## Features
    - Category breakdown, financial metrics and monthly expense trend
    - Rule-based expense categorization
    - Statistical anomaly and duplicate detection
    - Revenue forecast with narrative insights
    - Cost optimization recommendations
    """,
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", DEFAULT_CORS_ORIGINS).split(",")
                   if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Dependency Injection
# =============================================================================

def get_store(db: DBSession = Depends(get_db)) -> DatasetStore:
    """Dependency: dataset store over the request's database session."""
    return DatasetStore(SQLStorage(db))


def get_categorizer() -> Categorizer:
    return Categorizer()


# =============================================================================
# Dataset Helpers
# =============================================================================

class _Warnings:
    """Collects storage failures so a request can still succeed."""

    def __init__(self):
        self.messages: List[str] = []

    def add(self, error: StorageError) -> None:
        logger.warning("Continuing without storage", key=error.key, error=str(error))
        self.messages.append(str(error))

    @property
    def message(self) -> Optional[str]:
        return "; ".join(self.messages) if self.messages else None


def _load(loader, warnings: _Warnings):
    """Returns (records or None, whether the key could be read)."""
    try:
        return loader(), True
    except StorageError as e:
        warnings.add(e)
        return None, False


def _save(saver, records, warnings: _Warnings) -> None:
    try:
        saver(records)
    except StorageError as e:
        warnings.add(e)


def load_datasets(
    store: DatasetStore,
    categorizer: Categorizer,
    warnings: _Warnings,
) -> Tuple[List[Expense], List[Revenue], List[ForecastData]]:
    """
    Load stored datasets, generating demo data for each one that is missing.

    Each key is handled on its own: a stored dataset is never replaced. A
    generated dataset is stored only when its key was absent, not when it
    could not be read. A missing forecast is anchored at the latest revenue.
    """
    expenses, expenses_readable = _load(store.load_expenses, warnings)
    revenue, revenue_readable = _load(store.load_revenue, warnings)
    forecast, forecast_readable = _load(store.load_forecast, warnings)

    if expenses is not None and revenue is not None and forecast is not None:
        return expenses, revenue, forecast

    generator = demo_generator()

    if expenses is None:
        expenses = categorizer.reclassify_batch(
            generator.generate_expenses(_env_int("DEMO_EXPENSE_COUNT", 50))
        )
        logger.info("Generated demo expenses", expenses=len(expenses))
        metrics.increment("demo.generated", tags={"dataset": "expenses"})
        if expenses_readable:
            _save(store.save_expenses, expenses, warnings)

    if revenue is None:
        revenue = generator.generate_revenue(_env_int("DEMO_REVENUE_MONTHS", 12))
        logger.info("Generated demo revenue", revenue_months=len(revenue))
        metrics.increment("demo.generated", tags={"dataset": "revenue"})
        if revenue_readable:
            _save(store.save_revenue, revenue, warnings)

    if forecast is None:
        anchor = revenue[-1].amount if revenue else None
        forecast = generator.generate_forecast(_env_int("DEMO_FORECAST_MONTHS", 6), anchor=anchor)
        metrics.increment("demo.generated", tags={"dataset": "forecast"})
        if forecast_readable:
            _save(store.save_forecast, forecast, warnings)

    return expenses, revenue, forecast


def _dashboard_response(
    snapshot: DashboardSnapshot,
    forecast: List[ForecastData],
    warnings: _Warnings,
) -> DashboardResponse:
    return DashboardResponse(
        expenses=list(snapshot.expenses),
        revenue=list(snapshot.revenue),
        forecast=forecast,
        category_breakdown=snapshot.category_breakdown,
        metrics=snapshot.metrics,
        expense_trend=snapshot.expense_trend,
        recommendations=snapshot.recommendations,
        total_potential_savings=snapshot.total_potential_savings,
        insights=snapshot.insights,
        forecast_insights=trend_insights_from_forecast(forecast),
        anomaly_report=snapshot.anomaly_report,
        storage_warning=warnings.message,
    )


def _commit_expenses(
    store: DatasetStore,
    expenses: List[Expense],
    revenue: List[Revenue],
    forecast: List[ForecastData],
    warnings: _Warnings,
) -> DashboardResponse:
    """Store the edited expense list and return the recomputed dashboard."""
    _save(store.save_expenses, expenses, warnings)
    return _dashboard_response(build_snapshot(expenses, revenue), forecast, warnings)


# =============================================================================
# System Endpoints
# =============================================================================

@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["System"],
    summary="Health check endpoint",
)
async def health_check(db: DBSession = Depends(get_db)) -> HealthResponse:
    """
    Check the API and database connection.

    Example:
        GET /health
        Response: {"status": "healthy", "database": "connected"}
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "connected"
    except SQLAlchemyError as e:
        db_status = f"error: {str(e)}"

    overall_status = "healthy" if db_status == "connected" else "degraded"
    return HealthResponse(status=overall_status, database=db_status)


@app.get(
    "/metrics",
    tags=["System"],
    summary="Get application metrics",
)
async def get_metrics():
    """Counters and timing summaries collected since startup."""
    return metrics.get_summary()


# =============================================================================
# Dashboard Endpoints
# =============================================================================

@app.get(
    "/api/dashboard",
    response_model=DashboardResponse,
    tags=["Dashboard"],
    summary="Get the full dashboard",
)
def get_dashboard(
    store: DatasetStore = Depends(get_store),
    categorizer: Categorizer = Depends(get_categorizer),
) -> DashboardResponse:
    """
    Return every dashboard figure recomputed from the stored datasets.

    A demo dataset is generated and stored the first time this is called.
    """
    warnings = _Warnings()
    expenses, revenue, forecast = load_datasets(store, categorizer, warnings)
    return _dashboard_response(build_snapshot(expenses, revenue), forecast, warnings)


@app.get(
    "/api/anomalies",
    response_model=AnomalyReport,
    tags=["Dashboard"],
    summary="Get the anomaly report",
)
def get_anomalies(
    store: DatasetStore = Depends(get_store),
    categorizer: Categorizer = Depends(get_categorizer),
) -> AnomalyReport:
    expenses, revenue, _ = load_datasets(store, categorizer, _Warnings())
    return build_snapshot(expenses, revenue).anomaly_report


@app.get(
    "/api/recommendations",
    response_model=RecommendationsResponse,
    tags=["Dashboard"],
    summary="Get cost optimization recommendations",
)
def get_recommendations(
    store: DatasetStore = Depends(get_store),
    categorizer: Categorizer = Depends(get_categorizer),
) -> RecommendationsResponse:
    expenses, revenue, _ = load_datasets(store, categorizer, _Warnings())
    snapshot = build_snapshot(expenses, revenue)
    return RecommendationsResponse(
        recommendations=snapshot.recommendations,
        total_potential_savings=snapshot.total_potential_savings,
    )


# =============================================================================
# Expense Endpoints
# =============================================================================

@app.post(
    "/api/expenses",
    response_model=DashboardResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Expenses"],
    summary="Add an expense",
)
def create_expense(
    payload: ExpenseIn,
    store: DatasetStore = Depends(get_store),
    categorizer: Categorizer = Depends(get_categorizer),
) -> DashboardResponse:
    """
    Add an expense and return the recomputed dashboard.

    An Uncategorized expense is categorized from its description and vendor.
    """
    warnings = _Warnings()
    expenses, revenue, forecast = load_datasets(store, categorizer, warnings)

    expense = categorizer.classify_expense(
        Expense(id=next_expense_id(expenses), **payload.model_dump())
    )
    logger.info("Expense added", expense_id=expense.id, category=expense.category.value)
    metrics.increment("expenses.created")

    return _commit_expenses(store, add_expense(expenses, expense), revenue, forecast, warnings)


@app.put(
    "/api/expenses/{expense_id}",
    response_model=DashboardResponse,
    tags=["Expenses"],
    summary="Replace an expense",
)
def update_expense(
    expense_id: str,
    payload: ExpenseIn,
    store: DatasetStore = Depends(get_store),
    categorizer: Categorizer = Depends(get_categorizer),
) -> DashboardResponse:
    warnings = _Warnings()
    expenses, revenue, forecast = load_datasets(store, categorizer, warnings)

    try:
        updated = replace_expense(expenses, Expense(id=expense_id, **payload.model_dump()))
    except ExpenseNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    metrics.increment("expenses.updated")
    return _commit_expenses(store, updated, revenue, forecast, warnings)


@app.delete(
    "/api/expenses/{expense_id}",
    response_model=DashboardResponse,
    tags=["Expenses"],
    summary="Delete an expense",
)
def delete_expense(
    expense_id: str,
    store: DatasetStore = Depends(get_store),
    categorizer: Categorizer = Depends(get_categorizer),
) -> DashboardResponse:
    warnings = _Warnings()
    expenses, revenue, forecast = load_datasets(store, categorizer, warnings)

    try:
        remaining = remove_expense(expenses, expense_id)
    except ExpenseNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    metrics.increment("expenses.deleted")
    return _commit_expenses(store, remaining, revenue, forecast, warnings)


# =============================================================================
# Forecast Endpoint
# =============================================================================

@app.post(
    "/api/forecast",
    response_model=ForecastResponse,
    tags=["Forecast"],
    summary="Generate a revenue forecast",
)
def create_forecast(
    request: ForecastRequest,
    store: DatasetStore = Depends(get_store),
    categorizer: Categorizer = Depends(get_categorizer),
) -> ForecastResponse:
    """
    Generate a forecast anchored at the latest revenue value and store it.

    The model label is echoed back; every label uses the same generator.
    """
    if request.period not in FORECAST_PERIODS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown period '{request.period}'. Use one of: {', '.join(FORECAST_PERIODS)}",
        )
    if request.model not in FORECAST_MODELS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown model '{request.model}'. Use one of: {', '.join(FORECAST_MODELS)}",
        )

    warnings = _Warnings()
    _, revenue, _ = load_datasets(store, categorizer, warnings)

    months = forecast_months_for(request.period)
    anchor = revenue[-1].amount if revenue else None
    forecast = demo_generator().generate_forecast(months, anchor=anchor)
    _save(store.save_forecast, forecast, warnings)

    logger.info("Forecast generated", model=request.model, months=months)
    metrics.increment("forecast.generated", tags={"model": request.model})

    return ForecastResponse(
        model=request.model,
        months=months,
        forecast=forecast,
        insights=trend_insights_from_forecast(forecast),
        storage_warning=warnings.message,
    )


# =============================================================================
# Import Endpoint
# =============================================================================

@app.post(
    "/api/import/{kind}",
    response_model=ImportResponse,
    tags=["Import"],
    summary="Import a dataset from CSV",
)
async def import_dataset(
    kind: str,
    file: UploadFile = File(..., description="CSV file for expenses, revenue or forecast"),
    store: DatasetStore = Depends(get_store),
) -> ImportResponse:
    """
    Replace a stored dataset with the rows of an uploaded CSV file.

    Imported expenses keep their categories as given; unknown or missing
    categories become Uncategorized.

    Raises:
        HTTPException: 400 if the file is not a CSV or has no valid rows.
    """
    if not file.filename or not file.filename.endswith(".csv"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only CSV files are supported. Please upload a .csv file."
        )

    processor = CSVProcessor()
    try:
        records = processor.parse(kind, await file.read())
    except DataValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    savers = {
        "expenses": store.save_expenses,
        "revenue": store.save_revenue,
        "forecast": store.save_forecast,
    }
    warnings = _Warnings()
    _save(savers[kind], records, warnings)

    logger.info("Dataset imported", kind=kind, rows=len(records))
    metrics.increment("import.completed", tags={"kind": kind})

    return ImportResponse(
        kind=kind,
        row_count=len(records),
        warnings=processor.validation_warnings,
        storage_warning=warnings.message,
    )


# =============================================================================
# Main Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
