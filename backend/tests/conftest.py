"""
Pytest configuration and shared fixtures for the finance dashboard tests.

This file is automatically loaded by pytest and provides:
    - Expense / revenue / forecast builders
    - Seeded data generator
    - In-memory SQLite session and API test client
"""

import random
import sys
from datetime import date, timedelta
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from database import get_db, init_db  # noqa: E402
from schemas import Expense, ExpenseCategory, ForecastData, Revenue  # noqa: E402
from synthetic_data import SyntheticDataGenerator  # noqa: E402


REFERENCE_DATE = date(2024, 6, 15)


# =============================================================================
# Record Builders
# =============================================================================

def make_expense(
    id="exp-1",
    amount=100.0,
    category=ExpenseCategory.UNCATEGORIZED,
    date_val=REFERENCE_DATE,
    description="",
    vendor="",
) -> Expense:
    """Build an Expense with sensible defaults."""
    return Expense(
        id=id,
        date=date_val,
        amount=amount,
        description=description,
        category=category,
        vendor=vendor,
    )


def make_revenue(*amounts, start="2024-01") -> list:
    """Build consecutive monthly Revenue records starting at `start`."""
    year, month = (int(part) for part in start.split("-"))
    revenue = []
    for amount in amounts:
        revenue.append(Revenue(date=f"{year:04d}-{month:02d}", amount=amount))
        month += 1
        if month > 12:
            year, month = year + 1, 1
    return revenue


def make_forecast(*rows) -> list:
    """Build ForecastData from (date, predicted, lower, upper) tuples."""
    return [
        ForecastData(date=d, predicted=p, lower_bound=lo, upper_bound=hi)
        for d, p, lo, hi in rows
    ]


# =============================================================================
# Data Fixtures
# =============================================================================

@pytest.fixture
def reference_date():
    return REFERENCE_DATE


@pytest.fixture
def generator(reference_date):
    """Seeded generator so repeated runs produce identical data."""
    return SyntheticDataGenerator(reference_date, seed=42)


@pytest.fixture
def seeded_rng():
    return random.Random(7)


@pytest.fixture
def mixed_expenses():
    """A small mixed-category expense list across two months."""
    base = REFERENCE_DATE
    return [
        make_expense("exp-1", 2000.0, ExpenseCategory.RENT, base, "Office rent", "Acme Corp"),
        make_expense("exp-2", 500.0, ExpenseCategory.MARKETING, base - timedelta(days=3),
                     "Ad campaign", "Globex"),
        make_expense("exp-3", 300.0, ExpenseCategory.SOFTWARE, base - timedelta(days=20),
                     "Software subscription", "Initech"),
        make_expense("exp-4", 200.0, ExpenseCategory.RENT, base - timedelta(days=35),
                     "Storage unit", "Acme Corp"),
    ]


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture
def db_engine():
    """In-memory SQLite engine shared across connections."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db_engine, monkeypatch):
    """TestClient with get_db pointed at the in-memory engine."""
    from fastapi.testclient import TestClient
    from main import app

    monkeypatch.setenv("DEMO_SEED", "42")
    monkeypatch.setenv("DEMO_EXPENSE_COUNT", "30")
    monkeypatch.setenv("DEMO_REVENUE_MONTHS", "12")
    monkeypatch.setenv("DEMO_FORECAST_MONTHS", "6")

    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)

    def override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


# =============================================================================
# Test Utilities
# =============================================================================

def assert_valid_confidence(confidence: float) -> None:
    """Assert that confidence is in valid range."""
    assert 0 <= confidence <= 1, f"Invalid confidence: {confidence}"
