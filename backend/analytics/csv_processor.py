"""
CSV parsing and normalization for imported expense, revenue and forecast datasets.

Expected columns:
    - expenses: id, date, amount, description, category, vendor
    - revenue:  date (YYYY-MM), amount
    - forecast: date (YYYY-MM), predicted, lowerBound, upperBound

Rows that cannot be turned into a valid record are dropped with a warning;
a file with no usable rows is rejected.
"""

import re
from io import StringIO
from typing import List, Optional

import pandas as pd
from pydantic import ValidationError

from schemas import Expense, ExpenseCategory, ForecastData, Revenue
from .observability import logger


class DataValidationError(ValueError):
    """Exception for data validation failures."""

    def __init__(self, message: str, warnings: Optional[List[str]] = None):
        super().__init__(message)
        self.warnings = warnings or []


DATASET_KINDS = ("expenses", "revenue", "forecast")


class CSVProcessor:
    """Parse uploaded CSV text into record lists."""

    REQUIRED_COLUMNS = {
        "expenses": ["date", "amount"],
        "revenue": ["date", "amount"],
        "forecast": ["date", "predicted", "lowerbound", "upperbound"],
    }
    MAX_ROWS = 10000

    def __init__(self):
        self.validation_warnings: List[str] = []

    def parse(self, kind: str, content: bytes | str) -> list:
        """
        Parse a CSV payload of the given dataset kind.

        Raises:
            DataValidationError: Unknown kind, empty file, missing columns or
                no valid rows.
        """
        self.validation_warnings = []
        if kind not in DATASET_KINDS:
            raise DataValidationError(f"Unknown dataset kind: {kind}")

        df = self._read(content)
        self._validate_columns(kind, df)

        if kind == "expenses":
            records = self._parse_expenses(df)
        elif kind == "revenue":
            records = self._parse_revenue(df)
        else:
            records = self._parse_forecast(df)

        if not records:
            raise DataValidationError(
                f"No valid {kind} rows found in file", warnings=self.validation_warnings
            )

        if self.validation_warnings:
            logger.warning("CSV import dropped rows", kind=kind,
                           dropped=len(self.validation_warnings), kept=len(records))
        return records

    def _read(self, content: bytes | str) -> pd.DataFrame:
        if isinstance(content, bytes):
            try:
                content = content.decode("utf-8")
            except UnicodeDecodeError:
                content = content.decode("latin-1")

        if not content.strip():
            raise DataValidationError("File is empty or has no valid data rows")

        try:
            df = pd.read_csv(StringIO(content), dtype=str, keep_default_na=False)
        except (pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
            raise DataValidationError(f"Could not parse CSV: {exc}") from exc

        if len(df) == 0:
            raise DataValidationError("File is empty or has no valid data rows")
        if len(df) > self.MAX_ROWS:
            raise DataValidationError(
                f"File too large: {len(df)} rows. Maximum allowed: {self.MAX_ROWS}"
            )

        df.columns = df.columns.str.strip().str.lower()
        return df

    def _validate_columns(self, kind: str, df: pd.DataFrame) -> None:
        missing = [col for col in self.REQUIRED_COLUMNS[kind] if col not in df.columns]
        if missing:
            raise DataValidationError(f"Missing required columns: {', '.join(missing)}")

    @staticmethod
    def _parse_amount(value: str) -> float:
        value = re.sub(r"[$,\s]", "", str(value))
        if value.startswith("(") and value.endswith(")"):
            value = "-" + value[1:-1]
        return float(value)

    @staticmethod
    def _parse_category(value: str) -> ExpenseCategory:
        for category in ExpenseCategory:
            if category.value.lower() == str(value).strip().lower():
                return category
        return ExpenseCategory.UNCATEGORIZED

    def _parse_expenses(self, df: pd.DataFrame) -> List[Expense]:
        expenses = []
        for position, row in enumerate(df.to_dict(orient="records"), start=1):
            try:
                expenses.append(Expense(
                    id=row.get("id") or f"imp-{position}",
                    date=pd.to_datetime(row["date"]).date(),
                    amount=round(self._parse_amount(row["amount"]), 2),
                    description=row.get("description", ""),
                    category=self._parse_category(row.get("category", "")),
                    vendor=row.get("vendor", ""),
                ))
            except (ValueError, TypeError, ValidationError) as exc:
                self.validation_warnings.append(f"Row {position}: {exc}")
        return expenses

    def _parse_revenue(self, df: pd.DataFrame) -> List[Revenue]:
        revenue = []
        for position, row in enumerate(df.to_dict(orient="records"), start=1):
            try:
                revenue.append(Revenue(
                    date=str(row["date"]).strip(),
                    amount=self._parse_amount(row["amount"]),
                ))
            except (ValueError, TypeError, ValidationError) as exc:
                self.validation_warnings.append(f"Row {position}: {exc}")
        return revenue

    def _parse_forecast(self, df: pd.DataFrame) -> List[ForecastData]:
        forecast = []
        for position, row in enumerate(df.to_dict(orient="records"), start=1):
            try:
                forecast.append(ForecastData(
                    date=str(row["date"]).strip(),
                    predicted=self._parse_amount(row["predicted"]),
                    lower_bound=self._parse_amount(row["lowerbound"]),
                    upper_bound=self._parse_amount(row["upperbound"]),
                ))
            except (ValueError, TypeError, ValidationError) as exc:
                self.validation_warnings.append(f"Row {position}: {exc}")
        return forecast
