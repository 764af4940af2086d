"""
Module: storage.py
Description: Key/value persistence for generated and imported datasets.

The dashboard treats storage as a cache: `get(key) -> bytes | None` and
`set(key, value)`. Nothing here retries; failures surface as StorageError so
the caller can report them while keeping its in-memory data.
"""

import json
from typing import List, Optional, Protocol, Type, TypeVar

from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as DBSession

from models import StorageEntry
from schemas import Expense, ForecastData, Revenue
from .observability import log_storage_failure, logger


EXPENSES_KEY = "expense-data"
REVENUE_KEY = "revenue-data"
FORECAST_KEY = "forecast-data"

RecordT = TypeVar("RecordT", bound=BaseModel)


class StorageError(Exception):
    """Raised when a dataset cannot be read from or written to storage."""

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class KeyValueStorage(Protocol):
    def get(self, key: str) -> Optional[bytes]: ...

    def set(self, key: str, value: bytes) -> None: ...


class SQLStorage:
    """KeyValueStorage backed by the storage_entries table."""

    def __init__(self, db: DBSession):
        self.db = db

    def get(self, key: str) -> Optional[bytes]:
        try:
            entry = self.db.get(StorageEntry, key)
        except SQLAlchemyError as exc:
            self.db.rollback()
            log_storage_failure(key, "get", exc)
            raise StorageError(f"Could not read '{key}' from storage", key=key) from exc
        return entry.value if entry is not None else None

    def set(self, key: str, value: bytes) -> None:
        try:
            entry = self.db.get(StorageEntry, key)
            if entry is None:
                self.db.add(StorageEntry(key=key, value=value))
            else:
                entry.value = value
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            log_storage_failure(key, "set", exc)
            raise StorageError(f"Could not write '{key}' to storage", key=key) from exc


class DatasetStore:
    """Serializes record lists to JSON and keeps them under well-known keys."""

    def __init__(self, storage: KeyValueStorage):
        self.storage = storage

    def _save(self, key: str, records: List[BaseModel]) -> None:
        payload = json.dumps([r.model_dump(mode="json", by_alias=True) for r in records])
        self.storage.set(key, payload.encode("utf-8"))
        logger.debug("Dataset stored", key=key, records=len(records))

    def _load(self, key: str, model: Type[RecordT]) -> Optional[List[RecordT]]:
        raw = self.storage.get(key)
        if raw is None:
            return None
        try:
            items = json.loads(raw.decode("utf-8"))
            return [model.model_validate(item) for item in items]
        except (UnicodeDecodeError, json.JSONDecodeError, ValidationError, TypeError) as exc:
            log_storage_failure(key, "decode", exc)
            raise StorageError(f"Stored data under '{key}' is not a valid dataset", key=key) from exc

    def save_expenses(self, expenses: List[Expense]) -> None:
        self._save(EXPENSES_KEY, expenses)

    def load_expenses(self) -> Optional[List[Expense]]:
        return self._load(EXPENSES_KEY, Expense)

    def save_revenue(self, revenue: List[Revenue]) -> None:
        self._save(REVENUE_KEY, revenue)

    def load_revenue(self) -> Optional[List[Revenue]]:
        return self._load(REVENUE_KEY, Revenue)

    def save_forecast(self, forecast: List[ForecastData]) -> None:
        self._save(FORECAST_KEY, forecast)

    def load_forecast(self) -> Optional[List[ForecastData]]:
        return self._load(FORECAST_KEY, ForecastData)
