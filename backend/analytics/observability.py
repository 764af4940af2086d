"""
Module: observability.py
Description: Logging and in-memory metrics for the dashboard analytics.

Features:
    - Key/value structured log lines on top of the stdlib logger
    - Counters and timing histograms
    - @timed decorator and timed_block context manager

Usage:
    from analytics.observability import logger, metrics, timed

    @timed("category_breakdown")
    def category_breakdown(expenses):
        logger.info("Computing breakdown", expenses=len(expenses))
        ...
"""

import asyncio
import functools
import logging
import time
from collections import defaultdict
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional


# =============================================================================
# Structured Logger
# =============================================================================

class StructuredLogger:
    """Thin wrapper around logging.Logger that appends `key=value` fields."""

    def __init__(self, name: str = "finance-dashboard"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(
                '%(asctime)s | %(levelname)s | %(name)s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            ))
            self.logger.addHandler(handler)

    def _format_message(self, message: str, **kwargs) -> str:
        if not kwargs:
            return message
        return message + " | " + " | ".join(f"{k}={v}" for k, v in kwargs.items())

    def info(self, message: str, **kwargs) -> None:
        self.logger.info(self._format_message(message, **kwargs))

    def warning(self, message: str, **kwargs) -> None:
        self.logger.warning(self._format_message(message, **kwargs))

    def error(self, message: str, **kwargs) -> None:
        self.logger.error(self._format_message(message, **kwargs))

    def debug(self, message: str, **kwargs) -> None:
        self.logger.debug(self._format_message(message, **kwargs))


# =============================================================================
# Metrics Collector
# =============================================================================

class MetricsCollector:
    """In-process counters and timings, served by the /metrics endpoint."""

    MAX_SAMPLES = 1000

    def __init__(self):
        self.counters: Dict[str, int] = defaultdict(int)
        self.timings: Dict[str, list] = defaultdict(list)
        self._start_time = datetime.now(timezone.utc)

    def increment(self, name: str, value: int = 1, tags: Optional[Dict[str, str]] = None) -> None:
        self.counters[self._make_key(name, tags)] += value

    def timing(self, name: str, duration_ms: float, tags: Optional[Dict[str, str]] = None) -> None:
        key = self._make_key(name, tags)
        self.timings[key].append(duration_ms)
        if len(self.timings[key]) > self.MAX_SAMPLES:
            self.timings[key] = self.timings[key][-self.MAX_SAMPLES:]

    def reset(self) -> None:
        self.counters.clear()
        self.timings.clear()

    def _make_key(self, name: str, tags: Optional[Dict[str, str]] = None) -> str:
        if tags:
            tag_str = ",".join(f"{k}={v}" for k, v in sorted(tags.items()))
            return f"{name}:{tag_str}"
        return name

    def get_summary(self) -> Dict[str, Any]:
        summary = {
            "uptime_seconds": (datetime.now(timezone.utc) - self._start_time).total_seconds(),
            "counters": dict(self.counters),
            "timings": {},
        }
        for name, values in self.timings.items():
            if not values:
                continue
            ordered = sorted(values)
            summary["timings"][name] = {
                "count": len(values),
                "avg_ms": sum(values) / len(values),
                "min_ms": ordered[0],
                "max_ms": ordered[-1],
                "p50_ms": ordered[len(ordered) // 2],
            }
        return summary


# =============================================================================
# Timing Helpers
# =============================================================================

def timed(name: Optional[str] = None):
    """
    Record call count, failures and duration of the wrapped function.

    Works for both plain and async functions.
    """
    def decorator(func: Callable) -> Callable:
        metric_name = name or func.__name__

        if asyncio.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                with timed_block(metric_name):
                    return await func(*args, **kwargs)
            return async_wrapper

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            with timed_block(metric_name):
                return func(*args, **kwargs)
        return sync_wrapper

    return decorator


@contextmanager
def timed_block(name: str):
    """Time an arbitrary block, e.g. a full dashboard recompute."""
    start = time.perf_counter()
    try:
        yield
        metrics.increment(f"{name}.success")
    except Exception:
        metrics.increment(f"{name}.error")
        raise
    finally:
        duration_ms = (time.perf_counter() - start) * 1000
        metrics.timing(name, duration_ms)
        logger.debug(f"{name} completed", duration_ms=f"{duration_ms:.2f}")


# =============================================================================
# Global Instances
# =============================================================================

logger = StructuredLogger()
metrics = MetricsCollector()


# =============================================================================
# Convenience Functions
# =============================================================================

def log_snapshot_built(expense_count: int, revenue_count: int, anomalies: int,
                       recommendations: int) -> None:
    logger.info(
        "Dashboard snapshot rebuilt",
        expenses=expense_count,
        revenue_months=revenue_count,
        anomalies=anomalies,
        recommendations=recommendations,
    )
    metrics.increment("snapshot.rebuilt")


def log_storage_failure(key: str, operation: str, error: Exception) -> None:
    logger.error("Storage operation failed", key=key, operation=operation, error=str(error))
    metrics.increment("storage.errors", tags={"operation": operation})


def log_anomaly_detected(category: str, significance: str, amount: float) -> None:
    logger.info("Anomaly detected", category=category, significance=significance,
                amount=f"{amount:.2f}")
    metrics.increment("anomalies.detected", tags={"significance": significance})
