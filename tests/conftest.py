"""
Pytest configuration and shared fixtures.

Provides a store pinned to a fixed clock, the pipeline and engine bound to it,
and sample candidate records for unit and integration tests.
"""

import pytest
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List

from logstats.data.aggregation import AggregationEngine
from logstats.data.ingestion import IngestionPipeline
from logstats.data.store import RetentionStore


NOW = datetime(2025, 2, 7, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    """Fixed 'current time' used by the store clock."""
    return NOW


@pytest.fixture
def store():
    """
    Open RetentionStore whose clock always returns NOW.

    Closed again after the test.
    """
    s = RetentionStore(clock=lambda: NOW).open()
    yield s
    s.close()


@pytest.fixture
def pipeline(store) -> IngestionPipeline:
    return IngestionPipeline(store, max_workers=1)


@pytest.fixture
def engine(store) -> AggregationEngine:
    return AggregationEngine(store)


@pytest.fixture
def make_candidate() -> Callable[..., Dict[str, Any]]:
    """
    Factory for valid candidate dicts.

    Defaults to an info record one hour before NOW; any field can be
    overridden, and ``minutes_ago`` shifts the timestamp.
    """
    def _make(minutes_ago: float = 60, **overrides: Any) -> Dict[str, Any]:
        candidate = {
            "timestamp": (NOW - timedelta(minutes=minutes_ago)).isoformat(),
            "level": "info",
            "message": "Request processed",
            "source": "api-server",
        }
        candidate.update(overrides)
        return candidate

    return _make


@pytest.fixture
def sample_logs() -> List[Dict[str, Any]]:
    """
    Realistic mixed batch: errors with and without codes, warnings,
    info and debug records, all within the last hour.
    """
    def ts(minutes_ago: int) -> str:
        return (NOW - timedelta(minutes=minutes_ago)).isoformat().replace("+00:00", "Z")

    return [
        {
            "timestamp": ts(30),
            "level": "error",
            "message": "Database connection failed",
            "source": "api-server",
            "errorCode": "DB_CONN_001",
            "context": {"retryCount": 3, "timeout": 5000},
        },
        {
            "timestamp": ts(25),
            "level": "error",
            "message": "Database connection failed",
            "source": "api-server",
            "errorCode": "DB_CONN_001",
            "context": {"retryCount": 2, "timeout": 5000},
        },
        {
            "timestamp": ts(20),
            "level": "warn",
            "message": "High memory usage detected",
            "source": "monitoring",
            "context": {"memoryUsage": "85%", "threshold": "80%"},
        },
        {
            "timestamp": ts(15),
            "level": "info",
            "message": "User login successful",
            "source": "auth-service",
            "context": {"userId": "12345"},
        },
        {
            "timestamp": ts(10),
            "level": "error",
            "message": "Invalid authentication token",
            "source": "auth-service",
            "errorCode": "AUTH_001",
        },
        {
            "timestamp": ts(5),
            "level": "debug",
            "message": "Processing request",
            "source": "api-server",
            "context": {"endpoint": "/api/users", "method": "GET"},
        },
        {
            "timestamp": ts(2),
            "level": "error",
            "message": "Unhandled exception in worker",
            "source": "worker",
        },
    ]


def pytest_configure(config):
    """
    Pytest hook for custom configuration.

    Registers custom markers used throughout tests.
    """
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running (deferred CI)"
    )
