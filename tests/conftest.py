"""Shared test fixtures for all test modules."""

from pathlib import Path
from typing import Any

import pytest

from loadmetrics.adapters.storage.in_memory import InMemoryPointStorage
from loadmetrics.core.expressions import SimpleEvalEvaluator


def sample_row(latency: Any, timestamp: Any = None, status: Any = None) -> list[Any]:
    """Build a runner sample row: [timestamp, request_id, latency, status]."""
    return [timestamp, None, latency, status]


@pytest.fixture
def evaluator() -> SimpleEvalEvaluator:
    """Provide the default snippet evaluator."""
    return SimpleEvalEvaluator()


@pytest.fixture
def stats_report() -> dict[str, Any]:
    """A report with three samples and a match count."""
    return {
        "_matches": 88,
        "latencies": [sample_row(999), sample_row(998), sample_row(997)],
    }


@pytest.fixture
def point_storage() -> InMemoryPointStorage:
    """Provide an empty in-memory point storage."""
    return InMemoryPointStorage()


@pytest.fixture
def points_db_path(tmp_path: Path) -> str:
    """Provide a temporary database path for point storage tests."""
    return str(tmp_path / "points.db")


@pytest.fixture
def plugin_config() -> dict[str, Any]:
    """A minimal valid plugin configuration."""
    return {
        "testName": "custom-measurements",
        "excludeTestRunId": True,
        "influx": {
            "host": "my-test-host-name",
            "username": "a-user",
            "password": "p@ssw0rd",
            "database": "any-db-name",
        },
    }
