"""
Shared pytest fixtures and configuration for ctxlog tests.

This module provides:
- Configuration reset between tests
- A stream-backed logger with a JSON record reader
- Sample contexts
"""

import io
import json
import sys
from pathlib import Path
from typing import Any

import pytest

# Ensure ctxlog package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ctxlog import LogContext, Logger, reset_logging


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests: middleware tests are integration, everything else unit."""
    for item in items:
        if "middleware" in Path(item.fspath).name:
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


@pytest.fixture(autouse=True)
def clean_logging_config(monkeypatch: pytest.MonkeyPatch):
    """Isolate tests from CTXLOG_* environment variables and prior configuration."""
    for var in ("CTXLOG_SERVICE", "CTXLOG_INCLUDE_STACK", "CTXLOG_STREAM"):
        monkeypatch.delenv(var, raising=False)
    reset_logging()
    yield
    reset_logging()


class CapturedLogger:
    """Logger writing to an in-memory stream, with helpers to read records back."""

    def __init__(self) -> None:
        self.stream = io.StringIO()
        self.logger = Logger(self.stream)

    @property
    def lines(self) -> list[str]:
        return self.stream.getvalue().splitlines()

    @property
    def records(self) -> list[dict[str, Any]]:
        return [json.loads(line) for line in self.lines]

    @property
    def last(self) -> dict[str, Any]:
        return self.records[-1]


@pytest.fixture
def captured() -> CapturedLogger:
    return CapturedLogger()


@pytest.fixture
def request_context() -> LogContext:
    return LogContext.create(
        session_id="req-123",
        tags=["api", "user-service"],
        category="http-request",
        metadata={"userId": "456", "endpoint": "/api/users"},
    )
