"""Shared fixtures for templog tests."""

from __future__ import annotations

from datetime import datetime

import pytest
from loguru import logger


@pytest.fixture
def log_messages():
    """Capture loguru records emitted during a test."""
    captured: list[dict] = []
    handler_id = logger.add(lambda message: captured.append(message.record), level="DEBUG")
    yield captured
    logger.remove(handler_id)


class FakeClock:
    """Manually advanced wall clock."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def set(self, value: datetime) -> None:
        self.now = value


@pytest.fixture
def fake_clock():
    return FakeClock(datetime(2025, 3, 10, 9, 0, 0))
