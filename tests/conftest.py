"""
Pytest configuration for floodgate tests.

Async tests are marked explicitly with ``@pytest.mark.asyncio``.
"""

import asyncio
import tempfile
from typing import Generator

import pytest

from floodgate.logging import Entry, LogLevel, Logger


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "asyncio: mark test as async"
    )


@pytest.fixture
def temp_log_directory() -> Generator[str, None, None]:
    with tempfile.TemporaryDirectory() as temp_directory:
        yield temp_directory


@pytest.fixture
def logger() -> Logger:
    return Logger()


@pytest.fixture
def sample_entry() -> Entry:
    return Entry(
        message="Test log message",
        level=LogLevel.INFO,
    )


@pytest.fixture
def delayed_operation():
    """
    Build zero-argument async operations that sleep, then return or raise.

    When ``events`` is given the operation appends ("start", label) and
    ("end", label) to it.
    """

    def create(
        delay: float,
        result=None,
        error: Exception | None = None,
        events: list | None = None,
        label=None,
    ):
        async def operation():
            if events is not None:
                events.append(("start", label))

            await asyncio.sleep(delay)

            if events is not None:
                events.append(("end", label))

            if error is not None:
                raise error

            return result

        return operation

    return create
