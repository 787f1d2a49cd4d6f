"""Global pytest configuration and fixtures."""

from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest

from crudapp.observability.logging import ConsoleFormatter, JsonFormatter


@pytest.fixture(autouse=True)
def reset_logging() -> Iterator[None]:
    """Drop handlers installed by configure_logging() during a test."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in root.handlers[:]:
        if isinstance(handler.formatter, (JsonFormatter, ConsoleFormatter)):
            root.removeHandler(handler)
    root.setLevel(level)
