"""Shared fixtures."""

from pathlib import Path

import pytest

from inkwell.logging import configure_logger, reset_logger
from inkwell.store import InMemoryRepository


@pytest.fixture(autouse=True)
def isolated_event_log(tmp_path: Path):
    """Keep the global JSONL logger out of the real home directory."""
    logger = configure_logger(tmp_path / "logs")
    yield logger
    reset_logger()


@pytest.fixture
def repository() -> InMemoryRepository:
    return InMemoryRepository()
