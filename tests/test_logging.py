"""Tests for JSONL event logging."""

import json
from pathlib import Path

import pytest

from inkwell import logging as event_logging
from inkwell.logging import JSONLLogger, LogEntry


@pytest.fixture
def logger(tmp_path: Path) -> JSONLLogger:
    return JSONLLogger(log_dir=tmp_path)


def read_entries(logger: JSONLLogger) -> list[dict]:
    with open(logger.log_path) as f:
        return [json.loads(line) for line in f]


def test_log_entry_to_dict():
    """Test LogEntry excludes None values."""
    entry = LogEntry(timestamp="2024-01-01T00:00:00Z", event="test")
    data = entry.to_dict()

    assert "timestamp" in data
    assert "event" in data
    assert "project_id" not in data  # None excluded
    assert "extra" not in data  # Empty dict excluded


def test_log_creates_directory_and_file(tmp_path: Path):
    logger = JSONLLogger(log_dir=tmp_path / "nested" / "logs")
    logger.log("test_event")

    assert logger.log_path.exists()
    assert logger.log_path.name == "events.jsonl"


def test_log_writes_jsonl(logger: JSONLLogger):
    """Test that logs are written in JSONL format."""
    logger.log("event1", project_id="p1")
    logger.log("event2", project_id="p2")

    entries = read_entries(logger)

    assert len(entries) == 2
    assert entries[0]["event"] == "event1"
    assert entries[0]["project_id"] == "p1"
    assert entries[1]["event"] == "event2"


def test_log_llm_call(logger: JSONLLogger):
    logger.log_llm_call("groq", "llama-test", duration_ms=150.5, streamed=True)

    entry = read_entries(logger)[0]

    assert entry["event"] == "llm_call"
    assert entry["provider"] == "groq"
    assert entry["model"] == "llama-test"
    assert entry["duration_ms"] == 150.5
    assert entry["extra"] == {"success": True, "streamed": True}


def test_log_task_failure(logger: JSONLLogger):
    logger.log_task("editing", project_id="p1", error="Rate limit exceeded.")

    entry = read_entries(logger)[0]

    assert entry["event"] == "task"
    assert entry["task_type"] == "editing"
    assert entry["error"] == "Rate limit exceeded."
    assert entry["extra"]["success"] is False


def test_log_phase(logger: JSONLLogger):
    logger.log_phase("Issue Identification", project_id="p1", duration_ms=12.0)

    entry = read_entries(logger)[0]

    assert entry["event"] == "planning_phase"
    assert entry["phase"] == "Issue Identification"
    assert "error" not in entry


def test_log_context(logger: JSONLLogger):
    logger.log_context("story_planning", project_id="p1", facts=4, characters=2)

    entry = read_entries(logger)[0]

    assert entry["event"] == "context"
    assert entry["extra"] == {"facts": 4, "characters": 2}


def test_set_project_id(logger: JSONLLogger):
    """Test that set_project_id applies to subsequent logs."""
    logger.set_project_id("novel-42")
    logger.log("event1")
    logger.log("event2", project_id="other")

    entries = read_entries(logger)

    assert entries[0]["project_id"] == "novel-42"
    assert entries[1]["project_id"] == "other"


def test_rotation(tmp_path: Path):
    """Test log rotation when max size is exceeded."""
    logger = JSONLLogger(log_dir=tmp_path, max_size_mb=0.001)  # ~1KB

    for i in range(100):
        logger.log(f"event_{i}", data="x" * 100)

    log_files = list(tmp_path.glob("events*.jsonl"))
    assert len(log_files) >= 2


def test_rotation_keeps_newest_archives(tmp_path: Path):
    logger = JSONLLogger(log_dir=tmp_path, max_size_mb=0.0001, keep_rotated=2)  # ~100 bytes

    for i in range(20):
        logger.log(f"event_{i}", data="x" * 100)

    assert len(logger.rotated_files()) == 2
    assert logger.log_path.exists()


def test_duration_is_rounded(logger: JSONLLogger):
    logger.log("timed", duration_ms=12.34567)
    assert read_entries(logger)[0]["duration_ms"] == 12.35


def test_extra_fields(logger: JSONLLogger):
    """Test that extra fields are included."""
    logger.log("custom", custom_field="value", another=123)

    entry = read_entries(logger)[0]

    assert entry["extra"]["custom_field"] == "value"
    assert entry["extra"]["another"] == 123


class TestGlobalLogger:
    def test_configure_replaces_instance(self, tmp_path: Path):
        configured = event_logging.configure_logger(tmp_path / "global")

        assert event_logging.get_logger() is configured
        assert configured.log_dir == tmp_path / "global"

    def test_reset_creates_fresh_instance(self, tmp_path: Path, monkeypatch):
        monkeypatch.setattr(Path, "home", lambda: tmp_path)
        before = event_logging.get_logger()

        event_logging.reset_logger()
        after = event_logging.get_logger()

        assert after is not before
        assert after.log_dir == tmp_path / ".inkwell" / "logs"
