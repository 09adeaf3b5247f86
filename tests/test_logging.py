"""Functional tests for the logger module."""

import asyncio
import json
import re
from typing import Any

import pytest
from pytest import LogCaptureFixture, MonkeyPatch

from research_swarm.logging import (
    bind_context_vars,
    bound_context,
    clear_context_fields,
    configure_structlog,
    get_context_vars,
    get_correlation_id,
    get_logger,
)

# ============================================================================
# Helpers
# ============================================================================


def parse_log_json(caplog: LogCaptureFixture, index: int = 0) -> dict[str, Any]:
    try:
        return json.loads(caplog.records[index].message)
    except (json.JSONDecodeError, IndexError) as e:
        records = [r.message for r in caplog.records]
        raise AssertionError(f"Failed to parse log {index}: {e}. Records: {records}")


def assert_json_log_structure(log_data: dict[str, Any]) -> None:
    required_fields = {"timestamp", "level", "logger", "message", "context"}
    missing_fields = required_fields - log_data.keys()
    assert not missing_fields, f"Missing required fields: {missing_fields}"


@pytest.fixture(autouse=True)
def setup_logger():
    configure_structlog()
    yield
    clear_context_fields()


# ============================================================================
# Context Tests
# ============================================================================


def test__correlation_id__appears_in_logs(caplog: LogCaptureFixture):
    bind_context_vars(correlation_id="req-abc-123")

    get_logger("test").info("Test message")

    assert parse_log_json(caplog)["extra"]["correlation_id"] == "req-abc-123"
    assert get_correlation_id() == "req-abc-123"


def test__default_correlation_id__is_omitted(caplog: LogCaptureFixture):
    bind_context_vars(correlation_id="unknown")

    get_logger("test").info("Test message")

    assert "extra" not in parse_log_json(caplog)


def test__bound_context__scopes_session_and_task_ids(caplog: LogCaptureFixture):
    with bound_context(session_id="research-1", task_id="market_researcher-1"):
        get_logger("research_swarm.worker").info("worker.started")
    get_logger("research_swarm.worker").info("worker.outside")

    inside = parse_log_json(caplog, 0)["extra"]
    assert inside["session_id"] == "research-1"
    assert inside["task_id"] == "market_researcher-1"
    assert "extra" not in parse_log_json(caplog, 1)
    assert get_context_vars() == {}


@pytest.mark.asyncio
async def test__context__isolated_between_tasks(caplog: LogCaptureFixture):
    async def work(task_id: str) -> None:
        with bound_context(task_id=task_id):
            await asyncio.sleep(0)
            get_logger("research_swarm.worker").info("worker.completed")

    bind_context_vars(session_id="research-1")
    await asyncio.gather(work("t-1"), work("t-2"))

    extras = [parse_log_json(caplog, i)["extra"] for i in range(2)]
    assert sorted(e["task_id"] for e in extras) == ["t-1", "t-2"]
    assert all(e["session_id"] == "research-1" for e in extras)
    assert "task_id" not in get_context_vars()


# ============================================================================
# Output Format Tests
# ============================================================================


def test__custom_fields__go_to_extra_section(caplog: LogCaptureFixture):
    get_logger("research_swarm.search").info("search.query.completed", query="coffee", attempts=2)

    log_data = parse_log_json(caplog)

    assert_json_log_structure(log_data)
    assert log_data["message"] == "search.query.completed"
    assert log_data["context"] == "engine"
    assert log_data["extra"] == {"query": "coffee", "attempts": 2}


def test__human_readable_formatter__formats_complete_log(caplog: LogCaptureFixture):
    configure_structlog(testing=True)
    bind_context_vars(correlation_id="complete-test-789")

    with bound_context(session_id="research-0123456789abcdef", task_id="trend_analyst-1a2b3c4d"):
        get_logger("research_swarm.coordinator").warning("coordinator.session.failed", reason="abort")

    output = caplog.records[0].message

    assert "[WARNING]" in output
    assert "coordinator:" in output
    assert "coordinator.session.failed" in output
    assert "reason=abort" in output
    assert "[session:89abcdef]" in output
    assert "[task:1a2b3c4d]" in output
    assert "[id:test-789]" in output
    assert re.match(r"^\d{2}:\d{2}:\d{2}", output)


def test__human_readable_formatter__truncates_long_values(caplog: LogCaptureFixture):
    configure_structlog(testing=True)

    get_logger("test").info("Long value test", long_field="x" * 100)

    output = caplog.records[0].message
    assert "long_field=" in output
    assert "..." in output
    assert "x" * 100 not in output


# ============================================================================
# Configuration Tests
# ============================================================================


def test__log_level__filters_messages(monkeypatch: MonkeyPatch, caplog: LogCaptureFixture):
    monkeypatch.setenv("LOGGING_LEVEL", "WARNING")
    configure_structlog()

    logger = get_logger("test")
    logger.debug("Should not appear")
    logger.info("Should not appear")
    logger.warning("Should appear")
    logger.error("Should appear")

    messages = [parse_log_json(caplog, i)["message"] for i in range(len(caplog.records))]

    assert "Should not appear" not in " ".join(messages)
    assert len(caplog.records) == 2


def test__invalid_log_level__defaults_to_info(monkeypatch: MonkeyPatch, caplog: LogCaptureFixture):
    monkeypatch.setenv("LOGGING_LEVEL", "INVALID")
    configure_structlog()

    logger = get_logger("test")
    logger.debug("Debug message")
    logger.info("Info message")

    assert len(caplog.records) == 1
    assert parse_log_json(caplog)["message"] == "Info message"
