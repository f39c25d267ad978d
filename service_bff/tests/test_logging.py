"""
Unit tests for structured logging.
"""

import json
import logging
import re

import pytest

from bff_shared.logging import (
    clear_context,
    configure_logging,
    get_logger,
    set_request_id,
    set_user_context,
)

ISO_TIMESTAMP = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?Z$")


@pytest.fixture
def log_events(caplog):
    """Configure BFF logging and return a reader for the rendered JSON events."""
    configure_logging("bff", "info")
    caplog.set_level(logging.INFO)
    clear_context()
    yield lambda: [json.loads(record.getMessage()) for record in caplog.records if record.name.startswith("bff.")]
    clear_context()


class TestLogging:
    """Test cases for the JSON log format."""

    def test_timestamp_is_iso_utc(self, log_events):
        get_logger("bff.logging_test").info("Upstream request succeeded", status_code=200)

        event = log_events()[-1]

        assert isinstance(event["timestamp"], str)
        assert ISO_TIMESTAMP.match(event["timestamp"])

    def test_event_carries_logger_level_and_service(self, log_events):
        get_logger("bff.logging_test").warning("Rate limit exceeded", limit=2)

        event = log_events()[-1]

        assert event["event"] == "Rate limit exceeded"
        assert event["level"] == "warning"
        assert event["logger"] == "bff.logging_test"
        assert event["service"] == "bff"
        assert event["limit"] == 2

    def test_correlation_values_are_bound_until_cleared(self, log_events):
        request_id = set_request_id("req-42")
        set_user_context("user-operator", "tenant-1")
        get_logger("bff.logging_test").info("Handling request")

        clear_context()
        get_logger("bff.logging_test").info("After request")

        bound, cleared = log_events()[-2:]
        assert request_id == "req-42"
        assert bound["request_id"] == "req-42"
        assert bound["user_id"] == "user-operator"
        assert bound["tenant_id"] == "tenant-1"
        assert "request_id" not in cleared
        assert "user_id" not in cleared

    def test_request_id_is_generated_when_missing(self):
        assert set_request_id(None)
        assert set_request_id("") != ""
