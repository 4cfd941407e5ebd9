# tests/unit/test_logging_config.py
"""
Unit tests for structured logging helpers.
"""

import json
import logging

import pytest

from newsdesk.logging_config import JSONFormatter, get_trace_id, log_provider_call, set_trace_id


def _record(message="hello", **extra):
    record = logging.LogRecord("newsdesk.test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_single_line_with_trace_and_extras(self):
        set_trace_id("trace-123")

        line = JSONFormatter().format(_record(event="source_ingested", source="Feed", unrelated="x"))

        data = json.loads(line)
        assert "\n" not in line
        assert data["message"] == "hello"
        assert data["level"] == "INFO"
        assert data["trace_id"] == "trace-123"
        assert data["event"] == "source_ingested"
        assert data["source"] == "Feed"
        assert "unrelated" not in data

    def test_generated_trace_id(self):
        trace_id = set_trace_id()
        assert trace_id
        assert get_trace_id() == trace_id


class TestLogProviderCall:
    """Tests for log_provider_call()."""

    def test_success_logged_with_duration(self, caplog):
        with caplog.at_level(logging.INFO, logger="newsdesk.providers"):
            with log_provider_call("gemini", "v1/gemini-2.0-flash", "translate"):
                pass

        record = caplog.records[-1]
        assert record.event == "provider_call_complete"
        assert record.provider == "gemini"
        assert record.duration_ms >= 0

    def test_failure_logged_and_reraised(self, caplog):
        with caplog.at_level(logging.INFO, logger="newsdesk.providers"):
            with pytest.raises(RuntimeError):
                with log_provider_call("openai", "gpt-4o-mini", "generate"):
                    raise RuntimeError("boom")

        assert caplog.records[-1].event == "provider_call_failed"
