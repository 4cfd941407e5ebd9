"""
Unit tests for resilience patterns.

Tests the provider error classifier and the sync retry decorator.
"""

from unittest.mock import patch

import pytest

from newsdesk.services.resilience import (
    ConflictFailure,
    RetryDecision,
    TransportFailure,
    classify_provider_error,
    with_sync_retry,
)


class TestClassifyProviderError:
    """Tests for classify_provider_error()."""

    def test_404_moves_on(self):
        assert classify_provider_error(404) == RetryDecision.RETRY_NEXT

    @pytest.mark.parametrize("status_code", [400, 401, 403, 429, 500, 503])
    def test_other_status_aborts(self, status_code):
        assert classify_provider_error(status_code) == RetryDecision.ABORT_PROVIDER

    @pytest.mark.parametrize(
        "message",
        [
            "models/gemini-x is not found for API version v1beta",
            "NOT_FOUND: model does not exist",
        ],
    )
    def test_not_found_message_moves_on(self, message):
        assert classify_provider_error(message=message) == RetryDecision.RETRY_NEXT

    @pytest.mark.parametrize(
        "message",
        [
            "API key not valid. Please pass a valid API key.",
            "Quota exceeded for quota metric",
            "Permission denied on resource (model not found)",
            "connection reset by peer",
        ],
    )
    def test_fatal_or_unknown_message_aborts(self, message):
        assert classify_provider_error(message=message) == RetryDecision.ABORT_PROVIDER


class TestErrorTypes:
    """Attributes carried by pipeline errors."""

    def test_transport_failure_status(self):
        assert TransportFailure("boom", 502).status_code == 502

    def test_conflict_existing_id(self):
        assert ConflictFailure("exists", existing_id="abc").existing_id == "abc"


class TestSyncRetry:
    """Tests for with_sync_retry decorator."""

    def test_success_first_try(self):
        calls = []

        @with_sync_retry(max_attempts=3, min_wait=0.01)
        def succeed():
            calls.append(1)
            return "ok"

        assert succeed() == "ok"
        assert len(calls) == 1

    @patch("newsdesk.services.resilience.time.sleep")
    def test_retries_then_succeeds(self, sleep):
        calls = []

        @with_sync_retry(max_attempts=3, min_wait=0.5, max_wait=2.0, retry_exceptions=(ConnectionError,))
        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise ConnectionError("reset")
            return "ok"

        assert flaky() == "ok"
        assert len(calls) == 3
        assert [c.args[0] for c in sleep.call_args_list] == [0.5, 1.0]

    @patch("newsdesk.services.resilience.time.sleep")
    def test_gives_up_after_max_attempts(self, sleep):
        @with_sync_retry(max_attempts=2, min_wait=0.01, retry_exceptions=(ConnectionError,))
        def always_fails():
            raise ConnectionError("down")

        with pytest.raises(ConnectionError):
            always_fails()
        assert sleep.call_count == 1

    def test_other_exceptions_not_retried(self):
        calls = []

        @with_sync_retry(max_attempts=3, min_wait=0.01, retry_exceptions=(ConnectionError,))
        def bad_value():
            calls.append(1)
            raise ValueError("nope")

        with pytest.raises(ValueError):
            bad_value()
        assert len(calls) == 1
